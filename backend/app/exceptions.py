"""
Exceptions métier levées par les services et traduites en codes HTTP par les routers.
"""


class NotFoundError(ValueError):
    """Ressource introuvable (devoir, classe, élève, présence) → 404."""


class InvalidScoreError(ValueError):
    """Note hors de l'intervalle [0, max_score] → 422. Aucune écriture tentée."""


class DuplicateAttendanceError(ValueError):
    """Présences déjà prises pour ce couple (classe, date) → 409."""


class StoreError(RuntimeError):
    """Échec de lecture/écriture en base, la transaction a été annulée → 503."""


class SessionExpiredError(PermissionError):
    """Session par code d'accès expirée → 401."""
