"""
Sessions par code d'accès.

La session est un objet explicite (AccessSession) renvoyé au client et transmis
aux appels qui ont besoin de l'identité ; rien n'est stocké côté serveur.
Le temps restant est une fonction pure de (maintenant, émission).
Toutes les heures sont comparées en UTC ; une heure sans fuseau est lue comme UTC.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.models.user import User
from app.schemas.session import AccessSession, SessionRemaining

logger = logging.getLogger(__name__)


def session_lifetime() -> timedelta:
    return timedelta(minutes=settings.SESSION_EXPIRE_MINUTES)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Ramène une heure en UTC avec fuseau ('…Z', '+02:00' ou sans fuseau)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def open_session(db: Session, code: str, now: Optional[datetime] = None) -> AccessSession:
    """
    Ouvre une session pour l'utilisateur propriétaire du code.
    Lève une ValueError si le code est inconnu.
    """
    user = db.execute(select(User).where(User.code == code)).scalar()
    if user is None:
        logger.warning("Tentative d'ouverture de session avec un code inconnu")
        raise ValueError("Code d'accès invalide.")

    issued_at = as_utc(now or utc_now())
    logger.info("Session ouverte pour %s (%s)", user.username, user.role)
    return AccessSession(
        user_id=user.id,
        name=user.name,
        username=user.username,
        role=user.role,
        issued_at=issued_at,
        expires_at=issued_at + session_lifetime(),
    )


def time_remaining(now: datetime, issued_at: datetime, lifetime: Optional[timedelta] = None) -> timedelta:
    """Temps restant avant expiration, jamais négatif."""
    remaining = (lifetime or session_lifetime()) - (as_utc(now) - as_utc(issued_at))
    return max(remaining, timedelta(0))


def is_expired(session: AccessSession, now: datetime) -> bool:
    return as_utc(now) >= as_utc(session.expires_at)


def format_remaining(remaining: timedelta) -> str:
    """Format « M:SS » (1:05 pour 65 secondes)."""
    total_seconds = int(remaining.total_seconds())
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"


def describe_remaining(now: datetime, issued_at: datetime) -> SessionRemaining:
    remaining = time_remaining(now, issued_at)
    return SessionRemaining(
        remaining_seconds=int(remaining.total_seconds()),
        display=format_remaining(remaining),
        expired=remaining <= timedelta(0),
    )
