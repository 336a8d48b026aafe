# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant que SQLAlchemy tente de résoudre les clés étrangères inter-modèles.

from app.models.user import User  # noqa: F401  : doit précéder les autres
from app.models.school_class import Level, Enrollment  # noqa: F401
from app.models.assignment import GradeCategory, Assignment  # noqa: F401
from app.models.grade import Grade  # noqa: F401
from app.models.attendance import Attendance  # noqa: F401
