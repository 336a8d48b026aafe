"""
Modèles SQLAlchemy pour les classes (niveaux) et les inscriptions.
Nommé school_class pour éviter le conflit avec le mot-clé Python 'class'.
"""

from sqlalchemy import Column, DateTime, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base


class Level(Base):
    """Classe identifiée par un code court (ex : 'ENG-3A')."""
    __tablename__ = "levels"

    code = Column(String(30), primary_key=True)
    name = Column(String(100), nullable=False)
    teacher_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Enrollment(Base):
    """Inscription élève ↔ classe."""
    __tablename__ = "student_enrollment"

    student_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    level_code = Column(String(30), ForeignKey("levels.code", ondelete="CASCADE"), primary_key=True)
    enrolled_at = Column(DateTime, server_default=func.now())
