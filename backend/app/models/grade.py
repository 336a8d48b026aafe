"""
Modèle SQLAlchemy pour les notes.
Une seule note par couple (élève, devoir) : l'écriture passe par un upsert
ON CONFLICT sur la contrainte uq_grades_student_assignment.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base


class Grade(Base):
    __tablename__ = "grades"
    __table_args__ = (
        UniqueConstraint("student_id", "assignment_id", name="uq_grades_student_assignment"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    assignment_id = Column(Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False)
    score = Column(Numeric(8, 2), nullable=True)   # NULL = non noté
    feedback = Column(Text, nullable=True)
    graded_at = Column(DateTime, server_default=func.now(), nullable=False)
