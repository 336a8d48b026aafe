"""
Modèle SQLAlchemy pour les présences en classe.

Une ligne par (élève, classe, date). Les lignes d'une date sont créées en une
seule fois lors de la prise de présences, puis modifiées individuellement.
"""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("student_id", "level_code", "date", name="uq_attendance_student_level_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    level_code = Column(String(30), ForeignKey("levels.code", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False)   # present, absent, late, excused
    created_at = Column(DateTime, server_default=func.now())
