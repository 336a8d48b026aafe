"""
Modèles SQLAlchemy pour les devoirs et leurs catégories.
"""

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, func

from app.database import Base


class GradeCategory(Base):
    """Catégorie de devoirs. Le poids est affiché mais n'entre pas dans les moyennes."""
    __tablename__ = "grade_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    level_code = Column(String(30), ForeignKey("levels.code", ondelete="CASCADE"), nullable=True)
    name = Column(String(100), nullable=False)
    weight = Column(Numeric(5, 2), nullable=True)


class Assignment(Base):
    __tablename__ = "assignments"
    __table_args__ = (CheckConstraint("max_score > 0", name="ck_assignments_max_score_positive"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    level_code = Column(String(30), ForeignKey("levels.code", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    max_score = Column(Numeric(8, 2), nullable=False)
    due_date = Column(Date, nullable=True)
    category_id = Column(Integer, ForeignKey("grade_categories.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
