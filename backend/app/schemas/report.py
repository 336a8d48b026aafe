"""
Schémas Pydantic pour le résumé enseignant et le bulletin élève/parent.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.schemas.aggregation import AttendanceSummary, Completion, GradePolicy, GradeSummary


class ClassSummaryResponse(BaseModel):
    """Résumé enseignant d'une classe (chiffres cumulés sur tous les élèves)."""
    level_code: str
    name: str
    policy: GradePolicy
    nb_students: int
    nb_assignments: int
    class_average: GradeSummary
    attendance: AttendanceSummary
    students_with_missing: int


class ReportCardLevel(BaseModel):
    level_code: str
    name: Optional[str]
    enrolled_at: Optional[datetime]
    grades: GradeSummary
    completion: Completion
    attendance: AttendanceSummary


class ReportCardResponse(BaseModel):
    """Bulletin : une entrée par classe (la plus récente d'abord) + bilan global."""
    student_id: uuid.UUID
    name: str
    policy: GradePolicy
    levels: List[ReportCardLevel]
    overall_grades: GradeSummary
    overall_attendance: AttendanceSummary
