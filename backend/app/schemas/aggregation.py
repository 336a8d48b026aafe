"""
Schémas Pydantic du moteur d'agrégation (notes et présences).

Les enregistrements d'entrée sont des vues à plat déjà récupérées en base ;
les résumés de sortie sont recalculés à chaque lecture.
"""

import uuid
from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel

UNGRADED = "UNGRADED"


class GradePolicy(str, Enum):
    """Barème de conversion pourcentage → lettre."""
    FULL = "FULL"       # 11 paliers (A, A-, B+ … D-, F)
    SIMPLE = "SIMPLE"   # A/B/C/D/F, seuils 90/80/70/60


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


class GradeRecord(BaseModel):
    """Une note accompagnée du max_score de son devoir."""
    student_id: uuid.UUID
    assignment_id: int
    score: Optional[float] = None       # None = ligne présente mais non notée
    max_score: Optional[float] = None


class AttendanceMark(BaseModel):
    """Une présence d'un élève pour une classe à une date."""
    student_id: uuid.UUID
    level_code: str
    date: date
    status: str


class GradeSummary(BaseModel):
    total_score: float
    max_possible: float
    percentage: int
    letter_grade: str


class AssignmentGrade(BaseModel):
    """Note d'un seul devoir ; letter_grade vaut UNGRADED si non notable."""
    score: Optional[float]
    max_score: Optional[float]
    percentage: Optional[float]
    letter_grade: str


class Completion(BaseModel):
    graded: int
    total: int


class AttendanceCounts(BaseModel):
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0


class AttendanceSummary(BaseModel):
    counts: AttendanceCounts
    unrecognized: int       # Statuts hors des 4 valeurs connues
    total: int
    weighted: float         # present + excused + 0.5 * late
    percentage: int
