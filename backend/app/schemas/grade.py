"""
Schémas Pydantic pour les notes et la grille de notes.
"""

import math
import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from app.schemas.aggregation import AssignmentGrade, Completion, GradePolicy, GradeSummary

MAX_CELLS_PER_BATCH = 500


class GradeSet(BaseModel):
    """Saisie d'une note pour un couple (élève, devoir). Upsert."""
    student_id: uuid.UUID
    assignment_id: int
    score: float
    feedback: Optional[str] = None

    @field_validator("score")
    @classmethod
    def score_valid(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("La note doit être un nombre.")
        if v < 0:
            raise ValueError("La note ne peut pas être négative.")
        return v


class GradeCellsSet(BaseModel):
    """Édition en masse de la grille : chaque cellule est indépendante."""
    cells: List[GradeSet]

    @field_validator("cells")
    @classmethod
    def cells_valid(cls, v: List[GradeSet]) -> List[GradeSet]:
        if not v:
            raise ValueError("La liste de notes ne peut pas être vide.")
        if len(v) > MAX_CELLS_PER_BATCH:
            raise ValueError(f"Batch trop grand : maximum {MAX_CELLS_PER_BATCH} notes par requête.")
        return v


class GradeResponse(BaseModel):
    id: int
    student_id: uuid.UUID
    assignment_id: int
    score: Optional[float]
    feedback: Optional[str]
    graded_at: datetime

    model_config = {"from_attributes": True}


class RejectedCell(BaseModel):
    student_id: uuid.UUID
    assignment_id: int
    error: str


class GradeCellsReport(BaseModel):
    """Rapport d'édition en masse : cellules acceptées / rejetées."""
    accepted: List[GradeResponse]
    rejected: List[RejectedCell]
    total_received: int
    total_saved: int


class AssignmentColumn(BaseModel):
    id: int
    title: str
    max_score: float
    due_date: Optional[date]
    category: Optional[str] = None


class GradebookCell(BaseModel):
    assignment_id: int
    grade_id: Optional[int]
    result: AssignmentGrade


class GradebookRow(BaseModel):
    student_id: uuid.UUID
    name: str
    username: str
    cells: List[GradebookCell]
    summary: GradeSummary
    missing_assignment_ids: List[int]
    completion: Completion


class GradebookResponse(BaseModel):
    level_code: str
    policy: GradePolicy
    assignments: List[AssignmentColumn]
    rows: List[GradebookRow]
    class_average: GradeSummary


class StudentGradeLine(BaseModel):
    grade_id: int
    assignment_id: int
    title: str
    category: Optional[str]
    feedback: Optional[str]
    graded_at: datetime
    result: AssignmentGrade


class StudentGradesResponse(BaseModel):
    """Vue « mes notes » d'un élève dans une classe."""
    student_id: uuid.UUID
    level_code: str
    policy: GradePolicy
    grades: List[StudentGradeLine]
    summary: GradeSummary
    completion: Completion
