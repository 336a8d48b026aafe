"""
Schémas Pydantic pour les classes et les inscriptions.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator


class LevelCreate(BaseModel):
    code: str
    name: str
    teacher_id: Optional[uuid.UUID] = None

    @field_validator("code", "name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le champ ne peut pas être vide.")
        return v.strip()


class LevelUpdate(BaseModel):
    name: Optional[str] = None
    teacher_id: Optional[uuid.UUID] = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Le nom de la classe ne peut pas être vide.")
        return v.strip() if v else v


class LevelResponse(BaseModel):
    code: str
    name: str
    teacher_id: Optional[uuid.UUID]
    nb_students: int
    nb_assignments: int
    created_at: Optional[datetime]


class EnrollmentAssign(BaseModel):
    """Corps de requête pour inscrire des élèves dans une classe."""
    student_ids: List[uuid.UUID]

    @field_validator("student_ids")
    @classmethod
    def not_empty(cls, v: List[uuid.UUID]) -> List[uuid.UUID]:
        if not v:
            raise ValueError("La liste d'élèves ne peut pas être vide.")
        return v


class EnrollmentStats(BaseModel):
    total_students: int
    enrolled_students: int
    unenrolled_students: int
