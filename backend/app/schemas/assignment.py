"""
Schémas Pydantic pour les devoirs et catégories de notes.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator


class AssignmentCreate(BaseModel):
    title: str
    description: Optional[str] = None
    max_score: float
    due_date: Optional[date] = None
    category_id: Optional[int] = None

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le titre ne peut pas être vide.")
        return v.strip()

    @field_validator("max_score")
    @classmethod
    def max_score_positive(cls, v: float) -> float:
        if not v > 0:
            raise ValueError("Le score maximum doit être strictement positif.")
        return v


class AssignmentResponse(BaseModel):
    id: int
    level_code: str
    title: str
    description: Optional[str]
    max_score: float
    due_date: Optional[date]
    category_id: Optional[int]
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}


class GradeCategoryCreate(BaseModel):
    """Le poids est conservé pour l'affichage ; il n'entre pas dans les moyennes."""
    name: str
    weight: Optional[float] = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le nom de la catégorie ne peut pas être vide.")
        return v.strip()


class GradeCategoryResponse(BaseModel):
    id: int
    level_code: Optional[str]
    name: str
    weight: Optional[float]

    model_config = {"from_attributes": True}
