"""
Schémas Pydantic pour les élèves.
"""

import re
import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, field_validator

MIN_PHONE_DIGITS = 7


class StudentCreate(BaseModel):
    """Schéma de création d'un élève (POST /students)."""
    name: str
    username: str
    email: Optional[EmailStr] = None
    code: Optional[str] = None
    parent1_number: Optional[str] = None
    parent2_number: Optional[str] = None

    @field_validator("name", "username")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le champ ne peut pas être vide.")
        return v.strip()


class StudentUpdate(BaseModel):
    """Schéma de mise à jour d'un élève (PUT /students/{id}). L'id est immuable."""
    name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    code: Optional[str] = None
    parent1_number: Optional[str] = None
    parent2_number: Optional[str] = None

    @field_validator("name", "username")
    @classmethod
    def not_empty(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Le champ ne peut pas être vide.")
        return v.strip() if v else v


class StudentResponse(BaseModel):
    """Schéma de réponse pour un élève (le code d'accès n'est jamais renvoyé)."""
    id: uuid.UUID
    name: str
    username: str
    email: Optional[str]
    parent1_number: Optional[str] = None
    parent2_number: Optional[str] = None
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}


def phone_digits(value: str) -> str:
    """Ne garde que les chiffres d'un numéro saisi ('+32 475/12.34.56' → '32475123456')."""
    return re.sub(r"\D", "", value)


class ParentLookup(BaseModel):
    """Recherche des enfants d'un parent par numéro de téléphone."""
    phone: str

    @field_validator("phone")
    @classmethod
    def enough_digits(cls, v: str) -> str:
        digits = phone_digits(v)
        if len(digits) < MIN_PHONE_DIGITS:
            raise ValueError(f"Numéro invalide : au moins {MIN_PHONE_DIGITS} chiffres.")
        return digits
