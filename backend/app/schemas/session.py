"""
Schémas Pydantic pour les sessions par code d'accès.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, field_validator


class SessionOpen(BaseModel):
    code: str

    @field_validator("code")
    @classmethod
    def code_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le code d'accès ne peut pas être vide.")
        return v.strip()


class AccessSession(BaseModel):
    """Identité explicite d'un utilisateur connecté, avec son heure d'expiration."""
    user_id: uuid.UUID
    name: str
    username: str
    role: str
    issued_at: datetime
    expires_at: datetime


class SessionRemaining(BaseModel):
    remaining_seconds: int
    display: str        # "M:SS"
    expired: bool
