"""
Schémas Pydantic pour les présences en classe.
"""

import uuid
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, field_validator

from app.schemas.aggregation import AttendanceCounts, AttendanceStatus, AttendanceSummary

VALID_STATUSES = {s.value for s in AttendanceStatus}


def _check_status(v: str) -> str:
    v = v.strip().lower()
    if v not in VALID_STATUSES:
        raise ValueError(f"Statut invalide. Valeurs acceptées : {sorted(VALID_STATUSES)}")
    return v


class AttendanceBatchCreate(BaseModel):
    """
    Prise de présences pour une date. Refusée si la date a déjà été prise.
    student_ids absent → tous les élèves inscrits ; statuses surcharge le statut par défaut.
    """
    level_code: str
    date: date
    student_ids: Optional[List[uuid.UUID]] = None
    default_status: str = AttendanceStatus.PRESENT.value
    statuses: Dict[uuid.UUID, str] = {}

    @field_validator("default_status")
    @classmethod
    def valid_default_status(cls, v: str) -> str:
        return _check_status(v)

    @field_validator("statuses")
    @classmethod
    def valid_statuses(cls, v: Dict[uuid.UUID, str]) -> Dict[uuid.UUID, str]:
        return {student_id: _check_status(status) for student_id, status in v.items()}


class AttendanceUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str) -> str:
        return _check_status(v)


class AttendanceSet(BaseModel):
    """Modification du statut d'un élève pour une date (upsert)."""
    student_id: uuid.UUID
    level_code: str
    date: date
    status: str

    @field_validator("status")
    @classmethod
    def valid_status(cls, v: str) -> str:
        return _check_status(v)


class AttendanceResponse(BaseModel):
    id: int
    student_id: uuid.UUID
    level_code: str
    date: date
    status: str
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}


class AttendanceBatchResponse(BaseModel):
    level_code: str
    date: date
    total_inserted: int
    statuses: Dict[uuid.UUID, str]     # student_id → statut enregistré


class DailyAttendance(BaseModel):
    """Compteurs par statut pour une date donnée."""
    date: date
    counts: AttendanceCounts
    total: int


class AttendanceSummaryResponse(BaseModel):
    level_code: str
    student_id: Optional[uuid.UUID]
    summary: AttendanceSummary
