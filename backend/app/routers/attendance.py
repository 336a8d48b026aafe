"""
Router pour les présences en classe.
"""

import uuid
from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.exceptions import DuplicateAttendanceError, NotFoundError
from app.schemas.attendance import (
    AttendanceBatchCreate,
    AttendanceBatchResponse,
    AttendanceResponse,
    AttendanceSet,
    AttendanceSummaryResponse,
    AttendanceUpdate,
    DailyAttendance,
)
from app.services import attendance_service

router = APIRouter(prefix="/api/v1/attendance", tags=["Présences"])

DEFAULT_HISTORY_DAYS = 30


@router.post("/batch", response_model=AttendanceBatchResponse, status_code=201, summary="Prendre les présences")
def take_attendance(data: AttendanceBatchCreate, db: Session = Depends(get_db)):
    """
    Crée les présences d'une classe pour une date.
    409 si les présences de cette date ont déjà été prises (rien n'est modifié).
    """
    try:
        return attendance_service.take_attendance(db, data)
    except DuplicateAttendanceError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.put("", response_model=AttendanceResponse, summary="Modifier le statut d'un élève pour une date")
def set_attendance(data: AttendanceSet, db: Session = Depends(get_db)):
    try:
        return attendance_service.set_attendance(db, data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{record_id}", response_model=AttendanceResponse, summary="Modifier une présence")
def update_attendance(record_id: int, data: AttendanceUpdate, db: Session = Depends(get_db)):
    result = attendance_service.update_attendance(db, record_id, data.status)
    if result is None:
        raise HTTPException(status_code=404, detail="Présence introuvable.")
    return result


@router.get("/levels/{level_code}", response_model=List[AttendanceResponse], summary="Historique des présences")
def list_attendance(
    level_code: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    student_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
):
    """Présences d'une classe sur une période (par défaut les 30 derniers jours)."""
    end = end or date.today()
    start = start or end - timedelta(days=DEFAULT_HISTORY_DAYS)
    return attendance_service.list_attendance(db, level_code, start, end, student_id)


@router.get(
    "/levels/{level_code}/daily",
    response_model=List[DailyAttendance],
    summary="Compteurs de présence par date",
)
def daily_breakdown(
    level_code: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return attendance_service.get_daily_breakdown(db, level_code, start, end)


@router.get(
    "/levels/{level_code}/summary",
    response_model=AttendanceSummaryResponse,
    summary="Taux de présence (élève ou classe)",
)
def attendance_summary(level_code: str, student_id: Optional[uuid.UUID] = None, db: Session = Depends(get_db)):
    return attendance_service.get_attendance_summary(db, level_code, student_id)
