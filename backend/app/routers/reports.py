"""
Router pour les synthèses : résumé enseignant et bulletin élève/parent.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.schemas.aggregation import GradePolicy
from app.schemas.report import ClassSummaryResponse, ReportCardResponse
from app.services import report_service

router = APIRouter(prefix="/api/v1", tags=["Synthèses"])

DEFAULT_POLICY = GradePolicy(settings.DEFAULT_GRADE_POLICY)


@router.get(
    "/levels/{level_code}/summary",
    response_model=ClassSummaryResponse,
    summary="Résumé enseignant d'une classe",
)
def class_summary(level_code: str, policy: GradePolicy = Query(DEFAULT_POLICY), db: Session = Depends(get_db)):
    """Moyenne de classe et taux de présence cumulés, élèves avec travaux manquants."""
    summary = report_service.get_class_summary(db, level_code, policy)
    if summary is None:
        raise HTTPException(status_code=404, detail="Classe introuvable.")
    return summary


@router.get(
    "/students/{student_id}/report-card",
    response_model=ReportCardResponse,
    summary="Bulletin d'un élève",
)
def report_card(student_id: uuid.UUID, policy: GradePolicy = Query(DEFAULT_POLICY), db: Session = Depends(get_db)):
    """Une entrée par classe suivie (la plus récente d'abord) et un bilan global."""
    card = report_service.get_report_card(db, student_id, policy)
    if card is None:
        raise HTTPException(status_code=404, detail="Élève introuvable.")
    return card
