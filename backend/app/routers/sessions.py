"""
Router pour les sessions par code d'accès.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.exceptions import SessionExpiredError
from app.schemas.aggregation import GradePolicy
from app.schemas.report import ReportCardResponse
from app.schemas.session import AccessSession, SessionOpen, SessionRemaining
from app.services import report_service, session_service

router = APIRouter(prefix="/api/v1/sessions", tags=["Sessions"])


@router.post("", response_model=AccessSession, status_code=201, summary="Ouvrir une session")
def open_session(data: SessionOpen, db: Session = Depends(get_db)):
    """Vérifie le code d'accès et retourne la session (valable SESSION_EXPIRE_MINUTES)."""
    try:
        return session_service.open_session(db, data.code)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e))


@router.get("/remaining", response_model=SessionRemaining, summary="Temps restant d'une session")
def remaining(issued_at: datetime):
    return session_service.describe_remaining(session_service.utc_now(), issued_at)


@router.post("/report-card", response_model=ReportCardResponse, summary="Bulletin de l'utilisateur connecté")
def my_report_card(
    session: AccessSession,
    policy: GradePolicy = Query(GradePolicy(settings.DEFAULT_GRADE_POLICY)),
    db: Session = Depends(get_db),
):
    """
    Bulletin du titulaire de la session. La session est transmise par le client
    et n'est pas signée : seule son expiration est contrôlée, pas son authenticité.
    """
    try:
        card = report_service.get_report_card_for_session(db, session, session_service.utc_now(), policy)
    except SessionExpiredError as e:
        raise HTTPException(status_code=401, detail=str(e))
    if card is None:
        raise HTTPException(status_code=404, detail="Élève introuvable.")
    return card
