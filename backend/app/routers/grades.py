"""
Router pour les notes : saisie, grille de notes, export CSV et vue élève.

Les erreurs de base (StoreError) sont traduites en 503 par le handler global
de app.main.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.exceptions import InvalidScoreError, NotFoundError
from app.schemas.aggregation import GradePolicy
from app.schemas.grade import (
    GradebookResponse,
    GradeCellsReport,
    GradeCellsSet,
    GradeResponse,
    GradeSet,
    StudentGradesResponse,
)
from app.services import grade_service

router = APIRouter(prefix="/api/v1", tags=["Notes"])

DEFAULT_POLICY = GradePolicy(settings.DEFAULT_GRADE_POLICY)


@router.put("/grades", response_model=GradeResponse, summary="Saisir une note (upsert)")
def set_grade(data: GradeSet, db: Session = Depends(get_db)):
    """
    Crée ou remplace la note d'un élève pour un devoir.
    Idempotent : deux envois identiques laissent une seule note.
    """
    try:
        return grade_service.set_grade(db, data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidScoreError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.put(
    "/levels/{level_code}/grades",
    response_model=GradeCellsReport,
    summary="Édition en masse de la grille",
)
def set_grades(level_code: str, data: GradeCellsSet, db: Session = Depends(get_db)):
    """
    Enregistre plusieurs cellules de la grille. Chaque cellule est indépendante :
    le rapport liste les cellules acceptées et rejetées (avec la raison).
    """
    return grade_service.set_grades(db, level_code, data.cells)


@router.get(
    "/levels/{level_code}/gradebook",
    response_model=GradebookResponse,
    summary="Grille de notes d'une classe",
)
def get_gradebook(level_code: str, policy: GradePolicy = Query(DEFAULT_POLICY), db: Session = Depends(get_db)):
    gradebook = grade_service.get_gradebook(db, level_code, policy)
    if gradebook is None:
        raise HTTPException(status_code=404, detail="Classe introuvable.")
    return gradebook


@router.get("/levels/{level_code}/gradebook/export", summary="Exporter la grille en CSV")
def export_gradebook(level_code: str, policy: GradePolicy = Query(DEFAULT_POLICY), db: Session = Depends(get_db)):
    """Exporte la grille (UTF-8 BOM, séparateur ;). Compatible Excel."""
    csv_content = grade_service.export_gradebook_csv(db, level_code, policy)
    if csv_content is None:
        raise HTTPException(status_code=404, detail="Classe introuvable.")

    return StreamingResponse(
        iter([csv_content]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename=notes_{level_code}.csv"},
    )


@router.get(
    "/levels/{level_code}/students/{student_id}/grades",
    response_model=StudentGradesResponse,
    summary="Notes d'un élève dans une classe",
)
def get_student_grades(
    level_code: str,
    student_id: uuid.UUID,
    policy: GradePolicy = Query(DEFAULT_POLICY),
    db: Session = Depends(get_db),
):
    return grade_service.get_student_grades(db, student_id, level_code, policy)
