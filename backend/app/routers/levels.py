"""
Router pour les classes, les inscriptions et les devoirs.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.assignment import (
    AssignmentCreate,
    AssignmentResponse,
    GradeCategoryCreate,
    GradeCategoryResponse,
)
from app.schemas.school_class import EnrollmentAssign, EnrollmentStats, LevelCreate, LevelResponse, LevelUpdate
from app.schemas.student import StudentResponse
from app.services import class_service

router = APIRouter(prefix="/api/v1/levels", tags=["Classes"])


@router.post("", response_model=LevelResponse, status_code=201, summary="Créer une classe")
def create_level(data: LevelCreate, db: Session = Depends(get_db)):
    """Crée une nouvelle classe avec un code unique."""
    try:
        return class_service.create_level(db, data)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("", response_model=List[LevelResponse], summary="Lister les classes")
def list_levels(db: Session = Depends(get_db)):
    """Retourne toutes les classes avec leur nombre d'élèves et de devoirs."""
    return class_service.get_levels(db)


@router.get("/{level_code}", response_model=LevelResponse, summary="Détail d'une classe")
def get_level(level_code: str, db: Session = Depends(get_db)):
    level = class_service.get_level(db, level_code)
    if level is None:
        raise HTTPException(status_code=404, detail="Classe introuvable.")
    return level


@router.put("/{level_code}", response_model=LevelResponse, summary="Modifier une classe")
def update_level(level_code: str, data: LevelUpdate, db: Session = Depends(get_db)):
    result = class_service.update_level(db, level_code, data)
    if result is None:
        raise HTTPException(status_code=404, detail="Classe introuvable.")
    return result


# --- Inscriptions ---

@router.get("/{level_code}/students", response_model=List[StudentResponse], summary="Élèves inscrits")
def list_enrolled(level_code: str, db: Session = Depends(get_db)):
    return class_service.get_enrolled_students(db, level_code)


@router.get(
    "/{level_code}/students/unenrolled",
    response_model=List[StudentResponse],
    summary="Élèves non inscrits",
)
def list_unenrolled(level_code: str, db: Session = Depends(get_db)):
    return class_service.get_unenrolled_students(db, level_code)


@router.get("/{level_code}/students/stats", response_model=EnrollmentStats, summary="Statistiques d'inscription")
def enrollment_stats(level_code: str, db: Session = Depends(get_db)):
    return class_service.get_enrollment_stats(db, level_code)


@router.post("/{level_code}/students", response_model=LevelResponse, summary="Inscrire des élèves")
def assign_students(level_code: str, data: EnrollmentAssign, db: Session = Depends(get_db)):
    """Inscrit un ou plusieurs élèves dans une classe. Les doublons sont ignorés."""
    try:
        return class_service.assign_students(db, level_code, data)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{level_code}/students/{student_id}", status_code=204, summary="Désinscrire un élève")
def remove_student(level_code: str, student_id: uuid.UUID, db: Session = Depends(get_db)):
    success = class_service.remove_student(db, level_code, student_id)
    if not success:
        raise HTTPException(status_code=404, detail="Inscription introuvable.")


# --- Devoirs ---

@router.post(
    "/{level_code}/assignments",
    response_model=AssignmentResponse,
    status_code=201,
    summary="Créer un devoir",
)
def create_assignment(level_code: str, data: AssignmentCreate, db: Session = Depends(get_db)):
    try:
        return class_service.create_assignment(db, level_code, data)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{level_code}/assignments", response_model=List[AssignmentResponse], summary="Lister les devoirs")
def list_assignments(level_code: str, db: Session = Depends(get_db)):
    return class_service.get_assignments(db, level_code)


@router.post(
    "/{level_code}/categories",
    response_model=GradeCategoryResponse,
    status_code=201,
    summary="Créer une catégorie de notes",
)
def create_category(level_code: str, data: GradeCategoryCreate, db: Session = Depends(get_db)):
    try:
        return class_service.create_category(db, level_code, data)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
