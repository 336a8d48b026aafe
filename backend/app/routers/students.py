"""
Router pour les élèves.
Création, mise à jour, recherche et recherche par numéro de parent.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.schemas.student import ParentLookup, StudentCreate, StudentResponse, StudentUpdate
from app.services import student_service

router = APIRouter(prefix="/api/v1/students", tags=["Élèves"])


@router.get("", response_model=List[StudentResponse], summary="Lister / rechercher les élèves")
def list_students(q: str = "", db: Session = Depends(get_db)):
    """Retourne les élèves triés par nom, filtrés sur nom, username, email ou code si `q` est fourni."""
    return student_service.search_students(db, q)


@router.post("", response_model=StudentResponse, status_code=201, summary="Créer un élève")
def create_student(data: StudentCreate, db: Session = Depends(get_db)):
    try:
        return student_service.create_student(db, data)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.put("/{student_id}", response_model=StudentResponse, summary="Modifier un élève")
def update_student(student_id: uuid.UUID, data: StudentUpdate, db: Session = Depends(get_db)):
    """Met à jour les champs fournis d'un élève. Les champs absents ne sont pas modifiés."""
    student = db.get(User, student_id)
    if student is None:
        raise HTTPException(status_code=404, detail="Élève introuvable.")

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(student, field, value)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Ce username ou ce code est déjà utilisé.")
    db.refresh(student)
    return student


@router.post("/parent-lookup", response_model=List[StudentResponse], summary="Retrouver ses enfants")
def parent_lookup(data: ParentLookup, db: Session = Depends(get_db)):
    """Élèves dont un numéro de parent contient les chiffres saisis (7 chiffres minimum)."""
    students = student_service.find_by_parent_number(db, data.phone)
    if not students:
        raise HTTPException(status_code=404, detail="Aucun élève trouvé pour ce numéro.")
    return students
