"""
Service métier pour les élèves : création, recherche et recherche par parent.
"""

import logging
from typing import List

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.user import User
from app.schemas.student import StudentCreate

logger = logging.getLogger(__name__)

STUDENT_ROLE = "STUDENT"


def create_student(db: Session, data: StudentCreate) -> User:
    """Crée un élève. Lève une ValueError si le username ou le code existe déjà."""
    student = User(role=STUDENT_ROLE, **data.model_dump())
    db.add(student)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError(f"Un utilisateur avec le username '{data.username}' ou ce code existe déjà.")
    db.refresh(student)
    logger.info("Élève créé : %s (%s)", student.username, student.id)
    return student


def search_students(db: Session, term: str = "") -> List[User]:
    """Élèves dont le nom, username, email ou code contient `term` (insensible à la casse)."""
    query = select(User).where(User.role == STUDENT_ROLE)
    term = term.strip()
    if term:
        pattern = f"%{term}%"
        query = query.where(
            or_(
                User.name.ilike(pattern),
                User.username.ilike(pattern),
                User.email.ilike(pattern),
                User.code.ilike(pattern),
            )
        )
    return db.execute(query.order_by(User.name)).scalars().all()


def find_by_parent_number(db: Session, digits: str) -> List[User]:
    """Élèves dont un des deux numéros de parent contient ces chiffres."""
    pattern = f"%{digits}%"
    return db.execute(
        select(User)
        .where(
            User.role == STUDENT_ROLE,
            or_(User.parent1_number.ilike(pattern), User.parent2_number.ilike(pattern)),
        )
        .order_by(User.name)
    ).scalars().all()
