"""
Service métier pour les classes et les inscriptions d'élèves.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.assignment import Assignment, GradeCategory
from app.models.school_class import Enrollment, Level
from app.models.user import User
from app.schemas.assignment import AssignmentCreate, GradeCategoryCreate
from app.schemas.school_class import EnrollmentAssign, EnrollmentStats, LevelCreate, LevelResponse, LevelUpdate
from app.services.student_service import STUDENT_ROLE

logger = logging.getLogger(__name__)


def create_level(db: Session, data: LevelCreate) -> LevelResponse:
    """
    Crée une nouvelle classe.
    Lève une ValueError si le code existe déjà.
    """
    level = Level(code=data.code, name=data.name, teacher_id=data.teacher_id)
    db.add(level)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError(f"Une classe avec le code '{data.code}' existe déjà.")
    db.refresh(level)
    logger.info("Classe créée : %s", level.code)
    return _to_response(db, level)


def get_levels(db: Session) -> List[LevelResponse]:
    """Retourne toutes les classes, triées par code."""
    levels = db.execute(select(Level).order_by(Level.code)).scalars().all()
    return [_to_response(db, level) for level in levels]


def get_level(db: Session, level_code: str) -> Optional[LevelResponse]:
    """Retourne une classe par son code, ou None si inexistante."""
    level = db.get(Level, level_code)
    if level is None:
        return None
    return _to_response(db, level)


def update_level(db: Session, level_code: str, data: LevelUpdate) -> Optional[LevelResponse]:
    """Met à jour les champs fournis d'une classe."""
    level = db.get(Level, level_code)
    if level is None:
        return None

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(level, field, value)

    db.commit()
    db.refresh(level)
    return _to_response(db, level)


def assign_students(db: Session, level_code: str, data: EnrollmentAssign) -> LevelResponse:
    """
    Inscrit des élèves dans une classe.
    Les élèves déjà inscrits sont ignorés (pas de doublon).
    """
    level = db.get(Level, level_code)
    if level is None:
        raise ValueError("Classe introuvable.")

    existing = set(db.execute(
        select(Enrollment.student_id)
        .where(Enrollment.level_code == level_code)
    ).scalars().all())

    to_insert = [
        {"level_code": level_code, "student_id": sid}
        for sid in dict.fromkeys(data.student_ids)
        if sid not in existing
    ]

    if to_insert:
        db.bulk_insert_mappings(Enrollment, to_insert)
        db.commit()
        logger.info("Classe %s : %d élève(s) inscrit(s)", level_code, len(to_insert))

    return _to_response(db, level)


def remove_student(db: Session, level_code: str, student_id: uuid.UUID) -> bool:
    """
    Désinscrit un élève. Ses notes et présences restent en base.
    Retourne True si retiré, False si l'inscription n'existait pas.
    """
    link = db.get(Enrollment, (student_id, level_code))
    if link is None:
        return False
    db.delete(link)
    db.commit()
    logger.info("Élève %s retiré de la classe %s", student_id, level_code)
    return True


def get_enrolled_students(db: Session, level_code: str) -> List[User]:
    """Élèves inscrits, dans l'ordre d'inscription."""
    return db.execute(
        select(User)
        .join(Enrollment, Enrollment.student_id == User.id)
        .where(Enrollment.level_code == level_code)
        .order_by(Enrollment.enrolled_at)
    ).scalars().all()


def get_unenrolled_students(db: Session, level_code: str) -> List[User]:
    """Élèves qui ne sont pas inscrits dans cette classe."""
    enrolled = select(Enrollment.student_id).where(Enrollment.level_code == level_code)
    return db.execute(
        select(User)
        .where(User.role == STUDENT_ROLE, User.id.not_in(enrolled))
        .order_by(User.name)
    ).scalars().all()


def get_enrollment_stats(db: Session, level_code: str) -> EnrollmentStats:
    total = db.execute(
        select(func.count()).select_from(User).where(User.role == STUDENT_ROLE)
    ).scalar() or 0
    enrolled = db.execute(
        select(func.count()).select_from(Enrollment).where(Enrollment.level_code == level_code)
    ).scalar() or 0
    return EnrollmentStats(
        total_students=total,
        enrolled_students=enrolled,
        unenrolled_students=total - enrolled,
    )


def _to_response(db: Session, level: Level) -> LevelResponse:
    """Construit le schéma de réponse avec les compteurs élèves et devoirs."""
    nb_students = db.execute(
        select(func.count())
        .select_from(Enrollment)
        .where(Enrollment.level_code == level.code)
    ).scalar() or 0

    nb_assignments = db.execute(
        select(func.count())
        .select_from(Assignment)
        .where(Assignment.level_code == level.code)
    ).scalar() or 0

    return LevelResponse(
        code=level.code,
        name=level.name,
        teacher_id=level.teacher_id,
        nb_students=nb_students,
        nb_assignments=nb_assignments,
        created_at=level.created_at,
    )


# --- Devoirs et catégories ---

def create_assignment(db: Session, level_code: str, data: AssignmentCreate) -> Assignment:
    """Crée un devoir dans une classe. Lève une ValueError si la classe ou la catégorie est introuvable."""
    if db.get(Level, level_code) is None:
        raise ValueError("Classe introuvable.")
    if data.category_id is not None and db.get(GradeCategory, data.category_id) is None:
        raise ValueError("Catégorie introuvable.")

    assignment = Assignment(level_code=level_code, **data.model_dump())
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    logger.info("Devoir %s créé dans la classe %s (max %s)", assignment.id, level_code, data.max_score)
    return assignment


def get_assignments(db: Session, level_code: str) -> List[Assignment]:
    """Devoirs d'une classe, par échéance (sans échéance en dernier)."""
    return db.execute(
        select(Assignment)
        .where(Assignment.level_code == level_code)
        .order_by(Assignment.due_date.asc().nulls_last(), Assignment.id)
    ).scalars().all()


def create_category(db: Session, level_code: str, data: GradeCategoryCreate) -> GradeCategory:
    if db.get(Level, level_code) is None:
        raise ValueError("Classe introuvable.")
    category = GradeCategory(level_code=level_code, name=data.name, weight=data.weight)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category
