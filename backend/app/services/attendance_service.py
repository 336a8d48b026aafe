"""
Service métier pour les présences en classe.

- Prise de présences pour une date : création en une fois d'une ligne par élève,
  autorisée uniquement si aucune présence n'existe encore pour (classe, date).
  Une seconde prise est refusée (DuplicateAttendanceError), jamais fusionnée.
- Modification d'un statut : mise à jour par id ou upsert (élève, classe, date),
  indépendante du contrôle de doublon ci-dessus.
- Résumés : relus en base puis calculés par app.services.aggregation.
"""

import logging
import uuid
from collections import defaultdict
from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import DuplicateAttendanceError, NotFoundError, StoreError
from app.models.attendance import Attendance
from app.models.school_class import Enrollment, Level
from app.schemas.attendance import (
    AttendanceBatchCreate,
    AttendanceBatchResponse,
    AttendanceResponse,
    AttendanceSet,
    AttendanceSummaryResponse,
    DailyAttendance,
)
from app.services import aggregation

logger = logging.getLogger(__name__)

ATTENDANCE_UNIQUE_CONSTRAINT = "uq_attendance_student_level_date"


def take_attendance(db: Session, data: AttendanceBatchCreate) -> AttendanceBatchResponse:
    """
    Crée les présences de tous les élèves d'une classe pour une date.

    1. La classe existe
    2. Aucune présence n'existe déjà pour (classe, date) → sinon refus
    3. Une ligne par élève (liste fournie ou élèves inscrits), statut par défaut
       ou statut individuel de `statuses`
    Toute la prise est commitée en une seule transaction.
    """
    if db.get(Level, data.level_code) is None:
        raise NotFoundError("Classe introuvable.")

    already_taken = db.execute(
        select(Attendance.id)
        .where(Attendance.level_code == data.level_code, Attendance.date == data.date)
        .limit(1)
    ).scalar()

    if already_taken:
        logger.warning("Présences déjà prises : classe %s, %s", data.level_code, data.date)
        raise DuplicateAttendanceError(
            f"Les présences du {data.date.isoformat()} ont déjà été prises pour cette classe."
        )

    roster = db.execute(
        select(Enrollment.student_id).where(Enrollment.level_code == data.level_code)
    ).scalars().all()

    if data.student_ids is not None:
        student_ids = list(dict.fromkeys(data.student_ids))
        enrolled = set(roster)
        unknown = [sid for sid in student_ids if sid not in enrolled]
        if unknown:
            raise NotFoundError(
                f"{len(unknown)} élève(s) non inscrit(s) dans la classe {data.level_code}."
            )
    else:
        student_ids = roster

    if not student_ids:
        raise ValueError("Aucun élève à pointer pour cette classe.")

    statuses = {sid: data.statuses.get(sid, data.default_status) for sid in student_ids}
    db.add_all([
        Attendance(student_id=sid, level_code=data.level_code, date=data.date, status=status)
        for sid, status in statuses.items()
    ])

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if ATTENDANCE_UNIQUE_CONSTRAINT in str(exc.orig):
            # Prise concurrente de la même date : la contrainte unique a tranché
            raise DuplicateAttendanceError(
                f"Les présences du {data.date.isoformat()} ont déjà été prises pour cette classe."
            ) from exc
        logger.warning("Prise de présences refusée classe %s, %s : %s", data.level_code, data.date, exc.orig)
        raise NotFoundError("Élève ou classe introuvable.") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Échec prise de présences classe %s, %s : %s", data.level_code, data.date, exc)
        raise StoreError("Échec de l'enregistrement des présences, veuillez réessayer.") from exc

    logger.info("Présences prises : classe %s, %s, %d élèves", data.level_code, data.date, len(statuses))
    return AttendanceBatchResponse(
        level_code=data.level_code,
        date=data.date,
        total_inserted=len(statuses),
        statuses=statuses,
    )


def update_attendance(db: Session, record_id: int, status: str) -> Optional[AttendanceResponse]:
    """Modifie le statut d'une présence existante. Retourne None si introuvable."""
    record = db.get(Attendance, record_id)
    if record is None:
        return None

    record.status = status
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Échec mise à jour présence %s : %s", record_id, exc)
        raise StoreError("Échec de la mise à jour de la présence, veuillez réessayer.") from exc

    db.refresh(record)
    logger.info("Présence %s → %s", record_id, status)
    return AttendanceResponse.model_validate(record)


def set_attendance(db: Session, data: AttendanceSet) -> AttendanceResponse:
    """
    Upsert du statut d'un élève pour (classe, date), que la date ait été prise ou non.
    Lève NotFoundError si l'élève n'est pas inscrit dans la classe.
    """
    try:
        enrollment = db.get(Enrollment, (data.student_id, data.level_code))
    except SQLAlchemyError as exc:
        logger.error("Lecture de l'inscription impossible : %s", exc)
        raise StoreError("Lecture impossible, veuillez réessayer.") from exc
    if enrollment is None:
        raise NotFoundError("Élève non inscrit dans cette classe.")

    stmt = pg_insert(Attendance).values(
        student_id=data.student_id,
        level_code=data.level_code,
        date=data.date,
        status=data.status,
    )
    stmt = (
        stmt.on_conflict_do_update(
            index_elements=[Attendance.student_id, Attendance.level_code, Attendance.date],
            set_={"status": stmt.excluded.status},
        )
        .returning(Attendance)
        .execution_options(populate_existing=True)
    )

    try:
        record = db.execute(stmt).scalars().one()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise NotFoundError("Élève ou classe introuvable.") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "Échec upsert présence élève=%s classe=%s date=%s : %s",
            data.student_id, data.level_code, data.date, exc,
        )
        raise StoreError("Échec de l'enregistrement de la présence, veuillez réessayer.") from exc

    logger.info("Présence élève %s, classe %s, %s → %s", data.student_id, data.level_code, data.date, data.status)
    return AttendanceResponse.model_validate(record)


def list_attendance(
    db: Session,
    level_code: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    student_id: Optional[uuid.UUID] = None,
) -> list:
    """Présences d'une classe, filtrées par période et/ou élève, les plus récentes d'abord."""
    query = select(Attendance).where(Attendance.level_code == level_code)
    if start is not None:
        query = query.where(Attendance.date >= start)
    if end is not None:
        query = query.where(Attendance.date <= end)
    if student_id is not None:
        query = query.where(Attendance.student_id == student_id)

    return db.execute(
        query.order_by(Attendance.date.desc(), Attendance.created_at.desc())
    ).scalars().all()


def get_attendance_summary(
    db: Session,
    level_code: str,
    student_id: Optional[uuid.UUID] = None,
) -> AttendanceSummaryResponse:
    """
    Taux de présence pondéré d'un élève (student_id fourni) ou de toute la classe
    (tous les enregistrements cumulés).
    """
    records = list_attendance(db, level_code, student_id=student_id)
    count_unknown = settings.ATTENDANCE_COUNT_UNKNOWN_STATUS

    if student_id is None:
        summary = aggregation.class_attendance(records, count_unknown)
    else:
        summary = aggregation.attendance_summary(records, count_unknown)

    return AttendanceSummaryResponse(level_code=level_code, student_id=student_id, summary=summary)


def get_daily_breakdown(
    db: Session,
    level_code: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[DailyAttendance]:
    """Compteurs par statut pour chaque date prise sur la période, la plus récente d'abord."""
    by_date = defaultdict(list)
    for record in list_attendance(db, level_code, start, end):
        by_date[record.date].append(record)

    breakdown = []
    for day in sorted(by_date, reverse=True):
        summary = aggregation.attendance_summary(by_date[day], settings.ATTENDANCE_COUNT_UNKNOWN_STATUS)
        breakdown.append(DailyAttendance(date=day, counts=summary.counts, total=summary.total))
    return breakdown
