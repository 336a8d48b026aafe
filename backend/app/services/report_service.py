"""
Service de synthèse : résumé enseignant d'une classe et bulletin d'un élève.

Les chiffres de classe sont cumulés (somme des scores / somme des max_score),
ils ne sont pas la moyenne des pourcentages individuels.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import SessionExpiredError
from app.models.assignment import Assignment
from app.models.attendance import Attendance
from app.models.grade import Grade
from app.models.school_class import Enrollment, Level
from app.models.user import User
from app.schemas.aggregation import GradePolicy
from app.schemas.report import ClassSummaryResponse, ReportCardLevel, ReportCardResponse
from app.schemas.session import AccessSession
from app.services import aggregation, attendance_service, grade_service, session_service

logger = logging.getLogger(__name__)


def get_class_summary(
    db: Session,
    level_code: str,
    policy: GradePolicy = GradePolicy.FULL,
) -> Optional[ClassSummaryResponse]:
    """Résumé enseignant. Retourne None si la classe n'existe pas."""
    level = db.get(Level, level_code)
    if level is None:
        return None

    gradebook = grade_service.get_gradebook(db, level_code, policy)
    attendance = attendance_service.get_attendance_summary(db, level_code)

    return ClassSummaryResponse(
        level_code=level_code,
        name=level.name,
        policy=policy,
        nb_students=len(gradebook.rows),
        nb_assignments=len(gradebook.assignments),
        class_average=gradebook.class_average,
        attendance=attendance.summary,
        students_with_missing=sum(1 for row in gradebook.rows if row.missing_assignment_ids),
    )


def get_report_card(
    db: Session,
    student_id: uuid.UUID,
    policy: GradePolicy = GradePolicy.FULL,
) -> Optional[ReportCardResponse]:
    """
    Bulletin d'un élève sur toutes ses classes.
    Chaque classe est calculée séparément ; le bilan global cumule toutes les classes.
    Retourne None si l'élève n'existe pas.
    """
    student = db.get(User, student_id)
    if student is None:
        return None

    enrollments = db.execute(
        select(Enrollment, Level.name)
        .outerjoin(Level, Level.code == Enrollment.level_code)
        .where(Enrollment.student_id == student_id)
        .order_by(Enrollment.enrolled_at.desc())
    ).all()
    level_codes = [e.level_code for e, _ in enrollments]

    assignments = db.execute(
        select(Assignment).where(Assignment.level_code.in_(level_codes))
    ).scalars().all()
    grades = db.execute(
        select(Grade).where(Grade.student_id == student_id, Grade.assignment_id.in_([a.id for a in assignments]))
    ).scalars().all()
    marks = db.execute(
        select(Attendance).where(Attendance.student_id == student_id, Attendance.level_code.in_(level_codes))
    ).scalars().all()

    count_unknown = settings.ATTENDANCE_COUNT_UNKNOWN_STATUS
    levels = []
    all_records = []
    for enrollment, name in enrollments:
        level_assignments = [a for a in assignments if a.level_code == enrollment.level_code]
        records = grade_service.to_grade_records(grades, level_assignments)
        level_marks = [m for m in marks if m.level_code == enrollment.level_code]
        all_records.extend(records)
        levels.append(
            ReportCardLevel(
                level_code=enrollment.level_code,
                name=name,
                enrolled_at=enrollment.enrolled_at,
                grades=aggregation.grade_summary(records, policy),
                completion=aggregation.completion(level_assignments, records),
                attendance=aggregation.attendance_summary(level_marks, count_unknown),
            )
        )

    logger.debug("Bulletin élève %s : %d classes", student_id, len(levels))
    return ReportCardResponse(
        student_id=student.id,
        name=student.name,
        policy=policy,
        levels=levels,
        overall_grades=aggregation.grade_summary(all_records, policy),
        overall_attendance=aggregation.attendance_summary(marks, count_unknown),
    )


def get_report_card_for_session(
    db: Session,
    session: AccessSession,
    now: datetime,
    policy: GradePolicy = GradePolicy.FULL,
) -> Optional[ReportCardResponse]:
    """Bulletin de l'utilisateur connecté ; refusé si la session a expiré."""
    if session_service.is_expired(session, now):
        raise SessionExpiredError("Session expirée, veuillez saisir à nouveau votre code.")
    return get_report_card(db, session.user_id, policy)
