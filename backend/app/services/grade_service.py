"""
Service métier pour les notes : saisie (upsert), grille de notes, export CSV
et vue « mes notes » d'un élève.

Écriture :
- une seule opération set_grade, idempotente, clé (student_id, assignment_id)
- INSERT … ON CONFLICT DO UPDATE : pas de lecture préalable « existe-t-il ? »
- deux enseignants qui modifient la même cellule : le dernier écrit gagne
- en cas d'échec, rollback → aucune moyenne affichée ne change

Lecture : les données sont relues à chaque appel puis passées au moteur
d'agrégation (app.services.aggregation), rien n'est mis en cache.
"""

import csv
import io
import logging
import uuid
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import InvalidScoreError, NotFoundError, StoreError
from app.models.assignment import Assignment, GradeCategory
from app.models.grade import Grade
from app.models.school_class import Enrollment, Level
from app.models.user import User
from app.schemas.aggregation import GradePolicy, GradeRecord
from app.schemas.grade import (
    AssignmentColumn,
    GradebookCell,
    GradebookResponse,
    GradebookRow,
    GradeCellsReport,
    GradeResponse,
    GradeSet,
    RejectedCell,
    StudentGradeLine,
    StudentGradesResponse,
)
from app.services import aggregation

logger = logging.getLogger(__name__)


# ============================================================
# Écriture
# ============================================================

def grade_upsert_statement(data: GradeSet):
    """
    Construit l'upsert PostgreSQL d'une note.
    Sur conflit (student_id, assignment_id) : met à jour le score et re-date graded_at.
    Le feedback existant n'est écrasé que si un nouveau feedback est fourni.
    """
    stmt = pg_insert(Grade).values(
        student_id=data.student_id,
        assignment_id=data.assignment_id,
        score=data.score,
        feedback=data.feedback,
        graded_at=func.now(),
    )
    update_set = {"score": stmt.excluded.score, "graded_at": func.now()}
    if data.feedback is not None:
        update_set["feedback"] = stmt.excluded.feedback

    return (
        stmt.on_conflict_do_update(
            index_elements=[Grade.student_id, Grade.assignment_id],
            set_=update_set,
        )
        .returning(Grade)
        .execution_options(populate_existing=True)
    )


def set_grade(db: Session, data: GradeSet, level_code: Optional[str] = None) -> GradeResponse:
    """
    Enregistre la note d'un élève pour un devoir (création ou mise à jour).

    Validations avant toute écriture :
    1. Le devoir existe (et appartient à level_code si fourni)
    2. L'élève est inscrit dans la classe du devoir
    3. 0 <= score <= max_score du devoir
    """
    try:
        assignment = db.get(Assignment, data.assignment_id)
        enrollment = None
        if assignment is not None:
            enrollment = db.get(Enrollment, (data.student_id, assignment.level_code))
    except SQLAlchemyError as exc:
        logger.error("Lecture du devoir %s impossible : %s", data.assignment_id, exc)
        raise StoreError("Lecture impossible, veuillez réessayer.") from exc

    if assignment is None or (level_code is not None and assignment.level_code != level_code):
        raise NotFoundError("Devoir introuvable.")
    if enrollment is None:
        raise NotFoundError("Élève non inscrit dans la classe de ce devoir.")

    max_score = float(assignment.max_score)
    if data.score > max_score:
        raise InvalidScoreError(
            f"La note {data.score:g} dépasse le maximum du devoir ({max_score:g})."
        )

    try:
        grade = db.execute(grade_upsert_statement(data)).scalars().one()
        db.commit()
    except IntegrityError as exc:
        # Élève supprimé entre la vérification et l'écriture
        db.rollback()
        raise NotFoundError("Élève introuvable.") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "Échec upsert note élève=%s devoir=%s : %s",
            data.student_id, data.assignment_id, exc,
        )
        raise StoreError("Échec de l'enregistrement de la note, veuillez réessayer.") from exc

    logger.info(
        "Note enregistrée : élève %s, devoir %s, score %s",
        data.student_id, data.assignment_id, data.score,
    )
    return GradeResponse.model_validate(grade)


def set_grades(db: Session, level_code: str, cells: List[GradeSet]) -> GradeCellsReport:
    """
    Édition en masse de la grille d'une classe.
    Chaque cellule est validée et commitée séparément : un rejet n'annule pas les autres.
    """
    accepted: List[GradeResponse] = []
    rejected: List[RejectedCell] = []

    for cell in cells:
        try:
            accepted.append(set_grade(db, cell, level_code=level_code))
        except (ValueError, StoreError) as exc:
            logger.debug("Cellule rejetée (%s, %s) : %s", cell.student_id, cell.assignment_id, exc)
            rejected.append(
                RejectedCell(student_id=cell.student_id, assignment_id=cell.assignment_id, error=str(exc))
            )

    logger.info(
        "Grille %s : %d cellules reçues, %d enregistrées, %d rejetées",
        level_code, len(cells), len(accepted), len(rejected),
    )
    return GradeCellsReport(
        accepted=accepted,
        rejected=rejected,
        total_received=len(cells),
        total_saved=len(accepted),
    )


# ============================================================
# Lecture
# ============================================================

def _fetch_assignments(db: Session, level_code: str) -> list:
    """Devoirs de la classe avec le nom de leur catégorie, triés par échéance."""
    return db.execute(
        select(Assignment, GradeCategory.name)
        .outerjoin(GradeCategory, GradeCategory.id == Assignment.category_id)
        .where(Assignment.level_code == level_code)
        .order_by(Assignment.due_date.asc().nulls_last(), Assignment.id)
    ).all()


def _fetch_roster(db: Session, level_code: str) -> list:
    """Élèves inscrits dans la classe, triés par nom."""
    return db.execute(
        select(User)
        .join(Enrollment, Enrollment.student_id == User.id)
        .where(Enrollment.level_code == level_code)
        .order_by(User.name)
    ).scalars().all()


def _fetch_level_grades(db: Session, level_code: str) -> list:
    """Toutes les notes des devoirs de la classe (jointure sur assignments)."""
    return db.execute(
        select(Grade)
        .join(Assignment, Assignment.id == Grade.assignment_id)
        .where(Assignment.level_code == level_code)
    ).scalars().all()


def to_grade_records(grades, assignments) -> List[GradeRecord]:
    """Associe chaque note au max_score de son devoir ; ignore les notes d'autres classes."""
    max_scores = {a.id: a.max_score for a in assignments}
    return [
        GradeRecord(
            student_id=g.student_id,
            assignment_id=g.assignment_id,
            score=g.score,
            max_score=max_scores[g.assignment_id],
        )
        for g in aggregation.restrict_to_level(grades, assignments)
    ]


def get_gradebook(
    db: Session,
    level_code: str,
    policy: GradePolicy = GradePolicy.FULL,
) -> Optional[GradebookResponse]:
    """
    Construit la grille de notes d'une classe : une ligne par élève inscrit,
    une colonne par devoir, résumé par élève et moyenne de classe cumulée.
    Retourne None si la classe n'existe pas.
    """
    if db.get(Level, level_code) is None:
        return None

    assignment_rows = _fetch_assignments(db, level_code)
    assignments = [a for a, _ in assignment_rows]
    students = _fetch_roster(db, level_code)
    grades = _fetch_level_grades(db, level_code)

    records = to_grade_records(grades, assignments)
    grade_ids = {(g.student_id, g.assignment_id): g.id for g in grades}
    by_student = aggregation.group_by_student(records)

    rows = []
    for student in students:
        student_records = by_student.get(student.id, [])
        scores = {r.assignment_id: r.score for r in student_records}
        cells = [
            GradebookCell(
                assignment_id=a.id,
                grade_id=grade_ids.get((student.id, a.id)),
                result=aggregation.assignment_grade(scores.get(a.id), a.max_score, policy),
            )
            for a in assignments
        ]
        rows.append(
            GradebookRow(
                student_id=student.id,
                name=student.name,
                username=student.username,
                cells=cells,
                summary=aggregation.grade_summary(student_records, policy),
                missing_assignment_ids=[
                    a.id for a in aggregation.missing_assignments(assignments, student_records)
                ],
                completion=aggregation.completion(assignments, student_records),
            )
        )

    logger.debug("Grille %s : %d élèves, %d devoirs, %d notes", level_code, len(rows), len(assignments), len(records))
    return GradebookResponse(
        level_code=level_code,
        policy=policy,
        assignments=[
            AssignmentColumn(
                id=a.id, title=a.title, max_score=a.max_score, due_date=a.due_date, category=category,
            )
            for a, category in assignment_rows
        ],
        rows=rows,
        class_average=aggregation.class_grade_average(records, policy),
    )


def export_gradebook_csv(db: Session, level_code: str, policy: GradePolicy = GradePolicy.FULL) -> Optional[str]:
    """
    Génère le CSV de la grille (séparateur ;, UTF-8 BOM pour Excel).
    Cellule vide = devoir non noté. Retourne None si la classe n'existe pas.
    """
    gradebook = get_gradebook(db, level_code, policy)
    if gradebook is None:
        return None

    output = io.StringIO()
    writer = csv.writer(output, delimiter=";")
    writer.writerow(
        ["name", "username"]
        + [f"{a.title} (/{a.max_score:g})" for a in gradebook.assignments]
        + ["percentage", "letter_grade", "graded", "total"]
    )
    for row in gradebook.rows:
        writer.writerow(
            [row.name, row.username]
            + [f"{c.result.score:g}" if c.result.score is not None else "" for c in row.cells]
            + [row.summary.percentage, row.summary.letter_grade, row.completion.graded, row.completion.total]
        )

    return "\ufeff" + output.getvalue()


def get_student_grades(
    db: Session,
    student_id: uuid.UUID,
    level_code: str,
    policy: GradePolicy = GradePolicy.FULL,
) -> StudentGradesResponse:
    """Notes d'un élève dans une classe, les plus récentes d'abord, avec sa moyenne."""
    rows = db.execute(
        select(Grade, Assignment, GradeCategory.name)
        .join(Assignment, Assignment.id == Grade.assignment_id)
        .outerjoin(GradeCategory, GradeCategory.id == Assignment.category_id)
        .where(Grade.student_id == student_id, Assignment.level_code == level_code)
        .order_by(Grade.graded_at.desc())
    ).all()
    assignments = [a for a, _ in _fetch_assignments(db, level_code)]

    lines = []
    records = []
    for grade, assignment, category in rows:
        records.append(
            GradeRecord(
                student_id=grade.student_id,
                assignment_id=grade.assignment_id,
                score=grade.score,
                max_score=assignment.max_score,
            )
        )
        lines.append(
            StudentGradeLine(
                grade_id=grade.id,
                assignment_id=assignment.id,
                title=assignment.title,
                category=category,
                feedback=grade.feedback,
                graded_at=grade.graded_at,
                result=aggregation.assignment_grade(grade.score, assignment.max_score, policy),
            )
        )

    return StudentGradesResponse(
        student_id=student_id,
        level_code=level_code,
        policy=policy,
        grades=lines,
        summary=aggregation.grade_summary(records, policy),
        completion=aggregation.completion(assignments, records),
    )
