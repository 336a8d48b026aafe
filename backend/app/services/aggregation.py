"""
Moteur d'agrégation des notes et des présences.

Fonctions pures : elles reçoivent des listes d'enregistrements déjà
récupérées en base et ne modifient rien. Les vues (grille de notes, tableau
de bord élève, résumé enseignant, bulletin parent) passent toutes par ce
module pour obtenir les mêmes pourcentages et les mêmes lettres.

Règles communes :
- seuls les enregistrements existants comptent ; un devoir sans note ou un
  jour sans présence est absent du dénominateur, pas compté comme zéro ;
- les pourcentages globaux sont arrondis à l'entier (demi vers le haut) ;
- la moyenne de classe est calculée sur les totaux cumulés de tous les
  élèves, jamais comme la moyenne des pourcentages individuels.
"""

import math
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence

from app.schemas.aggregation import (
    UNGRADED,
    AssignmentGrade,
    AttendanceCounts,
    AttendanceStatus,
    AttendanceSummary,
    Completion,
    GradePolicy,
    GradeSummary,
)

# Paliers (seuil minimal inclus, lettre), du plus haut au plus bas
FULL_SCALE = (
    (93, "A"),
    (90, "A-"),
    (87, "B+"),
    (83, "B"),
    (80, "B-"),
    (77, "C+"),
    (73, "C"),
    (70, "C-"),
    (67, "D+"),
    (63, "D"),
    (60, "D-"),
)

SIMPLE_SCALE = (
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
)

SCALES = {
    GradePolicy.FULL: FULL_SCALE,
    GradePolicy.SIMPLE: SIMPLE_SCALE,
}

# Crédit accordé par statut de présence
ATTENDANCE_CREDIT = {
    AttendanceStatus.PRESENT.value: 1.0,
    AttendanceStatus.EXCUSED.value: 1.0,
    AttendanceStatus.LATE.value: 0.5,
    AttendanceStatus.ABSENT.value: 0.0,
}


def round_percentage(value: float) -> int:
    """Arrondi à l'entier le plus proche, .5 vers le haut (95.5 → 96, 32.5 → 33)."""
    return int(math.floor(value + 0.5))


def letter_grade(percentage: float, policy: GradePolicy = GradePolicy.FULL) -> str:
    """Convertit un pourcentage en lettre selon le barème demandé."""
    for threshold, letter in SCALES[GradePolicy(policy)]:
        if percentage >= threshold:
            return letter
    return "F"


def grade_summary(grades: Iterable, policy: GradePolicy = GradePolicy.FULL) -> GradeSummary:
    """
    Total, maximum possible, pourcentage arrondi et lettre pour une liste de notes.

    Chaque note doit exposer `score` et `max_score`. Une note sans score compte
    pour 0 au numérateur mais son max_score reste dans le dénominateur.
    """
    total_score = 0.0
    max_possible = 0.0
    for grade in grades:
        total_score += float(grade.score or 0)
        max_possible += float(grade.max_score or 0)

    percentage = round_percentage(total_score * 100 / max_possible) if max_possible > 0 else 0

    return GradeSummary(
        total_score=total_score,
        max_possible=max_possible,
        percentage=percentage,
        letter_grade=letter_grade(percentage, policy),
    )


def assignment_grade(score, max_score, policy: GradePolicy = GradePolicy.FULL) -> AssignmentGrade:
    """
    Pourcentage (2 décimales) et lettre d'un seul devoir.
    Sans score ou sans max_score exploitable → UNGRADED, jamais F.
    La lettre est lue sur le pourcentage exact : 92.996 % affiche 93.0 mais reste A-.
    """
    if score is None or not max_score or float(max_score) <= 0:
        return AssignmentGrade(
            score=float(score) if score is not None else None,
            max_score=float(max_score) if max_score is not None else None,
            percentage=None,
            letter_grade=UNGRADED,
        )

    exact = float(score) * 100 / float(max_score)
    return AssignmentGrade(
        score=float(score),
        max_score=float(max_score),
        percentage=round(exact, 2),
        letter_grade=letter_grade(exact, policy),
    )


def missing_assignments(assignments: Sequence, grades: Iterable) -> List:
    """
    Devoirs sans note correspondante, dans l'ordre de `assignments`.
    Indépendant de l'ordre des notes ; recalculé à chaque appel.
    """
    graded_ids = {g.assignment_id for g in grades}
    return [a for a in assignments if a.id not in graded_ids]


def completion(assignments: Sequence, grades: Iterable) -> Completion:
    """Compteur « notés / total » pour une classe."""
    missing = missing_assignments(assignments, grades)
    return Completion(graded=len(assignments) - len(missing), total=len(assignments))


def restrict_to_level(grades: Iterable, assignments: Iterable) -> List:
    """Écarte les notes dont le devoir n'appartient pas à la liste (autre classe)."""
    assignment_ids = {a.id for a in assignments}
    return [g for g in grades if g.assignment_id in assignment_ids]


def attendance_summary(records: Iterable, count_unknown: bool = True) -> AttendanceSummary:
    """
    Compteurs par statut et pourcentage pondéré de présence.

    present et excused valent 1, late 0.5, absent 0. Un statut inconnu est
    compté dans `unrecognized` ; il entre dans le total (crédit nul) si
    count_unknown est vrai, sinon il est exclu du total.
    """
    counts: Dict[str, int] = defaultdict(int)
    unrecognized = 0
    for record in records:
        status = record.status
        if status in ATTENDANCE_CREDIT:
            counts[status] += 1
        else:
            unrecognized += 1

    weighted = sum(ATTENDANCE_CREDIT[status] * n for status, n in counts.items())
    total = sum(counts.values()) + (unrecognized if count_unknown else 0)
    percentage = round_percentage(weighted * 100 / total) if total > 0 else 0

    return AttendanceSummary(
        counts=AttendanceCounts(**counts),
        unrecognized=unrecognized,
        total=total,
        weighted=weighted,
        percentage=percentage,
    )


def class_grade_average(grades: Iterable, policy: GradePolicy = GradePolicy.FULL) -> GradeSummary:
    """Moyenne de classe : toutes les notes de tous les élèves cumulées."""
    return grade_summary(grades, policy)


def class_attendance(records: Iterable, count_unknown: bool = True) -> AttendanceSummary:
    """Présence de classe : tous les enregistrements de la classe cumulés."""
    return attendance_summary(records, count_unknown)


def group_by_student(records: Iterable) -> Dict:
    """Regroupe des enregistrements par student_id (ordre d'arrivée conservé)."""
    grouped: Dict = defaultdict(list)
    for record in records:
        grouped[record.student_id].append(record)
    return grouped
