"""
Tests unitaires du moteur d'agrégation (fonctions pures).
Couverture : pourcentages, barèmes FULL/SIMPLE, devoirs manquants,
présences pondérées, moyenne de classe cumulée.
"""

import random
import uuid
from datetime import date
from types import SimpleNamespace

import pytest

from app.schemas.aggregation import UNGRADED, AttendanceMark, GradePolicy, GradeRecord
from app.services.aggregation import (
    assignment_grade,
    attendance_summary,
    class_attendance,
    class_grade_average,
    completion,
    grade_summary,
    group_by_student,
    letter_grade,
    missing_assignments,
    restrict_to_level,
    round_percentage,
)

STUDENT_A = uuid.uuid4()
STUDENT_B = uuid.uuid4()


# --- Helpers ---

def make_grade(score, max_score, student_id=STUDENT_A, assignment_id=1) -> GradeRecord:
    return GradeRecord(student_id=student_id, assignment_id=assignment_id, score=score, max_score=max_score)


def make_mark(status, student_id=STUDENT_A, day=1) -> AttendanceMark:
    return AttendanceMark(student_id=student_id, level_code="ENG-3A", date=date(2025, 9, day), status=status)


def make_marks(**counts):
    marks = []
    for status, n in counts.items():
        marks.extend(make_mark(status) for _ in range(n))
    return marks


def assignments(*ids):
    return [SimpleNamespace(id=i, max_score=10) for i in ids]


# ============================================================
# Arrondi
# ============================================================

def test_round_percentage_demi_vers_le_haut():
    assert round_percentage(32.5) == 33   # round() Python donnerait 32
    assert round_percentage(95.5) == 96
    assert round_percentage(33.333) == 33
    assert round_percentage(0) == 0


# ============================================================
# Résumé de notes
# ============================================================

def test_grade_summary_liste_vide():
    """Aucune note → 0 %, pas de division par zéro."""
    summary = grade_summary([])
    assert summary.total_score == 0
    assert summary.max_possible == 0
    assert summary.percentage == 0
    assert summary.letter_grade == "F"


def test_grade_summary_max_possible_nul():
    summary = grade_summary([make_grade(5, 0)])
    assert summary.percentage == 0


def test_grade_summary_cumule_scores_et_maximums():
    grades = [make_grade(8, 10, assignment_id=1), make_grade(15, 20, assignment_id=2), make_grade(45, 50, assignment_id=3)]
    summary = grade_summary(grades)
    assert summary.total_score == 68
    assert summary.max_possible == 80
    assert summary.percentage == 85
    assert summary.letter_grade == "B"


def test_grade_summary_score_absent_compte_zero_au_numerateur():
    grades = [make_grade(10, 10, assignment_id=1), make_grade(None, 10, assignment_id=2)]
    summary = grade_summary(grades)
    assert summary.total_score == 10
    assert summary.max_possible == 20
    assert summary.percentage == 50


def test_grade_summary_formule_sur_listes_aleatoires():
    rng = random.Random(42)
    for _ in range(200):
        grades = []
        for i in range(rng.randint(1, 8)):
            max_score = rng.choice([5, 10, 20, 25, 100])
            grades.append(make_grade(rng.randint(0, max_score), max_score, assignment_id=i))
        total = sum(g.score for g in grades)
        possible = sum(g.max_score for g in grades)
        expected = int(total * 100 / possible + 0.5)
        assert grade_summary(grades).percentage == expected


# ============================================================
# Barèmes
# ============================================================

@pytest.mark.parametrize("percentage,letter", [
    (100, "A"), (93, "A"), (92.99, "A-"), (90, "A-"), (89.99, "B+"), (87, "B+"),
    (83, "B"), (80, "B-"), (77, "C+"), (73, "C"), (70, "C-"), (67, "D+"),
    (63, "D"), (60, "D-"), (59.99, "F"), (0, "F"),
])
def test_bareme_full_seuils(percentage, letter):
    assert letter_grade(percentage, GradePolicy.FULL) == letter


@pytest.mark.parametrize("percentage,letter", [
    (100, "A"), (90, "A"), (89.99, "B"), (80, "B"), (79, "C"), (70, "C"),
    (69.5, "D"), (60, "D"), (59, "F"),
])
def test_bareme_simple_seuils(percentage, letter):
    assert letter_grade(percentage, GradePolicy.SIMPLE) == letter


@pytest.mark.parametrize("policy,order", [
    (GradePolicy.FULL, ["F", "D-", "D", "D+", "C-", "C", "C+", "B-", "B", "B+", "A-", "A"]),
    (GradePolicy.SIMPLE, ["F", "D", "C", "B", "A"]),
])
def test_bareme_monotone(policy, order):
    """Plus le pourcentage monte, plus la lettre monte (ou reste égale)."""
    ranks = [order.index(letter_grade(p / 4, policy)) for p in range(0, 401)]
    assert ranks == sorted(ranks)


def test_politique_acceptee_sous_forme_de_chaine():
    assert letter_grade(91, "SIMPLE") == "A"
    assert letter_grade(91, "FULL") == "A-"


def test_scenario_85_sur_100():
    grades = [make_grade(85, 100)]
    assert grade_summary(grades, GradePolicy.FULL).letter_grade == "B"
    assert grade_summary(grades, GradePolicy.SIMPLE).letter_grade == "B"


def test_scenario_9_sur_10():
    grades = [make_grade(9, 10)]
    full = grade_summary(grades, GradePolicy.FULL)
    simple = grade_summary(grades, GradePolicy.SIMPLE)
    assert full.percentage == simple.percentage == 90
    assert full.letter_grade == "A-"
    assert simple.letter_grade == "A"


# ============================================================
# Note d'un devoir
# ============================================================

def test_assignment_grade_non_note():
    result = assignment_grade(None, 10)
    assert result.letter_grade == UNGRADED
    assert result.percentage is None


def test_assignment_grade_sans_max_score():
    assert assignment_grade(7, None).letter_grade == UNGRADED
    assert assignment_grade(7, 0).letter_grade == UNGRADED


def test_assignment_grade_zero_est_un_f():
    result = assignment_grade(0, 10)
    assert result.percentage == 0
    assert result.letter_grade == "F"


def test_assignment_grade_deux_decimales():
    result = assignment_grade(2, 3, GradePolicy.SIMPLE)
    assert result.percentage == 66.67
    assert result.letter_grade == "D"


def test_assignment_grade_seuil_exact():
    assert assignment_grade(93, 100).letter_grade == "A"
    assert assignment_grade(57, 100).percentage == 57


# ============================================================
# Devoirs manquants
# ============================================================

def test_missing_assignments_difference():
    all_assignments = assignments(1, 2, 3, 4)
    grades = [make_grade(5, 10, assignment_id=2), make_grade(7, 10, assignment_id=4)]
    missing = missing_assignments(all_assignments, grades)
    assert [a.id for a in missing] == [1, 3]


def test_missing_assignments_independant_de_l_ordre():
    all_assignments = assignments(1, 2, 3, 4, 5)
    grades = [make_grade(5, 10, assignment_id=i) for i in (5, 1, 3)]
    expected = {a.id for a in missing_assignments(all_assignments, grades)}

    rng = random.Random(7)
    for _ in range(20):
        shuffled_assignments = all_assignments[:]
        shuffled_grades = grades[:]
        rng.shuffle(shuffled_assignments)
        rng.shuffle(shuffled_grades)
        assert {a.id for a in missing_assignments(shuffled_assignments, shuffled_grades)} == expected


def test_missing_assignments_recalcule_apres_ajout():
    all_assignments = assignments(1, 2)
    grades = [make_grade(5, 10, assignment_id=1)]
    assert [a.id for a in missing_assignments(all_assignments, grades)] == [2]

    grades.append(make_grade(6, 10, assignment_id=2))
    assert missing_assignments(all_assignments, grades) == []


def test_completion():
    result = completion(assignments(1, 2, 3), [make_grade(5, 10, assignment_id=3)])
    assert result.graded == 1
    assert result.total == 3


def test_completion_sans_devoir():
    result = completion([], [])
    assert result.graded == 0
    assert result.total == 0


def test_restrict_to_level_ecarte_autres_classes():
    grades = [make_grade(5, 10, assignment_id=1), make_grade(5, 10, assignment_id=99)]
    kept = restrict_to_level(grades, assignments(1, 2))
    assert [g.assignment_id for g in kept] == [1]


# ============================================================
# Présences
# ============================================================

def test_attendance_exemple_pondere():
    """8 présents, 1 excusé, 1 retard → 9.5 / 10 → 95 %."""
    summary = attendance_summary(make_marks(present=8, excused=1, late=1))
    assert summary.counts.present == 8
    assert summary.counts.excused == 1
    assert summary.counts.late == 1
    assert summary.counts.absent == 0
    assert summary.total == 10
    assert summary.weighted == 9.5
    assert summary.percentage == 95


def test_attendance_aucun_enregistrement():
    summary = attendance_summary([])
    assert summary.total == 0
    assert summary.percentage == 0


def test_attendance_absents_zero_credit():
    summary = attendance_summary(make_marks(absent=3, present=1))
    assert summary.percentage == 25


def test_attendance_arrondi_demi_vers_le_haut():
    summary = attendance_summary(make_marks(present=13, absent=27))
    assert summary.percentage == 33


def test_attendance_statut_inconnu_compte_dans_total():
    summary = attendance_summary(make_marks(present=1, holiday=1))
    assert summary.unrecognized == 1
    assert summary.total == 2
    assert summary.percentage == 50


def test_attendance_statut_inconnu_exclu_du_total():
    summary = attendance_summary(make_marks(present=1, holiday=1), count_unknown=False)
    assert summary.unrecognized == 1
    assert summary.total == 1
    assert summary.percentage == 100


# ============================================================
# Agrégats de classe
# ============================================================

def test_moyenne_de_classe_cumulee():
    """10/10 et (0/10, 0/10) → 10/30 = 33 %, pas la moyenne 50 %."""
    grades = [
        make_grade(10, 10, student_id=STUDENT_A, assignment_id=1),
        make_grade(0, 10, student_id=STUDENT_B, assignment_id=1),
        make_grade(0, 10, student_id=STUDENT_B, assignment_id=2),
    ]
    by_student = group_by_student(grades)
    individual = [grade_summary(g).percentage for g in by_student.values()]
    assert sorted(individual) == [0, 100]

    assert class_grade_average(grades).percentage == 33


def test_presence_de_classe_cumulee():
    marks = [make_mark("present", STUDENT_A)] + [make_mark("absent", STUDENT_B, day=d) for d in (1, 2, 3)]
    assert class_attendance(marks).percentage == 25


def test_group_by_student():
    grades = [
        make_grade(1, 10, student_id=STUDENT_A, assignment_id=1),
        make_grade(2, 10, student_id=STUDENT_B, assignment_id=1),
        make_grade(3, 10, student_id=STUDENT_A, assignment_id=2),
    ]
    grouped = group_by_student(grades)
    assert [g.score for g in grouped[STUDENT_A]] == [1, 3]
    assert [g.score for g in grouped[STUDENT_B]] == [2]


def test_assignment_grade_lettre_sur_pourcentage_exact():
    """92.996 % s'affiche 93.0 mais n'atteint pas le seuil de A."""
    result = assignment_grade(92.996, 100)
    assert result.percentage == 93.0
    assert result.letter_grade == "A-"
