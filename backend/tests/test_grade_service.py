"""
Tests unitaires pour le service des notes.
Couverture : validation avant écriture, upsert ON CONFLICT, échec de base,
édition en masse, grille de notes, export CSV, vue élève.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError, OperationalError

from app.exceptions import InvalidScoreError, NotFoundError, StoreError
from app.schemas.aggregation import UNGRADED, GradePolicy
from app.schemas.grade import GradeCellsSet, GradeSet
from app.services.grade_service import (
    export_gradebook_csv,
    get_gradebook,
    get_student_grades,
    grade_upsert_statement,
    set_grade,
    set_grades,
)

ALICE = uuid.uuid4()
BOB = uuid.uuid4()


# --- Helpers ---

def make_assignment(assignment_id=5, max_score=Decimal("20"), level_code="ENG-3A", title="Quiz", due_date=None):
    return SimpleNamespace(
        id=assignment_id, max_score=max_score, level_code=level_code, title=title, due_date=due_date,
    )


def make_grade_row(grade_id=1, student_id=ALICE, assignment_id=5, score=Decimal("17"), feedback=None):
    return SimpleNamespace(
        id=grade_id,
        student_id=student_id,
        assignment_id=assignment_id,
        score=score,
        feedback=feedback,
        graded_at=datetime(2025, 10, 1, 9, 30),
    )


def make_db(assignment=None, upserted=None):
    db = MagicMock()
    db.get.return_value = assignment
    db.execute.return_value.scalars.return_value.one.return_value = upserted or make_grade_row()
    return db


def compiled(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


# --- Validation des schémas ---

def test_grade_set_score_negatif_rejete():
    with pytest.raises(ValidationError, match="négative"):
        GradeSet(student_id=ALICE, assignment_id=1, score=-1)


def test_grade_set_score_non_numerique_rejete():
    with pytest.raises(ValidationError):
        GradeSet(student_id=ALICE, assignment_id=1, score="abc")


def test_grade_set_score_nan_rejete():
    with pytest.raises(ValidationError, match="nombre"):
        GradeSet(student_id=ALICE, assignment_id=1, score=float("nan"))


def test_grade_cells_liste_vide_rejetee():
    with pytest.raises(ValidationError):
        GradeCellsSet(cells=[])


# --- Upsert ---

def test_upsert_cle_student_assignment():
    sql = compiled(grade_upsert_statement(GradeSet(student_id=ALICE, assignment_id=5, score=12)))
    assert "ON CONFLICT (student_id, assignment_id) DO UPDATE" in sql
    assert "score = excluded.score" in sql
    assert "graded_at = now()" in sql
    assert "feedback = excluded.feedback" not in sql


def test_upsert_feedback_fourni_mis_a_jour():
    sql = compiled(grade_upsert_statement(GradeSet(student_id=ALICE, assignment_id=5, score=12, feedback="Bien")))
    assert "feedback = excluded.feedback" in sql


# --- set_grade ---

def test_set_grade_succes():
    db = make_db(assignment=make_assignment())
    result = set_grade(db, GradeSet(student_id=ALICE, assignment_id=5, score=17))

    assert result.score == 17
    assert result.assignment_id == 5
    db.execute.assert_called_once()
    db.commit.assert_called_once()
    db.add.assert_not_called()


def test_set_grade_deux_fois_meme_upsert():
    """Deux envois identiques → deux upserts sur la même clé, jamais d'INSERT simple."""
    db = make_db(assignment=make_assignment())
    data = GradeSet(student_id=ALICE, assignment_id=5, score=17)

    first = set_grade(db, data)
    second = set_grade(db, data)

    assert first.id == second.id
    assert db.execute.call_count == 2
    for call in db.execute.call_args_list:
        assert "ON CONFLICT (student_id, assignment_id)" in compiled(call.args[0])
    db.add.assert_not_called()


def test_set_grade_devoir_introuvable():
    db = make_db(assignment=None)
    with pytest.raises(NotFoundError, match="introuvable"):
        set_grade(db, GradeSet(student_id=ALICE, assignment_id=5, score=3))
    db.execute.assert_not_called()


def test_set_grade_autre_classe():
    db = make_db(assignment=make_assignment(level_code="MATH-2B"))
    with pytest.raises(NotFoundError):
        set_grade(db, GradeSet(student_id=ALICE, assignment_id=5, score=3), level_code="ENG-3A")
    db.execute.assert_not_called()


def test_set_grade_eleve_non_inscrit():
    """Élève absent de la classe du devoir → refus avant toute écriture."""
    db = make_db()
    db.get.side_effect = [make_assignment(), None]
    with pytest.raises(NotFoundError, match="non inscrit"):
        set_grade(db, GradeSet(student_id=uuid.uuid4(), assignment_id=5, score=3))
    db.execute.assert_not_called()
    db.commit.assert_not_called()


def test_set_grade_eleve_supprime_pendant_ecriture():
    """Clé étrangère violée à l'écriture → introuvable, pas une erreur à réessayer."""
    db = make_db(assignment=make_assignment())
    db.execute.side_effect = IntegrityError("INSERT", {}, Exception("grades_student_id_fkey"))
    with pytest.raises(NotFoundError):
        set_grade(db, GradeSet(student_id=ALICE, assignment_id=5, score=3))
    db.rollback.assert_called_once()


def test_set_grade_au_dessus_du_maximum():
    db = make_db(assignment=make_assignment(max_score=Decimal("20")))
    with pytest.raises(InvalidScoreError, match="dépasse"):
        set_grade(db, GradeSet(student_id=ALICE, assignment_id=5, score=20.5))
    db.execute.assert_not_called()
    db.commit.assert_not_called()


def test_set_grade_egal_au_maximum_accepte():
    db = make_db(assignment=make_assignment(max_score=Decimal("20")), upserted=make_grade_row(score=Decimal("20")))
    assert set_grade(db, GradeSet(student_id=ALICE, assignment_id=5, score=20)).score == 20


def test_set_grade_echec_base_rollback():
    db = make_db(assignment=make_assignment())
    db.execute.side_effect = OperationalError("INSERT", {}, Exception("connexion perdue"))

    with pytest.raises(StoreError, match="réessayer"):
        set_grade(db, GradeSet(student_id=ALICE, assignment_id=5, score=10))

    db.rollback.assert_called_once()
    db.commit.assert_not_called()


# --- set_grades ---

def test_set_grades_cellules_independantes():
    db = make_db(assignment=make_assignment(max_score=Decimal("10")))
    cells = [
        GradeSet(student_id=ALICE, assignment_id=5, score=8),
        GradeSet(student_id=BOB, assignment_id=5, score=11),   # > max
    ]

    report = set_grades(db, "ENG-3A", cells)

    assert report.total_received == 2
    assert report.total_saved == 1
    assert len(report.rejected) == 1
    assert report.rejected[0].student_id == BOB
    assert "dépasse" in report.rejected[0].error
    db.commit.assert_called_once()


def test_set_grades_echec_base_sur_une_cellule():
    db = make_db(assignment=make_assignment())
    db.execute.side_effect = [
        OperationalError("INSERT", {}, Exception("timeout")),
        MagicMock(**{"scalars.return_value.one.return_value": make_grade_row(student_id=BOB)}),
    ]
    cells = [
        GradeSet(student_id=ALICE, assignment_id=5, score=8),
        GradeSet(student_id=BOB, assignment_id=5, score=9),
    ]

    report = set_grades(db, "ENG-3A", cells)

    assert [r.student_id for r in report.rejected] == [ALICE]
    assert [a.student_id for a in report.accepted] == [BOB]
    db.rollback.assert_called_once()


# --- Grille de notes ---

ASSIGNMENT_ROWS = [
    (make_assignment(1, Decimal("10"), title="Quiz 1", due_date=date(2025, 9, 15)), "Quiz"),
    (make_assignment(2, Decimal("10"), title="Essay", due_date=None), None),
]
ROSTER = [
    SimpleNamespace(id=ALICE, name="Alice", username="alice"),
    SimpleNamespace(id=BOB, name="Bob", username="bob"),
]
LEVEL_GRADES = [
    make_grade_row(11, ALICE, 1, Decimal("10")),
    make_grade_row(12, BOB, 1, Decimal("0")),
    make_grade_row(13, BOB, 2, Decimal("0")),
    make_grade_row(14, ALICE, 99, Decimal("5")),    # devoir d'une autre classe
]


@pytest.fixture
def gradebook_data():
    with patch("app.services.grade_service._fetch_assignments", return_value=ASSIGNMENT_ROWS), \
         patch("app.services.grade_service._fetch_roster", return_value=ROSTER), \
         patch("app.services.grade_service._fetch_level_grades", return_value=LEVEL_GRADES):
        yield


def test_gradebook_classe_inexistante():
    db = MagicMock()
    db.get.return_value = None
    assert get_gradebook(db, "NOPE") is None


def test_gradebook_lignes_et_moyenne_cumulee(gradebook_data):
    db = MagicMock()
    gradebook = get_gradebook(db, "ENG-3A", GradePolicy.FULL)

    assert [a.title for a in gradebook.assignments] == ["Quiz 1", "Essay"]
    assert gradebook.assignments[0].category == "Quiz"

    alice, bob = gradebook.rows
    assert alice.summary.percentage == 100
    assert alice.summary.max_possible == 10      # la note hors classe est ignorée
    assert alice.missing_assignment_ids == [2]
    assert alice.completion.graded == 1
    assert alice.cells[1].result.letter_grade == UNGRADED
    assert alice.cells[1].grade_id is None

    assert bob.summary.percentage == 0
    assert bob.missing_assignment_ids == []
    assert bob.cells[0].grade_id == 12

    # 10 / 30, pas la moyenne (100 + 0) / 2
    assert gradebook.class_average.percentage == 33
    assert gradebook.class_average.letter_grade == "F"


def test_gradebook_politique_simple(gradebook_data):
    gradebook = get_gradebook(MagicMock(), "ENG-3A", GradePolicy.SIMPLE)
    assert gradebook.policy == GradePolicy.SIMPLE
    assert gradebook.rows[0].cells[0].result.letter_grade == "A"


def test_export_csv(gradebook_data):
    content = export_gradebook_csv(MagicMock(), "ENG-3A")

    assert content.startswith("\ufeff")
    lines = content.lstrip("\ufeff").strip().split("\r\n")
    assert lines[0] == "name;username;Quiz 1 (/10);Essay (/10);percentage;letter_grade;graded;total"
    assert lines[1] == "Alice;alice;10;;100;A;1;2"
    assert lines[2] == "Bob;bob;0;0;0;F;2;2"


def test_export_csv_classe_inexistante():
    db = MagicMock()
    db.get.return_value = None
    assert export_gradebook_csv(db, "NOPE") is None


# --- Vue élève ---

def test_get_student_grades():
    quiz = make_assignment(1, Decimal("10"), title="Quiz 1")
    essay = make_assignment(2, Decimal("20"), title="Essay")
    db = MagicMock()
    db.execute.return_value.all.return_value = [
        (make_grade_row(21, ALICE, 2, Decimal("15")), essay, "Writing"),
        (make_grade_row(20, ALICE, 1, Decimal("9")), quiz, None),
    ]

    with patch(
        "app.services.grade_service._fetch_assignments",
        return_value=[(quiz, None), (essay, "Writing"), (make_assignment(3, Decimal("5")), None)],
    ):
        result = get_student_grades(db, ALICE, "ENG-3A", GradePolicy.FULL)

    assert [g.title for g in result.grades] == ["Essay", "Quiz 1"]
    assert result.grades[0].result.percentage == 75
    assert result.grades[0].result.letter_grade == "C"
    assert result.grades[1].result.letter_grade == "A-"
    # 24 / 30 = 80 %
    assert result.summary.percentage == 80
    assert result.summary.letter_grade == "B-"
    assert result.completion.graded == 2
    assert result.completion.total == 3


def test_get_student_grades_aucune_note():
    db = MagicMock()
    db.execute.return_value.all.return_value = []
    with patch("app.services.grade_service._fetch_assignments", return_value=ASSIGNMENT_ROWS):
        result = get_student_grades(db, ALICE, "ENG-3A")
    assert result.grades == []
    assert result.summary.percentage == 0
    assert result.completion.graded == 0
    assert result.completion.total == 2
