"""
Tests unitaires pour le rappel des notes manquantes.
"""

import uuid
from datetime import date
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from app.scheduler import count_overdue_missing

TODAY = date(2025, 10, 15)


def make_gradebook(rows):
    return SimpleNamespace(
        assignments=[
            SimpleNamespace(id=1, due_date=date(2025, 10, 1)),   # échu
            SimpleNamespace(id=2, due_date=date(2025, 10, 30)),  # à venir
            SimpleNamespace(id=3, due_date=None),                # sans échéance
        ],
        rows=rows,
    )


def test_count_overdue_missing():
    rows = [
        SimpleNamespace(student_id=uuid.uuid4(), missing_assignment_ids=[1, 2, 3]),
        SimpleNamespace(student_id=uuid.uuid4(), missing_assignment_ids=[1]),
        SimpleNamespace(student_id=uuid.uuid4(), missing_assignment_ids=[]),
    ]
    with patch("app.services.grade_service.get_gradebook", return_value=make_gradebook(rows)):
        assert count_overdue_missing(MagicMock(), "ENG-3A", TODAY) == 2


def test_count_overdue_missing_classe_introuvable():
    with patch("app.services.grade_service.get_gradebook", return_value=None):
        assert count_overdue_missing(MagicMock(), "NOPE", TODAY) == 0
