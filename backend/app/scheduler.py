"""
Planificateur APScheduler pour le rappel des notes manquantes.

Le job parcourt les classes et journalise, pour chacune, les devoirs dont
l'échéance est passée et qui n'ont pas encore de note pour tous les élèves inscrits.
"""

import logging
from datetime import date

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.database import SessionLocal
from app.models.school_class import Level

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def count_overdue_missing(db: Session, level_code: str, today: date) -> int:
    """
    Nombre de couples (élève, devoir échu) sans note dans une classe.
    Import local pour éviter les imports circulaires.
    """
    from app.services import grade_service

    gradebook = grade_service.get_gradebook(db, level_code)
    if gradebook is None:
        return 0

    overdue_ids = {
        a.id for a in gradebook.assignments
        if a.due_date is not None and a.due_date < today
    }
    return sum(
        len(overdue_ids.intersection(row.missing_assignment_ids))
        for row in gradebook.rows
    )


def _check_missing_grades_scheduled() -> None:
    """Tâche planifiée : rappel des notes manquantes pour chaque classe."""
    today = date.today()
    db = SessionLocal()
    try:
        level_codes = db.execute(select(Level.code)).scalars().all()
        for level_code in level_codes:
            missing = count_overdue_missing(db, level_code, today)
            if missing:
                logger.info("Classe %s : %d note(s) manquante(s) sur des devoirs échus", level_code, missing)
    except Exception as exc:
        logger.error("Erreur lors du contrôle des notes manquantes : %s", exc)
    finally:
        db.close()


def start_scheduler() -> None:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    scheduler.add_job(
        _check_missing_grades_scheduled,
        trigger="interval",
        hours=settings.MISSING_GRADES_CHECK_HOURS,
        id="missing_grades_check",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        "Scheduler démarré : contrôle des notes manquantes toutes les %d heures.",
        settings.MISSING_GRADES_CHECK_HOURS,
    )


def stop_scheduler() -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")
