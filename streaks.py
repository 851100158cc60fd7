"""
=============================================================================
STREAKS.PY — Sistema de Rachas
=============================================================================
La racha = días de calendario SEGUIDOS con al menos una sesión que cuenta.

Una sesión cuenta si:
  - está completada
  - duró 30 minutos o más

Lógica al completar una sesión que cuenta:
  - Sin racha todavía          → se crea: actual=1, mejor=1, fecha=hoy
  - Última fecha = ayer        → actual +1 (y mejor si se supera)
  - Última fecha = hoy         → nada (hoy ya contaba)
  - Última fecha más antigua   → se rompió: actual=1

Las rachas caducan "perezosamente": no hay ningún proceso a medianoche.
Se comprueban al completar cualquier sesión (aunque no cuente) y al leerlas.

Los días se calculan en la zona horaria de referencia (timeutils).
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import Streak
from timeutils import is_same_day, is_yesterday, reference_today

logger = logging.getLogger("brainshift.streaks")

QUALIFYING_MINUTES = 30


def is_qualifying(completed: bool, duration: Optional[int]) -> bool:
    """¿Esta sesión suma a la racha?"""
    return bool(completed) and duration is not None and duration >= QUALIFYING_MINUTES


def _is_alive(streak: Streak, today) -> bool:
    """La racha sigue viva si se extendió hoy o ayer"""
    last = streak.last_streak_date
    if last is None:
        return False
    return is_same_day(last, today) or is_yesterday(last, today)


def _get_for_update(db: Session, user_id: int) -> Optional[Streak]:
    # FOR UPDATE → bloquea la fila en PostgreSQL; SQLite lo ignora
    return db.query(Streak).filter(Streak.user_id == user_id).with_for_update().first()


def _apply(db: Session, user_id: int, qualifying: bool, today) -> Optional[Streak]:
    streak = _get_for_update(db, user_id)

    if not qualifying:
        if streak and streak.current_streak and not _is_alive(streak, today):
            logger.info(f"💔 Racha rota para usuario {user_id} (última: {streak.last_streak_date})")
            streak.current_streak = 0
            db.commit()
        return streak

    if streak is None:
        streak = Streak(
            user_id=user_id,
            current_streak=1,
            longest_streak=1,
            last_streak_date=today,
        )
        db.add(streak)
        db.commit()
        logger.info(f"🔥 Primera racha para usuario {user_id}")
        return streak

    last = streak.last_streak_date
    if last is not None and is_same_day(last, today):
        # Ya contaba hoy
        return streak

    if last is not None and is_yesterday(last, today):
        streak.current_streak += 1
    else:
        streak.current_streak = 1

    if streak.current_streak > streak.longest_streak:
        streak.longest_streak = streak.current_streak
    streak.last_streak_date = today
    db.commit()
    logger.info(f"🔥 Racha de usuario {user_id}: {streak.current_streak} días")
    return streak


def evaluate(
    db: Session,
    user_id: int,
    completed: bool,
    duration: Optional[int],
    now: Optional[datetime] = None,
) -> Optional[Streak]:
    """
    Actualiza la racha tras completar una sesión.

    Se llama DESPUÉS de guardar la sesión. Devuelve la fila de racha
    (o None si el usuario aún no tiene).
    """
    today = reference_today(now)
    qualifying = is_qualifying(completed, duration)
    try:
        return _apply(db, user_id, qualifying, today)
    except IntegrityError:
        # Dos completados a la vez intentaron crear la primera fila.
        # La otra ganó: repetimos sobre la que ya existe.
        db.rollback()
        return _apply(db, user_id, qualifying, today)


def read(db: Session, user_id: int, now: Optional[datetime] = None) -> dict:
    """
    Devuelve la racha del usuario.

    Si la última fecha no es ni hoy ni ayer, la racha está rota: se pone
    a 0 y se guarda antes de devolverla. Llamarlo dos veces el mismo día
    devuelve lo mismo.
    """
    streak = db.query(Streak).filter(Streak.user_id == user_id).first()
    if streak is None:
        return {"current_streak": 0, "longest_streak": 0, "last_streak_date": None}

    today = reference_today(now)
    if streak.current_streak and not _is_alive(streak, today):
        logger.info(f"💔 Racha caducada al leer (usuario {user_id})")
        streak.current_streak = 0
        db.commit()

    return {
        "current_streak": streak.current_streak,
        "longest_streak": streak.longest_streak,
        "last_streak_date": streak.last_streak_date,
    }
