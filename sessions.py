"""
=============================================================================
SESSIONS.PY — Ciclo de vida de las sesiones de trabajo
=============================================================================
Es el ÚNICO sitio que escribe completed / duration / end_time.

Estados de una sesión:
  (no existe) ──start──→ ACTIVA ──complete──→ COMPLETADA (final)
                            └─────cancel───→ CANCELADA  (final)

Reglas:
  - Un usuario solo puede tener UNA sesión activa. Se comprueba antes de
    insertar y, para las peticiones simultáneas, lo garantiza el índice
    único parcial de la tabla (models.py).
  - start_time lo pone el servidor, nunca el cliente.
  - Pomodoro: al empezar se guarda el fin PLANIFICADO (inicio + duración).
    Al completar antes de tiempo se cuenta la duración planificada entera;
    al completar tarde se cuenta el tiempo extra.
  - duration = minutos enteros entre inicio y fin.
  - Al completar se avisa al sistema de rachas. Si la racha falla, la
    sesión sigue completada (solo se registra el error).
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import streaks
from errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from models import FocusSession, TargetType
from timeutils import local_to_utc, minutes_between, to_naive_utc, utcnow

logger = logging.getLogger("brainshift.sessions")

DEFAULT_LIST_LIMIT = 100

MAX_SESSION_MINUTES = 24 * 60
# Tope para duración planificada y descanso: un día entero


# =============================================================================
# ===================== CÁLCULOS DE TIEMPO ====================================
# =============================================================================

def planned_end(session: FocusSession) -> Optional[datetime]:
    """Fin planificado de un pomodoro (inicio + duración). None si no aplica."""
    if not session.is_pomodoro or not session.duration:
        return None
    return session.start_time + timedelta(minutes=session.duration)


def final_end_time(session: FocusSession, now: datetime) -> datetime:
    """
    Hora de fin definitiva al completar.

      manual     → end_time declarado al empezar, o ahora si no hay
      pomodoro   → max(ahora, inicio + duración planificada)

    En un pomodoro el end_time guardado es el planificado, no un fin real.
    """
    planned = planned_end(session)
    if planned is None:
        return session.end_time or now
    return max(now, planned)


def timer_view(session: FocusSession, now: Optional[datetime] = None) -> dict:
    """
    Lo que necesita el cliente para pintar el temporizador.
    Solo lectura: nunca se usa como entrada para completar.
    """
    now = to_naive_utc(now) or utcnow()
    elapsed = int((now - session.start_time).total_seconds())
    planned = planned_end(session)
    if planned is None:
        return {
            "elapsed_seconds": elapsed,
            "remaining_seconds": None,
            "planned_end": None,
            "overtime": False,
        }
    remaining = int((planned - now).total_seconds())
    return {
        "elapsed_seconds": elapsed,
        "remaining_seconds": remaining,
        "planned_end": planned,
        "overtime": remaining < 0,
    }


# =============================================================================
# ===================== LECTURAS ==============================================
# =============================================================================

def list_sessions(db: Session, user_id: int, limit: int = DEFAULT_LIST_LIMIT) -> list[FocusSession]:
    return db.query(FocusSession).filter(
        FocusSession.user_id == user_id
    ).order_by(FocusSession.start_time.desc(), FocusSession.id.desc()).limit(limit).all()


def get_session(db: Session, session_id: int, user_id: int) -> FocusSession:
    """Sesión del usuario. Si no existe o es de otro → NotFoundError"""
    session = db.query(FocusSession).filter(
        FocusSession.id == session_id, FocusSession.user_id == user_id
    ).first()
    if not session:
        raise NotFoundError()
    return session


def active_session(db: Session, user_id: int) -> Optional[FocusSession]:
    """La sesión activa del usuario, si tiene"""
    return db.query(FocusSession).filter(
        FocusSession.user_id == user_id,
        FocusSession.completed == False,
        FocusSession.is_cancelled == False,
    ).first()


# =============================================================================
# ===================== START =================================================
# =============================================================================

def _validate_start(is_pomodoro, target_type, target_id, duration, break_duration):
    if is_pomodoro and (duration is None or duration <= 0):
        raise ValidationError("Un pomodoro necesita una duración positiva (minutos)")
    if is_pomodoro and duration > MAX_SESSION_MINUTES:
        raise ValidationError(f"La duración no puede superar {MAX_SESSION_MINUTES} minutos")
    if target_id is not None and target_type is None:
        raise ValidationError("target_id requiere target_type (task o subtask)")
    if break_duration is not None and break_duration < 0:
        raise ValidationError("break_duration no puede ser negativo")
    if break_duration is not None and break_duration > MAX_SESSION_MINUTES:
        raise ValidationError(f"break_duration no puede superar {MAX_SESSION_MINUTES} minutos")


def start_session(
    db: Session,
    user_id: int,
    *,
    is_pomodoro: bool = False,
    target_type: Optional[TargetType] = None,
    target_id: Optional[int] = None,
    duration: Optional[int] = None,
    break_duration: Optional[int] = None,
    end_time: Union[str, datetime, None] = None,
    now: Optional[datetime] = None,
) -> FocusSession:
    """
    Empieza una sesión nueva.

    Flujo:
      1. Validar datos (pomodoro sin duración → 400)
      2. Comprobar que no hay otra activa (→ 409)
      3. Insertar. Si el índice único salta (otra petición se coló) → 409
    """
    _validate_start(is_pomodoro, target_type, target_id, duration, break_duration)

    start_time = to_naive_utc(now) or utcnow()

    if is_pomodoro:
        declared_end = start_time + timedelta(minutes=duration)
    elif end_time is not None:
        try:
            declared_end = local_to_utc(end_time) if isinstance(end_time, str) else to_naive_utc(end_time)
        except ValueError as e:
            raise ValidationError(str(e))
        if declared_end < start_time:
            raise ValidationError("end_time no puede ser anterior al inicio")
        duration = None
    else:
        declared_end = None
        duration = None

    if active_session(db, user_id):
        raise ConflictError()

    session = FocusSession(
        user_id=user_id,
        target_type=target_type.value if isinstance(target_type, TargetType) else target_type,
        target_id=target_id,
        start_time=start_time,
        end_time=declared_end,
        duration=duration,
        break_duration=break_duration if is_pomodoro else None,
        is_pomodoro=is_pomodoro,
        completed=False,
        is_cancelled=False,
    )
    db.add(session)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"⚠️ Inicio simultáneo rechazado por el índice (usuario {user_id})")
        raise ConflictError()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Error guardando sesión nueva (usuario {user_id}): {e}")
        raise PersistenceError()

    db.refresh(session)
    kind = "pomodoro" if is_pomodoro else "manual"
    logger.info(f"▶️ Sesión {session.id} ({kind}) iniciada por usuario {user_id}")
    return session


# =============================================================================
# ===================== TRANSICIONES FINALES ==================================
# =============================================================================

def _transition(db: Session, session: FocusSession, values: dict) -> bool:
    """
    UPDATE condicional: solo si la sesión sigue activa.
    Devuelve False si otra petición la cerró antes que nosotros.
    """
    try:
        updated = db.query(FocusSession).filter(
            FocusSession.id == session.id,
            FocusSession.user_id == session.user_id,
            FocusSession.completed == False,
            FocusSession.is_cancelled == False,
        ).update(values, synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Error actualizando sesión {session.id}: {e}")
        raise PersistenceError()
    db.refresh(session)
    return updated > 0


def complete_session(
    db: Session, session_id: int, user_id: int, now: Optional[datetime] = None
) -> FocusSession:
    """
    Marca la sesión como completada y calcula end_time y duration.

    Completar una sesión ya completada no hace nada (devuelve lo guardado).
    Completar una cancelada → 409.
    """
    session = get_session(db, session_id, user_id)
    if session.completed:
        return session
    if session.is_cancelled:
        raise ConflictError("La sesión está cancelada")

    now = to_naive_utc(now) or utcnow()
    end_time = final_end_time(session, now)
    duration = minutes_between(session.start_time, end_time)

    values = {
        FocusSession.completed: True,
        FocusSession.end_time: end_time,
        FocusSession.duration: duration,
    }
    if not _transition(db, session, values):
        if session.completed:
            return session
        raise ConflictError("La sesión está cancelada")

    logger.info(f"✅ Sesión {session.id} completada: {session.duration} min")

    # La sesión ya está guardada. Si la racha falla, se queda desfasada.
    try:
        streaks.evaluate(db, user_id, session.completed, session.duration, now=now)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error actualizando racha (usuario {user_id}): {e}")

    return session


def cancel_session(db: Session, session_id: int, user_id: int) -> FocusSession:
    """
    Cancela la sesión. No toca duration ni end_time, no afecta a la racha.
    Cancelar una ya cancelada no hace nada. Cancelar una completada → 409.
    """
    session = get_session(db, session_id, user_id)
    if session.is_cancelled:
        return session
    if session.completed:
        raise ConflictError("La sesión ya está completada")

    if not _transition(db, session, {FocusSession.is_cancelled: True}):
        if session.is_cancelled:
            return session
        raise ConflictError("La sesión ya está completada")

    logger.info(f"⏹️ Sesión {session.id} cancelada por usuario {user_id}")
    return session


def delete_session(db: Session, session_id: int, user_id: int) -> None:
    """Borra la sesión. La racha no se recalcula."""
    session = get_session(db, session_id, user_id)
    try:
        db.delete(session)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Error borrando sesión {session_id}: {e}")
        raise PersistenceError()
    logger.info(f"🗑️ Sesión {session_id} borrada por usuario {user_id}")
