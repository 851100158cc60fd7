"""
=============================================================================
SCHEMAS.PY — Esquemas de Validación (Pydantic)
=============================================================================
  - Models (SQLAlchemy) → definen las TABLAS de la BD
  - Schemas (Pydantic)  → definen qué DATOS acepta/devuelve la API

La API habla en camelCase (targetType, isPomodoro...), como el cliente web.
Internamente usamos snake_case; el alias_generator hace la traducción y
populate_by_name permite mandar también snake_case.

Convención de nombres:
  XxxCreate   → para crear algo nuevo (POST)
  XxxUpdate   → para actualizar algo (PATCH)
  XxxResponse → lo que devuelve la API (GET)
"""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from datetime import date, datetime
from typing import Optional

from models import TargetType


CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


# =============================================================================
# ===================== SESSIONS ==============================================
# =============================================================================

class SessionCreate(BaseModel):
    """
    Datos para empezar una sesión.

    startTime y completed se aceptan por compatibilidad con el cliente pero
    se ignoran: el inicio lo pone el servidor y una sesión nueva nunca está
    completada. duration solo se usa en pomodoro.
    """
    target_type: Optional[TargetType] = None
    target_id: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    # end_time → texto, "YYYY-MM-DDTHH:MM" (hora local del formulario) o ISO con offset
    is_pomodoro: bool = False
    duration: Optional[int] = None
    break_duration: Optional[int] = None
    completed: Optional[bool] = None
    model_config = CAMEL


class SessionComplete(BaseModel):
    completed: bool
    model_config = CAMEL


class SessionResponse(BaseModel):
    id: int
    user_id: int
    target_type: Optional[TargetType] = None
    target_id: Optional[int] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    break_duration: Optional[int] = None
    is_pomodoro: bool
    completed: bool
    is_cancelled: bool
    model_config = {"from_attributes": True, **CAMEL}


class SessionEnvelope(BaseModel):
    """Respuesta de cancelar/completar: {"session": {...}}"""
    session: SessionResponse
    model_config = CAMEL


class TimerResponse(BaseModel):
    """Proyección del temporizador (solo lectura, para pintar el reloj)"""
    elapsed_seconds: int
    remaining_seconds: Optional[int] = None
    planned_end: Optional[datetime] = None
    overtime: bool
    model_config = CAMEL


class CurrentSessionResponse(BaseModel):
    session: Optional[SessionResponse] = None
    timer: Optional[TimerResponse] = None
    model_config = CAMEL


class MessageResponse(BaseModel):
    message: str


# =============================================================================
# ===================== STREAKS ===============================================
# =============================================================================

class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_streak_date: Optional[date] = None
    model_config = {"from_attributes": True, **CAMEL}
