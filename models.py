"""
=============================================================================
MODELS.PY — Modelos (Tablas) de la Base de Datos
=============================================================================
Cada clase aquí = una tabla en la base de datos.

RELACIONES:
  USER
  ├── sessions[]   (sesiones de trabajo: manuales o pomodoro)
  └── streak       (una fila por usuario, se crea la primera vez que cuenta)

Las tareas y subtareas NO viven aquí: una sesión solo guarda una referencia
débil (target_type + target_id) que nadie valida desde este backend.
"""

from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Index, text
)
from sqlalchemy.orm import relationship
from database import Base
import enum


# =============================================================================
# ===================== ENUMS =================================================
# =============================================================================

class TargetType(str, enum.Enum):
    """Sobre qué tipo de elemento se trabaja en la sesión"""
    task = "task"
    subtask = "subtask"


# =============================================================================
# ===================== TABLA 1: USERS ========================================
# =============================================================================
# La gestión de cuentas (registro, login, emisión de tokens) es de otro
# servicio. Aquí solo necesitamos la fila para las claves foráneas y para
# resolver el "sub" del JWT.

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    sessions = relationship("FocusSession", back_populates="user", cascade="all, delete-orphan")
    streak = relationship("Streak", back_populates="user", uselist=False, cascade="all, delete-orphan")


# =============================================================================
# ===================== TABLA 2: SESSIONS =====================================
# =============================================================================
# Una sesión de trabajo enfocado. Estados:
#   activa      → completed=False, is_cancelled=False
#   completada  → completed=True   (terminal)
#   cancelada   → is_cancelled=True (terminal)
#
# Todas las fechas se guardan en UTC "naive" (sin tzinfo).

class FocusSession(Base):
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # ── Objetivo (opcional) ──
    target_type = Column(String(20), nullable=True)
    # target_type → "task" o "subtask"
    target_id = Column(Integer, nullable=True)

    # ── Tiempos ──
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=True)
    # pomodoro: fin PLANIFICADO al empezar; el definitivo se fija al completar
    duration = Column(Integer, nullable=True)
    # duration → minutos. Pomodoro: planificados al empezar, reales al completar
    break_duration = Column(Integer, nullable=True)

    # ── Estado ──
    is_pomodoro = Column(Boolean, default=False, nullable=False)
    completed = Column("is_completed", Boolean, default=False, nullable=False)
    is_cancelled = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        # Como mucho UNA sesión activa por usuario, garantizado por la BD.
        Index(
            "uq_sessions_one_active_per_user",
            "user_id",
            unique=True,
            sqlite_where=text("is_completed = 0 AND is_cancelled = 0"),
            postgresql_where=text("NOT is_completed AND NOT is_cancelled"),
        ),
    )

    user = relationship("User", back_populates="sessions")

    @property
    def is_active(self) -> bool:
        return not self.completed and not self.is_cancelled


# =============================================================================
# ===================== TABLA 3: STREAKS ======================================
# =============================================================================
# Racha de días consecutivos con al menos una sesión "que cuenta"
# (completada y de 30 minutos o más).

class Streak(Base):
    __tablename__ = "streaks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)
    last_streak_date = Column(Date, nullable=True)
    # last_streak_date → día (en la zona horaria de referencia) en que se
    # extendió o empezó la racha por última vez

    user = relationship("User", back_populates="streak")
