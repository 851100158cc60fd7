"""
=============================================================================
MAIN.PY — La API de BrainShift (sesiones y rachas)
=============================================================================
Endpoints REST del motor de sesiones de trabajo y rachas.

Organización por secciones:
  1. SESSIONS → empezar, completar, cancelar, listar, borrar
  2. STREAKS  → racha actual y mejor racha

La lógica vive en sessions.py y streaks.py; aquí solo se traduce HTTP.
Tareas, objetivos, eventos, login y analíticas son de otros servicios.
"""

import os
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import sessions as session_engine
import streaks as streak_engine
from auth import get_current_user
from database import get_db, init_db
from errors import EngineError, ValidationError
from models import User
from schemas import (
    SessionCreate, SessionComplete, SessionResponse, SessionEnvelope,
    CurrentSessionResponse, MessageResponse, StreakResponse
)
from timeutils import utcnow

# ─────────────────────────────────────────────────────────────────────────────
# LOGGING
# ─────────────────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s"
)
logger = logging.getLogger("brainshift.api")

APP_VERSION = "1.0.0"

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


# ─────────────────────────────────────────────────────────────────────────────
# LIFESPAN (Arranque y apagado)
# ─────────────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Al arrancar: crear tablas e índices si no existen"""
    logger.info("🚀 Arrancando BrainShift API...")
    init_db()
    logger.info("✅ Base de datos inicializada")
    yield
    logger.info("👋 Apagado completo")


# ─────────────────────────────────────────────────────────────────────────────
# APLICACIÓN FASTAPI
# ─────────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="BrainShift API",
    description="Sesiones de trabajo (manuales y pomodoro) y rachas diarias",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─────────────────────────────────────────────────────────────────────────────
# MANEJO DE ERRORES
# ─────────────────────────────────────────────────────────────────────────────
# Los errores del motor (400/404/409/500) llevan su propio código.
# Cualquier otra excepción → 500 genérico con la traza en el log.

@app.exception_handler(EngineError)
async def engine_exception_handler(request: Request, exc: EngineError):
    if exc.status_code >= 500:
        logger.error(f"❌ {type(exc).__name__} en {request.url}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Captura errores no manejados y devuelve un 500 genérico"""
    logger.error(f"❌ Error no manejado en {request.url}: {exc}\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Error interno del servidor"}
    )


# =============================================================================
# ===================== HEALTH CHECK ==========================================
# =============================================================================

@app.get("/", tags=["Health"])
def health_check():
    """Verifica que la API está viva"""
    return {
        "status": "ok",
        "app": "BrainShift API",
        "version": APP_VERSION,
        "timestamp": utcnow().isoformat()
    }


# =============================================================================
# ===================== SECCIÓN 1: SESSIONS ===================================
# =============================================================================

@app.get("/sessions", response_model=list[SessionResponse], tags=["Sessions"])
def list_sessions(
    limit: int = Query(default=session_engine.DEFAULT_LIST_LIMIT, ge=1, le=500),
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Sesiones del usuario, la más reciente primero"""
    return session_engine.list_sessions(db, user.id, limit=limit)


@app.get("/sessions/current", response_model=CurrentSessionResponse, tags=["Sessions"])
def current_session(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    La sesión activa (si hay) y los datos del temporizador.
    El cliente lo consulta periódicamente para pintar el reloj.
    """
    session = session_engine.active_session(db, user.id)
    if not session:
        return CurrentSessionResponse()
    return {"session": session, "timer": session_engine.timer_view(session)}


@app.get("/sessions/{session_id}", response_model=SessionResponse, tags=["Sessions"])
def get_session(session_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return session_engine.get_session(db, session_id, user.id)


@app.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED, tags=["Sessions"])
def start_session(data: SessionCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Empieza una sesión.

      - 400 si es pomodoro sin duración positiva
      - 409 si ya hay una sesión activa
    """
    return session_engine.start_session(
        db, user.id,
        is_pomodoro=data.is_pomodoro,
        target_type=data.target_type,
        target_id=data.target_id,
        duration=data.duration,
        break_duration=data.break_duration,
        end_time=data.end_time,
    )


@app.patch("/sessions/{session_id}/cancel", response_model=SessionEnvelope, tags=["Sessions"])
def cancel_session(session_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    session = session_engine.cancel_session(db, session_id, user.id)
    return {"session": session}


@app.patch("/sessions/{session_id}/completed", response_model=SessionEnvelope, tags=["Sessions"])
def complete_session(
    session_id: int,
    data: SessionComplete,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Completa la sesión. La duración la calcula el servidor.
    Después se actualiza la racha del usuario.
    """
    if not data.completed:
        raise ValidationError("Una sesión no se puede volver a abrir")
    session = session_engine.complete_session(db, session_id, user.id)
    return {"session": session}


@app.delete("/sessions/{session_id}", response_model=MessageResponse, tags=["Sessions"])
def delete_session(session_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    session_engine.delete_session(db, session_id, user.id)
    return {"message": "Sesión borrada"}


# =============================================================================
# ===================== SECCIÓN 2: STREAKS ====================================
# =============================================================================

@app.get("/streaks", response_model=StreakResponse, tags=["Streaks"])
def get_streak(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Racha actual. Si está rota se pone a 0 al leerla."""
    return streak_engine.read(db, user.id)
