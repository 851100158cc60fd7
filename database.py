"""
=============================================================================
DATABASE.PY — Configuración de la Base de Datos
=============================================================================
Conexión a la base de datos relacional donde viven las sesiones de trabajo
y las rachas.

En DESARROLLO (tu PC): SQLite (un archivo .db)
En PRODUCCIÓN: PostgreSQL

¿Cómo sabe cuál usar?
→ Si existe la variable de entorno DATABASE_URL, usa esa URL.
→ Si no existe, usa SQLite local.

Ambos motores soportan índices parciales (con WHERE), que es lo que usamos
para garantizar "una sola sesión activa por usuario" (ver models.py).
"""

import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

# ─────────────────────────────────────────────────────────────────────────────
# CONEXIÓN
# ─────────────────────────────────────────────────────────────────────────────

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./brainshift.db")

# Los proveedores suelen dar la URL con "postgres://" pero SQLAlchemy necesita
# "postgresql://". Usamos psycopg (v3) como driver → "postgresql+psycopg://"
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql+psycopg://", 1)
elif DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+psycopg://", 1)

# ─────────────────────────────────────────────────────────────────────────────
# ENGINE
# ─────────────────────────────────────────────────────────────────────────────
# check_same_thread=False → solo para SQLite. FastAPI ejecuta los endpoints
# síncronos en un pool de hilos, y SQLite por defecto no lo permite.

engine_args = {}
if DATABASE_URL.startswith("sqlite"):
    engine_args["connect_args"] = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, echo=False, **engine_args)

# ─────────────────────────────────────────────────────────────────────────────
# SESSION (Sesión de base de datos)
# ─────────────────────────────────────────────────────────────────────────────
# Ojo: "sesión de BD" (SQLAlchemy) no es lo mismo que "sesión de trabajo"
# (FocusSession en models.py). Aquí hablamos de la conexión.

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ─────────────────────────────────────────────────────────────────────────────
# BASE
# ─────────────────────────────────────────────────────────────────────────────

Base = declarative_base()


def get_db():
    """
    Generador que crea una sesión de BD y la cierra al terminar.

    Se usa como "dependencia" en FastAPI:
      @app.get("/algo")
      def mi_endpoint(db: Session = Depends(get_db)):
          ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """
    Crea todas las tablas (e índices) si no existen.
    Se llama una vez al arrancar la aplicación.
    """
    Base.metadata.create_all(bind=bind or engine)
