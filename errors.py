"""
=============================================================================
ERRORS.PY — Errores del motor de sesiones y rachas
=============================================================================
El motor no sabe nada de HTTP: lanza estas excepciones y main.py las
traduce a respuestas JSON con su código de estado.

  ValidationError   → 400  datos mal formados (pomodoro sin duración...)
  NotFoundError     → 404  la sesión no existe o no es tuya
  ConflictError     → 409  ya hay una sesión activa / estado terminal
  PersistenceError  → 500  la BD ha fallado
"""


class EngineError(Exception):
    """Base de todos los errores del motor"""
    status_code = 500
    default_detail = "Error interno"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(EngineError):
    status_code = 400
    default_detail = "Datos no válidos"


class NotFoundError(EngineError):
    status_code = 404
    default_detail = "Sesión no encontrada"


class ConflictError(EngineError):
    status_code = 409
    default_detail = "Ya hay una sesión activa en curso"


class PersistenceError(EngineError):
    status_code = 500
    default_detail = "No se pudo guardar en la base de datos"
