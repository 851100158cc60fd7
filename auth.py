"""
=============================================================================
AUTH.PY — Identidad del usuario (JWT)
=============================================================================
El registro y el login viven en el servicio de cuentas. Este backend solo
necesita saber QUIÉN hace la petición:

  1. El cliente manda "Authorization: Bearer <jwt>"
  2. Verificamos la firma y la caducidad del token
  3. Cargamos el usuario del "sub"
  4. Si algo falla → 401

El user_id NUNCA se lee del cuerpo de la petición.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from database import get_db
from models import User

# ─────────────────────────────────────────────────────────────────────────────
# CONFIGURACIÓN
# ─────────────────────────────────────────────────────────────────────────────

SECRET_KEY = os.getenv("SECRET_KEY", "brainshift-dev-secret-key-cambiar-en-produccion")
# Debe ser la misma clave con la que firma el servicio de cuentas.

ALGORITHM = "HS256"

ACCESS_TOKEN_EXPIRE_DAYS = int(os.getenv("ACCESS_TOKEN_EXPIRE_DAYS", "30"))


# ─────────────────────────────────────────────────────────────────────────────
# TOKENS JWT
# ─────────────────────────────────────────────────────────────────────────────

def create_access_token(user_id: int, email: str) -> str:
    """
    Crea un token JWT con el ID y email del usuario.
    Lo usa el servicio de cuentas (y los tests) con la misma SECRET_KEY.
    """
    expire = datetime.now(timezone.utc) + timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS)
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "exp": expire
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """
    Decodifica un token JWT y devuelve sus datos.
    Si el token es inválido o ha expirado, devuelve None.
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


# ─────────────────────────────────────────────────────────────────────────────
# DEPENDENCIA: OBTENER USUARIO ACTUAL
# ─────────────────────────────────────────────────────────────────────────────

security = HTTPBearer(auto_error=False)
# auto_error=False → sin cabecera no salta el error por defecto; devolvemos
# nosotros el 401


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Extrae el usuario del token JWT.

      @app.get("/sessions")
      def list_sessions(user: User = Depends(get_current_user)):
          ...
    """
    if credentials is None:
        raise _unauthorized("No autenticado")

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Token inválido o expirado")

    user_id = payload.get("sub")
    if user_id is None or not str(user_id).isdigit():
        raise _unauthorized("Token sin identificador de usuario")

    user = db.query(User).filter(User.id == int(user_id)).first()
    if user is None:
        raise _unauthorized("Usuario no encontrado")

    return user
