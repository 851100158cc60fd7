"""
=============================================================================
TIMEUTILS.PY — Utilidades de fechas y horas
=============================================================================
Funciones puras para:
  - Pasar de fecha-hora "local" (lo que escribe el usuario en un formulario)
    a un instante UTC
  - Comparar días de calendario (mismo día, ayer)
  - Saber qué día es "hoy" en la zona horaria de referencia

IMPORTANTE sobre la zona horaria:
  Las rachas NO usan la zona horaria de cada usuario. Hay UNA zona de
  referencia para todo el servidor (STREAK_TIMEZONE, por defecto UTC).
  Cambiar esto cambia qué cuenta como "ayer" y por tanto las rachas.

En la BD todo se guarda en UTC sin tzinfo ("naive").
"""

import os
import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

import pytz

STREAK_TIMEZONE = os.getenv("STREAK_TIMEZONE", "UTC")

_LOCAL_DATETIME = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2})(?::(\d{2})(?:\.(\d{1,6}))?)?$"
)

DateLike = Union[date, datetime]


def reference_timezone():
    """Zona horaria de referencia para los días de calendario"""
    return pytz.timezone(STREAK_TIMEZONE)


def utcnow() -> datetime:
    """Ahora mismo en UTC, sin tzinfo (el formato que guardamos en la BD)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normaliza un datetime a UTC naive.
    Si ya es naive se asume que está en UTC y se devuelve tal cual.
    """
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def local_to_utc(value: str) -> datetime:
    """
    Convierte "YYYY-MM-DDTHH:MM[:SS]" (hora local del formulario) a un
    instante UTC.

    OJO: copia los componentes tal cual a UTC, sin aplicar ningún offset.
    "2024-03-10T09:30" → 2024-03-10 09:30 UTC, esté el usuario donde esté.
    Los valores ya guardados dependen de esto, no lo "arregles" aquí.

    Si el texto trae su propio offset ("...Z", "+02:00") no es hora local:
    se respeta el offset.
    """
    text_value = value.strip()
    match = _LOCAL_DATETIME.match(text_value)
    if match:
        year, month, day, hour, minute, second, fraction = match.groups()
        micro = int((fraction or "0").ljust(6, "0"))
        return datetime(
            int(year), int(month), int(day),
            int(hour), int(minute), int(second or 0), micro,
            tzinfo=timezone.utc,
        ).replace(tzinfo=None)

    if text_value.endswith("Z"):
        text_value = text_value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text_value)
    except ValueError:
        raise ValueError(f"Fecha-hora no válida: {value!r}")
    return to_naive_utc(parsed) if parsed.tzinfo else parsed


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def is_same_day(a: DateLike, b: DateLike) -> bool:
    """¿Mismo año, mes y día? Ignora la hora."""
    return _as_date(a) == _as_date(b)


def is_yesterday(a: DateLike, reference: DateLike) -> bool:
    """¿'a' cae el día de calendario anterior a 'reference'?"""
    return _as_date(a) == _as_date(reference) - timedelta(days=1)


def reference_today(now: Optional[datetime] = None) -> date:
    """
    Día de calendario de 'now' (UTC naive o aware) en la zona de referencia.
    Sin 'now' → hoy.
    """
    instant = now or utcnow()
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(reference_timezone()).date()


def minutes_between(start: datetime, end: datetime) -> int:
    """Minutos enteros (redondeando hacia abajo) entre dos instantes"""
    seconds = (to_naive_utc(end) - to_naive_utc(start)).total_seconds()
    return int(seconds // 60)
