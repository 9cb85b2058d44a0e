"""
Utilidades para manejo de fechas y horas.

ClickUp serializa fechas como milisegundos desde epoch en strings
("1736035200000"); aqui se normalizan a datetime aware en UTC.
"""
from datetime import datetime, timezone
from typing import Any, Optional


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""

    @staticmethod
    def now_utc() -> datetime:
        """
        Obtiene la fecha y hora actual en UTC.

        Returns:
            datetime: Fecha y hora actual en UTC
        """
        return datetime.now(timezone.utc)

    @staticmethod
    def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
        """
        Normaliza un datetime a UTC (aware).

        SQLite devuelve datetimes naive aunque la columna sea timezone=True,
        por eso se asume UTC cuando no hay tzinfo.
        """
        if dt is None:
            return None
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def from_epoch_ms(value: Any) -> Optional[datetime]:
        """
        Convierte milisegundos desde epoch (int o str) a datetime UTC.

        Args:
            value: Timestamp en milisegundos, None o string vacio

        Returns:
            Optional[datetime]: Fecha en UTC o None si no es parseable
        """
        if value is None or value == "":
            return None
        try:
            millis = int(float(value))
        except (ValueError, TypeError):
            return None
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)

    @staticmethod
    def to_epoch_ms(dt: datetime) -> int:
        """Convierte un datetime a milisegundos desde epoch."""
        return int(DateTimeUtils.ensure_utc(dt).timestamp() * 1000)

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """
        Convierte un datetime a string ISO 8601.

        Args:
            dt: Objeto datetime

        Returns:
            str: Fecha en formato ISO 8601
        """
        return dt.isoformat()

    @staticmethod
    def from_iso_string(iso_string: str) -> Optional[datetime]:
        """
        Convierte un string ISO 8601 a datetime.

        Args:
            iso_string: String en formato ISO 8601

        Returns:
            Optional[datetime]: Objeto datetime o None si hay error
        """
        try:
            return datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
        except (ValueError, TypeError, AttributeError):
            return None
