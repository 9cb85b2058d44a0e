"""
Excepciones del motor de sincronizacion ClickUp -> base de datos.

Taxonomia:
- RemoteAPIError: respuesta no-2xx (o fallo de transporte) de ClickUp
- ResolutionError: una URL/ID no se pudo mapear a una entidad valida
- StoreError: fallo de lectura/escritura contra la base de datos
- SignatureError: el payload de un webhook no paso la verificacion
"""
from typing import Any, Optional

from tasksync.shared.exceptions.base import AppException


class RemoteAPIError(AppException):
    """Error HTTP devuelto por la API remota. Conserva status y body."""

    def __init__(self, status: int, body: str, endpoint: Optional[str] = None):
        self.status = status
        self.body = body
        self.endpoint = endpoint
        super().__init__(
            message=f"ClickUp API error {status}: {body[:500]}",
            status_code=502,
            error_code="REMOTE_API_ERROR",
            details={"status": status, "endpoint": endpoint},
        )


class ResolutionError(AppException):
    """No se pudo resolver una URL o ID a una lista/carpeta de ClickUp."""

    def __init__(self, message: str, candidates: Optional[list[str]] = None):
        self.candidates = list(candidates or [])
        super().__init__(
            message=message,
            status_code=400,
            error_code="RESOLUTION_ERROR",
            details={"candidates": self.candidates} if self.candidates else None,
        )


class StoreError(AppException):
    """Fallo al leer o escribir en la base de datos local."""

    def __init__(self, message: str, operation: Optional[str] = None, **details: Any):
        self.operation = operation
        payload = {"operation": operation} if operation else {}
        payload.update(details)
        super().__init__(
            message=message,
            status_code=500,
            error_code="STORE_ERROR",
            details=payload,
        )


class SignatureError(AppException):
    """La firma del webhook no coincide con el payload recibido."""

    def __init__(self, message: str = "Firma de webhook invalida"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="INVALID_SIGNATURE",
        )
