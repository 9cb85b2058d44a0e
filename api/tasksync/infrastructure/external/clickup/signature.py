"""
Verificacion de firmas HMAC de webhooks.

ClickUp firma el body crudo con HMAC-SHA256 (hex) usando el secret que
devuelve al crear el webhook, y lo envia en el header X-Signature.
"""
import hashlib
import hmac
from typing import Optional

from loguru import logger


_ALGORITHMS = {
    "sha256": hashlib.sha256,
    "sha1": hashlib.sha1,
}


def compute_signature(payload: bytes, secret: str, algorithm: str = "sha256") -> str:
    """Calcula la firma esperada (hex) para `payload`."""
    digestmod = _ALGORITHMS.get(algorithm.lower())
    if digestmod is None:
        raise ValueError(f"Algoritmo de firma no soportado: {algorithm}")

    return hmac.new(secret.encode("utf-8"), payload, digestmod).hexdigest()


def verify_signature(
    payload: bytes,
    signature: Optional[str],
    secret: Optional[str],
    algorithm: str = "sha256",
) -> bool:
    """
    Verifica la firma de un webhook en tiempo constante.

    Sin secret configurado se acepta el payload (modo desarrollo) y se
    deja un warning en el log.
    """
    if not secret:
        logger.warning("Webhook secret no configurado: se omite la verificacion de firma")
        return True
    if not signature:
        return False

    signature = signature.strip()
    # Un digest hex nunca tiene caracteres fuera de ASCII
    if not signature.isascii():
        return False

    expected = compute_signature(payload, secret, algorithm)
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("ascii"))
