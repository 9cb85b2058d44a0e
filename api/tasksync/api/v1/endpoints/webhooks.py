"""
Endpoint receptor de webhooks de ClickUp.

- Firma invalida -> 401
- Firma valida -> el evento se encola y se responde 200 de inmediato
- Cualquier otro problema (JSON invalido, error interno) -> 200 igual,
  para que ClickUp no desactive el webhook
"""
import json

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from loguru import logger

from tasksync.api.v1.dependencies.use_case_deps import get_webhook_dispatcher
from tasksync.application.use_cases.webhook_use_cases import WebhookDispatcher
from tasksync.core.config import settings
from tasksync.infrastructure.external.clickup.signature import verify_signature
from tasksync.shared.exceptions.sync import SignatureError


router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.head("/clickup")
async def clickup_webhook_head() -> Response:
    """Verificacion de disponibilidad del endpoint."""
    return Response(status_code=status.HTTP_200_OK)


@router.post("/clickup")
async def clickup_webhook(
    request: Request,
    dispatcher: WebhookDispatcher = Depends(get_webhook_dispatcher),
):
    """
    Recibe eventos de ClickUp (tareas y comentarios).
    """
    body = await request.body()
    signature = request.headers.get("x-signature")

    if not verify_signature(
        body,
        signature,
        settings.CLICKUP_WEBHOOK_SECRET,
        algorithm=settings.CLICKUP_WEBHOOK_SIGNATURE_ALGORITHM,
    ):
        logger.warning("Webhook de ClickUp rechazado: firma invalida")
        raise SignatureError()

    try:
        payload = json.loads(body)
        if not isinstance(payload, dict):
            raise ValueError("el payload no es un objeto JSON")
        dispatcher.submit(payload)
    except Exception as e:
        logger.error(f"Error recibiendo webhook de ClickUp: {e}")
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"success": True, "error": "Internal error but acknowledged"},
        )

    return {"success": True}
