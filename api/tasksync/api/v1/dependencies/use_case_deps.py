"""
Dependencias para inyeccion de casos de uso.

El cliente de ClickUp y el dispatcher de webhooks se crean una sola vez
en el startup (ver core/events.py) y viven en app.state: todos los
requests comparten los mismos rate limiters.
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tasksync.application.use_cases.list_sync_use_cases import ListSyncUseCases
from tasksync.application.use_cases.webhook_use_cases import WebhookDispatcher
from tasksync.infrastructure.database.session import get_db
from tasksync.infrastructure.external.clickup.client import ClickUpClient


def get_clickup_client(request: Request) -> ClickUpClient:
    """Cliente compartido de ClickUp."""
    return request.app.state.clickup_client


def get_webhook_dispatcher(request: Request) -> WebhookDispatcher:
    """Cola de eventos de webhook del proceso."""
    return request.app.state.webhook_dispatcher


async def get_list_sync_use_cases(
    db: AsyncSession = Depends(get_db),
    client: ClickUpClient = Depends(get_clickup_client),
) -> ListSyncUseCases:
    """
    Dependencia para obtener los casos de uso de sync de listas.

    Args:
        db: Sesion de base de datos
        client: Cliente compartido de ClickUp

    Returns:
        ListSyncUseCases: Instancia de casos de uso
    """
    return ListSyncUseCases(db, client)
