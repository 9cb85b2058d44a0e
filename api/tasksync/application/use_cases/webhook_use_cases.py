"""
Procesamiento de eventos de webhook de ClickUp (deltas).

Patron asincrono:
- El endpoint verifica la firma, encola el evento y responde 200 de inmediato.
- WebhookDispatcher ejecuta el evento en background (asyncio.create_task).
- WebhookEventProcessor aplica el delta con su propia sesion de base.

Los errores nunca salen de handle_event: si ClickUp recibe respuestas de
error de forma repetida desactiva el webhook.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from tasksync.application.services.task_row_mapper import map_comment_row, map_task_row
from tasksync.domain.entities.value_objects import UserRef
from tasksync.infrastructure.database.session import AsyncSessionLocal
from tasksync.infrastructure.external.clickup.client import ClickUpClient
from tasksync.infrastructure.repositories.task_store_repository import TaskStoreRepository
from tasksync.shared.exceptions.sync import StoreError
from tasksync.shared.utils.datetime_utils import DateTimeUtils


SessionFactory = Callable[[], AsyncSession]
EventHandler = Callable[[TaskStoreRepository, Dict[str, Any]], Awaitable[Optional[str]]]


def _event_type(payload: Dict[str, Any]) -> Optional[str]:
    event = payload.get("event")
    if isinstance(event, dict):
        return event.get("type")
    return event


def _history_items(payload: Dict[str, Any]) -> list[Dict[str, Any]]:
    items = payload.get("history_items") or []
    return [i for i in items if isinstance(i, dict)]


def _event_user(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Usuario que origino el cambio (si ClickUp lo informa)."""
    event = payload.get("event")
    candidates = [
        event.get("user") if isinstance(event, dict) else None,
        payload.get("user"),
        *[item.get("user") for item in _history_items(payload)],
    ]
    for raw in candidates:
        user = UserRef.from_payload(raw)
        if user is not None:
            return user.to_dict()
    return None


def _comment_id(payload: Dict[str, Any]) -> Optional[str]:
    event = payload.get("event")
    candidates = [
        payload.get("comment_id"),
        (event.get("comment") or {}).get("id") if isinstance(event, dict) else None,
        (payload.get("comment") or {}).get("id") if isinstance(payload.get("comment"), dict) else None,
        *[(item.get("comment") or {}).get("id") for item in _history_items(payload) if isinstance(item.get("comment"), dict)],
    ]
    for value in candidates:
        if value:
            return str(value)
    return None


class WebhookEventProcessor:
    """
    Aplica un evento de ClickUp sobre el store local.

    Dispatch plano por tipo de evento; los tipos desconocidos se ignoran.
    """

    def __init__(
        self,
        client: ClickUpClient,
        session_factory: SessionFactory = AsyncSessionLocal,
    ):
        self.client = client
        self._session_factory = session_factory
        self._handlers: Dict[str, EventHandler] = {
            "taskCreated": self._handle_task_upsert,
            "taskUpdated": self._handle_task_upsert,
            "taskDeleted": self._handle_task_delete,
            "taskCommentPosted": self._handle_comment_upsert,
            "taskCommentUpdated": self._handle_comment_upsert,
            "taskCommentDeleted": self._handle_comment_delete,
        }

    async def handle_event(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Procesa un evento. Nunca lanza excepciones.

        Returns:
            Dict con success=True y, si hubo fallo, la descripcion en "error"
        """
        event_type = _event_type(payload) if isinstance(payload, dict) else None
        if not event_type:
            logger.info("Webhook sin tipo de evento, se ignora")
            return {"success": True, "handled": False}

        task_id = payload.get("task_id")
        logger.info(f"Procesando evento de webhook {event_type} (tarea {task_id})")

        try:
            async with self._session_factory() as session:
                repo = TaskStoreRepository(session)

                handler = self._handlers.get(event_type)
                touched_list_id: Optional[str] = None
                if handler is None:
                    logger.info(f"Tipo de evento no soportado, se ignora: {event_type}")
                else:
                    touched_list_id = await handler(repo, payload)

                clickup_list_id = payload.get("list_id") or touched_list_id
                if clickup_list_id:
                    await repo.touch_webhook_activity(str(clickup_list_id), DateTimeUtils.now_utc())
                await session.commit()

            return {"success": True, "handled": handler is not None, "event": event_type}
        except Exception as e:
            logger.error(f"Error procesando evento {event_type} (tarea {task_id}): {e}")
            return {"success": True, "error": str(e)}

    # ------------------------------------------------------------------
    # Tareas
    # ------------------------------------------------------------------

    async def _handle_task_upsert(self, repo: TaskStoreRepository, payload: Dict[str, Any]) -> Optional[str]:
        task_id = payload.get("task_id")
        if not task_id:
            return None

        remote = await self.client.get_task(str(task_id))
        clickup_list_id = payload.get("list_id") or remote.list_id
        stored_list = await repo.get_list_by_remote_id(str(clickup_list_id)) if clickup_list_id else None
        if stored_list is None:
            logger.warning(f"Lista {clickup_list_id} no sincronizada: se ignora el evento de la tarea {task_id}")
            return None

        # Valores planos: un rollback expira las instancias ORM de la sesion
        local_list_id = stored_list.id
        stored_clickup_list_id = stored_list.clickup_list_id

        existing = await repo.get_task_by_remote_id(remote.id)
        if existing is not None:
            old_due = DateTimeUtils.ensure_utc(existing.due_date)
            new_due = remote.due_date
            if old_due != new_due:
                try:
                    await repo.append_due_date_history(
                        local_task_id=existing.id,
                        clickup_task_id=remote.id,
                        old_due_date=old_due,
                        new_due_date=new_due,
                        changed_by=_event_user(payload),
                    )
                except StoreError as e:
                    # Hasta aca la sesion solo leyo: el rollback no descarta nada
                    await repo.db.rollback()
                    logger.warning(f"No se pudo registrar el historial de due date de la tarea {remote.id}: {e.message}")
                else:
                    logger.info(f"Due date de la tarea {remote.id}: {old_due or 'ninguna'} -> {new_due or 'ninguna'}")

        await repo.upsert_tasks_batch([map_task_row(remote, local_list_id)])
        logger.info(f"Tarea actualizada: {remote.name} ({remote.id})")
        return stored_clickup_list_id

    async def _handle_task_delete(self, repo: TaskStoreRepository, payload: Dict[str, Any]) -> Optional[str]:
        task_id = payload.get("task_id")
        if not task_id:
            return None

        clickup_list_id = None
        existing = await repo.get_task_by_remote_id(str(task_id))
        if existing is not None:
            stored_list = await repo.get_list(existing.list_id)
            clickup_list_id = stored_list.clickup_list_id if stored_list else None

        if await repo.delete_task(str(task_id)):
            logger.info(f"Tarea eliminada: {task_id}")
        else:
            logger.debug(f"Tarea {task_id} no existia localmente")
        return clickup_list_id

    # ------------------------------------------------------------------
    # Comentarios
    # ------------------------------------------------------------------

    async def _handle_comment_upsert(self, repo: TaskStoreRepository, payload: Dict[str, Any]) -> Optional[str]:
        task_id = payload.get("task_id")
        comment_id = _comment_id(payload)
        if not task_id or not comment_id:
            logger.warning(f"Evento de comentario incompleto (tarea={task_id}, comentario={comment_id})")
            return None

        task = await repo.get_task_by_remote_id(str(task_id))
        if task is None:
            logger.warning(f"Tarea {task_id} no sincronizada: se ignora el comentario {comment_id}")
            return None

        comments = await self.client.get_comments(str(task_id))
        comment = next((c for c in comments if c.id == comment_id), None)
        if comment is None:
            logger.warning(f"Comentario {comment_id} no encontrado en la tarea {task_id}")
            return None

        await repo.upsert_comment(map_comment_row(comment, task.id))
        logger.info(f"Comentario {comment_id} guardado en la tarea {task_id}")
        return None

    async def _handle_comment_delete(self, repo: TaskStoreRepository, payload: Dict[str, Any]) -> Optional[str]:
        comment_id = _comment_id(payload)
        if not comment_id:
            return None
        if await repo.delete_comment(comment_id):
            logger.info(f"Comentario eliminado: {comment_id}")
        return None


class WebhookDispatcher:
    """
    Cola en background para eventos de webhook.

    Se guarda referencia a cada task hasta que termina (asyncio solo
    mantiene referencias debiles). drain() espera los pendientes: se usa
    en tests y en el shutdown de la app.
    """

    def __init__(self, processor: WebhookEventProcessor):
        self._processor = processor
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, payload: Dict[str, Any]) -> asyncio.Task:
        task = asyncio.create_task(self._processor.handle_event(payload))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Evento de webhook cancelado antes de terminar")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Error no controlado procesando webhook: {error}")

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Espera a que terminen los eventos encolados."""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning(f"{len(pending)} eventos de webhook siguen en proceso tras el drain")
