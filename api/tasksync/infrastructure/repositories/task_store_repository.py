"""
Repositorio del store local (listas, tareas, comentarios, webhooks e
historial de due dates).

Todas las escrituras son INSERT ... ON CONFLICT (<id remoto>) DO UPDATE:
aplicar la misma fila dos veces deja el mismo estado. Se usa el insert
del dialecto activo (PostgreSQL en produccion, SQLite en tests).

Los borrados dependen de ON DELETE CASCADE a nivel base: borrar una
lista borra sus tareas y webhooks; borrar una tarea borra sus
comentarios y su historial.
"""
from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterable, Iterator, List, Optional, Sequence

from loguru import logger
from sqlalchemy import delete, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select, func

from tasksync.infrastructure.database.models import (
    CommentModel,
    ListModel,
    TaskDueDateHistoryModel,
    TaskModel,
    WebhookModel,
)
from tasksync.shared.exceptions.sync import StoreError


DEFAULT_BATCH_SIZE = 100


class TaskStoreRepository:
    """Adaptador del store. El caller controla los commits salvo en el batch."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _store_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            raise StoreError(f"Error de base de datos en {operation}: {e}", operation=operation) from e

    def _insert(self, model):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(model)
        if dialect == "sqlite":
            return sqlite.insert(model)
        raise StoreError(f"Dialecto no soportado para upsert: {dialect}", operation="upsert")

    def _upsert_stmt(self, model, rows: Sequence[dict[str, Any]], conflict_column: str):
        values = [{"id": str(uuid.uuid4()), **row} for row in rows]
        stmt = self._insert(model).values(values)
        update_cols = {
            key: stmt.excluded[key]
            for key in rows[0].keys()
            if key not in ("id", conflict_column)
        }
        if hasattr(model, "updated_at"):
            update_cols["updated_at"] = func.now()
        return stmt.on_conflict_do_update(index_elements=[conflict_column], set_=update_cols)

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    async def upsert_list(self, row: dict[str, Any]) -> ListModel:
        """Inserta o actualiza una lista por clickup_list_id y la retorna."""
        with self._store_errors("upsert_list"):
            await self.db.execute(self._upsert_stmt(ListModel, [row], "clickup_list_id"))
            result = await self.db.execute(
                select(ListModel)
                .where(ListModel.clickup_list_id == row["clickup_list_id"])
                .execution_options(populate_existing=True)
            )
            return result.scalar_one()

    async def get_list(self, list_id: str) -> Optional[ListModel]:
        """Busca por ID local o, si no existe, por ID de ClickUp."""
        result = await self.db.execute(
            select(ListModel).where(
                or_(ListModel.id == list_id, ListModel.clickup_list_id == list_id)
            )
        )
        return result.scalars().first()

    async def get_list_by_remote_id(self, clickup_list_id: str) -> Optional[ListModel]:
        result = await self.db.execute(
            select(ListModel).where(ListModel.clickup_list_id == clickup_list_id)
        )
        return result.scalar_one_or_none()

    async def get_lists_in_folder(self, folder_id: str) -> List[ListModel]:
        result = await self.db.execute(
            select(ListModel).where(ListModel.folder_id == folder_id).order_by(ListModel.name)
        )
        return list(result.scalars().all())

    async def get_all_lists(self) -> List[ListModel]:
        result = await self.db.execute(select(ListModel).order_by(ListModel.created_at))
        return list(result.scalars().all())

    async def rename_list(self, list_id: str, name: str) -> Optional[ListModel]:
        found = await self.get_list(list_id)
        if found is None:
            return None
        with self._store_errors("rename_list"):
            found.name = name
            await self.db.flush()
        logger.info(f"Lista {found.clickup_list_id} renombrada a '{name}'")
        return found

    async def delete_list(self, local_list_id: str) -> bool:
        """Borra la lista; tareas, comentarios y webhooks caen por cascade."""
        with self._store_errors("delete_list"):
            result = await self.db.execute(
                delete(ListModel).where(ListModel.id == local_list_id)
            )
        return (result.rowcount or 0) > 0

    @staticmethod
    def folder_list_ids(folder_id: str) -> Select:
        """Subquery de IDs locales de las listas de una carpeta (para scoping)."""
        return select(ListModel.id).where(ListModel.folder_id == folder_id)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def upsert_tasks_batch(
        self,
        rows: Sequence[dict[str, Any]],
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> int:
        """
        UPSERT de tareas en lotes, con commit por lote.

        Si un lote falla se hace rollback de ese lote y se lanza StoreError;
        los lotes anteriores quedan persistidos.

        Returns:
            int: Filas procesadas
        """
        if batch_size <= 0:
            raise ValueError("batch_size debe ser > 0")

        # Un mismo ID dos veces en un INSERT multi-fila rompe ON CONFLICT en Postgres
        rows = list({row["clickup_task_id"]: row for row in rows}.values())

        processed = 0
        for start in range(0, len(rows), batch_size):
            chunk = rows[start:start + batch_size]
            try:
                await self.db.execute(self._upsert_stmt(TaskModel, chunk, "clickup_task_id"))
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(
                    f"Fallo el lote de tareas {start // batch_size + 1} "
                    f"({processed} filas ya persistidas): {e}"
                )
                raise StoreError(
                    f"Error en upsert de tareas: {e}",
                    operation="upsert_tasks_batch",
                    committed=processed,
                    failed_offset=start,
                ) from e
            processed += len(chunk)
            logger.debug(f"Lote de tareas persistido ({processed}/{len(rows)})")

        return processed

    async def get_task_by_remote_id(self, clickup_task_id: str) -> Optional[TaskModel]:
        result = await self.db.execute(
            select(TaskModel)
            .where(TaskModel.clickup_task_id == clickup_task_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_remote_task_ids_for_list(self, local_list_id: str) -> set[str]:
        result = await self.db.execute(
            select(TaskModel.clickup_task_id).where(TaskModel.list_id == local_list_id)
        )
        return set(result.scalars().all())

    async def delete_tasks_by_remote_ids(self, local_list_id: str, clickup_task_ids: Iterable[str]) -> int:
        ids = list(clickup_task_ids)
        if not ids:
            return 0
        with self._store_errors("delete_tasks_by_remote_ids"):
            result = await self.db.execute(
                delete(TaskModel).where(
                    TaskModel.list_id == local_list_id,
                    TaskModel.clickup_task_id.in_(ids),
                )
            )
        return result.rowcount or 0

    async def delete_task(self, clickup_task_id: str) -> bool:
        with self._store_errors("delete_task"):
            result = await self.db.execute(
                delete(TaskModel).where(TaskModel.clickup_task_id == clickup_task_id)
            )
        return (result.rowcount or 0) > 0

    async def list_tasks(
        self,
        list_id: Optional[str] = None,
        *,
        folder_id: Optional[str] = None,
        include_subtasks: bool = False,
    ) -> List[TaskModel]:
        """
        Tareas de una lista (o de todas las listas de una carpeta).

        Por defecto excluye subtareas (parent_task_id no nulo).
        """
        query = select(TaskModel)
        if list_id is not None:
            query = query.where(TaskModel.list_id == list_id)
        if folder_id is not None:
            query = query.where(TaskModel.list_id.in_(self.folder_list_ids(folder_id)))
        if not include_subtasks:
            query = query.where(TaskModel.parent_task_id.is_(None))
        result = await self.db.execute(query.order_by(TaskModel.position, TaskModel.name))
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def upsert_comment(self, row: dict[str, Any]) -> None:
        with self._store_errors("upsert_comment"):
            await self.db.execute(self._upsert_stmt(CommentModel, [row], "clickup_comment_id"))

    async def delete_comment(self, clickup_comment_id: str) -> bool:
        with self._store_errors("delete_comment"):
            result = await self.db.execute(
                delete(CommentModel).where(CommentModel.clickup_comment_id == clickup_comment_id)
            )
        return (result.rowcount or 0) > 0

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    async def get_webhook_registration(self, local_list_id: str) -> Optional[WebhookModel]:
        """Registro activo de la lista (como maximo uno)."""
        result = await self.db.execute(
            select(WebhookModel).where(
                WebhookModel.list_id == local_list_id,
                WebhookModel.is_active.is_(True),
            )
        )
        return result.scalars().first()

    async def get_webhook_registrations(self, local_list_id: str) -> List[WebhookModel]:
        """Todos los registros de la lista, activos o no."""
        result = await self.db.execute(
            select(WebhookModel).where(WebhookModel.list_id == local_list_id)
        )
        return list(result.scalars().all())

    async def insert_webhook_registration(
        self,
        local_list_id: str,
        clickup_webhook_id: str,
        callback_url: str,
    ) -> WebhookModel:
        with self._store_errors("insert_webhook_registration"):
            webhook = WebhookModel(
                list_id=local_list_id,
                clickup_webhook_id=clickup_webhook_id,
                callback_url=callback_url,
                is_active=True,
            )
            self.db.add(webhook)
            await self.db.flush()
        return webhook

    async def touch_webhook_activity(self, clickup_list_id: str, when: datetime) -> None:
        """Marca last_event_at del webhook y last_synced de la lista."""
        list_ids = select(ListModel.id).where(ListModel.clickup_list_id == clickup_list_id)
        with self._store_errors("touch_webhook_activity"):
            await self.db.execute(
                update(WebhookModel)
                .where(WebhookModel.list_id.in_(list_ids), WebhookModel.is_active.is_(True))
                .values(last_event_at=when)
            )
            await self.db.execute(
                update(ListModel)
                .where(ListModel.clickup_list_id == clickup_list_id)
                .values(last_synced=when)
            )

    # ------------------------------------------------------------------
    # Due date history
    # ------------------------------------------------------------------

    async def append_due_date_history(
        self,
        *,
        local_task_id: str,
        clickup_task_id: str,
        old_due_date: Optional[datetime],
        new_due_date: Optional[datetime],
        changed_by: Optional[dict[str, Any]] = None,
    ) -> TaskDueDateHistoryModel:
        with self._store_errors("append_due_date_history"):
            entry = TaskDueDateHistoryModel(
                task_id=local_task_id,
                clickup_task_id=clickup_task_id,
                old_due_date=old_due_date,
                new_due_date=new_due_date,
                changed_by=changed_by,
            )
            self.db.add(entry)
            await self.db.flush()
        return entry

    async def get_due_date_history(self, clickup_task_id: str) -> List[TaskDueDateHistoryModel]:
        result = await self.db.execute(
            select(TaskDueDateHistoryModel)
            .where(TaskDueDateHistoryModel.clickup_task_id == clickup_task_id)
            .order_by(TaskDueDateHistoryModel.changed_at)
        )
        return list(result.scalars().all())
