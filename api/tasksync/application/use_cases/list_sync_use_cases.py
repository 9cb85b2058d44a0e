"""
Casos de uso de sincronizacion completa ClickUp -> base local.

Flujo de sync_list (secuencial por lista):
1. Resolver URL/ID a lista (las vistas se validan contra la API)
2. Metadata: lista, space y workspace -> UPSERT de la lista
3. Traer TODAS las tareas (con subtareas y cerradas)
4. Borrar localmente las tareas que ya no existen en ClickUp
5. UPSERT de tareas por lotes
6. (opcional) Backfill de comentarios
7. Registrar el webhook de la lista si aun no existe

Los pasos 1-5 propagan errores al caller. El backfill de comentarios y
el registro del webhook solo loguean: la sync se considera exitosa.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence, Union

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from tasksync.application.services.task_row_mapper import (
    map_comment_row,
    map_list_row,
    map_task_row,
)
from tasksync.core.config import Settings, settings
from tasksync.infrastructure.database.models import ListModel
from tasksync.infrastructure.database.session import AsyncSessionLocal
from tasksync.infrastructure.external.clickup.client import ClickUpClient
from tasksync.infrastructure.external.clickup.types import RemoteTask
from tasksync.infrastructure.external.clickup.url_resolution import (
    DEFAULT_VIEW_STRATEGIES,
    ViewResolutionStrategy,
    extract_folder_id,
    is_clickup_reference,
    resolve_list_id,
)
from tasksync.infrastructure.repositories.task_store_repository import TaskStoreRepository
from tasksync.shared.exceptions.domain import EntityNotFoundException, ValidationException
from tasksync.shared.exceptions.sync import RemoteAPIError, ResolutionError, StoreError


SessionFactory = Callable[[], AsyncSession]


@dataclass
class ListSyncResult:
    list_id: str
    clickup_list_id: str
    name: str
    tasks_upserted: int = 0
    tasks_deleted: int = 0
    comments_synced: int = 0
    comment_failures: int = 0
    webhook_id: Optional[str] = None
    webhook_created: bool = False


@dataclass
class FolderSyncResult:
    """
    Resultado de sincronizar varias listas.

    folder_id es None cuando el lote es "todas las listas guardadas".
    """

    folder_id: Optional[str]
    synced: list[ListSyncResult] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass
class FolderDeleteResult:
    folder_id: str
    deleted: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


class ListSyncUseCases:
    """Orquestador de la sync completa por lista y por carpeta."""

    def __init__(
        self,
        db: AsyncSession,
        client: ClickUpClient,
        *,
        session_factory: SessionFactory = AsyncSessionLocal,
        app_settings: Settings = settings,
        view_strategies: Sequence[ViewResolutionStrategy] = DEFAULT_VIEW_STRATEGIES,
    ):
        self.db = db
        self.client = client
        self.repository = TaskStoreRepository(db)
        self._session_factory = session_factory
        self._settings = app_settings
        self._view_strategies = view_strategies

    def _for_session(self, session: AsyncSession) -> "ListSyncUseCases":
        return ListSyncUseCases(
            session,
            self.client,
            session_factory=self._session_factory,
            app_settings=self._settings,
            view_strategies=self._view_strategies,
        )

    # ------------------------------------------------------------------
    # Sync de lista
    # ------------------------------------------------------------------

    async def sync_list(self, list_url_or_id: str) -> ListSyncResult:
        """
        Sincroniza una lista completa.

        Raises:
            ResolutionError: Si la URL no se puede resolver a una lista
            RemoteAPIError: Si falla la metadata o el listado de tareas
            StoreError: Si falla la escritura (los lotes previos quedan)
        """
        logger.info(f"Iniciando sync de lista: {list_url_or_id}")

        clickup_list_id = await resolve_list_id(list_url_or_id, self.client, self._view_strategies)

        # 1. Metadata
        remote_list = await self.client.get_list(clickup_list_id)
        space = await self.client.get_space(remote_list.space_id) if remote_list.space_id else None
        workspaces = await self.client.get_workspaces()
        # Un token suele tener acceso a un solo workspace
        workspace = workspaces[0] if workspaces else None

        list_model = await self.repository.upsert_list(
            map_list_row(remote_list, space=space, workspace=workspace, url=list_url_or_id)
        )
        await self.db.commit()

        workspace_id = list_model.workspace_id
        result = ListSyncResult(
            list_id=list_model.id,
            clickup_list_id=list_model.clickup_list_id,
            name=list_model.name,
        )

        # 2. Tareas (snapshot unico para borrado y upsert)
        tasks = await self.client.get_tasks(clickup_list_id)
        result.tasks_deleted = await self._delete_stale_tasks(result.list_id, result.clickup_list_id, tasks)
        result.tasks_upserted = await self.repository.upsert_tasks_batch(
            [map_task_row(t, result.list_id) for t in tasks],
            batch_size=self._settings.SYNC_UPSERT_BATCH_SIZE,
        )

        # 3. Comentarios (opcional)
        if self._settings.SYNC_COMMENTS_ON_FULL_SYNC:
            result.comments_synced, result.comment_failures = await self._backfill_comments(tasks)

        # 4. Webhook
        result.webhook_id, result.webhook_created = await self._ensure_webhook(
            result.list_id, result.clickup_list_id, workspace_id
        )

        logger.success(
            f"Sync de lista '{result.name}' ({result.clickup_list_id}) completada: "
            f"{result.tasks_upserted} tareas, {result.tasks_deleted} eliminadas, "
            f"{result.comments_synced} comentarios"
        )
        return result

    async def _delete_stale_tasks(self, local_list_id: str, clickup_list_id: str, tasks: list[RemoteTask]) -> int:
        remote_ids = {t.id for t in tasks}
        local_ids = await self.repository.list_remote_task_ids_for_list(local_list_id)
        stale = local_ids - remote_ids
        if not stale:
            return 0

        deleted = await self.repository.delete_tasks_by_remote_ids(local_list_id, stale)
        await self.db.commit()
        logger.info(f"Lista {clickup_list_id}: {deleted} tareas eliminadas (ya no existen en ClickUp)")
        return deleted

    async def _backfill_comments(self, tasks: list[RemoteTask]) -> tuple[int, int]:
        synced = 0
        failures = 0
        for task in tasks:
            try:
                comments = await self.client.get_comments(task.id)
                task_model = await self.repository.get_task_by_remote_id(task.id)
                if task_model is None:
                    continue
                for comment in comments:
                    await self.repository.upsert_comment(map_comment_row(comment, task_model.id))
                await self.db.commit()
                synced += len(comments)
            except (RemoteAPIError, StoreError) as e:
                await self.db.rollback()
                failures += 1
                logger.warning(f"No se pudieron sincronizar los comentarios de la tarea {task.id}: {e.message}")
        return synced, failures

    async def _ensure_webhook(
        self,
        local_list_id: str,
        clickup_list_id: str,
        workspace_id: Optional[str],
    ) -> tuple[Optional[str], bool]:
        """
        Registra el webhook de la lista si no hay uno activo.

        Returns:
            (clickup_webhook_id o None, True si se creo en esta corrida)
        """
        callback_url = self._settings.CLICKUP_WEBHOOK_CALLBACK_URL
        if not callback_url:
            logger.warning("CLICKUP_WEBHOOK_CALLBACK_URL no configurado: se omite el registro de webhook")
            return None, False

        existing = await self.repository.get_webhook_registration(local_list_id)
        if existing:
            logger.debug(f"Lista {clickup_list_id} ya tiene webhook {existing.clickup_webhook_id}")
            return existing.clickup_webhook_id, False

        if not workspace_id:
            logger.warning(f"Lista {clickup_list_id} sin workspace: no se puede registrar webhook")
            return None, False

        try:
            remote = await self.client.create_webhook(workspace_id, clickup_list_id, callback_url)
            await self.repository.insert_webhook_registration(local_list_id, remote.id, callback_url)
            await self.db.commit()
        except (RemoteAPIError, StoreError, ValueError) as e:
            await self.db.rollback()
            logger.error(f"Error registrando webhook para la lista {clickup_list_id}: {e}")
            return None, False

        logger.info(f"Webhook {remote.id} registrado para la lista {clickup_list_id}")
        return remote.id, True

    # ------------------------------------------------------------------
    # Carpetas y lotes
    # ------------------------------------------------------------------

    async def _sync_isolated(self, list_url_or_id: str) -> ListSyncResult:
        async with self._session_factory() as session:
            return await self._for_session(session).sync_list(list_url_or_id)

    async def _run_batch(self, result: FolderSyncResult, targets: list[tuple[str, str]]) -> FolderSyncResult:
        """
        Sincroniza (label, url_or_id) con concurrencia acotada.

        Cada lista usa su propia sesion; los fallos se registran y no
        afectan a las demas.
        """
        semaphore = asyncio.Semaphore(max(1, self._settings.FOLDER_SYNC_CONCURRENCY))

        async def _one(label: str, url_or_id: str) -> None:
            async with semaphore:
                try:
                    result.synced.append(await self._sync_isolated(url_or_id))
                except Exception as e:
                    result.failed[label] = str(e)
                    logger.error(f"Error sincronizando la lista {label}: {e}")

        await asyncio.gather(*(_one(label, target) for label, target in targets))
        return result

    async def sync_folder(self, folder_url_or_id: str) -> FolderSyncResult:
        """
        Sincroniza todas las listas (no archivadas) de una carpeta.

        Raises:
            RemoteAPIError: Si falla el listado de la carpeta
        """
        folder_id = extract_folder_id(folder_url_or_id) or folder_url_or_id.strip()
        remote_lists = await self.client.get_folder_lists(folder_id)
        logger.info(f"Carpeta {folder_id}: {len(remote_lists)} listas a sincronizar")

        result = await self._run_batch(
            FolderSyncResult(folder_id=folder_id),
            [(rl.id, rl.id) for rl in remote_lists],
        )
        logger.info(
            f"Sync de carpeta {folder_id} terminada: {len(result.synced)} ok, {len(result.failed)} con error"
        )
        return result

    async def sync_all_lists(self) -> FolderSyncResult:
        """Re-sincroniza todas las listas guardadas (entrada del scheduler)."""
        stored = await self.repository.get_all_lists()
        targets = [(lst.clickup_list_id, lst.url or lst.clickup_list_id) for lst in stored]
        # Cada lista abre su propia sesion: se libera la conexion de esta
        await self.db.close()

        logger.info(f"Sync programada: {len(targets)} listas guardadas")
        return await self._run_batch(FolderSyncResult(folder_id=None), targets)

    async def add_from_url(self, url: str) -> Union[ListSyncResult, FolderSyncResult]:
        """Agrega una lista o carpeta a partir de su URL de ClickUp."""
        if not is_clickup_reference(url):
            raise ResolutionError(f"La URL no corresponde a una lista, vista o carpeta de ClickUp: {url}")

        if extract_folder_id(url):
            return await self.sync_folder(url)
        return await self.sync_list(url)

    async def resync_list(self, list_id: str) -> ListSyncResult:
        """Re-sync manual de una lista guardada (ID local o de ClickUp)."""
        stored = await self.repository.get_list(list_id)
        if stored is None:
            raise EntityNotFoundException("Lista", list_id)
        return await self.sync_list(stored.url or stored.clickup_list_id)

    # ------------------------------------------------------------------
    # Mantenimiento
    # ------------------------------------------------------------------

    async def rename_list(self, list_id: str, name: str) -> ListModel:
        if not name or not name.strip():
            raise ValidationException("El nombre no puede estar vacio", field="name")
        renamed = await self.repository.rename_list(list_id, name.strip())
        if renamed is None:
            raise EntityNotFoundException("Lista", list_id)
        await self.db.commit()
        return renamed

    async def delete_list(self, list_id: str) -> str:
        """
        Elimina una lista guardada.

        Primero borra los webhooks en ClickUp (los errores solo se loguean)
        y despues la fila; tareas, comentarios y webhooks locales caen por
        cascade.
        """
        stored = await self.repository.get_list(list_id)
        if stored is None:
            raise EntityNotFoundException("Lista", list_id)

        for registration in await self.repository.get_webhook_registrations(stored.id):
            try:
                await self.client.delete_webhook(registration.clickup_webhook_id)
                logger.info(f"Webhook {registration.clickup_webhook_id} eliminado en ClickUp")
            except RemoteAPIError as e:
                logger.warning(f"No se pudo eliminar el webhook {registration.clickup_webhook_id}: {e.message}")

        clickup_list_id = stored.clickup_list_id
        await self.repository.delete_list(stored.id)
        await self.db.commit()
        logger.info(f"Lista {clickup_list_id} eliminada")
        return clickup_list_id

    async def delete_folder(self, folder_id: str) -> FolderDeleteResult:
        """Elimina todas las listas guardadas de una carpeta, aislando fallos."""
        stored = await self.repository.get_lists_in_folder(folder_id)
        if not stored:
            raise EntityNotFoundException("Carpeta", folder_id)

        result = FolderDeleteResult(folder_id=folder_id)
        targets = [(lst.id, lst.clickup_list_id) for lst in stored]
        for local_id, clickup_id in targets:
            try:
                await self.delete_list(local_id)
                result.deleted.append(clickup_id)
            except Exception as e:
                await self.db.rollback()
                result.failed[clickup_id] = str(e)
                logger.error(f"Error eliminando la lista {clickup_id} de la carpeta {folder_id}: {e}")
        return result
