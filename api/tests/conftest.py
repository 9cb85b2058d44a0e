"""
Configuración de fixtures para pytest.
"""
import os

# El engine global se crea al importar tasksync: forzar SQLite antes
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CLICKUP_WEBHOOK_CALLBACK_URL", "")
os.environ.setdefault("CLICKUP_WEBHOOK_SECRET", "")

from typing import Any, AsyncGenerator, Dict, List, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tasksync.core.config import Settings
from tasksync.infrastructure.database.session import Base, enable_sqlite_foreign_keys
from tasksync.infrastructure.external.clickup.types import (
    RemoteComment,
    RemoteList,
    RemoteSpace,
    RemoteTask,
    RemoteView,
    RemoteWebhook,
    RemoteWorkspace,
)
from tasksync.shared.exceptions.sync import RemoteAPIError


# URL de base de datos de prueba
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """
    Session factory sobre una base SQLite en memoria.

    StaticPool comparte una unica conexion: todas las sesiones del test
    ven los mismos datos.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Sesión de base de datos para tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def test_settings() -> Settings:
    """Settings aislados del entorno (sin callback de webhook por defecto)."""
    return Settings(
        DATABASE_URL=TEST_DATABASE_URL,
        CLICKUP_API_TOKEN="pk_test",
        CLICKUP_WEBHOOK_CALLBACK_URL="",
        CLICKUP_WEBHOOK_SECRET="",
        SYNC_UPSERT_BATCH_SIZE=100,
        SYNC_COMMENTS_ON_FULL_SYNC=False,
        FOLDER_SYNC_CONCURRENCY=1,
    )


class FakeClickUpClient:
    """
    Doble en memoria del cliente de ClickUp.

    Guarda payloads crudos (como los devuelve la API) y los parsea con los
    mismos tipos que el cliente real.
    """

    def __init__(self) -> None:
        self.workspaces: List[Dict[str, Any]] = [{"id": "ws-1", "name": "Workspace"}]
        self.lists: Dict[str, Dict[str, Any]] = {}
        self.tasks: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.comments: Dict[str, List[Dict[str, Any]]] = {}
        self.views: Dict[str, Dict[str, Any]] = {}
        self.folders: Dict[str, List[str]] = {}
        self.webhooks: Dict[str, Dict[str, Any]] = {}
        self.deleted_webhooks: List[str] = []
        self.calls: List[str] = []
        self.fail_create_webhook = False
        self.fail_delete_webhook = False
        self.failing_lists: set = set()
        self.failing_comment_tasks: set = set()

    # --- helpers de setup ---

    def add_list(self, list_id: str, name: str = "Lista", folder_id: Optional[str] = None) -> None:
        folder = {"id": folder_id, "name": f"Carpeta {folder_id}", "hidden": False} if folder_id else {"hidden": True}
        self.lists[list_id] = {
            "id": list_id,
            "name": name,
            "folder": folder,
            "space": {"id": "sp-1", "name": "Space"},
            "statuses": [{"status": "to do", "type": "open"}],
        }
        self.tasks.setdefault(list_id, {})
        if folder_id:
            self.folders.setdefault(folder_id, []).append(list_id)

    def add_task(
        self,
        list_id: str,
        task_id: str,
        name: Optional[str] = None,
        *,
        due_date: Optional[str] = None,
        parent: Optional[str] = None,
        status: str = "to do",
        status_type: str = "open",
    ) -> Dict[str, Any]:
        payload = {
            "id": task_id,
            "name": name or f"Tarea {task_id}",
            "list": {"id": list_id},
            "status": {"status": status, "type": status_type, "color": "#d3d3d3", "orderindex": 0},
            "priority": None,
            "orderindex": "1.0",
            "parent": parent,
            "due_date": due_date,
            "assignees": [{"id": 1, "username": "ana"}],
            "tags": [],
            "url": f"https://app.clickup.com/t/{task_id}",
        }
        self.tasks.setdefault(list_id, {})[task_id] = payload
        return payload

    def remove_task(self, list_id: str, task_id: str) -> None:
        self.tasks[list_id].pop(task_id, None)

    def add_comment(self, task_id: str, comment_id: str, text: str = "Hola") -> None:
        self.comments.setdefault(task_id, []).append(
            {"id": comment_id, "comment_text": text, "user": {"id": 7, "username": "luis"}, "date": "1736035200000"}
        )

    # --- API ---

    async def get_workspaces(self) -> List[RemoteWorkspace]:
        self.calls.append("get_workspaces")
        return [RemoteWorkspace.from_payload(w) for w in self.workspaces]

    async def get_space(self, space_id: str) -> RemoteSpace:
        self.calls.append(f"get_space:{space_id}")
        return RemoteSpace(id=space_id, name="Space")

    async def get_list(self, list_id: str) -> RemoteList:
        self.calls.append(f"get_list:{list_id}")
        if list_id in self.failing_lists:
            raise RemoteAPIError(500, "boom", f"/list/{list_id}")
        if list_id not in self.lists:
            raise RemoteAPIError(404, "List not found", f"/list/{list_id}")
        return RemoteList.from_payload(self.lists[list_id])

    async def get_folder_lists(self, folder_id: str, archived: bool = False) -> List[RemoteList]:
        self.calls.append(f"get_folder_lists:{folder_id}")
        return [RemoteList.from_payload(self.lists[lid]) for lid in self.folders.get(folder_id, [])]

    async def get_view(self, view_id: str) -> RemoteView:
        self.calls.append(f"get_view:{view_id}")
        if view_id not in self.views:
            raise RemoteAPIError(404, "View not found", f"/view/{view_id}")
        return RemoteView.from_payload(self.views[view_id])

    async def get_tasks(self, list_id: str, archived: bool = False) -> List[RemoteTask]:
        self.calls.append(f"get_tasks:{list_id}")
        return [RemoteTask.from_payload(t) for t in self.tasks.get(list_id, {}).values()]

    async def get_task(self, task_id: str) -> RemoteTask:
        self.calls.append(f"get_task:{task_id}")
        for tasks in self.tasks.values():
            if task_id in tasks:
                return RemoteTask.from_payload(tasks[task_id])
        raise RemoteAPIError(404, "Task not found", f"/task/{task_id}")

    async def get_comments(self, task_id: str) -> List[RemoteComment]:
        self.calls.append(f"get_comments:{task_id}")
        if task_id in self.failing_comment_tasks:
            raise RemoteAPIError(500, "boom", f"/task/{task_id}/comment")
        return [RemoteComment.from_payload(c) for c in self.comments.get(task_id, [])]

    async def create_webhook(self, workspace_id: str, list_id: str, callback_url: str, events=()) -> RemoteWebhook:
        self.calls.append(f"create_webhook:{list_id}")
        if self.fail_create_webhook:
            raise RemoteAPIError(400, "Webhook limit reached", f"/team/{workspace_id}/webhook")
        webhook_id = f"wh-{len(self.webhooks) + 1}"
        self.webhooks[webhook_id] = {"id": webhook_id, "endpoint": callback_url, "list_id": list_id}
        return RemoteWebhook.from_payload({"id": webhook_id, "webhook": self.webhooks[webhook_id]})

    async def delete_webhook(self, webhook_id: str) -> None:
        self.calls.append(f"delete_webhook:{webhook_id}")
        if self.fail_delete_webhook:
            raise RemoteAPIError(404, "Webhook not found", f"/webhook/{webhook_id}")
        self.webhooks.pop(webhook_id, None)
        self.deleted_webhooks.append(webhook_id)


@pytest.fixture
def fake_clickup() -> FakeClickUpClient:
    return FakeClickUpClient()
