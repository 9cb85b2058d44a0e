"""
Tests unitarios para el procesamiento de eventos de webhook.
"""
import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from tasksync.application.use_cases.list_sync_use_cases import ListSyncUseCases
from tasksync.application.use_cases.webhook_use_cases import WebhookDispatcher, WebhookEventProcessor
from tasksync.infrastructure.database.models import CommentModel
from tasksync.infrastructure.repositories.task_store_repository import TaskStoreRepository
from tasksync.shared.exceptions.sync import StoreError
from tasksync.shared.utils.datetime_utils import DateTimeUtils


JAN_5 = "1736035200000"
JAN_12 = "1736640000000"


async def _comment_texts(db_session, local_task_id: str) -> list[str]:
    result = await db_session.execute(
        select(CommentModel.text).where(CommentModel.task_id == local_task_id)
    )
    return list(result.scalars().all())


@pytest.fixture
def processor(fake_clickup, session_factory) -> WebhookEventProcessor:
    return WebhookEventProcessor(fake_clickup, session_factory)


@pytest.fixture
async def synced_list(db_session, fake_clickup, session_factory, test_settings):
    """Lista L1 ya sincronizada con la tarea T3 (due 2025-01-05)."""
    fake_clickup.add_list("L1")
    fake_clickup.add_task("L1", "T3", due_date=JAN_5)
    use_cases = ListSyncUseCases(db_session, fake_clickup, session_factory=session_factory, app_settings=test_settings)
    result = await use_cases.sync_list("L1")
    await db_session.commit()
    return result


class TestTaskEvents:
    """Eventos de tareas."""

    @pytest.mark.asyncio
    async def test_due_date_change_writes_history(self, processor, fake_clickup, synced_list, db_session) -> None:
        fake_clickup.tasks["L1"]["T3"]["due_date"] = JAN_12

        result = await processor.handle_event({
            "event": "taskUpdated",
            "task_id": "T3",
            "webhook_id": "wh-1",
            "history_items": [{"field": "due_date", "user": {"id": 5, "username": "marta"}}],
        })

        assert result == {"success": True, "handled": True, "event": "taskUpdated"}
        repo = TaskStoreRepository(db_session)
        history = await repo.get_due_date_history("T3")
        assert len(history) == 1
        assert DateTimeUtils.ensure_utc(history[0].old_due_date) == datetime(2025, 1, 5, tzinfo=timezone.utc)
        assert DateTimeUtils.ensure_utc(history[0].new_due_date) == datetime(2025, 1, 12, tzinfo=timezone.utc)
        assert history[0].changed_by["username"] == "marta"
        task = await repo.get_task_by_remote_id("T3")
        assert DateTimeUtils.ensure_utc(task.due_date) == datetime(2025, 1, 12, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_history_failure_does_not_block_task_update(
        self, processor, fake_clickup, synced_list, db_session, monkeypatch
    ) -> None:
        """Si el historial de due date falla, la tarea igual se actualiza."""
        monkeypatch.setattr(
            TaskStoreRepository,
            "append_due_date_history",
            AsyncMock(side_effect=StoreError("disco lleno", operation="append_due_date_history")),
        )
        fake_clickup.tasks["L1"]["T3"]["due_date"] = JAN_12

        result = await processor.handle_event({"event": "taskUpdated", "task_id": "T3"})

        assert result == {"success": True, "handled": True, "event": "taskUpdated"}
        repo = TaskStoreRepository(db_session)
        task = await repo.get_task_by_remote_id("T3")
        assert DateTimeUtils.ensure_utc(task.due_date) == datetime(2025, 1, 12, tzinfo=timezone.utc)
        assert await repo.get_due_date_history("T3") == []

    @pytest.mark.asyncio
    async def test_update_without_due_change_adds_no_history(self, processor, fake_clickup, synced_list, db_session) -> None:
        fake_clickup.tasks["L1"]["T3"]["name"] = "Renombrada"

        await processor.handle_event({"event": "taskUpdated", "task_id": "T3"})

        repo = TaskStoreRepository(db_session)
        assert await repo.get_due_date_history("T3") == []
        assert (await repo.get_task_by_remote_id("T3")).name == "Renombrada"

    @pytest.mark.asyncio
    async def test_task_created(self, processor, fake_clickup, synced_list, db_session) -> None:
        fake_clickup.add_task("L1", "T4")

        result = await processor.handle_event({"event": "taskCreated", "task_id": "T4", "list_id": "L1"})

        assert result["handled"] is True
        assert await TaskStoreRepository(db_session).get_task_by_remote_id("T4") is not None

    @pytest.mark.asyncio
    async def test_task_for_unsynced_list_is_ignored(self, processor, fake_clickup, synced_list, db_session) -> None:
        fake_clickup.add_list("L9")
        fake_clickup.add_task("L9", "T9")

        result = await processor.handle_event({"event": "taskCreated", "task_id": "T9"})

        assert result["success"] is True
        assert "error" not in result
        assert await TaskStoreRepository(db_session).get_task_by_remote_id("T9") is None

    @pytest.mark.asyncio
    async def test_task_deleted(self, processor, synced_list, db_session) -> None:
        result = await processor.handle_event({"event": "taskDeleted", "task_id": "T3"})

        assert result["handled"] is True
        assert await TaskStoreRepository(db_session).get_task_by_remote_id("T3") is None

    @pytest.mark.asyncio
    async def test_remote_error_is_swallowed(self, processor, synced_list) -> None:
        result = await processor.handle_event({"event": "taskUpdated", "task_id": "desconocida"})

        assert result["success"] is True
        assert "404" in result["error"]


class TestCommentEvents:
    @pytest.mark.asyncio
    async def test_comment_posted_and_deleted(self, processor, fake_clickup, synced_list, db_session) -> None:
        fake_clickup.add_comment("T3", "c-1", "Listo para revisar")

        await processor.handle_event({
            "event": "taskCommentPosted",
            "task_id": "T3",
            "history_items": [{"comment": {"id": "c-1"}, "user": {"id": 7}}],
        })

        repo = TaskStoreRepository(db_session)
        task = await repo.get_task_by_remote_id("T3")
        assert await _comment_texts(db_session, task.id) == ["Listo para revisar"]

        await processor.handle_event({"event": "taskCommentDeleted", "task_id": "T3", "comment_id": "c-1"})

        assert await _comment_texts(db_session, task.id) == []

    @pytest.mark.asyncio
    async def test_comment_on_unknown_task_is_ignored(self, processor, fake_clickup, synced_list) -> None:
        result = await processor.handle_event({"event": "taskCommentPosted", "task_id": "T404", "comment_id": "c-9"})

        assert result["success"] is True
        assert "get_comments:T404" not in fake_clickup.calls


class TestUnhandledEvents:
    @pytest.mark.asyncio
    async def test_unknown_event_type(self, processor) -> None:
        result = await processor.handle_event({"event": "listUpdated", "list_id": "L1"})

        assert result == {"success": True, "handled": False, "event": "listUpdated"}

    @pytest.mark.asyncio
    async def test_missing_event_type(self, processor) -> None:
        assert await processor.handle_event({"task_id": "T3"}) == {"success": True, "handled": False}

    @pytest.mark.asyncio
    async def test_event_as_object(self, processor, synced_list, db_session) -> None:
        result = await processor.handle_event({"event": {"type": "taskDeleted"}, "task_id": "T3"})

        assert result["event"] == "taskDeleted"
        assert await TaskStoreRepository(db_session).get_task_by_remote_id("T3") is None


class TestWebhookDispatcher:
    @pytest.mark.asyncio
    async def test_submit_and_drain(self) -> None:
        processor = AsyncMock()
        processor.handle_event.return_value = {"success": True}
        dispatcher = WebhookDispatcher(processor)

        dispatcher.submit({"event": "taskUpdated", "task_id": "T3"})
        dispatcher.submit({"event": "taskDeleted", "task_id": "T4"})
        await dispatcher.drain(timeout=1)

        assert dispatcher.pending == 0
        assert processor.handle_event.await_count == 2

    @pytest.mark.asyncio
    async def test_unhandled_exception_is_contained(self) -> None:
        processor = AsyncMock()
        processor.handle_event.side_effect = RuntimeError("boom")
        dispatcher = WebhookDispatcher(processor)

        task = dispatcher.submit({"event": "taskUpdated"})
        await dispatcher.drain(timeout=1)

        assert task.done()
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_drain_with_nothing_pending(self) -> None:
        dispatcher = WebhookDispatcher(AsyncMock())

        await asyncio.wait_for(dispatcher.drain(), timeout=1)
