"""
Tests unitarios para el cliente HTTP de ClickUp.

Usa httpx.MockTransport: ninguna llamada sale a la red.
"""
import asyncio
import json
from typing import Callable, List, Optional

import httpx
import pytest

from tasksync.infrastructure.external.clickup.client import (
    ClickUpClient,
    ClickUpCredentials,
    ClickUpRateLimits,
)
from tasksync.infrastructure.rate_limit.rate_limiter import RateLimiter
from tasksync.shared.exceptions.sync import RemoteAPIError


BASE_URL = "https://api.test/api/v2"


def _task(task_id: str, parent=None) -> dict:
    return {"id": task_id, "name": f"Tarea {task_id}", "list": {"id": "L1"}, "parent": parent}


def make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    *,
    client_id=None,
    page_size: int = 2,
    rate_limits: Optional[ClickUpRateLimits] = None,
) -> ClickUpClient:
    limits = rate_limits or ClickUpRateLimits(
        per_minute=RateLimiter(10_000, 60_000),
        short_window=RateLimiter(10_000, 1_000),
    )
    return ClickUpClient(
        ClickUpCredentials(token="pk_test", client_id=client_id),
        rate_limits=limits,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        base_url=BASE_URL,
        page_size=page_size,
    )


class TestGetTasks:
    """Paginacion del listado de tareas."""

    @pytest.mark.asyncio
    async def test_paginates_until_short_page(self) -> None:
        requests: List[httpx.Request] = []
        pages = {"0": [_task("A"), _task("B")], "1": [_task("C", parent="A")]}

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"tasks": pages[request.url.params["page"]]})

        client = make_client(handler)
        tasks = await client.get_tasks("L1")

        assert [t.id for t in tasks] == ["A", "B", "C"]
        assert tasks[2].is_subtask
        assert len(requests) == 2
        params = requests[0].url.params
        assert params["include_closed"] == "true"
        assert params["subtasks"] == "true"
        assert params["archived"] == "false"
        assert requests[0].url.path == "/api/v2/list/L1/task"

    @pytest.mark.asyncio
    async def test_full_page_followed_by_empty_page(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.params["page"])
            if request.url.params["page"] == "0":
                return httpx.Response(200, json={"tasks": [_task("A"), _task("B")]})
            return httpx.Response(200, json={"tasks": []})

        tasks = await make_client(handler).get_tasks("L1")

        assert len(tasks) == 2
        assert calls == ["0", "1"]

    @pytest.mark.asyncio
    async def test_last_page_flag_stops(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.params["page"])
            return httpx.Response(200, json={"tasks": [_task("A"), _task("B")], "last_page": True})

        await make_client(handler).get_tasks("L1")

        assert calls == ["0"]


class TestErrors:
    @pytest.mark.asyncio
    async def test_non_2xx_raises_with_status_and_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text='{"err":"List not found"}')

        with pytest.raises(RemoteAPIError) as exc_info:
            await make_client(handler).get_list("nope")

        assert exc_info.value.status == 404
        assert "List not found" in exc_info.value.body
        assert exc_info.value.endpoint == "/list/nope"

    @pytest.mark.asyncio
    async def test_transport_error_maps_to_status_zero(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timeout", request=request)

        with pytest.raises(RemoteAPIError) as exc_info:
            await make_client(handler).get_workspaces()

        assert exc_info.value.status == 0

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>")

        with pytest.raises(RemoteAPIError):
            await make_client(handler).get_workspaces()


class TestRequests:
    @pytest.mark.asyncio
    async def test_authorization_header(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"teams": [{"id": 1, "name": "Acme"}]})

        workspaces = await make_client(handler).get_workspaces()

        assert seen["auth"] == "pk_test"
        assert workspaces[0].id == "1"

    @pytest.mark.asyncio
    async def test_create_webhook_sends_client_id_when_configured(self) -> None:
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            assert request.url.path == "/api/v2/team/W1/webhook"
            return httpx.Response(200, json={"id": "wh-1", "webhook": {"endpoint": "https://cb"}})

        webhook = await make_client(handler, client_id="cid").create_webhook("W1", "L1", "https://cb")
        await make_client(handler).create_webhook("W1", "L1", "https://cb")

        assert webhook.id == "wh-1"
        assert bodies[0]["client_id"] == "cid"
        assert bodies[0]["list_id"] == "L1"
        assert "taskUpdated" in bodies[0]["events"]
        assert "client_id" not in bodies[1]

    @pytest.mark.asyncio
    async def test_delete_webhook_empty_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "DELETE"
            return httpx.Response(200)

        await make_client(handler).delete_webhook("wh-1")

    @pytest.mark.asyncio
    async def test_get_webhook_searches_team(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"webhooks": [{"id": "wh-1"}, {"id": "wh-2", "list_id": "L2"}]})

        client = make_client(handler)

        assert (await client.get_webhook("W1", "wh-2")).list_id == "L2"
        assert await client.get_webhook("W1", "wh-9") is None


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class TestRateLimits:
    """Cada request necesita lugar en ambos buckets."""

    @staticmethod
    def _limits(clock: FakeClock, per_minute: int, short_window: int) -> ClickUpRateLimits:
        return ClickUpRateLimits(
            per_minute=RateLimiter(per_minute, 60_000, clock=clock, poll_interval_s=0.001, cleanup_probability=0),
            short_window=RateLimiter(short_window, 1_000, clock=clock, poll_interval_s=0.001, cleanup_probability=0),
        )

    @pytest.mark.asyncio
    async def test_short_window_holds_request(self) -> None:
        clock = FakeClock()
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"id": "L1", "name": "Backlog"})

        client = make_client(handler, rate_limits=self._limits(clock, per_minute=100, short_window=1))
        await client.get_list("L1")

        second = asyncio.create_task(client.get_list("L1"))
        await asyncio.sleep(0.05)
        assert not second.done()
        assert len(requests) == 1

        clock.advance(1_001)
        remote = await asyncio.wait_for(second, timeout=2)

        assert remote.id == "L1"
        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_per_minute_bucket_holds_request(self) -> None:
        clock = FakeClock()
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"id": "L1", "name": "Backlog"})

        client = make_client(handler, rate_limits=self._limits(clock, per_minute=1, short_window=100))
        await client.get_list("L1")

        second = asyncio.create_task(client.get_list("L1"))
        clock.advance(1_001)
        await asyncio.sleep(0.05)
        assert not second.done()
        assert len(requests) == 1

        clock.advance(60_000)
        await asyncio.wait_for(second, timeout=2)

        assert len(requests) == 2
