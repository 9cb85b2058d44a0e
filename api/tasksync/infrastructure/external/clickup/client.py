"""
Cliente de la API REST v2 de ClickUp (httpx, async).

Requisitos cubiertos:
- rate limiting: cada llamada espera slot en el limiter por minuto y en
  el de ventana corta antes de salir
- paginacion completa de tareas (el caller recibe la coleccion entera)
- errores tipados: cualquier no-2xx -> RemoteAPIError(status, body)
- timeout por request en la capa HTTP
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx
from loguru import logger

from tasksync.core.config import Settings
from tasksync.infrastructure.external.clickup.types import (
    RemoteComment,
    RemoteList,
    RemoteSpace,
    RemoteTask,
    RemoteView,
    RemoteWebhook,
    RemoteWorkspace,
)
from tasksync.infrastructure.rate_limit.rate_limiter import RateLimiter
from tasksync.shared.exceptions.sync import RemoteAPIError


MINUTE_BUCKET = "clickup-api-minute"
SHORT_BUCKET = "clickup-api"

DEFAULT_WEBHOOK_EVENTS: tuple[str, ...] = (
    "taskCreated",
    "taskUpdated",
    "taskDeleted",
    "taskCommentPosted",
    "taskCommentUpdated",
    "taskCommentDeleted",
)


@dataclass(frozen=True)
class ClickUpCredentials:
    token: str
    client_id: Optional[str] = None


@dataclass(frozen=True)
class ClickUpRateLimits:
    """Par de limiters que protegen al cliente: ambos deben admitir."""

    per_minute: RateLimiter
    short_window: RateLimiter

    @classmethod
    def from_settings(cls, settings: Settings) -> "ClickUpRateLimits":
        return cls(
            per_minute=RateLimiter(
                settings.CLICKUP_RATE_LIMIT_PER_MINUTE,
                60_000,
                poll_interval_s=settings.RATE_LIMIT_POLL_INTERVAL_S,
            ),
            short_window=RateLimiter(
                settings.CLICKUP_SHORT_WINDOW_MAX_REQUESTS,
                settings.CLICKUP_SHORT_WINDOW_MS,
                poll_interval_s=settings.RATE_LIMIT_POLL_INTERVAL_S,
            ),
        )


class ClickUpClient:
    """
    Cliente HTTP de ClickUp. Un metodo por recurso remoto.

    Importante:
    - La instancia (y sus limiters) debe compartirse entre full sync y
      webhooks dentro del proceso; crear clientes con limiters propios
      permitiria exceder la cuota.
    - Al listar tareas se envia include_closed=true: sin ese flag ClickUp
      omite las tareas cerradas y localmente quedarian como abiertas.
    """

    def __init__(
        self,
        credentials: ClickUpCredentials,
        *,
        rate_limits: ClickUpRateLimits,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = "https://api.clickup.com/api/v2",
        timeout_s: float = 30.0,
        page_size: int = 100,
    ) -> None:
        self._creds = credentials
        self._limits = rate_limits
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self.page_size = page_size
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_s)

    async def aclose(self) -> None:
        """Cierra el cliente HTTP si fue creado por esta instancia."""
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "ClickUpClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Transporte
    # ------------------------------------------------------------------

    async def _request_json(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Request HTTP con rate limiting.

        Estrategia:
        - Espera slot en ambos buckets (sin timeout; ver RateLimiter)
        - 2xx: retorna JSON (dict vacio si no hay body)
        - cualquier otro status: RemoteAPIError con status y body
        - error de transporte (timeout, DNS...): RemoteAPIError status=0
        """
        await self._limits.per_minute.await_slot(MINUTE_BUCKET)
        await self._limits.short_window.await_slot(SHORT_BUCKET)

        headers = {
            "Authorization": self._creds.token,
            "Content-Type": "application/json",
        }
        url = f"{self._base_url}{endpoint}"

        try:
            resp = await self._http.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self._timeout_s,
            )
        except httpx.HTTPError as e:
            raise RemoteAPIError(0, f"{type(e).__name__}: {e}", endpoint) from e

        if not (200 <= resp.status_code < 300):
            raise RemoteAPIError(resp.status_code, resp.text, endpoint)

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteAPIError(resp.status_code, f"Respuesta no JSON: {resp.text[:200]}", endpoint) from e

    # ------------------------------------------------------------------
    # Workspaces / spaces / folders / lists
    # ------------------------------------------------------------------

    async def get_workspaces(self) -> list[RemoteWorkspace]:
        payload = await self._request_json("GET", "/team")
        return [RemoteWorkspace.from_payload(t) for t in payload.get("teams") or []]

    async def get_space(self, space_id: str) -> RemoteSpace:
        payload = await self._request_json("GET", f"/space/{space_id}")
        return RemoteSpace.from_payload(payload)

    async def get_folder_lists(self, folder_id: str, archived: bool = False) -> list[RemoteList]:
        payload = await self._request_json(
            "GET",
            f"/folder/{folder_id}/list",
            params={"archived": str(archived).lower()},
        )
        return [RemoteList.from_payload(item) for item in payload.get("lists") or []]

    async def get_list(self, list_id: str) -> RemoteList:
        payload = await self._request_json("GET", f"/list/{list_id}")
        return RemoteList.from_payload(payload)

    async def get_view(self, view_id: str) -> RemoteView:
        payload = await self._request_json("GET", f"/view/{view_id}")
        return RemoteView.from_payload(payload)

    # ------------------------------------------------------------------
    # Tasks / comments
    # ------------------------------------------------------------------

    async def get_tasks(self, list_id: str, archived: bool = False) -> list[RemoteTask]:
        """
        Trae TODAS las tareas de una lista (incluye subtareas y cerradas).

        Pagina hasta que una pagina devuelve menos filas que page_size.
        """
        all_tasks: list[RemoteTask] = []
        page = 0

        while True:
            payload = await self._request_json(
                "GET",
                f"/list/{list_id}/task",
                params={
                    "archived": str(archived).lower(),
                    "include_closed": "true",
                    "include_markdown_description": "true",
                    "subtasks": "true",
                    "page": page,
                },
            )
            rows = payload.get("tasks") or []
            all_tasks.extend(RemoteTask.from_payload(t) for t in rows)

            if len(rows) < self.page_size or payload.get("last_page") is True:
                break
            page += 1

        subtasks = sum(1 for t in all_tasks if t.is_subtask)
        logger.info(
            f"ClickUp: {len(all_tasks)} tareas obtenidas de la lista {list_id} "
            f"({len(all_tasks) - subtasks} principales, {subtasks} subtareas, {page + 1} pagina(s))"
        )
        return all_tasks

    async def get_task(self, task_id: str) -> RemoteTask:
        payload = await self._request_json(
            "GET",
            f"/task/{task_id}",
            params={"include_markdown_description": "true", "include_subtasks": "true"},
        )
        return RemoteTask.from_payload(payload)

    async def get_comments(self, task_id: str) -> list[RemoteComment]:
        payload = await self._request_json("GET", f"/task/{task_id}/comment")
        return [RemoteComment.from_payload(c) for c in payload.get("comments") or []]

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    async def create_webhook(
        self,
        workspace_id: str,
        list_id: str,
        callback_url: str,
        events: Sequence[str] = DEFAULT_WEBHOOK_EVENTS,
    ) -> RemoteWebhook:
        """Crea un webhook en ClickUp acotado a una lista."""
        body: dict[str, Any] = {
            "endpoint": callback_url,
            "events": list(events),
            "list_id": list_id,
        }
        # client_id es opcional: solo se envia si esta configurado
        if self._creds.client_id:
            body["client_id"] = self._creds.client_id

        payload = await self._request_json("POST", f"/team/{workspace_id}/webhook", json_body=body)
        return RemoteWebhook.from_payload(payload)

    async def delete_webhook(self, webhook_id: str) -> None:
        await self._request_json("DELETE", f"/webhook/{webhook_id}")

    async def get_webhook(self, workspace_id: str, webhook_id: str) -> Optional[RemoteWebhook]:
        """ClickUp no expone GET por id: se busca en los webhooks del workspace."""
        for webhook in await self.get_team_webhooks(workspace_id):
            if webhook.id == webhook_id:
                return webhook
        return None

    async def get_team_webhooks(self, workspace_id: str) -> list[RemoteWebhook]:
        payload = await self._request_json("GET", f"/team/{workspace_id}/webhook")
        return [RemoteWebhook.from_payload(w) for w in payload.get("webhooks") or []]


def build_clickup_client(
    settings: Settings,
    *,
    rate_limits: Optional[ClickUpRateLimits] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ClickUpClient:
    """
    Constructor "oficial" del cliente a partir de Settings.

    Si no se pasan rate_limits se crean nuevos: llamar una sola vez por
    proceso (startup de la app o main del script) y reutilizar la instancia.
    """
    if not settings.CLICKUP_API_TOKEN:
        logger.warning("CLICKUP_API_TOKEN no configurado: las llamadas a ClickUp fallaran con 401")

    return ClickUpClient(
        ClickUpCredentials(
            token=settings.CLICKUP_API_TOKEN,
            client_id=settings.CLICKUP_CLIENT_ID or None,
        ),
        rate_limits=rate_limits or ClickUpRateLimits.from_settings(settings),
        http_client=http_client,
        base_url=settings.CLICKUP_BASE_URL,
        timeout_s=settings.HTTP_TIMEOUT_S,
        page_size=settings.CLICKUP_TASKS_PAGE_SIZE,
    )
