"""
Tipos y parsers puros para las respuestas de ClickUp.

Se mantienen libres de I/O para poder testearlos facilmente. Los campos
anidados (usuarios, tags, estado, prioridad) pasan por los value objects
del dominio; las fechas (ms desde epoch) se convierten a datetime UTC.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from tasksync.domain.entities.value_objects import (
    PriorityInfo,
    StatusInfo,
    TagRef,
    UserRef,
    parse_tags,
    parse_users,
)
from tasksync.shared.utils.datetime_utils import DateTimeUtils


def _opt_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _opt_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (ValueError, TypeError):
        return None


def _opt_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def _ref_id(data: Any) -> Optional[str]:
    """Extrae `id` de referencias anidadas tipo {"id": ..., "name": ...}."""
    if isinstance(data, dict):
        return _opt_str(data.get("id"))
    return None


@dataclass(frozen=True)
class RemoteWorkspace:
    id: str
    name: str

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "RemoteWorkspace":
        return cls(id=str(data["id"]), name=data.get("name") or "")


@dataclass(frozen=True)
class RemoteSpace:
    id: str
    name: str

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "RemoteSpace":
        return cls(id=str(data["id"]), name=data.get("name") or "")


@dataclass(frozen=True)
class RemoteList:
    """Metadata de una lista (GET /list/{id} o /folder/{id}/list)."""

    id: str
    name: str
    space_id: Optional[str] = None
    space_name: Optional[str] = None
    folder_id: Optional[str] = None
    folder_name: Optional[str] = None
    folder_hidden: bool = False
    orderindex: Optional[int] = None
    archived: bool = False
    task_count: Optional[int] = None
    permission_level: Optional[str] = None
    statuses: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "RemoteList":
        folder = data.get("folder") or {}
        space = data.get("space") or {}
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            space_id=_ref_id(space),
            space_name=space.get("name") if isinstance(space, dict) else None,
            folder_id=_ref_id(folder),
            folder_name=folder.get("name") if isinstance(folder, dict) else None,
            folder_hidden=bool(folder.get("hidden")) if isinstance(folder, dict) else False,
            orderindex=_opt_int(data.get("orderindex")),
            archived=bool(data.get("archived", False)),
            task_count=_opt_int(data.get("task_count")),
            permission_level=data.get("permission_level"),
            statuses=list(data.get("statuses") or []),
        )


@dataclass(frozen=True)
class RemoteTask:
    """Tarea completa de ClickUp."""

    id: str
    name: str
    list_id: Optional[str]
    status: StatusInfo
    priority: PriorityInfo
    custom_id: Optional[str] = None
    description: Optional[str] = None
    text_content: Optional[str] = None
    orderindex: Optional[str] = None
    parent: Optional[str] = None
    archived: bool = False
    due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    date_created: Optional[datetime] = None
    date_updated: Optional[datetime] = None
    date_closed: Optional[datetime] = None
    date_done: Optional[datetime] = None
    creator: Optional[UserRef] = None
    assignees: tuple[UserRef, ...] = ()
    watchers: tuple[UserRef, ...] = ()
    tags: tuple[TagRef, ...] = ()
    checklists: list[Any] = field(default_factory=list)
    custom_fields: list[Any] = field(default_factory=list)
    dependencies: list[Any] = field(default_factory=list)
    linked_tasks: list[Any] = field(default_factory=list)
    points: Optional[float] = None
    time_estimate: Optional[int] = None
    time_spent: Optional[int] = None
    team_id: Optional[str] = None
    permission_level: Optional[str] = None
    url: Optional[str] = None

    @property
    def is_subtask(self) -> bool:
        return self.parent is not None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "RemoteTask":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            list_id=_ref_id(data.get("list")),
            status=StatusInfo.from_payload(data.get("status")),
            priority=PriorityInfo.from_payload(data.get("priority")),
            custom_id=_opt_str(data.get("custom_id")),
            description=data.get("markdown_description") or data.get("description") or None,
            text_content=data.get("text_content") or None,
            orderindex=_opt_str(data.get("orderindex")),
            parent=_opt_str(data.get("parent")),
            archived=bool(data.get("archived", False)),
            due_date=DateTimeUtils.from_epoch_ms(data.get("due_date")),
            start_date=DateTimeUtils.from_epoch_ms(data.get("start_date")),
            date_created=DateTimeUtils.from_epoch_ms(data.get("date_created")),
            date_updated=DateTimeUtils.from_epoch_ms(data.get("date_updated")),
            date_closed=DateTimeUtils.from_epoch_ms(data.get("date_closed")),
            date_done=DateTimeUtils.from_epoch_ms(data.get("date_done")),
            creator=UserRef.from_payload(data.get("creator")),
            assignees=parse_users(data.get("assignees"), field="assignees"),
            watchers=parse_users(data.get("watchers"), field="watchers"),
            tags=parse_tags(data.get("tags")),
            checklists=list(data.get("checklists") or []),
            custom_fields=list(data.get("custom_fields") or []),
            dependencies=list(data.get("dependencies") or []),
            linked_tasks=list(data.get("linked_tasks") or []),
            points=_opt_float(data.get("points")),
            time_estimate=_opt_int(data.get("time_estimate")),
            time_spent=_opt_int(data.get("time_spent")),
            team_id=_opt_str(data.get("team_id")),
            permission_level=data.get("permission_level"),
            url=data.get("url"),
        )


@dataclass(frozen=True)
class RemoteComment:
    id: str
    text: Optional[str]
    author: Optional[UserRef]
    resolved: bool = False
    date: Optional[datetime] = None
    assignee: Optional[dict[str, Any]] = None
    assigned_by: Optional[dict[str, Any]] = None
    reactions: list[Any] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "RemoteComment":
        text = data.get("comment_text")
        if not text:
            # Formato "rich": lista de bloques {"text": ...}
            blocks = data.get("comment") or []
            text = "".join(b.get("text", "") for b in blocks if isinstance(b, dict)) or None
        return cls(
            id=str(data["id"]),
            text=text,
            author=UserRef.from_payload(data.get("user")),
            resolved=bool(data.get("resolved", False)),
            date=DateTimeUtils.from_epoch_ms(data.get("date")),
            assignee=data.get("assignee"),
            assigned_by=data.get("assigned_by"),
            reactions=list(data.get("reactions") or []),
        )


@dataclass(frozen=True)
class RemoteWebhook:
    id: str
    endpoint: Optional[str] = None
    events: tuple[str, ...] = ()
    list_id: Optional[str] = None
    health_status: Optional[str] = None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "RemoteWebhook":
        # POST /webhook responde {"id": ..., "webhook": {...}}; GET devuelve el objeto plano
        inner = data.get("webhook") if isinstance(data.get("webhook"), dict) else data
        webhook_id = data.get("id") or inner.get("id")
        if not webhook_id:
            raise ValueError("Respuesta de webhook sin 'id'")
        health = inner.get("health") or {}
        return cls(
            id=str(webhook_id),
            endpoint=inner.get("endpoint"),
            events=tuple(inner.get("events") or ()),
            list_id=_opt_str(inner.get("list_id")),
            health_status=health.get("status") if isinstance(health, dict) else None,
        )


@dataclass(frozen=True)
class RemoteView:
    id: str
    parent_id: Optional[str] = None
    parent_type: Optional[int] = None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "RemoteView":
        view = data.get("view") if isinstance(data.get("view"), dict) else data
        parent = view.get("parent") or {}
        parent_id = _ref_id(parent) or _opt_str(view.get("list_id"))
        return cls(
            id=str(view.get("id", "")),
            parent_id=parent_id,
            parent_type=_opt_int(parent.get("type")) if isinstance(parent, dict) else None,
        )
