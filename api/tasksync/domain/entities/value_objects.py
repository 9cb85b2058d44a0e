"""
Value objects para los campos anidados de ClickUp (assignees, watchers,
tags, creator, status, priority).

En la base se guardan como JSON, pero nunca como blobs sin validar:
cada entrada pasa por estos tipos antes de persistirse. Las entradas
malformadas (sin id o sin nombre) se descartan con un warning.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Iterable, Optional

from loguru import logger


@dataclass(frozen=True)
class UserRef:
    """Usuario de ClickUp (assignee, watcher, creator, autor de comentario)."""

    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    color: Optional[str] = None
    initials: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Any) -> Optional["UserRef"]:
        if not isinstance(data, dict) or data.get("id") in (None, ""):
            return None
        return cls(
            id=str(data["id"]),
            username=data.get("username"),
            email=data.get("email"),
            color=data.get("color"),
            initials=data.get("initials"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TagRef:
    """Tag de tarea."""

    name: str
    tag_fg: Optional[str] = None
    tag_bg: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Any) -> Optional["TagRef"]:
        if not isinstance(data, dict) or not data.get("name"):
            return None
        return cls(name=str(data["name"]), tag_fg=data.get("tag_fg"), tag_bg=data.get("tag_bg"))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StatusInfo:
    """Estado de una tarea: nombre + tipo + color."""

    status: Optional[str] = None
    type: Optional[str] = None
    color: Optional[str] = None
    orderindex: Optional[int] = None

    @classmethod
    def from_payload(cls, data: Any) -> "StatusInfo":
        if not isinstance(data, dict):
            return cls()
        orderindex = data.get("orderindex")
        try:
            orderindex = int(orderindex) if orderindex is not None else None
        except (ValueError, TypeError):
            orderindex = None
        return cls(
            status=data.get("status"),
            type=data.get("type"),
            color=data.get("color"),
            orderindex=orderindex,
        )


@dataclass(frozen=True)
class PriorityInfo:
    """Prioridad de una tarea (ClickUp la envia como null si no tiene)."""

    priority: Optional[str] = None
    id: Optional[str] = None
    color: Optional[str] = None
    orderindex: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Any) -> "PriorityInfo":
        if not isinstance(data, dict):
            return cls()
        return cls(
            priority=data.get("priority"),
            id=str(data["id"]) if data.get("id") is not None else None,
            color=data.get("color"),
            orderindex=str(data["orderindex"]) if data.get("orderindex") is not None else None,
        )


def parse_users(items: Optional[Iterable[Any]], *, field: str) -> tuple[UserRef, ...]:
    """
    Parsea una coleccion de usuarios descartando entradas invalidas.

    Los duplicados (mismo id) se colapsan: assignees/watchers son conjuntos.
    """
    result: dict[str, UserRef] = {}
    for raw in items or []:
        user = UserRef.from_payload(raw)
        if user is None:
            logger.warning(f"Entrada de '{field}' descartada por no tener id: {raw!r}")
            continue
        result.setdefault(user.id, user)
    return tuple(result.values())


def parse_tags(items: Optional[Iterable[Any]]) -> tuple[TagRef, ...]:
    """Parsea tags descartando entradas sin nombre y duplicados."""
    result: dict[str, TagRef] = {}
    for raw in items or []:
        tag = TagRef.from_payload(raw)
        if tag is None:
            logger.warning(f"Tag descartado por no tener nombre: {raw!r}")
            continue
        result.setdefault(tag.name, tag)
    return tuple(result.values())
