"""
Semantica de estados de tarea.

ClickUp permite estados personalizados por lista ("doing", "qa", "listo"...).
Para que los consumidores puedan filtrar sin conocer cada workflow, cada
tarea se guarda ademas con un estado canonico.

Prioridad del mapeo:
1. archived=True siempre gana (ARCHIVED)
2. Mapeo explicito por nombre
3. status_type de ClickUp (open/custom/closed/done)
4. Palabras clave como ultimo recurso
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class CanonicalStatus(str, Enum):
    """Estados canonicos del PMS."""
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    BLOCKED = "BLOCKED"
    DONE = "DONE"
    ARCHIVED = "ARCHIVED"


STATUS_MAPPING: dict[str, CanonicalStatus] = {
    "open": CanonicalStatus.TODO,
    "to do": CanonicalStatus.TODO,
    "in progress": CanonicalStatus.IN_PROGRESS,
    "doing": CanonicalStatus.IN_PROGRESS,
    "review": CanonicalStatus.REVIEW,
    "qa": CanonicalStatus.REVIEW,
    "blocked": CanonicalStatus.BLOCKED,
    "complete": CanonicalStatus.DONE,
    "closed": CanonicalStatus.DONE,
}

_STATUS_TYPE_MAPPING: dict[str, CanonicalStatus] = {
    "open": CanonicalStatus.TODO,
    "custom": CanonicalStatus.IN_PROGRESS,
    "closed": CanonicalStatus.DONE,
    "done": CanonicalStatus.DONE,
}


def normalize_status(
    status: Optional[str],
    status_type: Optional[str] = None,
    is_archived: bool = False,
) -> CanonicalStatus:
    """
    Normaliza un estado de ClickUp a un CanonicalStatus.

    Args:
        status: Nombre del estado en ClickUp (case-insensitive)
        status_type: Tipo de estado reportado por ClickUp
        is_archived: Si la tarea esta archivada

    Returns:
        CanonicalStatus correspondiente (TODO por defecto)
    """
    if is_archived:
        return CanonicalStatus.ARCHIVED

    normalized = (status or "").strip().lower()
    if normalized in STATUS_MAPPING:
        return STATUS_MAPPING[normalized]

    if status_type:
        mapped = _STATUS_TYPE_MAPPING.get(status_type.strip().lower())
        if mapped is not None:
            return mapped

    if "progress" in normalized or "dev" in normalized:
        return CanonicalStatus.IN_PROGRESS
    if any(word in normalized for word in ("done", "finish", "complete")):
        return CanonicalStatus.DONE
    if "review" in normalized or "test" in normalized:
        return CanonicalStatus.REVIEW

    return CanonicalStatus.TODO
