"""
Mapeo de entidades remotas de ClickUp a filas de la base local.

Los dicts resultantes tienen siempre el mismo set de claves para que el
UPSERT por lotes pueda usar un unico INSERT multi-fila.
"""
from __future__ import annotations

from typing import Any, Optional

from tasksync.domain.entities.task_status import normalize_status
from tasksync.infrastructure.external.clickup.types import (
    RemoteComment,
    RemoteList,
    RemoteSpace,
    RemoteTask,
    RemoteWorkspace,
)
from tasksync.shared.utils.datetime_utils import DateTimeUtils


def map_list_row(
    remote: RemoteList,
    *,
    space: Optional[RemoteSpace],
    workspace: Optional[RemoteWorkspace],
    url: Optional[str],
) -> dict[str, Any]:
    """Fila de `lists`. last_synced se marca con la hora actual."""
    return {
        "clickup_list_id": remote.id,
        "name": remote.name,
        "url": url,
        "folder_id": remote.folder_id,
        # Las carpetas ocultas son contenedores implicitos del space
        "folder_name": None if remote.folder_hidden else remote.folder_name,
        "space_id": space.id if space else remote.space_id,
        "space_name": space.name if space else remote.space_name,
        "workspace_id": workspace.id if workspace else None,
        "workspace_name": workspace.name if workspace else None,
        "orderindex": remote.orderindex,
        "statuses": remote.statuses,
        "permission_level": remote.permission_level,
        "is_archived": remote.archived,
        "task_count": remote.task_count,
        "last_synced": DateTimeUtils.now_utc(),
    }


def map_task_row(task: RemoteTask, local_list_id: str) -> dict[str, Any]:
    """
    Fila de `tasks`.

    parent_task_id conserva el ID remoto del padre: una tarea con padre es
    una subtarea y queda fuera de los listados por defecto.
    """
    status = task.status
    priority = task.priority
    return {
        "list_id": local_list_id,
        "clickup_task_id": task.id,
        "custom_id": task.custom_id,
        "name": task.name,
        "description": task.description,
        "text_content": task.text_content,
        "orderindex": task.orderindex,
        "position": _position(task.orderindex),
        "url": task.url,
        "parent_task_id": task.parent,
        "dependencies": task.dependencies,
        "linked_tasks": task.linked_tasks,
        "status": status.status,
        "status_type": status.type,
        "status_color": status.color,
        "status_orderindex": status.orderindex,
        "canonical_status": normalize_status(status.status, status.type, task.archived).value,
        "is_archived": task.archived,
        "priority": priority.priority,
        "priority_id": priority.id,
        "priority_color": priority.color,
        "priority_orderindex": priority.orderindex,
        "due_date": task.due_date,
        "start_date": task.start_date,
        "date_closed": task.date_closed,
        "date_done": task.date_done,
        "date_created": task.date_created,
        "date_updated": task.date_updated,
        "assignees": [u.to_dict() for u in task.assignees],
        "watchers": [u.to_dict() for u in task.watchers],
        "tags": [t.to_dict() for t in task.tags],
        "creator": task.creator.to_dict() if task.creator else None,
        "checklists": task.checklists,
        "custom_fields": task.custom_fields,
        "time_estimate": task.time_estimate,
        "time_spent": task.time_spent,
        "points": task.points,
        "team_id": task.team_id,
        "permission_level": task.permission_level,
    }


def map_comment_row(comment: RemoteComment, local_task_id: str) -> dict[str, Any]:
    """Fila de `comments`."""
    return {
        "task_id": local_task_id,
        "clickup_comment_id": comment.id,
        "text": comment.text,
        "author": comment.author.to_dict() if comment.author else None,
        "resolved": comment.resolved,
        "assignee": comment.assignee,
        "assigned_by": comment.assigned_by,
        "reactions": comment.reactions,
        "date": comment.date,
    }


def _position(orderindex: Optional[str]) -> float:
    try:
        return float(orderindex) if orderindex is not None else 0.0
    except ValueError:
        return 0.0
