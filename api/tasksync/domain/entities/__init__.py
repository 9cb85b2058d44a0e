"""
Entidades del dominio.
"""
from tasksync.domain.entities.task_status import CanonicalStatus, normalize_status
from tasksync.domain.entities.value_objects import (
    UserRef,
    TagRef,
    StatusInfo,
    PriorityInfo,
    parse_users,
    parse_tags,
)

__all__ = [
    "CanonicalStatus",
    "normalize_status",
    "UserRef",
    "TagRef",
    "StatusInfo",
    "PriorityInfo",
    "parse_users",
    "parse_tags",
]
