"""
Servicios de aplicacion.

Contiene la logica reutilizable que no pertenece a un caso de uso
especifico.
"""
from tasksync.application.services.task_row_mapper import (
    map_comment_row,
    map_list_row,
    map_task_row,
)

__all__ = [
    "map_comment_row",
    "map_list_row",
    "map_task_row",
]
