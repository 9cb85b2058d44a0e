"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .list_dto import (
    AddListRequestDTO,
    AddListResponseDTO,
    DeleteResponseDTO,
    FolderSyncResultDTO,
    ListDTO,
    ListSyncResultDTO,
    RenameListRequestDTO,
)

__all__ = [
    "AddListRequestDTO",
    "AddListResponseDTO",
    "DeleteResponseDTO",
    "FolderSyncResultDTO",
    "ListDTO",
    "ListSyncResultDTO",
    "RenameListRequestDTO",
]
