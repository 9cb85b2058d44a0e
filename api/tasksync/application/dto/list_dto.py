"""
DTOs para la gestion de listas sincronizadas (alta, re-sync, rename, borrado).
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AddListRequestDTO(BaseModel):
    """URL de ClickUp (lista, vista o carpeta) o ID de lista."""

    url: str = Field(..., min_length=1, description="URL de lista/vista/carpeta de ClickUp o ID de lista")

    @field_validator("url")
    @classmethod
    def strip_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("url no puede estar vacia")
        return v


class RenameListRequestDTO(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class ListSyncResultDTO(BaseModel):
    """Resultado de sincronizar una lista."""

    list_id: str
    clickup_list_id: str
    name: str
    tasks_upserted: int
    tasks_deleted: int
    comments_synced: int = 0
    comment_failures: int = 0
    webhook_id: Optional[str] = None
    webhook_created: bool = False


class FolderSyncResultDTO(BaseModel):
    folder_id: Optional[str] = None
    synced: List[ListSyncResultDTO] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict)


class AddListResponseDTO(BaseModel):
    """Respuesta de POST /lists: una lista o una carpeta completa."""

    type: Literal["list", "folder"]
    list: Optional[ListSyncResultDTO] = None
    folder: Optional[FolderSyncResultDTO] = None


class ListDTO(BaseModel):
    """Lista guardada en la base local."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    clickup_list_id: str
    name: str
    url: Optional[str] = None
    folder_id: Optional[str] = None
    folder_name: Optional[str] = None
    space_name: Optional[str] = None
    workspace_name: Optional[str] = None
    last_synced: Optional[datetime] = None


class DeleteResponseDTO(BaseModel):
    success: bool = True
    type: Literal["list", "folder"]
    deleted: List[str] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict)
