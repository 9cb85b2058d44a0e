"""
Endpoints para gestionar listas sincronizadas de ClickUp.

La sync es sincronica: el request termina cuando la lista (o la carpeta
completa) quedo persistida.
"""
from typing import Literal

from fastapi import APIRouter, Depends, Query
from loguru import logger

from tasksync.api.v1.dependencies.use_case_deps import get_list_sync_use_cases
from tasksync.application.dto.list_dto import (
    AddListRequestDTO,
    AddListResponseDTO,
    DeleteResponseDTO,
    FolderSyncResultDTO,
    ListDTO,
    ListSyncResultDTO,
    RenameListRequestDTO,
)
from tasksync.application.use_cases.list_sync_use_cases import (
    FolderSyncResult,
    ListSyncResult,
    ListSyncUseCases,
)
from tasksync.shared.exceptions.domain import EntityNotFoundException


router = APIRouter(prefix="/lists", tags=["Lists"])


def _list_result_dto(result: ListSyncResult) -> ListSyncResultDTO:
    return ListSyncResultDTO(**vars(result))


def _folder_result_dto(result: FolderSyncResult) -> FolderSyncResultDTO:
    return FolderSyncResultDTO(
        folder_id=result.folder_id,
        synced=[_list_result_dto(r) for r in result.synced],
        failed=result.failed,
    )


@router.post("", response_model=AddListResponseDTO)
async def add_list(
    request: AddListRequestDTO,
    use_cases: ListSyncUseCases = Depends(get_list_sync_use_cases),
):
    """
    Agrega una lista (o todas las listas de una carpeta) a partir de su URL.
    """
    result = await use_cases.add_from_url(request.url)
    if isinstance(result, FolderSyncResult):
        logger.info(f"Carpeta {result.folder_id} agregada ({len(result.synced)} listas)")
        return AddListResponseDTO(type="folder", folder=_folder_result_dto(result))
    return AddListResponseDTO(type="list", list=_list_result_dto(result))


@router.post("/{list_id}/sync", response_model=ListSyncResultDTO)
async def resync_list(
    list_id: str,
    use_cases: ListSyncUseCases = Depends(get_list_sync_use_cases),
):
    """
    Re-sincroniza manualmente una lista guardada (ID local o de ClickUp).
    """
    return _list_result_dto(await use_cases.resync_list(list_id))


@router.patch("/{list_id}", response_model=ListDTO)
async def rename_list(
    list_id: str,
    request: RenameListRequestDTO,
    use_cases: ListSyncUseCases = Depends(get_list_sync_use_cases),
):
    """Renombra una lista guardada."""
    return ListDTO.model_validate(await use_cases.rename_list(list_id, request.name))


@router.delete("/{list_id}", response_model=DeleteResponseDTO)
async def delete_list(
    list_id: str,
    scope: Literal["list", "folder"] = Query("list", alias="type"),
    use_cases: ListSyncUseCases = Depends(get_list_sync_use_cases),
):
    """
    Elimina una lista o, con type=folder, todas las listas de la carpeta.

    Si el ID no corresponde a ninguna lista se intenta como carpeta.
    Los webhooks remotos se eliminan antes que las filas locales.
    """
    if scope == "list":
        try:
            deleted = await use_cases.delete_list(list_id)
            return DeleteResponseDTO(type="list", deleted=[deleted])
        except EntityNotFoundException:
            logger.info(f"{list_id} no es una lista guardada, se intenta como carpeta")

    result = await use_cases.delete_folder(list_id)
    return DeleteResponseDTO(type="folder", deleted=result.deleted, failed=result.failed)
