"""
Resolucion de URLs / IDs de ClickUp a IDs de lista o carpeta.

Formatos soportados:
- https://app.clickup.com/{ws}/v/li/{listId}        (lista directa)
- https://app.clickup.com/{ws}/v/l/li/{listId}
- https://app.clickup.com/{ws}/v/l/{viewId}?pr=...  (vista: requiere resolver)
- https://app.clickup.com/{ws}/v/o/f/{folderId}     (carpeta)
- {listId} a secas

Las vistas se resuelven con una lista ordenada de estrategias. Cada
estrategia solo propone candidatos; el primero que responde GET /list
es el ganador.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, Optional, Protocol, Sequence

from loguru import logger

from tasksync.infrastructure.external.clickup.client import ClickUpClient
from tasksync.shared.exceptions.sync import RemoteAPIError, ResolutionError


_DIRECT_LIST_PATTERNS = (
    re.compile(r"/v/l/li/([^/?#]+)"),
    re.compile(r"/v/li/([^/?#]+)"),
    re.compile(r"/li/([^/?#]+)"),
)
_VIEW_PATTERN = re.compile(r"/v/l/([^/?#]+)")
_FOLDER_PATTERNS = (
    re.compile(r"/v/o/f/([^/?#]+)"),
    re.compile(r"/f/([^/?#]+)"),
)


@dataclass(frozen=True)
class ListReference:
    """Resultado de parsear una URL: que tipo de ID se obtuvo."""

    kind: Literal["list", "view", "raw"]
    value: str


def extract_list_reference(url_or_id: str) -> ListReference:
    """
    Extrae el ID de lista (o de vista) de una URL de ClickUp.

    Si no hay match se asume que el input ya es un ID de lista.
    """
    text = (url_or_id or "").strip()
    if not text:
        raise ResolutionError("URL o ID de lista vacio")

    for pattern in _DIRECT_LIST_PATTERNS:
        match = pattern.search(text)
        if match:
            return ListReference(kind="list", value=match.group(1))

    match = _VIEW_PATTERN.search(text)
    if match:
        return ListReference(kind="view", value=match.group(1))

    return ListReference(kind="raw", value=text)


def extract_folder_id(url_or_id: str) -> Optional[str]:
    """Retorna el ID de carpeta si la URL es de carpeta, None si no."""
    for pattern in _FOLDER_PATTERNS:
        match = pattern.search(url_or_id or "")
        if match:
            return match.group(1)
    return None


def is_clickup_reference(url_or_id: str) -> bool:
    """
    True si el input parece algo resoluble: URL de ClickUp (lista, vista o
    carpeta) o un ID suelto. Rechaza URLs de otros dominios.
    """
    text = (url_or_id or "").strip()
    if not text:
        return False
    if "://" not in text:
        return "/" not in text and " " not in text
    return "clickup.com" in text and (
        extract_folder_id(text) is not None or extract_list_reference(text).kind != "raw"
    )


# ----------------------------------------------------------------------
# Estrategias para vistas
# ----------------------------------------------------------------------

class ViewResolutionStrategy(Protocol):
    name: str

    async def candidates(self, view_id: str, client: ClickUpClient) -> list[str]:
        ...


class ViewApiStrategy:
    """Pide la vista a la API y usa su lista padre."""

    name = "view_api"

    async def candidates(self, view_id: str, client: ClickUpClient) -> list[str]:
        try:
            view = await client.get_view(view_id)
        except RemoteAPIError as e:
            logger.info(f"No se pudo obtener la vista {view_id} desde la API: {e.message}")
            return []
        return [view.parent_id] if view.parent_id else []


class TokenSplitStrategy:
    """
    Parte el ID de vista en '-' (formato {tipo}-{listId}-{instancia}).

    Candidatos: las partes del medio y luego todo lo que sigue al primer guion.
    """

    name = "token_split"

    async def candidates(self, view_id: str, client: ClickUpClient) -> list[str]:
        parts = view_id.split("-")
        if len(parts) < 3:
            return []
        return ["-".join(parts[1:-1]), "-".join(parts[1:])]


DEFAULT_VIEW_STRATEGIES: tuple[ViewResolutionStrategy, ...] = (
    ViewApiStrategy(),
    TokenSplitStrategy(),
)


async def resolve_list_id(
    url_or_id: str,
    client: ClickUpClient,
    strategies: Sequence[ViewResolutionStrategy] = DEFAULT_VIEW_STRATEGIES,
) -> str:
    """
    Resuelve una URL/ID a un ID de lista valido.

    Las listas directas y los IDs sueltos se devuelven sin validar (la
    llamada posterior a get_list fallara si no existen). Las vistas se
    validan candidato por candidato.

    Raises:
        ResolutionError: Si ningun candidato corresponde a una lista
    """
    ref = extract_list_reference(url_or_id)
    if ref.kind != "view":
        return ref.value

    logger.info(f"URL de vista detectada, resolviendo lista desde la vista {ref.value}")

    tried: list[str] = []
    for strategy in strategies:
        for candidate in await strategy.candidates(ref.value, client):
            if not candidate or candidate in tried:
                continue
            tried.append(candidate)
            try:
                await client.get_list(candidate)
            except RemoteAPIError as e:
                logger.info(f"Candidato {candidate} ({strategy.name}) descartado: {e.status}")
                continue
            logger.info(f"Lista {candidate} resuelta con la estrategia {strategy.name}")
            return candidate

    raise ResolutionError(
        f"No se pudo determinar la lista desde la vista {ref.value}",
        candidates=tried,
    )
