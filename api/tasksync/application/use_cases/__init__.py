"""
Casos de uso de la aplicacion.
"""
from .list_sync_use_cases import ListSyncUseCases, ListSyncResult, FolderSyncResult, FolderDeleteResult
from .webhook_use_cases import WebhookEventProcessor, WebhookDispatcher

__all__ = [
    "ListSyncUseCases",
    "ListSyncResult",
    "FolderSyncResult",
    "FolderDeleteResult",
    "WebhookEventProcessor",
    "WebhookDispatcher",
]
