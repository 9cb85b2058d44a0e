"""
Configuración de base de datos.

Importa todos los modelos para que se registren con Base
antes de crear las tablas.
"""
from tasksync.infrastructure.database.models import (
    ListModel,
    TaskModel,
    CommentModel,
    WebhookModel,
    TaskDueDateHistoryModel,
)
