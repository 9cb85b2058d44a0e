"""
Modelos de base de datos (ORM).

Replica local (eventualmente consistente) de ClickUp. Cada entidad se
identifica por su ID remoto (UNIQUE), que es el conflict target de los
UPSERT. El ID local es un UUID propio del store.
"""
import uuid
from sqlalchemy import (
    Column,
    String,
    Integer,
    Float,
    DateTime,
    Text,
    JSON,
    Boolean,
    BigInteger,
    ForeignKey,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from tasksync.infrastructure.database.session import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class ListModel(Base):
    """
    Lista de ClickUp.

    Las carpetas no tienen tabla propia: son el conjunto distinto de
    folder_id entre las listas.
    """

    __tablename__ = "lists"

    id = Column(String(36), primary_key=True, default=_new_id)
    clickup_list_id = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    url = Column(Text, nullable=True)  # URL/ID original, reutilizada en re-sync manual

    folder_id = Column(String(64), nullable=True, index=True)
    folder_name = Column(String(255), nullable=True)
    space_id = Column(String(64), nullable=True)
    space_name = Column(String(255), nullable=True)
    workspace_id = Column(String(64), nullable=True)
    workspace_name = Column(String(255), nullable=True)

    orderindex = Column(Integer, nullable=True)
    statuses = Column(JSON, nullable=True, default=list)
    permission_level = Column(String(50), nullable=True)
    is_archived = Column(Boolean, default=False)
    task_count = Column(Integer, nullable=True)

    last_synced = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    tasks = relationship("TaskModel", back_populates="parent_list", cascade="all, delete-orphan", passive_deletes=True)
    webhooks = relationship("WebhookModel", back_populates="parent_list", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<List(id={self.id}, clickup_list_id={self.clickup_list_id}, name={self.name})>"


class TaskModel(Base):
    """
    Tarea de ClickUp.

    parent_task_id guarda el ID remoto de la tarea padre (no el local):
    si no es NULL la tarea es una subtarea.
    """

    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=_new_id)
    list_id = Column(String(36), ForeignKey("lists.id", ondelete="CASCADE"), nullable=False, index=True)
    clickup_task_id = Column(String(64), nullable=False, unique=True, index=True)
    custom_id = Column(String(64), nullable=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    text_content = Column(Text, nullable=True)
    orderindex = Column(String(64), nullable=True)
    position = Column(Float, default=0)
    url = Column(Text, nullable=True)

    # Jerarquia
    parent_task_id = Column(String(64), nullable=True, index=True)
    dependencies = Column(JSON, nullable=True, default=list)
    linked_tasks = Column(JSON, nullable=True, default=list)

    # Estado
    status = Column(String(100), nullable=True)
    status_type = Column(String(50), nullable=True)
    status_color = Column(String(20), nullable=True)
    status_orderindex = Column(Integer, nullable=True)
    canonical_status = Column(String(20), nullable=True, index=True)
    is_archived = Column(Boolean, default=False)

    # Prioridad
    priority = Column(String(50), nullable=True)
    priority_id = Column(String(20), nullable=True)
    priority_color = Column(String(20), nullable=True)
    priority_orderindex = Column(String(20), nullable=True)

    # Fechas (ClickUp)
    due_date = Column(DateTime(timezone=True), nullable=True, index=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    date_closed = Column(DateTime(timezone=True), nullable=True)
    date_done = Column(DateTime(timezone=True), nullable=True)
    date_created = Column(DateTime(timezone=True), nullable=True)
    date_updated = Column(DateTime(timezone=True), nullable=True)

    # Colecciones (validadas via value objects antes de persistir)
    assignees = Column(JSON, nullable=True, default=list)
    watchers = Column(JSON, nullable=True, default=list)
    tags = Column(JSON, nullable=True, default=list)
    creator = Column(JSON, nullable=True)
    checklists = Column(JSON, nullable=True, default=list)
    custom_fields = Column(JSON, nullable=True, default=list)

    # Tracking
    time_estimate = Column(BigInteger, nullable=True)
    time_spent = Column(BigInteger, nullable=True)
    points = Column(Float, nullable=True)

    team_id = Column(String(64), nullable=True)
    permission_level = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    parent_list = relationship("ListModel", back_populates="tasks")
    comments = relationship("CommentModel", back_populates="task", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Task(id={self.id}, clickup_task_id={self.clickup_task_id}, status={self.status})>"


class CommentModel(Base):
    """Comentario de una tarea."""

    __tablename__ = "comments"

    id = Column(String(36), primary_key=True, default=_new_id)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    clickup_comment_id = Column(String(64), nullable=False, unique=True, index=True)
    text = Column(Text, nullable=True)
    author = Column(JSON, nullable=True)
    resolved = Column(Boolean, default=False)
    assignee = Column(JSON, nullable=True)
    assigned_by = Column(JSON, nullable=True)
    reactions = Column(JSON, nullable=True, default=list)
    date = Column(DateTime(timezone=True), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    task = relationship("TaskModel", back_populates="comments")

    def __repr__(self):
        return f"<Comment(id={self.id}, clickup_comment_id={self.clickup_comment_id})>"


class WebhookModel(Base):
    """
    Registro de webhook de ClickUp por lista.

    Invariante: como maximo un registro activo por lista.
    """

    __tablename__ = "webhooks"

    id = Column(String(36), primary_key=True, default=_new_id)
    list_id = Column(String(36), ForeignKey("lists.id", ondelete="CASCADE"), nullable=False, index=True)
    clickup_webhook_id = Column(String(64), nullable=False, unique=True, index=True)
    callback_url = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True)
    last_event_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    parent_list = relationship("ListModel", back_populates="webhooks")

    def __repr__(self):
        return f"<Webhook(id={self.id}, list_id={self.list_id}, active={self.is_active})>"


class TaskDueDateHistoryModel(Base):
    """Historial append-only de cambios de due_date observados via webhook."""

    __tablename__ = "task_due_date_history"

    id = Column(String(36), primary_key=True, default=_new_id)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    clickup_task_id = Column(String(64), nullable=False, index=True)
    old_due_date = Column(DateTime(timezone=True), nullable=True)
    new_due_date = Column(DateTime(timezone=True), nullable=True)
    changed_by = Column(JSON, nullable=True)
    changed_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def __repr__(self):
        return f"<DueDateHistory(task={self.clickup_task_id}, {self.old_due_date} -> {self.new_due_date})>"
