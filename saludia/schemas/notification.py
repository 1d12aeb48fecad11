"""
Schemas para notificaciones.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from saludia.models.notification import NotificationType


class NotificationResponse(BaseModel):
    id: UUID
    user_id: UUID | None = None
    case_id: UUID | None = None
    tipo: NotificationType
    titulo: str
    mensaje: str
    leido: bool
    created_at: datetime
    read_at: datetime | None = None

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int
