"""
Endpoints de notificaciones del usuario actual.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from saludia.auth.dependencies import require_permission
from saludia.database import get_db
from saludia.models.user import UserProfile
from saludia.schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from saludia.services import notification_service

router = APIRouter()


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    limit: int = Query(10, ge=1, le=100),
    unread_only: bool = Query(False),
    user: UserProfile = Depends(require_permission("notification", "read")),
    db: AsyncSession = Depends(get_db),
):
    """Últimas notificaciones propias (y del pool, para médicos jefe)."""
    items = await notification_service.list_notifications(
        db, user, limit=limit, unread_only=unread_only
    )
    unread = await notification_service.count_unread(db, user)
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in items],
        unread_count=unread,
    )


@router.get("/unread-count")
async def unread_count(
    user: UserProfile = Depends(require_permission("notification", "read")),
    db: AsyncSession = Depends(get_db),
):
    return {"unread_count": await notification_service.count_unread(db, user)}


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    user: UserProfile = Depends(require_permission("notification", "update")),
    db: AsyncSession = Depends(get_db),
):
    updated = await notification_service.mark_all_as_read(db, user)
    return MarkAllReadResponse(updated=updated)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    user: UserProfile = Depends(require_permission("notification", "update")),
    db: AsyncSession = Depends(get_db),
):
    return await notification_service.mark_as_read(db, user, notification_id)
