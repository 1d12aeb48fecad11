"""
Endpoints de métricas del dashboard.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from saludia.auth.dependencies import require_permission
from saludia.database import get_db
from saludia.models.user import UserProfile
from saludia.schemas.metrics import DoctorMetricsListResponse, StatusCountsResponse
from saludia.services import metrics_service

router = APIRouter()


@router.get("/status-counts", response_model=StatusCountsResponse)
async def status_counts(
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    user: UserProfile = Depends(require_permission("metrics", "read")),
    db: AsyncSession = Depends(get_db),
):
    """Casos por estado en el período y variación vs el período anterior."""
    return await metrics_service.get_status_counts(
        db, date_from=date_from, date_to=date_to
    )


@router.get("/doctors", response_model=DoctorMetricsListResponse)
async def doctor_metrics(
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    user_id: UUID | None = Query(None, description="Filtrar un médico"),
    user: UserProfile = Depends(require_permission("metrics", "read")),
    db: AsyncSession = Depends(get_db),
):
    return await metrics_service.get_doctor_metrics(
        db, date_from=date_from, date_to=date_to, user_id=user_id
    )
