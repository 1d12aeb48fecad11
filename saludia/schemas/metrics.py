"""
Schemas para métricas del dashboard.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class StatusCount(BaseModel):
    estado: str
    count: int
    previous: int
    delta: int


class StatusCountsResponse(BaseModel):
    date_from: datetime
    date_to: datetime
    total: int
    items: list[StatusCount]


class DoctorMetrics(BaseModel):
    user_id: UUID
    display_name: str
    role: str
    total_cases: int
    ai_acceptance_rate: float
    escalations: int
    accepted_by_physician: int
    rejected_by_physician: int
    insurer_accepted: int
    insurer_rejected: int
    insurer_pending: int
    insurer_pending_submission: int
    avg_resolution_days: float | None = None


class DoctorMetricsListResponse(BaseModel):
    items: list[DoctorMetrics]
