"""
Métricas del dashboard: conteo por estado con variación respecto al
período anterior y métricas por médico.
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from saludia.models.case import Case, CaseStatus, InsurerResolutionState
from saludia.models.resolution import Decision, Resolution
from saludia.models.suggestion import Suggestion, SuggestionType
from saludia.models.user import AppRole, UserProfile
from saludia.schemas.metrics import (
    DoctorMetrics,
    DoctorMetricsListResponse,
    StatusCount,
    StatusCountsResponse,
)


def _as_utc(value: datetime) -> datetime:
    """SQLite devuelve datetimes naive; se asumen UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def _count_by_status(
    db: AsyncSession, date_from: datetime, date_to: datetime
) -> dict[CaseStatus, int]:
    result = await db.execute(
        select(Case.estado, func.count(Case.id))
        .where(Case.created_at >= date_from, Case.created_at <= date_to)
        .group_by(Case.estado)
    )
    return {estado: count for estado, count in result.all()}


async def get_status_counts(
    db: AsyncSession,
    *,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> StatusCountsResponse:
    """
    Casos creados en el período por estado, comparados con el período
    anterior de igual duración. Por defecto los últimos 30 días.
    """
    date_to = _as_utc(date_to) if date_to else datetime.now(timezone.utc)
    date_from = _as_utc(date_from) if date_from else date_to - timedelta(days=30)
    span = date_to - date_from

    current = await _count_by_status(db, date_from, date_to)
    previous = await _count_by_status(db, date_from - span, date_from)

    items = []
    for estado in CaseStatus:
        count = current.get(estado, 0)
        prev = previous.get(estado, 0)
        items.append(StatusCount(
            estado=estado.value,
            count=count,
            previous=prev,
            delta=count - prev,
        ))

    return StatusCountsResponse(
        date_from=date_from,
        date_to=date_to,
        total=sum(current.values()),
        items=items,
    )


async def _doctor_metrics(
    db: AsyncSession,
    doctor: UserProfile,
    date_from: datetime | None,
    date_to: datetime | None,
) -> DoctorMetrics:
    is_chief = doctor.role == AppRole.MEDICO_JEFE
    query = select(Case)
    if is_chief:
        query = query.where(Case.chief_physician_id == doctor.user_id)
    else:
        query = query.where(Case.treating_physician_id == doctor.user_id)
    if date_from:
        query = query.where(Case.created_at >= date_from)
    if date_to:
        query = query.where(Case.created_at <= date_to)

    cases = (await db.execute(query)).scalars().all()
    case_ids = [c.id for c in cases]

    suggestions: dict[UUID, SuggestionType] = {}
    resolutions: dict[UUID, Resolution] = {}
    if case_ids:
        rows = await db.execute(
            select(Suggestion.case_id, Suggestion.sugerencia, Suggestion.version)
            .where(Suggestion.case_id.in_(case_ids))
        )
        current_version = {c.id: c.suggestion_version for c in cases}
        for case_id, sugerencia, version in rows.all():
            if version == current_version.get(case_id):
                suggestions[case_id] = sugerencia
        res_rows = await db.execute(
            select(Resolution).where(Resolution.case_id.in_(case_ids))
        )
        resolutions = {r.case_id: r for r in res_rows.scalars().all()}

    # Aceptación de la sugerencia IA "aceptar"
    suggested_accept = [c for c in cases if suggestions.get(c.id) == SuggestionType.ACEPTAR]
    followed = [
        c for c in suggested_accept
        if c.estado == CaseStatus.ACEPTADO
        or (resolutions.get(c.id) and resolutions[c.id].decision_medico == Decision.ACEPTADO)
    ]
    acceptance = (len(followed) / len(suggested_accept) * 100) if suggested_accept else 0.0

    if is_chief:
        escalations = sum(
            1 for c in cases
            if c.id in resolutions
            and (resolutions[c.id].decision_final or resolutions[c.id].decision_medico)
        )
    else:
        escalations = sum(
            1 for c in cases
            if c.estado == CaseStatus.DERIVADO or c.chief_physician_id is not None
        )

    def _insurer(state: InsurerResolutionState) -> int:
        return sum(
            1 for c in cases
            if c.estado == CaseStatus.ACEPTADO and c.insurer_resolution_state == state
        )

    durations = [
        (_as_utc(c.updated_at) - _as_utc(c.created_at)).total_seconds() / 86400
        for c in cases
        if c.is_closed and c.updated_at and c.created_at
    ]
    durations = [d for d in durations if d > 0]

    return DoctorMetrics(
        user_id=doctor.user_id,
        display_name=doctor.display_name,
        role=doctor.role.value,
        total_cases=len(cases),
        ai_acceptance_rate=round(acceptance, 1),
        escalations=escalations,
        accepted_by_physician=sum(1 for c in cases if c.estado == CaseStatus.ACEPTADO),
        rejected_by_physician=sum(1 for c in cases if c.estado == CaseStatus.RECHAZADO),
        insurer_accepted=_insurer(InsurerResolutionState.ACEPTADA),
        insurer_rejected=_insurer(InsurerResolutionState.RECHAZADA),
        insurer_pending=_insurer(InsurerResolutionState.PENDIENTE),
        insurer_pending_submission=_insurer(InsurerResolutionState.PENDIENTE_ENVIO),
        avg_resolution_days=round(sum(durations) / len(durations), 1) if durations else None,
    )


async def get_doctor_metrics(
    db: AsyncSession,
    *,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    user_id: UUID | None = None,
) -> DoctorMetricsListResponse:
    """Métricas por médico (médicos y médicos jefe)."""
    query = select(UserProfile).where(
        UserProfile.role.in_([AppRole.MEDICO, AppRole.MEDICO_JEFE])
    )
    if user_id:
        query = query.where(UserProfile.user_id == user_id)
    doctors = (await db.execute(query.order_by(UserProfile.nombre))).scalars().all()

    return DoctorMetricsListResponse(
        items=[await _doctor_metrics(db, d, date_from, date_to) for d in doctors]
    )
