"""
Servicio del registro de resoluciones (resolucion_caso).
Una fila por caso: las escrituras son upserts por case_id.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from saludia.database import utcnow
from saludia.models.resolution import Decision, Resolution


async def get_resolution(db: AsyncSession, case_id: UUID) -> Resolution | None:
    result = await db.execute(
        select(Resolution).where(Resolution.case_id == case_id)
    )
    return result.scalar_one_or_none()


async def _get_or_create(db: AsyncSession, case_id: UUID) -> Resolution:
    resolution = await get_resolution(db, case_id)
    if resolution is None:
        resolution = Resolution(case_id=case_id)
        db.add(resolution)
    return resolution


async def record_physician_decision(
    db: AsyncSession,
    case_id: UUID,
    *,
    decision: Decision,
    comment: str | None,
) -> Resolution:
    """Registra la decisión del médico tratante."""
    resolution = await _get_or_create(db, case_id)
    resolution.decision_medico = decision
    resolution.comentario_medico = comment
    resolution.fecha_decision_medico = utcnow()
    await db.flush()
    return resolution


async def record_final_decision(
    db: AsyncSession,
    case_id: UUID,
    *,
    decision: Decision,
    comment: str | None,
    by_chief: bool,
) -> Resolution:
    """Registra la decisión final. Si la toma un médico jefe, fecha su decisión."""
    resolution = await _get_or_create(db, case_id)
    resolution.decision_final = decision
    resolution.comentario_final = comment
    if by_chief:
        resolution.fecha_decision_medico_jefe = utcnow()
    await db.flush()
    return resolution


async def set_email_comment(
    db: AsyncSession, case_id: UUID, comment: str | None
) -> Resolution:
    resolution = await _get_or_create(db, case_id)
    resolution.comentario_email = comment
    await db.flush()
    return resolution
