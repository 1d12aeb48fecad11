"""
Servicio de notificaciones (campana).

Las derivaciones generan una notificación de pool (user_id nulo) visible
para todos los médicos jefe. Las resoluciones del médico jefe notifican
al médico tratante.
"""

import logging
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from saludia.core.exceptions import NotFoundException
from saludia.database import utcnow
from saludia.models.case import Case
from saludia.models.notification import Notification, NotificationType
from saludia.models.user import AppRole, UserProfile

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10


# ── Emisión ──────────────────────────────────────────

async def notify_case_escalated(
    db: AsyncSession, case: Case, physician_name: str
) -> Notification:
    notification = Notification(
        user_id=None,
        case_id=case.id,
        tipo=NotificationType.CASO_DERIVADO,
        titulo="Nuevo caso derivado",
        mensaje=(
            f"{physician_name} derivó el caso {case.episodio} "
            f"({case.patient_name}) para revisión del médico jefe."
        ),
    )
    db.add(notification)
    await db.flush()
    logger.info(f"Notificación de derivación creada para caso {case.id}")
    return notification


async def notify_case_resolved(
    db: AsyncSession, case: Case, chief_name: str
) -> Notification:
    verdict = "aplica" if case.estado.value == "aceptado" else "no aplica"
    notification = Notification(
        user_id=case.treating_physician_id,
        case_id=case.id,
        tipo=NotificationType.CASO_RESUELTO,
        titulo="Caso resuelto por médico jefe",
        mensaje=(
            f"{chief_name} resolvió el caso {case.episodio} "
            f"({case.patient_name}): Ley de Urgencia {verdict}."
        ),
    )
    db.add(notification)
    await db.flush()
    logger.info(
        f"Notificación de resolución para médico {case.treating_physician_id} (caso {case.id})"
    )
    return notification


# ── Consulta ─────────────────────────────────────────

def _visible_to(user: UserProfile):
    """Propias y, para médicos jefe, las del pool."""
    if user.role == AppRole.MEDICO_JEFE:
        return or_(Notification.user_id == user.user_id, Notification.user_id.is_(None))
    return Notification.user_id == user.user_id


async def list_notifications(
    db: AsyncSession,
    user: UserProfile,
    *,
    limit: int = DEFAULT_LIMIT,
    unread_only: bool = False,
) -> list[Notification]:
    query = select(Notification).where(_visible_to(user))
    if unread_only:
        query = query.where(Notification.leido.is_(False))
    query = query.order_by(Notification.created_at.desc()).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def count_unread(db: AsyncSession, user: UserProfile) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            _visible_to(user),
            Notification.leido.is_(False),
        )
    )
    return result.scalar() or 0


async def mark_as_read(
    db: AsyncSession, user: UserProfile, notification_id: UUID
) -> Notification:
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            _visible_to(user),
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise NotFoundException("Notificación", "Notificación no encontrada")

    if not notification.leido:
        notification.leido = True
        notification.read_at = utcnow()
        await db.commit()
    return notification


async def mark_all_as_read(db: AsyncSession, user: UserProfile) -> int:
    result = await db.execute(
        update(Notification)
        .where(_visible_to(user), Notification.leido.is_(False))
        .values(leido=True, read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount or 0
