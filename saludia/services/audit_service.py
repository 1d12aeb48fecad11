"""
Servicio de Audit Log — registra todas las operaciones sensibles.
INSERT-only, nunca se modifica ni elimina.
"""

import enum
from datetime import date, datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from saludia.models.audit_log import AuditLog


def _sanitize_value(value):
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, dict):
        return _sanitize_for_json(value)
    if isinstance(value, list):
        return [_sanitize_value(item) for item in value]
    return value


def _sanitize_for_json(data: dict | None) -> dict | None:
    """Convierte tipos no serializables (enum, date, datetime, UUID) a strings."""
    if data is None:
        return None
    return {key: _sanitize_value(value) for key, value in data.items()}


async def log_action(
    db: AsyncSession,
    *,
    user_id: UUID | None,
    entity: str,
    entity_id: str,
    action: str,
    old_data: dict | None = None,
    new_data: dict | None = None,
    ip_address: str | None = None,
) -> AuditLog:
    """Inserta un registro de auditoría inmutable."""
    entry = AuditLog(
        user_id=user_id,
        entity=entity,
        entity_id=str(entity_id),
        action=action,
        old_data=_sanitize_for_json(old_data),
        new_data=_sanitize_for_json(new_data),
        ip_address=ip_address,
    )
    db.add(entry)
    await db.flush()
    return entry
