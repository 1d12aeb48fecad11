"""
Modelo Notification — avisos de la campana (tabla notificaciones).
user_id nulo = notificación para el pool de médicos jefe.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from saludia.database import Base, utcnow


class NotificationType(str, enum.Enum):
    CASO_DERIVADO = "caso_derivado"
    CASO_RESUELTO = "caso_resuelto"


class Notification(Base):
    __tablename__ = "notificaciones"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, comment="Destinatario. Nulo = pool de médicos jefe"
    )
    case_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("casos.id", ondelete="CASCADE")
    )
    tipo: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="tipo_notificacion", values_callable=lambda e: [x.value for x in e]),
        nullable=False,
    )
    titulo: Mapped[str] = mapped_column(String(200), nullable=False)
    mensaje: Mapped[str] = mapped_column(Text, nullable=False)

    leido: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_notificaciones_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Notification {self.tipo.value} to={self.user_id or 'pool'} leido={self.leido}>"
