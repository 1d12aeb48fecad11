"""
Modelo PatientCommunication — comunicaciones del resultado al paciente
(tabla comunicaciones_paciente).
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from saludia.database import Base, utcnow
from saludia.models.resolution import Decision


class PatientCommunication(Base):
    __tablename__ = "comunicaciones_paciente"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("casos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    resultado: Mapped[Decision] = mapped_column(
        Enum(Decision, name="decision_tipo", values_callable=lambda e: [x.value for x in e]),
        nullable=False,
    )
    explicacion: Mapped[str] = mapped_column(Text, nullable=False)
    recipient_email: Mapped[str | None] = mapped_column(String(255))

    enviada: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    fecha_envio: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    provider_message_id: Mapped[str | None] = mapped_column(String(100))

    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    def __repr__(self) -> str:
        return f"<PatientCommunication case={self.case_id} enviada={self.enviada}>"
