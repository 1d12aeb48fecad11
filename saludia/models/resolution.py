"""
Modelo Resolution — decisiones del médico tratante y del médico jefe
(tabla resolucion_caso). Una fila por caso, upsert por case_id.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from saludia.database import Base


class Decision(str, enum.Enum):
    """Decisión sobre la aplicación de la Ley de Urgencia."""
    ACEPTADO = "aceptado"
    RECHAZADO = "rechazado"


class Resolution(Base):
    __tablename__ = "resolucion_caso"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("casos.id", ondelete="CASCADE"),
        unique=True, nullable=False,
    )

    # ── Médico tratante ──────────────────────────────
    decision_medico: Mapped[Decision | None] = mapped_column(
        Enum(Decision, name="decision_tipo", values_callable=lambda e: [x.value for x in e])
    )
    comentario_medico: Mapped[str | None] = mapped_column(Text)
    fecha_decision_medico: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # ── Decisión final ───────────────────────────────
    decision_final: Mapped[Decision | None] = mapped_column(
        Enum(Decision, name="decision_tipo", values_callable=lambda e: [x.value for x in e]),
        comment="Presente exactamente cuando el caso está aceptado o rechazado"
    )
    comentario_final: Mapped[str | None] = mapped_column(Text)
    fecha_decision_medico_jefe: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )

    comentario_email: Mapped[str | None] = mapped_column(
        Text, comment="Comentario adicional enviado al paciente"
    )

    def __repr__(self) -> str:
        final = self.decision_final.value if self.decision_final else "-"
        return f"<Resolution case={self.case_id} final={final}>"
