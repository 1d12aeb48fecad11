"""
Modelo CaseEditSnapshot — copia de un caso y su sugerencia antes de una
edición clínica. Permite "cancelar edición" restaurando los valores previos.
Como máximo un snapshot pendiente por caso.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from saludia.database import Base, JSONType, utcnow


class CaseEditSnapshot(Base):
    __tablename__ = "caso_edicion_snapshot"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("casos.id", ondelete="CASCADE"),
        unique=True, nullable=False,
    )
    case_data: Mapped[dict] = mapped_column(
        JSONType, nullable=False,
        comment="Campos clínicos previos a la edición"
    )
    suggestion_data: Mapped[dict | None] = mapped_column(
        JSONType, comment="Sugerencia vigente antes de la edición"
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    def __repr__(self) -> str:
        return f"<CaseEditSnapshot case={self.case_id}>"
