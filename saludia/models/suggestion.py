"""
Modelo Suggestion — sugerencia IA adjunta a un caso (tabla sugerencia_ia).

Solo la fila cuya `version` coincide con `casos.suggestion_version` es la
vigente. Al editar los datos clínicos se borran todas las anteriores.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from saludia.database import Base, utcnow


class SuggestionType(str, enum.Enum):
    """Recomendación del oráculo IA."""
    ACEPTAR = "aceptar"
    RECHAZAR = "rechazar"
    INCIERTO = "incierto"


class Suggestion(Base):
    __tablename__ = "sugerencia_ia"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("casos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    sugerencia: Mapped[SuggestionType] = mapped_column(
        Enum(SuggestionType, name="sugerencia_tipo", values_callable=lambda e: [x.value for x in e]),
        nullable=False,
    )
    confianza: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Confianza 0-100"
    )
    explicacion: Mapped[str | None] = mapped_column(Text)
    method: Mapped[str] = mapped_column(
        String(50), nullable=False, default="random",
        comment="Generador que produjo la sugerencia"
    )
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    __table_args__ = (
        UniqueConstraint("case_id", "version", name="uq_sugerencia_caso_version"),
    )

    def to_snapshot(self) -> dict:
        return {
            "sugerencia": self.sugerencia.value,
            "confianza": self.confianza,
            "explicacion": self.explicacion,
            "method": self.method,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
        }

    def __repr__(self) -> str:
        return f"<Suggestion {self.sugerencia.value} ({self.confianza}%) v{self.version}>"
