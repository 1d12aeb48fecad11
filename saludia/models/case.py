"""
Modelo Case — caso clínico evaluado bajo la Ley de Urgencia (tabla casos).

El campo `estado` solo cambia a través de las acciones de decisión
(ver saludia/core/transitions.py). Editar datos clínicos regenera la
sugerencia IA pero no toca `estado`.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from saludia.database import Base, utcnow


class CaseStatus(str, enum.Enum):
    """Estado clínico del caso."""
    PENDIENTE = "pendiente"
    ACEPTADO = "aceptado"
    RECHAZADO = "rechazado"
    DERIVADO = "derivado"


class InsurerResolutionState(str, enum.Enum):
    """Resolución de la aseguradora. Solo aplica a casos aceptados."""
    PENDIENTE = "pendiente"
    PENDIENTE_ENVIO = "pendiente_envio"
    ACEPTADA = "aceptada"
    RECHAZADA = "rechazada"


# Campos clínicos editables: se copian al snapshot antes de una edición
# y se restauran verbatim al cancelarla.
CLINICAL_FIELDS: tuple[str, ...] = (
    "episodio",
    "center",
    "admitted_at",
    "patient_name",
    "patient_age",
    "patient_sex",
    "patient_email",
    "prevision",
    "insurer_name",
    "primary_diagnosis",
    "symptoms",
    "clinical_history",
    "additional_description",
    "systolic_bp",
    "diastolic_bp",
    "mean_arterial_pressure",
    "heart_rate",
    "respiratory_rate",
    "temperature_c",
    "spo2",
    "glasgow",
    "triage",
    "bed_type",
    "mechanical_ventilation",
    "vasoactive_drugs",
    "altered_consciousness",
    "altered_ecg",
    "altered_troponins",
)


class Case(Base):
    __tablename__ = "casos"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )

    # ── Identificación ───────────────────────────────
    episodio: Mapped[str] = mapped_column(
        String(50), nullable=False, index=True,
        comment="Número de episodio hospitalario. No es único."
    )
    center: Mapped[str | None] = mapped_column(String(200))
    admitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # ── Paciente ─────────────────────────────────────
    patient_name: Mapped[str] = mapped_column(String(200), nullable=False)
    patient_age: Mapped[int] = mapped_column(Integer, nullable=False)
    patient_sex: Mapped[str] = mapped_column(String(10), nullable=False)
    patient_email: Mapped[str] = mapped_column(String(255), nullable=False)

    # ── Previsión ────────────────────────────────────
    prevision: Mapped[str | None] = mapped_column(
        String(50), comment="Familia de aseguradora: Fonasa, Isapre, etc."
    )
    insurer_name: Mapped[str | None] = mapped_column(
        String(100), comment="Nombre de la Isapre (solo si prevision=Isapre)"
    )

    # ── Diagnóstico ──────────────────────────────────
    primary_diagnosis: Mapped[str] = mapped_column(Text, nullable=False)
    symptoms: Mapped[str | None] = mapped_column(Text)
    clinical_history: Mapped[str | None] = mapped_column(Text)
    additional_description: Mapped[str | None] = mapped_column(Text)

    # ── Signos vitales ───────────────────────────────
    systolic_bp: Mapped[int | None] = mapped_column(Integer)
    diastolic_bp: Mapped[int | None] = mapped_column(Integer)
    mean_arterial_pressure: Mapped[int | None] = mapped_column(Integer)
    heart_rate: Mapped[int | None] = mapped_column(Integer)
    respiratory_rate: Mapped[int | None] = mapped_column(Integer)
    temperature_c: Mapped[float | None] = mapped_column(Float)
    spo2: Mapped[int | None] = mapped_column(Integer)
    glasgow: Mapped[int | None] = mapped_column(Integer)

    # ── Evaluación clínica ───────────────────────────
    triage: Mapped[str | None] = mapped_column(String(10))
    bed_type: Mapped[str | None] = mapped_column(String(50))
    mechanical_ventilation: Mapped[bool] = mapped_column(Boolean, default=False)
    vasoactive_drugs: Mapped[bool] = mapped_column(Boolean, default=False)
    altered_consciousness: Mapped[bool] = mapped_column(Boolean, default=False)
    altered_ecg: Mapped[bool] = mapped_column(Boolean, default=False)
    altered_troponins: Mapped[bool] = mapped_column(Boolean, default=False)

    # ── Estado administrativo ────────────────────────
    estado: Mapped[CaseStatus] = mapped_column(
        Enum(CaseStatus, name="estado_caso", values_callable=lambda e: [x.value for x in e]),
        nullable=False, default=CaseStatus.PENDIENTE,
    )
    treating_physician_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, nullable=False, index=True,
        comment="Médico tratante que creó el caso (inmutable)"
    )
    chief_physician_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, index=True,
        comment="Médico jefe que tomó o resolvió el caso"
    )
    insurer_resolution_state: Mapped[InsurerResolutionState | None] = mapped_column(
        Enum(InsurerResolutionState, name="estado_aseguradora", values_callable=lambda e: [x.value for x in e]),
        comment="Solo significativo cuando estado=aceptado"
    )

    # ── Sugerencia IA ────────────────────────────────
    suggestion_version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
        comment="Versión de la sugerencia vigente en sugerencia_ia"
    )
    ai_analyzed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    edited_after_decision: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
        comment="Aviso: datos clínicos editados después de la evaluación"
    )

    # ── Timestamps ───────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_casos_estado", "estado"),
        Index("idx_casos_episodio_estado", "episodio", "estado"),
        Index("idx_casos_created", "created_at"),
    )

    @property
    def is_closed(self) -> bool:
        return self.estado in (CaseStatus.ACEPTADO, CaseStatus.RECHAZADO)

    def clinical_snapshot(self) -> dict:
        """Copia de los campos clínicos editables."""
        return {field: getattr(self, field) for field in CLINICAL_FIELDS}

    def __repr__(self) -> str:
        return f"<Case {self.episodio} [{self.estado.value}]>"
