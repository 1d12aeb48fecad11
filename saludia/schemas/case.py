"""
Schemas para Case (casos clínicos bajo la Ley de Urgencia).
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from saludia.models.case import CaseStatus, InsurerResolutionState
from saludia.models.resolution import Decision
from saludia.models.suggestion import SuggestionType


class ClinicalData(BaseModel):
    """Campos clínicos opcionales compartidos por create y update."""
    center: str | None = Field(None, max_length=200)
    admitted_at: datetime | None = None
    prevision: str | None = Field(None, max_length=50)
    insurer_name: str | None = Field(None, max_length=100)

    symptoms: str | None = None
    clinical_history: str | None = None
    additional_description: str | None = None

    systolic_bp: int | None = Field(None, ge=0, le=300)
    diastolic_bp: int | None = Field(None, ge=0, le=250)
    heart_rate: int | None = Field(None, ge=0, le=300)
    respiratory_rate: int | None = Field(None, ge=0, le=100)
    temperature_c: float | None = Field(None, ge=25, le=45)
    spo2: int | None = Field(None, ge=0, le=100)
    glasgow: int | None = Field(None, ge=3, le=15)

    triage: str | None = Field(None, max_length=10)
    bed_type: str | None = Field(None, max_length=50)
    mechanical_ventilation: bool | None = None
    vasoactive_drugs: bool | None = None
    altered_consciousness: bool | None = None
    altered_ecg: bool | None = None
    altered_troponins: bool | None = None


class CaseCreate(ClinicalData):
    episodio: str | None = Field(
        None, max_length=50,
        description="Número de episodio. Si se omite se genera EP-<epoch ms>"
    )
    patient_name: str = Field(..., min_length=2, max_length=200)
    patient_age: int = Field(..., ge=0, le=130)
    patient_sex: str = Field(..., pattern=r"^(M|F)$")
    patient_email: EmailStr
    primary_diagnosis: str = Field(..., min_length=1)

    @field_validator("patient_name", "primary_diagnosis")
    @classmethod
    def not_blank(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("El campo no puede estar vacío")
        return cleaned


class CaseUpdate(ClinicalData):
    episodio: str | None = Field(None, min_length=1, max_length=50)
    patient_name: str | None = Field(None, min_length=2, max_length=200)
    patient_age: int | None = Field(None, ge=0, le=130)
    patient_sex: str | None = Field(None, pattern=r"^(M|F)$")
    patient_email: EmailStr | None = None
    primary_diagnosis: str | None = Field(None, min_length=1)

    @field_validator("patient_name", "primary_diagnosis")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("El campo no puede estar vacío")
        return cleaned


class CaseDecisionRequest(BaseModel):
    decision: Decision
    comment: str | None = Field(
        None, max_length=4000,
        description="Justificación. Obligatoria si la decisión difiere de la sugerencia IA"
    )


class CommunicationRequest(BaseModel):
    send: bool = Field(True, description="False = registrar sin enviar correo")
    email: EmailStr | None = Field(
        None, description="Destinatario. Por defecto el correo del paciente"
    )
    additional_comment: str | None = Field(None, max_length=2000)


# ── Respuestas ───────────────────────────────────────

class SuggestionResponse(BaseModel):
    id: UUID
    version: int
    sugerencia: SuggestionType
    confianza: int
    explicacion: str | None = None
    method: str
    processed_at: datetime

    model_config = {"from_attributes": True}


class ResolutionResponse(BaseModel):
    decision_medico: Decision | None = None
    comentario_medico: str | None = None
    fecha_decision_medico: datetime | None = None
    decision_final: Decision | None = None
    comentario_final: str | None = None
    fecha_decision_medico_jefe: datetime | None = None
    comentario_email: str | None = None

    model_config = {"from_attributes": True}


class CaseResponse(BaseModel):
    id: UUID
    episodio: str
    center: str | None = None
    admitted_at: datetime | None = None
    patient_name: str
    patient_age: int
    patient_sex: str
    patient_email: str
    prevision: str | None = None
    insurer_name: str | None = None
    primary_diagnosis: str
    symptoms: str | None = None
    clinical_history: str | None = None
    additional_description: str | None = None
    systolic_bp: int | None = None
    diastolic_bp: int | None = None
    mean_arterial_pressure: int | None = None
    heart_rate: int | None = None
    respiratory_rate: int | None = None
    temperature_c: float | None = None
    spo2: int | None = None
    glasgow: int | None = None
    triage: str | None = None
    bed_type: str | None = None
    mechanical_ventilation: bool
    vasoactive_drugs: bool
    altered_consciousness: bool
    altered_ecg: bool
    altered_troponins: bool

    estado: CaseStatus
    treating_physician_id: UUID
    chief_physician_id: UUID | None = None
    insurer_resolution_state: InsurerResolutionState | None = None
    suggestion_version: int
    edited_after_decision: bool
    ai_analyzed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CaseDetailResponse(CaseResponse):
    suggestion: SuggestionResponse | None = None
    resolution: ResolutionResponse | None = None
    has_pending_edit: bool = False


class CaseListResponse(BaseModel):
    """Respuesta paginada de listado de casos."""
    items: list[CaseResponse]
    total: int
    page: int
    size: int
    pages: int


class CaseDecisionResponse(BaseModel):
    case: CaseDetailResponse
    previous_state: CaseStatus
    escalated: bool


class CommunicationResponse(BaseModel):
    id: UUID
    case_id: UUID
    resultado: Decision
    recipient_email: str | None = None
    enviada: bool
    fecha_envio: datetime | None = None
    provider_message_id: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
