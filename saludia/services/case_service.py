"""
Servicio de casos: CRUD, edición con snapshot, decisión clínica y
comunicación al paciente.

La decisión (decide_case) aplica la transición resuelta por
saludia/core/transitions.py y todas sus escrituras (resolución, estado,
notificación, aseguradora, auditoría) se confirman en un único commit.
"""

import logging
import math
import time
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from saludia.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    RemoteServiceException,
    ValidationException,
)
from saludia.core.transitions import (
    Effect,
    insurer_state_after,
    resolve_actor,
    resolve_transition,
)
from saludia.database import utcnow
from saludia.models.case import CLINICAL_FIELDS, Case, CaseStatus
from saludia.models.case_edit_snapshot import CaseEditSnapshot
from saludia.models.notification import Notification
from saludia.models.patient_communication import PatientCommunication
from saludia.models.resolution import Decision, Resolution
from saludia.models.suggestion import Suggestion, SuggestionType
from saludia.models.user import AppRole, UserProfile
from saludia.schemas.case import (
    CaseCreate,
    CaseDecisionRequest,
    CaseDecisionResponse,
    CaseDetailResponse,
    CaseListResponse,
    CaseResponse,
    CaseUpdate,
    CommunicationRequest,
    CommunicationResponse,
    ResolutionResponse,
    SuggestionResponse,
)
from saludia.services import notification_service, resolution_service
from saludia.services.audit_service import log_action
from saludia.services.email_service import EmailError, send_patient_email
from saludia.services.suggestion_service import (
    SuggestionGenerator,
    get_current_suggestion,
    regenerate_suggestion,
    replace_suggestion,
)

logger = logging.getLogger(__name__)

DEFAULT_CENTER = "Centro sin especificar"
ISAPRE = "Isapre"

_DATETIME_FIELDS = {"admitted_at"}
_BOOLEAN_FIELDS = {
    "mechanical_ventilation",
    "vasoactive_drugs",
    "altered_consciousness",
    "altered_ecg",
    "altered_troponins",
}


# ── Helpers ──────────────────────────────────────────


def compute_mean_arterial_pressure(
    systolic: int | None, diastolic: int | None
) -> int | None:
    """PAM = (2·diastólica + sistólica) / 3, redondeada."""
    if systolic is None or diastolic is None:
        return None
    return round((2 * diastolic + systolic) / 3)


def _default_episode() -> str:
    return f"EP-{int(time.time() * 1000)}"


def _normalize_prevision(case: Case) -> None:
    """El nombre de la aseguradora solo se guarda para Isapre."""
    if case.prevision != ISAPRE:
        case.insurer_name = None


def _serialize_clinical(data: dict) -> dict:
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in data.items()
    }


def _deserialize_clinical(data: dict) -> dict:
    restored = {}
    for key, value in data.items():
        if key in _DATETIME_FIELDS and isinstance(value, str):
            value = datetime.fromisoformat(value)
        restored[key] = value
    return restored


async def _get_case_or_404(db: AsyncSession, case_id: UUID) -> Case:
    result = await db.execute(select(Case).where(Case.id == case_id))
    case = result.scalar_one_or_none()
    if not case:
        raise NotFoundException("Caso")
    return case


async def _get_snapshot(db: AsyncSession, case_id: UUID) -> CaseEditSnapshot | None:
    result = await db.execute(
        select(CaseEditSnapshot).where(CaseEditSnapshot.case_id == case_id)
    )
    return result.scalar_one_or_none()


def _ensure_can_view(user: UserProfile, case: Case) -> None:
    if user.role == AppRole.MEDICO and case.treating_physician_id != user.user_id:
        raise ForbiddenException("No tiene acceso a este caso")


def _ensure_can_edit(user: UserProfile, case: Case) -> None:
    if case.treating_physician_id == user.user_id or user.role == AppRole.MEDICO_JEFE:
        return
    raise ForbiddenException("Solo el médico tratante o un médico jefe pueden editar el caso")


async def _build_detail(db: AsyncSession, case: Case) -> CaseDetailResponse:
    suggestion = await get_current_suggestion(db, case)
    resolution = await resolution_service.get_resolution(db, case.id)
    snapshot = await _get_snapshot(db, case.id)

    base = CaseResponse.model_validate(case)
    return CaseDetailResponse(
        **base.model_dump(),
        suggestion=SuggestionResponse.model_validate(suggestion) if suggestion else None,
        resolution=ResolutionResponse.model_validate(resolution) if resolution else None,
        has_pending_edit=snapshot is not None,
    )


# ── Crear caso ───────────────────────────────────────


async def create_case(
    db: AsyncSession,
    user: UserProfile,
    data: CaseCreate,
    generator: SuggestionGenerator,
    ip_address: str | None = None,
) -> CaseDetailResponse:
    """
    Crea un caso pendiente a nombre del médico tratante y genera
    su primera sugerencia IA.
    """
    values = data.model_dump(exclude_none=True)
    values["episodio"] = (values.get("episodio") or "").strip() or _default_episode()
    values["center"] = (values.get("center") or "").strip() or DEFAULT_CENTER
    values.setdefault("admitted_at", utcnow())

    case = Case(
        **values,
        estado=CaseStatus.PENDIENTE,
        treating_physician_id=user.user_id,
    )
    case.mean_arterial_pressure = compute_mean_arterial_pressure(
        case.systolic_bp, case.diastolic_bp
    )
    _normalize_prevision(case)
    db.add(case)
    await db.flush()

    await regenerate_suggestion(db, case, generator)

    await log_action(
        db,
        user_id=user.user_id,
        entity="case",
        entity_id=str(case.id),
        action="create",
        new_data={"episodio": case.episodio, "patient_name": case.patient_name},
        ip_address=ip_address,
    )
    await db.commit()

    logger.info(f"Caso {case.episodio} creado por {user.email}")
    return await _build_detail(db, case)


# ── Obtener / listar ─────────────────────────────────


async def get_case(
    db: AsyncSession, user: UserProfile, case_id: UUID
) -> CaseDetailResponse:
    case = await _get_case_or_404(db, case_id)
    _ensure_can_view(user, case)
    return await _build_detail(db, case)


async def list_cases(
    db: AsyncSession,
    user: UserProfile,
    *,
    page: int = 1,
    size: int = 20,
    estado: CaseStatus | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    treating_physician_id: UUID | None = None,
    search: str | None = None,
    case_id: UUID | None = None,
) -> CaseListResponse:
    """
    Lista casos con paginación y filtros.
    Un médico solo ve sus propios casos; médico jefe y admin ven todos.
    """
    query = select(Case)

    if user.role == AppRole.MEDICO:
        query = query.where(Case.treating_physician_id == user.user_id)
    elif treating_physician_id:
        query = query.where(Case.treating_physician_id == treating_physician_id)

    if case_id:
        query = query.where(Case.id == case_id)
    if estado:
        query = query.where(Case.estado == estado)
    if date_from:
        query = query.where(Case.created_at >= date_from)
    if date_to:
        query = query.where(Case.created_at <= date_to)

    # Búsqueda por paciente, diagnóstico o episodio
    if search:
        search_term = f"%{search.strip().lower()}%"
        query = query.where(
            or_(
                func.lower(Case.patient_name).like(search_term),
                func.lower(Case.primary_diagnosis).like(search_term),
                func.lower(Case.episodio).like(search_term),
            )
        )

    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    offset = (page - 1) * size
    query = query.order_by(Case.created_at.desc()).offset(offset).limit(size)
    result = await db.execute(query)
    cases = result.scalars().all()

    return CaseListResponse(
        items=[CaseResponse.model_validate(c) for c in cases],
        total=total,
        page=page,
        size=size,
        pages=math.ceil(total / size) if total > 0 else 0,
    )


# ── Editar caso ──────────────────────────────────────


async def update_case(
    db: AsyncSession,
    user: UserProfile,
    case_id: UUID,
    data: CaseUpdate,
    generator: SuggestionGenerator,
    ip_address: str | None = None,
) -> CaseDetailResponse:
    """
    Edita datos clínicos y regenera la sugerencia IA.

    Antes de la primera edición se guarda un snapshot (caso + sugerencia)
    para poder cancelarla. El estado clínico no cambia.
    """
    case = await _get_case_or_404(db, case_id)
    _ensure_can_edit(user, case)

    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationException("No se enviaron campos para actualizar")
    for field in ("episodio", "patient_name", "patient_age", "patient_sex",
                  "patient_email", "primary_diagnosis"):
        if field in changes and changes[field] is None:
            raise ValidationException(f"El campo '{field}' es obligatorio")

    # Snapshot solo si no hay uno pendiente: una cadena de ediciones
    # se cancela hasta el estado previo a la primera.
    if await _get_snapshot(db, case.id) is None:
        current = await get_current_suggestion(db, case)
        db.add(CaseEditSnapshot(
            case_id=case.id,
            case_data=_serialize_clinical(case.clinical_snapshot()),
            suggestion_data=current.to_snapshot() if current else None,
            created_by=user.user_id,
        ))

    old_data = {field: getattr(case, field) for field in changes}
    for field, value in changes.items():
        if value is None and field in _BOOLEAN_FIELDS:
            value = False
        setattr(case, field, value)

    case.mean_arterial_pressure = compute_mean_arterial_pressure(
        case.systolic_bp, case.diastolic_bp
    )
    _normalize_prevision(case)
    if case.estado != CaseStatus.PENDIENTE:
        case.edited_after_decision = True
    case.updated_at = utcnow()
    await db.flush()

    await regenerate_suggestion(db, case, generator)

    await log_action(
        db,
        user_id=user.user_id,
        entity="case",
        entity_id=str(case.id),
        action="update",
        old_data=old_data,
        new_data=changes,
        ip_address=ip_address,
    )
    await db.commit()
    return await _build_detail(db, case)


async def cancel_edit(
    db: AsyncSession,
    user: UserProfile,
    case_id: UUID,
    ip_address: str | None = None,
) -> CaseDetailResponse:
    """
    Restaura los datos clínicos y la sugerencia del snapshot (reemplazo
    completo) y limpia el aviso de edición posterior a la evaluación.
    No modifica estado, resolución ni estado de aseguradora.
    """
    case = await _get_case_or_404(db, case_id)
    _ensure_can_edit(user, case)

    snapshot = await _get_snapshot(db, case.id)
    if snapshot is None:
        raise NotFoundException("Edición", "No hay una edición pendiente para este caso")

    restored = _deserialize_clinical(snapshot.case_data)
    for field in CLINICAL_FIELDS:
        if field in restored:
            setattr(case, field, restored[field])

    suggestion_data = snapshot.suggestion_data
    if suggestion_data:
        await replace_suggestion(
            db,
            case,
            sugerencia=SuggestionType(suggestion_data["sugerencia"]),
            confianza=suggestion_data["confianza"],
            explicacion=suggestion_data["explicacion"],
            method=suggestion_data["method"],
            processed_at=(
                datetime.fromisoformat(suggestion_data["processed_at"])
                if suggestion_data.get("processed_at") else None
            ),
        )
    else:
        await db.execute(delete(Suggestion).where(Suggestion.case_id == case.id))
        case.suggestion_version = 0
        case.ai_analyzed_at = None

    case.edited_after_decision = False
    case.updated_at = utcnow()
    await db.delete(snapshot)
    await db.flush()

    await log_action(
        db,
        user_id=user.user_id,
        entity="case",
        entity_id=str(case.id),
        action="cancel_edit",
        new_data=snapshot.case_data,
        ip_address=ip_address,
    )
    await db.commit()
    return await _build_detail(db, case)


# ── Decisión clínica ─────────────────────────────────


async def decide_case(
    db: AsyncSession,
    user: UserProfile,
    case_id: UUID,
    data: CaseDecisionRequest,
    ip_address: str | None = None,
) -> CaseDecisionResponse:
    """
    Registra la decisión del médico tratante o del médico jefe.

    Si falta una justificación obligatoria se lanza ValidationException
    antes de escribir nada.
    """
    case = await _get_case_or_404(db, case_id)
    suggestion = await get_current_suggestion(db, case)
    comment = data.comment.strip() if data.comment else None
    comment = comment or None

    actor = resolve_actor(
        user_id=user.user_id,
        role=user.role,
        treating_physician_id=case.treating_physician_id,
        current_state=case.estado,
    )
    transition = resolve_transition(
        actor,
        case.estado,
        data.decision,
        suggestion.sugerencia if suggestion else None,
        has_justification=comment is not None,
        insurer_state=case.insurer_resolution_state,
    )

    previous_state = case.estado
    old_data = {
        "estado": previous_state,
        "chief_physician_id": case.chief_physician_id,
        "insurer_resolution_state": case.insurer_resolution_state,
    }

    if transition.has(Effect.PHYSICIAN_DECISION):
        await resolution_service.record_physician_decision(
            db, case.id, decision=data.decision, comment=comment
        )
    if transition.has(Effect.FINAL_DECISION):
        await resolution_service.record_final_decision(
            db,
            case.id,
            decision=data.decision,
            comment=comment,
            by_chief=transition.has(Effect.CHIEF_DECISION),
        )
    if transition.has(Effect.CLAIM_CASE) and case.chief_physician_id is None:
        case.chief_physician_id = user.user_id

    case.estado = transition.new_state
    if transition.has(Effect.SYNC_INSURER_TRACKING) or transition.new_state != CaseStatus.ACEPTADO:
        case.insurer_resolution_state = insurer_state_after(
            previous_state, transition.new_state, case.insurer_resolution_state
        )

    if transition.has(Effect.DISCARD_EDIT_SNAPSHOT):
        await db.execute(
            delete(CaseEditSnapshot).where(CaseEditSnapshot.case_id == case.id)
        )
        case.edited_after_decision = False

    case.updated_at = utcnow()
    await db.flush()

    if transition.has(Effect.NOTIFY_CHIEF_POOL):
        await notification_service.notify_case_escalated(db, case, user.display_name)
    if transition.has(Effect.NOTIFY_TREATING):
        await notification_service.notify_case_resolved(db, case, user.display_name)

    escalated = transition.new_state == CaseStatus.DERIVADO
    await log_action(
        db,
        user_id=user.user_id,
        entity="case",
        entity_id=str(case.id),
        action="escalate" if escalated else "decide",
        old_data=old_data,
        new_data={
            "actor": actor,
            "decision": data.decision,
            "suggestion": suggestion.sugerencia if suggestion else None,
            "estado": case.estado,
            "chief_physician_id": case.chief_physician_id,
            "insurer_resolution_state": case.insurer_resolution_state,
            "comment": comment,
        },
        ip_address=ip_address,
    )
    await db.commit()

    logger.info(
        f"Caso {case.episodio}: {previous_state.value} → {case.estado.value} "
        f"({actor.value}, decisión {data.decision.value})"
    )
    return CaseDecisionResponse(
        case=await _build_detail(db, case),
        previous_state=previous_state,
        escalated=escalated,
    )


# ── Comunicación al paciente ─────────────────────────


async def register_communication(
    db: AsyncSession,
    user: UserProfile,
    case_id: UUID,
    data: CommunicationRequest,
    ip_address: str | None = None,
) -> CommunicationResponse:
    """
    Registra (y opcionalmente envía por correo) la comunicación del
    resultado al paciente. Si el proveedor de correo falla no se guarda nada.
    """
    case = await _get_case_or_404(db, case_id)
    _ensure_can_view(user, case)

    if not case.is_closed:
        raise ConflictException(
            f"Solo se puede comunicar el resultado de un caso resuelto (estado actual: {case.estado.value})"
        )

    resolution = await resolution_service.get_resolution(db, case.id)
    suggestion = await get_current_suggestion(db, case)
    resultado = (
        resolution.decision_final
        if resolution and resolution.decision_final
        else Decision(case.estado.value)
    )

    base_explanation = (
        (resolution.comentario_final if resolution else None)
        or (suggestion.explicacion if suggestion else None)
        or ""
    )
    comment = data.additional_comment.strip() if data.additional_comment else None
    explanation = f"{base_explanation}\n\n{comment}" if comment else base_explanation
    recipient = data.email or case.patient_email

    provider_id = None
    if data.send:
        try:
            sent = await send_patient_email(
                to=recipient,
                patient_name=case.patient_name,
                diagnosis=case.primary_diagnosis,
                result=resultado.value,
                explanation=base_explanation,
                additional_comment=comment,
                insurance_status=(
                    case.insurer_resolution_state.value
                    if case.insurer_resolution_state else None
                ),
                insurance_type=case.insurer_name or case.prevision,
            )
        except EmailError as e:
            logger.error(f"No se pudo enviar el correo del caso {case.id}: {e.message}")
            raise RemoteServiceException(f"No se pudo enviar el correo: {e.message}")
        provider_id = sent.get("id")

    communication = PatientCommunication(
        case_id=case.id,
        resultado=resultado,
        explicacion=explanation,
        recipient_email=recipient,
        enviada=data.send,
        fecha_envio=utcnow() if data.send else None,
        provider_message_id=provider_id,
        created_by=user.user_id,
    )
    db.add(communication)
    await resolution_service.set_email_comment(db, case.id, comment)

    await log_action(
        db,
        user_id=user.user_id,
        entity="case",
        entity_id=str(case.id),
        action="communicate",
        new_data={"resultado": resultado, "enviada": data.send, "to": recipient},
        ip_address=ip_address,
    )
    await db.commit()
    return CommunicationResponse.model_validate(communication)


# ── Eliminar caso (admin) ────────────────────────────


async def delete_case(
    db: AsyncSession,
    user: UserProfile,
    case_id: UUID,
    ip_address: str | None = None,
) -> None:
    """Elimina un caso y todos sus registros dependientes."""
    case = await _get_case_or_404(db, case_id)

    for model in (
        Suggestion,
        PatientCommunication,
        Resolution,
        Notification,
        CaseEditSnapshot,
    ):
        await db.execute(delete(model).where(model.case_id == case.id))

    old_data = {
        "episodio": case.episodio,
        "patient_name": case.patient_name,
        "estado": case.estado,
    }
    await db.delete(case)

    await log_action(
        db,
        user_id=user.user_id,
        entity="case",
        entity_id=str(case_id),
        action="delete",
        old_data=old_data,
        ip_address=ip_address,
    )
    await db.commit()
    logger.info(f"Caso {old_data['episodio']} eliminado por {user.email}")
