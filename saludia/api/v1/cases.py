"""
Endpoints de casos clínicos: CRUD, edición, decisión y comunicación.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from saludia.auth.dependencies import get_current_user, require_permission
from saludia.database import get_db
from saludia.models.case import CaseStatus
from saludia.models.user import UserProfile
from saludia.schemas.case import (
    CaseCreate,
    CaseDecisionRequest,
    CaseDecisionResponse,
    CaseDetailResponse,
    CaseListResponse,
    CaseUpdate,
    CommunicationRequest,
    CommunicationResponse,
)
from saludia.schemas.insurer import InsurerStateUpdate
from saludia.services import case_service, insurer_service
from saludia.services.suggestion_service import SuggestionGenerator, get_suggestion_generator

router = APIRouter()


def _get_client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


@router.get("", response_model=CaseListResponse)
async def list_cases(
    page: int = Query(1, ge=1, description="Número de página"),
    size: int = Query(20, ge=1, le=100, description="Tamaño de página"),
    estado: CaseStatus | None = Query(None, description="Filtrar por estado"),
    date_from: datetime | None = Query(None, description="Creados desde"),
    date_to: datetime | None = Query(None, description="Creados hasta"),
    treating_physician_id: UUID | None = Query(None, description="Médico tratante"),
    search: str | None = Query(None, description="Paciente, diagnóstico o episodio"),
    case_id: UUID | None = Query(None, description="ID exacto del caso"),
    user: UserProfile = Depends(require_permission("case", "read")),
    db: AsyncSession = Depends(get_db),
):
    """
    Lista casos con paginación y filtros.
    Un médico solo ve los casos que creó.
    """
    return await case_service.list_cases(
        db,
        user,
        page=page,
        size=size,
        estado=estado,
        date_from=date_from,
        date_to=date_to,
        treating_physician_id=treating_physician_id,
        search=search,
        case_id=case_id,
    )


@router.post("", response_model=CaseDetailResponse, status_code=201)
async def create_case(
    data: CaseCreate,
    request: Request,
    user: UserProfile = Depends(require_permission("case", "create")),
    generator: SuggestionGenerator = Depends(get_suggestion_generator),
    db: AsyncSession = Depends(get_db),
):
    """Crea un caso pendiente y genera su sugerencia IA."""
    return await case_service.create_case(
        db, user, data, generator, ip_address=_get_client_ip(request)
    )


@router.get("/{case_id}", response_model=CaseDetailResponse)
async def get_case(
    case_id: UUID,
    user: UserProfile = Depends(require_permission("case", "read")),
    db: AsyncSession = Depends(get_db),
):
    """Detalle del caso con sugerencia vigente y resolución."""
    return await case_service.get_case(db, user, case_id)


@router.put("/{case_id}", response_model=CaseDetailResponse)
async def update_case(
    case_id: UUID,
    data: CaseUpdate,
    request: Request,
    user: UserProfile = Depends(require_permission("case", "update")),
    generator: SuggestionGenerator = Depends(get_suggestion_generator),
    db: AsyncSession = Depends(get_db),
):
    """
    Edita datos clínicos. Regenera la sugerencia IA; el estado no cambia.
    Solo se actualizan los campos enviados.
    """
    return await case_service.update_case(
        db, user, case_id, data, generator, ip_address=_get_client_ip(request)
    )


@router.post("/{case_id}/cancel-edit", response_model=CaseDetailResponse)
async def cancel_edit(
    case_id: UUID,
    request: Request,
    user: UserProfile = Depends(require_permission("case", "update")),
    db: AsyncSession = Depends(get_db),
):
    """Restaura los datos y la sugerencia previos a la edición pendiente."""
    return await case_service.cancel_edit(
        db, user, case_id, ip_address=_get_client_ip(request)
    )


@router.post("/{case_id}/decision", response_model=CaseDecisionResponse)
async def decide_case(
    case_id: UUID,
    data: CaseDecisionRequest,
    request: Request,
    user: UserProfile = Depends(require_permission("case", "decide")),
    db: AsyncSession = Depends(get_db),
):
    """
    Registra la decisión sobre la Ley de Urgencia.
    - Médico tratante en desacuerdo con la IA → derivado (requiere justificación)
    - Médico jefe → resuelve casos derivados o reabre casos cerrados
    """
    return await case_service.decide_case(
        db, user, case_id, data, ip_address=_get_client_ip(request)
    )


@router.put("/{case_id}/insurer-state", response_model=CaseDetailResponse)
async def set_insurer_state(
    case_id: UUID,
    data: InsurerStateUpdate,
    request: Request,
    user: UserProfile = Depends(require_permission("insurer", "update")),
    db: AsyncSession = Depends(get_db),
):
    """Override manual del estado de aseguradora (solo casos aceptados)."""
    await insurer_service.set_insurer_state(
        db, user, case_id, data.state, ip_address=_get_client_ip(request)
    )
    return await case_service.get_case(db, user, case_id)


@router.post("/{case_id}/communication", response_model=CommunicationResponse, status_code=201)
async def register_communication(
    case_id: UUID,
    data: CommunicationRequest,
    request: Request,
    user: UserProfile = Depends(require_permission("case", "communicate")),
    db: AsyncSession = Depends(get_db),
):
    """Registra y opcionalmente envía al paciente el resultado del caso."""
    return await case_service.register_communication(
        db, user, case_id, data, ip_address=_get_client_ip(request)
    )


@router.delete("/{case_id}", status_code=204)
async def delete_case(
    case_id: UUID,
    request: Request,
    user: UserProfile = Depends(require_permission("case", "delete")),
    db: AsyncSession = Depends(get_db),
):
    """Elimina un caso y sus registros asociados (solo admin)."""
    await case_service.delete_case(
        db, user, case_id, ip_address=_get_client_ip(request)
    )
