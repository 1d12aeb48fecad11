"""
Endpoints de importación masiva de resoluciones de aseguradoras.
"""

from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from saludia.auth.dependencies import require_permission
from saludia.core.exceptions import ValidationException
from saludia.database import get_db
from saludia.models.user import UserProfile
from saludia.schemas.insurer import BulkImportRequest, BulkImportSummary
from saludia.services import insurer_service

router = APIRouter()


def _get_client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


@router.post("/import", response_model=BulkImportSummary)
async def import_resolutions(
    data: BulkImportRequest,
    request: Request,
    user: UserProfile = Depends(require_permission("insurer", "import")),
    db: AsyncSession = Depends(get_db),
):
    """
    Importa líneas 'episodio,resolución'.
    Si alguna línea tiene formato inválido se rechaza el lote completo (422).
    """
    return await insurer_service.apply_bulk_resolutions(
        db, user, data.content, ip_address=_get_client_ip(request)
    )


@router.post("/import-file", response_model=BulkImportSummary)
async def import_resolutions_file(
    request: Request,
    file: UploadFile = File(
        ..., description="Planilla .xlsx con columnas Episodio y Validación"
    ),
    user: UserProfile = Depends(require_permission("insurer", "import")),
    db: AsyncSession = Depends(get_db),
):
    """Importa resoluciones desde una planilla Excel."""
    if not file.filename or not file.filename.lower().endswith(".xlsx"):
        raise ValidationException("El archivo debe ser una planilla Excel (.xlsx)")

    try:
        content = await file.read()
    finally:
        await file.close()

    lines = insurer_service.spreadsheet_to_lines(content)
    return await insurer_service.apply_bulk_resolutions(
        db, user, lines, ip_address=_get_client_ip(request)
    )
