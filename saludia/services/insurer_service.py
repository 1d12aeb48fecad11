"""
Seguimiento de la resolución de aseguradoras sobre casos aceptados.

Dos canales:
- Override manual de un caso (admin / médico jefe).
- Importación masiva de líneas "episodio,resolución", pegadas como texto
  o derivadas de una planilla Excel. Primero se valida el formato de
  TODAS las líneas; si alguna falla no se escribe nada. Después cada
  línea se aplica en su propio savepoint y los episodios inexistentes
  solo se cuentan.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from zipfile import BadZipFile
from uuid import UUID

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from saludia.core.exceptions import ConflictException, NotFoundException, ValidationException
from saludia.database import utcnow
from saludia.models.case import Case, CaseStatus, InsurerResolutionState
from saludia.models.user import UserProfile
from saludia.schemas.insurer import BulkImportSummary, BulkLineError
from saludia.services.audit_service import log_action

logger = logging.getLogger(__name__)


# ── Normalización de etiquetas ───────────────────────

_LABEL_VARIANTS: dict[InsurerResolutionState, tuple[str, ...]] = {
    InsurerResolutionState.ACEPTADA: (
        "aceptada", "aceptado", "aceptar", "aprobada", "aprobado", "pertinente", "si",
    ),
    InsurerResolutionState.RECHAZADA: (
        "rechazada", "rechazado", "rechazar", "denegada", "denegado", "no pertinente", "no",
    ),
    InsurerResolutionState.PENDIENTE: (
        "pendiente", "en espera",
    ),
    InsurerResolutionState.PENDIENTE_ENVIO: (
        "pendiente envio", "pendiente de envio", "por enviar",
    ),
}

_LABELS: dict[str, InsurerResolutionState] = {
    variant: state
    for state, variants in _LABEL_VARIANTS.items()
    for variant in variants
}


def _fold(text: str) -> str:
    """Minúsculas, sin tildes, guiones/underscores como espacios, espacios simples."""
    text = unicodedata.normalize("NFKD", text)
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = text.lower().replace("-", " ").replace("_", " ")
    return re.sub(r"\s+", " ", text).strip()


def normalize_resolution_label(label: str) -> InsurerResolutionState | None:
    """
    Traduce una etiqueta libre a uno de los cuatro estados.
    Retorna None si no se reconoce.

    >>> normalize_resolution_label("  Aprobada ")
    <InsurerResolutionState.ACEPTADA: 'aceptada'>
    >>> normalize_resolution_label("Pendiente-de envío")
    <InsurerResolutionState.PENDIENTE_ENVIO: 'pendiente_envio'>
    """
    if label is None:
        return None
    return _LABELS.get(_fold(label))


# ── Parseo y validación de formato ───────────────────

@dataclass(frozen=True)
class BulkLine:
    line_number: int
    episodio: str
    state: InsurerResolutionState


def parse_bulk_lines(content: str) -> list[BulkLine]:
    """
    Valida todas las líneas no vacías. Si alguna tiene formato inválido
    lanza ValidationException con la lista completa de errores.
    """
    parsed: list[BulkLine] = []
    errors: list[dict] = []

    for number, raw in enumerate(content.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue

        parts = [p.strip() for p in line.split(",")]
        if len(parts) != 2:
            errors.append({
                "line_number": number,
                "line": line,
                "error": "Formato inválido: se esperaba 'episodio,resolución'",
            })
            continue

        episodio, label = parts
        if not episodio:
            errors.append({"line_number": number, "line": line, "error": "Episodio vacío"})
            continue

        state = normalize_resolution_label(label)
        if state is None:
            errors.append({
                "line_number": number,
                "line": line,
                "error": f"Resolución no reconocida: '{label}'",
            })
            continue

        parsed.append(BulkLine(line_number=number, episodio=episodio, state=state))

    if errors:
        raise ValidationException({
            "message": "El lote tiene líneas con formato inválido; no se aplicó ningún cambio",
            "errors": errors,
        })
    if not parsed:
        raise ValidationException("No se encontraron líneas para procesar")
    return parsed


# ── Planillas Excel ──────────────────────────────────

_EPISODE_HEADERS = {"episodio", "episode"}
_VALIDATION_HEADERS = {"validacion", "validation"}

_SPREADSHEET_VALUES = {
    "pertinente": "Aceptada",
    "no pertinente": "Rechazada",
}


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def spreadsheet_to_lines(content: bytes) -> str:
    """
    Convierte la primera hoja de un .xlsx en líneas 'episodio,resolución'.

    Busca las columnas Episodio/Episode y Validación/Validation en la fila
    de encabezado. PERTINENTE → Aceptada, NO PERTINENTE → Rechazada; otros
    valores pasan tal cual al pipeline de texto.
    """
    try:
        workbook = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError) as e:
        raise ValidationException(f"No se pudo leer la planilla: {e}")

    try:
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            raise ValidationException("La planilla está vacía")

        folded = [_fold(_cell_text(h)) for h in header]
        episode_col = next((i for i, h in enumerate(folded) if h in _EPISODE_HEADERS), None)
        validation_col = next((i for i, h in enumerate(folded) if h in _VALIDATION_HEADERS), None)
        if episode_col is None or validation_col is None:
            raise ValidationException(
                "La planilla debe tener columnas 'Episodio' y 'Validación'"
            )

        lines = []
        for row in rows:
            episodio = _cell_text(row[episode_col]) if episode_col < len(row) else ""
            if not episodio:
                continue
            value = _cell_text(row[validation_col]) if validation_col < len(row) else ""
            value = _SPREADSHEET_VALUES.get(_fold(value), value)
            lines.append(f"{episodio},{value}")
    finally:
        workbook.close()

    logger.info(f"Planilla convertida a {len(lines)} líneas")
    return "\n".join(lines)


def read_resolutions_file(path: Path) -> str:
    """Lee un archivo de resoluciones (.txt, .csv o .xlsx) como texto de líneas."""
    if path.suffix.lower() == ".xlsx":
        return spreadsheet_to_lines(path.read_bytes())
    # utf-8-sig descarta el BOM de los CSV exportados desde Excel
    return path.read_text(encoding="utf-8-sig")


# ── Aplicación del lote ──────────────────────────────

async def apply_bulk_resolutions(
    db: AsyncSession,
    user: UserProfile | None,
    content: str,
    ip_address: str | None = None,
) -> BulkImportSummary:
    """
    Aplica el lote a todos los casos aceptados de cada episodio.
    Los episodios no encontrados y los errores por línea se cuentan.
    """
    lines = parse_bulk_lines(content)

    updated_lines = 0
    updated_cases = 0
    not_found_episodes: list[str] = []
    error_details: list[BulkLineError] = []

    for line in lines:
        try:
            async with db.begin_nested():
                result = await db.execute(
                    select(Case).where(
                        Case.episodio == line.episodio,
                        Case.estado == CaseStatus.ACEPTADO,
                    )
                )
                cases = result.scalars().all()
                if not cases:
                    not_found_episodes.append(line.episodio)
                    continue
                for case in cases:
                    case.insurer_resolution_state = line.state
                    case.updated_at = utcnow()
                await db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error aplicando línea {line.line_number} ({line.episodio}): {e}")
            error_details.append(BulkLineError(
                line_number=line.line_number,
                line=f"{line.episodio},{line.state.value}",
                error="Error de base de datos al actualizar el episodio",
            ))
            continue

        updated_lines += 1
        updated_cases += len(cases)

    summary = BulkImportSummary(
        total_lines=len(lines),
        updated_lines=updated_lines,
        updated_cases=updated_cases,
        not_found=len(not_found_episodes),
        not_found_episodes=not_found_episodes,
        errors=len(error_details),
        error_details=error_details,
        partial=updated_lines < len(lines),
    )

    await log_action(
        db,
        user_id=user.user_id if user else None,
        entity="insurer_resolution",
        entity_id="bulk",
        action="bulk_import",
        new_data=summary.model_dump(exclude={"error_details"}),
        ip_address=ip_address,
    )
    await db.commit()

    logger.info(
        f"Importación de resoluciones: {updated_lines}/{len(lines)} líneas, "
        f"{updated_cases} casos, {len(not_found_episodes)} no encontrados, "
        f"{len(error_details)} errores"
    )
    return summary


# ── Override manual ──────────────────────────────────

async def set_insurer_state(
    db: AsyncSession,
    user: UserProfile,
    case_id: UUID,
    state: InsurerResolutionState,
    ip_address: str | None = None,
) -> Case:
    """Cambia el estado de aseguradora de un caso aceptado, en cualquier dirección."""
    result = await db.execute(select(Case).where(Case.id == case_id))
    case = result.scalar_one_or_none()
    if not case:
        raise NotFoundException("Caso")

    if case.estado != CaseStatus.ACEPTADO:
        raise ConflictException(
            f"El estado de aseguradora solo aplica a casos aceptados (estado actual: {case.estado.value})"
        )

    old_state = case.insurer_resolution_state
    case.insurer_resolution_state = state
    case.updated_at = utcnow()
    await db.flush()

    await log_action(
        db,
        user_id=user.user_id,
        entity="case",
        entity_id=str(case.id),
        action="insurer_override",
        old_data={"insurer_resolution_state": old_state},
        new_data={"insurer_resolution_state": state},
        ip_address=ip_address,
    )
    await db.commit()
    return case
