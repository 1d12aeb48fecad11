"""
Generador de sugerencias IA sobre la aplicación de la Ley de Urgencia.

El generador es una dependencia inyectable: el flujo de decisión no asume
que la sugerencia sea determinista ni correcta. Solo garantiza que tras
crear o editar un caso existe exactamente una sugerencia vigente.
"""

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from saludia.config import get_settings
from saludia.database import utcnow
from saludia.models.case import Case
from saludia.models.suggestion import Suggestion, SuggestionType

settings = get_settings()
logger = logging.getLogger(__name__)

MAX_EXPLANATION_LENGTH = 4000


@dataclass(frozen=True)
class GeneratedSuggestion:
    sugerencia: SuggestionType
    confianza: int
    explicacion: str


class SuggestionGenerator(Protocol):
    name: str

    def generate(self, case_data: dict) -> GeneratedSuggestion:
        ...


class RandomSuggestionGenerator:
    """Oráculo provisional: elección uniforme aceptar/rechazar."""

    name = "random"

    def __init__(
        self,
        min_confidence: int | None = None,
        max_confidence: int | None = None,
        rng: random.Random | None = None,
    ):
        self.min_confidence = min_confidence or settings.SUGGESTION_MIN_CONFIDENCE
        self.max_confidence = max_confidence or settings.SUGGESTION_MAX_CONFIDENCE
        self._rng = rng or random.Random()

    def generate(self, case_data: dict) -> GeneratedSuggestion:
        sugerencia = self._rng.choice([SuggestionType.ACEPTAR, SuggestionType.RECHAZAR])
        confianza = self._rng.randint(self.min_confidence, self.max_confidence)
        return GeneratedSuggestion(
            sugerencia=sugerencia,
            confianza=confianza,
            explicacion=_explain(sugerencia, case_data),
        )


def _explain(sugerencia: SuggestionType, case_data: dict) -> str:
    verdict = "APLICA" if sugerencia == SuggestionType.ACEPTAR else "NO APLICA"
    lines = [f"Evaluación automática: {verdict} Ley de Urgencia."]

    diagnosis = case_data.get("primary_diagnosis")
    if diagnosis:
        lines.append(f"Diagnóstico principal: {diagnosis}.")

    findings = [
        label
        for field, label in (
            ("mechanical_ventilation", "ventilación mecánica"),
            ("vasoactive_drugs", "drogas vasoactivas"),
            ("altered_consciousness", "compromiso de conciencia"),
            ("altered_ecg", "ECG alterado"),
            ("altered_troponins", "troponinas alteradas"),
        )
        if case_data.get(field)
    ]
    if findings:
        lines.append(f"Hallazgos: {', '.join(findings)}.")

    vitals = [
        f"{label} {case_data[field]}"
        for field, label in (
            ("mean_arterial_pressure", "PAM"),
            ("heart_rate", "FC"),
            ("spo2", "SatO2"),
            ("glasgow", "Glasgow"),
        )
        if case_data.get(field) is not None
    ]
    if vitals:
        lines.append(f"Signos vitales: {', '.join(vitals)}.")
    return " ".join(lines)


def truncate_explanation(text: str | None) -> str | None:
    if text is not None and len(text) > MAX_EXPLANATION_LENGTH:
        return text[:MAX_EXPLANATION_LENGTH] + "..."
    return text


_default_generator = RandomSuggestionGenerator()


def get_suggestion_generator() -> SuggestionGenerator:
    """Dependency de FastAPI. Los tests la sobreescriben con un generador fijo."""
    return _default_generator


# ── Persistencia ─────────────────────────────────────

async def get_current_suggestion(db: AsyncSession, case: Case) -> Suggestion | None:
    """Sugerencia vigente: la fila cuya versión coincide con el puntero del caso."""
    if not case.suggestion_version:
        return None
    result = await db.execute(
        select(Suggestion).where(
            Suggestion.case_id == case.id,
            Suggestion.version == case.suggestion_version,
        )
    )
    return result.scalar_one_or_none()


async def replace_suggestion(
    db: AsyncSession,
    case: Case,
    *,
    sugerencia: SuggestionType,
    confianza: int,
    explicacion: str | None,
    method: str,
    processed_at: datetime | None = None,
) -> Suggestion:
    """Borra todas las sugerencias del caso e inserta una nueva versión."""
    await db.execute(delete(Suggestion).where(Suggestion.case_id == case.id))

    version = (case.suggestion_version or 0) + 1
    suggestion = Suggestion(
        case_id=case.id,
        version=version,
        sugerencia=sugerencia,
        confianza=confianza,
        explicacion=truncate_explanation(explicacion),
        method=method,
        processed_at=processed_at or utcnow(),
    )
    db.add(suggestion)
    case.suggestion_version = version
    case.ai_analyzed_at = suggestion.processed_at
    await db.flush()
    return suggestion


async def regenerate_suggestion(
    db: AsyncSession,
    case: Case,
    generator: SuggestionGenerator,
) -> Suggestion:
    """Genera una sugerencia para los datos clínicos actuales y la deja vigente."""
    generated = generator.generate(case.clinical_snapshot())
    suggestion = await replace_suggestion(
        db,
        case,
        sugerencia=generated.sugerencia,
        confianza=generated.confianza,
        explicacion=generated.explicacion,
        method=getattr(generator, "name", type(generator).__name__),
    )
    logger.info(
        f"Sugerencia v{suggestion.version} para caso {case.id}: "
        f"{suggestion.sugerencia.value} ({suggestion.confianza}%)"
    )
    return suggestion


async def list_suggestions(db: AsyncSession, case_id: UUID) -> list[Suggestion]:
    result = await db.execute(
        select(Suggestion).where(Suggestion.case_id == case_id).order_by(Suggestion.version)
    )
    return list(result.scalars().all())
