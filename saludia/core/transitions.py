"""
State machine de resolución de casos.

Estados:
    pendiente → aceptado | rechazado        (médico tratante de acuerdo con la IA)
    pendiente → derivado                    (médico tratante en desacuerdo, con justificación)
    derivado | aceptado | rechazado → aceptado | rechazado   (médico jefe)

Ninguna transición devuelve un caso a pendiente. La tabla es pura: no toca
la base de datos. Los efectos los aplica case_service.decide_case.
"""

import enum
import uuid
from dataclasses import dataclass

from saludia.core.exceptions import ConflictException, ForbiddenException, ValidationException
from saludia.models.case import CaseStatus, InsurerResolutionState
from saludia.models.resolution import Decision
from saludia.models.suggestion import SuggestionType
from saludia.models.user import AppRole


class Actor(str, enum.Enum):
    TREATING = "treating"
    CHIEF = "chief"


class Effect(str, enum.Enum):
    """Escrituras que acompañan a una transición."""
    PHYSICIAN_DECISION = "physician_decision"   # decision_medico + comentario_medico
    FINAL_DECISION = "final_decision"           # decision_final + comentario_final
    CHIEF_DECISION = "chief_decision"           # fecha_decision_medico_jefe
    CLAIM_CASE = "claim_case"                   # chief_physician_id si está vacío
    NOTIFY_CHIEF_POOL = "notify_chief_pool"
    NOTIFY_TREATING = "notify_treating"
    SYNC_INSURER_TRACKING = "sync_insurer_tracking"
    DISCARD_EDIT_SNAPSHOT = "discard_edit_snapshot"


@dataclass(frozen=True)
class Transition:
    new_state: CaseStatus
    effects: tuple[Effect, ...]
    requires_justification: bool = False

    def has(self, effect: Effect) -> bool:
        return effect in self.effects


# Polaridad de la sugerencia. "incierto" no coincide con ninguna decisión.
_SUGGESTION_POLARITY: dict[SuggestionType, Decision | None] = {
    SuggestionType.ACEPTAR: Decision.ACEPTADO,
    SuggestionType.RECHAZAR: Decision.RECHAZADO,
    SuggestionType.INCIERTO: None,
}

_DECISION_TO_STATE: dict[Decision, CaseStatus] = {
    Decision.ACEPTADO: CaseStatus.ACEPTADO,
    Decision.RECHAZADO: CaseStatus.RECHAZADO,
}


# ── Tabla del médico tratante (caso pendiente) ───────
# Clave: (decisión, ¿coincide con la sugerencia?)
TREATING_TRANSITIONS: dict[tuple[Decision, bool], Transition] = {
    (Decision.ACEPTADO, True): Transition(
        CaseStatus.ACEPTADO,
        (
            Effect.PHYSICIAN_DECISION,
            Effect.FINAL_DECISION,
            Effect.SYNC_INSURER_TRACKING,
            Effect.DISCARD_EDIT_SNAPSHOT,
        ),
    ),
    (Decision.ACEPTADO, False): Transition(
        CaseStatus.DERIVADO,
        (
            Effect.PHYSICIAN_DECISION,
            Effect.NOTIFY_CHIEF_POOL,
            Effect.DISCARD_EDIT_SNAPSHOT,
        ),
        requires_justification=True,
    ),
    (Decision.RECHAZADO, True): Transition(
        CaseStatus.RECHAZADO,
        (
            Effect.PHYSICIAN_DECISION,
            Effect.FINAL_DECISION,
            Effect.DISCARD_EDIT_SNAPSHOT,
        ),
    ),
    (Decision.RECHAZADO, False): Transition(
        CaseStatus.DERIVADO,
        (
            Effect.PHYSICIAN_DECISION,
            Effect.NOTIFY_CHIEF_POOL,
            Effect.DISCARD_EDIT_SNAPSHOT,
        ),
        requires_justification=True,
    ),
}

# ── Médico jefe: estados desde los que puede resolver ─
CHIEF_RESOLVABLE_STATES: frozenset[CaseStatus] = frozenset({
    CaseStatus.DERIVADO,
    CaseStatus.ACEPTADO,
    CaseStatus.RECHAZADO,
})

_CHIEF_EFFECTS: tuple[Effect, ...] = (
    Effect.FINAL_DECISION,
    Effect.CHIEF_DECISION,
    Effect.CLAIM_CASE,
    Effect.NOTIFY_TREATING,
    Effect.SYNC_INSURER_TRACKING,
    Effect.DISCARD_EDIT_SNAPSHOT,
)


def agrees_with_suggestion(
    decision: Decision, suggestion: SuggestionType | None
) -> bool:
    """True si la decisión coincide con la polaridad de la sugerencia."""
    if suggestion is None:
        suggestion = SuggestionType.INCIERTO
    return _SUGGESTION_POLARITY[suggestion] == decision


def resolve_actor(
    *,
    user_id: uuid.UUID,
    role: AppRole,
    treating_physician_id: uuid.UUID,
    current_state: CaseStatus,
) -> Actor:
    """
    Determina en calidad de qué actúa el usuario sobre el caso.
    El médico tratante solo decide mientras el caso está pendiente;
    en cualquier otro estado el caso pertenece al médico jefe.
    """
    if user_id == treating_physician_id and current_state == CaseStatus.PENDIENTE:
        return Actor.TREATING
    if role == AppRole.MEDICO_JEFE:
        return Actor.CHIEF
    if user_id == treating_physician_id:
        raise ConflictException(
            f"El caso está '{current_state.value}' y ya no puede ser decidido por el médico tratante"
        )
    raise ForbiddenException("Solo el médico tratante o un médico jefe pueden decidir este caso")


def resolve_transition(
    actor: Actor,
    current_state: CaseStatus,
    decision: Decision,
    suggestion: SuggestionType | None,
    has_justification: bool,
    insurer_state: InsurerResolutionState | None = None,
) -> Transition:
    """
    Resuelve la transición para (actor, estado, decisión, sugerencia).

    Lanza ConflictException si la combinación no está permitida y
    ValidationException si falta una justificación obligatoria.
    """
    agrees = agrees_with_suggestion(decision, suggestion)

    if actor == Actor.TREATING:
        if current_state != CaseStatus.PENDIENTE:
            raise ConflictException(
                f"No se puede registrar la decisión del médico tratante en un caso '{current_state.value}'"
            )
        transition = TREATING_TRANSITIONS[(decision, agrees)]
    else:
        if current_state not in CHIEF_RESOLVABLE_STATES:
            valid = ", ".join(sorted(s.value for s in CHIEF_RESOLVABLE_STATES))
            raise ConflictException(
                f"El médico jefe no puede resolver un caso '{current_state.value}'. "
                f"Estados válidos: {valid}"
            )
        # Override directo de un caso aceptado pendiente de envío: comentario opcional
        direct_override = (
            current_state == CaseStatus.ACEPTADO
            and insurer_state == InsurerResolutionState.PENDIENTE_ENVIO
        )
        transition = Transition(
            _DECISION_TO_STATE[decision],
            _CHIEF_EFFECTS,
            requires_justification=not agrees and not direct_override,
        )

    if transition.requires_justification and not has_justification:
        raise ValidationException(
            "Se requiere una justificación cuando la decisión difiere de la sugerencia IA"
        )
    return transition


def insurer_state_after(
    previous_state: CaseStatus,
    new_state: CaseStatus,
    current: InsurerResolutionState | None,
) -> InsurerResolutionState | None:
    """
    Estado de aseguradora tras una transición clínica: se abre en
    'pendiente' al entrar en aceptado y se limpia al salir.
    """
    if new_state != CaseStatus.ACEPTADO:
        return None
    if previous_state == CaseStatus.ACEPTADO and current is not None:
        return current
    return InsurerResolutionState.PENDIENTE
