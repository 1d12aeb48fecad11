"""
Tests de la state machine de decisión (sin base de datos).
"""

from uuid import uuid4

import pytest

from saludia.core.exceptions import ConflictException, ForbiddenException, ValidationException
from saludia.core.transitions import (
    Actor,
    Effect,
    agrees_with_suggestion,
    insurer_state_after,
    resolve_actor,
    resolve_transition,
)
from saludia.models.case import CaseStatus, InsurerResolutionState
from saludia.models.resolution import Decision
from saludia.models.suggestion import SuggestionType
from saludia.models.user import AppRole


@pytest.mark.parametrize(
    "decision, suggestion, expected",
    [
        (Decision.ACEPTADO, SuggestionType.ACEPTAR, True),
        (Decision.RECHAZADO, SuggestionType.RECHAZAR, True),
        (Decision.ACEPTADO, SuggestionType.RECHAZAR, False),
        (Decision.RECHAZADO, SuggestionType.ACEPTAR, False),
        (Decision.ACEPTADO, SuggestionType.INCIERTO, False),
        (Decision.RECHAZADO, None, False),
    ],
)
def test_agrees_with_suggestion(decision, suggestion, expected):
    assert agrees_with_suggestion(decision, suggestion) is expected


# ── Actor ────────────────────────────────────────────

def test_owner_of_pending_case_acts_as_treating():
    owner = uuid4()
    actor = resolve_actor(
        user_id=owner,
        role=AppRole.MEDICO_JEFE,
        treating_physician_id=owner,
        current_state=CaseStatus.PENDIENTE,
    )
    assert actor == Actor.TREATING


def test_chief_acts_as_chief_on_escalated_case():
    actor = resolve_actor(
        user_id=uuid4(),
        role=AppRole.MEDICO_JEFE,
        treating_physician_id=uuid4(),
        current_state=CaseStatus.DERIVADO,
    )
    assert actor == Actor.CHIEF


def test_owner_cannot_decide_after_pending():
    owner = uuid4()
    with pytest.raises(ConflictException):
        resolve_actor(
            user_id=owner,
            role=AppRole.MEDICO,
            treating_physician_id=owner,
            current_state=CaseStatus.DERIVADO,
        )


def test_other_physician_is_forbidden():
    with pytest.raises(ForbiddenException):
        resolve_actor(
            user_id=uuid4(),
            role=AppRole.MEDICO,
            treating_physician_id=uuid4(),
            current_state=CaseStatus.PENDIENTE,
        )


# ── Médico tratante ──────────────────────────────────

def test_treating_agreement_closes_case():
    transition = resolve_transition(
        Actor.TREATING, CaseStatus.PENDIENTE, Decision.ACEPTADO,
        SuggestionType.ACEPTAR, has_justification=False,
    )
    assert transition.new_state == CaseStatus.ACEPTADO
    assert transition.has(Effect.FINAL_DECISION)
    assert transition.has(Effect.SYNC_INSURER_TRACKING)
    assert not transition.has(Effect.NOTIFY_CHIEF_POOL)


def test_treating_rejection_in_agreement_has_no_insurer_tracking():
    transition = resolve_transition(
        Actor.TREATING, CaseStatus.PENDIENTE, Decision.RECHAZADO,
        SuggestionType.RECHAZAR, has_justification=False,
    )
    assert transition.new_state == CaseStatus.RECHAZADO
    assert not transition.has(Effect.SYNC_INSURER_TRACKING)


def test_treating_disagreement_requires_justification():
    with pytest.raises(ValidationException):
        resolve_transition(
            Actor.TREATING, CaseStatus.PENDIENTE, Decision.ACEPTADO,
            SuggestionType.RECHAZAR, has_justification=False,
        )


def test_treating_disagreement_escalates():
    transition = resolve_transition(
        Actor.TREATING, CaseStatus.PENDIENTE, Decision.ACEPTADO,
        SuggestionType.RECHAZAR, has_justification=True,
    )
    assert transition.new_state == CaseStatus.DERIVADO
    assert transition.has(Effect.PHYSICIAN_DECISION)
    assert transition.has(Effect.NOTIFY_CHIEF_POOL)
    assert not transition.has(Effect.FINAL_DECISION)


def test_uncertain_suggestion_always_escalates():
    transition = resolve_transition(
        Actor.TREATING, CaseStatus.PENDIENTE, Decision.RECHAZADO,
        SuggestionType.INCIERTO, has_justification=True,
    )
    assert transition.new_state == CaseStatus.DERIVADO


def test_treating_cannot_decide_closed_case():
    with pytest.raises(ConflictException):
        resolve_transition(
            Actor.TREATING, CaseStatus.ACEPTADO, Decision.ACEPTADO,
            SuggestionType.ACEPTAR, has_justification=False,
        )


# ── Médico jefe ──────────────────────────────────────

@pytest.mark.parametrize(
    "state", [CaseStatus.DERIVADO, CaseStatus.ACEPTADO, CaseStatus.RECHAZADO]
)
def test_chief_resolves_from_any_non_pending_state(state):
    transition = resolve_transition(
        Actor.CHIEF, state, Decision.RECHAZADO,
        SuggestionType.RECHAZAR, has_justification=False,
    )
    assert transition.new_state == CaseStatus.RECHAZADO
    assert transition.has(Effect.CHIEF_DECISION)
    assert transition.has(Effect.CLAIM_CASE)
    assert transition.has(Effect.NOTIFY_TREATING)


def test_chief_cannot_resolve_pending_case():
    with pytest.raises(ConflictException):
        resolve_transition(
            Actor.CHIEF, CaseStatus.PENDIENTE, Decision.ACEPTADO,
            SuggestionType.ACEPTAR, has_justification=False,
        )


def test_chief_disagreement_requires_justification():
    with pytest.raises(ValidationException):
        resolve_transition(
            Actor.CHIEF, CaseStatus.DERIVADO, Decision.ACEPTADO,
            SuggestionType.RECHAZAR, has_justification=False,
        )


def test_chief_override_of_pending_submission_needs_no_comment():
    transition = resolve_transition(
        Actor.CHIEF, CaseStatus.ACEPTADO, Decision.RECHAZADO,
        SuggestionType.ACEPTAR, has_justification=False,
        insurer_state=InsurerResolutionState.PENDIENTE_ENVIO,
    )
    assert transition.new_state == CaseStatus.RECHAZADO


def test_no_transition_returns_to_pending():
    for actor, state in (
        (Actor.TREATING, CaseStatus.PENDIENTE),
        (Actor.CHIEF, CaseStatus.DERIVADO),
        (Actor.CHIEF, CaseStatus.ACEPTADO),
    ):
        for decision in Decision:
            transition = resolve_transition(
                actor, state, decision, SuggestionType.INCIERTO, has_justification=True,
            )
            assert transition.new_state != CaseStatus.PENDIENTE


# ── Estado de aseguradora ────────────────────────────

def test_insurer_state_opens_when_entering_accepted():
    assert insurer_state_after(
        CaseStatus.DERIVADO, CaseStatus.ACEPTADO, None
    ) == InsurerResolutionState.PENDIENTE


def test_insurer_state_kept_while_staying_accepted():
    assert insurer_state_after(
        CaseStatus.ACEPTADO, CaseStatus.ACEPTADO, InsurerResolutionState.ACEPTADA
    ) == InsurerResolutionState.ACEPTADA


def test_insurer_state_cleared_when_leaving_accepted():
    assert insurer_state_after(
        CaseStatus.ACEPTADO, CaseStatus.RECHAZADO, InsurerResolutionState.ACEPTADA
    ) is None
