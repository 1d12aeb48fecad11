"""
Tests del envío de correos al paciente (Resend) con transporte simulado.
"""

import json

import httpx
import pytest
from sqlalchemy import select

from saludia.models.patient_communication import PatientCommunication
from saludia.services import email_service
from saludia.services.email_service import (
    EmailError,
    build_patient_email_html,
    send_patient_email,
)
from tests.conftest import auth_headers, case_payload


@pytest.fixture
def resend_configured(monkeypatch):
    monkeypatch.setattr(email_service.settings, "RESEND_API_KEY", "re_test_key")


def _mock_client(monkeypatch, handler) -> list[httpx.Request]:
    requests: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    monkeypatch.setattr(
        email_service,
        "_http_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(_handler)),
    )
    return requests


def test_email_html_escapes_free_text():
    html = build_patient_email_html(
        patient_name="<b>Juan</b>",
        diagnosis="IAM & shock",
        result="aceptado",
        explanation="<script>alert(1)</script>",
        additional_comment="Control en 7 días",
        insurance_status="pendiente",
        insurance_type="Fonasa",
    )
    assert "&lt;b&gt;Juan&lt;/b&gt;" in html
    assert "IAM &amp; shock" in html
    assert "<script>" not in html
    assert "LEY DE URGENCIA ACTIVADA" in html
    assert "PENDIENTE RESOLUCIÓN FONASA" in html
    assert "Control en 7 días" in html


def test_email_html_for_rejected_case_has_no_insurance_block():
    html = build_patient_email_html(
        patient_name="Juan",
        diagnosis="Cefalea",
        result="rechazado",
        explanation="No cumple criterios",
    )
    assert "LEY DE URGENCIA NO ACTIVADA" in html
    assert "Estado de Aseguradora" not in html


async def test_send_is_simulated_without_api_key():
    result = await send_patient_email(
        to="paciente@example.com",
        patient_name="Juan",
        diagnosis="Cefalea",
        result="rechazado",
        explanation="No cumple criterios",
    )
    assert result == {"id": "SIMULATED", "status": "simulated", "to": "paciente@example.com"}


async def test_send_posts_to_resend(monkeypatch, resend_configured):
    requests = _mock_client(
        monkeypatch, lambda request: httpx.Response(200, json={"id": "msg_123"})
    )

    result = await send_patient_email(
        to="paciente@example.com",
        patient_name="Juan",
        diagnosis="Cefalea",
        result="aceptado",
        explanation="Cumple criterios",
    )

    assert result == {"id": "msg_123", "status": "sent", "to": "paciente@example.com"}
    assert len(requests) == 1
    assert requests[0].headers["Authorization"] == "Bearer re_test_key"
    body = json.loads(requests[0].content)
    assert body["to"] == ["paciente@example.com"]
    assert body["subject"] == email_service.EMAIL_SUBJECT


async def test_provider_error_raises(monkeypatch, resend_configured):
    _mock_client(
        monkeypatch,
        lambda request: httpx.Response(422, json={"message": "Invalid `to` field"}),
    )

    with pytest.raises(EmailError) as exc_info:
        await send_patient_email(
            to="paciente@example.com",
            patient_name="Juan",
            diagnosis="Cefalea",
            result="aceptado",
            explanation="Cumple criterios",
        )
    assert "422" in exc_info.value.message
    assert exc_info.value.response_data == {"message": "Invalid `to` field"}


async def test_connection_error_raises(monkeypatch, resend_configured):
    def _fail(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    _mock_client(monkeypatch, _fail)

    with pytest.raises(EmailError):
        await send_patient_email(
            to="paciente@example.com",
            patient_name="Juan",
            diagnosis="Cefalea",
            result="aceptado",
            explanation="Cumple criterios",
        )


async def test_failed_email_records_no_communication(
    client, db_session, monkeypatch, resend_configured, medico
):
    _mock_client(monkeypatch, lambda request: httpx.Response(500, text="boom"))

    response = await client.post(
        "/api/v1/cases", json=case_payload(), headers=auth_headers(medico)
    )
    case_id = response.json()["id"]
    await client.post(
        f"/api/v1/cases/{case_id}/decision",
        json={"decision": "aceptado"},
        headers=auth_headers(medico),
    )

    response = await client.post(
        f"/api/v1/cases/{case_id}/communication",
        json={"send": True},
        headers=auth_headers(medico),
    )
    assert response.status_code == 502

    result = await db_session.execute(select(PatientCommunication))
    assert result.scalars().all() == []
