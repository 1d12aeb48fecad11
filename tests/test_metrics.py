"""
Tests de métricas del dashboard.
"""

from saludia.models.suggestion import SuggestionType
from tests.conftest import auth_headers, case_payload

METRICS_URL = "/api/v1/metrics"


async def _seed_cases(client, medico, medico_jefe, generator) -> None:
    """Un caso aceptado, uno derivado y resuelto por el jefe, y uno pendiente."""
    headers = auth_headers(medico)

    accepted = (await client.post("/api/v1/cases", json=case_payload(episodio="EP-1"), headers=headers)).json()
    await client.post(
        f"/api/v1/cases/{accepted['id']}/decision", json={"decision": "aceptado"}, headers=headers
    )

    generator.sugerencia = SuggestionType.RECHAZAR
    escalated = (await client.post("/api/v1/cases", json=case_payload(episodio="EP-2"), headers=headers)).json()
    await client.post(
        f"/api/v1/cases/{escalated['id']}/decision",
        json={"decision": "aceptado", "comment": "criterio clínico"},
        headers=headers,
    )
    await client.post(
        f"/api/v1/cases/{escalated['id']}/decision",
        json={"decision": "rechazado"},
        headers=auth_headers(medico_jefe),
    )

    generator.sugerencia = SuggestionType.ACEPTAR
    await client.post("/api/v1/cases", json=case_payload(episodio="EP-3"), headers=headers)


async def test_status_counts(client, medico, medico_jefe, suggestion_generator):
    await _seed_cases(client, medico, medico_jefe, suggestion_generator)

    response = await client.get(f"{METRICS_URL}/status-counts", headers=auth_headers(medico_jefe))
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3

    counts = {item["estado"]: item for item in data["items"]}
    assert counts["aceptado"]["count"] == 1
    assert counts["rechazado"]["count"] == 1
    assert counts["pendiente"]["count"] == 1
    assert counts["derivado"]["count"] == 0
    assert counts["aceptado"]["previous"] == 0
    assert counts["aceptado"]["delta"] == 1


async def test_status_counts_for_past_window_is_empty(client, medico, medico_jefe, suggestion_generator):
    await _seed_cases(client, medico, medico_jefe, suggestion_generator)

    response = await client.get(
        f"{METRICS_URL}/status-counts",
        params={"date_from": "2020-01-01T00:00:00Z", "date_to": "2020-02-01T00:00:00Z"},
        headers=auth_headers(medico_jefe),
    )
    data = response.json()
    assert data["total"] == 0
    assert all(item["count"] == 0 for item in data["items"])


async def test_doctor_metrics(client, medico, medico_jefe, suggestion_generator):
    await _seed_cases(client, medico, medico_jefe, suggestion_generator)

    response = await client.get(f"{METRICS_URL}/doctors", headers=auth_headers(medico_jefe))
    assert response.status_code == 200
    metrics = {item["user_id"]: item for item in response.json()["items"]}

    physician = metrics[str(medico.user_id)]
    assert physician["role"] == "medico"
    assert physician["total_cases"] == 3
    assert physician["escalations"] == 1
    assert physician["accepted_by_physician"] == 1
    assert physician["rejected_by_physician"] == 1
    assert physician["insurer_pending"] == 1
    assert physician["ai_acceptance_rate"] == 50.0

    chief = metrics[str(medico_jefe.user_id)]
    assert chief["role"] == "medico_jefe"
    assert chief["total_cases"] == 1
    assert chief["escalations"] == 1


async def test_doctor_metrics_filtered_by_user(client, medico, medico_jefe, admin):
    response = await client.get(
        f"{METRICS_URL}/doctors",
        params={"user_id": str(medico.user_id)},
        headers=auth_headers(admin),
    )
    items = response.json()["items"]
    assert len(items) == 1
    assert items[0]["total_cases"] == 0
    assert items[0]["ai_acceptance_rate"] == 0.0


async def test_physician_cannot_read_metrics(client, medico):
    response = await client.get(f"{METRICS_URL}/status-counts", headers=auth_headers(medico))
    assert response.status_code == 403
