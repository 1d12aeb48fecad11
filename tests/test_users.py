"""
Tests de perfiles de usuario: /me, listado, cambio de rol y eliminación.
"""

from uuid import uuid4

import httpx
import pytest
from sqlalchemy import select

from saludia.auth.jwt import create_access_token
from saludia.models.user import AppRole, UserProfile
from saludia.services import identity_service
from tests.conftest import auth_headers

USERS_URL = "/api/v1/users"


@pytest.fixture
def identity_configured(monkeypatch):
    monkeypatch.setattr(identity_service.settings, "IDENTITY_SERVICE_KEY", "service-key")


def _mock_identity(monkeypatch, status_code: int) -> list[httpx.Request]:
    requests: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, json={})

    monkeypatch.setattr(
        identity_service,
        "_http_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(_handler)),
    )
    return requests


async def test_get_me_returns_display_name(client, medico, medico_jefe, admin):
    response = await client.get(f"{USERS_URL}/me", headers=auth_headers(medico))
    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "medico"
    assert data["display_name"] == "Dra. Ana Rojas"
    assert data["last_access_at"] is not None

    response = await client.get(f"{USERS_URL}/me", headers=auth_headers(medico_jefe))
    assert response.json()["display_name"] == "Dr. Luis Muñoz"

    response = await client.get(f"{USERS_URL}/me", headers=auth_headers(admin))
    assert response.json()["display_name"] == "Admin"


async def test_token_without_profile_is_rejected(client):
    token = create_access_token(uuid4())
    response = await client.get(
        f"{USERS_URL}/me", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 401


async def test_update_me(client, medico):
    response = await client.put(
        f"{USERS_URL}/me",
        json={"especialidad": "Medicina de Urgencia", "hospital": "Hospital Regional"},
        headers=auth_headers(medico),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["especialidad"] == "Medicina de Urgencia"
    assert data["role"] == "medico"


async def test_list_users_filtered_by_role(client, medico, otro_medico, medico_jefe, admin):
    response = await client.get(USERS_URL, headers=auth_headers(admin))
    assert response.json()["total"] == 4

    response = await client.get(
        USERS_URL, params={"role": "medico"}, headers=auth_headers(medico_jefe)
    )
    data = response.json()
    assert data["total"] == 2
    assert {u["role"] for u in data["items"]} == {"medico"}

    response = await client.get(USERS_URL, headers=auth_headers(medico))
    assert response.status_code == 403


async def test_admin_changes_role(client, db_session, medico, admin):
    response = await client.put(
        f"{USERS_URL}/{medico.user_id}/role",
        json={"role": "medico_jefe"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["role"] == "medico_jefe"

    response = await client.put(
        f"{USERS_URL}/{admin.user_id}/role",
        json={"role": "medico"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 409


# ── Eliminación ──────────────────────────────────────

async def test_delete_user_in_simulation_mode(client, db_session, medico, admin):
    response = await client.delete(f"{USERS_URL}/{medico.user_id}", headers=auth_headers(admin))
    assert response.status_code == 204

    result = await db_session.execute(
        select(UserProfile).where(UserProfile.user_id == medico.user_id)
    )
    assert result.scalar_one_or_none() is None


async def test_delete_user_calls_identity_provider(
    client, monkeypatch, identity_configured, medico, admin
):
    requests = _mock_identity(monkeypatch, 204)

    response = await client.delete(f"{USERS_URL}/{medico.user_id}", headers=auth_headers(admin))
    assert response.status_code == 204
    assert len(requests) == 1
    assert requests[0].method == "DELETE"
    assert requests[0].url.path.endswith(f"/admin/users/{medico.user_id}")
    assert requests[0].headers["Authorization"] == "Bearer service-key"


async def test_delete_user_already_gone_in_provider(
    client, monkeypatch, identity_configured, medico, admin
):
    _mock_identity(monkeypatch, 404)
    response = await client.delete(f"{USERS_URL}/{medico.user_id}", headers=auth_headers(admin))
    assert response.status_code == 204


async def test_delete_user_provider_failure_keeps_profile(
    client, db_session, monkeypatch, identity_configured, medico, admin
):
    _mock_identity(monkeypatch, 500)

    response = await client.delete(f"{USERS_URL}/{medico.user_id}", headers=auth_headers(admin))
    assert response.status_code == 502

    result = await db_session.execute(
        select(UserProfile).where(UserProfile.user_id == medico.user_id)
    )
    assert result.scalar_one().role == AppRole.MEDICO


async def test_delete_user_rules(client, medico, medico_jefe, admin):
    response = await client.delete(f"{USERS_URL}/{admin.user_id}", headers=auth_headers(admin))
    assert response.status_code == 409

    response = await client.delete(
        f"{USERS_URL}/{medico.user_id}", headers=auth_headers(medico_jefe)
    )
    assert response.status_code == 403

    response = await client.delete(
        f"{USERS_URL}/00000000-0000-0000-0000-000000000000", headers=auth_headers(admin)
    )
    assert response.status_code == 404
