"""
Tests de notificaciones: pool de médicos jefe, notificaciones directas y lectura.
"""

from saludia.models.notification import Notification, NotificationType
from tests.conftest import auth_headers

NOTIFICATIONS_URL = "/api/v1/notifications"


async def _add_notification(db, user_id=None, tipo=NotificationType.CASO_DERIVADO) -> Notification:
    notification = Notification(
        user_id=user_id,
        tipo=tipo,
        titulo="Nuevo caso derivado",
        mensaje="Mensaje de prueba",
    )
    db.add(notification)
    await db.commit()
    return notification


async def test_pool_notifications_visible_to_every_chief(
    client, db_session, medico, medico_jefe, otro_jefe
):
    await _add_notification(db_session)

    for chief in (medico_jefe, otro_jefe):
        response = await client.get(NOTIFICATIONS_URL, headers=auth_headers(chief))
        assert response.status_code == 200
        data = response.json()
        assert len(data["items"]) == 1
        assert data["unread_count"] == 1

    response = await client.get(NOTIFICATIONS_URL, headers=auth_headers(medico))
    assert response.json()["items"] == []


async def test_direct_notifications_only_for_recipient(client, db_session, medico, otro_medico):
    await _add_notification(db_session, medico.user_id, NotificationType.CASO_RESUELTO)

    response = await client.get(f"{NOTIFICATIONS_URL}/unread-count", headers=auth_headers(medico))
    assert response.json() == {"unread_count": 1}

    response = await client.get(
        f"{NOTIFICATIONS_URL}/unread-count", headers=auth_headers(otro_medico)
    )
    assert response.json() == {"unread_count": 0}


async def test_mark_as_read(client, db_session, medico, otro_medico):
    notification = await _add_notification(
        db_session, medico.user_id, NotificationType.CASO_RESUELTO
    )

    response = await client.post(
        f"{NOTIFICATIONS_URL}/{notification.id}/read", headers=auth_headers(otro_medico)
    )
    assert response.status_code == 404

    response = await client.post(
        f"{NOTIFICATIONS_URL}/{notification.id}/read", headers=auth_headers(medico)
    )
    assert response.status_code == 200
    data = response.json()
    assert data["leido"] is True
    assert data["read_at"] is not None

    response = await client.get(
        NOTIFICATIONS_URL, params={"unread_only": True}, headers=auth_headers(medico)
    )
    assert response.json()["items"] == []


async def test_pool_read_is_shared_between_chiefs(client, db_session, medico_jefe, otro_jefe):
    notification = await _add_notification(db_session)

    await client.post(
        f"{NOTIFICATIONS_URL}/{notification.id}/read", headers=auth_headers(medico_jefe)
    )

    response = await client.get(
        f"{NOTIFICATIONS_URL}/unread-count", headers=auth_headers(otro_jefe)
    )
    assert response.json() == {"unread_count": 0}


async def test_mark_all_as_read(client, db_session, medico_jefe):
    await _add_notification(db_session)
    await _add_notification(db_session, medico_jefe.user_id, NotificationType.CASO_RESUELTO)

    response = await client.post(
        f"{NOTIFICATIONS_URL}/read-all", headers=auth_headers(medico_jefe)
    )
    assert response.status_code == 200
    assert response.json() == {"updated": 2}

    response = await client.get(
        f"{NOTIFICATIONS_URL}/unread-count", headers=auth_headers(medico_jefe)
    )
    assert response.json() == {"unread_count": 0}


async def test_list_is_limited_to_latest(client, db_session, medico):
    for _ in range(12):
        await _add_notification(db_session, medico.user_id, NotificationType.CASO_RESUELTO)

    response = await client.get(NOTIFICATIONS_URL, headers=auth_headers(medico))
    data = response.json()
    assert len(data["items"]) == 10
    assert data["unread_count"] == 12

    response = await client.get(
        NOTIFICATIONS_URL, params={"limit": 20}, headers=auth_headers(medico)
    )
    assert len(response.json()["items"]) == 12
