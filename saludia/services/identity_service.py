"""
Cliente de la API de administración del proveedor de identidad.
Solo se usa para eliminar cuentas (delete-user).
"""

import logging
from uuid import UUID

import httpx

from saludia.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Error de comunicación con el proveedor de identidad."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)


async def delete_identity(user_id: UUID) -> dict:
    """Elimina la cuenta del usuario en el proveedor de identidad."""
    if not settings.identity_admin_configured:
        logger.warning("Identity service key no configurada — simulando eliminación")
        logger.info(f"[SIMULATED DELETE] user_id: {user_id}")
        return {"user_id": str(user_id), "status": "simulated"}

    url = f"{settings.IDENTITY_ADMIN_URL.rstrip('/')}/admin/users/{user_id}"
    headers = {
        "Authorization": f"Bearer {settings.IDENTITY_SERVICE_KEY}",
        "apikey": settings.IDENTITY_SERVICE_KEY,
    }

    try:
        async with _http_client() as client:
            response = await client.delete(url, headers=headers)
    except httpx.TimeoutException:
        logger.error("Identity provider timeout")
        raise IdentityError("Timeout al comunicar con el proveedor de identidad")
    except httpx.RequestError as e:
        logger.error(f"Identity provider request error: {e}")
        raise IdentityError(f"Error de conexión con el proveedor de identidad: {str(e)}")

    # 404: la cuenta ya no existe, el perfil se puede limpiar igual
    if response.status_code in (200, 204, 404):
        logger.info(f"Cuenta {user_id} eliminada del proveedor de identidad ({response.status_code})")
        return {"user_id": str(user_id), "status": "deleted"}

    logger.error(f"Identity provider error {response.status_code}: {response.text}")
    raise IdentityError(
        f"Error del proveedor de identidad ({response.status_code})",
        status_code=response.status_code,
    )
