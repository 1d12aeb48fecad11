"""
Dependencies de FastAPI para autenticación y autorización.
"""

from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from saludia.auth.jwt import decode_token
from saludia.auth.rbac import has_permission
from saludia.core.exceptions import CredentialsException, ForbiddenException
from saludia.database import get_db, utcnow
from saludia.models.user import AppRole, UserProfile

# ── Security scheme ──────────────────────────────────
security = HTTPBearer()


# ── Token payload tipado ─────────────────────────────
class TokenPayload:
    """Datos extraídos del token JWT decodificado."""

    def __init__(self, payload: dict):
        self.user_id: UUID = UUID(payload["sub"])
        self.email: str | None = payload.get("email")


# ── Obtener usuario actual ───────────────────────────
async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> UserProfile:
    """
    Dependency que:
    1. Decodifica el JWT del header Authorization
    2. Carga el perfil (user_roles) del usuario
    3. Registra el último acceso
    """
    try:
        payload = decode_token(credentials.credentials)
        token_data = TokenPayload(payload)
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise CredentialsException("Token inválido o expirado")

    result = await db.execute(
        select(UserProfile).where(UserProfile.user_id == token_data.user_id)
    )
    user = result.scalar_one_or_none()

    if user is None:
        raise CredentialsException("Usuario sin perfil asignado")

    user.last_access_at = utcnow()
    return user


# ── Factory de dependency con roles ──────────────────
def require_role(*allowed_roles: AppRole):
    """
    Factory que crea un dependency que verifica el rol del usuario.

    Uso:
        @router.delete("/{user_id}")
        async def delete_user(user: UserProfile = Depends(require_role(AppRole.ADMIN))):
            ...
    """

    async def _check_role(
        user: UserProfile = Depends(get_current_user),
    ) -> UserProfile:
        if user.role not in allowed_roles:
            raise ForbiddenException(
                f"Se requiere uno de los roles: {', '.join(r.value for r in allowed_roles)}"
            )
        return user

    return _check_role


def require_permission(resource: str, action: str):
    """Factory de dependency basada en la tabla PERMISSIONS."""

    async def _check_permission(
        user: UserProfile = Depends(get_current_user),
    ) -> UserProfile:
        if not has_permission(user.role, resource, action):
            raise ForbiddenException()
        return user

    return _check_permission
