"""
Verificación de JWT emitidos por el proveedor de identidad externo (HS256).
Este servicio no emite tokens de login: create_access_token existe para
desarrollo local y tests.
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from saludia.config import get_settings

settings = get_settings()


def create_access_token(
    user_id: UUID,
    role: str | None = None,
    extra_claims: dict | None = None,
) -> str:
    """Crea un access token con el mismo formato que el proveedor de identidad."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    if role:
        payload["user_role"] = role
    if extra_claims:
        payload.update(extra_claims)

    return jwt.encode(
        payload,
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_token(token: str) -> dict:
    """
    Decodifica y verifica un token JWT.
    Lanza jwt.InvalidTokenError si el token es inválido o expirado.
    """
    return jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=[settings.JWT_ALGORITHM],
        audience=settings.JWT_AUDIENCE,
    )


def decode_token_safe(token: str) -> dict | None:
    """Decodifica un token JWT sin lanzar excepciones."""
    try:
        return decode_token(token)
    except jwt.InvalidTokenError:
        return None
