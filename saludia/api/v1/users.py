"""
Endpoints de perfiles de usuario.
Las cuentas viven en el proveedor de identidad; aquí solo se gestiona
el perfil y el rol (user_roles).
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from saludia.auth.dependencies import get_current_user, require_role
from saludia.core.exceptions import (
    ConflictException,
    NotFoundException,
    RemoteServiceException,
)
from saludia.database import get_db
from saludia.models.user import AppRole, UserProfile
from saludia.schemas.user import (
    UserListResponse,
    UserProfileResponse,
    UserProfileUpdate,
    UserRoleUpdate,
)
from saludia.services.audit_service import log_action
from saludia.services.identity_service import IdentityError, delete_identity

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


async def _get_profile_or_404(db: AsyncSession, user_id: UUID) -> UserProfile:
    result = await db.execute(select(UserProfile).where(UserProfile.user_id == user_id))
    profile = result.scalar_one_or_none()
    if not profile:
        raise NotFoundException("Usuario")
    return profile


@router.get("/me", response_model=UserProfileResponse)
async def get_me(user: UserProfile = Depends(get_current_user)):
    return user


@router.put("/me", response_model=UserProfileResponse)
async def update_me(
    data: UserProfileUpdate,
    user: UserProfile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Actualiza los datos de perfil propios. El rol no se puede cambiar aquí."""
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    await db.commit()
    return user


@router.get("", response_model=UserListResponse)
async def list_users(
    role: AppRole | None = Query(None, description="Filtrar por rol"),
    user: UserProfile = Depends(require_role(AppRole.ADMIN, AppRole.MEDICO_JEFE)),
    db: AsyncSession = Depends(get_db),
):
    """Lista perfiles con filtro opcional por rol."""
    query = select(UserProfile)
    count_query = select(func.count()).select_from(UserProfile)
    if role:
        query = query.where(UserProfile.role == role)
        count_query = count_query.where(UserProfile.role == role)

    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(query.order_by(UserProfile.created_at.desc()))

    return UserListResponse(
        items=[UserProfileResponse.model_validate(u) for u in result.scalars().all()],
        total=total,
    )


@router.put("/{user_id}/role", response_model=UserProfileResponse)
async def update_role(
    user_id: UUID,
    data: UserRoleUpdate,
    request: Request,
    user: UserProfile = Depends(require_role(AppRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Cambia el rol de un usuario. Un admin no puede cambiar su propio rol."""
    if user_id == user.user_id:
        raise ConflictException("No puede cambiar su propio rol")

    profile = await _get_profile_or_404(db, user_id)
    old_role = profile.role
    profile.role = data.role

    await log_action(
        db,
        user_id=user.user_id,
        entity="user",
        entity_id=str(user_id),
        action="role_change",
        old_data={"role": old_role},
        new_data={"role": data.role},
        ip_address=_get_client_ip(request),
    )
    await db.commit()
    return profile


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: UUID,
    request: Request,
    user: UserProfile = Depends(require_role(AppRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """
    Elimina la cuenta en el proveedor de identidad y luego el perfil.
    Si el proveedor falla, el perfil se conserva (502).
    """
    if user_id == user.user_id:
        raise ConflictException("No puede eliminar su propia cuenta")

    profile = await _get_profile_or_404(db, user_id)

    try:
        await delete_identity(user_id)
    except IdentityError as e:
        logger.error(f"No se pudo eliminar la cuenta {user_id}: {e.message}")
        raise RemoteServiceException(f"No se pudo eliminar la cuenta: {e.message}")

    old_data = {"email": profile.email, "role": profile.role}
    await db.delete(profile)
    await log_action(
        db,
        user_id=user.user_id,
        entity="user",
        entity_id=str(user_id),
        action="delete",
        old_data=old_data,
        ip_address=_get_client_ip(request),
    )
    await db.commit()
