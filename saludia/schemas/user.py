"""
Schemas para perfiles de usuario (user_roles).
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from saludia.models.user import AppRole


class UserProfileResponse(BaseModel):
    id: UUID
    user_id: UUID
    email: str
    nombre: str | None = None
    display_name: str
    role: AppRole
    especialidad: str | None = None
    hospital: str | None = None
    genero: str | None = None
    telefono: str | None = None
    last_access_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    items: list[UserProfileResponse]
    total: int


class UserProfileUpdate(BaseModel):
    nombre: str | None = Field(None, min_length=2, max_length=200)
    especialidad: str | None = Field(None, max_length=100)
    hospital: str | None = Field(None, max_length=200)
    genero: str | None = Field(None, pattern=r"^(masculino|femenino|otro)$")
    telefono: str | None = Field(None, max_length=20)


class UserRoleUpdate(BaseModel):
    role: AppRole
