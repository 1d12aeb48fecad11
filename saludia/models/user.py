"""
Modelo UserProfile — perfil y rol de los usuarios (tabla user_roles).
La identidad (login, contraseña) vive en el proveedor externo;
aquí solo se guarda el rol y los datos profesionales.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from saludia.database import Base, utcnow


class AppRole(str, enum.Enum):
    """Roles del sistema."""
    ADMIN = "admin"
    MEDICO = "medico"
    MEDICO_JEFE = "medico_jefe"


class UserProfile(Base):
    __tablename__ = "user_roles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, unique=True, nullable=False, index=True,
        comment="ID del usuario en el proveedor de identidad (claim sub)"
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    nombre: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[AppRole] = mapped_column(
        Enum(AppRole, name="app_role", values_callable=lambda e: [x.value for x in e]),
        nullable=False, default=AppRole.MEDICO,
    )

    # ── Datos profesionales ──────────────────────────
    especialidad: Mapped[str | None] = mapped_column(String(100))
    hospital: Mapped[str | None] = mapped_column(String(200))
    genero: Mapped[str | None] = mapped_column(
        String(20), comment="masculino, femenino u otro"
    )
    telefono: Mapped[str | None] = mapped_column(String(30))

    last_access_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    @property
    def doctor_prefix(self) -> str:
        if self.genero == "masculino":
            return "Dr."
        if self.genero == "femenino":
            return "Dra."
        return "Dr(a)."

    @property
    def display_name(self) -> str:
        if self.role == AppRole.ADMIN:
            return self.nombre
        return f"{self.doctor_prefix} {self.nombre}"

    def __repr__(self) -> str:
        return f"<UserProfile {self.email} ({self.role.value})>"
