"""
Fixtures compartidas para Pytest.
Configura base de datos de test, clientes HTTP y usuarios por rol.
"""

from collections.abc import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from saludia.auth.jwt import create_access_token
from saludia.database import Base, get_db
from saludia.main import app
from saludia.models.suggestion import SuggestionType
from saludia.models.user import AppRole, UserProfile
from saludia.services.suggestion_service import GeneratedSuggestion, get_suggestion_generator

# ── Engine de test (SQLite async) ────────────────────
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
test_session_factory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


class FixedSuggestionGenerator:
    """Generador determinista: siempre devuelve la sugerencia configurada."""

    name = "fixed"

    def __init__(self, sugerencia: SuggestionType = SuggestionType.ACEPTAR, confianza: int = 85):
        self.sugerencia = sugerencia
        self.confianza = confianza
        self.calls = 0

    def generate(self, case_data: dict) -> GeneratedSuggestion:
        self.calls += 1
        return GeneratedSuggestion(
            sugerencia=self.sugerencia,
            confianza=self.confianza,
            explicacion=f"Sugerencia fija para {case_data.get('primary_diagnosis')}",
        )


@pytest_asyncio.fixture(autouse=True)
async def setup_database():
    """Crea y destruye las tablas para cada test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provee una sesión de DB de test."""
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def suggestion_generator() -> FixedSuggestionGenerator:
    return FixedSuggestionGenerator()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, suggestion_generator: FixedSuggestionGenerator
) -> AsyncGenerator[AsyncClient, None]:
    """Cliente HTTP de test que usa la DB de test y el generador fijo."""

    async def _get_test_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_suggestion_generator] = lambda: suggestion_generator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Usuarios ─────────────────────────────────────────

async def _create_profile(
    db: AsyncSession, role: AppRole, email: str, nombre: str, genero: str | None = None
) -> UserProfile:
    profile = UserProfile(
        user_id=uuid4(),
        email=email,
        nombre=nombre,
        role=role,
        genero=genero,
    )
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    return profile


@pytest_asyncio.fixture
async def medico(db_session: AsyncSession) -> UserProfile:
    return await _create_profile(
        db_session, AppRole.MEDICO, "medico@test.cl", "Ana Rojas", "femenino"
    )


@pytest_asyncio.fixture
async def otro_medico(db_session: AsyncSession) -> UserProfile:
    return await _create_profile(
        db_session, AppRole.MEDICO, "otro@test.cl", "Pedro Soto", "masculino"
    )


@pytest_asyncio.fixture
async def medico_jefe(db_session: AsyncSession) -> UserProfile:
    return await _create_profile(
        db_session, AppRole.MEDICO_JEFE, "jefe@test.cl", "Luis Muñoz", "masculino"
    )


@pytest_asyncio.fixture
async def otro_jefe(db_session: AsyncSession) -> UserProfile:
    return await _create_profile(
        db_session, AppRole.MEDICO_JEFE, "jefa@test.cl", "Carla Vidal", "femenino"
    )


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> UserProfile:
    return await _create_profile(db_session, AppRole.ADMIN, "admin@test.cl", "Admin")


def auth_headers(user: UserProfile) -> dict[str, str]:
    token = create_access_token(user.user_id, role=user.role.value)
    return {"Authorization": f"Bearer {token}"}


def case_payload(**overrides) -> dict:
    payload = {
        "episodio": "EP-001",
        "patient_name": "Juan Pérez",
        "patient_age": 54,
        "patient_sex": "M",
        "patient_email": "juan.perez@example.com",
        "primary_diagnosis": "Infarto agudo al miocardio",
        "prevision": "Fonasa",
        "systolic_bp": 120,
        "diastolic_bp": 80,
        "heart_rate": 110,
        "altered_ecg": True,
    }
    payload.update(overrides)
    return payload
