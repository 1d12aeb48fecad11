"""
Router principal de la API v1.
Agrupa todos los sub-routers de la versión 1.
"""

from fastapi import APIRouter

from saludia.api.v1.cases import router as cases_router
from saludia.api.v1.insurer import router as insurer_router
from saludia.api.v1.metrics import router as metrics_router
from saludia.api.v1.notifications import router as notifications_router
from saludia.api.v1.users import router as users_router

api_v1_router = APIRouter()

api_v1_router.include_router(
    cases_router,
    prefix="/cases",
    tags=["Casos"],
)

api_v1_router.include_router(
    insurer_router,
    prefix="/insurer-resolutions",
    tags=["Aseguradoras"],
)

api_v1_router.include_router(
    notifications_router,
    prefix="/notifications",
    tags=["Notificaciones"],
)

api_v1_router.include_router(
    users_router,
    prefix="/users",
    tags=["Usuarios"],
)

api_v1_router.include_router(
    metrics_router,
    prefix="/metrics",
    tags=["Métricas"],
)
