"""
Definición de permisos RBAC por rol.
Mapea qué acciones puede realizar cada rol.
"""

from saludia.models.user import AppRole

# ── Permisos por recurso ─────────────────────────────
# Formato: {recurso: {acción: [roles permitidos]}}
PERMISSIONS: dict[str, dict[str, list[AppRole]]] = {
    "case": {
        "create": [AppRole.MEDICO, AppRole.MEDICO_JEFE],
        "read": [AppRole.ADMIN, AppRole.MEDICO, AppRole.MEDICO_JEFE],
        "update": [AppRole.MEDICO, AppRole.MEDICO_JEFE],
        "decide": [AppRole.MEDICO, AppRole.MEDICO_JEFE],
        "communicate": [AppRole.ADMIN, AppRole.MEDICO, AppRole.MEDICO_JEFE],
        "delete": [AppRole.ADMIN],
    },
    "insurer": {
        "update": [AppRole.ADMIN, AppRole.MEDICO_JEFE],
        "import": [AppRole.ADMIN],
    },
    "notification": {
        "read": [AppRole.ADMIN, AppRole.MEDICO, AppRole.MEDICO_JEFE],
        "update": [AppRole.ADMIN, AppRole.MEDICO, AppRole.MEDICO_JEFE],
    },
    "user": {
        "read": [AppRole.ADMIN, AppRole.MEDICO_JEFE],
        "update": [AppRole.ADMIN],
        "delete": [AppRole.ADMIN],
    },
    "metrics": {
        "read": [AppRole.ADMIN, AppRole.MEDICO_JEFE],
    },
}


def has_permission(role: AppRole, resource: str, action: str) -> bool:
    """Verifica si un rol tiene permiso para una acción en un recurso."""
    resource_perms = PERMISSIONS.get(resource, {})
    allowed_roles = resource_perms.get(action, [])
    return role in allowed_roles
