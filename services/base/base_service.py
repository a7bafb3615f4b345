"""
Clase base para los servicios de datos.
Contiene el filtro por sede según el rol y el registro de errores.
"""

import logging

from services.auth_service import ROLES_SEDE_BLOQUEADA

logger = logging.getLogger(__name__)


class BaseService:
    """Clase base para todos los servicios de datos"""

    def __init__(self, supabase, sesion):
        self.supabase = supabase
        self.sesion = sesion
        self.rol = getattr(sesion, "rol", None)
        self.sede = getattr(sesion, "sede", "") or ""

    @property
    def sede_bloqueada(self) -> bool:
        return self.rol in ROLES_SEDE_BLOQUEADA

    def _apply_sede_filter(self, query, sede_field: str = "sede"):
        """Gerente y recepcionista solo ven los registros de su sede."""
        if self.sede_bloqueada and self.sede:
            return query.eq(sede_field, self.sede)
        return query

    def _log_error(self, operation: str, error: Exception):
        logger.error("Error en %s: %s", operation, error)
