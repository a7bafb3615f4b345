import logging
from dataclasses import dataclass
from typing import Optional

import config
from services.errors import AuthError, ValidacionError

logger = logging.getLogger(__name__)

ROLES_SEDE_BLOQUEADA = {"gerente", "recepcionista"}

# Páginas que cada rol NO puede abrir
PAGINAS_RESTRINGIDAS = {
    "recepcionista": {"analytics"},
}

PAGINAS = [
    ("formulario", "📝 Formulario"),
    ("dashboard", "📋 Dashboard"),
    ("analytics", "📈 Analytics"),
]


@dataclass
class SesionUsuario:
    email: str
    rol: str = ""
    sede: str = ""

    @property
    def rol_etiqueta(self) -> str:
        return config.ROLES_ES.get(self.rol, (self.rol or "").upper())

    @property
    def sede_etiqueta(self) -> str:
        return self.sede or "Todas las sedes"

    @property
    def sede_bloqueada(self) -> bool:
        return self.rol in ROLES_SEDE_BLOQUEADA

    @classmethod
    def desde_usuario(cls, user) -> "SesionUsuario":
        """Construye la sesión desde el usuario de Supabase Auth (app_metadata)."""
        metadata = getattr(user, "app_metadata", None) or {}
        return cls(
            email=getattr(user, "email", "") or "",
            rol=metadata.get("rol") or "",
            sede=metadata.get("sede") or "",
        )


def puede_acceder(rol: Optional[str], pagina: str) -> bool:
    return pagina not in PAGINAS_RESTRINGIDAS.get(rol or "", set())


def paginas_visibles(rol: Optional[str]):
    return [(clave, etiqueta) for clave, etiqueta in PAGINAS if puede_acceder(rol, clave)]


class AuthService:
    def __init__(self, supabase):
        self.supabase = supabase

    # =========================
    # HELPERS
    # =========================
    @staticmethod
    def _validar_credenciales(email: str, password: str, mensaje: str):
        email = (email or "").strip()
        password = (password or "").strip()
        if not email or not password:
            raise ValidacionError(mensaje)
        return email, password

    # =========================
    # LOGIN / REGISTRO
    # =========================
    def iniciar_sesion(self, email: str, password: str) -> SesionUsuario:
        email, password = self._validar_credenciales(
            email, password, "Por favor, ingresa tu correo y contraseña."
        )
        try:
            res = self.supabase.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            logger.warning("Login fallido para %s: %s", email, e)
            raise AuthError("Error: Correo o contraseña incorrectos.") from e

        if not res or not getattr(res, "user", None):
            raise AuthError("Error: Correo o contraseña incorrectos.")

        sesion = SesionUsuario.desde_usuario(res.user)
        logger.info("Login correcto: %s (%s)", sesion.email, sesion.rol or "sin rol")
        return sesion

    def registrar(self, email: str, password: str):
        email, password = self._validar_credenciales(
            email, password, "Por favor, ingresa un correo y contraseña."
        )
        if len(password) < 6:
            raise ValidacionError("La contraseña debe tener al menos 6 caracteres.")
        try:
            res = self.supabase.auth.sign_up({"email": email, "password": password})
        except Exception as e:
            logger.warning("Registro fallido para %s: %s", email, e)
            raise AuthError(f"Error al registrar: {e}") from e
        logger.info("Usuario registrado: %s", email)
        return res

    def cerrar_sesion(self):
        try:
            self.supabase.auth.sign_out()
        except Exception as e:
            # La sesión local se limpia igualmente en la vista
            logger.warning("Error cerrando sesión en Supabase: %s", e)

    def obtener_sesion(self) -> Optional[SesionUsuario]:
        try:
            session = self.supabase.auth.get_session()
        except Exception as e:
            logger.error("Error obteniendo sesión: %s", e)
            return None
        if not session or not getattr(session, "user", None):
            return None
        return SesionUsuario.desde_usuario(session.user)


def get_auth_service(supabase) -> AuthService:
    """Factory function para obtener instancia del servicio de auth."""
    return AuthService(supabase)
