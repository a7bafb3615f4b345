import os
import json
import logging

import streamlit as st


def _get_setting(nombre: str, default: str = "") -> str:
    """Variable de entorno primero, st.secrets después."""
    valor = os.environ.get(nombre)
    if valor:
        return valor
    try:
        return st.secrets.get(nombre, default)
    except Exception:
        # Sin secrets.toml (tests, ejecución fuera de streamlit)
        return default


# Supabase
SUPABASE_URL = _get_setting("SUPABASE_URL")
SUPABASE_ANON_KEY = _get_setting("SUPABASE_ANON_KEY")

# Tablas
TABLE_NAME = "invitados"
VIEW_NAME = "invitados_v"

REGISTROS_POR_PAGINA = 50

# =========================
# CATÁLOGOS
# =========================
ESTADOS = [
    "Nuevo Lead",
    "En proceso",
    "Inscrito",
    "No interesado",
    "Smart otra sede",
    "Day pass",
    "Activación de marca",
]
ESTADOS_PRINCIPALES = ["Inscrito", "En proceso", "Nuevo Lead", "No interesado"]

OPCIONES_MAYOR_EDAD = ["SI", "NO"]
OPCIONES_GENERO = ["MASCULINO", "FEMENINO", "OTRO"]
OPCIONES_REFERENCIA = ["Referido", "Redes sociales", "Visita directa"]
OPCIONES_AUTORIZACION = ["SI", "NO"]

ROLES_ES = {
    "maestro": "MAESTRO",
    "gerente": "GERENTE",
    "recepcionista": "RECEPCIONISTA",
}

# Paletas (gráficos plotly y PDF)
COLOR_ESTADOS = {
    "Inscrito": "#4CAF50",
    "En proceso": "#FFA500",
    "Nuevo Lead": "#2196F3",
    "No interesado": "#F44336",
}
COLORES_TOP_SEDES = ["#FFD700", "#FFA500", "#FF8C00", "#FF7F50", "#FF6347"]
COLORES_GENERO = ["#2196F3", "#E91E63", "#9E9E9E"]
COLORES_REFERENCIA = ["#9C27B0", "#00BCD4", "#FF9800"]
COLORES_AUTORIZACION = ["#4CAF50", "#F44336", "#9E9E9E"]

SEDES = [s.strip() for s in _get_setting("SEDES").split(",") if s.strip()]

# Google Sheets por sede (Apps Script web app)
GOOGLE_SHEETS_CONFIG = {
    "CRM PLAZA FLORA": {
        "sheet_id": "1uOPb8A1bJ86FdbBZLRtWxJkzw6dEYEeC6YfHDzV1g44",
        "sheet_name": "GESTION PROSPECTOS",
        "web_app_url": "https://script.google.com/macros/s/AKfycbyjH0jlrcjQTwGWzgCJKzZM_eslIjlk-TCkJkkR5ptPu8miI7SAEjC2VWuvjvRxvTsR/exec",
    }
}
_sheets_override = _get_setting("GOOGLE_SHEETS_CONFIG")
if _sheets_override:
    GOOGLE_SHEETS_CONFIG = json.loads(_sheets_override)

SHEETS_TIMEOUT = 30

# Logging
LOG_LEVEL = _get_setting("LOG_LEVEL", "INFO")


def configurar_logging(level: str = None):
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
