"""
Exportación a Google Sheets a través de un Apps Script publicado como web app.
Cada sede tiene su propia hoja (config.GOOGLE_SHEETS_CONFIG).
"""

import json
import logging
from typing import Any, Dict, List, Optional

import requests

import config
from services.errors import SheetNoConfiguradoError, SinDatosError

logger = logging.getLogger(__name__)

MESES = [
    "ENERO", "FEBRERO", "MARZO", "ABRIL", "MAYO", "JUNIO",
    "JULIO", "AGOSTO", "SEPTIEMBRE", "OCTUBRE", "NOVIEMBRE", "DICIEMBRE",
]


def config_sede(sede: str, sheets_config: Optional[Dict[str, Dict[str, str]]] = None) -> Dict[str, str]:
    sheets_config = config.GOOGLE_SHEETS_CONFIG if sheets_config is None else sheets_config
    sede_config = sheets_config.get(sede or "")
    if not sede_config:
        raise SheetNoConfiguradoError(sede)
    return sede_config


def url_sheet(sede: str, sheets_config=None) -> str:
    sede_config = config_sede(sede, sheets_config)
    return f"https://docs.google.com/spreadsheets/d/{sede_config['sheet_id']}/edit"


def fecha_y_mes(fecha_iso) -> tuple:
    """'2025-03-07' -> ('07/03/25', 'MARZO'). Valores no válidos -> ('', '')."""
    if not fecha_iso:
        return "", ""
    partes = str(fecha_iso)[:10].split("-")
    if len(partes) != 3 or not all(partes):
        return "", ""
    yyyy, mm, dd = partes
    try:
        mes = MESES[int(mm) - 1]
    except (ValueError, IndexError):
        mes = ""
    return f"{dd}/{mm}/{yyyy[-2:]}", mes


def fila_sheet(r: Dict[str, Any]) -> List[str]:
    """Orden de columnas A..O de la hoja de gestión de prospectos."""
    fecha, mes = fecha_y_mes(r.get("fecha_d"))
    valores = [
        r.get("sede"),             # A Unidad
        fecha,                     # B Fecha
        mes,                       # C Mes
        r.get("nombre"),           # D
        r.get("mayor_edad"),       # E
        r.get("documento"),        # F
        r.get("genero"),           # G
        r.get("telefono"),         # H
        r.get("barrio"),           # I
        r.get("referencia"),       # J
        r.get("autorizacion"),     # K Autorización contacto
        r.get("estado"),           # L
        r.get("fecha_contacto"),   # M
        r.get("motivacion"),       # N
        r.get("observaciones"),    # O
    ]
    return ["" if v is None else str(v).strip() for v in valores]


def filas_sheet(registros: List[Dict[str, Any]]) -> List[List[str]]:
    return [fila_sheet(r) for r in registros]


def exportar_a_sheets(sede: str, registros: List[Dict[str, Any]], sheets_config=None,
                      timeout: int = config.SHEETS_TIMEOUT) -> int:
    """
    Añade los registros al final de la hoja de la sede.

    Returns:
        int: número de filas enviadas
    """
    sede_config = config_sede(sede, sheets_config)
    if not registros:
        raise SinDatosError("No hay datos para exportar con los filtros actuales")

    filas = filas_sheet(registros)
    payload = {
        "sheetId": sede_config["sheet_id"],
        "sheetName": sede_config["sheet_name"],
        "data": filas,
        "action": "append",
    }

    # El script lee el cuerpo crudo (e.postData.contents)
    resp = requests.post(
        sede_config["web_app_url"],
        data=json.dumps(payload),
        timeout=timeout,
        allow_redirects=True,
    )
    resp.raise_for_status()
    logger.info("Sheets %s: %s filas enviadas (respuesta: %s)", sede, len(filas), resp.text[:200])
    return len(filas)
