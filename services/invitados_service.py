"""
Servicio de invitados: alta desde el formulario, consultas del dashboard
y de analytics, y modificaciones puntuales (llamado, edición, borrado).
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import streamlit as st
from postgrest.exceptions import APIError

import config
from services.base.base_service import BaseService
from services.errors import DocumentoDuplicadoError, ValidacionError, VerificacionError

logger = logging.getLogger(__name__)

COL_FECHA = "fecha_d"
COL_SEDE = "sede"
COL_NOMBRE = "nombre"
COL_DOCUMENTO = "documento"
COL_ESTADO = "estado"
COL_TELEFONO = "telefono"
COL_OBS = "observaciones"
COL_LLAMADO = "llamado"

CAMPOS_FORMULARIO = [
    "sede", "nombre", "mayor_edad", "documento", "genero", "telefono",
    "barrio", "referencia", "autorizacion", "estado", "fecha_contacto",
    "motivacion", "observaciones",
]
CAMPOS_OPCIONALES_NULL = ["barrio", "fecha_contacto"]

VER_TODOS = "todos"
VER_PENDIENTES = "pendientes"
VER_LLAMADOS = "llamados"


@dataclass
class FiltrosDashboard:
    sede: str = ""
    desde: Optional[date] = None
    hasta: Optional[date] = None
    ver: str = VER_TODOS


@dataclass
class PaginaResultado:
    registros: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    pagina: int = 1
    por_pagina: int = config.REGISTROS_POR_PAGINA

    @property
    def total_paginas(self) -> int:
        return math.ceil(self.total / self.por_pagina) if self.total else 0

    @property
    def hay_anterior(self) -> bool:
        return self.pagina > 1

    @property
    def hay_siguiente(self) -> bool:
        return self.pagina < self.total_paginas


def _iso(valor) -> Optional[str]:
    if not valor:
        return None
    if isinstance(valor, date):
        return valor.isoformat()
    return str(valor)


def rango_pagina(pagina: int, por_pagina: int = config.REGISTROS_POR_PAGINA):
    """Offsets inclusivos (desde, hasta) de una página empezando en 1."""
    desde = (max(pagina, 1) - 1) * por_pagina
    return desde, desde + por_pagina - 1


def filtrar_busqueda(registros: List[Dict[str, Any]], termino: str) -> List[Dict[str, Any]]:
    """Busca por nombre (sin mayúsculas) o documento dentro de la página cargada."""
    termino = (termino or "").lower().strip()
    if not termino:
        return list(registros)
    return [
        r for r in registros
        if termino in (r.get(COL_NOMBRE) or "").lower()
        or termino in str(r.get(COL_DOCUMENTO) or "")
    ]


@st.cache_data(ttl=300, show_spinner=False)
def _sedes_distintas(_supabase, tabla: str, sede: str) -> List[str]:
    query = _supabase.table(tabla).select(COL_SEDE)
    if sede:
        query = query.eq(COL_SEDE, sede)
    res = query.execute()
    return sorted({r.get(COL_SEDE) for r in (res.data or []) if r.get(COL_SEDE)})


def limpiar_cache_sedes():
    _sedes_distintas.clear()


def contar_estados(registros: List[Dict[str, Any]]) -> Dict[str, int]:
    return {
        "inscritos": sum(1 for r in registros if r.get(COL_ESTADO) == "Inscrito"),
        "no_interesados": sum(1 for r in registros if r.get(COL_ESTADO) == "No interesado"),
    }


class InvitadosService(BaseService):
    """Operaciones sobre la tabla de invitados"""

    table_name = config.TABLE_NAME
    view_name = config.VIEW_NAME

    # =========================
    # SEDES
    # =========================
    def listar_sedes(self) -> List[str]:
        """Sedes con registros (cacheado 5 minutos por sede del usuario)."""
        sede = self.sede if self.sede_bloqueada else ""
        return list(_sedes_distintas(self.supabase, self.view_name, sede))

    def sedes_formulario(self) -> List[str]:
        """
        Sedes ofrecidas en el alta.

        Gerente y recepcionista solo ven la suya aunque aún no tenga registros.
        El maestro ve config.SEDES o, si no hay, las sedes con Google Sheet
        más las ya registradas.
        """
        if self.sede_bloqueada:
            return [self.sede] if self.sede else []
        if config.SEDES:
            return list(config.SEDES)

        sedes = set(config.GOOGLE_SHEETS_CONFIG)
        try:
            sedes.update(self.listar_sedes())
        except Exception as e:
            self._log_error("listar sedes", e)
        return sorted(sedes)

    # =========================
    # ALTA
    # =========================
    def buscar_duplicado(self, documento: str) -> Optional[str]:
        """Devuelve el nombre registrado con ese documento o None."""
        res = self.supabase.table(self.table_name).select(COL_NOMBRE).eq(COL_DOCUMENTO, documento).execute()
        if res.data:
            return res.data[0].get(COL_NOMBRE) or ""
        return None

    def preparar_payload(self, datos: Dict[str, Any], hoy: Optional[date] = None) -> Dict[str, Any]:
        payload = {}
        for campo in CAMPOS_FORMULARIO:
            valor = datos.get(campo)
            if isinstance(valor, date):
                valor = valor.isoformat()
            elif isinstance(valor, str):
                valor = valor.strip()
            payload[campo] = valor if valor is not None else ""

        for campo in CAMPOS_OPCIONALES_NULL:
            if not payload[campo]:
                payload[campo] = None

        if self.sede_bloqueada and self.sede:
            payload["sede"] = self.sede

        payload["fecha_d"] = (hoy or date.today()).isoformat()
        payload["llamado"] = False
        return payload

    def crear_invitado(self, datos: Dict[str, Any], hoy: Optional[date] = None) -> Dict[str, Any]:
        """
        Verifica duplicados por documento e inserta el registro.

        Raises:
            ValidacionError: faltan campos obligatorios
            VerificacionError: falló la consulta de duplicados
            DocumentoDuplicadoError: el documento ya existe (no se inserta nada)
        """
        payload = self.preparar_payload(datos, hoy=hoy)
        faltantes = [c for c in ("sede", "nombre", "documento") if not payload.get(c)]
        if faltantes:
            raise ValidacionError(f"Campos obligatorios: {', '.join(faltantes)}")

        try:
            existente = self.buscar_duplicado(payload["documento"])
        except Exception as e:
            self._log_error("verificar documento duplicado", e)
            raise VerificacionError() from e
        if existente is not None:
            logger.info("Documento duplicado %s", payload["documento"])
            raise DocumentoDuplicadoError(payload["documento"], existente)

        res = self.supabase.table(self.table_name).insert([payload]).execute()
        limpiar_cache_sedes()
        logger.info("Invitado creado: %s (%s)", payload["documento"], payload["sede"])
        return res.data[0] if res.data else payload

    # =========================
    # CONSULTAS DASHBOARD
    # =========================
    def _query_filtrada(self, filtros: FiltrosDashboard, count: Optional[str] = None):
        if count:
            query = self.supabase.table(self.view_name).select("*", count=count)
        else:
            query = self.supabase.table(self.view_name).select("*")
        query = query.order(COL_FECHA, desc=True)

        query = self._apply_sede_filter(query)
        if filtros.sede:
            query = query.eq(COL_SEDE, filtros.sede)
        if filtros.desde:
            query = query.gte(COL_FECHA, _iso(filtros.desde))
        if filtros.hasta:
            query = query.lte(COL_FECHA, _iso(filtros.hasta))

        if filtros.ver == VER_PENDIENTES:
            query = query.eq(COL_LLAMADO, False)
        elif filtros.ver == VER_LLAMADOS:
            query = query.eq(COL_LLAMADO, True)
        return query

    def consultar(self, filtros: FiltrosDashboard, pagina: int = 1) -> PaginaResultado:
        desde, hasta = rango_pagina(pagina)
        res = self._query_filtrada(filtros, count="exact").range(desde, hasta).execute()
        registros = res.data or []
        total = res.count if res.count is not None else len(registros)
        return PaginaResultado(registros=registros, total=total, pagina=pagina)

    def consultar_todos(self, filtros: FiltrosDashboard) -> List[Dict[str, Any]]:
        res = self._query_filtrada(filtros).execute()
        return res.data or []

    # =========================
    # MODIFICACIONES
    # =========================
    def marcar_llamado(self, registro_id, valor: bool):
        self.supabase.table(self.view_name).update({COL_LLAMADO: bool(valor)}).eq("id", registro_id).execute()
        logger.info("Registro %s llamado=%s", registro_id, bool(valor))

    def actualizar_invitado(self, registro_id, estado: str, telefono: str, observaciones: str):
        payload = {
            COL_ESTADO: estado,
            COL_TELEFONO: telefono,
            COL_OBS: observaciones,
        }
        self.supabase.table(self.view_name).update(payload).eq("id", registro_id).execute()
        logger.info("Registro %s actualizado", registro_id)

    def eliminar_invitado(self, registro_id):
        """Borra por la vista; si la vista no lo permite, contra la tabla base."""
        try:
            res = self.supabase.table(self.view_name).delete().eq("id", registro_id).execute()
        except APIError as e:
            logger.warning("Borrado en %s falló (%s), reintentando en %s",
                           self.view_name, e, self.table_name)
            res = self.supabase.table(self.table_name).delete().eq("id", registro_id).execute()

        limpiar_cache_sedes()
        if not res.data:
            logger.warning("El borrado de %s no devolvió filas", registro_id)
        logger.info("Registro %s eliminado", registro_id)
        return res

    # =========================
    # ANALYTICS
    # =========================
    def _query_periodo(self, tabla: str, periodo, sede: str, hoy: date):
        query = self.supabase.table(tabla).select("*")
        if periodo != "all":
            limite = hoy - timedelta(days=int(periodo))
            query = query.gte(COL_FECHA, limite.isoformat())
        query = self._apply_sede_filter(query)
        if sede:
            query = query.eq(COL_SEDE, sede)
        return query

    def cargar_periodo(self, periodo="30", sede: str = "", hoy: Optional[date] = None) -> List[Dict[str, Any]]:
        hoy = hoy or date.today()
        try:
            res = self._query_periodo(self.view_name, periodo, sede, hoy).execute()
        except APIError as e:
            self._log_error(f"cargar datos desde {self.view_name}", e)
            res = self._query_periodo(self.table_name, periodo, sede, hoy).execute()
        registros = res.data or []
        logger.info("Analytics: %s registros (periodo=%s, sede=%s)", len(registros), periodo, sede or "todas")
        return registros


def get_invitados_service(supabase, sesion) -> InvitadosService:
    """Factory function para obtener instancia del servicio de invitados."""
    return InvitadosService(supabase, sesion)
