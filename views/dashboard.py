import logging
from datetime import date

import pandas as pd
import streamlit as st

import config
from components.ui import CRMComponents
from services import export_service, sheets_service
from services.errors import CRMError
from services.invitados_service import (
    VER_LLAMADOS, VER_PENDIENTES, VER_TODOS, FiltrosDashboard,
    contar_estados, filtrar_busqueda, get_invitados_service,
)

logger = logging.getLogger(__name__)

OPCIONES_VER = {
    VER_TODOS: "Todos",
    VER_PENDIENTES: "Pendientes de llamar",
    VER_LLAMADOS: "Llamados",
}

COLUMNAS_TABLA = {
    "fecha_d": "Fecha",
    "sede": "Sede",
    "nombre": "Nombre",
    "documento": "Documento",
    "genero": "Género",
    "telefono": "Teléfono",
    "barrio": "Barrio",
    "referencia": "Referencia",
    "autorizacion": "Autorización",
    "estado": "Estado",
    "fecha_contacto": "Fecha de contacto",
    "motivacion": "Motivación",
    "observaciones": "Observaciones",
    "llamado": "Llamado",
}

CONFIRMACION_BORRADO = "ELIMINAR"


def _estado_inicial(session_state):
    if "dash_filtros" not in session_state:
        session_state.dash_filtros = FiltrosDashboard()
    if "dash_pagina" not in session_state:
        session_state.dash_pagina = 1


def _reiniciar_tabla():
    # Las ediciones del editor se guardan por posición de fila
    st.session_state.pop("tabla_invitados", None)


def aplicar_filtros(session_state, filtros: FiltrosDashboard):
    """Nuevos filtros: vuelve a la página 1 y descarta el Excel y las ediciones de la tabla."""
    session_state.dash_filtros = filtros
    session_state.dash_pagina = 1
    session_state.pop("dash_excel", None)
    session_state.pop("tabla_invitados", None)


def tabla_dashboard(registros) -> pd.DataFrame:
    """Registros de la página como DataFrame indexado por id con las columnas de la tabla."""
    df = pd.DataFrame(registros)
    for col in ["id"] + list(COLUMNAS_TABLA):
        if col not in df.columns:
            df[col] = None
    df["llamado"] = df["llamado"].fillna(False).astype(bool)
    return df.set_index("id")[list(COLUMNAS_TABLA)]


def _etiqueta(r) -> str:
    return f"{r.get('nombre') or '(sin nombre)'} · {r.get('documento') or ''} · {r.get('sede') or ''}"


def render_filtros(invitados_service, session_state):
    filtros = session_state.dash_filtros
    try:
        sedes = invitados_service.listar_sedes()
    except Exception as e:
        logger.error("Error cargando sedes: %s", e)
        sedes = []

    with st.form("form_filtros_dashboard"):
        col1, col2, col3, col4 = st.columns(4)
        if invitados_service.sede_bloqueada:
            col1.text_input("Sede", value=invitados_service.sede, disabled=True)
            sede = ""
        else:
            opciones = [""] + sedes
            sede = col1.selectbox(
                "Sede", opciones,
                index=opciones.index(filtros.sede) if filtros.sede in opciones else 0,
                format_func=lambda s: s or "Todas las sedes",
            )
        desde = col2.date_input("Desde", value=filtros.desde, format="DD/MM/YYYY")
        hasta = col3.date_input("Hasta", value=filtros.hasta, format="DD/MM/YYYY")
        claves_ver = list(OPCIONES_VER)
        ver = col4.selectbox("Mostrar", claves_ver, index=claves_ver.index(filtros.ver),
                             format_func=OPCIONES_VER.get)

        col_a, col_b = st.columns(2)
        aplicar = col_a.form_submit_button("🔍 Aplicar filtros", use_container_width=True)
        limpiar = col_b.form_submit_button("🧹 Limpiar", use_container_width=True)

    if aplicar:
        aplicar_filtros(session_state, FiltrosDashboard(sede=sede, desde=desde, hasta=hasta, ver=ver))
        st.rerun()
    if limpiar:
        aplicar_filtros(session_state, FiltrosDashboard())
        st.rerun()


def render_tabla(invitados_service, registros):
    """Tabla editable: solo la columna Llamado se puede marcar."""
    df = tabla_dashboard(registros)

    editado = st.data_editor(
        df,
        column_config={
            "llamado": st.column_config.CheckboxColumn("Llamado"),
            **{col: etiqueta for col, etiqueta in COLUMNAS_TABLA.items() if col != "llamado"},
        },
        disabled=[c for c in COLUMNAS_TABLA if c != "llamado"],
        hide_index=True,
        use_container_width=True,
        key="tabla_invitados",
    )

    cambios = editado["llamado"] != df["llamado"]
    if cambios.any():
        try:
            for registro_id, valor in editado.loc[cambios, "llamado"].items():
                invitados_service.marcar_llamado(registro_id, bool(valor))
        except Exception as e:
            logger.exception("Error marcando llamado")
            st.error(f"❌ Error al actualizar el estado de llamada: {e}")
            return
        _reiniciar_tabla()
        st.rerun()


def render_edicion(invitados_service, registros):
    por_id = {r["id"]: r for r in registros if r.get("id") is not None}
    if not por_id:
        return

    with st.expander("✏️ Editar / eliminar registro"):
        registro_id = st.selectbox("Registro", list(por_id), format_func=lambda i: _etiqueta(por_id[i]),
                                   key="dash_registro_sel")
        registro = por_id[registro_id]

        with st.form(f"form_editar_{registro_id}"):
            estado_actual = registro.get("estado")
            estado = st.selectbox(
                "Estado", config.ESTADOS,
                index=config.ESTADOS.index(estado_actual) if estado_actual in config.ESTADOS else 0,
            )
            telefono = st.text_input("Teléfono", value=registro.get("telefono") or "")
            observaciones = st.text_area("Observaciones", value=registro.get("observaciones") or "")
            guardar = st.form_submit_button("💾 Guardar cambios", use_container_width=True)

        if guardar:
            try:
                invitados_service.actualizar_invitado(registro_id, estado, telefono.strip(), observaciones.strip())
            except Exception as e:
                logger.exception("Error actualizando registro %s", registro_id)
                st.error(f"❌ Error al actualizar: {e}")
                return
            st.rerun()

        st.markdown("---")
        st.markdown(f"**🗑️ Eliminar** {_etiqueta(registro)}")
        confirmado = st.checkbox("Confirmo que quiero eliminar este registro", key=f"dash_conf_{registro_id}")
        texto = st.text_input(f"Escribe {CONFIRMACION_BORRADO} para confirmar", key=f"dash_texto_{registro_id}")
        if st.button("🗑️ Eliminar registro", type="primary",
                     disabled=not (confirmado and texto.strip().upper() == CONFIRMACION_BORRADO)):
            try:
                invitados_service.eliminar_invitado(registro_id)
            except Exception as e:
                logger.exception("Error eliminando registro %s", registro_id)
                st.error(f"❌ Error al eliminar: {e}")
                return
            _reiniciar_tabla()
            st.rerun()


def render_paginacion(resultado, session_state):
    if resultado.total_paginas <= 1:
        return
    col1, col2, col3 = st.columns([1, 2, 1])
    if col1.button("⬅️ Anterior", disabled=not resultado.hay_anterior, use_container_width=True):
        session_state.dash_pagina = resultado.pagina - 1
        _reiniciar_tabla()
        st.rerun()
    col2.markdown(
        f"<div style='text-align:center;'>Página {resultado.pagina} de {resultado.total_paginas} "
        f"({resultado.total} registros)</div>",
        unsafe_allow_html=True,
    )
    if col3.button("Siguiente ➡️", disabled=not resultado.hay_siguiente, use_container_width=True):
        session_state.dash_pagina = resultado.pagina + 1
        _reiniciar_tabla()
        st.rerun()


def render_exportaciones(invitados_service, session_state):
    st.markdown("### 📤 Exportar")
    filtros = session_state.dash_filtros
    col1, col2, col3 = st.columns(3)

    with col1:
        if st.button("📊 Preparar Excel", use_container_width=True):
            try:
                with st.spinner("Generando Excel..."):
                    registros = invitados_service.consultar_todos(filtros)
                    session_state.dash_excel = export_service.excel_por_sede(registros)
            except CRMError as e:
                st.warning(e.mensaje)
            except Exception as e:
                logger.exception("Error generando Excel")
                st.error(f"❌ Error al generar el Excel: {e}")
        if session_state.get("dash_excel"):
            st.download_button(
                "⬇️ Descargar Excel",
                data=session_state.dash_excel,
                file_name=export_service.NOMBRE_EXCEL_SEDES,
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                use_container_width=True,
            )

    sede_usuario = session_state.sesion.sede
    with col2:
        if st.button("📗 Exportar a Google Sheets", use_container_width=True):
            try:
                with st.spinner("Enviando a Google Sheets..."):
                    registros = invitados_service.consultar_todos(filtros)
                    enviados = sheets_service.exportar_a_sheets(sede_usuario, registros)
                st.success(f"✅ {enviados} registros exportados a Google Sheets.")
            except CRMError as e:
                st.warning(e.mensaje)
            except Exception as e:
                logger.exception("Error exportando a Google Sheets")
                st.error(f"❌ Error al exportar a Google Sheets: {e}")

    with col3:
        try:
            st.link_button("🔗 Abrir Google Sheet", sheets_service.url_sheet(sede_usuario),
                           use_container_width=True)
        except CRMError:
            st.button("🔗 Abrir Google Sheet", disabled=True, use_container_width=True,
                      help="No hay Google Sheet configurado para tu sede")


def render(supabase, session_state):
    sesion = session_state.sesion
    invitados_service = get_invitados_service(supabase, sesion)
    _estado_inicial(session_state)

    CRMComponents.section_header("Dashboard de Invitados", f"Actualizado {date.today():%d/%m/%Y}", "📋")
    CRMComponents.user_badges(sesion)

    render_filtros(invitados_service, session_state)

    try:
        resultado = invitados_service.consultar(session_state.dash_filtros, session_state.dash_pagina)
    except Exception as e:
        logger.exception("Error cargando invitados")
        st.error(f"❌ Error al cargar los registros: {e}")
        return

    # La página pudo quedar fuera de rango tras un borrado
    if resultado.total_paginas and resultado.pagina > resultado.total_paginas:
        session_state.dash_pagina = resultado.total_paginas
        st.rerun()

    contadores = contar_estados(resultado.registros)
    col1, col2, col3 = st.columns(3)
    with col1:
        CRMComponents.kpi_card("Registros", resultado.total, "👥", "#2196F3")
    with col2:
        CRMComponents.kpi_card("Inscritos (página)", contadores["inscritos"], "✅", "#4CAF50")
    with col3:
        CRMComponents.kpi_card("No interesados (página)", contadores["no_interesados"], "🚫", "#F44336")

    st.markdown("")
    termino = st.text_input("🔎 Buscar por nombre o documento", key="dash_busqueda",
                            on_change=_reiniciar_tabla)
    registros = filtrar_busqueda(resultado.registros, termino)

    if not registros:
        st.info("No hay registros para mostrar con los filtros actuales.")
    else:
        render_tabla(invitados_service, registros)
        render_edicion(invitados_service, registros)

    render_paginacion(resultado, session_state)
    st.divider()
    render_exportaciones(invitados_service, session_state)
