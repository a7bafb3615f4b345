import logging

import streamlit as st

from components import charts
from components.ui import CRMComponents
from services import analytics_service as an
from services import export_service
from services.auth_service import puede_acceder
from services.errors import CRMError
from services.invitados_service import get_invitados_service

logger = logging.getLogger(__name__)


def _estado_inicial(session_state):
    if "an_periodo" not in session_state:
        session_state.an_periodo = an.PERIODO_DEFECTO
    if "an_sede" not in session_state:
        session_state.an_sede = ""


def render_filtros(invitados_service, session_state):
    try:
        sedes = invitados_service.listar_sedes()
    except Exception as e:
        logger.error("Error cargando sedes: %s", e)
        sedes = []

    col1, col2, col3, col4 = st.columns([2, 2, 1, 1])
    periodos = list(an.PERIODOS)
    periodo = col1.selectbox("📅 Período", periodos, index=periodos.index(session_state.an_periodo),
                             format_func=an.PERIODOS.get)
    if invitados_service.sede_bloqueada:
        col2.text_input("📍 Sede", value=invitados_service.sede, disabled=True)
        sede = ""
    else:
        opciones = [""] + sedes
        sede = col2.selectbox("📍 Sede", opciones,
                              index=opciones.index(session_state.an_sede) if session_state.an_sede in opciones else 0,
                              format_func=lambda s: s or "Todas las sedes")

    col3.markdown("<div style='height: 1.75rem;'></div>", unsafe_allow_html=True)
    col4.markdown("<div style='height: 1.75rem;'></div>", unsafe_allow_html=True)
    if col3.button("🔄 Actualizar", use_container_width=True):
        _limpiar_exportes(session_state)
        st.rerun()
    if col4.button("🧹 Limpiar", use_container_width=True):
        session_state.an_periodo = an.PERIODO_DEFECTO
        session_state.an_sede = ""
        _limpiar_exportes(session_state)
        st.rerun()

    if periodo != session_state.an_periodo or sede != session_state.an_sede:
        session_state.an_periodo = periodo
        session_state.an_sede = sede
        _limpiar_exportes(session_state)


def _limpiar_exportes(session_state):
    session_state.pop("an_excel", None)
    session_state.pop("an_pdf", None)


def render_kpis(kpis):
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        CRMComponents.kpi_card("Total Registros", kpis["total"], "👥", "#2196F3")
    with col2:
        CRMComponents.kpi_card("Inscritos", kpis["inscritos"], "✅", "#4CAF50")
    with col3:
        CRMComponents.kpi_card("Tasa de Conversión", f"{kpis['conversion']}%", "📈", "#FFD700")
    with col4:
        CRMComponents.kpi_card("Llamados", kpis["llamados"], "📞", "#FFA500")


def render_graficos(df):
    col1, col2 = st.columns(2)
    col1.plotly_chart(charts.tendencia(an.tendencia_por_fecha(df)), use_container_width=True)
    col2.plotly_chart(charts.top_sedes(an.top_sedes_inscritos(df)), use_container_width=True)

    col1, col2, col3 = st.columns(3)
    col1.plotly_chart(charts.genero(an.distribucion(df, "genero")), use_container_width=True)
    col2.plotly_chart(charts.referencias(an.distribucion(df, "referencia")), use_container_width=True)
    col3.plotly_chart(charts.autorizacion(an.distribucion(df, "autorizacion")), use_container_width=True)

    col1, col2 = st.columns(2)
    col1.plotly_chart(charts.estados_por_sede(an.estados_por_sede(df)), use_container_width=True)
    col2.plotly_chart(charts.conversion(an.conversion_por_sede(df)), use_container_width=True)

    st.plotly_chart(charts.semanal(an.registros_por_dia_semana(df)), use_container_width=True)


def render_exportaciones(registros, sede, session_state):
    periodo_label = an.PERIODOS[session_state.an_periodo]
    st.markdown("### 📤 Exportar reporte")
    col1, col2 = st.columns(2)

    with col1:
        if st.button("📊 Generar Excel", use_container_width=True):
            try:
                with st.spinner("Generando Excel..."):
                    session_state.an_excel = export_service.excel_analytics(registros, periodo_label, sede)
            except CRMError as e:
                st.warning(e.mensaje)
            except Exception as e:
                logger.exception("Error generando Excel de analytics")
                st.error(f"❌ Error al generar el Excel: {e}")
        if session_state.get("an_excel"):
            st.download_button(
                "⬇️ Descargar Excel",
                data=session_state.an_excel,
                file_name=export_service.nombre_archivo(sede, "xlsx"),
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                use_container_width=True,
            )

    with col2:
        if st.button("📄 Generar PDF", use_container_width=True):
            try:
                with st.spinner("Generando PDF..."):
                    session_state.an_pdf = export_service.pdf_analytics(registros, periodo_label, sede)
            except CRMError as e:
                st.warning(e.mensaje)
            except Exception as e:
                logger.exception("Error generando PDF de analytics")
                st.error(f"❌ Error al generar el PDF: {e}")
        if session_state.get("an_pdf"):
            st.download_button(
                "⬇️ Descargar PDF",
                data=session_state.an_pdf,
                file_name=export_service.nombre_archivo(sede, "pdf"),
                mime="application/pdf",
                use_container_width=True,
            )


def render(supabase, session_state):
    sesion = session_state.sesion
    if not puede_acceder(sesion.rol, "analytics"):
        st.warning("Acceso denegado. No tienes permiso para ver esta página.")
        return

    invitados_service = get_invitados_service(supabase, sesion)
    _estado_inicial(session_state)

    CRMComponents.section_header("Analytics", "Indicadores y tendencias de invitados.", "📈")
    CRMComponents.user_badges(sesion)

    render_filtros(invitados_service, session_state)

    try:
        with st.spinner("Cargando datos..."):
            registros = invitados_service.cargar_periodo(session_state.an_periodo, session_state.an_sede)
    except Exception as e:
        logger.exception("Error cargando datos de analytics")
        st.error(f"❌ Error al cargar los datos: {e}")
        return

    if not registros:
        st.info("No hay registros en el período seleccionado.")
        return

    df = an.a_dataframe(registros)
    render_kpis(an.calcular_kpis(df))
    st.markdown("")
    render_graficos(df)
    st.divider()
    # Gerente y recepcionista solo exportan su sede
    sede_reporte = invitados_service.sede if invitados_service.sede_bloqueada else session_state.an_sede
    render_exportaciones(registros, sede_reporte, session_state)
