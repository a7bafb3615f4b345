import logging

import streamlit as st

# =============================================================================
# CONFIGURACIÓN PÁGINA
# =============================================================================
st.set_page_config(
    page_title="Smart Fit CRM - Invitados",
    layout="wide",
    initial_sidebar_state="expanded",
    page_icon="🏋️",
    menu_items={'Get Help': None, 'Report a bug': None, 'About': None}
)

import config
from components.ui import CRMComponents
from services.auth_service import get_auth_service, paginas_visibles, puede_acceder
from services.supabase_client import get_supabase

config.configurar_logging()
logger = logging.getLogger(__name__)

PAGINA_INICIAL = "formulario"
PAGINA_REDIRECCION = "dashboard"


# =============================================================================
# OCULTAR MENÚS STREAMLIT
# =============================================================================
def hide_streamlit_elements():
    st.markdown("""
    <style>
    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}
    .stDeployButton {visibility: hidden;}
    div[data-testid="stDecoration"] {visibility: hidden;}
    [data-testid="stStatusWidget"] {visibility: hidden;}

    .stButton > button,
    .stDownloadButton > button,
    .stFormSubmitButton > button {
        border-radius: 8px !important;
        font-weight: 600 !important;
    }
    .stButton > button[kind="primary"],
    .stFormSubmitButton > button[kind="primary"] {
        background: #FFD700 !important;
        color: #000000 !important;
        border: 1px solid #FFD700 !important;
    }
    </style>
    """, unsafe_allow_html=True)


# =============================================================================
# SESIÓN
# =============================================================================
def init_session_state():
    defaults = {
        "authenticated": False,
        "sesion": None,
        "page": PAGINA_INICIAL,
        "confirmar_logout": False,
    }
    for clave, valor in defaults.items():
        if clave not in st.session_state:
            st.session_state[clave] = valor


def restaurar_sesion(supabase):
    """Recupera la sesión si el cliente de esta pestaña sigue autenticado."""
    if st.session_state.authenticated:
        return
    sesion = get_auth_service(supabase).obtener_sesion()
    if sesion:
        st.session_state.sesion = sesion
        st.session_state.authenticated = True


def do_logout(supabase):
    get_auth_service(supabase).cerrar_sesion()
    st.session_state.clear()
    st.cache_data.clear()
    st.rerun()


# =============================================================================
# SIDEBAR
# =============================================================================
def render_sidebar(supabase):
    sesion = st.session_state.sesion

    st.sidebar.markdown(f"""
    <div style="padding: 1rem; text-align: center; border-bottom: 1px solid #333;">
        <div style="font-size: 2rem;">🏋️</div>
        <p style="margin: 0.25rem 0 0; font-weight: 600;">{sesion.email}</p>
    </div>
    """, unsafe_allow_html=True)
    with st.sidebar:
        CRMComponents.user_badges(sesion)

    for page, label in paginas_visibles(sesion.rol):
        if st.sidebar.button(label, use_container_width=True, key=f"nav_{page}"):
            st.session_state.page = page
            st.rerun()

    st.sidebar.markdown("---")
    if not st.session_state.confirmar_logout:
        if st.sidebar.button("🚪 Cerrar Sesión", use_container_width=True, key="logout"):
            st.session_state.confirmar_logout = True
            st.rerun()
    else:
        st.sidebar.warning("¿Seguro que quieres cerrar sesión?")
        col1, col2 = st.sidebar.columns(2)
        if col1.button("Sí", use_container_width=True, key="logout_si"):
            do_logout(supabase)
        if col2.button("No", use_container_width=True, key="logout_no"):
            st.session_state.confirmar_logout = False
            st.rerun()

    st.sidebar.markdown("---")
    st.sidebar.markdown("**Smart Fit CRM** Regional EC1")


# =============================================================================
# NAVEGACIÓN
# =============================================================================
def render_page(supabase):
    page = st.session_state.get("page", PAGINA_INICIAL)
    rol = st.session_state.sesion.rol

    if not puede_acceder(rol, page):
        logger.warning("Acceso denegado a %s para rol %s", page, rol or "(sin rol)")
        st.warning("Acceso denegado. No tienes permiso para ver esta página.")
        st.session_state.page = PAGINA_REDIRECCION
        if st.button("📋 Ir al Dashboard"):
            st.rerun()
        return

    try:
        view_module = __import__(f"views.{page}", fromlist=["render"])
        view_module.render(supabase, st.session_state)
    except Exception as e:
        logger.exception("Error al cargar la página %s", page)
        st.error(f"❌ Error al cargar página: {e}")
        if st.button("🔄 Reintentar"):
            st.rerun()


# =============================================================================
# MAIN
# =============================================================================
def main():
    hide_streamlit_elements()
    init_session_state()
    supabase = get_supabase()
    restaurar_sesion(supabase)

    if not st.session_state.authenticated or not st.session_state.sesion:
        __import__("views.login", fromlist=["render"]).render(supabase, st.session_state)
        return

    render_sidebar(supabase)
    render_page(supabase)


if __name__ == "__main__":
    main()
