import logging

import streamlit as st

from services.auth_service import get_auth_service
from services.errors import CRMError

logger = logging.getLogger(__name__)


def render(supabase, session_state):
    auth_service = get_auth_service(supabase)

    col1, col2, col3 = st.columns([1, 1, 1])
    with col2:
        st.markdown("<h3 style='text-align: center; margin-bottom: 1.5rem;'>🔐 Iniciar Sesión</h3>",
                    unsafe_allow_html=True)

        with st.form("form_login"):
            email = st.text_input("Email", placeholder="usuario@empresa.com")
            password = st.text_input("Contraseña", type="password", placeholder="••••••")
            col_a, col_b = st.columns(2)
            entrar = col_a.form_submit_button("🚀 Iniciar Sesión", use_container_width=True)
            registrar = col_b.form_submit_button("📝 Registrarse", use_container_width=True, type="secondary")

        if entrar:
            try:
                sesion = auth_service.iniciar_sesion(email, password)
                session_state.sesion = sesion
                session_state.authenticated = True
                session_state.page = "formulario"
                st.rerun()
            except CRMError as e:
                st.error(e.mensaje)

        if registrar:
            try:
                auth_service.registrar(email, password)
                st.success("✅ ¡Registro exitoso! Ahora puedes iniciar sesión.")
            except CRMError as e:
                st.error(e.mensaje)
