import logging

import streamlit as st
from supabase import create_client

import config

logger = logging.getLogger(__name__)


def get_supabase():
    """
    Cliente Supabase de la sesión actual.
    Cada sesión de navegador guarda su propio cliente porque la sesión de
    auth vive dentro del cliente.
    """
    if st.session_state.get("supabase") is None:
        if not config.SUPABASE_URL or not config.SUPABASE_ANON_KEY:
            st.error("⚠️ Error: Variables de Supabase no configuradas")
            st.stop()
        logger.info("Creando cliente Supabase para la sesión")
        st.session_state.supabase = create_client(config.SUPABASE_URL, config.SUPABASE_ANON_KEY)
    return st.session_state.supabase
