import logging

import streamlit as st

import config
from components.ui import CRMComponents
from services.errors import CRMError
from services.invitados_service import get_invitados_service

logger = logging.getLogger(__name__)


def render(supabase, session_state):
    sesion = session_state.sesion
    invitados_service = get_invitados_service(supabase, sesion)

    CRMComponents.section_header("Registro de Invitados", "Alta de nuevos invitados por sede.", "📝")
    CRMComponents.user_badges(sesion)

    sedes = invitados_service.sedes_formulario()
    indice_sede = 0
    if invitados_service.sede_bloqueada:
        if sesion.sede not in sedes:
            logger.error("Usuario %s sin sede asignada", sesion.email)
            st.error("Error: Tu sede no está configurada correctamente. Contacta al administrador.")
            return
        indice_sede = sedes.index(sesion.sede)

    if session_state.get("form_flash"):
        st.success(session_state.pop("form_flash"))

    # Cambiar la versión vacía el formulario tras un alta correcta
    version = session_state.get("form_version", 0)

    def k(campo):
        return f"{campo}_{version}"

    with st.form(k("form_invitado")):
        col1, col2 = st.columns(2)
        with col1:
            sede = st.selectbox("Sede *", sedes, index=indice_sede if sedes else None,
                                disabled=invitados_service.sede_bloqueada, key=k("sede"))
            nombre = st.text_input("Nombre completo *", key=k("nombre"))
            documento = st.text_input("Documento *", key=k("documento"))
            mayor_edad = st.selectbox("¿Mayor de edad?", config.OPCIONES_MAYOR_EDAD, key=k("mayor_edad"))
            genero = st.selectbox("Género", config.OPCIONES_GENERO, key=k("genero"))
            telefono = st.text_input("Teléfono", key=k("telefono"))
            barrio = st.text_input("Barrio", key=k("barrio"))
        with col2:
            referencia = st.selectbox("Referencia", config.OPCIONES_REFERENCIA, key=k("referencia"))
            autorizacion = st.selectbox("Autorización de contacto", config.OPCIONES_AUTORIZACION, key=k("autorizacion"))
            estado = st.selectbox("Estado", config.ESTADOS, key=k("estado"))
            fecha_contacto = st.date_input("Fecha de contacto", value=None, format="DD/MM/YYYY", key=k("fecha_contacto"))
            motivacion = st.text_input("Motivación", key=k("motivacion"))
            observaciones = st.text_area("Observaciones", height=100, key=k("observaciones"))

        submitted = st.form_submit_button("💾 Guardar Registro", use_container_width=True)

    if not submitted:
        return

    datos = {
        "sede": sede, "nombre": nombre, "documento": documento, "mayor_edad": mayor_edad,
        "genero": genero, "telefono": telefono, "barrio": barrio, "referencia": referencia,
        "autorizacion": autorizacion, "estado": estado, "fecha_contacto": fecha_contacto,
        "motivacion": motivacion, "observaciones": observaciones,
    }
    with st.spinner("Verificando..."):
        try:
            invitados_service.crear_invitado(datos)
            session_state.form_flash = "✅ Registro guardado correctamente."
            session_state.form_version = version + 1
        except CRMError as e:
            st.error(e.mensaje)
            return
        except Exception as e:
            logger.exception("Error guardando invitado")
            st.error("Ocurrió un error inesperado al guardar.")
            return
    st.rerun()
