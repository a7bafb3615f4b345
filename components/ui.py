# components/ui.py

import streamlit as st


class CRMComponents:
    """Tarjetas y cabeceras del CRM"""

    @staticmethod
    def kpi_card(titulo: str, valor, icono: str = "📊", color: str = "#FFD700"):
        """Tarjeta de KPI con borde de color"""
        st.markdown(f"""
        <div style="
            background: #1e1e1e;
            border: 1px solid #333;
            border-left: 4px solid {color};
            border-radius: 8px;
            padding: 1.25rem;
        ">
            <div style="display: flex; justify-content: space-between; align-items: center;">
                <div>
                    <div style="font-size: 0.875rem; color: #aaa;">{titulo}</div>
                    <div style="font-size: 1.75rem; font-weight: 700; color: #fff;">{valor}</div>
                </div>
                <div style="font-size: 2rem; opacity: 0.8;">{icono}</div>
            </div>
        </div>
        """, unsafe_allow_html=True)

    @staticmethod
    def user_badges(sesion):
        """Badges de rol y sede del usuario conectado"""
        if not sesion:
            return
        st.markdown(f"""
        <div style="display: flex; gap: 0.5rem; flex-wrap: wrap; margin-bottom: 1rem;">
            <span style="background:#FFD700;color:#000;padding:0.25rem 0.75rem;border-radius:999px;
                font-size:0.8rem;font-weight:600;">👤 {sesion.rol_etiqueta}</span>
            <span style="background:#333;color:#fff;padding:0.25rem 0.75rem;border-radius:999px;
                font-size:0.8rem;font-weight:600;">📍 {sesion.sede_etiqueta}</span>
        </div>
        """, unsafe_allow_html=True)

    @staticmethod
    def section_header(titulo: str, subtitulo: str = None, icono: str = "📊"):
        st.markdown(f"## {icono} {titulo}")
        if subtitulo:
            st.caption(subtitulo)
        st.divider()
