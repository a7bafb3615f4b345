"""
Gráficos plotly de la página de analytics.
Reciben las agregaciones de services.analytics_service.
"""

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

import config
from config import (
    COLOR_ESTADOS, COLORES_AUTORIZACION, COLORES_GENERO, COLORES_REFERENCIA, COLORES_TOP_SEDES,
)

ALTO = 350


def _layout(fig: go.Figure, titulo: str, leyenda: bool = True) -> go.Figure:
    fig.update_layout(title=titulo, height=ALTO, showlegend=leyenda,
                      margin=dict(l=20, r=20, t=50, b=20))
    return fig


def tendencia(serie: pd.Series) -> go.Figure:
    fig = go.Figure(go.Scatter(
        x=list(serie.index), y=list(serie.values), mode="lines",
        line=dict(color="#FFD700", shape="spline"), fill="tozeroy",
        fillcolor="rgba(255, 215, 0, 0.1)", name="Registros por día",
    ))
    return _layout(fig, "Tendencia de Registros por Día", leyenda=False)


def top_sedes(serie: pd.Series) -> go.Figure:
    fig = go.Figure(go.Bar(
        x=list(serie.index), y=list(serie.values),
        marker_color=COLORES_TOP_SEDES[:len(serie)], name="Inscritos",
        hovertemplate="Inscritos: %{y}<extra></extra>",
    ))
    fig.update_yaxes(rangemode="tozero", dtick=1)
    return _layout(fig, "Top 5 Sedes por Inscritos", leyenda=False)


def dona(serie: pd.Series, titulo: str, colores) -> go.Figure:
    fig = px.pie(values=list(serie.values), names=list(serie.index), hole=0.5,
                 color_discrete_sequence=colores)
    fig.update_layout(legend=dict(orientation="h", y=-0.1))
    return _layout(fig, titulo)


def tarta(serie: pd.Series, titulo: str, colores) -> go.Figure:
    fig = px.pie(values=list(serie.values), names=list(serie.index),
                 color_discrete_sequence=colores)
    fig.update_layout(legend=dict(orientation="h", y=-0.1))
    return _layout(fig, titulo)


def genero(serie: pd.Series) -> go.Figure:
    return dona(serie, "Distribución por Género", COLORES_GENERO)


def autorizacion(serie: pd.Series) -> go.Figure:
    return dona(serie, "Autorización de Contacto", COLORES_AUTORIZACION)


def referencias(serie: pd.Series) -> go.Figure:
    return tarta(serie, "Tipos de Referencia", COLORES_REFERENCIA)


def estados_por_sede(tabla: pd.DataFrame) -> go.Figure:
    fig = go.Figure()
    for estado in config.ESTADOS_PRINCIPALES:
        valores = list(tabla[estado]) if estado in tabla.columns else []
        fig.add_trace(go.Bar(x=list(tabla.index), y=valores, name=estado,
                             marker_color=COLOR_ESTADOS[estado]))
    fig.update_layout(barmode="stack")
    return _layout(fig, "Estados por Sede (Top 5)")


def conversion(serie: pd.Series) -> go.Figure:
    fig = go.Figure(go.Bar(x=list(serie.index), y=list(serie.values),
                           marker_color="#4CAF50", name="Tasa de conversión (%)"))
    fig.update_yaxes(range=[0, 100])
    return _layout(fig, "Tasa de Conversión por Sede", leyenda=False)


def semanal(serie: pd.Series) -> go.Figure:
    fig = go.Figure(go.Bar(x=list(serie.index), y=list(serie.values),
                           marker_color="#2196F3", name="Registros"))
    return _layout(fig, "Registros por Día de la Semana", leyenda=False)
