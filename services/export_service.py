"""
Exportaciones del CRM: Excel por sede (dashboard), Excel y PDF de analytics.
Todas devuelven bytes listos para st.download_button.
"""

import logging
import re
from datetime import date, datetime
from io import BytesIO
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

import pandas as pd
from reportlab.graphics.charts.barcharts import VerticalBarChart
from reportlab.graphics.charts.linecharts import HorizontalLineChart
from reportlab.graphics.charts.piecharts import Pie
from reportlab.graphics.shapes import Drawing, String
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    KeepTogether, PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle,
)

import config
from services import analytics_service as an
from services.errors import SinDatosError

logger = logging.getLogger(__name__)

TITULO_REPORTE = "REPORTE ANALYTICS"
SUBTITULO_REPORTE = "Smart Fit CRM - Regional EC1"

NOMBRE_EXCEL_SEDES = "registros_por_sede.xlsx"
MAX_NOMBRE_HOJA = 31
_CARACTERES_HOJA_INVALIDOS = re.compile(r"[\[\]\:\*\?\/\\]")

COLOR_ESTADOS = config.COLOR_ESTADOS
COLORES_GENERO = config.COLORES_GENERO
COLORES_REFERENCIA = config.COLORES_REFERENCIA
COLORES_AUTORIZACION = config.COLORES_AUTORIZACION


# =========================
# HELPERS
# =========================
def nombre_hoja(nombre: str, usados: Optional[set] = None) -> str:
    """Nombre válido de hoja Excel: sin caracteres prohibidos y máx. 31 caracteres."""
    base = _CARACTERES_HOJA_INVALIDOS.sub("", str(nombre or "")).strip() or "Sin Sede"
    base = base[:MAX_NOMBRE_HOJA]
    if usados is None:
        return base
    candidato, n = base, 2
    while candidato.lower() in usados:
        sufijo = f" ({n})"
        candidato = base[:MAX_NOMBRE_HOJA - len(sufijo)] + sufijo
        n += 1
    usados.add(candidato.lower())
    return candidato


def nombre_archivo(sede: str, extension: str, fecha: Optional[date] = None) -> str:
    fecha_txt = (fecha or date.today()).isoformat()
    if sede:
        return f"Analytics_{sede}_{fecha_txt}.{extension}"
    return f"Analytics_Completo_{fecha_txt}.{extension}"


def _texto(valor) -> str:
    if valor is None or (isinstance(valor, float) and pd.isna(valor)):
        return ""
    return str(valor)


def _si_no(valor) -> str:
    return "Sí" if bool(valor) else "No"


def _agrupar_por_sede(registros: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    grupos: Dict[str, List[Dict[str, Any]]] = {}
    for r in registros:
        grupos.setdefault(r.get("sede") or "Sin Sede", []).append(r)
    return grupos


def _ajustar_columnas(worksheet, df: pd.DataFrame):
    for i, col in enumerate(df.columns):
        largo = df[col].astype(str).str.len().max() if not df.empty else 0
        worksheet.set_column(i, i, max(int(largo or 0), len(str(col))) + 2)


# =========================
# EXCEL DASHBOARD
# =========================
def fila_dashboard(r: Dict[str, Any]) -> Dict[str, str]:
    return {
        "Fecha": _texto(r.get("fecha_d")),
        "Sede": _texto(r.get("sede")),
        "Nombre": _texto(r.get("nombre")),
        "Documento": _texto(r.get("documento")),
        "Genero": _texto(r.get("genero")),
        "Telefono": _texto(r.get("telefono")),
        "Barrio": _texto(r.get("barrio")),
        "Referencia": _texto(r.get("referencia")),
        "Autorizacion": _texto(r.get("autorizacion")),
        "Estado": _texto(r.get("estado")),
        "Fecha de contacto": _texto(r.get("fecha_contacto")),
        "Motivacion": _texto(r.get("motivacion")),
        "Observaciones": _texto(r.get("observaciones")),
        "Llamado": _si_no(r.get("llamado")),
    }


def resumen_dashboard(grupos: Dict[str, List[Dict[str, Any]]]) -> pd.DataFrame:
    filas = []
    for sede, registros in grupos.items():
        fila = {"Sede": sede, "Total": len(registros)}
        for estado in config.ESTADOS:
            fila[estado] = sum(1 for r in registros if r.get("estado") == estado)
        fila["Llamados realizados"] = sum(1 for r in registros if r.get("llamado"))
        filas.append(fila)
    return pd.DataFrame(filas)


def excel_por_sede(registros: List[Dict[str, Any]]) -> bytes:
    """Libro con hoja Resumen y una hoja por sede."""
    if not registros:
        raise SinDatosError()

    grupos = _agrupar_por_sede(registros)
    output = BytesIO()
    usados = {"resumen"}
    with pd.ExcelWriter(output, engine="xlsxwriter") as writer:
        df_resumen = resumen_dashboard(grupos)
        df_resumen.to_excel(writer, index=False, sheet_name="Resumen")
        _ajustar_columnas(writer.sheets["Resumen"], df_resumen)

        for sede, filas in grupos.items():
            hoja = nombre_hoja(sede, usados)
            df_sede = pd.DataFrame([fila_dashboard(r) for r in filas])
            df_sede.to_excel(writer, index=False, sheet_name=hoja)
            _ajustar_columnas(writer.sheets[hoja], df_sede)

    logger.info("Excel por sede generado: %s registros, %s sedes", len(registros), len(grupos))
    return output.getvalue()


# =========================
# EXCEL ANALYTICS
# =========================
def filas_resumen_ejecutivo(df: pd.DataFrame, periodo_label: str, sede: str,
                            generado: datetime) -> List[List[Any]]:
    kpis = an.calcular_kpis(df)
    estados = df["estado"].value_counts() if not df.empty else pd.Series(dtype=int)
    generos = df["genero"].value_counts() if not df.empty else pd.Series(dtype=int)

    filas: List[List[Any]] = [
        ["REPORTE ANALYTICS - SMART FIT CRM"],
        ["Regional EC1"],
        [""],
        ["Fecha de generación:", generado.strftime("%d/%m/%Y %H:%M:%S")],
        ["Período:", periodo_label],
        ["Sede filtrada:", sede or "Todas las sedes"],
        [""],
        ["=== MÉTRICAS PRINCIPALES ==="],
        ["Total de Registros:", kpis["total"]],
        ["Inscritos:", kpis["inscritos"]],
        ["Tasa de Conversión:", f"{kpis['conversion']}%"],
        ["Llamados Realizados:", kpis["llamados"]],
        [""],
        ["=== DISTRIBUCIÓN POR ESTADO ==="],
    ]
    for estado in config.ESTADOS_PRINCIPALES:
        filas.append([f"{estado}:", int(estados.get(estado, 0))])
    filas += [
        [""],
        ["=== DISTRIBUCIÓN POR GÉNERO ==="],
        ["Masculino:", int(generos.get("MASCULINO", 0))],
        ["Femenino:", int(generos.get("FEMENINO", 0))],
        [""],
        ["=== RESUMEN POR SEDE ==="],
        ["Sede", "Total", "Inscritos", "En Proceso", "Nuevo Lead", "No Interesado", "Llamados", "% Conversión"],
    ]
    for _, fila in an.resumen_por_sede(df).iterrows():
        filas.append([
            fila["Sede"], int(fila["Total"]), int(fila["Inscritos"]), int(fila["En Proceso"]),
            int(fila["Nuevo Lead"]), int(fila["No Interesado"]), int(fila["Llamados"]),
            f"{fila['% Conversión']}%",
        ])
    return filas


def fila_completa(r: Dict[str, Any]) -> Dict[str, str]:
    return {
        "Fecha": _texto(r.get("fecha_d")),
        "Sede": _texto(r.get("sede")),
        "Nombre": _texto(r.get("nombre")),
        "Documento": _texto(r.get("documento")),
        "Mayor de Edad": _texto(r.get("mayor_edad")),
        "Género": _texto(r.get("genero")),
        "Teléfono": _texto(r.get("telefono")),
        "Referencia": _texto(r.get("referencia")),
        "Autorización": _texto(r.get("autorizacion")),
        "Estado": _texto(r.get("estado")),
        "Observaciones": _texto(r.get("observaciones")),
        "Llamado": _si_no(r.get("llamado")),
    }


def fila_sede(r: Dict[str, Any]) -> Dict[str, str]:
    return {
        "Fecha": _texto(r.get("fecha_d")),
        "Nombre": _texto(r.get("nombre")),
        "Documento": _texto(r.get("documento")),
        "Género": _texto(r.get("genero")),
        "Teléfono": _texto(r.get("telefono")),
        "Referencia": _texto(r.get("referencia")),
        "Estado": _texto(r.get("estado")),
        "Observaciones": _texto(r.get("observaciones")),
        "Llamado": _si_no(r.get("llamado")),
    }


def excel_analytics(registros: List[Dict[str, Any]], periodo_label: str, sede: str = "",
                    generado: Optional[datetime] = None) -> bytes:
    """Resumen Ejecutivo + Datos Completos (+ una hoja por sede si no hay filtro de sede)."""
    if not registros:
        raise SinDatosError("No hay datos para exportar con los filtros aplicados")

    generado = generado or datetime.now()
    df = an.a_dataframe(registros)
    output = BytesIO()
    usados = {"resumen ejecutivo", "datos completos"}

    with pd.ExcelWriter(output, engine="xlsxwriter") as writer:
        resumen = pd.DataFrame(filas_resumen_ejecutivo(df, periodo_label, sede, generado))
        resumen.to_excel(writer, index=False, header=False, sheet_name="Resumen Ejecutivo")
        ws = writer.sheets["Resumen Ejecutivo"]
        ws.set_column(0, 0, 30)
        ws.set_column(1, 7, 15)

        datos = pd.DataFrame([fila_completa(r) for r in registros])
        datos.to_excel(writer, index=False, sheet_name="Datos Completos")
        _ajustar_columnas(writer.sheets["Datos Completos"], datos)

        if not sede:
            for nombre_sede, filas in _agrupar_por_sede(registros).items():
                hoja = nombre_hoja(nombre_sede, usados)
                pd.DataFrame([fila_sede(r) for r in filas]).to_excel(writer, index=False, sheet_name=hoja)

    logger.info("Excel analytics generado: %s registros", len(registros))
    return output.getvalue()


# =========================
# PDF ANALYTICS
# =========================
def _sin_datos(drawing: Drawing) -> Drawing:
    drawing.add(String(drawing.width / 2, drawing.height / 2, "Sin datos",
                       textAnchor="middle", fontSize=10, fillColor=colors.grey))
    return drawing


def _grafico_barras(etiquetas, series, colores, ancho, alto, apilado=False, valor_max=None) -> Drawing:
    d = Drawing(ancho, alto)
    if not etiquetas or not any(any(v for v in s) for s in series):
        return _sin_datos(d)
    bc = VerticalBarChart()
    bc.x, bc.y = 35, 45
    bc.width, bc.height = ancho - 50, alto - 60
    bc.data = [tuple(float(v) for v in s) for s in series]
    bc.categoryAxis.categoryNames = [str(e)[:18] for e in etiquetas]
    bc.categoryAxis.labels.angle = 30
    bc.categoryAxis.labels.boxAnchor = "ne"
    bc.categoryAxis.labels.fontSize = 7
    bc.valueAxis.valueMin = 0
    bc.valueAxis.labels.fontSize = 7
    if valor_max is not None:
        bc.valueAxis.valueMax = valor_max
    if apilado:
        bc.categoryAxis.style = "stacked"
    for i, color in enumerate(colores[:len(series)]):
        bc.bars[i].fillColor = colors.HexColor(color)
    d.add(bc)
    return d


def _grafico_tarta(etiquetas, valores, colores, ancho, alto) -> Drawing:
    d = Drawing(ancho, alto)
    if not valores or sum(valores) == 0:
        return _sin_datos(d)
    pie = Pie()
    lado = min(ancho, alto) - 50
    pie.x, pie.y = (ancho - lado) / 2, 20
    pie.width = pie.height = lado
    pie.data = [float(v) for v in valores]
    pie.labels = [f"{e} ({int(v)})" for e, v in zip(etiquetas, valores)]
    pie.slices.fontSize = 7
    for i in range(len(valores)):
        pie.slices[i].fillColor = colors.HexColor(colores[i % len(colores)])
    d.add(pie)
    return d


def _grafico_lineas(etiquetas, valores, ancho, alto) -> Drawing:
    d = Drawing(ancho, alto)
    if not valores:
        return _sin_datos(d)
    lc = HorizontalLineChart()
    lc.x, lc.y = 35, 45
    lc.width, lc.height = ancho - 50, alto - 60
    lc.data = [tuple(float(v) for v in valores)]
    lc.categoryAxis.categoryNames = [str(e) for e in etiquetas]
    lc.categoryAxis.labels.angle = 45
    lc.categoryAxis.labels.boxAnchor = "ne"
    lc.categoryAxis.labels.fontSize = 6
    lc.valueAxis.valueMin = 0
    lc.lines[0].strokeColor = colors.HexColor("#FFD700")
    lc.lines[0].strokeWidth = 2
    d.add(lc)
    return d


def _bloque(titulo: str, grafico, estilo) -> KeepTogether:
    return KeepTogether([Paragraph(titulo, estilo), Spacer(1, 2 * mm), grafico, Spacer(1, 6 * mm)])


def _tabla_kpis(kpis: Dict[str, Any]) -> Table:
    items = [
        ("Total Registros", kpis["total"], "#2196F3"),
        ("Inscritos", kpis["inscritos"], "#4CAF50"),
        ("Conversión", f"{kpis['conversion']}%", "#FF9800"),
        ("Llamados", kpis["llamados"], "#9C27B0"),
    ]
    valor_style = ParagraphStyle("kpi_valor", fontSize=18, leading=22, alignment=TA_CENTER,
                                 textColor=colors.white, fontName="Helvetica-Bold")
    label_style = ParagraphStyle("kpi_label", fontSize=8, alignment=TA_CENTER, textColor=colors.white)
    celdas = [[Paragraph(str(v), valor_style), Paragraph(label, label_style)] for label, v, _ in items]
    tabla = Table([celdas], colWidths=[45 * mm] * 4, rowHeights=[20 * mm])
    estilo = [("VALIGN", (0, 0), (-1, -1), "MIDDLE")]
    for i, (_, _, color) in enumerate(items):
        estilo.append(("BACKGROUND", (i, 0), (i, 0), colors.HexColor(color)))
    tabla.setStyle(TableStyle(estilo))
    return tabla


def _tabla_resumen_sedes(df: pd.DataFrame) -> Table:
    resumen = an.resumen_por_sede(df)
    datos = [["Sede", "Total", "Inscritos", "En Proceso", "% Conv"]]
    for _, fila in resumen.iterrows():
        datos.append([
            str(fila["Sede"])[:30], int(fila["Total"]), int(fila["Inscritos"]),
            int(fila["En Proceso"]), f"{fila['% Conversión']}%",
        ])
    tabla = Table(datos, colWidths=[65 * mm, 30 * mm, 30 * mm, 30 * mm, 25 * mm], repeatRows=1)
    tabla.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("LINEBELOW", (0, 0), (-1, 0), 0.5, colors.black),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F9FAFB")]),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    return tabla


def _portada(canvas, doc):
    ancho, alto = A4
    canvas.saveState()
    canvas.setFillColorRGB(1, 215 / 255, 0)
    canvas.rect(0, alto - 40 * mm, ancho, 40 * mm, stroke=0, fill=1)
    canvas.setFillColor(colors.black)
    canvas.setFont("Helvetica-Bold", 24)
    canvas.drawCentredString(ancho / 2, alto - 20 * mm, TITULO_REPORTE)
    canvas.setFont("Helvetica-Bold", 14)
    canvas.drawCentredString(ancho / 2, alto - 30 * mm, SUBTITULO_REPORTE)
    canvas.restoreState()


def pdf_analytics(registros: List[Dict[str, Any]], periodo_label: str, sede: str = "",
                  generado: Optional[datetime] = None) -> bytes:
    """PDF A4 con portada, KPIs, gráficos y resumen por sede."""
    if not registros:
        raise SinDatosError("No hay datos para exportar con los filtros aplicados")

    generado = generado or datetime.now()
    df = an.a_dataframe(registros)
    kpis = an.calcular_kpis(df)

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, leftMargin=15 * mm, rightMargin=15 * mm,
                            topMargin=20 * mm, bottomMargin=20 * mm,
                            title=TITULO_REPORTE)
    styles = getSampleStyleSheet()
    h2 = ParagraphStyle("seccion", parent=styles["Heading2"], fontSize=14)
    h3 = ParagraphStyle("grafico", parent=styles["Heading3"], fontSize=11)
    normal = styles["Normal"]

    ancho_total = A4[0] - 30 * mm
    mitad = ancho_total / 2 - 5 * mm

    elementos = [
        Spacer(1, 30 * mm),
        Paragraph(f"Fecha de generación: {generado.strftime('%d/%m/%Y %H:%M:%S')}", normal),
        Paragraph(f"Período: {escape(periodo_label)}", normal),
        Paragraph(f"Sede: {escape(sede or 'Todas las sedes')}", normal),
        Spacer(1, 10 * mm),
        Paragraph("MÉTRICAS PRINCIPALES", h2),
        _tabla_kpis(kpis),
        PageBreak(),
        Paragraph("GRÁFICOS Y ANÁLISIS", h2),
    ]

    tendencia = an.tendencia_por_fecha(df)
    elementos.append(_bloque("Tendencia de Registros por Día",
                             _grafico_lineas(list(tendencia.index), list(tendencia.values), ancho_total, 80 * mm), h3))

    top = an.top_sedes_inscritos(df)
    genero = an.distribucion(df, "genero")
    fila_graficos = Table([[
        [Paragraph("Top 5 Sedes", h3),
         _grafico_barras(list(top.index), [list(top.values)], ["#FFD700"], mitad, 70 * mm)],
        [Paragraph("Distribución por Género", h3),
         _grafico_tarta(list(genero.index), list(genero.values), COLORES_GENERO, mitad, 70 * mm)],
    ]], colWidths=[ancho_total / 2] * 2)
    elementos += [fila_graficos, PageBreak()]

    estados = an.estados_por_sede(df)
    elementos.append(_bloque(
        "Estados por Sede (Top 5)",
        _grafico_barras(list(estados.index), [list(estados[e]) for e in estados.columns],
                        [COLOR_ESTADOS[e] for e in estados.columns], ancho_total, 80 * mm, apilado=True),
        h3,
    ))

    referencias = an.distribucion(df, "referencia")
    autorizacion = an.distribucion(df, "autorizacion")
    elementos.append(Table([[
        [Paragraph("Tipos de Referencia", h3),
         _grafico_tarta(list(referencias.index), list(referencias.values), COLORES_REFERENCIA, mitad, 70 * mm)],
        [Paragraph("Autorización de Contacto", h3),
         _grafico_tarta(list(autorizacion.index), list(autorizacion.values), COLORES_AUTORIZACION, mitad, 70 * mm)],
    ]], colWidths=[ancho_total / 2] * 2))
    elementos.append(PageBreak())

    conversion = an.conversion_por_sede(df)
    elementos.append(_bloque(
        "Tasa de Conversión por Sede",
        _grafico_barras(list(conversion.index), [list(conversion.values)], ["#4CAF50"],
                        ancho_total, 80 * mm, valor_max=100),
        h3,
    ))
    semanal = an.registros_por_dia_semana(df)
    elementos.append(_bloque(
        "Registros por Día de la Semana",
        _grafico_barras(list(semanal.index), [list(semanal.values)], ["#2196F3"], ancho_total, 80 * mm),
        h3,
    ))

    elementos += [PageBreak(), Paragraph("RESUMEN POR SEDE", h2), _tabla_resumen_sedes(df)]

    doc.build(elementos, onFirstPage=_portada)
    logger.info("PDF analytics generado: %s registros", len(registros))
    return buffer.getvalue()
