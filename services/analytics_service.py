"""
Agregaciones de la página de analytics.
Funciones puras sobre un DataFrame de invitados; las usan los gráficos
plotly, el Excel y el PDF.
"""

from typing import Any, Dict, List

import pandas as pd

import config

COLUMNAS = [
    "id", "sede", "fecha_d", "nombre", "mayor_edad", "documento", "genero",
    "telefono", "barrio", "referencia", "autorizacion", "estado",
    "fecha_contacto", "motivacion", "observaciones", "llamado",
]

DIAS_SEMANA = ["Domingo", "Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado"]

PERIODOS = {
    "7": "Últimos 7 días",
    "30": "Últimos 30 días",
    "90": "Últimos 90 días",
    "365": "Último año",
    "all": "Todo el historial",
}
PERIODO_DEFECTO = "30"


def a_dataframe(registros: List[Dict[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame(registros or [])
    for col in COLUMNAS:
        if col not in df.columns:
            df[col] = None
    if not df.empty:
        df["llamado"] = df["llamado"].fillna(False).astype(bool)
    return df


def porcentaje(parte: int, total: int) -> float:
    return round(parte / total * 100, 1) if total > 0 else 0


def _rellenar(serie: pd.Series, vacio: str) -> pd.Series:
    return serie.fillna("").astype(str).replace("", vacio)


def calcular_kpis(df: pd.DataFrame) -> Dict[str, Any]:
    total = len(df)
    inscritos = int((df["estado"] == "Inscrito").sum()) if total else 0
    llamados = int(df["llamado"].sum()) if total else 0
    return {
        "total": total,
        "inscritos": inscritos,
        "conversion": porcentaje(inscritos, total),
        "llamados": llamados,
    }


def tendencia_por_fecha(df: pd.DataFrame) -> pd.Series:
    if df.empty:
        return pd.Series(dtype=int)
    fechas = _rellenar(df["fecha_d"], "Sin fecha")
    return fechas.value_counts().sort_index()


def top_sedes_inscritos(df: pd.DataFrame, n: int = 5) -> pd.Series:
    if df.empty:
        return pd.Series(dtype=int)
    inscritos = df[df["estado"] == "Inscrito"]
    sedes = _rellenar(inscritos["sede"], "Sin sede")
    return sedes.value_counts().sort_values(ascending=False, kind="stable").head(n)


def distribucion(df: pd.DataFrame, columna: str, vacio: str = "Sin especificar") -> pd.Series:
    """Conteo por valor, en orden de primera aparición."""
    if df.empty:
        return pd.Series(dtype=int)
    valores = _rellenar(df[columna], vacio)
    return valores.value_counts(sort=False)


def estados_por_sede(df: pd.DataFrame, n: int = 5) -> pd.DataFrame:
    """Top n sedes por total de registros x estados principales."""
    if df.empty:
        return pd.DataFrame(columns=config.ESTADOS_PRINCIPALES)
    sedes = _rellenar(df["sede"], "Sin sede")
    top = sedes.value_counts().sort_values(ascending=False, kind="stable").head(n).index.tolist()
    tabla = pd.crosstab(sedes, df["estado"].fillna(""))
    tabla = tabla.reindex(index=top, columns=config.ESTADOS_PRINCIPALES, fill_value=0)
    return tabla.astype(int)


def resumen_por_sede(df: pd.DataFrame) -> pd.DataFrame:
    columnas = ["Sede", "Total", "Inscritos", "En Proceso", "Nuevo Lead",
                "No Interesado", "Llamados", "% Conversión"]
    if df.empty:
        return pd.DataFrame(columns=columnas)

    filas = []
    sedes = _rellenar(df["sede"], "Sin sede")
    for sede, grupo in df.groupby(sedes, sort=False):
        total = len(grupo)
        inscritos = int((grupo["estado"] == "Inscrito").sum())
        filas.append({
            "Sede": sede,
            "Total": total,
            "Inscritos": inscritos,
            "En Proceso": int((grupo["estado"] == "En proceso").sum()),
            "Nuevo Lead": int((grupo["estado"] == "Nuevo Lead").sum()),
            "No Interesado": int((grupo["estado"] == "No interesado").sum()),
            "Llamados": int(grupo["llamado"].sum()),
            "% Conversión": porcentaje(inscritos, total),
        })
    return pd.DataFrame(filas, columns=columnas)


def conversion_por_sede(df: pd.DataFrame) -> pd.Series:
    resumen = resumen_por_sede(df)
    if resumen.empty:
        return pd.Series(dtype=float)
    serie = resumen.set_index("Sede")["% Conversión"]
    return serie.sort_values(ascending=False, kind="stable")


def registros_por_dia_semana(df: pd.DataFrame) -> pd.Series:
    conteo = [0] * 7
    if not df.empty:
        fechas = pd.to_datetime(df["fecha_d"], errors="coerce").dropna()
        # pandas: lunes=0; la semana del gráfico empieza en domingo
        for dia in fechas.dt.dayofweek:
            conteo[(int(dia) + 1) % 7] += 1
    return pd.Series(conteo, index=DIAS_SEMANA)
