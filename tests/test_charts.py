"""Tests for the plotly figures of the analytics page."""

from components import charts
from services import analytics_service as an


class TestCharts:
    def test_estados_por_sede_is_stacked(self, registros):
        fig = charts.estados_por_sede(an.estados_por_sede(an.a_dataframe(registros)))
        assert fig.layout.barmode == "stack"
        assert [t.name for t in fig.data] == ["Inscrito", "En proceso", "Nuevo Lead", "No interesado"]

    def test_conversion_axis_is_percentage(self, registros):
        fig = charts.conversion(an.conversion_por_sede(an.a_dataframe(registros)))
        assert tuple(fig.layout.yaxis.range) == (0, 100)

    def test_semanal_has_seven_days(self, registros):
        fig = charts.semanal(an.registros_por_dia_semana(an.a_dataframe(registros)))
        assert list(fig.data[0].x) == an.DIAS_SEMANA

    def test_empty_data_still_builds_figures(self):
        df = an.a_dataframe([])
        assert charts.tendencia(an.tendencia_por_fecha(df)).layout.title.text == "Tendencia de Registros por Día"
        assert len(charts.estados_por_sede(an.estados_por_sede(df)).data) == 4
