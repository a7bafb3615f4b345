"""Tests for guest registration, dashboard queries and analytics loading."""

from datetime import date

import pytest
from postgrest.exceptions import APIError

import config
from services.auth_service import SesionUsuario
from services.errors import DocumentoDuplicadoError, ValidacionError, VerificacionError
from services.invitados_service import (
    VER_LLAMADOS, VER_PENDIENTES, FiltrosDashboard, InvitadosService, PaginaResultado,
    contar_estados, filtrar_busqueda, get_invitados_service, rango_pagina,
)

HOY = date(2025, 3, 10)


def _datos(**extra):
    datos = {
        "sede": "CRM PLAZA FLORA", "nombre": "  Ana Pérez ", "documento": " 1001 ",
        "mayor_edad": "SI", "genero": "FEMENINO", "telefono": "3001112233", "barrio": "",
        "referencia": "Referido", "autorizacion": "SI", "estado": "Nuevo Lead",
        "fecha_contacto": None, "motivacion": "Salud", "observaciones": "",
    }
    datos.update(extra)
    return datos


class TestCrearInvitado:
    def test_inserts_clean_payload(self, supabase, sesion_maestro):
        service = get_invitados_service(supabase, sesion_maestro)
        service.crear_invitado(_datos(fecha_contacto=date(2025, 3, 12)), hoy=HOY)

        insert = supabase.ejecutadas_en(config.TABLE_NAME)[-1]
        ([filas],) = insert.args_de("insert")[0]
        assert filas["nombre"] == "Ana Pérez"
        assert filas["documento"] == "1001"
        assert filas["fecha_d"] == "2025-03-10"
        assert filas["fecha_contacto"] == "2025-03-12"
        assert filas["barrio"] is None
        assert filas["llamado"] is False

    def test_duplicate_document_is_rejected_without_insert(self, supabase, sesion_maestro):
        supabase.responder(config.TABLE_NAME, [{"nombre": "Ana Pérez"}])
        service = InvitadosService(supabase, sesion_maestro)

        with pytest.raises(DocumentoDuplicadoError) as exc:
            service.crear_invitado(_datos(), hoy=HOY)

        assert exc.value.mensaje == "Error: El documento 1001 ya está registrado a nombre de Ana Pérez."
        assert all(not q.args_de("insert") for q in supabase.queries)

    def test_duplicate_lookup_uses_base_table(self, supabase, sesion_maestro):
        InvitadosService(supabase, sesion_maestro).crear_invitado(_datos(), hoy=HOY)
        busqueda = supabase.executed[0]
        assert busqueda.tabla == config.TABLE_NAME
        assert busqueda.args_de("eq") == [("documento", "1001")]

    def test_lookup_failure_raises_verification_error(self, supabase, sesion_maestro):
        supabase.fallar(config.TABLE_NAME)
        with pytest.raises(VerificacionError) as exc:
            InvitadosService(supabase, sesion_maestro).crear_invitado(_datos(), hoy=HOY)
        assert exc.value.mensaje == "Ocurrió un error inesperado durante la verificación."
        assert all(not q.args_de("insert") for q in supabase.queries)

    def test_required_fields(self, supabase, sesion_maestro):
        with pytest.raises(ValidacionError):
            InvitadosService(supabase, sesion_maestro).crear_invitado(_datos(documento="  "), hoy=HOY)
        assert supabase.executed == []

    def test_locked_sede_is_forced(self, supabase, sesion_gerente):
        payload = InvitadosService(supabase, sesion_gerente).preparar_payload(
            _datos(sede="OTRA SEDE"), hoy=HOY
        )
        assert payload["sede"] == "CRM PLAZA FLORA"


class TestConsultas:
    def test_consultar_builds_filtered_paginated_query(self, supabase, sesion_maestro):
        supabase.responder(config.VIEW_NAME, [{"id": 1}], count=120)
        filtros = FiltrosDashboard(sede="SMART NORTE", desde=date(2025, 3, 1),
                                   hasta=date(2025, 3, 31), ver=VER_PENDIENTES)

        resultado = InvitadosService(supabase, sesion_maestro).consultar(filtros, pagina=2)

        query = supabase.ejecutadas_en(config.VIEW_NAME)[0]
        assert query.kwargs_de("select") == [{"count": "exact"}]
        assert query.args_de("order") == [("fecha_d",)]
        assert query.kwargs_de("order") == [{"desc": True}]
        assert ("sede", "SMART NORTE") in query.args_de("eq")
        assert ("llamado", False) in query.args_de("eq")
        assert query.args_de("gte") == [("fecha_d", "2025-03-01")]
        assert query.args_de("lte") == [("fecha_d", "2025-03-31")]
        assert query.args_de("range") == [(50, 99)]
        assert resultado.total == 120
        assert resultado.total_paginas == 3

    def test_gerente_only_sees_own_sede(self, supabase, sesion_gerente):
        InvitadosService(supabase, sesion_gerente).consultar(FiltrosDashboard(ver=VER_LLAMADOS))
        query = supabase.executed[0]
        assert ("sede", "CRM PLAZA FLORA") in query.args_de("eq")
        assert ("llamado", True) in query.args_de("eq")

    def test_maestro_without_filters_has_no_eq(self, supabase, sesion_maestro):
        InvitadosService(supabase, sesion_maestro).consultar_todos(FiltrosDashboard())
        query = supabase.executed[0]
        assert query.args_de("eq") == []
        assert query.args_de("range") == []

    def test_listar_sedes_sorted_distinct(self, supabase, sesion_maestro):
        supabase.responder(config.VIEW_NAME, [{"sede": "B"}, {"sede": "A"}, {"sede": "B"}, {"sede": None}])
        assert InvitadosService(supabase, sesion_maestro).listar_sedes() == ["A", "B"]


class TestModificaciones:
    def test_marcar_llamado(self, supabase, sesion_maestro):
        InvitadosService(supabase, sesion_maestro).marcar_llamado(7, 1)
        query = supabase.executed[0]
        assert query.args_de("update") == [({"llamado": True},)]
        assert query.args_de("eq") == [("id", 7)]

    def test_actualizar_invitado(self, supabase, sesion_maestro):
        InvitadosService(supabase, sesion_maestro).actualizar_invitado(7, "Inscrito", "300", "ok")
        assert supabase.executed[0].args_de("update") == [
            ({"estado": "Inscrito", "telefono": "300", "observaciones": "ok"},)
        ]

    def test_eliminar_falls_back_to_table(self, supabase, sesion_maestro):
        supabase.fallar(config.VIEW_NAME)
        supabase.responder(config.TABLE_NAME, [{"id": 7}])

        InvitadosService(supabase, sesion_maestro).eliminar_invitado(7)

        assert [q.tabla for q in supabase.executed] == [config.VIEW_NAME, config.TABLE_NAME]
        assert supabase.executed[-1].args_de("delete") == [()]

    def test_eliminar_propagates_table_error(self, supabase, sesion_maestro):
        supabase.fallar(config.VIEW_NAME)
        supabase.fallar(config.TABLE_NAME)
        with pytest.raises(APIError):
            InvitadosService(supabase, sesion_maestro).eliminar_invitado(7)


class TestCargarPeriodo:
    def test_periodo_sets_lower_bound(self, supabase, sesion_maestro):
        InvitadosService(supabase, sesion_maestro).cargar_periodo("30", "SMART NORTE", hoy=HOY)
        query = supabase.executed[0]
        assert query.args_de("gte") == [("fecha_d", "2025-02-08")]
        assert query.args_de("eq") == [("sede", "SMART NORTE")]

    def test_all_has_no_date_filter(self, supabase, sesion_maestro):
        InvitadosService(supabase, sesion_maestro).cargar_periodo("all", hoy=HOY)
        assert supabase.executed[0].args_de("gte") == []

    def test_view_error_falls_back_to_table(self, supabase, sesion_maestro, registros):
        supabase.fallar(config.VIEW_NAME)
        supabase.responder(config.TABLE_NAME, registros)
        datos = InvitadosService(supabase, sesion_maestro).cargar_periodo("7", hoy=HOY)
        assert datos == registros
        assert supabase.executed[-1].tabla == config.TABLE_NAME


class TestHelpers:
    def test_rango_pagina(self):
        assert rango_pagina(1) == (0, 49)
        assert rango_pagina(3) == (100, 149)
        assert rango_pagina(0) == (0, 49)

    def test_pagina_resultado_bounds(self):
        assert PaginaResultado(total=0).total_paginas == 0
        pagina = PaginaResultado(total=51, pagina=2)
        assert pagina.total_paginas == 2
        assert pagina.hay_anterior is True
        assert pagina.hay_siguiente is False

    def test_filtrar_busqueda(self, registros):
        assert [r["id"] for r in filtrar_busqueda(registros, "ANA")] == [1]
        assert [r["id"] for r in filtrar_busqueda(registros, "200")] == [3, 4]
        assert filtrar_busqueda(registros, "  ") == registros

    def test_contar_estados(self, registros):
        assert contar_estados(registros) == {"inscritos": 2, "no_interesados": 1}


class TestSedes:
    def test_locked_user_gets_own_sede_without_records(self, supabase, monkeypatch):
        monkeypatch.setattr(config, "SEDES", [])
        sesion = SesionUsuario("g@smartfit.com", "gerente", "SEDE NUEVA")
        assert InvitadosService(supabase, sesion).sedes_formulario() == ["SEDE NUEVA"]

    def test_locked_user_without_sede_gets_nothing(self, supabase):
        sesion = SesionUsuario("r@smartfit.com", "recepcionista", "")
        assert InvitadosService(supabase, sesion).sedes_formulario() == []

    def test_maestro_on_empty_store_gets_sheet_sedes(self, supabase, sesion_maestro, monkeypatch):
        monkeypatch.setattr(config, "SEDES", [])
        monkeypatch.setattr(config, "GOOGLE_SHEETS_CONFIG", {"CRM PLAZA FLORA": {}})
        assert InvitadosService(supabase, sesion_maestro).sedes_formulario() == ["CRM PLAZA FLORA"]

    def test_maestro_merges_stored_and_sheet_sedes(self, supabase, sesion_maestro, monkeypatch):
        monkeypatch.setattr(config, "SEDES", [])
        monkeypatch.setattr(config, "GOOGLE_SHEETS_CONFIG", {"CRM PLAZA FLORA": {}})
        supabase.responder(config.VIEW_NAME, [{"sede": "SMART NORTE"}, {"sede": "CRM PLAZA FLORA"}])
        assert InvitadosService(supabase, sesion_maestro).sedes_formulario() == ["CRM PLAZA FLORA", "SMART NORTE"]

    def test_configured_sedes_win(self, supabase, sesion_maestro, monkeypatch):
        monkeypatch.setattr(config, "SEDES", ["B", "A"])
        assert InvitadosService(supabase, sesion_maestro).sedes_formulario() == ["B", "A"]
        assert supabase.executed == []

    def test_store_error_still_offers_sheet_sedes(self, supabase, sesion_maestro, monkeypatch):
        monkeypatch.setattr(config, "SEDES", [])
        monkeypatch.setattr(config, "GOOGLE_SHEETS_CONFIG", {"CRM PLAZA FLORA": {}})
        supabase.fallar(config.VIEW_NAME)
        assert InvitadosService(supabase, sesion_maestro).sedes_formulario() == ["CRM PLAZA FLORA"]

    def test_listar_sedes_is_cached(self, supabase, sesion_maestro):
        supabase.responder(config.VIEW_NAME, [{"sede": "A"}])
        service = InvitadosService(supabase, sesion_maestro)
        assert service.listar_sedes() == ["A"]
        assert service.listar_sedes() == ["A"]
        assert len(supabase.ejecutadas_en(config.VIEW_NAME)) == 1

    def test_cache_is_per_user_sede(self, supabase, sesion_maestro, sesion_gerente):
        InvitadosService(supabase, sesion_maestro).listar_sedes()
        InvitadosService(supabase, sesion_gerente).listar_sedes()
        consultas = supabase.ejecutadas_en(config.VIEW_NAME)
        assert len(consultas) == 2
        assert consultas[1].args_de("eq") == [("sede", "CRM PLAZA FLORA")]

    def test_insert_refreshes_cached_sedes(self, supabase, sesion_maestro):
        service = InvitadosService(supabase, sesion_maestro)
        service.listar_sedes()
        service.crear_invitado(_datos(), hoy=HOY)
        service.listar_sedes()
        assert len(supabase.ejecutadas_en(config.VIEW_NAME)) == 2
