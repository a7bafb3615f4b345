"""Shared test fixtures: an in-memory stand-in for the Supabase client."""

from types import SimpleNamespace

import pytest
from postgrest.exceptions import APIError

from services.auth_service import SesionUsuario
from services.invitados_service import limpiar_cache_sedes


@pytest.fixture(autouse=True)
def _clear_sedes_cache():
    """Reset the cached sede list so queries from one test never leak into another."""
    limpiar_cache_sedes()
    yield
    limpiar_cache_sedes()


class FakeQuery:
    """Chainable query that records every builder call and returns canned data."""

    def __init__(self, client, tabla):
        self.client = client
        self.tabla = tabla
        self.calls = []

    def _record(self, nombre, *args, **kwargs):
        self.calls.append((nombre, args, kwargs))
        return self

    def select(self, *args, **kwargs):
        return self._record("select", *args, **kwargs)

    def insert(self, *args, **kwargs):
        return self._record("insert", *args, **kwargs)

    def update(self, *args, **kwargs):
        return self._record("update", *args, **kwargs)

    def delete(self, *args, **kwargs):
        return self._record("delete", *args, **kwargs)

    def eq(self, *args, **kwargs):
        return self._record("eq", *args, **kwargs)

    def gte(self, *args, **kwargs):
        return self._record("gte", *args, **kwargs)

    def lte(self, *args, **kwargs):
        return self._record("lte", *args, **kwargs)

    def order(self, *args, **kwargs):
        return self._record("order", *args, **kwargs)

    def range(self, *args, **kwargs):
        return self._record("range", *args, **kwargs)

    def execute(self):
        self.client.executed.append(self)
        error = self.client.errores.get(self.tabla)
        if error is not None:
            raise error
        data, count = self.client.respuestas.get(self.tabla, ([], None))
        return SimpleNamespace(data=data, count=count)

    def args_de(self, nombre):
        return [args for n, args, _ in self.calls if n == nombre]

    def kwargs_de(self, nombre):
        return [kwargs for n, _, kwargs in self.calls if n == nombre]


class FakeAuth:
    def __init__(self):
        self.user = None
        self.error = None
        self.calls = []

    def sign_in_with_password(self, credenciales):
        self.calls.append(("sign_in_with_password", credenciales))
        if self.error:
            raise self.error
        return SimpleNamespace(user=self.user)

    def sign_up(self, credenciales):
        self.calls.append(("sign_up", credenciales))
        if self.error:
            raise self.error
        return SimpleNamespace(user=self.user)

    def sign_out(self):
        self.calls.append(("sign_out",))
        if self.error:
            raise self.error

    def get_session(self):
        self.calls.append(("get_session",))
        if self.error:
            raise self.error
        if self.user is None:
            return None
        return SimpleNamespace(user=self.user)


class FakeSupabase:
    def __init__(self):
        self.queries = []
        self.executed = []
        self.respuestas = {}
        self.errores = {}
        self.auth = FakeAuth()

    def table(self, nombre):
        query = FakeQuery(self, nombre)
        self.queries.append(query)
        return query

    def responder(self, tabla, data, count=None):
        self.respuestas[tabla] = (data, count)

    def fallar(self, tabla, mensaje="permission denied"):
        self.errores[tabla] = APIError({"message": mensaje, "code": "42501"})

    def ejecutadas_en(self, tabla):
        return [q for q in self.executed if q.tabla == tabla]


def _usuario(email="user@smartfit.com", rol="maestro", sede=""):
    return SimpleNamespace(email=email, app_metadata={"rol": rol, "sede": sede})


@pytest.fixture
def usuario():
    """Factory for Supabase Auth users carrying rol/sede in app_metadata."""
    return _usuario


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def sesion_maestro():
    return SesionUsuario(email="maestro@smartfit.com", rol="maestro")


@pytest.fixture
def sesion_gerente():
    return SesionUsuario(email="gerente@smartfit.com", rol="gerente", sede="CRM PLAZA FLORA")


@pytest.fixture
def sesion_recepcionista():
    return SesionUsuario(email="recepcion@smartfit.com", rol="recepcionista", sede="CRM PLAZA FLORA")


@pytest.fixture
def registros():
    return [
        {"id": 1, "sede": "CRM PLAZA FLORA", "fecha_d": "2025-03-07", "nombre": "Ana Pérez",
         "mayor_edad": "SI", "documento": "1001", "genero": "FEMENINO", "telefono": "3001112233",
         "barrio": "Centro", "referencia": "Referido", "autorizacion": "SI", "estado": "Inscrito",
         "fecha_contacto": "2025-03-08", "motivacion": "Salud", "observaciones": "", "llamado": True},
        {"id": 2, "sede": "CRM PLAZA FLORA", "fecha_d": "2025-03-08", "nombre": "Luis Gómez",
         "mayor_edad": "SI", "documento": "1002", "genero": "MASCULINO", "telefono": "3004445566",
         "barrio": None, "referencia": "Redes sociales", "autorizacion": "NO", "estado": "No interesado",
         "fecha_contacto": None, "motivacion": "", "observaciones": "Precio", "llamado": False},
        {"id": 3, "sede": "SMART NORTE", "fecha_d": "2025-03-09", "nombre": "Marta Ruiz",
         "mayor_edad": "NO", "documento": "2001", "genero": "FEMENINO", "telefono": "",
         "barrio": "Norte", "referencia": "Visita directa", "autorizacion": "SI", "estado": "En proceso",
         "fecha_contacto": None, "motivacion": "", "observaciones": "", "llamado": False},
        {"id": 4, "sede": "SMART NORTE", "fecha_d": "2025-03-09", "nombre": "Jorge Díaz",
         "mayor_edad": "SI", "documento": "2002", "genero": None, "telefono": "3007778899",
         "barrio": "", "referencia": "Referido", "autorizacion": None, "estado": "Inscrito",
         "fecha_contacto": None, "motivacion": "", "observaciones": "", "llamado": None},
    ]
