"""
Excepciones del CRM.
Los servicios las lanzan y las vistas las muestran con st.error / st.warning.
"""


class CRMError(Exception):
    """Error base con mensaje listo para mostrar al usuario."""

    def __init__(self, mensaje: str):
        super().__init__(mensaje)
        self.mensaje = mensaje


class AuthError(CRMError):
    pass


class ValidacionError(CRMError):
    pass


class DocumentoDuplicadoError(CRMError):
    def __init__(self, documento: str, nombre: str):
        super().__init__(
            f"Error: El documento {documento} ya está registrado a nombre de {nombre}."
        )
        self.documento = documento
        self.nombre = nombre


class SinDatosError(CRMError):
    def __init__(self, mensaje: str = "No hay datos para exportar"):
        super().__init__(mensaje)


class SheetNoConfiguradoError(CRMError):
    def __init__(self, sede: str):
        super().__init__(
            f"No hay Google Sheet configurado para tu sede: {sede or '(vacía)'}"
        )
        self.sede = sede


class VerificacionError(CRMError):
    def __init__(self, mensaje: str = "Ocurrió un error inesperado durante la verificación."):
        super().__init__(mensaje)
