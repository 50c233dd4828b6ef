"""
Errores tipados del stock por sucursal y de las transferencias.

Todos derivan de `django.core.exceptions.ValidationError`, de modo que los
llamadores que ya capturan ValidationError siguen funcionando, y exponen
`error_type`, `status_code` y `datos` para armar la respuesta de la API.
"""
from django.core import exceptions
from rest_framework import status


class StockError(exceptions.ValidationError):
    """Base de los errores de dominio del stock."""

    error_type = "stock_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, **datos):
        super().__init__(message, code=self.error_type)
        self.datos = datos

    def __str__(self):
        return self.message


class InvalidQuantity(StockError):
    """Cantidad negativa, cero o fuera de rango."""

    error_type = "invalid_quantity"


class InsufficientStock(StockError):
    """
    La operación dejaría el saldo de una sucursal en negativo.

    Atributos:
        sucursal_id (int): Sucursal sin stock suficiente.
        producto_id (int): Producto sin stock suficiente.
        disponible (Decimal): Saldo actual.
        solicitado (Decimal): Cantidad que se intentó descontar.
        linea (int | None): Índice de la línea que falló en operaciones de varias líneas.
    """

    error_type = "insufficient_stock"

    def __init__(self, message, sucursal_id, producto_id, disponible, solicitado, linea=None):
        super().__init__(
            message,
            sucursal_id=sucursal_id,
            producto_id=producto_id,
            disponible=str(disponible),
            solicitado=str(solicitado),
            linea=linea,
        )
        self.sucursal_id = sucursal_id
        self.producto_id = producto_id
        self.disponible = disponible
        self.solicitado = solicitado
        self.linea = linea

    def en_linea(self, linea: int) -> "InsufficientStock":
        """Registra el índice de la línea que provocó el error."""
        self.linea = linea
        self.datos["linea"] = linea
        return self


class SameBranch(StockError):
    """La sucursal de origen y la de destino son la misma."""

    error_type = "same_branch"


class InvalidTransition(StockError):
    """La acción no es válida para el estado actual de la transferencia."""

    error_type = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message, estado_actual=None, estado_solicitado=None):
        super().__init__(
            message, estado_actual=estado_actual, estado_solicitado=estado_solicitado)
        self.estado_actual = estado_actual
        self.estado_solicitado = estado_solicitado


class NotFound(StockError):
    """Referencia a una transferencia, sucursal o producto inexistente."""

    error_type = "not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message, recurso=None, recurso_id=None):
        super().__init__(message, recurso=recurso, recurso_id=recurso_id)
        self.recurso = recurso
        self.recurso_id = recurso_id


class ConcurrentModification(StockError):
    """
    La base de datos rechazó la operación por contención de bloqueos.

    Es el único error que el llamador puede reintentar automáticamente.
    """

    error_type = "concurrent_modification"
    status_code = status.HTTP_409_CONFLICT
