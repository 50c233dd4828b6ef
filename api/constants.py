"""
Constantes del sistema de stock por sucursal.

Este módulo centraliza los textos y códigos que se comparten entre el
libro de stock, las transferencias y la integración con ventas.
"""


class NotificationCodes:
    """
    Códigos de notificaciones internas del sistema.

    Uso:
        from api.constants import NotificationCodes

        # En lugar de: 'transferencia_procesada'
        # Usar: NotificationCodes.TRANSFERENCIA_PROCESADA
    """

    TRANSFERENCIA_SOLICITADA = "transferencia_solicitada"
    TRANSFERENCIA_PROCESADA = "transferencia_procesada"
    TRANSFERENCIA_CANCELADA = "transferencia_cancelada"
    STOCK_BAJO = "stock_bajo"

    ALL_CODES = [
        TRANSFERENCIA_SOLICITADA,
        TRANSFERENCIA_PROCESADA,
        TRANSFERENCIA_CANCELADA,
        STOCK_BAJO,
    ]

    @classmethod
    def get_choices(cls):
        """
        Retorna las opciones para usar en Django choices.

        Returns:
            list: Lista de tuplas (valor, etiqueta) para usar en choices
        """
        return [
            (cls.TRANSFERENCIA_SOLICITADA, "Transferencia Solicitada"),
            (cls.TRANSFERENCIA_PROCESADA, "Transferencia Procesada"),
            (cls.TRANSFERENCIA_CANCELADA, "Transferencia Cancelada"),
            (cls.STOCK_BAJO, "Stock Bajo"),
        ]


class MotivosMovimiento:
    """Textos de motivo que se registran en el historial de movimientos."""

    STOCK_INICIAL = "Stock inicial del producto"
    INICIALIZACION = "Inicialización de stock de sucursal"
    AJUSTE_MANUAL = "Ajuste manual"
    ACTUALIZACION_MANUAL = "Actualización manual de stock"

    VENTA = "Venta"
    EDICION_VENTA = "Edición de venta"
    CANCELACION_VENTA = "Cancelación de venta"
    DEVOLUCION_VENTA = "Devolución de venta"
    VENTA_ELIMINADA = "Venta eliminada"

    TRANSFERENCIA_SALIDA = "Transferencia a sucursal {sucursal}"
    TRANSFERENCIA_ENTRADA = "Transferencia desde sucursal {sucursal}"
    DEVOLUCION_TRANSFERENCIA_ENTRADA = "Devolución de transferencia desde {sucursal}"
    DEVOLUCION_TRANSFERENCIA_SALIDA = "Devolución de transferencia a {sucursal}"
    CANCELACION_TRANSFERENCIA_ENTRADA = "Cancelación de transferencia desde {sucursal}"
    CANCELACION_TRANSFERENCIA_SALIDA = "Cancelación de transferencia a {sucursal}"


class StockSettings:
    """Límites de validación para cantidades y textos de stock."""

    DECIMALES_CANTIDAD = 3
    MAX_DIGITOS_CANTIDAD = 14
    MAX_LONGITUD_MOTIVO = 255
