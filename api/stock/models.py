from django.db import models
from django.conf import settings
from django.core import exceptions
from decimal import Decimal
from api.productos.models import Producto
from api.sucursales.models import Sucursal


def _stock_minimo_por_defecto():
    return Decimal(settings.STOCK_MINIMO_POR_DEFECTO)


class StockSucursal(models.Model):
    """
    Saldo autoritativo de un producto en una sucursal.

    Solo se modifica a través de las operaciones de `api.stock.services`,
    que bloquean la fila y registran el movimiento correspondiente en la
    misma transacción. Nunca se elimina: una sucursal sin stock conserva
    su registro con cantidad 0.

    Atributos:
        producto (ForeignKey): Identificador del producto.
        sucursal (ForeignKey): Identificador de la sucursal.
        cantidad (DecimalField): Cantidad disponible (nunca negativa).
        stock_minimo (DecimalField): Punto de reposición.
        ultima_actualizacion (DateTimeField): Fecha y hora del último cambio.
        created_at (DateTimeField): Campo de auditoría almacena la fecha y hora que fue creado el registro.
        updated_by (ForeignKey): Referencia al usuario que hizo el último cambio.
    """
    producto = models.ForeignKey(
        Producto, on_delete=models.PROTECT, related_name="stock_sucursales",
        help_text='Identificador del Producto.')
    sucursal = models.ForeignKey(
        Sucursal, on_delete=models.PROTECT, related_name="stock",
        help_text='Identificador de la Sucursal.')
    cantidad = models.DecimalField(
        max_digits=14, decimal_places=3, default=Decimal("0"),
        help_text='Cantidad disponible.')
    stock_minimo = models.DecimalField(
        max_digits=14, decimal_places=3, default=_stock_minimo_por_defecto,
        help_text='Stock mínimo antes de reponer.')

    ultima_actualizacion = models.DateTimeField(auto_now=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL, null=True, blank=True,
        related_name="stock_sucursal_updated"
    )

    class Meta:
        verbose_name = "Stock por sucursal"
        verbose_name_plural = "Stock por sucursales"
        ordering = ['sucursal', 'producto']
        constraints = [
            models.UniqueConstraint(
                fields=['producto', 'sucursal'], name='uq_stock_producto_sucursal'),
            models.CheckConstraint(
                condition=models.Q(cantidad__gte=0), name='ck_stock_cantidad_no_neg'),
            models.CheckConstraint(
                condition=models.Q(stock_minimo__gte=0), name='ck_stock_minimo_no_neg'),
        ]
        indexes = [
            models.Index(fields=['sucursal'], name='idx_stock_sucursal'),
            models.Index(fields=['producto'], name='idx_stock_producto'),
        ]

    def __str__(self):
        return f"{self.producto_id}@{self.sucursal_id}: {self.cantidad}"

    @property
    def diferencia(self) -> Decimal:
        """Unidades que faltan para llegar al stock mínimo (negativo si sobra)."""
        return self.stock_minimo - self.cantidad

    @property
    def es_stock_bajo(self) -> bool:
        return self.cantidad <= self.stock_minimo


class MovimientoStockQuerySet(models.QuerySet):
    """QuerySet de solo inserción: el historial no admite updates ni deletes."""

    def update(self, **kwargs):
        raise exceptions.ValidationError(
            "Los movimientos de stock son inmutables.")

    def delete(self):
        raise exceptions.ValidationError(
            "Los movimientos de stock no pueden eliminarse.")


class MovimientoStock(models.Model):
    """
    Registro inmutable de un cambio de stock.

    Se crea exactamente uno por cada modificación del saldo, en la misma
    transacción que actualiza `StockSucursal`. Cumple
    stock_nuevo = stock_anterior + cantidad (entrada) o
    stock_nuevo = stock_anterior - cantidad (salida).

    Atributos:
        sucursal (ForeignKey): Sucursal afectada.
        producto (ForeignKey): Producto afectado.
        tipo (CharField): entrada o salida.
        cantidad (DecimalField): Cantidad movida (siempre positiva).
        stock_anterior (DecimalField): Saldo antes del movimiento.
        stock_nuevo (DecimalField): Saldo después del movimiento.
        motivo (CharField): Motivo del movimiento.
        referencia_tipo (CharField): Operación que lo originó (venta, transferencia, ajuste, inicializacion).
        referencia_id (CharField): Identificador de la operación que lo originó.
        fecha (DateTimeField): Fecha y hora del movimiento.
        usuario (ForeignKey): Usuario que ejecutó la operación.
    """
    class Tipo(models.TextChoices):
        ENTRADA = "entrada", "Entrada"
        SALIDA = "salida", "Salida"

    class ReferenciaTipo(models.TextChoices):
        VENTA = "venta", "Venta"
        TRANSFERENCIA = "transferencia", "Transferencia"
        AJUSTE = "ajuste", "Ajuste"
        INICIALIZACION = "inicializacion", "Inicialización"

    sucursal = models.ForeignKey(
        Sucursal, on_delete=models.PROTECT, related_name="movimientos_stock")
    producto = models.ForeignKey(
        Producto, on_delete=models.PROTECT, related_name="movimientos_stock")
    tipo = models.CharField(max_length=10, choices=Tipo.choices)
    cantidad = models.DecimalField(max_digits=14, decimal_places=3)
    stock_anterior = models.DecimalField(max_digits=14, decimal_places=3)
    stock_nuevo = models.DecimalField(max_digits=14, decimal_places=3)
    motivo = models.CharField(max_length=255, blank=True, default="")
    referencia_tipo = models.CharField(
        max_length=20, choices=ReferenciaTipo.choices)
    referencia_id = models.CharField(max_length=64, null=True, blank=True)
    fecha = models.DateTimeField(auto_now_add=True)
    usuario = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL, null=True, blank=True,
        related_name="movimientos_stock"
    )

    objects = MovimientoStockQuerySet.as_manager()

    class Meta:
        verbose_name = "Movimiento de stock"
        verbose_name_plural = "Movimientos de stock"
        ordering = ['-fecha', '-id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(cantidad__gt=0), name='ck_mov_cantidad_pos'),
            models.CheckConstraint(
                condition=models.Q(stock_nuevo__gte=0), name='ck_mov_stock_nuevo_no_neg'),
        ]
        indexes = [
            models.Index(fields=['sucursal', '-fecha'],
                         name='idx_mov_sucursal_fecha'),
            models.Index(fields=['producto', '-fecha'],
                         name='idx_mov_producto_fecha'),
            models.Index(fields=['sucursal', 'producto', 'fecha'],
                         name='idx_mov_suc_prod_fecha'),
            models.Index(fields=['referencia_tipo', 'referencia_id'],
                         name='idx_mov_referencia'),
        ]

    def __str__(self):
        return (f"{self.get_tipo_display()} {self.cantidad} de {self.producto_id} "
                f"en {self.sucursal_id} ({self.stock_anterior} -> {self.stock_nuevo})")

    def clean(self):
        if self.cantidad is None or self.cantidad <= 0:
            raise exceptions.ValidationError(
                "La cantidad del movimiento debe ser mayor a 0.")
        esperado = (self.stock_anterior + self.cantidad
                    if self.tipo == self.Tipo.ENTRADA
                    else self.stock_anterior - self.cantidad)
        if esperado != self.stock_nuevo:
            raise exceptions.ValidationError(
                "El saldo nuevo no coincide con el saldo anterior y la cantidad del movimiento.")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise exceptions.ValidationError(
                "Los movimientos de stock son inmutables.")
        self.clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise exceptions.ValidationError(
            "Los movimientos de stock no pueden eliminarse.")

    @property
    def delta(self):
        """Cambio con signo que produjo el movimiento sobre el saldo."""
        return self.cantidad if self.tipo == self.Tipo.ENTRADA else -self.cantidad
