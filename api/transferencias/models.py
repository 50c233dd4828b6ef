from django.db import models
from django.conf import settings
from decimal import Decimal
from api.productos.models import Producto
from api.sucursales.models import Sucursal


class Transferencia(models.Model):
    """
    Solicitud de traslado de stock entre dos sucursales.

    Estados: pendiente -> aprobada | rechazada; aprobada -> cancelada.
    Las devoluciones parciales no cambian el estado.

    Atributos:
        sucursal_origen (ForeignKey): Sucursal que entrega el stock.
        sucursal_destino (ForeignKey): Sucursal que recibe el stock.
        estado (CharField): Estado de la transferencia.
        motivo (TextField): Motivo de la solicitud.
        usuario_solicita (ForeignKey): Usuario que solicitó la transferencia.
        usuario_aprueba (ForeignKey): Usuario que aprobó o rechazó la transferencia.
        motivo_rechazo (TextField): Motivo del rechazo (si corresponde).
        motivo_cancelacion (TextField): Motivo de la cancelación (si corresponde).
        usuario_cancela (ForeignKey): Usuario que canceló la transferencia.
        fecha_solicitud (DateTimeField): Fecha y hora de la solicitud.
        fecha_resolucion (DateTimeField): Fecha y hora de aprobación o rechazo.
        fecha_cancelacion (DateTimeField): Fecha y hora de la cancelación.
        updated_at (DateTimeField): Campo de auditoría almacena la fecha y hora que fue modificado el registro.
    """

    class Estado(models.TextChoices):
        PENDIENTE = "pendiente", "Pendiente"
        APROBADA = "aprobada", "Aprobada"
        RECHAZADA = "rechazada", "Rechazada"
        CANCELADA = "cancelada", "Cancelada"

    sucursal_origen = models.ForeignKey(
        Sucursal, on_delete=models.PROTECT, related_name="transferencias_enviadas")
    sucursal_destino = models.ForeignKey(
        Sucursal, on_delete=models.PROTECT, related_name="transferencias_recibidas")
    estado = models.CharField(
        max_length=20, choices=Estado.choices, default=Estado.PENDIENTE)
    motivo = models.TextField(blank=True, default="")

    usuario_solicita = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="transferencias_solicitadas"
    )
    usuario_aprueba = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL, null=True, blank=True,
        related_name="transferencias_resueltas"
    )
    motivo_rechazo = models.TextField(null=True, blank=True)
    motivo_cancelacion = models.TextField(null=True, blank=True)
    usuario_cancela = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL, null=True, blank=True,
        related_name="transferencias_canceladas"
    )

    fecha_solicitud = models.DateTimeField(auto_now_add=True)
    fecha_resolucion = models.DateTimeField(null=True, blank=True)
    fecha_cancelacion = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Transferencia"
        verbose_name_plural = "Transferencias"
        ordering = ['-fecha_solicitud', '-id']
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(sucursal_origen=models.F("sucursal_destino")),
                name='ck_transf_sucursales_distintas'),
        ]
        indexes = [
            models.Index(fields=['estado'], name='idx_transf_estado'),
            models.Index(fields=['sucursal_origen', 'estado'],
                         name='idx_transf_origen_estado'),
            models.Index(fields=['sucursal_destino', 'estado'],
                         name='idx_transf_destino_estado'),
        ]

    def __str__(self):
        return f"Transferencia #{self.pk} {self.sucursal_origen_id} -> {self.sucursal_destino_id} ({self.estado})"

    @property
    def devueltos(self) -> dict:
        """Cantidad devuelta acumulada por producto: {producto_id: devuelto}."""
        return {detalle.producto_id: detalle.devuelto for detalle in self.productos.all()}

    @property
    def completamente_devuelta(self) -> bool:
        """True si todas las líneas fueron devueltas por completo (dato informativo)."""
        detalles = list(self.productos.all())
        return bool(detalles) and all(d.pendiente_devolucion == 0 for d in detalles)


class TransferenciaDetalle(models.Model):
    """
    Línea de producto de una transferencia.

    Atributos:
        transferencia (ForeignKey): Transferencia a la que pertenece.
        producto (ForeignKey): Producto transferido.
        cantidad (DecimalField): Cantidad transferida.
        devuelto (DecimalField): Cantidad devuelta acumulada (nunca mayor a cantidad).
    """
    transferencia = models.ForeignKey(
        Transferencia, on_delete=models.CASCADE, related_name="productos")
    producto = models.ForeignKey(
        Producto, on_delete=models.PROTECT, related_name="transferencias")
    cantidad = models.DecimalField(max_digits=14, decimal_places=3)
    devuelto = models.DecimalField(
        max_digits=14, decimal_places=3, default=Decimal("0"))

    class Meta:
        verbose_name = "Detalle de transferencia"
        verbose_name_plural = "Detalles de transferencia"
        ordering = ['transferencia', 'producto']
        constraints = [
            models.UniqueConstraint(
                fields=['transferencia', 'producto'], name='uq_transf_detalle_producto'),
            models.CheckConstraint(
                condition=models.Q(cantidad__gt=0), name='ck_transf_detalle_cantidad_pos'),
            models.CheckConstraint(
                condition=models.Q(devuelto__gte=0) & models.Q(
                    devuelto__lte=models.F("cantidad")),
                name='ck_transf_detalle_devuelto_rango'),
        ]

    def __str__(self):
        return f"{self.producto_id} x {self.cantidad} (devuelto {self.devuelto})"

    @property
    def pendiente_devolucion(self) -> Decimal:
        return self.cantidad - self.devuelto
