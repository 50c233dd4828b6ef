from django.db import models
from django.conf import settings


class Sucursal(models.Model):
    """
    Modelo para representar las sucursales que mantienen su propio stock.

    Atributos:
        nombre (CharField): Nombre por el cual se reconoce a la sucursal.
        tipo (CharField): Tipo de sucursal (principal, sucursal, depósito).
        direccion (CharField): Calle y altura.
        ciudad (CharField): Ciudad en donde está ubicada.
        telefono (CharField): Teléfono de contacto.
        activa (BooleanField): Una sucursal inactiva no puede intervenir en nuevas transferencias.
        updated_at (DateTimeField): Campo de auditoría almacena la fecha y hora que fue modificado el registro.
        created_at (DateTimeField): Campo de auditoría almacena la fecha y hora que fue creado el registro.
        updated_by (ForeignKey): Referencia al usuario que actualizo el registro.
        created_by (ForeignKey): Referencia al usuario que creó el registro.
    """

    class Tipo(models.TextChoices):
        PRINCIPAL = "principal", "Casa central"
        SUCURSAL = "sucursal", "Sucursal"
        DEPOSITO = "deposito", "Depósito"

    nombre = models.CharField(
        max_length=180, help_text='Nombre de la sucursal.')
    tipo = models.CharField(
        max_length=20, choices=Tipo.choices, default=Tipo.SUCURSAL)
    direccion = models.CharField(
        max_length=255, blank=True, default="", help_text='Calle y altura.')
    ciudad = models.CharField(max_length=120, blank=True, default="")
    telefono = models.CharField(max_length=40, blank=True, default="")
    activa = models.BooleanField(default=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL, null=True, blank=True,
        related_name="sucursales_created"
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL, null=True, blank=True,
        related_name="sucursales_updated"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Sucursal"
        verbose_name_plural = "Sucursales"
        ordering = ['nombre']
        constraints = [
            models.UniqueConstraint(fields=['nombre'], name='uq_sucursal_nombre'),
        ]
        indexes = [
            models.Index(fields=['activa'], name='idx_sucursal_activa'),
        ]

    def __str__(self):
        return f"{self.nombre} [{self.get_tipo_display()}]"
