from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator
from decimal import Decimal


def _stock_minimo_por_defecto():
    return Decimal(settings.STOCK_MINIMO_POR_DEFECTO)


class Producto(models.Model):
    """
    Catálogo mínimo de productos que consume el stock por sucursal.

    Solo se usa para validar la existencia del producto y tomar los valores
    por defecto al crear su stock en una sucursal.

    Atributos:
        codigo (CharField): Código único del producto.
        nombre (CharField): Nombre del producto.
        stock_inicial (DecimalField): Stock con el que nace el producto en una sucursal que todavía no lo tiene.
        stock_minimo (DecimalField): Punto de reposición por defecto.
        activo (BooleanField): Indica si el producto está disponible.
        updated_at (DateTimeField): Campo de auditoría almacena la fecha y hora que fue modificado el registro.
        created_at (DateTimeField): Campo de auditoría almacena la fecha y hora que fue creado el registro.
        updated_by (ForeignKey): Referencia al usuario que actualizo el registro.
        created_by (ForeignKey): Referencia al usuario que creó el registro.
    """
    codigo = models.CharField(
        max_length=50, unique=True, help_text="Código del producto.")
    nombre = models.CharField(max_length=200, help_text="Nombre del producto.")
    stock_inicial = models.DecimalField(
        max_digits=14, decimal_places=3, default=Decimal("0"),
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Stock inicial al crear la entrada de una sucursal.")
    stock_minimo = models.DecimalField(
        max_digits=14, decimal_places=3, default=_stock_minimo_por_defecto,
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Stock mínimo por defecto.")
    activo = models.BooleanField(default=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL, null=True, blank=True,
        related_name="productos_created"
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL, null=True, blank=True,
        related_name="productos_updated"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Producto"
        verbose_name_plural = "Productos"
        ordering = ['nombre']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock_inicial__gte=0), name='ck_producto_stock_inicial_no_neg'),
        ]
        indexes = [
            models.Index(fields=['codigo'], name='idx_producto_codigo'),
        ]

    def __str__(self):
        return f"{self.codigo} - {self.nombre}"
