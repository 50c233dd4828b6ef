from django.db import models
from django.conf import settings
from .constants import NotificationCodes


class Notificacion(models.Model):
    """
    Modelo para la bandeja de notificaciones internas de cada usuario.

    Atributos:
        usuario (ForeignKey): Usuario destinatario.
        tipo (CharField): Código de la notificación (ver NotificationCodes).
        titulo (CharField): Título corto de la notificación.
        mensaje (TextField): Texto de la notificación.
        prioridad (CharField): Prioridad (alta, media, baja).
        datos (JSONField): Datos de contexto (ids de transferencia, sucursal, producto, etc.).
        leida (BooleanField): Indica si el usuario ya la leyó.
        enviada_at (DateTimeField): Fecha y hora en que se envió por email (si corresponde).
        error_envio (TextField): Último error al enviar por email.
        created_at (DateTimeField): Campo de auditoría almacena la fecha y hora que fue creado el registro.
    """

    class Prioridad(models.TextChoices):
        ALTA = "alta", "Alta"
        MEDIA = "media", "Media"
        BAJA = "baja", "Baja"

    usuario = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notificaciones"
    )
    tipo = models.CharField(
        max_length=50, choices=NotificationCodes.get_choices(), help_text="Código de notificación.")
    titulo = models.CharField(max_length=150, help_text="Título.")
    mensaje = models.TextField(help_text="Mensaje.")
    prioridad = models.CharField(
        max_length=10, choices=Prioridad.choices, default=Prioridad.MEDIA)
    datos = models.JSONField(default=dict, blank=True)
    leida = models.BooleanField(default=False)
    enviada_at = models.DateTimeField(null=True, blank=True)
    error_envio = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Notificación"
        verbose_name_plural = "Notificaciones"
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['usuario', 'leida'],
                         name='idx_notif_usuario_leida'),
            models.Index(fields=['tipo'], name='idx_notif_tipo'),
        ]

    def __str__(self):
        return f"[{self.get_prioridad_display()}] {self.titulo} -> {self.usuario_id}"
