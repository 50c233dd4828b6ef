from django.contrib.auth.models import AbstractUser
from django.db import models


class CustomUser(AbstractUser):
    """
    Usuario del sistema con rol operativo.

    Atributos:
        rol (CharField): Rol del usuario (administrador, encargado, vendedor).
    """

    class Rol(models.TextChoices):
        ADMINISTRADOR = "administrador", "Administrador"
        ENCARGADO = "encargado", "Encargado de sucursal"
        VENDEDOR = "vendedor", "Vendedor"

    rol = models.CharField(
        max_length=20, choices=Rol.choices, default=Rol.VENDEDOR,
        help_text="Rol operativo del usuario.")

    def save(self, *args, **kwargs):
        self.username = self.username.lower()
        self.email = self.email.lower()
        super().save(*args, **kwargs)

    @property
    def es_administrador(self) -> bool:
        return self.is_superuser or self.rol == self.Rol.ADMINISTRADOR

    def full_name(self):
        if not self.first_name and not self.last_name:
            return "N/A"
        return f"{self.first_name} {self.last_name}".title()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["username"], name="uq_customuser_username"),
        ]
        indexes = [
            models.Index(fields=["email"], name="idx_customuser_email"),
            models.Index(fields=["rol"], name="idx_customuser_rol"),
        ]
