from django.apps import AppConfig


class ApiConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'api'
    verbose_name = 'API Sucursales'

    def ready(self):
        # Registra los receivers de eventos de stock y transferencias
        from . import signals  # noqa: F401
