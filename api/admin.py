from django.contrib import admin
from .models import Notificacion


@admin.register(Notificacion)
class NotificacionAdmin(admin.ModelAdmin):
    list_display = ('id', 'usuario', 'tipo', 'titulo',
                    'prioridad', 'leida', 'created_at')
    list_filter = ('tipo', 'prioridad', 'leida')
    search_fields = ('titulo', 'mensaje', 'usuario__username')
