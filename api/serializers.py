from rest_framework import serializers
from .models import Notificacion


class NotificacionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notificacion
        fields = ['id', 'tipo', 'titulo', 'mensaje', 'prioridad',
                  'datos', 'leida', 'enviada_at', 'created_at']
        read_only_fields = fields
