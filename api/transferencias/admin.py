from django.contrib import admin
from .models import Transferencia, TransferenciaDetalle


class TransferenciaDetalleInline(admin.TabularInline):
    model = TransferenciaDetalle
    extra = 0
    readonly_fields = ('producto', 'cantidad', 'devuelto')
    can_delete = False


@admin.register(Transferencia)
class TransferenciaAdmin(admin.ModelAdmin):
    list_display = ('id', 'sucursal_origen', 'sucursal_destino', 'estado',
                    'usuario_solicita', 'fecha_solicitud', 'fecha_resolucion')
    list_filter = ('estado', 'sucursal_origen', 'sucursal_destino')
    search_fields = ('motivo', 'usuario_solicita__username')
    inlines = [TransferenciaDetalleInline]
    # Los cambios de estado mueven stock y pasan por la API
    readonly_fields = ('estado', 'usuario_aprueba', 'usuario_cancela', 'fecha_solicitud',
                       'fecha_resolucion', 'fecha_cancelacion', 'motivo_rechazo',
                       'motivo_cancelacion')
