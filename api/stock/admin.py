from django.contrib import admin
from .models import StockSucursal, MovimientoStock


@admin.register(StockSucursal)
class StockSucursalAdmin(admin.ModelAdmin):
    list_display = ('sucursal', 'producto', 'cantidad',
                    'stock_minimo', 'ultima_actualizacion')
    list_filter = ('sucursal',)
    search_fields = ('producto__codigo', 'producto__nombre')
    # El saldo solo cambia a través de las operaciones de stock
    readonly_fields = ('cantidad', 'ultima_actualizacion', 'updated_by')


@admin.register(MovimientoStock)
class MovimientoStockAdmin(admin.ModelAdmin):
    list_display = ('fecha', 'sucursal', 'producto', 'tipo', 'cantidad',
                    'stock_anterior', 'stock_nuevo', 'referencia_tipo', 'referencia_id')
    list_filter = ('tipo', 'referencia_tipo', 'sucursal')
    search_fields = ('producto__codigo', 'motivo', 'referencia_id')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
