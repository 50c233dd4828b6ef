from django.contrib import admin
from .models import Sucursal


@admin.register(Sucursal)
class SucursalAdmin(admin.ModelAdmin):
    list_display = ('id', 'nombre', 'tipo', 'ciudad', 'activa')
    list_filter = ('tipo', 'activa')
    search_fields = ('nombre', 'ciudad')
