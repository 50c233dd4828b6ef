from django.urls import resolve, reverse

from api.stock import views as stock_views
from api.transferencias import views as transferencia_views


def test_urls_reverse_y_resolucion():
    assert reverse("stock-ajustar") == "/api/v1/stock/ajustar"
    assert reverse("transferencia-estado", args=[5]) == "/api/v1/transferencias/5/estado"
    assert reverse("notificacion-leida", args=[3]) == "/api/v1/notificaciones/3/leida"

    assert resolve("/api/v1/transferencias/5/cancelar/").func.__name__ == \
        transferencia_views.cancelar_transferencia.__name__
    assert resolve("/api/v1/stock/movimientos").func.__name__ == \
        stock_views.listar_movimientos.__name__
