import pytest
from decimal import Decimal

from api import signals
from api.constants import NotificationCodes
from api.models import Notificacion
from api.stock.services import ajustar_stock
from api.transferencias.services import crear_transferencia


def _solicitar(sucursales, productos, usuario):
    a, b, _ = sucursales
    p1, _ = productos
    return crear_transferencia(
        a.id, b.id, [{"producto_id": p1.id, "cantidad": Decimal("1")}], "", usuario)


@pytest.mark.django_db
def test_stock_bajo_notifica_a_administradores(sucursales, productos, con_stock, administrador,
                                               django_capture_on_commit_callbacks):
    a, _, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)

    with django_capture_on_commit_callbacks(execute=True):
        ajustar_stock(a.id, p1.id, -6, "Venta", administrador)

    notificacion = Notificacion.objects.get(tipo=NotificationCodes.STOCK_BAJO)
    assert notificacion.usuario == administrador
    assert "Yerba en Sucursal A" in notificacion.mensaje


@pytest.mark.django_db
def test_stock_sobre_el_minimo_no_notifica(sucursales, productos, con_stock, administrador,
                                           django_capture_on_commit_callbacks):
    a, _, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)

    with django_capture_on_commit_callbacks(execute=True):
        ajustar_stock(a.id, p1.id, -2, "Venta", administrador)

    assert not Notificacion.objects.exists()


@pytest.mark.django_db
def test_signals_deshabilitados(settings, sucursales, productos, con_stock, usuario,
                                administrador, django_capture_on_commit_callbacks):
    settings.DISABLE_SIGNALS = True
    a, _, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)

    with django_capture_on_commit_callbacks(execute=True):
        _solicitar(sucursales, productos, usuario)
        ajustar_stock(a.id, p1.id, -9, "Venta", administrador)

    assert not Notificacion.objects.exists()


@pytest.mark.django_db
def test_error_en_notificacion_no_se_propaga(monkeypatch, sucursales, productos, con_stock,
                                             usuario, administrador,
                                             django_capture_on_commit_callbacks):
    def falla(transferencia):
        raise RuntimeError("sin conexión")

    monkeypatch.setattr(signals, "notificar_transferencia_solicitada", falla)
    a, _, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)

    with django_capture_on_commit_callbacks(execute=True):
        result = _solicitar(sucursales, productos, usuario)

    assert result["success"] is True
    assert not Notificacion.objects.filter(
        tipo=NotificationCodes.TRANSFERENCIA_SOLICITADA).exists()


@pytest.mark.django_db
def test_solicitud_de_un_administrador_no_se_autonotifica(sucursales, productos, con_stock,
                                                           administrador,
                                                           django_capture_on_commit_callbacks):
    a, _, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)

    with django_capture_on_commit_callbacks(execute=True):
        _solicitar(sucursales, productos, administrador)

    assert not Notificacion.objects.filter(
        tipo=NotificationCodes.TRANSFERENCIA_SOLICITADA).exists()
