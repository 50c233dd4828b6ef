import pytest
from decimal import Decimal
from django.core import exceptions
from django.core.management import call_command
from django.core.management.base import CommandError

from api.stock import services, selectors
from api.stock.models import StockSucursal, MovimientoStock


@pytest.mark.django_db
def test_historial_reconstruye_el_saldo(sucursales, producto_factory, administrador):
    a, _, _ = sucursales
    producto = producto_factory(stock_inicial="8")

    services.asegurar_entrada(a.id, producto.id, administrador)
    services.ajustar_stock(a.id, producto.id, "2.5", "Compra", administrador)
    services.ajustar_stock(a.id, producto.id, -4, "Rotura", administrador)
    services.fijar_stock(a.id, producto.id, 20, "Conteo", administrador)
    services.ajustar_stock(a.id, producto.id, -25, "Corrección", administrador,
                           permitir_negativo=True)

    entrada = StockSucursal.objects.get(sucursal=a, producto=producto)
    assert entrada.cantidad == 0
    assert selectors.reconstruir_saldo(a.id, producto.id) == entrada.cantidad
    assert selectors.verificar_conciliacion() == []


@pytest.mark.django_db
def test_cada_movimiento_cumple_la_relacion_de_saldos(sucursales, productos, administrador):
    a, _, _ = sucursales
    p1, _ = productos
    services.ajustar_stock(a.id, p1.id, 10, "Compra", administrador)
    services.ajustar_stock(a.id, p1.id, -3, "Venta", administrador)

    for mov in MovimientoStock.objects.all():
        assert mov.cantidad > 0
        assert mov.stock_nuevo == mov.stock_anterior + mov.delta


@pytest.mark.django_db
def test_movimientos_son_inmutables(sucursales, productos, administrador):
    a, _, _ = sucursales
    p1, _ = productos
    mov = services.ajustar_stock(a.id, p1.id, 10, "Compra", administrador)

    mov.motivo = "Otro"
    with pytest.raises(exceptions.ValidationError):
        mov.save()
    with pytest.raises(exceptions.ValidationError):
        mov.delete()
    with pytest.raises(exceptions.ValidationError):
        MovimientoStock.objects.filter(pk=mov.pk).update(motivo="Otro")
    with pytest.raises(exceptions.ValidationError):
        MovimientoStock.objects.all().delete()

    mov.refresh_from_db()
    assert mov.motivo == "Compra"


@pytest.mark.django_db
def test_movimiento_inconsistente_no_se_guarda(sucursales, productos):
    a, _, _ = sucursales
    p1, _ = productos

    with pytest.raises(exceptions.ValidationError):
        MovimientoStock.objects.create(
            sucursal=a, producto=p1, tipo=MovimientoStock.Tipo.ENTRADA,
            cantidad=Decimal("5"), stock_anterior=Decimal("0"), stock_nuevo=Decimal("4"),
            referencia_tipo=MovimientoStock.ReferenciaTipo.AJUSTE)
    assert MovimientoStock.objects.count() == 0


@pytest.mark.django_db
def test_listar_movimientos_orden_y_filtros(sucursales, productos, administrador):
    a, b, _ = sucursales
    p1, p2 = productos
    primero = services.ajustar_stock(a.id, p1.id, 10, "Compra", administrador)
    segundo = services.ajustar_stock(a.id, p1.id, -2, "Venta", administrador)
    services.ajustar_stock(a.id, p2.id, 1, "Compra", administrador)
    services.ajustar_stock(b.id, p1.id, 3, "Compra", administrador)

    qs = selectors.listar_movimientos(sucursal_id=a.id, producto_id=p1.id)
    assert list(qs) == [segundo, primero]

    salidas = selectors.listar_movimientos(
        sucursal_id=a.id, tipo=MovimientoStock.Tipo.SALIDA)
    assert list(salidas) == [segundo]

    assert selectors.listar_movimientos(producto_id=p1.id).count() == 3
    assert selectors.listar_movimientos(
        referencia_tipo=MovimientoStock.ReferenciaTipo.VENTA).count() == 0


@pytest.mark.django_db
def test_neto_por_producto_descuenta_restituciones(sucursales, productos, administrador):
    a, _, _ = sucursales
    p1, p2 = productos
    venta = MovimientoStock.ReferenciaTipo.VENTA
    services.ajustar_stock(a.id, p1.id, 20, "Compra", administrador)
    services.ajustar_stock(a.id, p2.id, 20, "Compra", administrador)
    services.ajustar_stock(a.id, p1.id, -5, "Venta", administrador, venta, "V-1")
    services.ajustar_stock(a.id, p2.id, -2, "Venta", administrador, venta, "V-1")
    services.ajustar_stock(a.id, p2.id, 2, "Devolución", administrador, venta, "V-1")
    services.ajustar_stock(a.id, p1.id, -1, "Venta", administrador, venta, "V-2")

    assert selectors.neto_por_producto(venta, "V-1", a.id) == {p1.id: Decimal("5")}


@pytest.mark.django_db
def test_verificar_conciliacion_detecta_diferencias(sucursales, productos, administrador):
    a, _, _ = sucursales
    p1, _ = productos
    services.ajustar_stock(a.id, p1.id, 10, "Compra", administrador)
    StockSucursal.objects.filter(sucursal=a, producto=p1).update(cantidad=Decimal("7"))

    diferencias = selectors.verificar_conciliacion(a.id)

    assert len(diferencias) == 1
    assert diferencias[0]["historial"] == 10
    assert diferencias[0]["cantidad"] == 7


@pytest.mark.django_db
def test_comando_reconciliar_stock(sucursales, productos, administrador, capsys):
    a, _, _ = sucursales
    p1, _ = productos
    services.ajustar_stock(a.id, p1.id, 10, "Compra", administrador)

    call_command("reconciliar_stock")
    assert "concilia" in capsys.readouterr().out

    StockSucursal.objects.filter(sucursal=a, producto=p1).update(cantidad=Decimal("1"))
    with pytest.raises(CommandError):
        call_command("reconciliar_stock", sucursal=a.id)
