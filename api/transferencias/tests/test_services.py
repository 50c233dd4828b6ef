import pytest
from decimal import Decimal
from django.core import exceptions

from api.constants import NotificationCodes
from api.models import Notificacion
from api.stock.exceptions import (
    InsufficientStock, InvalidQuantity, InvalidTransition, NotFound, SameBranch,
)
from api.stock.models import MovimientoStock
from api.stock.services import ajustar_stock, obtener_saldo
from api.stock.selectors import verificar_conciliacion
from api.transferencias import services
from api.transferencias.models import Transferencia


def _solicitar(origen, destino, lineas, usuario, motivo="Reposición"):
    productos = [{"producto_id": p.id, "cantidad": Decimal(str(c))} for p, c in lineas]
    result = services.crear_transferencia(
        origen.id, destino.id, productos, motivo, usuario)
    return result["data"]["transferencia"]


@pytest.mark.django_db
def test_crear_transferencia_queda_pendiente_sin_mover_stock(sucursales, productos, con_stock,
                                                             usuario):
    a, b, _ = sucursales
    p1, p2 = productos
    con_stock(a, p1, 10)
    con_stock(a, p2, 4)

    t = _solicitar(a, b, [(p1, 3), (p2, 1), (p1, 2)], usuario)

    assert t.estado == Transferencia.Estado.PENDIENTE
    assert t.usuario_solicita == usuario
    cantidades = {d.producto_id: d.cantidad for d in t.productos.all()}
    assert cantidades == {p1.id: Decimal("5"), p2.id: Decimal("1")}
    assert obtener_saldo(a.id, p1.id) == 10
    assert obtener_saldo(b.id, p1.id) == 0
    assert not MovimientoStock.objects.filter(
        referencia_tipo=MovimientoStock.ReferenciaTipo.TRANSFERENCIA).exists()


@pytest.mark.django_db
def test_crear_transferencia_misma_sucursal(sucursales, productos, usuario):
    a, _, _ = sucursales
    p1, _ = productos
    with pytest.raises(SameBranch):
        _solicitar(a, a, [(p1, 1)], usuario)
    assert Transferencia.objects.count() == 0


@pytest.mark.django_db
def test_crear_transferencia_supera_disponible(sucursales, productos, con_stock, usuario):
    a, b, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 2)

    with pytest.raises(InvalidQuantity) as exc:
        _solicitar(a, b, [(p1, 3)], usuario)
    assert exc.value.datos["producto_id"] == p1.id
    assert Transferencia.objects.count() == 0


@pytest.mark.django_db
def test_crear_transferencia_validaciones(sucursales, productos, con_stock, usuario):
    a, b, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)

    with pytest.raises(exceptions.ValidationError):
        services.crear_transferencia(a.id, b.id, [], "", usuario)
    with pytest.raises(InvalidQuantity):
        _solicitar(a, b, [(p1, 0)], usuario)
    with pytest.raises(NotFound):
        services.crear_transferencia(a.id, 9999, [{"producto_id": p1.id, "cantidad": 1}],
                                     "", usuario)
    with pytest.raises(NotFound):
        services.crear_transferencia(a.id, b.id, [{"producto_id": 9999, "cantidad": 1}],
                                     "", usuario)


@pytest.mark.django_db
def test_crear_transferencia_sucursal_inactiva(sucursales, productos, con_stock, usuario):
    a, b, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)
    b.activa = False
    b.save()

    with pytest.raises(NotFound):
        _solicitar(a, b, [(p1, 1)], usuario)


@pytest.mark.django_db
def test_aprobar_mueve_el_stock(sucursales, productos, con_stock, usuario, administrador):
    a, b, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 100)
    t = _solicitar(a, b, [(p1, 20)], usuario)

    result = services.aprobar_transferencia(t.id, administrador)

    t.refresh_from_db()
    assert result["data"]["movimientos"] == 2
    assert t.estado == Transferencia.Estado.APROBADA
    assert t.usuario_aprueba == administrador
    assert t.fecha_resolucion is not None
    assert obtener_saldo(a.id, p1.id) == 80
    assert obtener_saldo(b.id, p1.id) == 20

    movs = MovimientoStock.objects.filter(
        referencia_tipo=MovimientoStock.ReferenciaTipo.TRANSFERENCIA, referencia_id=str(t.id))
    salida = movs.get(sucursal=a)
    entrada = movs.get(sucursal=b)
    assert salida.tipo == MovimientoStock.Tipo.SALIDA
    assert salida.motivo == "Transferencia a sucursal Sucursal B"
    assert entrada.tipo == MovimientoStock.Tipo.ENTRADA
    assert entrada.motivo == "Transferencia desde sucursal Sucursal A"


@pytest.mark.django_db
def test_aprobar_es_todo_o_nada(sucursales, productos, con_stock, usuario, administrador):
    a, b, _ = sucursales
    p1, p2 = productos
    con_stock(a, p1, 10)
    con_stock(a, p2, 5)
    t = _solicitar(a, b, [(p1, 5), (p2, 5)], usuario)
    ajustar_stock(a.id, p2.id, -5, "Venta", administrador)

    with pytest.raises(InsufficientStock) as exc:
        services.aprobar_transferencia(t.id, administrador)

    assert exc.value.producto_id == p2.id
    assert exc.value.linea == 1
    t.refresh_from_db()
    assert t.estado == Transferencia.Estado.PENDIENTE
    assert obtener_saldo(a.id, p1.id) == 10
    assert obtener_saldo(b.id, p1.id) == 0
    assert not MovimientoStock.objects.filter(
        referencia_tipo=MovimientoStock.ReferenciaTipo.TRANSFERENCIA).exists()


@pytest.mark.django_db
def test_rechazar_no_mueve_stock(sucursales, productos, con_stock, usuario, administrador):
    a, b, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)
    t = _solicitar(a, b, [(p1, 5)], usuario)

    services.rechazar_transferencia(t.id, "Sin transporte", administrador)

    t.refresh_from_db()
    assert t.estado == Transferencia.Estado.RECHAZADA
    assert t.motivo_rechazo == "Sin transporte"
    assert obtener_saldo(a.id, p1.id) == 10


@pytest.mark.django_db
@pytest.mark.parametrize("estado_final", ["aprobada", "rechazada"])
def test_transferencia_procesada_no_se_vuelve_a_procesar(estado_final, sucursales, productos,
                                                         con_stock, usuario, administrador):
    a, b, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)
    t = _solicitar(a, b, [(p1, 5)], usuario)
    services.cambiar_estado_transferencia(t.id, estado_final, "", administrador)

    with pytest.raises(InvalidTransition) as exc:
        services.aprobar_transferencia(t.id, administrador)
    assert exc.value.estado_actual == estado_final
    with pytest.raises(InvalidTransition):
        services.rechazar_transferencia(t.id, "", administrador)

    esperado = Decimal("5") if estado_final == "aprobada" else Decimal("10")
    assert obtener_saldo(a.id, p1.id) == esperado


@pytest.mark.django_db
def test_cambiar_estado_invalido(sucursales, productos, con_stock, usuario, administrador):
    a, b, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)
    t = _solicitar(a, b, [(p1, 5)], usuario)

    with pytest.raises(exceptions.ValidationError):
        services.cambiar_estado_transferencia(t.id, "cancelada", "", administrador)
    with pytest.raises(NotFound):
        services.aprobar_transferencia(9999, administrador)


@pytest.mark.django_db
def test_cancelar_revierte_el_stock(sucursales, productos, con_stock, usuario, administrador):
    a, b, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 100)
    t = _solicitar(a, b, [(p1, 20)], usuario)
    services.aprobar_transferencia(t.id, administrador)

    result = services.cancelar_transferencia(t.id, "Error de carga", administrador)

    t.refresh_from_db()
    assert result["data"]["movimientos"] == 2
    assert t.estado == Transferencia.Estado.CANCELADA
    assert t.motivo_cancelacion == "Error de carga"
    assert t.usuario_cancela == administrador
    assert t.fecha_cancelacion is not None
    assert obtener_saldo(a.id, p1.id) == 100
    assert obtener_saldo(b.id, p1.id) == 0
    assert verificar_conciliacion() == []

    with pytest.raises(InvalidTransition):
        services.cancelar_transferencia(t.id, "Otra vez", administrador)


@pytest.mark.django_db
def test_cancelar_requiere_motivo_y_estado_aprobada(sucursales, productos, con_stock, usuario,
                                                    administrador):
    a, b, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)
    t = _solicitar(a, b, [(p1, 5)], usuario)

    with pytest.raises(InvalidTransition):
        services.cancelar_transferencia(t.id, "Motivo", administrador)

    services.aprobar_transferencia(t.id, administrador)
    with pytest.raises(exceptions.ValidationError):
        services.cancelar_transferencia(t.id, "   ", administrador)
    t.refresh_from_db()
    assert t.estado == Transferencia.Estado.APROBADA


@pytest.mark.django_db
def test_devolucion_parcial_y_cancelacion(sucursales, productos, con_stock, usuario,
                                          administrador):
    a, b, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 50)
    t = _solicitar(a, b, [(p1, 10)], usuario)
    services.aprobar_transferencia(t.id, administrador)
    assert obtener_saldo(a.id, p1.id) == 40
    assert obtener_saldo(b.id, p1.id) == 10

    result = services.devolver_transferencia(
        t.id, [{"producto_id": p1.id, "cantidad": Decimal("4")}], usuario)

    assert result["data"]["devueltos"] == {p1.id: Decimal("4")}
    t.refresh_from_db()
    assert t.estado == Transferencia.Estado.APROBADA
    assert obtener_saldo(a.id, p1.id) == 44
    assert obtener_saldo(b.id, p1.id) == 6

    services.cancelar_transferencia(t.id, "Se suspende el envío", administrador)

    assert obtener_saldo(a.id, p1.id) == 50
    assert obtener_saldo(b.id, p1.id) == 0
    assert t.productos.get().devuelto == 4
    assert verificar_conciliacion() == []


@pytest.mark.django_db
def test_devolucion_no_supera_lo_pendiente(sucursales, productos, con_stock, usuario,
                                           administrador):
    a, b, _ = sucursales
    p1, p2 = productos
    con_stock(a, p1, 50)
    t = _solicitar(a, b, [(p1, 10)], usuario)
    services.aprobar_transferencia(t.id, administrador)
    services.devolver_transferencia(t.id, [{"producto_id": p1.id, "cantidad": 7}], usuario)

    with pytest.raises(InvalidQuantity):
        services.devolver_transferencia(t.id, [{"producto_id": p1.id, "cantidad": 4}], usuario)
    with pytest.raises(NotFound):
        services.devolver_transferencia(t.id, [{"producto_id": p2.id, "cantidad": 1}], usuario)

    services.devolver_transferencia(t.id, [{"producto_id": p1.id, "cantidad": 3}], usuario)
    t.refresh_from_db()
    assert t.completamente_devuelta is True
    assert obtener_saldo(a.id, p1.id) == 50

    with pytest.raises(InvalidQuantity):
        services.devolver_transferencia(t.id, [{"producto_id": p1.id, "cantidad": 1}], usuario)

    result = services.cancelar_transferencia(t.id, "Devuelta completa", administrador)
    assert result["data"]["movimientos"] == 0
    assert obtener_saldo(a.id, p1.id) == 50
    assert obtener_saldo(b.id, p1.id) == 0


@pytest.mark.django_db
def test_devolucion_requiere_transferencia_aprobada(sucursales, productos, con_stock, usuario):
    a, b, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)
    t = _solicitar(a, b, [(p1, 5)], usuario)

    with pytest.raises(InvalidTransition) as exc:
        services.devolver_transferencia(t.id, [{"producto_id": p1.id, "cantidad": 1}], usuario)

    assert "solo se puede registrar devoluciones desde aprobada" in str(exc.value)
    assert exc.value.estado_actual == Transferencia.Estado.PENDIENTE
    assert exc.value.estado_solicitado is None


@pytest.mark.django_db
def test_devolucion_sin_stock_en_destino(sucursales, productos, con_stock, usuario,
                                         administrador):
    a, b, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)
    t = _solicitar(a, b, [(p1, 5)], usuario)
    services.aprobar_transferencia(t.id, administrador)
    ajustar_stock(b.id, p1.id, -4, "Venta", administrador)

    with pytest.raises(InsufficientStock) as exc:
        services.devolver_transferencia(t.id, [{"producto_id": p1.id, "cantidad": 3}], usuario)

    assert exc.value.sucursal_id == b.id
    assert t.productos.get().devuelto == 0
    assert obtener_saldo(a.id, p1.id) == 5
    assert obtener_saldo(b.id, p1.id) == 1


@pytest.mark.django_db
def test_notificaciones_del_flujo(sucursales, productos, con_stock, usuario, administrador,
                                  django_capture_on_commit_callbacks, mailoutbox):
    a, b, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 100)

    with django_capture_on_commit_callbacks(execute=True):
        t = _solicitar(a, b, [(p1, 20)], usuario)

    solicitada = Notificacion.objects.get(tipo=NotificationCodes.TRANSFERENCIA_SOLICITADA)
    assert solicitada.usuario == administrador
    assert solicitada.datos["transferencia_id"] == t.id

    with django_capture_on_commit_callbacks(execute=True):
        services.aprobar_transferencia(t.id, administrador)

    procesada = Notificacion.objects.get(tipo=NotificationCodes.TRANSFERENCIA_PROCESADA)
    assert procesada.usuario == usuario
    assert procesada.titulo == "Transferencia Aprobada"
    assert procesada.prioridad == Notificacion.Prioridad.ALTA

    with django_capture_on_commit_callbacks(execute=True):
        services.cancelar_transferencia(t.id, "Error de carga", administrador)

    cancelada = Notificacion.objects.get(tipo=NotificationCodes.TRANSFERENCIA_CANCELADA)
    assert cancelada.usuario == usuario
    assert "Error de carga" in cancelada.mensaje
    assert any(m.to == [usuario.email] for m in mailoutbox)


@pytest.mark.django_db
def test_rechazo_notifica_con_motivo(sucursales, productos, con_stock, usuario, administrador,
                                     django_capture_on_commit_callbacks):
    a, b, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)
    t = _solicitar(a, b, [(p1, 5)], usuario)

    with django_capture_on_commit_callbacks(execute=True):
        services.rechazar_transferencia(t.id, "Sin transporte", administrador)

    notificacion = Notificacion.objects.get(usuario=usuario)
    assert notificacion.titulo == "Transferencia Rechazada"
    assert "Sin transporte" in notificacion.mensaje


@pytest.mark.django_db
def test_transferencia_fallida_no_notifica(sucursales, productos, con_stock, usuario,
                                           administrador, django_capture_on_commit_callbacks):
    a, b, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)
    t = _solicitar(a, b, [(p1, 5)], usuario)
    ajustar_stock(a.id, p1.id, -8, "Venta", administrador)

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        with pytest.raises(InsufficientStock):
            services.aprobar_transferencia(t.id, administrador)

    assert callbacks == []
    assert not Notificacion.objects.filter(usuario=usuario).exists()
