import pytest
from decimal import Decimal
from rest_framework.test import APIRequestFactory, force_authenticate

from api.stock import views
from api.stock.models import MovimientoStock, StockSucursal


@pytest.fixture
def factory():
    return APIRequestFactory()


@pytest.mark.django_db
def test_listar_stock_por_sucursal_y_por_producto(factory, usuario, sucursales, productos, con_stock):
    a, b, _ = sucursales
    p1, p2 = productos
    con_stock(a, p1, 10)
    con_stock(a, p2, 3)
    con_stock(b, p1, 4)

    request = factory.get("/api/v1/stock", {"sucursal_id": a.id})
    force_authenticate(request, user=usuario)
    resp = views.listar_stock(request)
    assert resp.status_code == 200
    assert resp.data["success"] is True
    assert {item["producto"] for item in resp.data["data"]} == {p1.id, p2.id}

    request = factory.get("/api/v1/stock", {"producto_id": p1.id})
    force_authenticate(request, user=usuario)
    resp = views.listar_stock(request)
    assert {item["sucursal"] for item in resp.data["data"]} == {a.id, b.id}


@pytest.mark.django_db
def test_listar_stock_requiere_filtro(factory, usuario):
    request = factory.get("/api/v1/stock")
    force_authenticate(request, user=usuario)
    resp = views.listar_stock(request)
    assert resp.status_code == 400
    assert resp.data["data"]["error_type"] == "validation_error"


@pytest.mark.django_db
def test_listar_stock_requiere_autenticacion(factory, sucursales):
    a, _, _ = sucursales
    request = factory.get("/api/v1/stock", {"sucursal_id": a.id})
    resp = views.listar_stock(request)
    assert resp.status_code == 401


@pytest.mark.django_db
def test_ajustar_stock_solo_administradores(factory, usuario, sucursales, productos):
    a, _, _ = sucursales
    p1, _ = productos
    payload = {"sucursal_id": a.id, "producto_id": p1.id, "ajuste": "5", "motivo": "Compra"}

    request = factory.post("/api/v1/stock/ajustar", payload, format="json")
    force_authenticate(request, user=usuario)
    resp = views.ajustar_stock(request)
    assert resp.status_code == 403
    assert not MovimientoStock.objects.exists()


@pytest.mark.django_db
def test_ajustar_stock_crea_movimiento(factory, administrador, sucursales, productos):
    a, _, _ = sucursales
    p1, _ = productos
    payload = {"sucursal_id": a.id, "producto_id": p1.id, "ajuste": "5", "motivo": "Compra"}

    request = factory.post("/api/v1/stock/ajustar", payload, format="json")
    force_authenticate(request, user=administrador)
    resp = views.ajustar_stock(request)

    assert resp.status_code == 201
    assert resp.data["data"]["tipo"] == MovimientoStock.Tipo.ENTRADA
    assert resp.data["data"]["usuario_username"] == administrador.username
    assert StockSucursal.objects.get(sucursal=a, producto=p1).cantidad == 5


@pytest.mark.django_db
def test_ajustar_stock_insuficiente_devuelve_400_con_detalle(factory, administrador, sucursales, productos):
    a, _, _ = sucursales
    p1, _ = productos
    payload = {"sucursal_id": a.id, "producto_id": p1.id, "ajuste": "-1", "motivo": "Rotura"}

    request = factory.post("/api/v1/stock/ajustar", payload, format="json")
    force_authenticate(request, user=administrador)
    resp = views.ajustar_stock(request)

    assert resp.status_code == 400
    assert resp.data["success"] is False
    assert resp.data["data"]["error_type"] == "insufficient_stock"
    assert Decimal(resp.data["data"]["disponible"]) == 0


@pytest.mark.django_db
def test_ajustar_stock_sucursal_inexistente_devuelve_404(factory, administrador, productos):
    p1, _ = productos
    payload = {"sucursal_id": 9999, "producto_id": p1.id, "ajuste": "1", "motivo": "Compra"}

    request = factory.post("/api/v1/stock/ajustar", payload, format="json")
    force_authenticate(request, user=administrador)
    resp = views.ajustar_stock(request)

    assert resp.status_code == 404
    assert resp.data["data"]["error_type"] == "not_found"
    assert resp.data["data"]["recurso"] == "sucursal"


@pytest.mark.django_db
def test_ajustar_stock_datos_invalidos(factory, administrador):
    request = factory.post("/api/v1/stock/ajustar", {"ajuste": "x"}, format="json")
    force_authenticate(request, user=administrador)
    resp = views.ajustar_stock(request)
    assert resp.status_code == 400
    assert "errors" in resp.data["data"]


@pytest.mark.django_db
def test_fijar_stock_view(factory, administrador, sucursales, productos):
    a, _, _ = sucursales
    p1, _ = productos

    request = factory.put(f"/api/v1/stock/{a.id}/{p1.id}",
                          {"cantidad": "12", "stock_minimo": "4"}, format="json")
    force_authenticate(request, user=administrador)
    resp = views.fijar_stock(request, sucursal_id=a.id, producto_id=p1.id)

    assert resp.status_code == 200
    assert resp.data["data"]["movimiento"]["tipo"] == MovimientoStock.Tipo.ENTRADA
    entrada = StockSucursal.objects.get(sucursal=a, producto=p1)
    assert entrada.cantidad == 12
    assert entrada.stock_minimo == 4


@pytest.mark.django_db
def test_fijar_stock_view_requiere_algun_campo(factory, administrador, sucursales, productos):
    a, _, _ = sucursales
    p1, _ = productos
    request = factory.put(f"/api/v1/stock/{a.id}/{p1.id}", {}, format="json")
    force_authenticate(request, user=administrador)
    resp = views.fijar_stock(request, sucursal_id=a.id, producto_id=p1.id)
    assert resp.status_code == 400


@pytest.mark.django_db
def test_inicializar_stock_view(factory, administrador, sucursales, productos):
    a, _, _ = sucursales
    p1, p2 = productos
    payload = {"sucursal_id": a.id, "productos": [
        {"producto_id": p1.id, "cantidad": "10"},
        {"producto_id": p2.id},
    ]}

    request = factory.post("/api/v1/stock/inicializar", payload, format="json")
    force_authenticate(request, user=administrador)
    resp = views.inicializar_stock(request)
    assert resp.status_code == 201
    assert resp.data["data"]["creados"] == 2

    request = factory.post("/api/v1/stock/inicializar", payload, format="json")
    force_authenticate(request, user=administrador)
    resp = views.inicializar_stock(request)
    assert resp.status_code == 200
    assert resp.data["data"]["creados"] == 0


@pytest.mark.django_db
def test_listar_movimientos_paginado(factory, usuario, administrador, sucursales, productos):
    from api.stock.services import ajustar_stock

    a, _, _ = sucursales
    p1, _ = productos
    for _ in range(3):
        ajustar_stock(a.id, p1.id, 1, "Compra", administrador)

    request = factory.get("/api/v1/stock/movimientos",
                          {"sucursal_id": a.id, "page_size": 2})
    force_authenticate(request, user=usuario)
    resp = views.listar_movimientos(request)

    assert resp.status_code == 200
    assert resp.data["count"] == 3
    assert len(resp.data["results"]) == 2
    assert resp.data["results"][0]["stock_nuevo"] == "3.000"


@pytest.mark.django_db
def test_listar_movimientos_fechas_invertidas(factory, usuario):
    request = factory.get("/api/v1/stock/movimientos", {
        "fecha_desde": "2025-02-01T00:00:00Z", "fecha_hasta": "2025-01-01T00:00:00Z"})
    force_authenticate(request, user=usuario)
    resp = views.listar_movimientos(request)
    assert resp.status_code == 400


@pytest.mark.django_db
def test_listar_stock_bajo_usa_cache_e_invalida_al_modificar(factory, usuario, administrador,
                                                            sucursales, productos, con_stock,
                                                            django_capture_on_commit_callbacks):
    from api.stock.services import ajustar_stock

    a, _, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)

    def consultar():
        request = factory.get("/api/v1/stock/bajo", {"sucursal_id": a.id})
        force_authenticate(request, user=usuario)
        return views.listar_stock_bajo(request)

    assert consultar().data["data"] == []

    with django_capture_on_commit_callbacks(execute=True):
        ajustar_stock(a.id, p1.id, -8, "Venta", administrador)

    data = consultar().data["data"]
    assert [item["producto"] for item in data] == [p1.id]
    assert data[0]["es_stock_bajo"] is True


@pytest.mark.django_db
def test_cambiar_stock_minimo_invalida_stock_bajo(factory, usuario, administrador, sucursales,
                                                  productos, con_stock,
                                                  django_capture_on_commit_callbacks):
    from api.stock.services import fijar_stock

    a, _, _ = sucursales
    p1, _ = productos
    con_stock(a, p1, 10)

    def consultar():
        request = factory.get("/api/v1/stock/bajo", {"sucursal_id": a.id})
        force_authenticate(request, user=usuario)
        return views.listar_stock_bajo(request)

    assert consultar().data["data"] == []

    with django_capture_on_commit_callbacks(execute=True):
        fijar_stock(a.id, p1.id, None, "", administrador, stock_minimo=20)

    data = consultar().data["data"]
    assert [item["producto"] for item in data] == [p1.id]
    assert data[0]["stock_minimo"] == "20.000"


@pytest.mark.django_db
def test_inicializar_sin_cantidad_invalida_listado(factory, usuario, administrador, sucursales,
                                                   productos, django_capture_on_commit_callbacks):
    from api.stock.services import inicializar_sucursal

    _, b, _ = sucursales
    p1, p2 = productos

    def consultar():
        request = factory.get("/api/v1/stock", {"sucursal_id": b.id})
        force_authenticate(request, user=usuario)
        return views.listar_stock(request)

    assert consultar().data["data"] == []

    with django_capture_on_commit_callbacks(execute=True):
        inicializar_sucursal(b.id, [
            {"producto_id": p1.id, "cantidad": 0},
            {"producto_id": p2.id, "cantidad": 0},
        ], administrador)

    assert {item["producto"] for item in consultar().data["data"]} == {p1.id, p2.id}
