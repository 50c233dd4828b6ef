import pytest
from decimal import Decimal
from django.contrib.auth import get_user_model
from django.core.cache import cache


@pytest.fixture(autouse=True)
def _limpiar_cache():
    """Cada test arranca con el cache vacío."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def usuario(db):
    """Usuario vendedor sin permisos de administrador."""
    User = get_user_model()
    return User.objects.create_user(
        username="vendedor", email="vendedor@example.com", password="pwd")


@pytest.fixture
def administrador(db):
    """Usuario con rol administrador."""
    User = get_user_model()
    return User.objects.create_user(
        username="admin", email="admin@example.com", password="pwd",
        rol=User.Rol.ADMINISTRADOR)


@pytest.fixture
def sucursales(db):
    """Tres sucursales activas: A, B y C."""
    from api.sucursales.models import Sucursal

    return (
        Sucursal.objects.create(nombre="Sucursal A", tipo=Sucursal.Tipo.PRINCIPAL),
        Sucursal.objects.create(nombre="Sucursal B"),
        Sucursal.objects.create(nombre="Sucursal C"),
    )


@pytest.fixture
def producto_factory(db):
    """Factory simple de productos con stock inicial 0 por defecto."""
    from api.productos.models import Producto

    contador = {"n": 0}

    def _create(nombre=None, stock_inicial="0", stock_minimo="5"):
        contador["n"] += 1
        return Producto.objects.create(
            codigo=f"P{contador['n']:03d}",
            nombre=nombre or f"Producto {contador['n']}",
            stock_inicial=Decimal(stock_inicial),
            stock_minimo=Decimal(stock_minimo),
        )

    return _create


@pytest.fixture
def productos(producto_factory):
    return producto_factory("Yerba"), producto_factory("Azúcar")


@pytest.fixture
def con_stock(administrador):
    """Fija el saldo de un producto en una sucursal y devuelve la entrada."""
    from api.stock.models import StockSucursal
    from api.stock.services import fijar_stock

    def _set(sucursal, producto, cantidad):
        fijar_stock(sucursal.id, producto.id, Decimal(str(cantidad)),
                    "Carga inicial de test", administrador)
        return StockSucursal.objects.get(sucursal=sucursal, producto=producto)

    return _set
