import pytest
from rest_framework.test import APIClient


@pytest.fixture(autouse=True)
def _settings_defaults(settings):
    """
    Ajustes solo para tests de proyecto:
    - DEBUG True para ver el detalle en las respuestas de error
    - Throttle alto para que el login repetido no corte los tests
    """
    settings.DEBUG = True
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
        "user": "1000/minute",
        "anon": "1000/minute",
    }
    return settings


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def jwt_client(api_client):
    """Devuelve una función que autentica el cliente con un access token real."""

    def _login(username, password="pwd"):
        resp = api_client.post(
            "/api/v1/token", {"username": username, "password": password}, format="json")
        assert resp.status_code == 200, resp.data
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")
        return api_client

    return _login


@pytest.fixture
def usuario(db):
    from django.contrib.auth import get_user_model

    return get_user_model().objects.create_user(
        username="vendedor", email="vendedor@example.com", password="pwd")


@pytest.fixture
def administrador(db):
    from django.contrib.auth import get_user_model

    User = get_user_model()
    return User.objects.create_user(
        username="admin", email="admin@example.com", password="pwd",
        rol=User.Rol.ADMINISTRADOR)


@pytest.fixture
def sucursales(db):
    from api.sucursales.models import Sucursal

    return tuple(Sucursal.objects.create(nombre=f"Sucursal {letra}") for letra in "ABC")


@pytest.fixture
def productos(db):
    from api.productos.models import Producto

    return (
        Producto.objects.create(codigo="P001", nombre="Yerba"),
        Producto.objects.create(codigo="P002", nombre="Azúcar"),
    )
