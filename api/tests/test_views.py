import pytest
from rest_framework.test import APIClient

from api.constants import NotificationCodes
from api.services import crear_notificacion


@pytest.fixture
def client(usuario):
    c = APIClient()
    c.force_authenticate(user=usuario)
    return c


@pytest.mark.django_db
def test_bandeja_de_notificaciones(client, usuario, administrador):
    leida = crear_notificacion(usuario, NotificationCodes.STOCK_BAJO, "Uno", "Mensaje")
    crear_notificacion(usuario, NotificationCodes.TRANSFERENCIA_PROCESADA, "Dos", "Mensaje")
    crear_notificacion(administrador, NotificationCodes.STOCK_BAJO, "Ajena", "Mensaje")

    resp = client.get("/api/v1/notificaciones")
    assert resp.status_code == 200
    assert [n["titulo"] for n in resp.data["data"]] == ["Dos", "Uno"]

    resp = client.post(f"/api/v1/notificaciones/{leida.id}/leida")
    assert resp.status_code == 200
    assert resp.data["data"]["leida"] is True

    resp = client.get("/api/v1/notificaciones", {"no_leidas": "true"})
    assert [n["titulo"] for n in resp.data["data"]] == ["Dos"]


@pytest.mark.django_db
def test_marcar_leida_ajena_devuelve_404(client, administrador):
    ajena = crear_notificacion(administrador, NotificationCodes.STOCK_BAJO, "Ajena", "Mensaje")

    resp = client.post(f"/api/v1/notificaciones/{ajena.id}/leida")

    assert resp.status_code == 404
    assert resp.data["data"]["error_type"] == "not_found"


@pytest.mark.django_db
def test_notificaciones_requieren_autenticacion():
    resp = APIClient().get("/api/v1/notificaciones")
    assert resp.status_code == 401
