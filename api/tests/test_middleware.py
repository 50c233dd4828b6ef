import json
from django.core import exceptions
from django.test import RequestFactory

from api.middleware.secure_error_middleware import SecureErrorMiddleware
from api.stock.exceptions import InvalidTransition


def _middleware():
    return SecureErrorMiddleware(get_response=lambda request: None)


def test_error_de_stock_conserva_codigo_y_datos():
    request = RequestFactory().put("/api/v1/transferencias/1/estado")

    resp = _middleware().process_exception(
        request, InvalidTransition("Ya aprobada", estado_actual="aprobada",
                                   estado_solicitado="rechazada"))

    assert resp.status_code == 409
    body = json.loads(resp.content)
    assert body["success"] is False
    assert body["message"] == "Ya aprobada"
    assert body["data"]["error_type"] == "invalid_transition"
    assert body["data"]["estado_actual"] == "aprobada"


def test_validation_error_generico_es_400(settings):
    settings.DEBUG = False
    request = RequestFactory().post("/api/v1/stock/ajustar")

    resp = _middleware().process_exception(request, exceptions.ValidationError("dato malo"))

    assert resp.status_code == 400
    body = json.loads(resp.content)
    assert body["error_code"] == "ValidationError"
    assert "debug_info" not in body


def test_error_inesperado_oculta_detalle(settings):
    settings.DEBUG = False
    request = RequestFactory().get("/api/v1/stock")

    resp = _middleware().process_exception(request, RuntimeError("password=secreto"))

    assert resp.status_code == 500
    assert b"secreto" not in resp.content
