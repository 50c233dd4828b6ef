import pytest
from decimal import Decimal
from django.core import exceptions
from django.db import OperationalError

from api.stock.exceptions import ConcurrentModification, InvalidQuantity
from api.stock.models import StockSucursal
from api.stock.unit_of_work import UnidadDeTrabajo
from api.stock.utils import con_reintentos, normalizar_cantidad, normalizar_motivo


@pytest.mark.parametrize("valor, esperado", [
    (3, Decimal("3")),
    ("2.5", Decimal("2.5")),
    (Decimal("0.125"), Decimal("0.125")),
])
def test_normalizar_cantidad(valor, esperado):
    assert normalizar_cantidad(valor) == esperado


@pytest.mark.parametrize("valor", [None, True, "abc", "NaN", "1.2345", -1, 0, "1e20"])
def test_normalizar_cantidad_invalida(valor):
    with pytest.raises(InvalidQuantity):
        normalizar_cantidad(valor)


def test_normalizar_cantidad_con_signo_y_cero():
    assert normalizar_cantidad("-4", permitir_negativo=True) == Decimal("-4")
    assert normalizar_cantidad(0, permitir_cero=True) == 0


def test_normalizar_motivo():
    assert normalizar_motivo("  Rotura  ") == "Rotura"
    assert normalizar_motivo(None, por_defecto="Ajuste manual") == "Ajuste manual"
    with pytest.raises(exceptions.ValidationError):
        normalizar_motivo("", requerido=True)
    with pytest.raises(exceptions.ValidationError):
        normalizar_motivo("x" * 256)


def test_con_reintentos_reintenta_solo_contencion(settings):
    settings.STOCK_REINTENTOS_CONCURRENCIA = 3
    llamadas = {"n": 0}

    def operacion():
        llamadas["n"] += 1
        if llamadas["n"] < 3:
            raise ConcurrentModification("bloqueado")
        return "ok"

    assert con_reintentos(operacion, espera=0)() == "ok"
    assert llamadas["n"] == 3


def test_con_reintentos_agota_intentos():
    llamadas = {"n": 0}

    @con_reintentos(intentos=2, espera=0)
    def operacion():
        llamadas["n"] += 1
        raise ConcurrentModification("bloqueado")

    with pytest.raises(ConcurrentModification):
        operacion()
    assert llamadas["n"] == 2


def test_con_reintentos_no_reintenta_errores_de_dominio():
    llamadas = {"n": 0}

    @con_reintentos(intentos=3, espera=0)
    def operacion():
        llamadas["n"] += 1
        raise InvalidQuantity("cantidad mala")

    with pytest.raises(InvalidQuantity):
        operacion()
    assert llamadas["n"] == 1


@pytest.mark.django_db
def test_unidad_de_trabajo_traduce_contencion(sucursales, productos, administrador):
    a, _, _ = sucursales
    p1, _ = productos

    with pytest.raises(ConcurrentModification):
        with UnidadDeTrabajo(administrador) as uow:
            uow.aplicar(a.id, p1.id, Decimal("5"), "Compra", "ajuste")
            raise OperationalError("Lock wait timeout exceeded")

    assert not StockSucursal.objects.filter(sucursal=a, producto=p1).exists()
