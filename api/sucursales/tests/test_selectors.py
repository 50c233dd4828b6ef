import pytest
from django.db import IntegrityError, transaction

from api.stock.exceptions import NotFound
from api.sucursales.models import Sucursal
from api.sucursales.selectors import obtener_sucursal


@pytest.mark.django_db
def test_obtener_sucursal(sucursales):
    a, b, _ = sucursales
    b.activa = False
    b.save()

    assert obtener_sucursal(a.id, solo_activas=True) == a
    assert obtener_sucursal(b.id) == b
    with pytest.raises(NotFound) as exc:
        obtener_sucursal(b.id, solo_activas=True)
    assert exc.value.recurso == "sucursal"
    with pytest.raises(NotFound):
        obtener_sucursal(9999)
    with pytest.raises(ValueError):
        obtener_sucursal(0)


@pytest.mark.django_db
def test_nombre_de_sucursal_unico(sucursales):
    with transaction.atomic():
        with pytest.raises(IntegrityError):
            Sucursal.objects.create(nombre="Sucursal A")


@pytest.mark.django_db
def test_str(sucursales):
    a, b, _ = sucursales
    assert str(a) == "Sucursal A [Casa central]"
    assert str(b) == "Sucursal B [Sucursal]"
