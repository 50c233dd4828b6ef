from .models import Sucursal
from api.stock.exceptions import NotFound
from api.utils import validate_id


def obtener_sucursal(sucursal_id: int, solo_activas: bool = False) -> Sucursal:
    """
    Obtiene una sucursal por id.

    Args:
        sucursal_id (int): Identificador de la sucursal.
        solo_activas (bool): Si es True, una sucursal inactiva se trata como inexistente.

    Raises:
        NotFound: Si la sucursal no existe (o está inactiva con solo_activas=True).
    """
    validate_id(sucursal_id, "Sucursal")
    qs = Sucursal.objects.all()
    if solo_activas:
        qs = qs.filter(activa=True)
    try:
        return qs.get(pk=sucursal_id)
    except Sucursal.DoesNotExist:
        detalle = "no existe o está inactiva" if solo_activas else "no existe"
        raise NotFound(
            f"La sucursal {sucursal_id} {detalle}.", recurso="sucursal", recurso_id=sucursal_id)
