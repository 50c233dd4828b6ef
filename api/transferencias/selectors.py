from typing import Optional

from django.db.models import Q, QuerySet

from api.stock.exceptions import NotFound
from api.utils import validate_id
from .models import Transferencia

TIPOS_RELACION = ("origen", "destino", "ambos")


def _base() -> QuerySet:
    return (Transferencia.objects
            .select_related("sucursal_origen", "sucursal_destino",
                            "usuario_solicita", "usuario_aprueba", "usuario_cancela")
            .prefetch_related("productos__producto"))


def listar_transferencias(estado: Optional[str] = None, sucursal_id: Optional[int] = None) -> QuerySet:
    """
    Lista transferencias, opcionalmente filtradas.

    Args:
        estado (str, optional): pendiente, aprobada, rechazada o cancelada.
        sucursal_id (int, optional): Sucursal que participa como origen o destino.

    Returns:
        QuerySet[Transferencia]: De la más reciente a la más antigua.

    Raises:
        ValueError: Si el estado no es válido o el id es inválido.
    """
    qs = _base()
    if estado:
        qs = qs.filter(estado=Transferencia.Estado(estado))
    if sucursal_id is not None:
        validate_id(sucursal_id, "Sucursal")
        qs = qs.filter(Q(sucursal_origen_id=sucursal_id) |
                       Q(sucursal_destino_id=sucursal_id))
    return qs


def listar_transferencias_por_sucursal(sucursal_id: int, tipo_relacion: str = "ambos") -> QuerySet:
    """
    Lista las transferencias en las que participa una sucursal.

    Args:
        sucursal_id (int): Identificador de la sucursal.
        tipo_relacion (str): origen, destino o ambos.

    Raises:
        ValueError: Si tipo_relacion no es válido.
    """
    validate_id(sucursal_id, "Sucursal")
    if tipo_relacion not in TIPOS_RELACION:
        raise ValueError(
            f"tipo_relacion debe ser uno de: {', '.join(TIPOS_RELACION)}.")
    qs = _base()
    if tipo_relacion == "origen":
        return qs.filter(sucursal_origen_id=sucursal_id)
    if tipo_relacion == "destino":
        return qs.filter(sucursal_destino_id=sucursal_id)
    return qs.filter(Q(sucursal_origen_id=sucursal_id) |
                     Q(sucursal_destino_id=sucursal_id))


def listar_pendientes() -> QuerySet:
    """Transferencias pendientes de aprobación, de la más antigua a la más reciente."""
    return (_base()
            .filter(estado=Transferencia.Estado.PENDIENTE)
            .order_by("fecha_solicitud", "id"))


def obtener_transferencia(transferencia_id: int) -> Transferencia:
    """
    Obtiene una transferencia con sus líneas.

    Raises:
        NotFound: Si la transferencia no existe.
    """
    validate_id(transferencia_id, "Transferencia")
    try:
        return _base().get(pk=transferencia_id)
    except Transferencia.DoesNotExist:
        raise NotFound(
            f"La transferencia {transferencia_id} no existe.",
            recurso="transferencia", recurso_id=transferencia_id)
