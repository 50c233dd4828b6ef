from collections import defaultdict
from decimal import Decimal
from typing import Dict, Optional

from django.db.models import QuerySet

from api.utils import validate_id
from .models import MovimientoStock, StockSucursal


def listar_stock(sucursal_id: Optional[int] = None, producto_id: Optional[int] = None) -> QuerySet:
    """
    Lista entradas de stock filtradas por sucursal y/o producto.

    Args:
        sucursal_id (int, optional): Filtra por sucursal.
        producto_id (int, optional): Filtra por producto (todas las sucursales).

    Returns:
        QuerySet[StockSucursal]: Entradas con producto y sucursal precargados.

    Raises:
        ValueError: Si no se indica ningún filtro o un id es inválido.
    """
    if sucursal_id is None and producto_id is None:
        raise ValueError("Debe indicar sucursal_id o producto_id.")
    qs = StockSucursal.objects.select_related("producto", "sucursal")
    if sucursal_id is not None:
        validate_id(sucursal_id, "Sucursal")
        qs = qs.filter(sucursal_id=sucursal_id)
    if producto_id is not None:
        validate_id(producto_id, "Producto")
        qs = qs.filter(producto_id=producto_id)
    return qs.order_by("sucursal__nombre", "producto__nombre")


def listar_movimientos(sucursal_id: Optional[int] = None, producto_id: Optional[int] = None,
                       tipo: Optional[str] = None, referencia_tipo: Optional[str] = None,
                       referencia_id=None, fecha_desde=None, fecha_hasta=None) -> QuerySet:
    """
    Consulta el historial de movimientos, del más reciente al más antiguo.

    Args:
        sucursal_id (int, optional): Filtra por sucursal.
        producto_id (int, optional): Filtra por producto.
        tipo (str, optional): entrada o salida.
        referencia_tipo (str, optional): venta, transferencia, ajuste o inicializacion.
        referencia_id (optional): Identificador de la operación de origen.
        fecha_desde (datetime | date, optional): Límite inferior inclusivo.
        fecha_hasta (datetime | date, optional): Límite superior inclusivo.

    Returns:
        QuerySet[MovimientoStock]: Ordenado por fecha descendente.
    """
    qs = MovimientoStock.objects.select_related(
        "producto", "sucursal", "usuario")
    if sucursal_id is not None:
        validate_id(sucursal_id, "Sucursal")
        qs = qs.filter(sucursal_id=sucursal_id)
    if producto_id is not None:
        validate_id(producto_id, "Producto")
        qs = qs.filter(producto_id=producto_id)
    if tipo:
        qs = qs.filter(tipo=MovimientoStock.Tipo(tipo))
    if referencia_tipo:
        qs = qs.filter(
            referencia_tipo=MovimientoStock.ReferenciaTipo(referencia_tipo))
    if referencia_id is not None:
        qs = qs.filter(referencia_id=str(referencia_id))
    if fecha_desde is not None:
        qs = qs.filter(fecha__gte=fecha_desde)
    if fecha_hasta is not None:
        qs = qs.filter(fecha__lte=fecha_hasta)
    return qs.order_by("-fecha", "-id")


def movimientos_de_referencia(referencia_tipo: str, referencia_id,
                              sucursal_id: Optional[int] = None) -> QuerySet:
    """Movimientos de una operación de origen, en orden de registro."""
    return listar_movimientos(
        sucursal_id=sucursal_id,
        referencia_tipo=referencia_tipo,
        referencia_id=referencia_id,
    ).order_by("fecha", "id")


def reconstruir_saldo(sucursal_id: int, producto_id: int) -> Decimal:
    """
    Recalcula el saldo reproduciendo el historial desde 0.

    Sirve para auditar que el saldo actual se explica por sus movimientos.

    Returns:
        Decimal: Saldo que surge del historial.
    """
    saldo = Decimal("0")
    movimientos = (MovimientoStock.objects
                   .filter(sucursal_id=sucursal_id, producto_id=producto_id)
                   .order_by("fecha", "id")
                   .values_list("tipo", "cantidad"))
    for tipo, cantidad in movimientos:
        saldo = saldo + cantidad if tipo == MovimientoStock.Tipo.ENTRADA else saldo - cantidad
    return saldo


def neto_por_producto(referencia_tipo: str, referencia_id, sucursal_id: int) -> Dict[int, Decimal]:
    """
    Cantidad neta descontada por producto para una operación de origen.

    Suma salidas y resta entradas de los movimientos de la operación en la
    sucursal. Un valor positivo es lo que todavía puede restituirse.

    Returns:
        Dict[int, Decimal]: {producto_id: neto}, sin productos con neto 0.
    """
    netos = defaultdict(lambda: Decimal("0"))
    for movimiento in movimientos_de_referencia(referencia_tipo, referencia_id, sucursal_id):
        netos[movimiento.producto_id] -= movimiento.delta
    return {producto_id: neto for producto_id, neto in netos.items() if neto != 0}


def verificar_conciliacion(sucursal_id: Optional[int] = None) -> list:
    """
    Compara el saldo de cada entrada con el que surge de su historial.

    Returns:
        list[dict]: Entradas con diferencias (vacía si todo concilia).
    """
    diferencias = []
    entradas = StockSucursal.objects.all().order_by("sucursal_id", "producto_id")
    if sucursal_id is not None:
        entradas = entradas.filter(sucursal_id=sucursal_id)
    for entrada in entradas:
        historial = reconstruir_saldo(entrada.sucursal_id, entrada.producto_id)
        if historial != entrada.cantidad:
            diferencias.append({
                "sucursal_id": entrada.sucursal_id,
                "producto_id": entrada.producto_id,
                "cantidad": entrada.cantidad,
                "historial": historial,
            })
    return diferencias
