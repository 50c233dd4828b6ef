"""
Integración entre el flujo de ventas y el stock por sucursal.

Las ventas viven fuera de este sistema; aquí solo se descuenta, restituye o
corrige el stock que una venta consume. Cada movimiento queda registrado con
referencia_tipo venta y referencia_id igual al id de la venta, y el historial
es la fuente de verdad de lo que cada venta descontó.
"""
import logging
from decimal import Decimal
from typing import Dict

from django.core import exceptions

from api.constants import MotivosMovimiento
from api.productos.selectors import productos_existentes
from api.stock.models import MovimientoStock
from api.stock.selectors import neto_por_producto
from api.stock.services import ajustar_lote
from api.stock.unit_of_work import UnidadDeTrabajo, LineaAjuste
from api.stock.utils import normalizar_cantidad, normalizar_motivo
from api.sucursales.selectors import obtener_sucursal
from api.users.models import CustomUser
from api.utils import validate_id

logger = logging.getLogger(__name__)

VENTA = MovimientoStock.ReferenciaTipo.VENTA
MOTIVOS_RESTAURACION = (
    MotivosMovimiento.CANCELACION_VENTA,
    MotivosMovimiento.DEVOLUCION_VENTA,
    MotivosMovimiento.VENTA_ELIMINADA,
)


def _referencia_venta(venta_id) -> str:
    if isinstance(venta_id, bool) or venta_id is None:
        raise ValueError("Venta ID inválido.")
    if isinstance(venta_id, int):
        validate_id(venta_id, "Venta")
    referencia = str(venta_id).strip()
    if not referencia or len(referencia) > 64:
        raise ValueError("Venta ID inválido.")
    return referencia


def _cantidades_para_stock(lineas) -> Dict[int, Decimal]:
    """
    Agrupa las líneas de la venta por producto.

    Usa `cantidad_para_stock` cuando está presente (unidades bonificadas por
    promociones), si no `cantidad`.
    """
    if not lineas:
        raise exceptions.ValidationError(
            "La venta debe tener al menos una línea.")
    cantidades = {}
    for linea in lineas:
        producto_id = linea.get("producto_id")
        validate_id(producto_id, "Producto")
        valor = linea.get("cantidad_para_stock")
        if valor is None:
            valor = linea.get("cantidad")
        cantidad = normalizar_cantidad(valor, "cantidad", permitir_cero=True)
        cantidades[producto_id] = cantidades.get(
            producto_id, Decimal("0")) + cantidad
    productos_existentes(cantidades)
    return cantidades


def descontar_stock_venta(venta_id, sucursal_id: int, lineas: list, usuario: CustomUser) -> dict:
    """
    Descuenta el stock que consume una venta nueva.

    Todas las líneas se aplican o ninguna.

    Args:
        venta_id: Identificador de la venta (entero o texto).
        sucursal_id (int): Sucursal donde se realizó la venta.
        lineas (list): Lista de dicts {producto_id, cantidad, cantidad_para_stock?}.
        usuario (CustomUser): Usuario que registra la venta.

    Returns:
        dict: Respuesta estándar con información de la operación
            - success (bool): True si la operación fue exitosa
            - message (str): Mensaje descriptivo de la operación
            - data (dict):
                - movimientos (int): Movimientos de stock registrados
                - productos (dict): Cantidad descontada por producto

    Raises:
        InsufficientStock: Si alguna línea deja el saldo negativo (con `linea`).
        NotFound: Si la sucursal o algún producto no existe.
        django.core.exceptions.ValidationError: Si la venta ya había descontado stock.
    """
    referencia = _referencia_venta(venta_id)
    sucursal = obtener_sucursal(sucursal_id)
    cantidades = _cantidades_para_stock(lineas)

    with UnidadDeTrabajo(usuario) as uow:
        uow.bloquear_claves((sucursal.id, pid) for pid in cantidades)
        if neto_por_producto(VENTA, referencia, sucursal.id):
            logger.warning(
                f"Venta {referencia} ya descontó stock en sucursal {sucursal.id}")
            raise exceptions.ValidationError(
                f"La venta {referencia} ya descontó stock; use la actualización de venta.")
        movimientos = ajustar_lote(
            [LineaAjuste(sucursal.id, pid, -cantidad, MotivosMovimiento.VENTA)
             for pid, cantidad in cantidades.items() if cantidad > 0],
            usuario, VENTA, referencia)

    logger.info(
        f"Venta {referencia}: stock descontado en sucursal {sucursal.id} "
        f"({len(movimientos)} movimientos)")
    return {
        "success": True,
        "message": "Stock de la venta descontado.",
        "data": {
            "movimientos": len(movimientos),
            "productos": {pid: c for pid, c in cantidades.items() if c > 0},
        }
    }


def restaurar_stock_venta(venta_id, sucursal_id: int, usuario: CustomUser,
                          motivo: str = MotivosMovimiento.CANCELACION_VENTA) -> dict:
    """
    Restituye el stock que una venta tiene descontado.

    La cantidad a restituir surge del historial: por producto, lo descontado
    menos lo ya restituido. Llamar dos veces no restituye de más.

    Args:
        venta_id: Identificador de la venta.
        sucursal_id (int): Sucursal de la venta.
        usuario (CustomUser): Usuario que cancela, devuelve o elimina la venta.
        motivo (str): Cancelación de venta, Devolución de venta o Venta eliminada.

    Returns:
        dict: Respuesta estándar con información de la operación
            - success (bool): True si la operación fue exitosa
            - message (str): Mensaje descriptivo de la operación
            - data (dict):
                - movimientos (int): Movimientos de stock registrados
                - productos (dict): Cantidad restituida por producto
    """
    referencia = _referencia_venta(venta_id)
    sucursal = obtener_sucursal(sucursal_id)
    motivo = normalizar_motivo(
        motivo, por_defecto=MotivosMovimiento.CANCELACION_VENTA)
    if motivo not in MOTIVOS_RESTAURACION:
        raise exceptions.ValidationError(
            f"Motivo de restitución inválido: {motivo}.")

    with UnidadDeTrabajo(usuario) as uow:
        uow.bloquear_claves(
            (sucursal.id, pid) for pid in neto_por_producto(VENTA, referencia, sucursal.id))
        # Con las filas bloqueadas se vuelve a leer el historial
        pendientes = {
            pid: neto for pid, neto in neto_por_producto(VENTA, referencia, sucursal.id).items()
            if neto > 0
        }
        movimientos = []
        if pendientes:
            movimientos = ajustar_lote(
                [LineaAjuste(sucursal.id, pid, neto, motivo)
                 for pid, neto in sorted(pendientes.items())],
                usuario, VENTA, referencia)

    if not movimientos:
        logger.info(f"Venta {referencia}: no había stock para restituir")
        return {
            "success": True,
            "message": "La venta no tiene stock pendiente de restituir.",
            "data": {"movimientos": 0, "productos": {}}
        }

    logger.info(
        f"Venta {referencia}: stock restituido en sucursal {sucursal.id} ({motivo})")
    return {
        "success": True,
        "message": "Stock de la venta restituido.",
        "data": {"movimientos": len(movimientos), "productos": pendientes}
    }


def actualizar_stock_venta(venta_id, sucursal_id: int, lineas: list, usuario: CustomUser) -> dict:
    """
    Corrige el stock de una venta editada.

    Por cada producto compara lo que la venta tiene descontado según el
    historial con la nueva cantidad y registra un único movimiento por la
    diferencia. Todas las diferencias se aplican o ninguna.

    Args:
        venta_id: Identificador de la venta.
        sucursal_id (int): Sucursal de la venta.
        lineas (list): Nuevas líneas {producto_id, cantidad, cantidad_para_stock?}.
            Los productos que ya no figuran se restituyen por completo.
        usuario (CustomUser): Usuario que edita la venta.

    Returns:
        dict: Respuesta estándar con información de la operación
            - success (bool): True si la operación fue exitosa
            - message (str): Mensaje descriptivo de la operación
            - data (dict):
                - movimientos (int): Movimientos de stock registrados
                - diferencias (dict): Cambio aplicado al saldo por producto

    Raises:
        InsufficientStock: Si una mayor cantidad deja el saldo negativo (con `linea`).
        NotFound: Si la sucursal o algún producto no existe.
    """
    referencia = _referencia_venta(venta_id)
    sucursal = obtener_sucursal(sucursal_id)
    nuevas = _cantidades_para_stock(lineas)

    with UnidadDeTrabajo(usuario) as uow:
        anteriores = neto_por_producto(VENTA, referencia, sucursal.id)
        uow.bloquear_claves(
            (sucursal.id, pid) for pid in set(anteriores) | set(nuevas))
        anteriores = neto_por_producto(VENTA, referencia, sucursal.id)

        diferencias = {}
        for pid in sorted(set(anteriores) | set(nuevas)):
            delta = anteriores.get(pid, Decimal("0")) - nuevas.get(pid, Decimal("0"))
            if delta != 0:
                diferencias[pid] = delta
        movimientos = []
        if diferencias:
            movimientos = ajustar_lote(
                [LineaAjuste(sucursal.id, pid, delta, MotivosMovimiento.EDICION_VENTA)
                 for pid, delta in diferencias.items()],
                usuario, VENTA, referencia)

    logger.info(
        f"Venta {referencia}: stock actualizado en sucursal {sucursal.id} "
        f"({len(movimientos)} movimientos)")
    return {
        "success": True,
        "message": "Stock de la venta actualizado." if movimientos
        else "La edición no modifica el stock.",
        "data": {"movimientos": len(movimientos), "diferencias": diferencias}
    }
