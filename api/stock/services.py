import logging
from decimal import Decimal
from typing import List, Optional

from django.conf import settings
from django.core import exceptions
from django.db.models import F, ExpressionWrapper, DecimalField

from api.constants import MotivosMovimiento
from api.productos.selectors import productos_existentes
from api.sucursales.selectors import obtener_sucursal
from api.users.models import CustomUser
from api.utils import validate_id
from .exceptions import InsufficientStock
from .models import StockSucursal, MovimientoStock
from .unit_of_work import UnidadDeTrabajo, LineaAjuste
from .utils import normalizar_cantidad, normalizar_motivo

logger = logging.getLogger(__name__)


def obtener_saldo(sucursal_id: int, producto_id: int) -> Decimal:
    """
    Obtiene el saldo actual de un producto en una sucursal.

    No crea la entrada si no existe.

    Args:
        sucursal_id (int): Identificador de la sucursal.
        producto_id (int): Identificador del producto.

    Returns:
        Decimal: Cantidad disponible, 0 si el producto nunca tuvo stock en la sucursal.
    """
    validate_id(sucursal_id, "Sucursal")
    validate_id(producto_id, "Producto")
    cantidad = (StockSucursal.objects
                .filter(sucursal_id=sucursal_id, producto_id=producto_id)
                .values_list("cantidad", flat=True)
                .first())
    return cantidad if cantidad is not None else Decimal("0")


def asegurar_entrada(sucursal_id: int, producto_id: int, usuario: Optional[CustomUser] = None) -> StockSucursal:
    """
    Garantiza que exista la entrada de stock (sucursal, producto).

    Si no existe, la crea con el stock inicial y el stock mínimo del
    producto y, si el stock inicial es mayor a 0, registra el movimiento
    de inicialización correspondiente.

    Args:
        sucursal_id (int): Identificador de la sucursal.
        producto_id (int): Identificador del producto.
        usuario (CustomUser, optional): Usuario que provoca la creación.

    Returns:
        StockSucursal: La entrada existente o recién creada.

    Raises:
        NotFound: Si la sucursal o el producto no existen.
    """
    validate_id(sucursal_id, "Sucursal")
    validate_id(producto_id, "Producto")
    with UnidadDeTrabajo(usuario) as uow:
        return uow.bloquear(sucursal_id, producto_id)


def fijar_stock(sucursal_id: int, producto_id: int, nueva_cantidad, motivo: str,
                usuario: CustomUser, stock_minimo=None) -> Optional[MovimientoStock]:
    """
    Fija el saldo de un producto en una sucursal a un valor absoluto.

    El tipo del movimiento surge del signo de la diferencia. Si la
    diferencia es cero no se registra ningún movimiento.

    Args:
        sucursal_id (int): Identificador de la sucursal.
        producto_id (int): Identificador del producto.
        nueva_cantidad: Nuevo saldo (>= 0). Si es None solo se actualiza el stock mínimo.
        motivo (str): Motivo del cambio.
        usuario (CustomUser): Usuario que ejecuta la operación.
        stock_minimo (optional): Nuevo stock mínimo (>= 0).

    Returns:
        MovimientoStock | None: Movimiento registrado o None si no hubo cambio de saldo.

    Raises:
        InvalidQuantity: Si la nueva cantidad o el stock mínimo son negativos.
        NotFound: Si la sucursal o el producto no existen.
    """
    validate_id(sucursal_id, "Sucursal")
    validate_id(producto_id, "Producto")
    cantidad = (normalizar_cantidad(nueva_cantidad, "cantidad", permitir_cero=True)
                if nueva_cantidad is not None else None)
    minimo = (normalizar_cantidad(stock_minimo, "stock_minimo", permitir_cero=True)
              if stock_minimo is not None else None)
    motivo = normalizar_motivo(
        motivo, por_defecto=MotivosMovimiento.ACTUALIZACION_MANUAL)

    movimiento = None
    with UnidadDeTrabajo(usuario) as uow:
        uow.bloquear(sucursal_id, producto_id)
        if cantidad is not None:
            movimiento = uow.fijar(
                sucursal_id, producto_id, cantidad, motivo,
                MovimientoStock.ReferenciaTipo.AJUSTE)
        if minimo is not None and uow.actualizar_minimo(sucursal_id, producto_id, minimo):
            logger.info(
                f"Stock mínimo de producto {producto_id} en sucursal {sucursal_id} actualizado a {minimo}")

    if movimiento is not None:
        logger.info(
            f"Stock fijado: producto {producto_id} en sucursal {sucursal_id} "
            f"{movimiento.stock_anterior} -> {movimiento.stock_nuevo} por {getattr(usuario, 'id', None)}")
    return movimiento


def ajustar_stock(sucursal_id: int, producto_id: int, ajuste, motivo: str, usuario: CustomUser,
                  referencia_tipo: str = MovimientoStock.ReferenciaTipo.AJUSTE,
                  referencia_id=None, permitir_negativo: bool = False) -> Optional[MovimientoStock]:
    """
    Aplica un ajuste relativo (positivo o negativo) al saldo.

    Args:
        sucursal_id (int): Identificador de la sucursal.
        producto_id (int): Identificador del producto.
        ajuste: Cambio con signo.
        motivo (str): Motivo del ajuste.
        usuario (CustomUser): Usuario que ejecuta la operación.
        referencia_tipo (str): Tipo de operación de origen (por defecto ajuste).
        referencia_id (optional): Identificador de la operación de origen.
        permitir_negativo (bool): Solo para reconciliaciones correctivas: si el
            saldo no alcanza se descuenta lo disponible y la entrada queda en 0.

    Returns:
        MovimientoStock | None: Movimiento registrado o None si el ajuste es 0.

    Raises:
        InvalidQuantity: Si el ajuste no es numérico.
        InsufficientStock: Si el saldo quedaría negativo.
        NotFound: Si la sucursal o el producto no existen.
    """
    validate_id(sucursal_id, "Sucursal")
    validate_id(producto_id, "Producto")
    delta = normalizar_cantidad(
        ajuste, "ajuste", permitir_cero=True, permitir_negativo=True)
    motivo = normalizar_motivo(
        motivo, por_defecto=MotivosMovimiento.AJUSTE_MANUAL)
    referencia_tipo = MovimientoStock.ReferenciaTipo(referencia_tipo)

    with UnidadDeTrabajo(usuario) as uow:
        movimiento = uow.aplicar(
            sucursal_id, producto_id, delta, motivo, referencia_tipo,
            referencia_id, permitir_negativo=permitir_negativo)

    if movimiento is not None:
        logger.info(
            f"Stock ajustado ({referencia_tipo}): producto {producto_id} en sucursal {sucursal_id} "
            f"{movimiento.stock_anterior} -> {movimiento.stock_nuevo}")
    return movimiento


def ajustar_lote(lineas: List[LineaAjuste], usuario: CustomUser, referencia_tipo: str,
                 referencia_id=None) -> List[MovimientoStock]:
    """
    Aplica varios ajustes relativos como una única operación atómica.

    Las entradas se bloquean en orden (sucursal, producto) antes de aplicar
    cualquier línea. Si una línea falla no se aplica ninguna.

    Args:
        lineas (List[LineaAjuste]): Líneas a aplicar, en orden.
        usuario (CustomUser): Usuario que ejecuta la operación.
        referencia_tipo (str): Tipo de operación de origen.
        referencia_id (optional): Identificador de la operación de origen.

    Returns:
        List[MovimientoStock]: Movimientos registrados (las líneas con delta 0 no generan movimiento).

    Raises:
        InsufficientStock: Con `linea` indicando el índice de la línea que falló.
        NotFound: Si alguna sucursal o producto no existe.
    """
    referencia_tipo = MovimientoStock.ReferenciaTipo(referencia_tipo)
    for linea in lineas:
        validate_id(linea.sucursal_id, "Sucursal")
        validate_id(linea.producto_id, "Producto")

    with UnidadDeTrabajo(usuario) as uow:
        uow.bloquear_claves(linea.clave for linea in lineas)
        for indice, linea in enumerate(lineas):
            try:
                uow.aplicar(
                    linea.sucursal_id, linea.producto_id, linea.delta,
                    linea.motivo, referencia_tipo, referencia_id)
            except InsufficientStock as error:
                logger.warning(
                    f"Operación {referencia_tipo} {referencia_id} rechazada en la línea {indice}: {error.message}")
                raise error.en_linea(indice)
        movimientos = list(uow.movimientos)

    logger.info(
        f"Lote {referencia_tipo} {referencia_id} aplicado: {len(movimientos)} movimientos")
    return movimientos


def inicializar_sucursal(sucursal_id: int, productos: list, usuario: CustomUser) -> dict:
    """
    Crea el stock de una sucursal solo para los productos que todavía no lo tienen.

    Las entradas existentes no se modifican, por lo que llamar dos veces con
    los mismos datos no cambia nada la segunda vez.

    Args:
        sucursal_id (int): Identificador de la sucursal.
        productos (list): Lista de dicts {producto_id, cantidad?, stock_minimo?}.
        usuario (CustomUser): Usuario que ejecuta la inicialización.

    Returns:
        dict: Respuesta estándar con información de la operación
            - success (bool): True si la operación fue exitosa
            - message (str): Mensaje descriptivo de la operación
            - data (dict):
                - creados (int): Cantidad de entradas creadas
                - productos (list[int]): Ids de productos creados
                - omitidos (list[int]): Ids de productos que ya tenían stock

    Raises:
        InvalidQuantity: Si alguna cantidad o stock mínimo es negativo.
        NotFound: Si la sucursal o algún producto no existen.
        django.core.exceptions.ValidationError: Si un producto se repite.
    """
    sucursal = obtener_sucursal(sucursal_id)
    if not productos:
        raise exceptions.ValidationError(
            "Debe indicar al menos un producto para inicializar.")

    solicitados = {}
    for item in productos:
        producto_id = item.get("producto_id")
        validate_id(producto_id, "Producto")
        if producto_id in solicitados:
            raise exceptions.ValidationError(
                f"El producto {producto_id} está repetido.")
        solicitados[producto_id] = (
            normalizar_cantidad(item.get("cantidad", 0),
                                "cantidad", permitir_cero=True),
            normalizar_cantidad(item.get("stock_minimo", settings.STOCK_MINIMO_POR_DEFECTO),
                                "stock_minimo", permitir_cero=True),
        )
    productos_existentes(solicitados)

    creados = []
    with UnidadDeTrabajo(usuario) as uow:
        existentes = set(
            StockSucursal.objects.select_for_update()
            .filter(sucursal_id=sucursal.id, producto_id__in=solicitados)
            .values_list("producto_id", flat=True)
        )
        for producto_id in sorted(solicitados):
            if producto_id in existentes:
                continue
            cantidad, minimo = solicitados[producto_id]
            if uow.crear(sucursal.id, producto_id, minimo) is None:
                continue
            uow.aplicar(
                sucursal.id, producto_id, cantidad,
                MotivosMovimiento.INICIALIZACION,
                MovimientoStock.ReferenciaTipo.INICIALIZACION, sucursal.id)
            creados.append(producto_id)

    omitidos = sorted(set(solicitados) - set(creados))
    logger.info(
        f"Sucursal {sucursal.id} inicializada: {len(creados)} creados, {len(omitidos)} omitidos")
    return {
        "success": True,
        "message": f"Stock inicializado para {len(creados)} productos.",
        "data": {
            "creados": len(creados),
            "productos": creados,
            "omitidos": omitidos,
        }
    }


def listar_stock_bajo(sucursal_id: int) -> List[StockSucursal]:
    """
    Lista las entradas de una sucursal con cantidad menor o igual al stock mínimo.

    Returns:
        List[StockSucursal]: Ordenadas por diferencia (stock_minimo - cantidad) descendente.
    """
    validate_id(sucursal_id, "Sucursal")
    diferencia = ExpressionWrapper(
        F("stock_minimo") - F("cantidad"),
        output_field=DecimalField(max_digits=14, decimal_places=3))
    return list(
        StockSucursal.objects
        .filter(sucursal_id=sucursal_id, cantidad__lte=F("stock_minimo"))
        .select_related("producto", "sucursal")
        .annotate(faltante=diferencia)
        .order_by("-faltante", "producto_id")
    )
