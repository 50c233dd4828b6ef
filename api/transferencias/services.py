import logging
from functools import partial
from typing import Dict, List

from django.core import exceptions
from django.db import transaction
from django.utils import timezone

from api.constants import MotivosMovimiento
from api.productos.selectors import productos_existentes
from api.stock.exceptions import (
    InvalidQuantity, InvalidTransition, InsufficientStock, NotFound, SameBranch,
)
from api.stock.models import MovimientoStock
from api.stock.services import ajustar_lote, obtener_saldo
from api.stock.unit_of_work import UnidadDeTrabajo, LineaAjuste
from api.stock.utils import normalizar_cantidad, normalizar_motivo
from api.sucursales.selectors import obtener_sucursal
from api.users.models import CustomUser
from api.utils import validate_id
from .models import Transferencia, TransferenciaDetalle
from .signals import transferencia_solicitada, transferencia_procesada

logger = logging.getLogger(__name__)


def _agrupar_lineas(items, campo: str) -> Dict[int, object]:
    """Suma las cantidades de las líneas repetidas: {producto_id: cantidad}."""
    if not items:
        raise exceptions.ValidationError(
            f"Debe indicar al menos un producto en {campo}.")
    agrupadas = {}
    for item in items:
        producto_id = item.get("producto_id")
        validate_id(producto_id, "Producto")
        cantidad = normalizar_cantidad(item.get("cantidad"), "cantidad")
        agrupadas[producto_id] = agrupadas.get(producto_id, 0) + cantidad
    return agrupadas


def _bloquear_transferencia(transferencia_id: int) -> Transferencia:
    validate_id(transferencia_id, "Transferencia")
    try:
        return (Transferencia.objects.select_for_update()
                .select_related("sucursal_origen", "sucursal_destino")
                .get(pk=transferencia_id))
    except Transferencia.DoesNotExist:
        raise NotFound(
            f"La transferencia {transferencia_id} no existe.",
            recurso="transferencia", recurso_id=transferencia_id)


def _exigir_estado(transferencia: Transferencia, esperado: str, solicitado: str = None,
                   accion: str = None) -> None:
    """Valida el estado actual; `accion` describe operaciones que no cambian el estado."""
    accion = accion or f"pasar a {solicitado}"
    if transferencia.estado != esperado:
        logger.warning(
            f"Transferencia {transferencia.id}: no se puede {accion} en estado {transferencia.estado}")
        raise InvalidTransition(
            f"La transferencia {transferencia.id} está {transferencia.estado}; "
            f"solo se puede {accion} desde {esperado}.",
            estado_actual=transferencia.estado,
            estado_solicitado=solicitado,
        )


def _aplicar_lineas(transferencia: Transferencia, lineas: List[LineaAjuste],
                    usuario: CustomUser) -> List[MovimientoStock]:
    """
    Aplica las líneas de stock de la transferencia.

    Las líneas vienen de a pares (una por sucursal) por cada producto; el
    índice de un InsufficientStock se traduce al índice del producto.
    """
    try:
        return ajustar_lote(
            lineas, usuario, MovimientoStock.ReferenciaTipo.TRANSFERENCIA, transferencia.id)
    except InsufficientStock as error:
        if error.linea is not None:
            error.en_linea(error.linea // 2)
        raise


def _notificar(transferencia: Transferencia, usuario: CustomUser) -> None:
    transaction.on_commit(partial(
        transferencia_procesada.send,
        sender=Transferencia,
        transferencia_id=transferencia.id,
        estado=transferencia.estado,
        usuario_id=getattr(usuario, "id", None),
    ))


def crear_transferencia(sucursal_origen_id: int, sucursal_destino_id: int, productos: list,
                        motivo: str, usuario: CustomUser) -> dict:
    """
    Registra una solicitud de transferencia entre dos sucursales.

    La solicitud queda pendiente y no modifica el stock. La disponibilidad en
    el origen se verifica al momento de la solicitud y nuevamente al aprobar.

    Args:
        sucursal_origen_id (int): Sucursal que entrega.
        sucursal_destino_id (int): Sucursal que recibe.
        productos (list): Lista de dicts {producto_id, cantidad}. Las líneas
            repetidas de un mismo producto se suman.
        motivo (str): Motivo de la solicitud.
        usuario (CustomUser): Usuario que solicita.

    Returns:
        dict: Respuesta estándar con información de la operación
            - success (bool): True si la operación fue exitosa
            - message (str): Mensaje descriptivo de la operación
            - data (dict):
                - transferencia (Transferencia): Transferencia creada

    Raises:
        SameBranch: Si origen y destino son la misma sucursal.
        InvalidQuantity: Si una cantidad es <= 0 o supera el saldo del origen.
        NotFound: Si alguna sucursal o producto no existe.
    """
    validate_id(sucursal_origen_id, "Sucursal origen")
    validate_id(sucursal_destino_id, "Sucursal destino")
    if sucursal_origen_id == sucursal_destino_id:
        raise SameBranch(
            "La sucursal de origen y la de destino deben ser distintas.",
            sucursal_id=sucursal_origen_id)

    origen = obtener_sucursal(sucursal_origen_id, solo_activas=True)
    destino = obtener_sucursal(sucursal_destino_id, solo_activas=True)
    lineas = _agrupar_lineas(productos, "productos")
    productos_existentes(lineas)
    motivo = normalizar_motivo(motivo)

    for producto_id, cantidad in lineas.items():
        disponible = obtener_saldo(origen.id, producto_id)
        if cantidad > disponible:
            logger.warning(
                f"Solicitud de transferencia rechazada: producto {producto_id} "
                f"disponible {disponible} en sucursal {origen.id}, solicitado {cantidad}")
            raise InvalidQuantity(
                f"La cantidad solicitada del producto {producto_id} ({cantidad}) supera "
                f"el stock disponible en la sucursal de origen ({disponible}).",
                producto_id=producto_id,
                disponible=str(disponible),
                solicitado=str(cantidad),
            )

    with transaction.atomic():
        transferencia = Transferencia.objects.create(
            sucursal_origen=origen,
            sucursal_destino=destino,
            motivo=motivo,
            usuario_solicita=usuario,
        )
        TransferenciaDetalle.objects.bulk_create([
            TransferenciaDetalle(
                transferencia=transferencia, producto_id=producto_id, cantidad=cantidad)
            for producto_id, cantidad in sorted(lineas.items())
        ])
        transaction.on_commit(partial(
            transferencia_solicitada.send,
            sender=Transferencia,
            transferencia_id=transferencia.id,
            usuario_id=usuario.id,
        ))

    logger.info(
        f"Transferencia {transferencia.id} solicitada por {usuario.id}: "
        f"{origen.id} -> {destino.id}, {len(lineas)} productos")
    return {
        "success": True,
        "message": "Transferencia solicitada correctamente.",
        "data": {"transferencia": transferencia}
    }


def aprobar_transferencia(transferencia_id: int, usuario: CustomUser) -> dict:
    """
    Aprueba una transferencia pendiente y mueve el stock.

    Por cada línea descuenta del origen y acredita en el destino. Si alguna
    línea no tiene stock suficiente en el origen no se aplica ninguna y la
    transferencia sigue pendiente.

    Args:
        transferencia_id (int): Transferencia a aprobar.
        usuario (CustomUser): Administrador que aprueba.

    Returns:
        dict: Respuesta estándar con información de la operación
            - success (bool): True si la operación fue exitosa
            - message (str): Mensaje descriptivo de la operación
            - data (dict):
                - transferencia (Transferencia): Transferencia aprobada
                - movimientos (int): Movimientos de stock registrados

    Raises:
        NotFound: Si la transferencia no existe.
        InvalidTransition: Si la transferencia no está pendiente.
        InsufficientStock: Si el origen no tiene stock suficiente (con `linea`).
    """
    with UnidadDeTrabajo(usuario):
        transferencia = _bloquear_transferencia(transferencia_id)
        _exigir_estado(transferencia, Transferencia.Estado.PENDIENTE,
                       Transferencia.Estado.APROBADA)
        origen, destino = transferencia.sucursal_origen, transferencia.sucursal_destino

        lineas = []
        for detalle in transferencia.productos.order_by("producto_id"):
            lineas.append(LineaAjuste(
                origen.id, detalle.producto_id, -detalle.cantidad,
                MotivosMovimiento.TRANSFERENCIA_SALIDA.format(sucursal=destino.nombre)))
            lineas.append(LineaAjuste(
                destino.id, detalle.producto_id, detalle.cantidad,
                MotivosMovimiento.TRANSFERENCIA_ENTRADA.format(sucursal=origen.nombre)))
        movimientos = _aplicar_lineas(transferencia, lineas, usuario)

        transferencia.estado = Transferencia.Estado.APROBADA
        transferencia.usuario_aprueba = usuario
        transferencia.fecha_resolucion = timezone.now()
        transferencia.save(update_fields=[
            "estado", "usuario_aprueba", "fecha_resolucion", "updated_at"])
        _notificar(transferencia, usuario)

    logger.info(
        f"Transferencia {transferencia.id} aprobada por {usuario.id}: {len(movimientos)} movimientos")
    return {
        "success": True,
        "message": "Transferencia aprobada y stock transferido.",
        "data": {"transferencia": transferencia, "movimientos": len(movimientos)}
    }


def rechazar_transferencia(transferencia_id: int, motivo: str, usuario: CustomUser) -> dict:
    """
    Rechaza una transferencia pendiente. No modifica el stock.

    Raises:
        NotFound: Si la transferencia no existe.
        InvalidTransition: Si la transferencia no está pendiente.
    """
    motivo = normalizar_motivo(motivo)
    with transaction.atomic():
        transferencia = _bloquear_transferencia(transferencia_id)
        _exigir_estado(transferencia, Transferencia.Estado.PENDIENTE,
                       Transferencia.Estado.RECHAZADA)
        transferencia.estado = Transferencia.Estado.RECHAZADA
        transferencia.motivo_rechazo = motivo or None
        transferencia.usuario_aprueba = usuario
        transferencia.fecha_resolucion = timezone.now()
        transferencia.save(update_fields=[
            "estado", "motivo_rechazo", "usuario_aprueba", "fecha_resolucion", "updated_at"])
        _notificar(transferencia, usuario)

    logger.info(f"Transferencia {transferencia.id} rechazada por {usuario.id}")
    return {
        "success": True,
        "message": "Transferencia rechazada.",
        "data": {"transferencia": transferencia}
    }


def devolver_transferencia(transferencia_id: int, devoluciones: list, usuario: CustomUser) -> dict:
    """
    Registra la devolución parcial de productos de una transferencia aprobada.

    Acredita lo devuelto en el origen y lo descuenta del destino. La
    transferencia sigue aprobada aunque se devuelva todo.

    Args:
        transferencia_id (int): Transferencia aprobada.
        devoluciones (list): Lista de dicts {producto_id, cantidad}.
        usuario (CustomUser): Usuario que registra la devolución.

    Returns:
        dict: Respuesta estándar con información de la operación
            - success (bool): True si la operación fue exitosa
            - message (str): Mensaje descriptivo de la operación
            - data (dict):
                - transferencia (Transferencia): Transferencia actualizada
                - devueltos (dict): Cantidad devuelta acumulada por producto

    Raises:
        InvalidTransition: Si la transferencia no está aprobada.
        InvalidQuantity: Si una cantidad supera lo pendiente de devolución o
            no queda nada por devolver.
        NotFound: Si la transferencia no existe o un producto no pertenece a ella.
        InsufficientStock: Si el destino ya no tiene el stock a devolver.
    """
    solicitadas = _agrupar_lineas(devoluciones, "devoluciones")

    with UnidadDeTrabajo(usuario):
        transferencia = _bloquear_transferencia(transferencia_id)
        _exigir_estado(transferencia, Transferencia.Estado.APROBADA,
                       accion="registrar devoluciones")
        detalles = {
            detalle.producto_id: detalle
            for detalle in transferencia.productos.select_for_update()
        }
        if all(d.pendiente_devolucion == 0 for d in detalles.values()):
            raise InvalidQuantity(
                "No hay productos pendientes de devolución en la transferencia.")

        origen, destino = transferencia.sucursal_origen, transferencia.sucursal_destino
        lineas = []
        for producto_id, cantidad in sorted(solicitadas.items()):
            detalle = detalles.get(producto_id)
            if detalle is None:
                raise NotFound(
                    f"El producto {producto_id} no forma parte de la transferencia {transferencia.id}.",
                    recurso="producto", recurso_id=producto_id)
            if cantidad > detalle.pendiente_devolucion:
                raise InvalidQuantity(
                    f"No se puede devolver {cantidad} del producto {producto_id}: "
                    f"pendiente de devolución {detalle.pendiente_devolucion}.",
                    producto_id=producto_id,
                    pendiente=str(detalle.pendiente_devolucion),
                    solicitado=str(cantidad),
                )
            lineas.append(LineaAjuste(
                origen.id, producto_id, cantidad,
                MotivosMovimiento.DEVOLUCION_TRANSFERENCIA_ENTRADA.format(sucursal=destino.nombre)))
            lineas.append(LineaAjuste(
                destino.id, producto_id, -cantidad,
                MotivosMovimiento.DEVOLUCION_TRANSFERENCIA_SALIDA.format(sucursal=origen.nombre)))
        _aplicar_lineas(transferencia, lineas, usuario)

        for producto_id, cantidad in solicitadas.items():
            detalle = detalles[producto_id]
            detalle.devuelto += cantidad
            detalle.save(update_fields=["devuelto"])
        transferencia.save(update_fields=["updated_at"])

    logger.info(
        f"Devolución registrada en transferencia {transferencia.id} por {usuario.id}: "
        f"{len(solicitadas)} productos")
    return {
        "success": True,
        "message": "Devolución registrada.",
        "data": {
            "transferencia": transferencia,
            "devueltos": {pid: d.devuelto for pid, d in detalles.items()},
        }
    }


def cancelar_transferencia(transferencia_id: int, motivo: str, usuario: CustomUser) -> dict:
    """
    Cancela una transferencia aprobada y revierte lo que no fue devuelto.

    Por cada línea acredita en el origen y descuenta del destino la cantidad
    pendiente de devolución. Las líneas ya devueltas por completo se omiten,
    por lo que cancelar una transferencia devuelta en su totalidad no mueve stock.

    Args:
        transferencia_id (int): Transferencia aprobada.
        motivo (str): Motivo de la cancelación (obligatorio).
        usuario (CustomUser): Administrador que cancela.

    Returns:
        dict: Respuesta estándar con información de la operación
            - success (bool): True si la operación fue exitosa
            - message (str): Mensaje descriptivo de la operación
            - data (dict):
                - transferencia (Transferencia): Transferencia cancelada
                - movimientos (int): Movimientos de stock registrados

    Raises:
        django.core.exceptions.ValidationError: Si el motivo está vacío.
        InvalidTransition: Si la transferencia no está aprobada.
        InsufficientStock: Si el destino ya no tiene el stock a revertir.
    """
    motivo = normalizar_motivo(motivo, requerido=True)

    with UnidadDeTrabajo(usuario):
        transferencia = _bloquear_transferencia(transferencia_id)
        _exigir_estado(transferencia, Transferencia.Estado.APROBADA,
                       Transferencia.Estado.CANCELADA)
        origen, destino = transferencia.sucursal_origen, transferencia.sucursal_destino

        lineas = []
        for detalle in transferencia.productos.order_by("producto_id"):
            restante = detalle.pendiente_devolucion
            if restante == 0:
                continue
            lineas.append(LineaAjuste(
                origen.id, detalle.producto_id, restante,
                MotivosMovimiento.CANCELACION_TRANSFERENCIA_ENTRADA.format(sucursal=destino.nombre)))
            lineas.append(LineaAjuste(
                destino.id, detalle.producto_id, -restante,
                MotivosMovimiento.CANCELACION_TRANSFERENCIA_SALIDA.format(sucursal=origen.nombre)))
        movimientos = _aplicar_lineas(transferencia, lineas, usuario) if lineas else []

        transferencia.estado = Transferencia.Estado.CANCELADA
        transferencia.motivo_cancelacion = motivo
        transferencia.usuario_cancela = usuario
        transferencia.fecha_cancelacion = timezone.now()
        transferencia.save(update_fields=[
            "estado", "motivo_cancelacion", "usuario_cancela", "fecha_cancelacion", "updated_at"])
        _notificar(transferencia, usuario)

    logger.info(
        f"Transferencia {transferencia.id} cancelada por {usuario.id}: {len(movimientos)} movimientos")
    return {
        "success": True,
        "message": "Transferencia cancelada y stock devuelto a la sucursal de origen.",
        "data": {"transferencia": transferencia, "movimientos": len(movimientos)}
    }


def cambiar_estado_transferencia(transferencia_id: int, estado: str, motivo: str,
                                 usuario: CustomUser) -> dict:
    """
    Aprueba o rechaza una transferencia pendiente según `estado`.

    Raises:
        django.core.exceptions.ValidationError: Si el estado no es aprobada ni rechazada.
    """
    if estado == Transferencia.Estado.APROBADA:
        return aprobar_transferencia(transferencia_id, usuario)
    if estado == Transferencia.Estado.RECHAZADA:
        return rechazar_transferencia(transferencia_id, motivo, usuario)
    raise exceptions.ValidationError(
        'Estado inválido. Debe ser "aprobada" o "rechazada".')
