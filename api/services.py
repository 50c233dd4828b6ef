import logging
from functools import partial
from typing import Iterable, List

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.db.models import Q, QuerySet

from api.constants import NotificationCodes
from api.models import Notificacion
from api.stock.exceptions import NotFound
from api.stock.models import StockSucursal
from api.transferencias.models import Transferencia
from api.users.models import CustomUser
from api.utils import validate_id

logger = logging.getLogger(__name__)


def sendEmail(destination_email: str, notificacion: Notificacion) -> None:
    """
    Envía por email el contenido de una notificación usando el backend de Django.

    Args:
        destination_email (str): Email de destino
        notificacion (Notificacion): Notificación a enviar

    Raises:
        Exception: Se propaga el error del backend de email.
    """
    try:
        send_mail(
            subject=notificacion.titulo,
            message=notificacion.mensaje,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[destination_email],
            fail_silently=False,
        )
    except Exception as e:
        logger.error(f"Error enviando el correo: {e}")
        raise


def administradores() -> QuerySet:
    """Usuarios activos que pueden aprobar transferencias y recibir alertas de stock."""
    return CustomUser.objects.filter(
        Q(is_superuser=True) | Q(rol=CustomUser.Rol.ADMINISTRADOR),
        is_active=True,
    ).order_by("id")


def crear_notificacion(usuario: CustomUser, tipo: str, titulo: str, mensaje: str,
                       prioridad: str = Notificacion.Prioridad.MEDIA, datos: dict = None) -> Notificacion:
    """
    Crea una notificación en la bandeja del usuario y encola su envío por email.

    El envío se encola cuando la transacción en curso se confirma.

    Args:
        usuario (CustomUser): Destinatario.
        tipo (str): Código de NotificationCodes.
        titulo (str): Título corto.
        mensaje (str): Texto de la notificación.
        prioridad (str): alta, media o baja.
        datos (dict, optional): Datos de contexto.

    Returns:
        Notificacion: La notificación creada.

    Raises:
        ValueError: Si el código de notificación no existe.
    """
    if tipo not in NotificationCodes.ALL_CODES:
        raise ValueError(f"Código de notificación inválido: {tipo}")

    # Import diferido: tasks importa este módulo
    from .tasks import enviar_notificacion_task

    notificacion = Notificacion.objects.create(
        usuario=usuario,
        tipo=tipo,
        titulo=titulo,
        mensaje=mensaje,
        prioridad=prioridad,
        datos=datos or {},
    )
    transaction.on_commit(partial(
        enviar_notificacion_task.delay, notificacion.id))  # type: ignore[attr-defined]
    logger.info(
        f"Notificación {notificacion.id} ({tipo}) creada para usuario {usuario.id}")
    return notificacion


def notificar_transferencia_solicitada(transferencia) -> List[Notificacion]:
    """Avisa a los administradores que hay una transferencia pendiente de aprobación."""
    origen, destino = transferencia.sucursal_origen, transferencia.sucursal_destino
    mensaje = (
        f"{transferencia.usuario_solicita.username} solicitó una transferencia de "
        f"{origen.nombre} a {destino.nombre} ({transferencia.productos.count()} productos)")
    datos = {
        "transferencia_id": transferencia.id,
        "sucursal_origen": origen.nombre,
        "sucursal_destino": destino.nombre,
    }
    return [
        crear_notificacion(
            admin, NotificationCodes.TRANSFERENCIA_SOLICITADA,
            "Nueva Transferencia Pendiente", mensaje, Notificacion.Prioridad.MEDIA, datos)
        for admin in administradores().exclude(pk=transferencia.usuario_solicita_id)
    ]


def notificar_transferencia_procesada(transferencia) -> Notificacion:
    """
    Avisa al solicitante que su transferencia fue aprobada, rechazada o cancelada.

    Returns:
        Notificacion: La notificación creada para el solicitante.
    """
    origen, destino = transferencia.sucursal_origen, transferencia.sucursal_destino
    datos = {
        "transferencia_id": transferencia.id,
        "estado": transferencia.estado,
        "sucursal_origen": origen.nombre,
        "sucursal_destino": destino.nombre,
        "productos_count": transferencia.productos.count(),
    }
    base = f"Su transferencia de {origen.nombre} a {destino.nombre}"

    if transferencia.estado == Transferencia.Estado.APROBADA:
        tipo = NotificationCodes.TRANSFERENCIA_PROCESADA
        titulo = "Transferencia Aprobada"
        mensaje = f"{base} ha sido APROBADA"
        prioridad = Notificacion.Prioridad.ALTA
    elif transferencia.estado == Transferencia.Estado.RECHAZADA:
        tipo = NotificationCodes.TRANSFERENCIA_PROCESADA
        titulo = "Transferencia Rechazada"
        mensaje = f"{base} ha sido RECHAZADA"
        if transferencia.motivo_rechazo:
            mensaje += f": {transferencia.motivo_rechazo}"
            datos["motivo_rechazo"] = transferencia.motivo_rechazo
        prioridad = Notificacion.Prioridad.MEDIA
    elif transferencia.estado == Transferencia.Estado.CANCELADA:
        tipo = NotificationCodes.TRANSFERENCIA_CANCELADA
        titulo = "Transferencia Cancelada"
        mensaje = f"{base} ha sido CANCELADA: {transferencia.motivo_cancelacion}"
        datos["motivo_cancelacion"] = transferencia.motivo_cancelacion
        prioridad = Notificacion.Prioridad.MEDIA
    else:
        raise ValueError(
            f"La transferencia {transferencia.id} no fue procesada (estado {transferencia.estado}).")

    return crear_notificacion(
        transferencia.usuario_solicita, tipo, titulo, mensaje, prioridad, datos)


def notificar_stock_bajo(entrada_ids: Iterable[int]) -> List[Notificacion]:
    """
    Avisa a los administradores qué productos quedaron en o por debajo del stock mínimo.

    Se crea una notificación por administrador con el detalle de todas las entradas.
    """
    entradas = list(
        StockSucursal.objects.filter(pk__in=list(entrada_ids))
        .select_related("producto", "sucursal")
        .order_by("sucursal_id", "producto_id")
    )
    if not entradas:
        return []

    lineas = [
        f"- {e.producto.nombre} en {e.sucursal.nombre}: {e.cantidad} (mínimo {e.stock_minimo})"
        for e in entradas
    ]
    mensaje = "Productos con stock bajo:\n" + "\n".join(lineas)
    datos = {
        "entradas": [
            {
                "sucursal_id": e.sucursal_id,
                "producto_id": e.producto_id,
                "cantidad": str(e.cantidad),
                "stock_minimo": str(e.stock_minimo),
            }
            for e in entradas
        ]
    }
    return [
        crear_notificacion(
            admin, NotificationCodes.STOCK_BAJO, "Stock Bajo", mensaje,
            Notificacion.Prioridad.ALTA, datos)
        for admin in administradores()
    ]


def listar_notificaciones(usuario: CustomUser, solo_no_leidas: bool = False) -> QuerySet:
    qs = Notificacion.objects.filter(usuario=usuario)
    if solo_no_leidas:
        qs = qs.filter(leida=False)
    return qs


def marcar_leida(notificacion_id: int, usuario: CustomUser) -> Notificacion:
    """
    Marca como leída una notificación del usuario.

    Raises:
        NotFound: Si la notificación no existe o pertenece a otro usuario.
    """
    validate_id(notificacion_id, "Notificación")
    try:
        notificacion = Notificacion.objects.get(
            pk=notificacion_id, usuario=usuario)
    except Notificacion.DoesNotExist:
        raise NotFound(
            f"La notificación {notificacion_id} no existe.",
            recurso="notificacion", recurso_id=notificacion_id)
    if not notificacion.leida:
        notificacion.leida = True
        notificacion.save(update_fields=["leida"])
    return notificacion
