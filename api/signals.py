import logging
from django.conf import settings
from django.dispatch import receiver

from api.cache import invalidar_cache_stock
from api.stock.signals import stock_actualizado, stock_bajo
from api.transferencias.models import Transferencia
from api.transferencias.signals import transferencia_solicitada, transferencia_procesada
from .services import (
    notificar_stock_bajo,
    notificar_transferencia_procesada,
    notificar_transferencia_solicitada,
)


logger = logging.getLogger(__name__)


@receiver(stock_actualizado)
def invalidar_cache_por_stock(sender, claves, **kwargs):
    """Invalida el cache de stock de las sucursales y productos modificados."""
    invalidar_cache_stock(
        sucursal_ids={s for s, _ in claves},
        producto_ids={p for _, p in claves},
    )


@receiver(stock_bajo)
def notificar_stock_bajo_handler(sender, entradas, **kwargs):
    """Signal que avisa a los administradores cuando una entrada cruza su stock mínimo."""
    if settings.DISABLE_SIGNALS:
        logger.debug("Signals deshabilitados - Saltando notificación de stock bajo")
        return

    try:
        notificaciones = notificar_stock_bajo(entradas)
        logger.info(
            f"Stock bajo notificado: {len(entradas)} entradas, {len(notificaciones)} notificaciones")
    except Exception as e:
        logger.error(
            f"Error notificando stock bajo. Entradas: {entradas}, Error: {str(e)}")


@receiver(transferencia_solicitada)
def notificar_transferencia_solicitada_handler(sender, transferencia_id, **kwargs):
    """Signal que avisa a los administradores de una transferencia pendiente."""
    if settings.DISABLE_SIGNALS:
        logger.debug(
            "Signals deshabilitados - Saltando notificación de transferencia solicitada")
        return

    try:
        transferencia = Transferencia.objects.select_related(
            "sucursal_origen", "sucursal_destino", "usuario_solicita").get(pk=transferencia_id)
        notificar_transferencia_solicitada(transferencia)
    except Exception as e:
        logger.error(
            f"Error notificando transferencia solicitada. "
            f"Transferencia: {transferencia_id}, Error: {str(e)}")


@receiver(transferencia_procesada)
def notificar_transferencia_procesada_handler(sender, transferencia_id, estado, **kwargs):
    """
    Signal que notifica al solicitante cuando su transferencia se aprueba, rechaza o cancela.

    Los errores de notificación se registran en logs y no afectan la
    transferencia, que ya fue confirmada.

    Args:
        sender: Clase Transferencia
        transferencia_id (int): Transferencia procesada
        estado (str): Estado resultante
        **kwargs: Argumentos adicionales del signal (usuario_id)
    """
    if settings.DISABLE_SIGNALS:
        logger.debug(
            "Signals deshabilitados - Saltando notificación de transferencia procesada")
        return

    try:
        transferencia = Transferencia.objects.select_related(
            "sucursal_origen", "sucursal_destino", "usuario_solicita").get(pk=transferencia_id)
        notificacion = notificar_transferencia_procesada(transferencia)
        logger.info(
            f"Notificación {notificacion.id} enviada al usuario {transferencia.usuario_solicita_id} "
            f"(transferencia {transferencia_id} {estado})")
    except Exception as e:
        logger.error(
            f"Error notificando transferencia procesada. "
            f"Transferencia: {transferencia_id}, Estado: {estado}, Error: {str(e)}")
