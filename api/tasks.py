from celery import shared_task
from django.utils import timezone
import logging

from .models import Notificacion
from api.stock.services import listar_stock_bajo
from api.sucursales.models import Sucursal
from .services import sendEmail, notificar_stock_bajo

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, name="enviar_notificacion_task")
def enviar_notificacion_task(self, notificacion_id):
    notificacion = None
    try:
        notificacion = Notificacion.objects.select_related(
            "usuario").get(id=notificacion_id)
        email = notificacion.usuario.email
        if not email:
            logger.warning(
                f"Usuario {notificacion.usuario_id} no tiene email configurado. "
                f"Notificación {notificacion.id} solo queda en la bandeja")
            notificacion.error_envio = "El usuario no tiene email configurado."
            notificacion.save(update_fields=["error_envio"])
            return False

        sendEmail(email, notificacion)

        notificacion.enviada_at = timezone.now()
        notificacion.error_envio = None
        notificacion.save(update_fields=["enviada_at", "error_envio"])
        return True

    except Notificacion.DoesNotExist:
        logger.error(f"Notificación {notificacion_id} inexistente")
        raise
    except Exception as exc:
        error_message = f"Error enviando notificación: {str(exc)}"
        if notificacion is not None:
            notificacion.error_envio = error_message
            notificacion.save(update_fields=["error_envio"])

        logger.error(
            f"Error enviando notificación {notificacion_id}. Error: {error_message}")
        # Reintentar después de 60 segundos
        raise self.retry(exc=exc, countdown=60)


@shared_task(name="revisar_stock_bajo_task")
def revisar_stock_bajo_task():
    """
    Revisión periódica del stock bajo de todas las sucursales activas.

    Returns:
        int: Cantidad de entradas en o por debajo del stock mínimo.
    """
    entrada_ids = []
    for sucursal_id in Sucursal.objects.filter(activa=True).values_list("id", flat=True):
        entrada_ids.extend(e.id for e in listar_stock_bajo(sucursal_id))

    if entrada_ids:
        notificar_stock_bajo(entrada_ids)
    logger.info(
        f"Revisión de stock bajo: {len(entrada_ids)} entradas por debajo del mínimo")
    return len(entrada_ids)
