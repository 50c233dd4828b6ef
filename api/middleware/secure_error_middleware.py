"""Middleware de manejo seguro de errores.

Oculta información sensible, registra errores y retorna respuestas seguras al cliente.
"""

import logging
from django.core import exceptions as django_exceptions
from django.http import JsonResponse
from django.conf import settings
from django.utils import timezone
from rest_framework import status

from api.stock.exceptions import StockError


logger = logging.getLogger(__name__)


class SecureErrorMiddleware:
    """Captura excepciones no manejadas y retorna respuestas seguras.

    Los errores de dominio de stock que escapan de una vista conservan su
    código HTTP y su mensaje; el resto se informa de forma genérica.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        """
        Procesa excepciones no manejadas de forma segura.

        Args:
            request: El objeto request de Django
            exception: La excepción que ocurrió

        Returns:
            JsonResponse: Respuesta segura sin información sensible
        """
        error_type = type(exception).__name__
        user = getattr(request, 'user', None)

        if isinstance(exception, StockError):
            logger.warning(
                f"Error de stock no manejado en {request.path}: {exception.message}",
                extra={
                    'request_path': request.path,
                    'request_method': request.method,
                    'user_id': getattr(user, 'id', None),
                    'exception_type': error_type,
                }
            )
            return JsonResponse({
                "success": False,
                "message": exception.message,
                "data": {"error_type": exception.error_type, **exception.datos},
            }, status=exception.status_code)

        logger.error(
            f"Error no manejado en {request.path}: {str(exception)}",
            exc_info=True,
            extra={
                'request_path': request.path,
                'request_method': request.method,
                'user_id': getattr(user, 'id', None),
                'exception_type': error_type,
                'exception_args': str(exception.args),
            }
        )

        if isinstance(exception, (ValueError, TypeError, django_exceptions.ValidationError)):
            error_msg = "Error de validación en los datos proporcionados."
            status_code = status.HTTP_400_BAD_REQUEST

        elif isinstance(exception, django_exceptions.PermissionDenied):
            error_msg = "No tiene permisos para realizar esta acción."
            status_code = status.HTTP_403_FORBIDDEN

        elif isinstance(exception, django_exceptions.ObjectDoesNotExist) or error_type == 'Http404':
            error_msg = "El recurso solicitado no fue encontrado."
            status_code = status.HTTP_404_NOT_FOUND

        else:
            error_msg = "Error interno del servidor. Contacte al administrador."
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

        safe_response = {
            "success": False,
            "message": error_msg,
            "error_code": error_type,
            "timestamp": timezone.now().isoformat(),
            "path": request.path,
            "method": request.method
        }

        # Solo incluir información adicional si DEBUG está activado en entorno de desarrollo
        if settings.DEBUG:
            safe_response["debug_info"] = {
                "exception_type": error_type,
                "exception_message": str(exception),
            }

        return JsonResponse(safe_response, status=status_code)
