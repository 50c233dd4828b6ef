"""
Funciones helper para respuestas estándar de la API.

Estructura estándar:
{
    "success": true/false,
    "message": "Mensaje descriptivo",
    "data": {...} // Datos específicos (opcional)
}
"""
import logging

from django.core import exceptions as django_exceptions
from rest_framework import status
from rest_framework.response import Response

from api.stock.exceptions import StockError

logger = logging.getLogger(__name__)


def success_response(message: str, data=None, status_code=status.HTTP_200_OK) -> Response:
    """
    Crea una respuesta de éxito estándar.

    Args:
        message (str): Mensaje descriptivo del éxito
        data: Datos a incluir en la respuesta (opcional)
        status_code (int): Código de estado HTTP (default: 200)

    Returns:
        Response: Respuesta formateada con estructura estándar
    """
    return Response({
        "success": True,
        "message": message,
        "data": data
    }, status=status_code)


def error_response(message: str, data=None, status_code=status.HTTP_400_BAD_REQUEST) -> Response:
    """
    Crea una respuesta de error estándar.

    Args:
        message (str): Mensaje descriptivo del error
        data: Datos adicionales del error (opcional)
        status_code (int): Código de estado HTTP (default: 400)

    Returns:
        Response: Respuesta formateada con estructura estándar
    """
    return Response({
        "success": False,
        "message": message,
        "data": data
    }, status=status_code)


def serializer_error_response(errors) -> Response:
    """Respuesta 400 para errores de validación de un serializer."""
    return error_response(
        "Datos inválidos.",
        {"error_type": "validation_error", "errors": errors},
        status.HTTP_400_BAD_REQUEST,
    )


def domain_error_response(error: Exception, contexto: str = "") -> Response:
    """
    Traduce una excepción de dominio o de validación a una respuesta estándar.

    Los errores de stock usan su propio código HTTP (400, 404 o 409). Los
    ValidationError de Django y los ValueError se informan como 400.

    Args:
        error (Exception): Excepción capturada por la vista.
        contexto (str): Descripción de la operación para el log.

    Returns:
        Response: Respuesta de error con `error_type` en `data`.
    """
    if isinstance(error, StockError):
        logger.warning(f"{contexto}: {error.error_type} - {error.message}")
        return error_response(
            error.message,
            {"error_type": error.error_type, **error.datos},
            error.status_code,
        )
    if isinstance(error, django_exceptions.ValidationError):
        mensaje = "; ".join(error.messages)
        logger.warning(f"{contexto}: validation_error - {mensaje}")
        return error_response(mensaje, {"error_type": "validation_error"})
    if isinstance(error, ValueError):
        logger.warning(f"{contexto}: validation_error - {error}")
        return error_response(str(error), {"error_type": "validation_error"})

    logger.error(f"{contexto}: error inesperado - {error}", exc_info=True)
    return error_response(
        "Error interno del servidor.",
        {"error_type": "internal_error"},
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
