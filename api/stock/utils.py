import logging
import time
from decimal import Decimal, InvalidOperation
from functools import wraps
from django.conf import settings
from django.core import exceptions
from api.constants import StockSettings
from .exceptions import InvalidQuantity, ConcurrentModification

logger = logging.getLogger(__name__)

_CUANTO = Decimal(1).scaleb(-StockSettings.DECIMALES_CANTIDAD)
_MAXIMO = Decimal(10) ** (StockSettings.MAX_DIGITOS_CANTIDAD -
                          StockSettings.DECIMALES_CANTIDAD)


def normalizar_cantidad(valor, campo: str = "cantidad", permitir_cero: bool = False,
                        permitir_negativo: bool = False) -> Decimal:
    """
    Convierte una cantidad de entrada (int, str, Decimal o float) a Decimal.

    Args:
        valor: Valor recibido.
        campo (str): Nombre del campo para el mensaje de error.
        permitir_cero (bool): Acepta 0.
        permitir_negativo (bool): Acepta valores negativos (ajustes relativos).

    Returns:
        Decimal: Cantidad con hasta 3 decimales.

    Raises:
        InvalidQuantity: Si el valor no es numérico, tiene más de 3 decimales
            o está fuera del rango permitido.
    """
    if valor is None or isinstance(valor, bool):
        raise InvalidQuantity(f"El campo '{campo}' debe ser numérico.")
    try:
        cantidad = Decimal(str(valor))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidQuantity(f"El campo '{campo}' debe ser numérico.")

    if not cantidad.is_finite():
        raise InvalidQuantity(f"El campo '{campo}' debe ser numérico.")
    if abs(cantidad) >= _MAXIMO:
        raise InvalidQuantity(f"El campo '{campo}' está fuera de rango.")
    if cantidad.quantize(_CUANTO) != cantidad:
        raise InvalidQuantity(
            f"El campo '{campo}' admite hasta {StockSettings.DECIMALES_CANTIDAD} decimales.")
    if cantidad < 0 and not permitir_negativo:
        raise InvalidQuantity(f"El campo '{campo}' no puede ser negativo.")
    if cantidad == 0 and not permitir_cero:
        raise InvalidQuantity(f"El campo '{campo}' debe ser distinto de 0.")
    return cantidad


def normalizar_motivo(motivo, requerido: bool = False, por_defecto: str = "") -> str:
    """
    Limpia el texto de motivo.

    Raises:
        django.core.exceptions.ValidationError: Si es requerido y está vacío,
            o si supera la longitud máxima.
    """
    texto = str(motivo).strip() if motivo is not None else ""
    if not texto:
        if requerido:
            raise exceptions.ValidationError("El motivo es requerido.")
        texto = por_defecto
    if len(texto) > StockSettings.MAX_LONGITUD_MOTIVO:
        raise exceptions.ValidationError(
            f"El motivo no puede superar {StockSettings.MAX_LONGITUD_MOTIVO} caracteres.")
    return texto


def con_reintentos(func=None, *, intentos: int = None, espera: float = 0.05):
    """
    Decorador que reintenta una operación ante ConcurrentModification.

    Pensado para la capa API: el stock nunca reintenta por sí mismo.

    Args:
        intentos (int): Cantidad máxima de intentos (por defecto
            settings.STOCK_REINTENTOS_CONCURRENCIA).
        espera (float): Segundos de espera base entre intentos (crece linealmente).

    Example:
        resultado = con_reintentos(services.ajustar_stock)(1, 2, "-3", "Rotura", user)
    """
    def decorator(operacion):
        @wraps(operacion)
        def wrapper(*args, **kwargs):
            maximo = intentos or settings.STOCK_REINTENTOS_CONCURRENCIA
            for intento in range(1, maximo + 1):
                try:
                    return operacion(*args, **kwargs)
                except ConcurrentModification:
                    if intento == maximo:
                        logger.error(
                            f"{operacion.__name__}: reintentos agotados ({maximo}) por contención")
                        raise
                    logger.warning(
                        f"{operacion.__name__}: contención detectada, reintento {intento}/{maximo}")
                    time.sleep(espera * intento)
        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
