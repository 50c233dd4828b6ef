from django.core.cache import cache
import hashlib
import json
import logging
from typing import Any, Optional, Dict

logger = logging.getLogger(__name__)


class CacheManager:
    """
    Gestor centralizado de cache para el sistema.

    Esta clase proporciona una interfaz uniforme para el manejo de cache
    con funciones de logging, invalidación por patrón y métricas.

    Args:
        default_timeout (int): Tiempo de expiración por defecto en segundos.
        prefix (str): Prefijo para todas las claves de cache.
    """

    def __init__(self, default_timeout: int = 3600, prefix: str = "api_sucursales"):
        self.default_timeout = default_timeout
        self.prefix = prefix
        self.cache_stats = {
            'hits': 0,
            'misses': 0,
            'sets': 0,
            'deletes': 0
        }

    def _get_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def _generate_cache_key(self, base_key: str, **kwargs) -> str:
        """
        Genera una clave de cache única basada en parámetros.

        Args:
            base_key (str): Clave base del cache.
            **kwargs: Parámetros adicionales para generar la clave.

        Returns:
            str: Clave de cache única.
        """
        if kwargs:
            sorted_params = sorted(kwargs.items())
            param_string = json.dumps(sorted_params, sort_keys=True, default=str)
            hash_suffix = hashlib.md5(param_string.encode()).hexdigest()[:8]
            cache_key = f"{base_key}:{hash_suffix}"
        else:
            cache_key = base_key

        return self._get_key(cache_key)

    def get(self, key: str, **kwargs) -> Optional[Any]:
        """
        Obtiene un valor del cache.

        Args:
            key (str): Clave base del cache.
            **kwargs: Parámetros para generar la clave completa.

        Returns:
            Optional[Any]: Valor del cache o None si no existe.
        """
        cache_key = self._generate_cache_key(key, **kwargs)
        value = cache.get(cache_key)

        if value is not None:
            self.cache_stats['hits'] += 1
            logger.debug(f"Cache HIT para clave: {cache_key}")
        else:
            self.cache_stats['misses'] += 1
            logger.debug(f"Cache MISS para clave: {cache_key}")

        return value

    def set(self, key: str, value: Any, timeout: Optional[int] = None, **kwargs) -> bool:
        """
        Establece un valor en el cache.

        Args:
            key (str): Clave base del cache.
            value (Any): Valor a almacenar.
            timeout (Optional[int]): Tiempo de expiración en segundos.
            **kwargs: Parámetros para generar la clave completa.

        Returns:
            bool: True si se estableció correctamente.
        """
        cache_key = self._generate_cache_key(key, **kwargs)
        timeout = timeout or self.default_timeout

        try:
            cache.set(cache_key, value, timeout)
            self.cache_stats['sets'] += 1
            logger.debug(
                f"Cache SET para clave: {cache_key}, timeout: {timeout}s")
            return True
        except Exception as e:
            logger.error(
                f"Error al establecer cache para {cache_key}: {str(e)}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """
        Elimina todas las claves que coincidan con un patrón.

        Con backends sin soporte de patrones (LocMemCache) se limpia el
        cache completo.

        Args:
            pattern (str): Patrón de búsqueda (usando wildcards de Redis).

        Returns:
            int: Número de claves eliminadas (0 si el backend no informa).
        """
        full_pattern = self._get_key(pattern)
        try:
            if callable(getattr(cache, 'delete_pattern', None)):
                deleted_count = int(cache.delete_pattern(full_pattern) or 0)
                self.cache_stats['deletes'] += deleted_count
                logger.info(
                    f"Cache DELETE_PATTERN para patrón: {full_pattern}, eliminadas: {deleted_count}")
                return deleted_count

            cache.clear()
            logger.info(
                "Backend de cache no soporta delete_pattern; se llamó a cache.clear() como fallback")
            return 0
        except Exception as e:
            logger.error(f"Error al eliminar por patrón {pattern}: {str(e)}")
            return 0

    def get_stats(self) -> Dict[str, int]:
        """
        Obtiene estadísticas de uso del cache.

        Returns:
            Dict[str, int]: Diccionario con estadísticas de cache.
        """
        total_requests = self.cache_stats['hits'] + self.cache_stats['misses']
        hit_rate = (
            self.cache_stats['hits'] / total_requests * 100) if total_requests > 0 else 0

        return {
            **self.cache_stats,
            'total_requests': total_requests,
            'hit_rate_percent': round(hit_rate, 2)
        }


# Instancia global del gestor de cache
cache_manager = CacheManager()


class CacheKeys:
    """Constantes para claves de cache del sistema."""

    # Stock
    STOCK_POR_SUCURSAL = "stock:sucursal"
    STOCK_POR_PRODUCTO = "stock:producto"
    STOCK_BAJO = "stock:bajo"

    # Transferencias
    TRANSFERENCIAS_LIST = "transferencias:list"
    TRANSFERENCIAS_PENDIENTES = "transferencias:pendientes"


class CacheTimeouts:
    """Tiempos de expiración de cache recomendados por tipo de datos."""

    # 5 minutos - Stock (cambia frecuentemente, se invalida al confirmar cada movimiento)
    INVENTORY_DATA = 300
    WORKFLOW_DATA = 120      # 2 minutos - Listados de transferencias


def invalidar_cache_stock(sucursal_ids=None, producto_ids=None) -> None:
    """
    Invalida el cache relacionado con el stock por sucursal.

    Se ejecuta al confirmarse cualquier movimiento de stock.

    Args:
        sucursal_ids (Iterable[int], optional): Sucursales afectadas.
        producto_ids (Iterable[int], optional): Productos afectados.
    """
    cache_manager.delete_pattern(f"{CacheKeys.STOCK_POR_SUCURSAL}*")
    cache_manager.delete_pattern(f"{CacheKeys.STOCK_POR_PRODUCTO}*")
    cache_manager.delete_pattern(f"{CacheKeys.STOCK_BAJO}*")
    logger.info(
        f"Cache de stock invalidado (sucursales: {sorted(sucursal_ids or [])}, "
        f"productos: {sorted(producto_ids or [])})")


def invalidar_cache_transferencias() -> None:
    """Invalida los listados de transferencias cacheados."""
    cache_manager.delete_pattern(f"{CacheKeys.TRANSFERENCIAS_LIST}*")
    cache_manager.delete_pattern(f"{CacheKeys.TRANSFERENCIAS_PENDIENTES}*")
    logger.info("Cache de transferencias invalidado")
