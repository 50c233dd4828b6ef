"""Package para funcionalidades de cache agrupadas.

Exporta los elementos principales para uso desde `api.cache`.
"""
from .cache_utils import (
    CacheManager,
    cache_manager,
    CacheKeys,
    CacheTimeouts,
    invalidar_cache_stock,
    invalidar_cache_transferencias,
)

__all__ = [
    'CacheManager', 'cache_manager', 'CacheKeys', 'CacheTimeouts',
    'invalidar_cache_stock', 'invalidar_cache_transferencias',
]
