"""Paquete de permisos.

Exporta las clases de permiso para uso desde `api.permissions`.
"""
from .permissions import IsAdminUser, es_administrador

__all__ = ['IsAdminUser', 'es_administrador']
