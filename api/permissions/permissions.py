import logging
from rest_framework import permissions

logger = logging.getLogger(__name__)


def es_administrador(user) -> bool:
    """
    Indica si el usuario puede realizar operaciones administrativas de stock.

    Args:
        user: Usuario autenticado (o AnonymousUser).

    Returns:
        bool: True si es superusuario o tiene rol de administrador.
    """
    if not user or not user.is_authenticated:
        return False
    return bool(user.is_superuser or getattr(user, "es_administrador", False))


class IsAdminUser(permissions.BasePermission):
    """
    Permiso para operaciones administrativas: aprobar, rechazar y cancelar
    transferencias, ajustar, fijar e inicializar stock.
    """
    message = "Esta función requiere permisos de administrador."

    def has_permission(self, request, view):
        allowed = es_administrador(request.user)
        if not allowed and request.user and request.user.is_authenticated:
            logger.warning(
                f"Access denied - User {request.user.username} (ID: {request.user.id}) "
                f"attempted admin action on {request.path}")
        return allowed
