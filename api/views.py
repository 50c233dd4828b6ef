import logging

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from .response_helpers import success_response, domain_error_response
from .serializers import NotificacionSerializer
from .services import listar_notificaciones, marcar_leida
from .view_tags import notificaciones_authenticated

logger = logging.getLogger(__name__)


@extend_schema(
    summary="Bandeja de notificaciones",
    description="Notificaciones del usuario autenticado, de la más reciente a la más antigua.",
    parameters=[OpenApiParameter("no_leidas", OpenApiTypes.BOOL, required=False)],
    responses={200: NotificacionSerializer(many=True)},
    tags=notificaciones_authenticated(),
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def listar_notificaciones_view(request):
    solo_no_leidas = request.query_params.get(
        "no_leidas", "").lower() in ("1", "true")
    qs = listar_notificaciones(request.user, solo_no_leidas=solo_no_leidas)
    return success_response(
        "Notificaciones obtenidas.", NotificacionSerializer(qs, many=True).data)


@extend_schema(
    summary="Marcar notificación como leída",
    request=None,
    responses={200: NotificacionSerializer, 404: OpenApiTypes.OBJECT},
    tags=notificaciones_authenticated(),
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def marcar_leida_view(request, notificacion_id: int):
    try:
        notificacion = marcar_leida(notificacion_id, request.user)
    except Exception as e:
        return domain_error_response(e, "Marcar notificación leída")
    return success_response(
        "Notificación marcada como leída.", NotificacionSerializer(notificacion).data)
