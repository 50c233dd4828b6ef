import logging

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from api.cache import cache_manager, CacheKeys, CacheTimeouts, invalidar_cache_transferencias
from api.permissions import IsAdminUser
from api.response_helpers import (
    success_response, serializer_error_response, domain_error_response,
)
from api.stock.utils import con_reintentos
from api.view_tags import transferencias_admin, transferencias_authenticated
from . import services, selectors
from .models import Transferencia
from .serializers import (
    TransferenciaSerializer,
    CrearTransferenciaSerializer,
    CambiarEstadoSerializer,
    DevolverTransferenciaSerializer,
    CancelarTransferenciaSerializer,
)

logger = logging.getLogger(__name__)


def _resultado(result: dict, status_code=status.HTTP_200_OK, **extra):
    data = {"transferencia": TransferenciaSerializer(
        result["data"]["transferencia"]).data}
    data.update(extra)
    return success_response(result["message"], data, status_code)


@extend_schema(
    summary="Listar o crear transferencias",
    description=(
        "GET: lista transferencias filtrando por `estado` y/o `sucursal_id` (origen o destino).\n"
        "POST: solicita una transferencia; queda pendiente hasta que un administrador la procese."
    ),
    parameters=[
        OpenApiParameter("estado", OpenApiTypes.STR, required=False,
                         enum=[c for c, _ in Transferencia.Estado.choices]),
        OpenApiParameter("sucursal_id", OpenApiTypes.INT, required=False),
    ],
    request=CrearTransferenciaSerializer,
    responses={200: TransferenciaSerializer(many=True), 201: TransferenciaSerializer},
    tags=transferencias_authenticated(),
)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def transferencias(request):
    """
    Lista o crea transferencias.

    Request Body (POST):
        dict: sucursal_origen_id, sucursal_destino_id, productos [{producto_id, cantidad}], motivo.

    Returns:
        Response: Lista de transferencias (GET) o transferencia creada (POST, 201).

    Raises:
        400: Datos inválidos, misma sucursal o cantidad mayor al stock del origen
        404: Sucursal o producto inexistente
    """
    if request.method == 'POST':
        return _crear_transferencia(request)

    try:
        estado = request.query_params.get("estado") or None
        sucursal_id = request.query_params.get("sucursal_id") or None
        if sucursal_id is not None:
            sucursal_id = int(sucursal_id)

        cached = cache_manager.get(
            CacheKeys.TRANSFERENCIAS_LIST, estado=estado, sucursal_id=sucursal_id)
        if cached is not None:
            return success_response("Transferencias obtenidas.", cached)

        qs = selectors.listar_transferencias(
            estado=estado, sucursal_id=sucursal_id)
        data = TransferenciaSerializer(qs, many=True).data
        cache_manager.set(CacheKeys.TRANSFERENCIAS_LIST, data, CacheTimeouts.WORKFLOW_DATA,
                          estado=estado, sucursal_id=sucursal_id)
        return success_response("Transferencias obtenidas.", data)
    except Exception as e:
        return domain_error_response(e, "Listado de transferencias")


def _crear_transferencia(request):
    serializer = CrearTransferenciaSerializer(data=request.data)
    if not serializer.is_valid():
        return serializer_error_response(serializer.errors)
    data = serializer.validated_data
    try:
        result = services.crear_transferencia(
            sucursal_origen_id=data["sucursal_origen_id"],
            sucursal_destino_id=data["sucursal_destino_id"],
            productos=data["productos"],
            motivo=data["motivo"],
            usuario=request.user,
        )
    except Exception as e:
        return domain_error_response(e, "Creación de transferencia")

    invalidar_cache_transferencias()
    return _resultado(result, status.HTTP_201_CREATED)


@extend_schema(
    summary="Transferencias pendientes",
    description="Transferencias que esperan aprobación, de la más antigua a la más reciente.",
    responses={200: TransferenciaSerializer(many=True)},
    tags=transferencias_authenticated(),
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transferencias_pendientes(request):
    try:
        cached = cache_manager.get(CacheKeys.TRANSFERENCIAS_PENDIENTES)
        if cached is not None:
            return success_response("Transferencias pendientes obtenidas.", cached)

        data = TransferenciaSerializer(
            selectors.listar_pendientes(), many=True).data
        cache_manager.set(CacheKeys.TRANSFERENCIAS_PENDIENTES,
                          data, CacheTimeouts.WORKFLOW_DATA)
        return success_response("Transferencias pendientes obtenidas.", data)
    except Exception as e:
        return domain_error_response(e, "Listado de transferencias pendientes")


@extend_schema(
    summary="Detalle de una transferencia",
    responses={200: TransferenciaSerializer, 404: OpenApiTypes.OBJECT},
    tags=transferencias_authenticated(),
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def detalle_transferencia(request, transferencia_id: int):
    try:
        transferencia = selectors.obtener_transferencia(transferencia_id)
    except Exception as e:
        return domain_error_response(e, "Detalle de transferencia")
    return success_response(
        "Transferencia obtenida.", TransferenciaSerializer(transferencia).data)


@extend_schema(
    summary="Transferencias de una sucursal",
    parameters=[OpenApiParameter(
        "tipo_relacion", OpenApiTypes.STR, required=False,
        enum=list(selectors.TIPOS_RELACION))],
    responses={200: TransferenciaSerializer(many=True)},
    tags=transferencias_authenticated(),
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transferencias_por_sucursal(request, sucursal_id: int):
    try:
        tipo_relacion = request.query_params.get("tipo_relacion") or "ambos"
        qs = selectors.listar_transferencias_por_sucursal(
            sucursal_id, tipo_relacion)
        data = TransferenciaSerializer(qs, many=True).data
    except Exception as e:
        return domain_error_response(e, "Transferencias por sucursal")
    return success_response("Transferencias obtenidas.", data)


@extend_schema(
    summary="Aprobar o rechazar una transferencia",
    description=(
        "Con `estado=aprobada` mueve el stock del origen al destino (todo o nada). "
        "Con `estado=rechazada` cierra la solicitud sin mover stock. Solo administradores."
    ),
    request=CambiarEstadoSerializer,
    responses={200: TransferenciaSerializer, 400: OpenApiTypes.OBJECT,
               404: OpenApiTypes.OBJECT, 409: OpenApiTypes.OBJECT},
    tags=transferencias_admin(),
)
@api_view(['PUT'])
@permission_classes([IsAdminUser])
def cambiar_estado(request, transferencia_id: int):
    """
    Procesa una transferencia pendiente.

    Raises:
        400: Estado inválido o stock insuficiente en el origen
        403: Usuario sin permisos de administrador
        404: Transferencia inexistente
        409: La transferencia ya fue procesada
    """
    serializer = CambiarEstadoSerializer(data=request.data)
    if not serializer.is_valid():
        return serializer_error_response(serializer.errors)
    data = serializer.validated_data
    try:
        result = con_reintentos(services.cambiar_estado_transferencia)(
            transferencia_id=transferencia_id,
            estado=data["estado"],
            motivo=data["motivo"],
            usuario=request.user,
        )
    except Exception as e:
        return domain_error_response(e, "Procesamiento de transferencia")

    invalidar_cache_transferencias()
    return _resultado(result)


@extend_schema(
    summary="Devolver productos de una transferencia aprobada",
    request=DevolverTransferenciaSerializer,
    responses={200: TransferenciaSerializer, 400: OpenApiTypes.OBJECT,
               404: OpenApiTypes.OBJECT, 409: OpenApiTypes.OBJECT},
    tags=transferencias_authenticated(),
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def devolver_transferencia(request, transferencia_id: int):
    serializer = DevolverTransferenciaSerializer(data=request.data)
    if not serializer.is_valid():
        return serializer_error_response(serializer.errors)
    try:
        result = con_reintentos(services.devolver_transferencia)(
            transferencia_id=transferencia_id,
            devoluciones=serializer.validated_data["devoluciones"],
            usuario=request.user,
        )
    except Exception as e:
        return domain_error_response(e, "Devolución de transferencia")

    invalidar_cache_transferencias()
    devueltos = {str(pid): str(cantidad)
                 for pid, cantidad in result["data"]["devueltos"].items()}
    return _resultado(result, devueltos=devueltos)


@extend_schema(
    summary="Cancelar una transferencia aprobada",
    description="Revierte el stock que no fue devuelto. El motivo es obligatorio. Solo administradores.",
    request=CancelarTransferenciaSerializer,
    responses={200: TransferenciaSerializer, 400: OpenApiTypes.OBJECT,
               404: OpenApiTypes.OBJECT, 409: OpenApiTypes.OBJECT},
    tags=transferencias_admin(),
)
@api_view(['POST'])
@permission_classes([IsAdminUser])
def cancelar_transferencia(request, transferencia_id: int):
    serializer = CancelarTransferenciaSerializer(data=request.data)
    if not serializer.is_valid():
        return serializer_error_response(serializer.errors)
    try:
        result = con_reintentos(services.cancelar_transferencia)(
            transferencia_id=transferencia_id,
            motivo=serializer.validated_data["motivo"],
            usuario=request.user,
        )
    except Exception as e:
        return domain_error_response(e, "Cancelación de transferencia")

    invalidar_cache_transferencias()
    logger.info(
        f"Transferencia {transferencia_id} cancelada vía API por {request.user.id}")
    return _resultado(result)
