import logging

from django.conf import settings
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated

from api.cache import cache_manager, CacheKeys, CacheTimeouts
from api.permissions import IsAdminUser
from api.response_helpers import (
    success_response, error_response, serializer_error_response, domain_error_response,
)
from api.view_tags import stock_admin, stock_authenticated
from . import services, selectors
from .serializers import (
    StockSucursalSerializer,
    MovimientoStockSerializer,
    AjusteStockSerializer,
    FijarStockSerializer,
    InicializarStockSerializer,
    MovimientosQuerySerializer,
)
from .utils import con_reintentos

logger = logging.getLogger(__name__)


class MovimientosPagination(PageNumberPagination):
    page_size = settings.STOCK_MOVIMIENTOS_PAGE_SIZE
    page_size_query_param = "page_size"
    max_page_size = settings.STOCK_MOVIMIENTOS_MAX_PAGE_SIZE


def _id_de_query(request, nombre):
    valor = request.query_params.get(nombre)
    if valor in (None, ""):
        return None
    try:
        return int(valor)
    except (TypeError, ValueError):
        raise ValueError(f"{nombre} debe ser un entero positivo.")


@extend_schema(
    summary="Stock por sucursal o por producto",
    description="Lista el stock de una sucursal (`sucursal_id`) o de un producto en todas las sucursales (`producto_id`).",
    parameters=[
        OpenApiParameter("sucursal_id", OpenApiTypes.INT, required=False),
        OpenApiParameter("producto_id", OpenApiTypes.INT, required=False),
    ],
    responses={200: StockSucursalSerializer(many=True)},
    tags=stock_authenticated(),
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def listar_stock(request):
    """
    Lista entradas de stock filtradas por sucursal o por producto.

    Query Params:
        sucursal_id (int): Sucursal a consultar.
        producto_id (int): Producto a consultar en todas las sucursales.

    Returns:
        Response: Lista de entradas de stock.
    """
    try:
        sucursal_id = _id_de_query(request, "sucursal_id")
        producto_id = _id_de_query(request, "producto_id")
        if sucursal_id is None and producto_id is None:
            return error_response(
                "Debe indicar sucursal_id o producto_id.",
                {"error_type": "validation_error"})

        if sucursal_id is not None:
            cache_key = CacheKeys.STOCK_POR_SUCURSAL
        else:
            cache_key = CacheKeys.STOCK_POR_PRODUCTO
        cached = cache_manager.get(
            cache_key, sucursal_id=sucursal_id, producto_id=producto_id)
        if cached is not None:
            return success_response("Stock obtenido.", cached)

        entradas = selectors.listar_stock(
            sucursal_id=sucursal_id, producto_id=producto_id)
        data = StockSucursalSerializer(entradas, many=True).data
        cache_manager.set(cache_key, data, CacheTimeouts.INVENTORY_DATA,
                          sucursal_id=sucursal_id, producto_id=producto_id)
        return success_response("Stock obtenido.", data)
    except Exception as e:
        return domain_error_response(e, "Listado de stock")


@extend_schema(
    summary="Stock bajo de una sucursal",
    description="Entradas con cantidad menor o igual al stock mínimo, ordenadas por faltante descendente.",
    parameters=[OpenApiParameter(
        "sucursal_id", OpenApiTypes.INT, required=True)],
    responses={200: StockSucursalSerializer(many=True)},
    tags=stock_authenticated(),
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def listar_stock_bajo(request):
    try:
        sucursal_id = _id_de_query(request, "sucursal_id")
        if sucursal_id is None:
            return error_response(
                "Debe indicar sucursal_id.", {"error_type": "validation_error"})

        cached = cache_manager.get(CacheKeys.STOCK_BAJO, sucursal_id=sucursal_id)
        if cached is not None:
            return success_response("Stock bajo obtenido.", cached)

        entradas = services.listar_stock_bajo(sucursal_id)
        data = StockSucursalSerializer(entradas, many=True).data
        cache_manager.set(CacheKeys.STOCK_BAJO, data,
                          CacheTimeouts.INVENTORY_DATA, sucursal_id=sucursal_id)
        return success_response("Stock bajo obtenido.", data)
    except Exception as e:
        return domain_error_response(e, "Listado de stock bajo")


@extend_schema(
    summary="Ajustar stock",
    description="Aplica un ajuste relativo al stock de un producto en una sucursal. Solo administradores.",
    request=AjusteStockSerializer,
    responses={201: MovimientoStockSerializer,
               400: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
    tags=stock_admin(),
)
@api_view(['POST'])
@permission_classes([IsAdminUser])
def ajustar_stock(request):
    """
    Ajusta el stock de un producto en una sucursal.

    Request Body:
        dict: sucursal_id, producto_id, ajuste (con signo) y motivo.

    Returns:
        Response: Movimiento registrado (201) o 200 si el ajuste es 0.

    Raises:
        400: Datos inválidos o stock insuficiente
        403: Usuario sin permisos de administrador
        404: Sucursal o producto inexistente
        409: Contención persistente sobre el stock
    """
    serializer = AjusteStockSerializer(data=request.data)
    if not serializer.is_valid():
        return serializer_error_response(serializer.errors)
    data = serializer.validated_data
    try:
        movimiento = con_reintentos(services.ajustar_stock)(
            sucursal_id=data["sucursal_id"],
            producto_id=data["producto_id"],
            ajuste=data["ajuste"],
            motivo=data["motivo"],
            usuario=request.user,
        )
    except Exception as e:
        return domain_error_response(e, "Ajuste de stock")

    if movimiento is None:
        return success_response("El ajuste no modificó el stock.", None)
    logger.info(
        f"Ajuste de stock registrado por {request.user.id}: movimiento {movimiento.id}")
    return success_response(
        "Stock ajustado correctamente.",
        MovimientoStockSerializer(movimiento).data,
        status.HTTP_201_CREATED,
    )


@extend_schema(
    summary="Fijar stock de un producto en una sucursal",
    description="Fija la cantidad y/o el stock mínimo. Crea la entrada si no existe. Solo administradores.",
    request=FijarStockSerializer,
    responses={200: StockSucursalSerializer},
    tags=stock_admin(),
)
@api_view(['PUT'])
@permission_classes([IsAdminUser])
def fijar_stock(request, sucursal_id: int, producto_id: int):
    serializer = FijarStockSerializer(data=request.data)
    if not serializer.is_valid():
        return serializer_error_response(serializer.errors)
    data = serializer.validated_data
    try:
        movimiento = con_reintentos(services.fijar_stock)(
            sucursal_id=sucursal_id,
            producto_id=producto_id,
            nueva_cantidad=data.get("cantidad"),
            motivo=data.get("motivo", ""),
            usuario=request.user,
            stock_minimo=data.get("stock_minimo"),
        )
        entrada = selectors.listar_stock(
            sucursal_id=sucursal_id, producto_id=producto_id).get()
    except Exception as e:
        return domain_error_response(e, "Actualización de stock")

    return success_response(
        "Stock actualizado correctamente.",
        {
            "stock": StockSucursalSerializer(entrada).data,
            "movimiento": MovimientoStockSerializer(movimiento).data if movimiento else None,
        },
    )


@extend_schema(
    summary="Inicializar stock de una sucursal",
    description="Crea el stock solo para los productos que la sucursal todavía no tiene. Solo administradores.",
    request=InicializarStockSerializer,
    responses={201: OpenApiTypes.OBJECT},
    tags=stock_admin(),
)
@api_view(['POST'])
@permission_classes([IsAdminUser])
def inicializar_stock(request):
    serializer = InicializarStockSerializer(data=request.data)
    if not serializer.is_valid():
        return serializer_error_response(serializer.errors)
    data = serializer.validated_data
    try:
        result = con_reintentos(services.inicializar_sucursal)(
            sucursal_id=data["sucursal_id"],
            productos=data["productos"],
            usuario=request.user,
        )
    except Exception as e:
        return domain_error_response(e, "Inicialización de stock")

    codigo = status.HTTP_201_CREATED if result["data"]["creados"] else status.HTTP_200_OK
    return success_response(result["message"], result["data"], codigo)


@extend_schema(
    summary="Historial de movimientos",
    description="Movimientos de stock por sucursal y/o producto, del más reciente al más antiguo, paginados.",
    parameters=[MovimientosQuerySerializer],
    responses={200: MovimientoStockSerializer(many=True)},
    tags=stock_authenticated(),
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def listar_movimientos(request):
    query = MovimientosQuerySerializer(data=request.query_params)
    if not query.is_valid():
        return serializer_error_response(query.errors)
    try:
        movimientos = selectors.listar_movimientos(**query.validated_data)
    except Exception as e:
        return domain_error_response(e, "Historial de movimientos")

    paginator = MovimientosPagination()
    page = paginator.paginate_queryset(movimientos, request)
    data = MovimientoStockSerializer(page, many=True).data
    return paginator.get_paginated_response(data)
