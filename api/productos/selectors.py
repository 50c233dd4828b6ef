from .models import Producto
from api.stock.exceptions import NotFound
from api.utils import validate_id


def obtener_producto(producto_id: int) -> Producto:
    """
    Obtiene un producto por id.

    Raises:
        NotFound: Si el producto no existe.
    """
    validate_id(producto_id, "Producto")
    try:
        return Producto.objects.get(pk=producto_id)
    except Producto.DoesNotExist:
        raise NotFound(
            f"El producto {producto_id} no existe.", recurso="producto", recurso_id=producto_id)


def productos_existentes(producto_ids) -> dict:
    """
    Devuelve {id: Producto} para los ids indicados.

    Raises:
        NotFound: Si alguno de los productos no existe.
    """
    ids = set(producto_ids)
    for producto_id in ids:
        validate_id(producto_id, "Producto")
    productos = Producto.objects.in_bulk(ids)
    faltantes = sorted(ids - set(productos))
    if faltantes:
        raise NotFound(
            f"Productos inexistentes: {faltantes}", recurso="producto", recurso_id=faltantes[0])
    return productos
