"""
Unidad de trabajo del stock por sucursal.

Toda modificación de saldo pasa por `UnidadDeTrabajo`: abre una transacción,
bloquea las filas de `StockSucursal` involucradas con `SELECT ... FOR UPDATE`
(en orden determinístico), aplica los cambios sobre la fila bloqueada y
registra el `MovimientoStock` correspondiente. Si cualquier paso falla, la
transacción completa se deshace.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from functools import partial
from typing import Iterable, Optional

from django.db import transaction, IntegrityError, OperationalError

from api.constants import MotivosMovimiento
from api.productos.selectors import obtener_producto
from api.sucursales.selectors import obtener_sucursal
from .exceptions import InsufficientStock, ConcurrentModification
from .models import StockSucursal, MovimientoStock
from .signals import stock_actualizado, stock_bajo

logger = logging.getLogger(__name__)

CERO = Decimal("0")


@dataclass(frozen=True)
class LineaAjuste:
    """Una línea de ajuste relativo dentro de una operación de varias líneas."""

    sucursal_id: int
    producto_id: int
    delta: Decimal
    motivo: str = ""

    @property
    def clave(self):
        return (self.sucursal_id, self.producto_id)


class UnidadDeTrabajo:
    """
    Contexto atómico de lectura y escritura sobre filas de stock.

    Args:
        usuario: Usuario que ejecuta la operación (se registra en cada movimiento).

    Example:
        with UnidadDeTrabajo(usuario) as uow:
            uow.bloquear_claves([(1, 10), (2, 10)])
            uow.aplicar(1, 10, Decimal("-5"), "Transferencia", MovimientoStock.ReferenciaTipo.TRANSFERENCIA, 7)
            uow.aplicar(2, 10, Decimal("5"), "Transferencia", MovimientoStock.ReferenciaTipo.TRANSFERENCIA, 7)
    """

    def __init__(self, usuario=None):
        self.usuario = usuario
        self.movimientos = []
        self._atomic = transaction.atomic()
        self._entradas = {}
        self._claves_modificadas = set()
        self._cruzaron_minimo = []

    def __enter__(self):
        self._atomic.__enter__()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if exc_type is None and self._claves_modificadas:
            transaction.on_commit(partial(
                _emitir_eventos,
                sorted(self._claves_modificadas),
                list(self._cruzaron_minimo),
                getattr(self.usuario, "id", None),
            ))
        try:
            self._atomic.__exit__(exc_type, exc_value, traceback)
        except OperationalError as error:
            raise ConcurrentModification(
                "La operación no pudo confirmarse por contención. Reintente.") from error

        if exc_type is not None and issubclass(exc_type, OperationalError):
            logger.warning(
                f"Contención de bloqueos en stock: {exc_value}")
            raise ConcurrentModification(
                "El stock está siendo modificado por otra operación. Reintente.") from exc_value
        return False

    def bloquear_claves(self, claves: Iterable[tuple]) -> None:
        """
        Bloquea varias entradas en orden (sucursal_id, producto_id) ascendente.

        Dos operaciones concurrentes sobre las mismas claves siempre las
        bloquean en el mismo orden.
        """
        for sucursal_id, producto_id in sorted(set(claves)):
            self.bloquear(sucursal_id, producto_id)

    def bloquear(self, sucursal_id: int, producto_id: int) -> StockSucursal:
        """
        Devuelve la entrada bloqueada, creándola si todavía no existe.

        Raises:
            NotFound: Si la sucursal o el producto no existen.
        """
        clave = (sucursal_id, producto_id)
        if clave not in self._entradas:
            self._entradas[clave] = self._asegurar_entrada(
                sucursal_id, producto_id)
        return self._entradas[clave]

    def _asegurar_entrada(self, sucursal_id: int, producto_id: int) -> StockSucursal:
        entrada = (StockSucursal.objects.select_for_update()
                   .filter(sucursal_id=sucursal_id, producto_id=producto_id)
                   .first())
        if entrada is not None:
            return entrada

        producto = obtener_producto(producto_id)
        sucursal = obtener_sucursal(sucursal_id)
        try:
            with transaction.atomic():
                entrada = StockSucursal.objects.create(
                    sucursal=sucursal,
                    producto=producto,
                    cantidad=producto.stock_inicial,
                    stock_minimo=producto.stock_minimo,
                    updated_by=self.usuario,
                )
        except IntegrityError:
            # Otra transacción la creó entre la lectura y el alta
            return (StockSucursal.objects.select_for_update()
                    .get(sucursal_id=sucursal_id, producto_id=producto_id))

        logger.info(
            f"Stock creado para producto {producto_id} en sucursal {sucursal_id} "
            f"con cantidad inicial {entrada.cantidad}")
        self.marcar_modificada(entrada)
        if entrada.cantidad > 0:
            self._registrar(
                entrada, CERO, entrada.cantidad,
                MotivosMovimiento.STOCK_INICIAL,
                MovimientoStock.ReferenciaTipo.INICIALIZACION, None)
        return entrada

    def crear(self, sucursal_id: int, producto_id: int, stock_minimo: Decimal) -> Optional[StockSucursal]:
        """
        Crea una entrada vacía con el stock mínimo indicado y la deja bloqueada.

        Returns:
            StockSucursal | None: La entrada creada, o None si ya existía.
        """
        try:
            with transaction.atomic():
                entrada = StockSucursal.objects.create(
                    sucursal_id=sucursal_id,
                    producto_id=producto_id,
                    cantidad=CERO,
                    stock_minimo=stock_minimo,
                    updated_by=self.usuario,
                )
        except IntegrityError:
            return None
        self._entradas[(sucursal_id, producto_id)] = entrada
        self.marcar_modificada(entrada)
        return entrada

    def aplicar(self, sucursal_id: int, producto_id: int, delta: Decimal, motivo: str,
                referencia_tipo: str, referencia_id=None,
                permitir_negativo: bool = False) -> Optional[MovimientoStock]:
        """
        Aplica un cambio relativo sobre la entrada bloqueada.

        Args:
            delta (Decimal): Cambio con signo.
            permitir_negativo (bool): Si el saldo no alcanza, descuenta solo
                lo disponible y deja la entrada en 0 (reconciliación correctiva).

        Returns:
            MovimientoStock | None: El movimiento registrado, o None si el
            cambio efectivo es cero.

        Raises:
            InsufficientStock: Si el saldo quedaría negativo y no se permite.
        """
        entrada = self.bloquear(sucursal_id, producto_id)
        if delta == 0:
            return None

        anterior = entrada.cantidad
        nuevo = anterior + delta
        if nuevo < 0:
            if not permitir_negativo:
                raise InsufficientStock(
                    f"Stock insuficiente del producto {producto_id} en la sucursal "
                    f"{sucursal_id}: disponible {anterior}, solicitado {-delta}.",
                    sucursal_id=sucursal_id,
                    producto_id=producto_id,
                    disponible=anterior,
                    solicitado=-delta,
                )
            logger.warning(
                f"Ajuste correctivo: producto {producto_id} en sucursal {sucursal_id} "
                f"se deja en 0 (disponible {anterior}, solicitado {-delta})")
            nuevo = CERO
        if nuevo == anterior:
            return None

        return self._registrar(entrada, anterior, nuevo, motivo, referencia_tipo, referencia_id)

    def fijar(self, sucursal_id: int, producto_id: int, nueva_cantidad: Decimal, motivo: str,
              referencia_tipo: str, referencia_id=None) -> Optional[MovimientoStock]:
        """Lleva el saldo a un valor absoluto; devuelve None si no cambia."""
        entrada = self.bloquear(sucursal_id, producto_id)
        return self.aplicar(
            sucursal_id, producto_id, nueva_cantidad - entrada.cantidad,
            motivo, referencia_tipo, referencia_id)

    def actualizar_minimo(self, sucursal_id: int, producto_id: int, stock_minimo: Decimal) -> bool:
        """
        Cambia el stock mínimo de la entrada bloqueada.

        Si el saldo actual queda por debajo del nuevo mínimo (y no lo estaba
        con el anterior) la entrada cuenta como cruce de mínimo.

        Returns:
            bool: True si el mínimo cambió.
        """
        entrada = self.bloquear(sucursal_id, producto_id)
        anterior = entrada.stock_minimo
        if stock_minimo == anterior:
            return False

        entrada.stock_minimo = stock_minimo
        entrada.updated_by = self.usuario
        entrada.save(update_fields=[
            "stock_minimo", "updated_by", "ultima_actualizacion"])
        self.marcar_modificada(
            entrada, cruzo_minimo=anterior < entrada.cantidad <= stock_minimo)
        return True

    def marcar_modificada(self, entrada: StockSucursal, cruzo_minimo: bool = False) -> None:
        """Agenda los eventos de commit para una entrada creada o modificada."""
        self._claves_modificadas.add(
            (entrada.sucursal_id, entrada.producto_id))
        if cruzo_minimo and entrada.pk not in self._cruzaron_minimo:
            self._cruzaron_minimo.append(entrada.pk)

    def _registrar(self, entrada: StockSucursal, anterior: Decimal, nuevo: Decimal,
                   motivo: str, referencia_tipo: str, referencia_id) -> MovimientoStock:
        if entrada.cantidad != nuevo:
            entrada.cantidad = nuevo
            entrada.updated_by = self.usuario
            entrada.save(update_fields=[
                "cantidad", "updated_by", "ultima_actualizacion"])

        tipo = (MovimientoStock.Tipo.ENTRADA if nuevo > anterior
                else MovimientoStock.Tipo.SALIDA)
        movimiento = MovimientoStock.objects.create(
            sucursal_id=entrada.sucursal_id,
            producto_id=entrada.producto_id,
            tipo=tipo,
            cantidad=abs(nuevo - anterior),
            stock_anterior=anterior,
            stock_nuevo=nuevo,
            motivo=motivo,
            referencia_tipo=referencia_tipo,
            referencia_id=str(referencia_id) if referencia_id is not None else None,
            usuario=self.usuario,
        )
        self.movimientos.append(movimiento)
        self.marcar_modificada(entrada, cruzo_minimo=nuevo <= entrada.stock_minimo < anterior)
        return movimiento


def _emitir_eventos(claves, entradas_bajo_minimo, usuario_id):
    stock_actualizado.send(
        sender=StockSucursal, claves=claves, usuario_id=usuario_id)
    if entradas_bajo_minimo:
        stock_bajo.send(sender=StockSucursal, entradas=entradas_bajo_minimo)
