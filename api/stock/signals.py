"""
Eventos del stock por sucursal.

Se emiten únicamente después de confirmada la transacción que los originó.

- stock_actualizado: claves (list[tuple[int, int]]) de (sucursal_id, producto_id)
  modificadas y usuario que ejecutó la operación.
- stock_bajo: entradas (list[int]) de StockSucursal que cruzaron su stock mínimo.
"""
from django.dispatch import Signal

stock_actualizado = Signal()
stock_bajo = Signal()
