"""
Eventos del flujo de transferencias.

Se emiten únicamente después de confirmada la transacción que los originó.

- transferencia_solicitada: transferencia_id (int), usuario_id (int).
- transferencia_procesada: transferencia_id (int), estado (str: aprobada,
  rechazada o cancelada), usuario_id (int | None).
"""
from django.dispatch import Signal

transferencia_solicitada = Signal()
transferencia_procesada = Signal()
