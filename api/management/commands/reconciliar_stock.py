from django.core.management.base import BaseCommand, CommandError

from api.stock.selectors import verificar_conciliacion


class Command(BaseCommand):
    help = 'Verifica que el saldo de cada entrada de stock coincida con su historial de movimientos'

    def add_arguments(self, parser):
        parser.add_argument(
            '--sucursal',
            type=int,
            help='Verificar solo una sucursal'
        )
        parser.add_argument(
            '--verbose',
            action='store_true',
            help='Mostrar información detallada'
        )

    def handle(self, *args, **options):
        sucursal_id = options.get('sucursal')
        diferencias = verificar_conciliacion(sucursal_id)

        if not diferencias:
            self.stdout.write(self.style.SUCCESS(
                'El stock concilia con el historial de movimientos.'))
            return

        self.stdout.write(self.style.ERROR('=== DIFERENCIAS DE STOCK ==='))
        for d in diferencias:
            self.stdout.write(
                f"Sucursal {d['sucursal_id']} / producto {d['producto_id']}: "
                f"saldo {d['cantidad']}, historial {d['historial']}")
            if options['verbose']:
                self.stdout.write(
                    f"  Diferencia: {d['cantidad'] - d['historial']}")
        raise CommandError(
            f'{len(diferencias)} entradas no concilian con su historial.')
