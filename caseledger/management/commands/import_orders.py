"""
Management command to register orders from an extraction JSON file.

Usage:
    python manage.py import_orders data/orders.json
    python manage.py import_orders data/orders.json --skip-existing
"""

from django.core.management.base import BaseCommand, CommandError

from caseledger import ledger
from caseledger.adapters import JsonFileSource
from caseledger.exceptions import LedgerError


class Command(BaseCommand):
    """Import orders command."""

    help = 'Registers orders (invoices and credit memos) from a JSON file'

    def add_arguments(self, parser):
        parser.add_argument('path', help='JSON file: one order, a list, or {"orders": [...]}')
        parser.add_argument(
            '--skip-existing',
            action='store_true',
            help='Skip orders already registered instead of failing',
        )

    def handle(self, *args, **options):
        source = JsonFileSource(options['path'])
        try:
            records = list(source.iter_orders())
        except FileNotFoundError:
            raise CommandError(f"File not found: {options['path']}")
        except ValueError as e:
            raise CommandError(f"Invalid JSON in {options['path']}: {e}")
        except LedgerError as e:
            raise CommandError(f"{e.message}: {e.as_dict()['data']}")

        created = skipped = 0
        for record in records:
            try:
                ledger.register_order(record)
            except LedgerError as e:
                if e.code == 'DUPLICATE_ORDER' and options['skip_existing']:
                    skipped += 1
                    continue
                raise CommandError(f"{record.order_id}: {e.message}")
            created += 1

        self.stdout.write(
            self.style.SUCCESS(f'{created} order(s) registered, {skipped} skipped')
        )
