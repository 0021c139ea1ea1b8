"""
Management command to load received cases from an extraction JSON file.

Usage:
    python manage.py import_lots data/case_lots.json
    python manage.py import_lots data/case_lots.json --require-existing
    python manage.py import_lots data/case_lots.json --dry-run
"""

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from caseledger import ledger
from caseledger.adapters import JsonFileSource
from caseledger.exceptions import LedgerError
from caseledger.protocols import group_by_item


class Command(BaseCommand):
    """Import lot records command."""

    help = 'Loads received cases from a JSON file of lot records'

    def add_arguments(self, parser):
        parser.add_argument('path', help='JSON file: a list of lot records or {"lots": [...]}')
        parser.add_argument(
            '--require-existing',
            action='store_true',
            help='Reject records for items the ledger does not know yet',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Validate the file without writing anything',
        )

    def handle(self, *args, **options):
        source = JsonFileSource(options['path'])
        try:
            grouped = group_by_item(source.iter_lots())
        except FileNotFoundError:
            raise CommandError(f"File not found: {options['path']}")
        except ValueError as e:
            raise CommandError(f"Invalid JSON in {options['path']}: {e}")
        except LedgerError as e:
            raise CommandError(f"{e.message}: {e.as_dict()['data']}")

        total = sum(len(records) for records in grouped.values())
        if options['dry_run']:
            self.stdout.write(f'{total} case(s) for {len(grouped)} item(s) would be imported')
            return

        # All items of the file commit together
        with transaction.atomic():
            for item_code, records in grouped.items():
                try:
                    item = ledger.add_lots(
                        item_code,
                        records,
                        require_existing=options['require_existing'] or None,
                    )
                except LedgerError as e:
                    raise CommandError(f"{item_code}: {e.message} {e.as_dict()['data']}")
                self.stdout.write(
                    f'{item_code}: +{len(records)} case(s), '
                    f'{item.total_cases} active / {item.total_weight}'
                )

        self.stdout.write(
            self.style.SUCCESS(f'{total} case(s) imported for {len(grouped)} item(s)')
        )
