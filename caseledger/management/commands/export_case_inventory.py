"""
Management command to write the ledger as one JSON document.

Usage:
    python manage.py export_case_inventory
    python manage.py export_case_inventory --output data/case_inventory.json
    python manage.py export_case_inventory --item 1206417 --item 1010106
"""

import json
from pathlib import Path

from django.core.management.base import BaseCommand
from django.core.serializers.json import DjangoJSONEncoder

from caseledger import ledger


class Command(BaseCommand):
    """Export case inventory command."""

    help = 'Writes every item with its cases and count history, keyed by item code'

    def add_arguments(self, parser):
        parser.add_argument('--output', '-o', help='File to write (default: stdout)')
        parser.add_argument(
            '--item',
            action='append',
            dest='items',
            help='Export only this item code (repeatable)',
        )

    def handle(self, *args, **options):
        document = ledger.export(options['items'])
        payload = json.dumps(document, cls=DjangoJSONEncoder, indent=2)

        if not options['output']:
            self.stdout.write(payload)
            return

        Path(options['output']).write_text(payload, encoding='utf-8')
        self.stdout.write(
            self.style.SUCCESS(f"{len(document)} item(s) written to {options['output']}")
        )
