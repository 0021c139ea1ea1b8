"""
Management command to compare order value with ledger value.

Usage:
    python manage.py audit_discrepancy
    python manage.py audit_discrepancy --json
"""

import json

from django.core.management.base import BaseCommand
from django.core.serializers.json import DjangoJSONEncoder

from caseledger import ledger
from caseledger.models import Severity


class Command(BaseCommand):
    """Discrepancy audit command."""

    help = 'Audits recorded order value against ledger value (advisory only)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--json',
            action='store_true',
            help='Print the full report as JSON',
        )

    def handle(self, *args, **options):
        report = ledger.audit()

        if options['json']:
            self.stdout.write(json.dumps(report.as_dict(), cls=DjangoJSONEncoder, indent=2))
            return

        style = {
            Severity.NORMAL: self.style.SUCCESS,
            Severity.WARNING: self.style.WARNING,
            Severity.CRITICAL: self.style.ERROR,
        }[report.severity]

        self.stdout.write(f'Orders total:     {report.orders_total:>14,.2f}')
        self.stdout.write(f'Inventory total:  {report.inventory_total:>14,.2f}')
        self.stdout.write(f'Discrepancy:      {report.discrepancy:>14,.2f}')
        self.stdout.write(style(
            f'{report.discrepancy_percent}% ({report.severity.value.upper()})'
        ))

        for finding in report.findings:
            self.stdout.write(f'  - {finding.code}: {finding.detail}')

        for rank, rec in enumerate(report.recommendations, start=1):
            self.stdout.write(
                f'{rank}. {rec.action} '
                f'(+{rec.gain_low}-{rec.gain_high} pts, {rec.impact})'
            )

        for action in report.actions:
            self.stdout.write(f'  * {action}')
