"""
Ledger queries — read-only operations.

All methods are classmethods and take no locks.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from django.db.models import Max, Min, Q
from django.utils import timezone

from caseledger.aging import age_in_days, needs_rotation, rotation_bucket
from caseledger.models.enums import LotStatus, RotationBucket
from caseledger.models.item import Item
from caseledger.models.lot import Lot
from caseledger.services.lots import get_item


@dataclass(frozen=True)
class AgedCase:
    """An active case with its age."""

    case_id: str
    short_id: str
    remaining: Decimal
    received_date: date
    age: int
    bucket: RotationBucket

    def as_dict(self) -> dict:
        return {
            'caseNumber': self.case_id,
            'caseNumberShort': self.short_id,
            'weight': self.remaining,
            'ageInDays': self.age,
            'invoiceDate': self.received_date.isoformat(),
            'rotationStatus': self.bucket.value,
        }


@dataclass(frozen=True)
class AgingReport:
    """
    Rotation view of an item's active cases.

    bucket is the bucket of the oldest active case (None with no stock).
    """

    item_code: str
    description: str
    as_of: date
    total_weight: Decimal
    oldest_age: int | None
    bucket: RotationBucket | None
    cases: list[AgedCase] = field(default_factory=list)

    @property
    def fresh(self) -> list[AgedCase]:
        return [c for c in self.cases if c.bucket == RotationBucket.FRESH]

    @property
    def aging(self) -> list[AgedCase]:
        return [c for c in self.cases if c.bucket == RotationBucket.AGING]

    @property
    def aged(self) -> list[AgedCase]:
        return [c for c in self.cases if c.bucket == RotationBucket.AGED]

    @property
    def needs_rotation(self) -> bool:
        return needs_rotation(self.oldest_age)

    def as_dict(self) -> dict:
        return {
            'item': {'itemCode': self.item_code, 'description': self.description},
            'asOf': self.as_of.isoformat(),
            'totalActiveCases': len(self.cases),
            'totalWeight': self.total_weight,
            'oldestCaseAge': self.oldest_age,
            'bucket': self.bucket.value if self.bucket else None,
            'casesByAge': {
                'fresh': [c.as_dict() for c in self.fresh],
                'aging': [c.as_dict() for c in self.aging],
                'aged': [c.as_dict() for c in self.aged],
            },
            'alerts': {
                'hasAgedCases': bool(self.aged),
                'hasAgingCases': bool(self.aging),
                'needsRotation': self.needs_rotation,
            },
        }


class LedgerQueries:
    """Read-only ledger query methods."""

    @classmethod
    def get_item(cls, item_code: str) -> Item:
        """Item by code. Raises UnknownItemError."""
        return get_item(item_code)

    @classmethod
    def list_items(cls) -> list[dict]:
        """
        Summary of every item, most cases first.

        oldest/newest case dates come from active cases only.
        """
        active = ~Q(lots__status=LotStatus.USED)
        items = Item.objects.annotate(
            oldest_case_date=Min('lots__received_date', filter=active),
            newest_case_date=Max('lots__received_date', filter=active),
        ).order_by('-total_cases', 'item_code')

        return [
            {
                'item_code': item.item_code,
                'description': item.description,
                'barcode': item.barcode,
                'unit': item.unit,
                'total_cases': item.total_cases,
                'total_weight': item.total_weight,
                'oldest_case_date': item.oldest_case_date,
                'newest_case_date': item.newest_case_date,
            }
            for item in items
        ]

    @classmethod
    def list_lots(cls, item_code: str, status: str | None = None,
                  invoice_number: str | None = None, limit: int | None = None,
                  as_of: date | None = None):
        """
        Cases of an item in FIFO order, optionally filtered.

        limit keeps the most recent cases (the tail of the FIFO queue).
        Each lot gets `age` and `bucket` attributes computed at as_of.

        Raises:
            UnknownItemError
        """
        item = get_item(item_code)
        qs = item.lots.order_by('received_date', 'id')

        if status:
            qs = qs.filter(status=status)
        if invoice_number:
            qs = qs.filter(source_invoice=invoice_number)

        as_of = as_of or timezone.localdate()
        lots = list(qs.prefetch_related('usage_history'))
        if limit is not None:
            lots = lots[-limit:] if limit > 0 else []
        for lot in lots:
            lot.age = age_in_days(lot.received_date, as_of)
            lot.bucket = rotation_bucket(lot.age)
        return lots

    @classmethod
    def aging_report(cls, item_code: str, as_of: date | None = None) -> AgingReport:
        """
        Rotation buckets of the item's active cases.

        Raises:
            UnknownItemError
        """
        as_of = as_of or timezone.localdate()
        item = get_item(item_code)
        active = item.lots.exclude(status=LotStatus.USED).order_by('received_date', 'id')

        cases = []
        for lot in active:
            age = age_in_days(lot.received_date, as_of)
            cases.append(AgedCase(
                case_id=lot.case_id,
                short_id=lot.short_id,
                remaining=lot.remaining_quantity,
                received_date=lot.received_date,
                age=age,
                bucket=rotation_bucket(age),
            ))

        oldest_age = cases[0].age if cases else None
        return AgingReport(
            item_code=item.item_code,
            description=item.description,
            as_of=as_of,
            total_weight=item.total_weight,
            oldest_age=oldest_age,
            bucket=cases[0].bucket if cases else None,
            cases=cases,
        )

    @classmethod
    def count_history(cls, item_code: str):
        """Physical count snapshots of an item, oldest first."""
        return get_item(item_code).count_history.all()

    @classmethod
    def usage_history(cls, item_code: str, case_id: str):
        """Usage events of one case."""
        item = get_item(item_code)
        try:
            lot = item.lots.get(case_id=case_id)
        except Lot.DoesNotExist:
            return []
        return list(lot.usage_history.all())
