"""
Case movements — state-changing lot operations (add_lots, consume).

All methods use transaction.atomic() with the item row locked, so a
multi-case consumption commits completely or not at all.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from caseledger.conf import caseledger_settings
from caseledger.exceptions import LedgerError, UnknownItemError
from caseledger.models.enums import LotStatus, UsageKind
from caseledger.models.item import Item
from caseledger.models.lot import Lot
from caseledger.models.usage import UsageEvent
from caseledger.protocols.lots import LotRecord, fits_quantity

logger = logging.getLogger('caseledger')


@dataclass(frozen=True)
class ConsumptionAction:
    """What consume() did to one case."""

    case_id: str
    short_id: str
    amount_used: Decimal
    remaining_after: Decimal
    fully_used: bool

    def as_dict(self) -> dict:
        return {
            'caseNumber': self.case_id,
            'caseNumberShort': self.short_id,
            'weightUsed': self.amount_used,
            'weightRemaining': self.remaining_after,
            'fullyUsed': self.fully_used,
        }


@dataclass(frozen=True)
class ConsumptionResult:
    """
    Outcome of a FIFO consumption.

    shortfall > 0 means stock ran out; the caller decides what that
    means (backorder, substitution...).
    """

    item_code: str
    requested: Decimal
    total_consumed: Decimal
    shortfall: Decimal
    total_cases: int
    total_weight: Decimal
    actions: list[ConsumptionAction] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            'itemCode': self.item_code,
            'quantityRequested': self.requested,
            'quantityUsed': self.total_consumed,
            'quantityRemaining': self.shortfall,
            'casesUsed': [a.as_dict() for a in self.actions],
            'newTotalCases': self.total_cases,
            'newTotalWeight': self.total_weight,
        }


def to_quantity(quantity) -> Decimal:
    """
    Parse a requested quantity: positive, at most 3 decimal places.

    Raises:
        LedgerError('INVALID_QUANTITY')
    """
    quantity = Decimal(str(quantity))
    if quantity <= 0 or not fits_quantity(quantity):
        raise LedgerError('INVALID_QUANTITY', requested=quantity)
    return quantity


def get_item(item_code: str, *, lock: bool = False) -> Item:
    """
    Fetch an item by code.

    Raises:
        UnknownItemError: If the ledger has no such item
    """
    qs = Item.objects.select_for_update() if lock else Item.objects.all()
    try:
        return qs.get(item_code=item_code)
    except Item.DoesNotExist:
        raise UnknownItemError(item_code)


class LedgerLots:
    """State-changing case methods."""

    @classmethod
    def add_lots(cls, item_code: str, lots, *, description: str | None = None,
                 unit: str | None = None, unit_price: Decimal | None = None,
                 barcode: str | None = None, require_existing: bool | None = None) -> Item:
        """
        Receive cases for an item.

        Lots may be LotRecord instances or dicts accepted by
        LotRecord.from_dict(). Every record is validated before anything
        is written.

        Raises:
            LedgerError('INVALID_LOT_RECORD'): Malformed record, or a record
                for another item
            LedgerError('DUPLICATE_CASE'): case_id already on file (or
                repeated in the batch)
            UnknownItemError: Item missing and require_existing (default:
                REQUIRE_EXISTING_ITEM setting) is true

        Concurrency:
            - Runs under transaction.atomic()
            - Locks the item row
        """
        records = [
            lot if isinstance(lot, LotRecord) else LotRecord.from_dict(lot)
            for lot in lots
        ]

        foreign = [r.case_id for r in records if r.item_code != item_code]
        if foreign:
            raise LedgerError(
                'INVALID_LOT_RECORD',
                f'Records belong to another item than {item_code}',
                item_code=item_code,
                case_ids=foreign,
            )

        unstorable = [
            r.case_id for r in records
            if r.weight <= 0 or not fits_quantity(r.weight)
        ]
        if unstorable:
            raise LedgerError(
                'INVALID_LOT_RECORD',
                'Weights must be positive with at most 3 decimal places',
                item_code=item_code,
                case_ids=unstorable,
            )

        seen = set()
        repeated = []
        for record in records:
            if record.case_id in seen:
                repeated.append(record.case_id)
            seen.add(record.case_id)
        if repeated:
            raise LedgerError('DUPLICATE_CASE', item_code=item_code, case_ids=repeated)

        attrs = {
            k: v for k, v in {
                'description': description,
                'unit': unit,
                'unit_price': unit_price,
                'barcode': barcode,
            }.items() if v is not None
        }

        if require_existing is None:
            require_existing = caseledger_settings.REQUIRE_EXISTING_ITEM

        with transaction.atomic():
            if require_existing:
                item = get_item(item_code, lock=True)
            else:
                item, created = Item.objects.get_or_create(item_code=item_code, defaults=attrs)
                item = Item.objects.select_for_update().get(pk=item.pk)
                if created:
                    attrs = {}

            if attrs:
                for name, value in attrs.items():
                    setattr(item, name, value)
                item.save(update_fields=[*attrs, 'updated_at'])

            existing = set(
                item.lots.filter(case_id__in=seen).values_list('case_id', flat=True)
            )
            if existing:
                raise LedgerError('DUPLICATE_CASE', item_code=item_code, case_ids=sorted(existing))

            Lot.objects.bulk_create([
                Lot(
                    item=item,
                    case_id=record.case_id,
                    weight=record.weight,
                    remaining_quantity=record.weight,
                    received_date=record.received_date,
                    source_invoice=record.invoice_number,
                    status=LotStatus.IN_STOCK,
                )
                for record in records
            ])

            item.refresh_totals()

        logger.info(
            "ledger.add_lots",
            extra={
                "item_code": item_code,
                "cases": len(records),
                "total_cases": item.total_cases,
                "total_weight": str(item.total_weight),
            },
        )
        return item

    @classmethod
    def consume(cls, item_code: str, quantity, reason: str | None = None,
                on: date | None = None) -> ConsumptionResult:
        """
        Use stock oldest-case-first.

        Walks active cases by (received_date, insertion order). A case
        whose remainder fits in what is still needed is used up; the first
        case that is larger is reduced and the walk stops.

        Returns:
            ConsumptionResult; shortfall holds what could not be served

        Raises:
            LedgerError('INVALID_QUANTITY'): If quantity <= 0 or has more
                than 3 decimal places
            UnknownItemError: If the item does not exist

        Concurrency:
            - Runs under transaction.atomic()
            - Locks the item row, then the active lots
        """
        quantity = to_quantity(quantity)

        reason = reason or caseledger_settings.DEFAULT_USAGE_REASON
        usage_date = on or timezone.localdate()
        actions: list[ConsumptionAction] = []
        needed = quantity

        with transaction.atomic():
            item = get_item(item_code, lock=True)
            lots = item.lots.select_for_update().exclude(
                status=LotStatus.USED
            ).order_by('received_date', 'id')

            for lot in lots:
                if needed <= 0:
                    break

                if lot.remaining_quantity <= needed:
                    used = lot.remaining_quantity
                else:
                    used = needed

                lot.set_remaining(lot.remaining_quantity - used)
                lot.save(update_fields=['remaining_quantity', 'status'])
                needed -= used

                UsageEvent.objects.create(
                    lot=lot,
                    date=usage_date,
                    amount_used=used,
                    remaining_after=lot.remaining_quantity,
                    reason=reason,
                    kind=UsageKind.CONSUMPTION,
                )
                actions.append(ConsumptionAction(
                    case_id=lot.case_id,
                    short_id=lot.short_id,
                    amount_used=used,
                    remaining_after=lot.remaining_quantity,
                    fully_used=lot.status == LotStatus.USED,
                ))

            item.refresh_totals()

        result = ConsumptionResult(
            item_code=item_code,
            requested=quantity,
            total_consumed=quantity - needed,
            shortfall=needed,
            total_cases=item.total_cases,
            total_weight=item.total_weight,
            actions=actions,
        )

        log = logger.warning if needed > 0 else logger.info
        log(
            "ledger.consume",
            extra={
                "item_code": item_code,
                "qty": str(quantity),
                "consumed": str(result.total_consumed),
                "shortfall": str(needed),
                "cases_touched": len(actions),
                "reason": reason,
            },
        )
        return result

    @classmethod
    def recalculate(cls, item_code: str) -> Item:
        """Recompute cached totals from the lot rows (audit/correction)."""
        with transaction.atomic():
            item = get_item(item_code, lock=True)
            item.recalculate()
        return item
