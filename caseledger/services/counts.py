"""
Physical counts — overwrite ledger state with what people found on the shelf.

A count names the cases on hand at count_date. Only cases received on or
before cutoff_date take part; later receipts are outside the count and
must not appear in it.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from django.db import transaction

from caseledger.conf import caseledger_settings
from caseledger.exceptions import LedgerError
from caseledger.models.count import CountSnapshot
from caseledger.models.enums import LotStatus, UsageKind
from caseledger.models.usage import UsageEvent
from caseledger.services.lots import get_item

logger = logging.getLogger('caseledger')


@dataclass(frozen=True)
class CountResult:
    """Outcome of a reconciliation."""

    item_code: str
    count_date: date
    cutoff_date: date
    people_on_site: int | None
    cases_counted: int
    eligible_lot_count: int
    excluded_lot_count: int
    cases_marked_used: int
    total_cases: int
    total_weight: Decimal
    unmatched_case_ids: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            'itemCode': self.item_code,
            'countDate': self.count_date.isoformat(),
            'cutoffDate': self.cutoff_date.isoformat(),
            'peopleOnSite': self.people_on_site,
            'casesInCount': self.cases_counted,
            'eligibleCases': self.eligible_lot_count,
            'excludedCases': self.excluded_lot_count,
            'newTotalCases': self.total_cases,
            'newTotalWeight': self.total_weight,
            'unmatchedCaseNumbers': self.unmatched_case_ids,
            'summary': {
                'casesVerified': self.cases_counted,
                'casesMarkedUsed': self.cases_marked_used,
                'casesExcluded': self.excluded_lot_count,
            },
        }


def _resolve(case_ids, eligible, excluded):
    """
    Map counted ids to lots.

    A full case id matches exactly. An id of SHORT_ID_LENGTH characters
    that matches no full id is looked up by short id, eligible lots
    first. Returns (lots by counted id, unmatched ids).
    """
    by_case_id = {lot.case_id: lot for lot in (*eligible, *excluded)}
    short_len = caseledger_settings.SHORT_ID_LENGTH

    resolved = {}
    unmatched = []
    for raw in case_ids:
        case_id = str(raw).strip()
        lot = by_case_id.get(case_id)
        if lot is None and len(case_id) == short_len:
            lot = next(
                (c for c in (*eligible, *excluded) if c.short_id == case_id),
                None,
            )
        if lot is None:
            unmatched.append(case_id)
        else:
            resolved[case_id] = lot
    return resolved, unmatched


class PhysicalCounts:
    """Reconciliation of the ledger against physical counts."""

    @classmethod
    def reconcile(cls, item_code: str, counted_case_ids, count_date: date,
                  cutoff_date: date, people_on_site: int | None = None,
                  notes: str = '') -> CountResult:
        """
        Apply a physical count to an item.

        Eligible cases (received <= cutoff_date) that were counted are
        restored to full weight; eligible cases not counted are used up.
        Cases received after the cutoff keep their state and get an
        exclusion annotation. Counting the same cases again yields the
        same totals.

        Counting a partially used case restores it to its full weight:
        the count does not know how much of the case is left.

        Raises:
            UnknownItemError: If the item does not exist
            LedgerError('INVALID_COUNT_DATES'): count_date before cutoff_date
            LedgerError('CASES_AFTER_CUTOFF'): A counted case was received
                after cutoff_date. Nothing is changed.

        Concurrency:
            - Runs under transaction.atomic()
            - Locks the item row, then all its lots
        """
        if count_date < cutoff_date:
            raise LedgerError(
                'INVALID_COUNT_DATES',
                count_date=count_date,
                cutoff_date=cutoff_date,
            )

        counted_case_ids = list(dict.fromkeys(str(c).strip() for c in counted_case_ids))

        with transaction.atomic():
            item = get_item(item_code, lock=True)
            lots = list(item.lots.select_for_update().order_by('received_date', 'id'))
            eligible = [lot for lot in lots if lot.received_date <= cutoff_date]
            excluded = [lot for lot in lots if lot.received_date > cutoff_date]

            resolved, unmatched = _resolve(counted_case_ids, eligible, excluded)

            invalid = [
                {
                    'case_id': lot.case_id,
                    'received_date': lot.received_date,
                    'reason': f"Invoice date ({lot.received_date}) is after cutoff ({cutoff_date})",
                }
                for lot in resolved.values()
                if lot.received_date > cutoff_date
            ]
            if invalid:
                raise LedgerError(
                    'CASES_AFTER_CUTOFF',
                    item_code=item_code,
                    cutoff_date=cutoff_date,
                    invalid_cases=invalid,
                )

            counted_pks = {lot.pk for lot in resolved.values()}
            stamp = {
                'countDate': count_date.isoformat(),
                'cutoffDate': cutoff_date.isoformat(),
                'peopleOnSite': people_on_site,
                'verified': True,
                'notes': notes,
            }
            adjustment_reason = (
                f"Physical count adjustment (Count date: {count_date}, Cutoff: {cutoff_date})"
            )

            marked_used = 0
            for lot in eligible:
                if lot.pk in counted_pks:
                    lot.set_remaining(lot.weight)
                    lot.last_physical_count = stamp
                    lot.save(update_fields=['remaining_quantity', 'status', 'last_physical_count'])
                    continue

                marked_used += 1
                if lot.status == LotStatus.USED:
                    continue

                prior = lot.remaining_quantity
                lot.set_remaining(Decimal('0'))
                lot.save(update_fields=['remaining_quantity', 'status'])
                UsageEvent.objects.create(
                    lot=lot,
                    date=count_date,
                    amount_used=prior,
                    remaining_after=Decimal('0'),
                    reason=adjustment_reason,
                    kind=UsageKind.PHYSICAL_COUNT_ADJUSTMENT,
                    metadata={
                        'count_date': count_date.isoformat(),
                        'cutoff_date': cutoff_date.isoformat(),
                    },
                )

            for lot in excluded:
                lot.count_exclusions = [*lot.count_exclusions, {
                    'countDate': count_date.isoformat(),
                    'cutoffDate': cutoff_date.isoformat(),
                    'reason': f"Invoice date ({lot.received_date}) after cutoff",
                    'excluded': True,
                }]
                lot.save(update_fields=['count_exclusions'])

            counted_active = [lot for lot in eligible if lot.status != LotStatus.USED]
            snapshot = CountSnapshot.objects.create(
                item=item,
                count_date=count_date,
                cutoff_date=cutoff_date,
                people_on_site=people_on_site,
                notes=notes,
                cases_counted=len(counted_pks),
                eligible_lot_count=len(eligible),
                excluded_lot_count=len(excluded),
                cases_marked_used=marked_used,
                total_cases=len(counted_active),
                total_weight=sum((lot.remaining_quantity for lot in counted_active), Decimal('0')),
            )

            item.refresh_totals()

        if unmatched:
            logger.warning(
                "ledger.reconcile.unmatched",
                extra={"item_code": item_code, "case_ids": unmatched},
            )

        logger.info(
            "ledger.reconcile",
            extra={
                "item_code": item_code,
                "count_date": count_date.isoformat(),
                "cutoff_date": cutoff_date.isoformat(),
                "counted": snapshot.cases_counted,
                "marked_used": marked_used,
                "excluded": len(excluded),
                "total_weight": str(item.total_weight),
            },
        )

        return CountResult(
            item_code=item_code,
            count_date=count_date,
            cutoff_date=cutoff_date,
            people_on_site=people_on_site,
            cases_counted=snapshot.cases_counted,
            eligible_lot_count=len(eligible),
            excluded_lot_count=len(excluded),
            cases_marked_used=marked_used,
            total_cases=snapshot.total_cases,
            total_weight=snapshot.total_weight,
            unmatched_case_ids=unmatched,
        )
