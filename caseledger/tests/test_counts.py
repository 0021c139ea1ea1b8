"""
Tests for physical count reconciliation.
"""

from datetime import date
from decimal import Decimal

import pytest

from caseledger import LedgerError, UnknownItemError, ledger
from caseledger.models import CountSnapshot, Item, Lot, LotStatus, UsageEvent, UsageKind


pytestmark = pytest.mark.django_db


def snapshot_of_lots(item_code):
    return list(
        Lot.objects.filter(item__item_code=item_code)
        .order_by('id')
        .values_list('case_id', 'status', 'remaining_quantity', 'count_exclusions')
    )


class TestReconcile:
    """Tests for ledger.reconcile()."""

    def test_reconcile_scenario_b(self, cases, count_dates):
        """After consuming 35, counting L2 and L3 restores L2 and uses up L1."""
        l1, l2, l3 = cases
        ledger.consume('X', Decimal('35'))

        result = ledger.reconcile('X', [l2.case_id, l3.case_id], *count_dates)

        for lot in cases:
            lot.refresh_from_db()
        assert l1.status == LotStatus.USED
        assert l1.remaining_quantity == Decimal('0')
        assert l2.status == LotStatus.IN_STOCK
        assert l2.remaining_quantity == Decimal('20')
        assert l3.status == LotStatus.IN_STOCK
        assert l3.remaining_quantity == Decimal('25')

        assert result.total_weight == Decimal('45')
        assert result.total_cases == 2
        item = Item.objects.get(item_code='X')
        assert item.total_weight == Decimal('45')
        assert item.total_cases == 2

    def test_reconcile_stamps_counted_cases(self, cases, count_dates):
        l1, _, _ = cases

        ledger.reconcile('X', [l1.case_id], *count_dates, people_on_site=3, notes='Walk-in')

        l1.refresh_from_db()
        assert l1.last_physical_count == {
            'countDate': '2024-02-01',
            'cutoffDate': '2024-01-20',
            'peopleOnSite': 3,
            'verified': True,
            'notes': 'Walk-in',
        }

    def test_reconcile_adjustment_events(self, cases, count_dates):
        """Uncounted active cases get one adjustment event for what they held."""
        l1, l2, l3 = cases
        ledger.consume('X', Decimal('35'))

        ledger.reconcile('X', [l3.case_id], *count_dates)

        adjustments = UsageEvent.objects.filter(kind=UsageKind.PHYSICAL_COUNT_ADJUSTMENT)
        assert [(e.lot_id, e.amount_used) for e in adjustments] == [(l2.pk, Decimal('15'))]
        event = adjustments.get()
        assert event.date == date(2024, 2, 1)
        assert event.remaining_after == Decimal('0')
        assert 'Cutoff: 2024-01-20' in event.reason

    def test_reconcile_is_idempotent(self, cases, count_dates):
        _, l2, l3 = cases
        ledger.consume('X', Decimal('35'))
        counted = [l2.case_id, l3.case_id]

        first = ledger.reconcile('X', counted, *count_dates)
        events_after_first = UsageEvent.objects.count()
        second = ledger.reconcile('X', counted, *count_dates)

        assert (first.total_cases, first.total_weight) == (second.total_cases, second.total_weight)
        assert UsageEvent.objects.count() == events_after_first
        item = Item.objects.get(item_code='X')
        assert item.total_weight == Decimal('45')
        assert item.count_history.count() == 2

    def test_reconcile_rejects_cases_after_cutoff(self, cases):
        """A counted case received after the cutoff changes nothing."""
        l1, _, l3 = cases
        ledger.consume('X', Decimal('35'))
        before = snapshot_of_lots('X')
        events_before = UsageEvent.objects.count()

        with pytest.raises(LedgerError) as exc:
            ledger.reconcile('X', [l1.case_id, l3.case_id], date(2024, 2, 1), date(2024, 1, 15))

        assert exc.value.code == 'CASES_AFTER_CUTOFF'
        invalid = exc.value.data['invalid_cases']
        assert [c['case_id'] for c in invalid] == [l3.case_id]
        assert invalid[0]['received_date'] == date(2024, 1, 20)

        assert snapshot_of_lots('X') == before
        assert UsageEvent.objects.count() == events_before
        assert not CountSnapshot.objects.exists()
        assert Item.objects.get(item_code='X').total_weight == Decimal('40')

    def test_reconcile_short_id_after_cutoff_rejected(self, cases):
        """Short ids are checked against the cutoff too."""
        _, _, l3 = cases

        with pytest.raises(LedgerError) as exc:
            ledger.reconcile('X', [l3.short_id], date(2024, 2, 1), date(2024, 1, 15))

        assert exc.value.code == 'CASES_AFTER_CUTOFF'

    def test_reconcile_accepts_short_ids(self, cases, count_dates):
        l1, l2, l3 = cases

        result = ledger.reconcile('X', [l2.short_id, l3.short_id], *count_dates)

        l1.refresh_from_db()
        assert l1.status == LotStatus.USED
        assert result.cases_counted == 2
        assert result.unmatched_case_ids == []

    def test_reconcile_excluded_cases_annotated_not_changed(self, cases):
        l1, l2, l3 = cases
        ledger.consume('X', Decimal('35'))

        result = ledger.reconcile('X', [l1.case_id], date(2024, 2, 1), date(2024, 1, 5))

        l2.refresh_from_db()
        l3.refresh_from_db()
        assert l2.status == LotStatus.PARTIAL
        assert l2.remaining_quantity == Decimal('15')
        assert l3.remaining_quantity == Decimal('25')
        assert l2.count_exclusions == [{
            'countDate': '2024-02-01',
            'cutoffDate': '2024-01-05',
            'reason': 'Invoice date (2024-01-10) after cutoff',
            'excluded': True,
        }]
        assert result.eligible_lot_count == 1
        assert result.excluded_lot_count == 2

    def test_reconcile_snapshot_counts_eligible_only(self, cases):
        """The count records eligible totals; the item keeps all active cases."""
        l1, _, _ = cases

        result = ledger.reconcile('X', [l1.case_id], date(2024, 2, 1), date(2024, 1, 5))

        assert result.total_cases == 1
        assert result.total_weight == Decimal('30')
        item = Item.objects.get(item_code='X')
        assert item.total_cases == 3
        assert item.total_weight == Decimal('75')

        snapshot = item.count_history.get()
        assert snapshot.total_weight == Decimal('30')
        assert snapshot.eligible_lot_count == 1
        assert snapshot.excluded_lot_count == 2
        assert snapshot.cases_counted == 1

    def test_reconcile_unmatched_ids_reported(self, cases, count_dates):
        _, l2, _ = cases

        result = ledger.reconcile('X', [l2.case_id, 'GHOST-CASE'], *count_dates)

        assert result.unmatched_case_ids == ['GHOST-CASE']
        assert result.cases_counted == 1

    def test_reconcile_empty_count_uses_everything(self, cases, count_dates):
        result = ledger.reconcile('X', [], *count_dates)

        assert result.total_cases == 0
        assert result.cases_marked_used == 3
        assert Item.objects.get(item_code='X').total_weight == Decimal('0')

    def test_reconcile_failure_rolls_back(self, cases, count_dates, failing_usage_write):
        """A write failing midway leaves cases, history and totals as they were."""
        _, _, l3 = cases
        before = snapshot_of_lots('X')
        failing_usage_write(2)

        with pytest.raises(RuntimeError):
            ledger.reconcile('X', [l3.case_id], *count_dates)

        assert snapshot_of_lots('X') == before
        l3.refresh_from_db()
        assert l3.last_physical_count is None
        assert not UsageEvent.objects.exists()
        assert not CountSnapshot.objects.exists()
        item = Item.objects.get(item_code='X')
        assert (item.total_cases, item.total_weight) == (3, Decimal('75'))

    def test_reconcile_count_before_cutoff_rejected(self, cases):
        with pytest.raises(LedgerError) as exc:
            ledger.reconcile('X', [], date(2024, 1, 1), date(2024, 1, 20))

        assert exc.value.code == 'INVALID_COUNT_DATES'

    def test_reconcile_unknown_item(self, db, count_dates):
        with pytest.raises(UnknownItemError):
            ledger.reconcile('NOPE', [], *count_dates)

    def test_count_history(self, cases, count_dates):
        ledger.reconcile('X', [cases[2].case_id], *count_dates, people_on_site=2)

        history = list(ledger.count_history('X'))
        assert len(history) == 1
        assert history[0].as_dict()['peopleOnSite'] == 2
        assert history[0].cases_marked_used == 2
