"""
Tests for order registration and fulfillment matching.
"""

from decimal import Decimal

import pytest

from caseledger import LedgerError, UnknownItemError, ledger
from caseledger.models import FulfillmentStatus, Item, Order
from caseledger.signals import order_completed


pytestmark = pytest.mark.django_db


class TestRegisterOrder:
    """Tests for ledger.register_order()."""

    def test_register_order_with_lines(self, order_o1):
        assert order_o1.fulfillment_status == FulfillmentStatus.PENDING
        assert order_o1.lines.count() == 2
        assert order_o1.lines_total == Decimal('500')
        assert order_o1.remaining_value == Decimal('500')

    def test_register_order_extraction_shape(self, db):
        """invoiceNumber/invoiceTotal/items/qtyShipped are accepted."""
        order = ledger.register_order({
            'invoiceNumber': '9018357843',
            'invoiceTotal': 71.04,
            'items': [
                {'itemCode': '1206417', 'description': 'APPLE GOLDEN', 'qtyShipped': 2, 'unitPrice': 35.52},
            ],
        })

        line = order.lines.get()
        assert line.quantity == Decimal('2')
        assert line.line_total == Decimal('71.04')

    def test_register_duplicate_order(self, order_o1):
        with pytest.raises(LedgerError) as exc:
            ledger.register_order({'orderId': 'O1', 'totalValue': 1})

        assert exc.value.code == 'DUPLICATE_ORDER'
        assert Order.objects.count() == 1

    def test_register_order_rejects_unstorable_quantity(self, db):
        with pytest.raises(LedgerError) as exc:
            ledger.register_order({
                'orderId': 'O9', 'totalValue': 1,
                'lines': [{'itemCode': 'A', 'quantity': '0.0001', 'unitPrice': 1}],
            })

        assert exc.value.code == 'INVALID_ORDER_RECORD'
        assert not Order.objects.exists()

    def test_register_invalid_order(self, db):
        with pytest.raises(LedgerError) as exc:
            ledger.register_order({'orderId': 'O9', 'lines': [{'itemCode': 'A'}]})

        assert exc.value.code == 'INVALID_ORDER_RECORD'
        fields = {e['field'] for e in exc.value.data['errors']}
        assert fields == {'total_value', 'quantity'}


class TestFulfill:
    """Tests for ledger.fulfill()."""

    def test_fulfill_scenario_c(self, order_o1):
        """Both lines of O1 fulfilled: order completes at $500."""
        first = ledger.fulfill('A', Decimal('10'), 'O1')

        order_o1.refresh_from_db()
        assert first.completed_orders == []
        assert first.quantity_remaining == Decimal('0')
        assert order_o1.fulfillment_status == FulfillmentStatus.PARTIAL
        assert order_o1.fulfilled_value == Decimal('300')

        second = ledger.fulfill('B', Decimal('20'), 'O1')

        order_o1.refresh_from_db()
        assert order_o1.fulfillment_status == FulfillmentStatus.COMPLETED
        assert abs(order_o1.fulfilled_value - Decimal('500')) <= Decimal('0.01')
        assert order_o1.completed_at is not None
        [event] = second.completed_orders
        assert event.order_id == 'O1'
        assert event.total_value == Decimal('500')
        assert event.item_count == 2

    def test_fulfill_sends_order_completed(self, order_o1):
        received = []

        def handler(sender, order, event, **kwargs):
            received.append((order.order_id, event.total_value))

        order_completed.connect(handler)
        try:
            ledger.fulfill('A', 10)
            assert received == []
            ledger.fulfill('B', 20)
        finally:
            order_completed.disconnect(handler)

        assert received == [('O1', Decimal('500'))]

    def test_fulfill_within_tolerance_completes(self, items_ab):
        """Rounding pennies below the total still complete the order."""
        ledger.register_order({
            'orderId': 'O2',
            'totalValue': '100.00',
            'lines': [{'itemCode': 'A', 'quantity': 3, 'unitPrice': '33.33', 'lineTotal': '99.99'}],
        })

        result = ledger.fulfill('A', 3)

        assert [e.order_id for e in result.completed_orders] == ['O2']

    def test_fulfill_insertion_order(self, items_ab):
        """Older lines are matched first, whatever their order dates."""
        ledger.register_order({
            'orderId': 'LATE', 'orderDate': '2024-03-01', 'totalValue': 60,
            'lines': [{'itemCode': 'A', 'quantity': 2, 'unitPrice': 30}],
        })
        ledger.register_order({
            'orderId': 'EARLY', 'orderDate': '2024-01-01', 'totalValue': 60,
            'lines': [{'itemCode': 'A', 'quantity': 2, 'unitPrice': 30}],
        })

        result = ledger.fulfill('A', 2)

        assert [e.order_id for e in result.completed_orders] == ['LATE']
        assert Order.objects.get(order_id='EARLY').fulfillment_status == FulfillmentStatus.PENDING

    def test_fulfill_skips_lines_that_do_not_fit(self, items_ab):
        ledger.register_order({
            'orderId': 'BIG', 'totalValue': 300,
            'lines': [{'itemCode': 'A', 'quantity': 10, 'unitPrice': 30}],
        })
        ledger.register_order({
            'orderId': 'SMALL', 'totalValue': 90,
            'lines': [{'itemCode': 'A', 'quantity': 3, 'unitPrice': 30}],
        })

        result = ledger.fulfill('A', 5)

        assert [e.order_id for e in result.completed_orders] == ['SMALL']
        assert result.quantity_remaining == Decimal('2')

    def test_fulfill_never_exceeds_order_total(self, items_ab):
        """A line that would overshoot the order total is left pending."""
        ledger.register_order({
            'orderId': 'SHORT', 'totalValue': 50,
            'lines': [
                {'itemCode': 'A', 'quantity': 1, 'unitPrice': 30},
                {'itemCode': 'A', 'quantity': 1, 'unitPrice': 30},
            ],
        })

        result = ledger.fulfill('A', 2)

        order = Order.objects.get(order_id='SHORT')
        assert order.fulfilled_value == Decimal('30')
        assert order.fulfilled_value <= order.total_value + Decimal('0.01')
        assert order.fulfillment_status == FulfillmentStatus.PARTIAL
        assert result.quantity_remaining == Decimal('1')

    def test_fulfill_ignores_credit_memos(self, items_ab):
        ledger.register_order({
            'orderId': 'CM-1', 'totalValue': -30, 'isCreditMemo': True,
            'lines': [{'itemCode': 'A', 'quantity': -1, 'unitPrice': 30}],
        })

        result = ledger.fulfill('A', 1)

        assert result.fulfilled_lines == []
        assert result.quantity_remaining == Decimal('1')
        assert Order.objects.get(order_id='CM-1').fulfillment_status == FulfillmentStatus.PENDING

    def test_fulfill_does_not_consume_cases(self, order_o1):
        ledger.fulfill('A', 10, 'O1')

        assert Item.objects.get(item_code='A').total_weight == Decimal('10')

    def test_fulfill_completed_order_not_reopened(self, order_o1):
        ledger.fulfill('A', 10)
        ledger.fulfill('B', 20)

        result = ledger.fulfill('A', 10)

        assert result.fulfilled_lines == []
        order_o1.refresh_from_db()
        assert order_o1.fulfillment_status == FulfillmentStatus.COMPLETED

    def test_fulfill_item_never_received(self, order_o1):
        """Matching works on order lines alone; the item need not be in the case ledger."""
        ledger.register_order({
            'orderId': 'O2', 'totalValue': 50,
            'lines': [{'itemCode': 'Z', 'quantity': 10, 'unitPrice': 5}],
        })
        assert not Item.objects.filter(item_code='Z').exists()

        result = ledger.fulfill('Z', 10, 'O2')

        assert [e.order_id for e in result.completed_orders] == ['O2']
        assert result.quantity_remaining == Decimal('0')
        assert not Item.objects.filter(item_code='Z').exists()

    def test_fulfill_unknown_item(self, order_o1):
        with pytest.raises(UnknownItemError):
            ledger.fulfill('NOPE', 1)

    def test_fulfill_unknown_order(self, order_o1):
        with pytest.raises(LedgerError) as exc:
            ledger.fulfill('A', 10, 'O404')

        assert exc.value.code == 'UNKNOWN_ORDER'

    def test_fulfill_invalid_quantity(self, order_o1):
        with pytest.raises(LedgerError) as exc:
            ledger.fulfill('A', 0)

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_fulfill_rejects_more_than_three_decimals(self, order_o1):
        with pytest.raises(LedgerError) as exc:
            ledger.fulfill('A', Decimal('9.9996'))

        assert exc.value.code == 'INVALID_QUANTITY'
        assert not order_o1.lines.filter(fulfilled=True).exists()


class TestMatchingReport:
    def test_matching_report(self, order_o1):
        ledger.register_order({'orderId': 'CM', 'totalValue': -10, 'isCreditMemo': True})
        ledger.fulfill('A', 10)

        report = ledger.matching_report()

        assert report['total_orders'] == 1
        assert report['credit_memos'] == 1
        assert report['total_value'] == Decimal('500')
        assert report['fulfilled_value'] == Decimal('300')
        assert report['remaining_value'] == Decimal('200')
        assert report['by_status'] == {'pending': 0, 'partial': 1, 'completed': 0}
