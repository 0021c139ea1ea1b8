"""
Pytest fixtures for case ledger tests.
"""

from datetime import date
from decimal import Decimal

import pytest

from caseledger import ledger
from caseledger.models import UsageEvent
from caseledger.protocols import LotRecord


def make_record(item_code, case_id, weight, received, invoice='INV-1'):
    return LotRecord(
        item_code=item_code,
        case_id=case_id,
        weight=Decimal(str(weight)),
        invoice_number=invoice,
        received_date=received,
    )


@pytest.fixture
def lot_record():
    """Factory for LotRecord."""
    return make_record


@pytest.fixture
def item_x(db):
    """
    Item X with three cases:
        L1 2024-01-01 30kg
        L2 2024-01-10 20kg
        L3 2024-01-20 25kg
    """
    return ledger.add_lots(
        'X',
        [
            make_record('X', '9018357840001', 30, date(2024, 1, 1), 'INV-100'),
            make_record('X', '9018357840002', 20, date(2024, 1, 10), 'INV-101'),
            make_record('X', '9018357840003', 25, date(2024, 1, 20), 'INV-102'),
        ],
        description='Ground beef',
        unit='KG',
        unit_price=Decimal('5.00'),
    )


@pytest.fixture
def cases(item_x):
    """Cases of item X in FIFO order: (L1, L2, L3)."""
    return tuple(item_x.lots.order_by('received_date', 'id'))


@pytest.fixture
def items_ab(db):
    """Items A and B, one case each, for order matching."""
    a = ledger.add_lots('A', [make_record('A', 'A-0001', 10, date(2024, 1, 5))], unit_price=Decimal('30'))
    b = ledger.add_lots('B', [make_record('B', 'B-0001', 20, date(2024, 1, 5))], unit_price=Decimal('10'))
    return a, b


@pytest.fixture
def order_o1(items_ab):
    """Order O1: $500 = (A, 10 x $30) + (B, 20 x $10)."""
    return ledger.register_order({
        'orderId': 'O1',
        'totalValue': '500.00',
        'orderDate': '2024-01-05',
        'lines': [
            {'itemCode': 'A', 'quantity': 10, 'unitPrice': '30.00', 'lineTotal': '300.00'},
            {'itemCode': 'B', 'quantity': 20, 'unitPrice': '10.00', 'lineTotal': '200.00'},
        ],
    })


@pytest.fixture
def count_dates():
    """(count_date, cutoff_date) of the January count."""
    return date(2024, 2, 1), date(2024, 1, 20)


@pytest.fixture
def failing_usage_write(monkeypatch):
    """
    Arm UsageEvent.objects.create() to raise RuntimeError on its n-th call.

    Usage:
        failing_usage_write(2)
    """
    manager = UsageEvent.objects
    create = manager.create

    def arm(n):
        calls = []

        def create_or_fail(*args, **kwargs):
            calls.append(kwargs)
            if len(calls) == n:
                raise RuntimeError('usage event write failed')
            return create(*args, **kwargs)

        monkeypatch.setattr(manager, 'create', create_or_fail)

    return arm
