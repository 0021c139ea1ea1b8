"""
Case ledger models.

Core models for case-level inventory:
- Item: Stocked product with cached active totals
- Lot: One received case, consumed FIFO
- UsageEvent: Immutable history of quantity taken from a case
- CountSnapshot: Immutable record of each physical count
- Order / OrderLine: Orders and their per-item allocations
"""

from caseledger.models.count import CountSnapshot
from caseledger.models.enums import (
    FulfillmentStatus,
    LotStatus,
    RotationBucket,
    Severity,
    UsageKind,
)
from caseledger.models.item import Item
from caseledger.models.lot import Lot
from caseledger.models.order import Order, OrderLine
from caseledger.models.usage import UsageEvent

__all__ = [
    'LotStatus',
    'UsageKind',
    'FulfillmentStatus',
    'RotationBucket',
    'Severity',
    'Item',
    'Lot',
    'UsageEvent',
    'CountSnapshot',
    'Order',
    'OrderLine',
]
