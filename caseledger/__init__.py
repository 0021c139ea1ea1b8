"""
Django Case Ledger — case-level FIFO inventory.

Tracks every received case of an item, uses them oldest first, and
reconciles them against physical counts.

Usage:
    from caseledger import ledger, LedgerError

    ledger.add_lots('1206417', records)
    ledger.consume('1206417', 35, 'Production use')
    ledger.reconcile('1206417', ['9018357843002'], count_date, cutoff_date)
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'ledger':
        from caseledger.service import Ledger
        return Ledger
    elif name == 'LedgerError':
        from caseledger.exceptions import LedgerError
        return LedgerError
    elif name == 'UnknownItemError':
        from caseledger.exceptions import UnknownItemError
        return UnknownItemError
    elif name == 'Item':
        from caseledger.models.item import Item
        return Item
    elif name == 'Lot':
        from caseledger.models.lot import Lot
        return Lot
    elif name == 'UsageEvent':
        from caseledger.models.usage import UsageEvent
        return UsageEvent
    elif name == 'CountSnapshot':
        from caseledger.models.count import CountSnapshot
        return CountSnapshot
    elif name == 'Order':
        from caseledger.models.order import Order
        return Order
    elif name == 'LotStatus':
        from caseledger.models.enums import LotStatus
        return LotStatus
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'ledger',
    'LedgerError',
    'UnknownItemError',
    'Item',
    'Lot',
    'UsageEvent',
    'CountSnapshot',
    'Order',
    'LotStatus',
]

__version__ = '0.1.0'
