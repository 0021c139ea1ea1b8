"""
Ledger services — modular organization of ledger operations.

Re-exports the service classes:
    from caseledger.services import LedgerQueries, LedgerLots, PhysicalCounts, OrderFulfillment, LedgerAudit
"""

from caseledger.services.audit import LedgerAudit
from caseledger.services.counts import PhysicalCounts
from caseledger.services.fulfillment import OrderFulfillment
from caseledger.services.lots import LedgerLots
from caseledger.services.queries import LedgerQueries

__all__ = [
    'LedgerQueries',
    'LedgerLots',
    'PhysicalCounts',
    'OrderFulfillment',
    'LedgerAudit',
]
