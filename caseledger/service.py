"""
Ledger Service — The single public interface for all case ledger operations.

Usage:
    from caseledger import ledger, LedgerError

    ledger.add_lots('1206417', records)
    result = ledger.consume('1206417', Decimal('35'), 'Production use')
    result.shortfall                      # Decimal('0')
    ledger.aging_report('1206417').needs_rotation
"""

from caseledger.services.audit import LedgerAudit
from caseledger.services.counts import PhysicalCounts
from caseledger.services.document import build_document
from caseledger.services.fulfillment import OrderFulfillment
from caseledger.services.lots import LedgerLots
from caseledger.services.queries import LedgerQueries


class Ledger(LedgerQueries, LedgerLots, PhysicalCounts, OrderFulfillment, LedgerAudit):
    """
    Single interface for all ledger operations.

    Parameter convention: (item_code, quantity, ...)

    IMPORTANT: All state-changing methods (add_lots, consume, reconcile,
    register_order, fulfill) run in atomic transactions with the owning
    rows locked. See each method's docstring.

    Sections:
        QUERIES        get_item, list_items, list_lots, aging_report,
                       count_history, usage_history
        CASES          add_lots, consume, recalculate
        COUNTS         reconcile
        ORDERS         register_order, fulfill, matching_report
        AUDIT          audit, export
    """

    # ══════════════════════════════════════════════════════════════
    # EXPORT
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def export(cls, item_codes=None) -> dict:
        """Ledger as one document keyed by item code."""
        return build_document(item_codes)
