"""
Case ledger Protocols.

Defines interfaces for external system integration.
"""

from caseledger.protocols.lots import (
    LotRecord,
    LotSource,
    OrderLineRecord,
    OrderRecord,
    OrderSource,
    group_by_item,
)

__all__ = [
    "LotRecord",
    "LotSource",
    "OrderLineRecord",
    "OrderRecord",
    "OrderSource",
    "group_by_item",
]
