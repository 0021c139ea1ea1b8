"""
Exceptions for the case ledger.

All errors are LedgerError with a structured code for programmatic handling.
"""

from datetime import date
from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    """
    Structured exception for ledger operations.

    Usage:
        try:
            ledger.reconcile('1206417', ['9018357843001'], count_date, cutoff)
        except LedgerError as e:
            if e.code == 'CASES_AFTER_CUTOFF':
                print(e.data['invalid_cases'])

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'UNKNOWN_ITEM': 'Item not found',
        'UNKNOWN_ORDER': 'Order not found',
        'INVALID_QUANTITY': 'Invalid quantity (must be positive)',
        'INVALID_LOT_RECORD': 'Malformed lot record',
        'INVALID_ORDER_RECORD': 'Malformed order record',
        'DUPLICATE_CASE': 'Case already recorded for this item',
        'DUPLICATE_ORDER': 'Order already registered',
        'CASES_AFTER_CUTOFF': 'Some cases are after cutoff date',
        'INVALID_COUNT_DATES': 'Count date cannot precede cutoff date',
    }

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, {self.message!r})"

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': _jsonable(self.data),
        }


class UnknownItemError(LedgerError):
    """Raised when an operation names an item the ledger does not hold."""

    def __init__(self, item_code: str, message: str | None = None, **data):
        super().__init__('UNKNOWN_ITEM', message, item_code=item_code, **data)

    @property
    def item_code(self) -> str:
        return self.data['item_code']


def _jsonable(value):
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value
