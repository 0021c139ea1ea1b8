"""
Ingestion Protocol — the contract with invoice/case extraction.

The ledger defines these records; the extraction side (PDF scraping,
EDI, spreadsheets) produces them. Records are validated here, at the
boundary, so the ledger never re-derives meaning from raw text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Iterator, Mapping, Protocol, runtime_checkable

from django.utils.dateparse import parse_date

from caseledger.exceptions import LedgerError


# ══════════════════════════════════════════════════════════════
# FIELD PARSING
# ══════════════════════════════════════════════════════════════


def _pick(data: Mapping[str, Any], *names: str):
    for name in names:
        if name in data:
            return data[name]
    return None


def _to_decimal(value, name: str, errors: list[dict]) -> Decimal | None:
    if value is None or isinstance(value, bool):
        errors.append({'field': name, 'message': f'{name} is required'})
        return None
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        errors.append({'field': name, 'message': f'{name} is not a number: {value!r}'})
        return None
    if not result.is_finite():
        errors.append({'field': name, 'message': f'{name} is not a number: {value!r}'})
        return None
    return result


def _to_date(value, name: str, errors: list[dict]) -> date | None:
    if isinstance(value, date):
        return value
    if not value:
        errors.append({'field': name, 'message': f'{name} is required'})
        return None
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        errors.append({'field': name, 'message': f'{name} is not a YYYY-MM-DD date: {value!r}'})
    return parsed


QUANTITY_STEP = Decimal('0.001')


def fits_quantity(value: Decimal) -> bool:
    """True when value is stored exactly in a 3-decimal quantity column."""
    try:
        return value == value.quantize(QUANTITY_STEP)
    except InvalidOperation:
        return False


def _to_code(value, name: str, errors: list[dict]) -> str | None:
    if value is None or str(value).strip() == '':
        errors.append({'field': name, 'message': f'{name} is required'})
        return None
    return str(value).strip()


# ══════════════════════════════════════════════════════════════
# DATA TYPES
# ══════════════════════════════════════════════════════════════


LOT_FIELDS = {
    'item_code': ('item_code', 'itemCode'),
    'case_id': ('case_id', 'caseId', 'caseNumber'),
    'weight': ('weight',),
    'invoice_number': ('invoice_number', 'invoiceNumber'),
    'received_date': ('received_date', 'receivedDate'),
}


@dataclass(frozen=True)
class LotRecord:
    """One received case, as handed over by extraction."""

    item_code: str
    case_id: str
    weight: Decimal
    invoice_number: str
    received_date: date

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LotRecord:
        """
        Build a record from camelCase or snake_case keys.

        Raises:
            LedgerError('INVALID_LOT_RECORD'): Unknown or missing fields,
                non-positive weight, bad date. `errors` lists every problem.
        """
        if not isinstance(data, Mapping):
            raise LedgerError('INVALID_LOT_RECORD', errors=[
                {'field': None, 'message': f'expected an object, got {type(data).__name__}'}
            ])

        errors: list[dict] = []
        known = {alias for aliases in LOT_FIELDS.values() for alias in aliases}
        for key in data:
            if key not in known:
                errors.append({'field': key, 'message': f'unknown field {key!r}'})

        item_code = _to_code(_pick(data, *LOT_FIELDS['item_code']), 'item_code', errors)
        case_id = _to_code(_pick(data, *LOT_FIELDS['case_id']), 'case_id', errors)
        invoice = _to_code(_pick(data, *LOT_FIELDS['invoice_number']), 'invoice_number', errors)
        weight = _to_decimal(_pick(data, *LOT_FIELDS['weight']), 'weight', errors)
        received = _to_date(_pick(data, *LOT_FIELDS['received_date']), 'received_date', errors)

        if weight is not None and weight <= 0:
            errors.append({'field': 'weight', 'message': f'weight must be positive, got {weight}'})
        elif weight is not None and not fits_quantity(weight):
            errors.append({'field': 'weight', 'message': f'weight has more than 3 decimal places: {weight}'})

        if errors:
            raise LedgerError('INVALID_LOT_RECORD', case_id=case_id, errors=errors)

        return cls(
            item_code=item_code,
            case_id=case_id,
            weight=weight,
            invoice_number=invoice,
            received_date=received,
        )


@dataclass(frozen=True)
class OrderLineRecord:
    """One order line item."""

    item_code: str
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal
    description: str = ''


@dataclass(frozen=True)
class OrderRecord:
    """One supplier order/invoice with its line items."""

    order_id: str
    total_value: Decimal
    lines: tuple[OrderLineRecord, ...] = ()
    is_credit_memo: bool = False
    order_date: date | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OrderRecord:
        """
        Build an order from the extraction JSON shape.

        Accepts `orderId`/`invoiceNumber`, `totalValue`/`invoiceTotal`,
        `items`/`lines` with `quantity`/`qtyShipped`. A missing line total
        is computed as quantity × unit price.

        Raises:
            LedgerError('INVALID_ORDER_RECORD')
        """
        errors: list[dict] = []
        order_id = _to_code(_pick(data, 'order_id', 'orderId', 'invoiceNumber'), 'order_id', errors)
        total = _to_decimal(_pick(data, 'total_value', 'totalValue', 'invoiceTotal'), 'total_value', errors)
        is_credit = bool(_pick(data, 'is_credit_memo', 'isCreditMemo'))

        order_date = None
        raw_date = _pick(data, 'order_date', 'orderDate')
        if raw_date:
            order_date = _to_date(raw_date, 'order_date', errors)

        lines = []
        for index, raw in enumerate(_pick(data, 'lines', 'items') or []):
            line_errors: list[dict] = []
            code = _to_code(_pick(raw, 'item_code', 'itemCode'), 'item_code', line_errors)
            qty = _to_decimal(_pick(raw, 'quantity', 'qtyShipped'), 'quantity', line_errors)
            if qty is not None and not fits_quantity(qty):
                line_errors.append({'field': 'quantity', 'message': f'quantity has more than 3 decimal places: {qty}'})
            price = _pick(raw, 'unit_price', 'unitPrice')
            price = _to_decimal(price, 'unit_price', line_errors) if price is not None else Decimal('0')
            raw_total = _pick(raw, 'line_total', 'lineTotal')
            line_total = None
            if raw_total is not None:
                line_total = _to_decimal(raw_total, 'line_total', line_errors)
            elif qty is not None and price is not None:
                line_total = qty * price

            if line_errors:
                errors.extend({**e, 'line': index} for e in line_errors)
                continue

            # Credit lines arrive negative; allocations work in magnitudes
            lines.append(OrderLineRecord(
                item_code=code,
                quantity=abs(qty),
                unit_price=price,
                line_total=abs(line_total),
                description=str(_pick(raw, 'description') or ''),
            ))

        if errors:
            raise LedgerError('INVALID_ORDER_RECORD', order_id=order_id, errors=errors)

        return cls(
            order_id=order_id,
            total_value=total,
            lines=tuple(lines),
            is_credit_memo=is_credit,
            order_date=order_date,
        )


# ══════════════════════════════════════════════════════════════
# PROTOCOLS
# ══════════════════════════════════════════════════════════════


@runtime_checkable
class LotSource(Protocol):
    """Producer of validated lot records (invoice extraction, imports)."""

    def iter_lots(self) -> Iterator[LotRecord]:
        """
        Yield lot records.

        Raises:
            LedgerError('INVALID_LOT_RECORD') on the first malformed record
        """
        ...


@runtime_checkable
class OrderSource(Protocol):
    """Producer of validated order records."""

    def iter_orders(self) -> Iterator[OrderRecord]:
        ...


def group_by_item(records: Iterable[LotRecord]) -> dict[str, list[LotRecord]]:
    """Group records per item code, keeping arrival order."""
    grouped: dict[str, list[LotRecord]] = {}
    for record in records:
        grouped.setdefault(record.item_code, []).append(record)
    return grouped
