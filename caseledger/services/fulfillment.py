"""
Order fulfillment — match order lines against aggregate item quantity.

Lines are matched in the order they were recorded, not by date. This
works on quantities only: no case is consumed here.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import Count, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from caseledger.conf import caseledger_settings
from caseledger.exceptions import LedgerError, UnknownItemError
from caseledger.models.enums import FulfillmentStatus
from caseledger.models.order import Order, OrderLine
from caseledger.protocols.lots import OrderRecord
from caseledger.services.lots import to_quantity
from caseledger.signals import order_completed

logger = logging.getLogger('caseledger')


@dataclass(frozen=True)
class CompletionEvent:
    """An order reached its total."""

    order_id: str
    total_value: Decimal
    item_count: int

    def as_dict(self) -> dict:
        return {
            'orderNumber': self.order_id,
            'totalValue': self.total_value,
            'items': self.item_count,
        }


@dataclass(frozen=True)
class FulfillmentResult:
    """Outcome of a fulfillment call."""

    item_code: str
    requested: Decimal
    quantity_remaining: Decimal
    completed_orders: list[CompletionEvent] = field(default_factory=list)
    fulfilled_lines: list[dict] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            'itemCode': self.item_code,
            'quantityRequested': self.requested,
            'quantityRemaining': self.quantity_remaining,
            'ordersCleared': [e.as_dict() for e in self.completed_orders],
            'linesFulfilled': self.fulfilled_lines,
        }


class OrderFulfillment:
    """Order registration and line matching."""

    @classmethod
    def register_order(cls, record) -> Order:
        """
        Store an order and its lines.

        record may be an OrderRecord or a dict accepted by
        OrderRecord.from_dict(). Credit memo lines are stored for the
        audit but are never matched.

        Raises:
            LedgerError('INVALID_ORDER_RECORD')
            LedgerError('DUPLICATE_ORDER')
        """
        if not isinstance(record, OrderRecord):
            record = OrderRecord.from_dict(record)

        try:
            with transaction.atomic():
                order = Order.objects.create(
                    order_id=record.order_id,
                    order_date=record.order_date,
                    total_value=record.total_value,
                    is_credit_memo=record.is_credit_memo,
                )
                OrderLine.objects.bulk_create([
                    OrderLine(
                        order=order,
                        item_code=line.item_code,
                        description=line.description,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        line_total=line.line_total,
                    )
                    for line in record.lines
                ])
        except IntegrityError:
            raise LedgerError('DUPLICATE_ORDER', order_id=record.order_id)

        logger.info(
            "ledger.register_order",
            extra={
                "order_id": order.order_id,
                "total_value": str(order.total_value),
                "lines": len(record.lines),
                "credit_memo": order.is_credit_memo,
            },
        )
        return order

    @classmethod
    def fulfill(cls, item_code: str, quantity, order_id: str | None = None) -> FulfillmentResult:
        """
        Fulfill pending order lines of an item with the given quantity.

        Walks unfulfilled lines in insertion order, optionally limited to
        one order. A line is fulfilled when its quantity fits in what is
        left; lines that do not fit are passed over. A line that would take
        the order's fulfilled value past its total (plus tolerance) is
        skipped. An order whose fulfilled value reaches its total (minus
        tolerance) is completed and order_completed is sent.

        Raises:
            LedgerError('INVALID_QUANTITY'): If quantity <= 0 or has more
                than 3 decimal places
            UnknownItemError: If no order has a line for the item
            LedgerError('UNKNOWN_ORDER'): If order_id names no order

        Concurrency:
            - Runs under transaction.atomic()
            - Locks the candidate lines and their orders
        """
        quantity = to_quantity(quantity)

        if not OrderLine.objects.filter(item_code=item_code).exists():
            raise UnknownItemError(item_code, 'No order lines for this item')
        tolerance = caseledger_settings.FULFILLMENT_TOLERANCE

        remaining = quantity
        events: list[CompletionEvent] = []
        fulfilled_lines: list[dict] = []
        completed: list[Order] = []

        with transaction.atomic():
            lines = (
                OrderLine.objects.select_for_update()
                .select_related('order')
                .filter(item_code=item_code, fulfilled=False, order__is_credit_memo=False)
                .exclude(order__fulfillment_status=FulfillmentStatus.COMPLETED)
                .order_by('id')
            )
            if order_id is not None:
                if not Order.objects.filter(order_id=order_id).exists():
                    raise LedgerError('UNKNOWN_ORDER', order_id=order_id)
                lines = lines.filter(order__order_id=order_id)

            # One instance per order so several lines accumulate on it
            orders: dict[int, Order] = {}
            now = timezone.now()

            for line in lines:
                if remaining <= 0:
                    break

                order = orders.setdefault(line.order.pk, line.order)
                if order.fulfillment_status == FulfillmentStatus.COMPLETED:
                    continue
                if line.quantity > remaining:
                    continue

                if order.fulfilled_value + line.line_total > order.total_value + tolerance:
                    logger.warning(
                        "ledger.fulfill.over_allocation",
                        extra={
                            "order_id": order.order_id,
                            "item_code": item_code,
                            "line_total": str(line.line_total),
                            "fulfilled_value": str(order.fulfilled_value),
                            "total_value": str(order.total_value),
                        },
                    )
                    continue

                line.fulfilled = True
                line.fulfilled_at = now
                line.save(update_fields=['fulfilled', 'fulfilled_at'])
                remaining -= line.quantity
                fulfilled_lines.append({
                    'orderNumber': order.order_id,
                    'quantity': line.quantity,
                    'lineTotal': line.line_total,
                })

                order.fulfilled_value += line.line_total
                if order.fulfilled_value >= order.total_value - tolerance:
                    order.fulfillment_status = FulfillmentStatus.COMPLETED
                    order.completed_at = now
                    events.append(CompletionEvent(
                        order_id=order.order_id,
                        total_value=order.total_value,
                        item_count=order.lines.filter(fulfilled=True).count(),
                    ))
                    completed.append(order)
                else:
                    order.fulfillment_status = FulfillmentStatus.PARTIAL
                order.save(update_fields=['fulfilled_value', 'fulfillment_status', 'completed_at'])

        for order, event in zip(completed, events):
            order_completed.send(sender=Order, order=order, event=event)

        logger.info(
            "ledger.fulfill",
            extra={
                "item_code": item_code,
                "qty": str(quantity),
                "remaining": str(remaining),
                "lines": len(fulfilled_lines),
                "orders_completed": [e.order_id for e in events],
            },
        )

        return FulfillmentResult(
            item_code=item_code,
            requested=quantity,
            quantity_remaining=remaining,
            completed_orders=events,
            fulfilled_lines=fulfilled_lines,
        )

    @classmethod
    def matching_report(cls) -> dict:
        """Order totals and counts per fulfillment status (credit memos apart)."""
        invoices = Order.objects.filter(is_credit_memo=False)
        totals = invoices.aggregate(
            total=Coalesce(Sum('total_value'), Decimal('0')),
            fulfilled=Coalesce(Sum('fulfilled_value'), Decimal('0')),
        )
        by_status = {status.value: 0 for status in FulfillmentStatus}
        for row in invoices.order_by().values('fulfillment_status').annotate(n=Count('id')):
            by_status[row['fulfillment_status']] = row['n']

        return {
            'total_orders': invoices.count(),
            'credit_memos': Order.objects.filter(is_credit_memo=True).count(),
            'total_value': totals['total'],
            'fulfilled_value': totals['fulfilled'],
            'remaining_value': totals['total'] - totals['fulfilled'],
            'by_status': by_status,
        }
