"""
Order and OrderLine models — supplier orders matched against stock.
"""

from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _

from caseledger.models.enums import FulfillmentStatus


class Order(models.Model):
    """
    Supplier invoice/order with its fulfillment progress.

    LIFECYCLE:

        pending ──► partial ──► completed

    Never moves backwards. Credit memos carry a negative adjustment and
    take no part in fulfillment.
    """

    order_id = models.CharField(
        max_length=50,
        unique=True,
        verbose_name=_('Order / invoice number'),
    )
    order_date = models.DateField(null=True, blank=True, verbose_name=_('Order date'))
    total_value = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        verbose_name=_('Invoice total'),
    )
    is_credit_memo = models.BooleanField(default=False, verbose_name=_('Credit memo'))

    fulfillment_status = models.CharField(
        max_length=20,
        choices=FulfillmentStatus.choices,
        default=FulfillmentStatus.PENDING,
        db_index=True,
        verbose_name=_('Fulfillment'),
    )
    fulfilled_value = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Fulfilled value'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = _('Order')
        verbose_name_plural = _('Orders')
        ordering = ['id']

    @property
    def remaining_value(self) -> Decimal:
        return max(Decimal('0'), self.total_value - self.fulfilled_value)

    @property
    def lines_total(self) -> Decimal:
        return sum((line.line_total for line in self.lines.all()), Decimal('0'))

    def __str__(self) -> str:
        kind = 'CREDIT' if self.is_credit_memo else 'INVOICE'
        return f"{kind} {self.order_id}: {self.total_value} ({self.fulfillment_status})"


class OrderLine(models.Model):
    """
    One line item of an order; doubles as the pending allocation of that
    quantity against the item's aggregate stock.

    item_code is a plain code (not a FK): orders may name items the
    ledger has never received.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='lines',
        verbose_name=_('Order'),
    )
    item_code = models.CharField(max_length=50, db_index=True, verbose_name=_('Item code'))
    description = models.CharField(max_length=255, blank=True, default='')
    quantity = models.DecimalField(max_digits=12, decimal_places=3, verbose_name=_('Quantity'))
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Unit price'),
    )
    line_total = models.DecimalField(max_digits=14, decimal_places=2, verbose_name=_('Line total'))

    fulfilled = models.BooleanField(default=False, db_index=True)
    fulfilled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = _('Order line')
        verbose_name_plural = _('Order lines')
        # Allocation order is insertion order
        ordering = ['id']
        indexes = [
            models.Index(fields=['item_code', 'fulfilled'], name='caseledger__item_co_3e8b41_idx'),
        ]

    def __str__(self) -> str:
        mark = 'x' if self.fulfilled else ' '
        return f"[{mark}] {self.item_code} {self.quantity} @ {self.unit_price} = {self.line_total}"
