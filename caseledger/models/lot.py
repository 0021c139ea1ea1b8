"""
Lot model — a single received case of an item.
"""

from decimal import Decimal

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _

from caseledger.conf import caseledger_settings
from caseledger.models.enums import LotStatus


class LotQuerySet(models.QuerySet):
    """Custom QuerySet for Lot with convenience filters."""

    def active(self):
        """Cases with remaining quantity (status != USED)."""
        return self.exclude(status=LotStatus.USED)

    def received_on_or_before(self, cutoff):
        return self.filter(received_date__lte=cutoff)

    def received_after(self, cutoff):
        return self.filter(received_date__gt=cutoff)

    def for_invoice(self, invoice_number):
        return self.filter(source_invoice=invoice_number)


class Lot(models.Model):
    """
    One physical case, received on an invoice.

    Rules:
    - Created once by ingestion, NEVER deleted
    - 0 <= remaining_quantity <= weight
    - status == USED exactly when remaining_quantity == 0
    - Quantity only changes through the ledger services
    """

    item = models.ForeignKey(
        'caseledger.Item',
        on_delete=models.PROTECT,
        related_name='lots',
        verbose_name=_('Item'),
    )
    case_id = models.CharField(
        max_length=64,
        verbose_name=_('Case number'),
    )
    weight = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Original weight'),
    )
    remaining_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Remaining'),
    )
    received_date = models.DateField(
        db_index=True,
        verbose_name=_('Received'),
        help_text=_('Invoice date. Drives FIFO order and aging.'),
    )
    source_invoice = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Invoice'),
    )
    status = models.CharField(
        max_length=20,
        choices=LotStatus.choices,
        default=LotStatus.IN_STOCK,
        db_index=True,
        verbose_name=_('Status'),
    )

    # Stamp of the last physical count that saw this case
    last_physical_count = models.JSONField(null=True, blank=True)
    # Counts that skipped this case because it arrived after their cutoff
    count_exclusions = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    objects = LotQuerySet.as_manager()

    class Meta:
        verbose_name = _('Case')
        verbose_name_plural = _('Cases')
        # FIFO: receipt date, insertion order on ties
        ordering = ['received_date', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['item', 'case_id'],
                name='unique_case_per_item',
            ),
            models.CheckConstraint(
                condition=Q(remaining_quantity__gte=0) & Q(remaining_quantity__lte=F('weight')),
                name='lot_remaining_within_weight',
            ),
        ]
        indexes = [
            models.Index(fields=['item', 'status'], name='caseledger__item_id_5c1f0e_idx'),
            models.Index(fields=['item', 'received_date'], name='caseledger__item_id_9a7d2b_idx'),
        ]

    @property
    def short_id(self) -> str:
        """Last digits of the case number, the way it is read off the label."""
        return self.case_id[-caseledger_settings.SHORT_ID_LENGTH:]

    @property
    def is_active(self) -> bool:
        return self.status != LotStatus.USED

    def set_remaining(self, remaining: Decimal) -> None:
        """Set remaining quantity and derive status from it. Does not save."""
        if remaining < 0 or remaining > self.weight:
            raise ValueError(
                f"Remaining {remaining} outside [0, {self.weight}] for case {self.case_id}"
            )
        self.remaining_quantity = remaining
        if remaining == 0:
            self.status = LotStatus.USED
        elif remaining == self.weight:
            self.status = LotStatus.IN_STOCK
        else:
            self.status = LotStatus.PARTIAL

    def __str__(self) -> str:
        return f"{self.item.item_code}#{self.short_id} [{self.status}] {self.remaining_quantity}/{self.weight}"
