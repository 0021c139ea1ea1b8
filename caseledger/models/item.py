"""
Item model — one stocked product with its FIFO queue of cases.
"""

import logging
from decimal import Decimal

from django.db import models
from django.db.models import Count, Q, Sum
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _

from caseledger.models.enums import LotStatus

logger = logging.getLogger('caseledger')


class Item(models.Model):
    """
    Stocked product, keyed by supplier item code.

    Performance:
    - total_cases/total_weight are a cache of the active lots
    - Refreshed by every ledger mutation (see refresh_totals)
    - Use recalculate() for audit/correction
    """

    item_code = models.CharField(
        max_length=50,
        unique=True,
        verbose_name=_('Item code'),
    )
    description = models.CharField(
        max_length=255,
        blank=True,
        default='',
        verbose_name=_('Description'),
    )
    barcode = models.CharField(
        max_length=64,
        blank=True,
        default='',
        verbose_name=_('Barcode'),
    )
    unit = models.CharField(
        max_length=20,
        default='CS',
        verbose_name=_('Unit'),
        help_text=_('CS, KG, LB, EA...'),
    )
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Unit price'),
    )

    # Aggregates over active (non-USED) lots
    total_cases = models.PositiveIntegerField(default=0, verbose_name=_('Active cases'))
    total_weight = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Active weight'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Item')
        verbose_name_plural = _('Items')
        ordering = ['item_code']

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def active_lots(self):
        """Non-USED lots in FIFO order."""
        return self.lots.exclude(status=LotStatus.USED)

    @property
    def inventory_value(self) -> Decimal:
        """Remaining weight valued at the item's unit price."""
        return self.total_weight * self.unit_price

    # ══════════════════════════════════════════════════════════════
    # METHODS
    # ══════════════════════════════════════════════════════════════

    def compute_totals(self) -> tuple[int, Decimal]:
        """Count and weight of active lots, straight from the lot rows."""
        result = self.lots.aggregate(
            cases=Count('id', filter=~Q(status=LotStatus.USED)),
            weight=Coalesce(
                Sum('remaining_quantity', filter=~Q(status=LotStatus.USED)),
                Decimal('0'),
            ),
        )
        return result['cases'], result['weight']

    def refresh_totals(self) -> None:
        """Rewrite the cached aggregates. Call inside the mutating transaction."""
        self.total_cases, self.total_weight = self.compute_totals()
        self.save(update_fields=['total_cases', 'total_weight', 'updated_at'])

    def recalculate(self) -> tuple[int, Decimal]:
        """
        Recalculate aggregates from lots.

        Use for:
        - Integrity audit
        - Correction after detected inconsistency

        Returns:
            (total_cases, total_weight) as now stored
        """
        cases, weight = self.compute_totals()

        if (cases, weight) != (self.total_cases, self.total_weight):
            old_cases, old_weight = self.total_cases, self.total_weight
            self.total_cases, self.total_weight = cases, weight
            self.save(update_fields=['total_cases', 'total_weight', 'updated_at'])
            logger.warning(
                f"Item {self.item_code} recalculated: "
                f"{old_cases} cases/{old_weight} → {cases} cases/{weight}"
            )

        return cases, weight

    def __str__(self) -> str:
        if self.description:
            return f"{self.item_code} - {self.description}"
        return self.item_code
