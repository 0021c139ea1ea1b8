"""
CountSnapshot model — what a physical count saw, frozen at the time.
"""

from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class CountSnapshot(models.Model):
    """
    Immutable record appended to an item on every reconciliation.

    Totals describe the eligible cases (received on or before cutoff)
    as they stood right after the count was applied.
    """

    item = models.ForeignKey(
        'caseledger.Item',
        on_delete=models.PROTECT,
        related_name='count_history',
        verbose_name=_('Item'),
    )
    count_date = models.DateField(verbose_name=_('Count date'))
    cutoff_date = models.DateField(verbose_name=_('Cutoff date'))
    people_on_site = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        verbose_name=_('People on site'),
    )
    notes = models.TextField(blank=True, default='')

    cases_counted = models.PositiveIntegerField(default=0)
    eligible_lot_count = models.PositiveIntegerField(default=0)
    excluded_lot_count = models.PositiveIntegerField(default=0)
    cases_marked_used = models.PositiveIntegerField(default=0)

    total_cases = models.PositiveIntegerField(default=0)
    total_weight = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0'),
    )

    performed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _('Count snapshot')
        verbose_name_plural = _('Count snapshots')
        ordering = ['performed_at', 'id']

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError("Count snapshots are immutable.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Count snapshots are immutable and cannot be deleted.")

    def as_dict(self) -> dict:
        return {
            'countDate': self.count_date.isoformat(),
            'cutoffDate': self.cutoff_date.isoformat(),
            'peopleOnSite': self.people_on_site,
            'casesInCount': self.cases_counted,
            'eligibleCases': self.eligible_lot_count,
            'excludedCases': self.excluded_lot_count,
            'casesMarkedUsed': self.cases_marked_used,
            'totalCases': self.total_cases,
            'totalWeight': self.total_weight,
            'notes': self.notes,
            'performedAt': self.performed_at.isoformat(),
        }

    def __str__(self) -> str:
        return f"Count {self.count_date} (cutoff {self.cutoff_date}): {self.total_cases} cases"
