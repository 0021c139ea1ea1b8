"""
UsageEvent model — append-only history of what happened to a case.
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from caseledger.models.enums import UsageKind


class UsageEvent(models.Model):
    """
    Immutable record of quantity taken from a case.

    Rules:
    - NEVER update() or delete()
    - One event per case touched by consume() or zeroed by a physical count
    """

    lot = models.ForeignKey(
        'caseledger.Lot',
        on_delete=models.PROTECT,
        related_name='usage_history',
        verbose_name=_('Case'),
    )
    date = models.DateField(
        default=timezone.localdate,
        verbose_name=_('Date'),
    )
    amount_used = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Amount used'),
    )
    remaining_after = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Remaining after'),
    )
    reason = models.CharField(
        max_length=255,
        verbose_name=_('Reason'),
    )
    kind = models.CharField(
        max_length=32,
        choices=UsageKind.choices,
        default=UsageKind.CONSUMPTION,
        verbose_name=_('Kind'),
    )
    metadata = models.JSONField(default=dict, blank=True)
    recorded_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name = _('Usage event')
        verbose_name_plural = _('Usage events')
        ordering = ['id']

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError("Usage events are immutable. Record a new event instead.")
        if not self.reason:
            raise ValueError("Reason is required")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Usage events are immutable and cannot be deleted.")

    def as_dict(self) -> dict:
        return {
            'date': self.date.isoformat(),
            'amountUsed': self.amount_used,
            'remainingAfter': self.remaining_after,
            'reason': self.reason,
            'type': self.kind,
        }

    def __str__(self) -> str:
        return f"-{self.amount_used} | {self.reason}"
