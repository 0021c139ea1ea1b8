"""
Enums for case ledger models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class LotStatus(models.TextChoices):
    """
    Case lifecycle status.

    IN_STOCK → PARTIAL → USED, or forced back to IN_STOCK by a physical count.
    """
    IN_STOCK = 'IN_STOCK', _('In stock')
    PARTIAL = 'PARTIAL', _('Partially used')
    USED = 'USED', _('Used')


class UsageKind(models.TextChoices):
    """Origin of a usage event."""
    CONSUMPTION = 'CONSUMPTION', _('Consumption')
    PHYSICAL_COUNT_ADJUSTMENT = 'PHYSICAL_COUNT_ADJUSTMENT', _('Physical count adjustment')


class FulfillmentStatus(models.TextChoices):
    """Order fulfillment status. Only ever moves forward."""
    PENDING = 'pending', _('Pending')
    PARTIAL = 'partial', _('Partial')
    COMPLETED = 'completed', _('Completed')


class RotationBucket(models.TextChoices):
    """Age classification of an active case."""
    FRESH = 'FRESH', _('Fresh')      # age <= 14 days
    AGING = 'AGING', _('Aging')      # 14 < age <= 30
    AGED = 'AGED', _('Aged')         # age > 30


class Severity(models.TextChoices):
    """Discrepancy audit classification."""
    NORMAL = 'normal', _('Normal')
    WARNING = 'warning', _('Warning')
    CRITICAL = 'critical', _('Critical')
