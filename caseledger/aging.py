"""
Case aging — isolated, testable, reusable.

Classifies active cases by days since receipt so the kitchen can rotate
stock before it spoils.

Examples (default thresholds):
    - received 10 days ago: FRESH
    - received 20 days ago: AGING
    - received 45 days ago: AGED
"""

from datetime import date

from caseledger.conf import caseledger_settings
from caseledger.models.enums import RotationBucket


def age_in_days(received_date: date, as_of: date) -> int:
    """Whole days between receipt and as_of (negative if received later)."""
    return (as_of - received_date).days


def rotation_bucket(age: int) -> RotationBucket:
    """
    Bucket for a case of the given age.

    age <= FRESH_MAX_AGE_DAYS            → FRESH
    age <= AGING_MAX_AGE_DAYS            → AGING
    otherwise                            → AGED
    """
    if age > caseledger_settings.AGING_MAX_AGE_DAYS:
        return RotationBucket.AGED
    if age > caseledger_settings.FRESH_MAX_AGE_DAYS:
        return RotationBucket.AGING
    return RotationBucket.FRESH


def needs_rotation(oldest_age: int | None) -> bool:
    """Oldest active case is past the rotation alert threshold."""
    if oldest_age is None:
        return False
    return oldest_age > caseledger_settings.ROTATION_ALERT_DAYS
