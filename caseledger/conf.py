"""
Case ledger configuration.

Usage in settings.py:
    CASELEDGER = {
        "FULFILLMENT_TOLERANCE": "0.01",
        "ROTATION_ALERT_DAYS": 21,
        "DISCREPANCY_CRITICAL_PERCENT": 15,
        "REQUIRE_EXISTING_ITEM": False,
    }
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.conf import settings


@dataclass
class CaseLedgerSettings:
    """Case ledger configuration settings."""

    # Floating slack when comparing fulfilled value against order total
    FULFILLMENT_TOLERANCE: Decimal = Decimal('0.01')

    # Rotation buckets (days since receipt, inclusive upper bounds)
    FRESH_MAX_AGE_DAYS: int = 14
    AGING_MAX_AGE_DAYS: int = 30

    # Oldest active case older than this needs rotation
    ROTATION_ALERT_DAYS: int = 21

    # Discrepancy severity thresholds (percent of orders total)
    DISCREPANCY_WARNING_PERCENT: Decimal = Decimal('5')
    DISCREPANCY_CRITICAL_PERCENT: Decimal = Decimal('15')

    # Order total vs summed line totals
    LINE_TOTAL_TOLERANCE: Decimal = Decimal('10.00')

    # Credit memo volume worth flagging
    CREDIT_ALERT_AMOUNT: Decimal = Decimal('1000.00')

    # Characters kept from the end of a case id for the short display id
    SHORT_ID_LENGTH: int = 4

    DEFAULT_USAGE_REASON: str = 'Production use'

    # Reject add_lots() for items that were never registered
    REQUIRE_EXISTING_ITEM: bool = False

    def __post_init__(self):
        for name in ('FULFILLMENT_TOLERANCE', 'DISCREPANCY_WARNING_PERCENT',
                     'DISCREPANCY_CRITICAL_PERCENT', 'LINE_TOTAL_TOLERANCE',
                     'CREDIT_ALERT_AMOUNT'):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                setattr(self, name, Decimal(str(value)))


def get_caseledger_settings() -> CaseLedgerSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "CASELEDGER", {})
    return CaseLedgerSettings(**{
        k: v for k, v in user_settings.items()
        if k in CaseLedgerSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_caseledger_settings(), name)


caseledger_settings = _LazySettings()
