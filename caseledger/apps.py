"""Django app configuration for the case ledger."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class CaseLedgerConfig(AppConfig):
    """Configuration for the case ledger app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "caseledger"
    verbose_name = _("Case Inventory")
