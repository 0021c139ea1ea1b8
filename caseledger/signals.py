"""
Case ledger signals.

order_completed is sent once per order, after the fulfillment that
completed it has been committed.

    from django.dispatch import receiver
    from caseledger.signals import order_completed

    @receiver(order_completed)
    def notify_purchasing(sender, order, event, **kwargs):
        ...
"""

from django.dispatch import Signal

# kwargs: order (Order), event (CompletionEvent)
order_completed = Signal()
