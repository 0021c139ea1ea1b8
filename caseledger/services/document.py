"""
Document export — the whole ledger as one JSON object keyed by item code.

Shape per item:
    {
        "itemCode": ..., "description": ..., "barcode": ..., "unit": ...,
        "unitPrice": ..., "totalCases": ..., "totalWeight": ...,
        "allCases": [{..., "usageHistory": [...]}],
        "countHistory": [...]
    }
"""

from django.db.models import Prefetch

from caseledger.models.item import Item
from caseledger.models.lot import Lot


def lot_as_dict(lot: Lot) -> dict:
    return {
        'caseNumber': lot.case_id,
        'caseNumberShort': lot.short_id,
        'weight': lot.weight,
        'remainingWeight': lot.remaining_quantity,
        'invoiceNumber': lot.source_invoice,
        'invoiceDate': lot.received_date.isoformat(),
        'status': lot.status,
        'usageHistory': [event.as_dict() for event in lot.usage_history.all()],
        'lastPhysicalCount': lot.last_physical_count,
        'countExclusions': lot.count_exclusions,
    }


def item_as_dict(item: Item) -> dict:
    return {
        'itemCode': item.item_code,
        'description': item.description,
        'barcode': item.barcode,
        'unit': item.unit,
        'unitPrice': item.unit_price,
        'totalCases': item.total_cases,
        'totalWeight': item.total_weight,
    }


def build_document(item_codes=None) -> dict:
    """Export items (all by default) with nested cases and count history."""
    items = Item.objects.prefetch_related(
        Prefetch('lots', queryset=Lot.objects.order_by('received_date', 'id')
                 .prefetch_related('usage_history')),
        'count_history',
    )
    if item_codes is not None:
        items = items.filter(item_code__in=item_codes)

    document = {}
    for item in items:
        document[item.item_code] = {
            **item_as_dict(item),
            'allCases': [lot_as_dict(lot) for lot in item.lots.all()],
            'countHistory': [snapshot.as_dict() for snapshot in item.count_history.all()],
        }
    return document
