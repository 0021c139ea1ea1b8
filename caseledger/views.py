"""
Case inventory JSON endpoints.

    GET  /                               item summaries
    GET  /<item_code>                    cases, filtered
    POST /<item_code>/use                FIFO consumption
    GET  /<item_code>/rotation-report    aging buckets
    PUT  /<item_code>/physical-count     reconciliation

Ledger errors are rendered with LedgerError.as_dict(): 404 for unknown
items, 400 for everything else.
"""

import json
import logging
from functools import wraps

from django.http import JsonResponse
from django.utils.dateparse import parse_date
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods

from caseledger.exceptions import LedgerError
from caseledger.service import Ledger
from caseledger.services.document import item_as_dict

logger = logging.getLogger('caseledger')


def _error(status: int, error: str, **extra) -> JsonResponse:
    return JsonResponse({'success': False, 'error': error, **extra}, status=status)


def _ledger_errors(view):
    """Turn LedgerError into a JSON error response."""

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except LedgerError as e:
            status = 404 if e.code == 'UNKNOWN_ITEM' else 400
            body = e.as_dict()
            if e.code == 'CASES_AFTER_CUTOFF':
                return _error(status, e.message, code=e.code, invalidCases=[
                    {
                        'caseNumber': case['case_id'],
                        'invoiceDate': case['received_date'].isoformat(),
                        'reason': case['reason'],
                    }
                    for case in e.data['invalid_cases']
                ])
            return _error(status, e.message, code=e.code, details=body['data'])

    return wrapper


def _json_body(request) -> dict | None:
    try:
        body = json.loads(request.body or b'{}')
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


def _parse_date_param(value):
    try:
        return parse_date(value) if isinstance(value, str) else None
    except ValueError:
        return None


@require_GET
def item_list(request):
    items = Ledger.list_items()
    return JsonResponse({
        'success': True,
        'count': len(items),
        'items': [
            {
                'itemCode': i['item_code'],
                'description': i['description'],
                'barcode': i['barcode'],
                'unit': i['unit'],
                'totalCases': i['total_cases'],
                'totalWeight': i['total_weight'],
                'oldestCaseDate': i['oldest_case_date'],
                'newestCaseDate': i['newest_case_date'],
            }
            for i in items
        ],
    })


@require_GET
@_ledger_errors
def item_detail(request, item_code):
    limit = request.GET.get('limit')
    if limit is not None:
        try:
            limit = int(limit)
        except ValueError:
            return _error(400, 'limit must be an integer')
        if limit < 0:
            return _error(400, 'limit must not be negative')

    as_of = None
    if 'asOf' in request.GET:
        as_of = _parse_date_param(request.GET['asOf'])
        if as_of is None:
            return _error(400, 'asOf must be a YYYY-MM-DD date')

    item = Ledger.get_item(item_code)
    lots = Ledger.list_lots(
        item_code,
        status=request.GET.get('status'),
        invoice_number=request.GET.get('invoiceNumber'),
        limit=limit,
        as_of=as_of,
    )
    return JsonResponse({
        'success': True,
        'item': item_as_dict(item),
        'cases': [
            {
                'caseNumber': lot.case_id,
                'caseNumberShort': lot.short_id,
                'weight': lot.weight,
                'remainingWeight': lot.remaining_quantity,
                'invoiceNumber': lot.source_invoice,
                'invoiceDate': lot.received_date.isoformat(),
                'status': lot.status,
                'ageInDays': lot.age,
                'rotationStatus': lot.bucket,
                'usageHistory': [e.as_dict() for e in lot.usage_history.all()],
            }
            for lot in lots
        ],
        'totalCasesShown': len(lots),
        'totalCasesAvailable': item.total_cases,
    })


@csrf_exempt
@require_http_methods(['POST'])
@_ledger_errors
def use_cases(request, item_code):
    body = _json_body(request)
    if body is None:
        return _error(400, 'Request body must be a JSON object')
    if body.get('quantity') is None:
        return _error(400, 'quantity is required')

    reason = body.get('reason')
    try:
        result = Ledger.consume(item_code, body['quantity'], reason)
    except (ArithmeticError, ValueError, TypeError):
        return _error(400, 'quantity must be a number')

    return JsonResponse({'success': True, **result.as_dict()})


@require_GET
@_ledger_errors
def rotation_report(request, item_code):
    as_of = None
    if 'asOf' in request.GET:
        as_of = _parse_date_param(request.GET['asOf'])
        if as_of is None:
            return _error(400, 'asOf must be a YYYY-MM-DD date')

    report = Ledger.aging_report(item_code, as_of=as_of)
    return JsonResponse({'success': True, **report.as_dict()})


@csrf_exempt
@require_http_methods(['PUT'])
@_ledger_errors
def physical_count(request, item_code):
    body = _json_body(request)
    if body is None:
        return _error(400, 'Request body must be a JSON object')

    case_numbers = body.get('caseNumbers')
    if not isinstance(case_numbers, list):
        return _error(400, 'caseNumbers must be an array')

    count_date = _parse_date_param(body.get('countDate'))
    if count_date is None:
        return _error(400, 'countDate is required (YYYY-MM-DD)')
    cutoff_date = _parse_date_param(body.get('cutoffDate'))
    if cutoff_date is None:
        return _error(400, 'cutoffDate is required (YYYY-MM-DD)')

    people = body.get('peopleOnSite')
    if people is not None and (isinstance(people, bool) or not isinstance(people, int) or people < 0):
        return _error(400, 'peopleOnSite must be a non-negative integer')

    result = Ledger.reconcile(
        item_code,
        case_numbers,
        count_date,
        cutoff_date,
        people_on_site=people,
        notes=body.get('notes') or '',
    )
    return JsonResponse({
        'success': True,
        'message': 'Physical count updated successfully',
        **result.as_dict(),
    })
