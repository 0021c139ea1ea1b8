"""
Tests for the case inventory JSON endpoints.
"""

import json
from decimal import Decimal

import pytest

from caseledger.models import Item, Lot, LotStatus, UsageEvent


pytestmark = pytest.mark.django_db


def put_json(client, url, body):
    return client.put(url, data=json.dumps(body), content_type='application/json')


def post_json(client, url, body):
    return client.post(url, data=json.dumps(body), content_type='application/json')


class TestItemList:
    def test_lists_items(self, client, item_x, items_ab):
        response = client.get('/case-inventory/')

        assert response.status_code == 200
        data = response.json()
        assert data['success'] is True
        assert data['count'] == 3
        first = data['items'][0]
        assert first['itemCode'] == 'X'
        assert first['totalCases'] == 3
        assert Decimal(first['totalWeight']) == Decimal('75')
        assert first['oldestCaseDate'] == '2024-01-01'
        assert first['newestCaseDate'] == '2024-01-20'

    def test_empty(self, client, db):
        assert client.get('/case-inventory/').json() == {'success': True, 'count': 0, 'items': []}


class TestItemDetail:
    def test_detail(self, client, item_x):
        response = client.get('/case-inventory/X?asOf=2024-02-01')

        assert response.status_code == 200
        data = response.json()
        assert data['item']['description'] == 'Ground beef'
        assert [c['caseNumberShort'] for c in data['cases']] == ['0001', '0002', '0003']
        assert data['cases'][0]['ageInDays'] == 31
        assert data['cases'][0]['rotationStatus'] == 'aged'
        assert data['totalCasesAvailable'] == 3

    def test_limit_keeps_newest(self, client, item_x):
        data = client.get('/case-inventory/X?limit=2').json()

        assert [c['caseNumber'] for c in data['cases']] == ['9018357840002', '9018357840003']
        assert data['totalCasesShown'] == 2

    def test_status_filter(self, client, item_x):
        post_json(client, '/case-inventory/X/use', {'quantity': 35})

        data = client.get('/case-inventory/X?status=USED').json()

        assert [c['caseNumber'] for c in data['cases']] == ['9018357840001']
        assert data['cases'][0]['usageHistory'][0]['reason'] == 'Production use'

    def test_bad_limit(self, client, item_x):
        assert client.get('/case-inventory/X?limit=abc').status_code == 400

    def test_unknown_item(self, client, db):
        response = client.get('/case-inventory/NOPE')

        assert response.status_code == 404
        assert response.json()['code'] == 'UNKNOWN_ITEM'


class TestUseCases:
    def test_use(self, client, item_x):
        response = post_json(client, '/case-inventory/X/use', {'quantity': 35, 'reason': 'Lunch prep'})

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data['quantityUsed']) == Decimal('35')
        assert Decimal(data['quantityRemaining']) == Decimal('0')
        assert [c['fullyUsed'] for c in data['casesUsed']] == [True, False]
        assert data['newTotalCases'] == 2
        assert Decimal(data['newTotalWeight']) == Decimal('40')
        assert set(UsageEvent.objects.values_list('reason', flat=True)) == {'Lunch prep'}

    def test_use_reports_shortfall(self, client, item_x):
        data = post_json(client, '/case-inventory/X/use', {'quantity': 100}).json()

        assert Decimal(data['quantityRemaining']) == Decimal('25')
        assert data['newTotalCases'] == 0

    def test_unknown_item(self, client, db):
        response = post_json(client, '/case-inventory/NOPE/use', {'quantity': 1})

        assert response.status_code == 404
        assert response.json()['success'] is False

    @pytest.mark.parametrize('body', [
        {}, {'quantity': 0}, {'quantity': -5}, {'quantity': 'lots'}, {'quantity': '29.9996'},
    ])
    def test_invalid_quantity(self, client, item_x, body):
        response = post_json(client, '/case-inventory/X/use', body)

        assert response.status_code == 400
        assert not UsageEvent.objects.exists()

    def test_get_not_allowed(self, client, item_x):
        assert client.get('/case-inventory/X/use').status_code == 405


class TestRotationReport:
    def test_report(self, client, item_x):
        response = client.get('/case-inventory/X/rotation-report?asOf=2024-02-01')

        assert response.status_code == 200
        data = response.json()
        assert data['totalActiveCases'] == 3
        assert data['oldestCaseAge'] == 31
        by_age = data['casesByAge']
        assert [c['caseNumberShort'] for c in by_age['aged']] == ['0001']
        assert [c['caseNumberShort'] for c in by_age['aging']] == ['0002']
        assert [c['caseNumberShort'] for c in by_age['fresh']] == ['0003']
        assert data['alerts'] == {'hasAgedCases': True, 'hasAgingCases': True, 'needsRotation': True}

    def test_bad_date(self, client, item_x):
        assert client.get('/case-inventory/X/rotation-report?asOf=yesterday').status_code == 400


class TestPhysicalCount:
    URL = '/case-inventory/X/physical-count'

    def test_count(self, client, item_x):
        post_json(client, '/case-inventory/X/use', {'quantity': 35})

        response = put_json(client, self.URL, {
            'caseNumbers': ['9018357840002', '0003'],
            'countDate': '2024-02-01',
            'cutoffDate': '2024-01-20',
            'peopleOnSite': 2,
        })

        assert response.status_code == 200
        data = response.json()
        assert data['newTotalCases'] == 2
        assert Decimal(data['newTotalWeight']) == Decimal('45')
        assert data['summary'] == {'casesVerified': 2, 'casesMarkedUsed': 1, 'casesExcluded': 0}
        assert Item.objects.get(item_code='X').total_weight == Decimal('45')

    def test_cases_after_cutoff(self, client, item_x):
        before = list(Lot.objects.values_list('status', 'remaining_quantity'))

        response = put_json(client, self.URL, {
            'caseNumbers': ['9018357840003'],
            'countDate': '2024-02-01',
            'cutoffDate': '2024-01-15',
        })

        assert response.status_code == 400
        data = response.json()
        assert data['code'] == 'CASES_AFTER_CUTOFF'
        [invalid] = data['invalidCases']
        assert invalid['caseNumber'] == '9018357840003'
        assert invalid['invoiceDate'] == '2024-01-20'
        assert 'after cutoff' in invalid['reason']
        assert list(Lot.objects.values_list('status', 'remaining_quantity')) == before
        assert not Lot.objects.filter(status=LotStatus.USED).exists()

    @pytest.mark.parametrize('body', [
        {'countDate': '2024-02-01', 'cutoffDate': '2024-01-20'},
        {'caseNumbers': 'all', 'countDate': '2024-02-01', 'cutoffDate': '2024-01-20'},
        {'caseNumbers': [], 'cutoffDate': '2024-01-20'},
        {'caseNumbers': [], 'countDate': '2024-02-01'},
        {'caseNumbers': [], 'countDate': '2024-02-01', 'cutoffDate': '2024-01-20', 'peopleOnSite': -1},
    ])
    def test_malformed_body(self, client, item_x, body):
        response = put_json(client, self.URL, body)

        assert response.status_code == 400
        assert Item.objects.get(item_code='X').total_weight == Decimal('75')

    def test_not_json(self, client, item_x):
        response = client.put(self.URL, data='caseNumbers=1', content_type='text/plain')

        assert response.status_code == 400

    def test_unknown_item(self, client, db):
        response = put_json(client, '/case-inventory/NOPE/physical-count', {
            'caseNumbers': [], 'countDate': '2024-02-01', 'cutoffDate': '2024-01-20',
        })

        assert response.status_code == 404


class TestAdmin:
    @pytest.mark.parametrize('model', ['item', 'lot', 'usageevent', 'countsnapshot', 'order'])
    def test_changelists_render(self, admin_client, order_o1, model):
        assert admin_client.get(f'/admin/caseledger/{model}/').status_code == 200

    def test_cases_cannot_be_added(self, admin_client, db):
        assert admin_client.get('/admin/caseledger/lot/add/').status_code == 403

    def test_recalculate_action(self, admin_client, item_x):
        Item.objects.filter(pk=item_x.pk).update(total_weight=Decimal('1'))

        admin_client.post('/admin/caseledger/item/', {
            'action': 'recalculate_totals',
            '_selected_action': [item_x.pk],
        })

        assert Item.objects.get(pk=item_x.pk).total_weight == Decimal('75')
