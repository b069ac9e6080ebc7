#!/usr/bin/env python3
"""
Tests for the Flask prospecting API (upstream calls are stubbed)
"""

import sys
import os
import logging

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from tabc_prospect import web
from tabc_prospect.data.api_client import TexasComptrollerAPI
from tabc_prospect.enrichment.ownership import OwnershipEnricher, OwnershipLookupClient

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

HISTORY = [
    {'obligation_end_date_yyyymmdd': '2024-03-31T00:00:00.000', 'total_receipts': '300', 'liquor_receipts': '200',
     'location_name': 'Pub One', 'taxpayer_number': '32000000001', 'location_number': '1', 'location_city': 'AUSTIN'},
    {'obligation_end_date_yyyymmdd': '2024-02-29T00:00:00.000', 'total_receipts': '0',
     'location_name': 'Pub One', 'taxpayer_number': '32000000001', 'location_number': '1', 'location_city': 'AUSTIN'},
    {'obligation_end_date_yyyymmdd': '2024-01-31T00:00:00.000', 'total_receipts': '100',
     'location_name': 'Pub One', 'taxpayer_number': '32000000001', 'location_number': '1', 'location_city': 'AUSTIN'},
]

LEADERBOARD = [
    {'location_name': 'Small', 'location_number': '2', 'annual_sales': '12000', 'months_count': '12'},
    {'location_name': 'Big', 'location_number': '1', 'annual_sales': '60000'},
]


@pytest.fixture
def client(tmp_path, monkeypatch):
    web.app.config['TESTING'] = True
    web.app.config['DATABASE_URL'] = f"sqlite:///{tmp_path / 'web.db'}"
    monkeypatch.setattr(web, '_db_manager', None)
    monkeypatch.setattr(web, 'OwnershipEnricher', lambda: OwnershipEnricher(OwnershipLookupClient(api_key='')))
    with web.app.test_client() as test_client:
        yield test_client


@pytest.fixture
def upstream(monkeypatch):
    """Canned open-data responses; set .rows to control the next answer"""
    class Upstream:
        rows = []
        urls = []

    async def fake_request(self, url):
        Upstream.urls.append(url)
        return Upstream.rows

    monkeypatch.setattr(TexasComptrollerAPI, '_make_request', fake_request)
    return Upstream


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


def test_venue_types(client):
    data = client.get('/api/venue-types').get_json()
    assert [v['key'] for v in data][:2] == ['fine_dining', 'upscale_casual']
    assert len(data) == 8


def test_search(client, upstream):
    upstream.rows = HISTORY
    response = client.get('/api/search?q=pub&city=Austin')
    assert response.status_code == 200
    data = response.get_json()
    assert len(data) == 1
    assert data[0]['key'] == '32000000001-1'


def test_search_blank_term(client, upstream):
    assert client.get('/api/search?q=%20').status_code == 400
    assert upstream.urls == []


def test_search_upstream_failure(client, upstream):
    upstream.rows = None
    response = client.get('/api/search?q=pub')
    assert response.status_code == 502
    assert response.get_json()['error'] == 'Search failed. Please try again.'


def test_establishment_analysis(client, upstream):
    upstream.rows = HISTORY
    response = client.get('/api/establishments/32000000001/1?venue_type=pub_grill')
    assert response.status_code == 200
    data = response.get_json()
    assert data['projection']['active_month_count'] == 2
    assert data['projection']['average_alcohol'] == pytest.approx(200.0)
    assert data['projection']['estimated_total'] == pytest.approx(400.0)
    assert [r['period_end_date'] for r in data['history']] == ['2024-01-31', '2024-02-29', '2024-03-31']
    assert data['establishment']['location_name'] == 'Pub One'
    assert [b['name'] for b in data['breakdown']] == ['Alcohol', 'Food']


def test_establishment_unknown_venue_type(client, upstream):
    upstream.rows = HISTORY
    assert client.get('/api/establishments/1/1?venue_type=food_truck').status_code == 400


def test_establishment_not_found(client, upstream):
    upstream.rows = []
    assert client.get('/api/establishments/1/1').status_code == 404


def test_establishment_upstream_failure(client, upstream):
    upstream.rows = None
    response = client.get('/api/establishments/1/1')
    assert response.status_code == 502
    assert response.get_json()['error'] == 'Failed to load historical data.'


def test_ownership_without_credentials(client):
    response = client.get('/api/establishments/32000000001/1/ownership?name=Pub%20One&taxpayer_name=PUB%20ONE%20LLC&city=AUSTIN')
    assert response.status_code == 200
    data = response.get_json()
    assert data['source'] == 'unavailable'
    assert data['owners'] == 'Registered to PUB ONE LLC'
    assert data['details'] == 'Pub One is a mixed beverage permit holder in Austin operated by PUB ONE LLC.'


def test_leaderboard(client, upstream):
    upstream.rows = LEADERBOARD
    data = client.get('/api/leaderboard?area=Austin').get_json()
    assert [(d['rank'], d['location_name']) for d in data] == [(1, 'Big'), (2, 'Small')]
    assert data[0]['avg_monthly_volume'] == pytest.approx(5000.0)
    assert data[1]['avg_monthly_volume'] == pytest.approx(1000.0)


def test_leaderboard_bad_area(client, upstream):
    assert client.get('/api/leaderboard?area=7870').status_code == 400
    assert client.get('/api/leaderboard').status_code == 400


def test_leaderboard_upstream_failure(client, upstream):
    upstream.rows = None
    response = client.get('/api/leaderboard?area=78701')
    assert response.status_code == 502
    assert response.get_json()['error'] == 'Ranking failed. Please try again.'


def test_leaderboard_csv(client, upstream):
    upstream.rows = LEADERBOARD
    response = client.get('/api/leaderboard/csv?area=78701')
    assert response.status_code == 200
    assert response.mimetype == 'text/csv'
    lines = response.get_data(as_text=True).strip().splitlines()
    assert lines[0].startswith('rank,location_name')
    assert lines[1].startswith('1,Big')


def test_prospect_and_notes_flow(client):
    prospect = {'location_number': '1', 'location_name': 'Pub One', 'taxpayer_name': 'PUB ONE LLC',
                'address': '1 MAIN ST', 'city': 'AUSTIN'}
    assert client.post('/api/prospects', json=prospect).get_json() == {'success': True, 'created': True}
    assert client.post('/api/prospects', json=prospect).get_json() == {'success': True, 'created': False}

    first = client.post('/api/notes', json={'location_number': '1', 'note_text': 'Met owner'})
    second = client.post('/api/notes', json={'location_number': '1', 'note_text': 'Send quote'})
    assert first.status_code == 201
    assert second.status_code == 201

    status = client.get('/api/prospects/1').get_json()
    assert status['exists'] is True
    assert [n['note_text'] for n in status['notes']] == ['Send quote', 'Met owner']

    listed = client.get('/api/prospects').get_json()
    assert [p['location_number'] for p in listed] == ['1']


def test_prospect_requires_location(client):
    assert client.post('/api/prospects', json={'location_name': 'x'}).status_code == 400


def test_note_for_unsaved_prospect(client):
    assert client.post('/api/notes', json={'location_number': '99', 'note_text': 'hi'}).status_code == 404


def test_empty_note_rejected(client):
    client.post('/api/prospects', json={'location_number': '5'})
    assert client.post('/api/notes', json={'location_number': '5', 'note_text': '  '}).status_code == 400


def test_unknown_prospect_status(client):
    assert client.get('/api/prospects/404').get_json() == {'exists': False, 'prospect': None, 'notes': []}


def test_metrics(client):
    client.get('/health')
    response = client.get('/metrics')
    assert response.status_code == 200
    assert b'http_requests_total' in response.data
