#!/usr/bin/env python3
"""
Tests for the tabc-prospect command line interface
"""

import sys
import os

import pytest
from click.testing import CliRunner

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from tabc_prospect.cli import cli, format_currency
from tabc_prospect.data.api_client import TexasComptrollerAPI

HISTORY_NEWEST_FIRST = [
    {'obligation_end_date_yyyymmdd': '2024-02-29T00:00:00.000', 'total_receipts': '300', 'liquor_receipts': '300',
     'location_name': 'Pub One', 'location_address': '1 MAIN ST', 'location_city': 'AUSTIN', 'location_zip': '78701',
     'taxpayer_name': 'PUB ONE LLC', 'taxpayer_number': '32000000001', 'location_number': '1'},
    {'obligation_end_date_yyyymmdd': '2024-01-31T00:00:00.000', 'total_receipts': '100', 'liquor_receipts': '100',
     'location_name': 'Pub One', 'location_address': '1 MAIN ST', 'location_city': 'AUSTIN', 'location_zip': '78701',
     'taxpayer_name': 'PUB ONE LLC', 'taxpayer_number': '32000000001', 'location_number': '1'},
]


@pytest.fixture
def upstream(monkeypatch):
    state = {'rows': HISTORY_NEWEST_FIRST}

    async def fake_request(self, url):
        return state['rows']

    monkeypatch.setattr(TexasComptrollerAPI, '_make_request', fake_request)
    return state


def test_format_currency():
    assert format_currency(1234567.4) == '$1,234,567'
    assert format_currency(0) == '$0'
    assert format_currency(-50) == '-$50'


def test_venue_types():
    result = CliRunner().invoke(cli, ['venue-types'])
    assert result.exit_code == 0
    assert 'pub_grill' in result.output
    assert 'No Food (Alcohol Only)' in result.output


def test_search(upstream):
    result = CliRunner().invoke(cli, ['search', 'pub'])
    assert result.exit_code == 0
    assert '32000000001-1  Pub One' in result.output


def test_search_blank_term(upstream):
    result = CliRunner().invoke(cli, ['search', '  '])
    assert result.exit_code != 0


def test_search_failure(upstream):
    upstream['rows'] = None
    result = CliRunner().invoke(cli, ['search', 'pub'])
    assert result.exit_code == 1
    assert 'Search failed. Please try again.' in result.output


def test_analyze(upstream, tmp_path):
    csv_path = tmp_path / 'history.csv'
    result = CliRunner().invoke(cli, ['analyze', '32000000001', '1', '--venue-type', 'pub_grill', '--csv', str(csv_path)])
    assert result.exit_code == 0, result.output
    assert 'Avg alcohol (actual):  $200' in result.output
    assert 'Avg monthly volume:    $400' in result.output
    assert 'Based on 2 active months' in result.output
    assert csv_path.read_text().startswith('period_end_date')


def test_analyze_unknown_establishment(upstream):
    upstream['rows'] = []
    result = CliRunner().invoke(cli, ['analyze', '1', '1'])
    assert result.exit_code == 1
    assert 'No receipts found' in result.output


def test_leaderboard_bad_area(upstream):
    result = CliRunner().invoke(cli, ['leaderboard', '123'])
    assert result.exit_code == 2


def test_leaderboard(upstream, tmp_path):
    upstream['rows'] = [{'location_name': 'Big', 'location_number': '1', 'annual_sales': '120000', 'months_count': '12'}]
    csv_path = tmp_path / 'board.csv'
    result = CliRunner().invoke(cli, ['leaderboard', 'Austin', '--csv', str(csv_path)])
    assert result.exit_code == 0, result.output
    assert '1. Big' in result.output
    assert '$10,000' in result.output
    assert csv_path.exists()


def test_prospect_commands(upstream, tmp_path):
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"
    runner = CliRunner()

    result = runner.invoke(cli, ['save-prospect', '32000000001', '1', '--database-url', db_url])
    assert 'Saved Pub One as a prospect' in result.output
    result = runner.invoke(cli, ['save-prospect', '32000000001', '1', '--database-url', db_url])
    assert 'already a prospect' in result.output

    result = runner.invoke(cli, ['add-note', '1', 'Call back Friday', '--database-url', db_url])
    assert result.exit_code == 0
    result = runner.invoke(cli, ['prospect', '1', '--database-url', db_url])
    assert 'Call back Friday' in result.output
    result = runner.invoke(cli, ['prospect', '--database-url', db_url])
    assert 'Pub One' in result.output


def test_add_note_requires_prospect(tmp_path):
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"
    result = CliRunner().invoke(cli, ['add-note', '77', 'hello', '--database-url', db_url])
    assert result.exit_code == 1
    assert 'not saved' in result.output
