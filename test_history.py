#!/usr/bin/env python3
"""
Tests for monthly history aggregation
"""

import sys
import os
from datetime import date

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from tabc_prospect.analysis.history import HistorySummary, chronological, summarize_history
from tabc_prospect.data.records import MonthlyReceipt


def _receipts(totals):
    return [MonthlyReceipt(date(2024, i + 1, 1), t, 0.0, 0.0, t) for i, t in enumerate(totals)]


def test_inactive_months_excluded_from_average():
    summary = summarize_history(_receipts([0, 100, 200, 0, 300]))
    assert summary.active_month_count == 3
    assert summary.average_alcohol == pytest.approx(200.0)


def test_no_active_months():
    assert summarize_history(_receipts([0, 0])) == HistorySummary(0, 0.0)
    assert summarize_history([]) == HistorySummary(0, 0.0)


def test_raw_rows_are_normalized():
    rows = [{'total_receipts': '1,000'}, {'total_receipts': 'N/A'}, {'total_receipts': '$3,000'}]
    summary = summarize_history(rows)
    assert summary.active_month_count == 2
    assert summary.average_alcohol == pytest.approx(2000.0)


def test_chronological_reverses_without_mutating():
    newest_first = [3, 2, 1]
    assert chronological(newest_first) == [1, 2, 3]
    assert newest_first == [3, 2, 1]


def test_summary_projects_with_month_count():
    projection = summarize_history(_receipts([200, 200])).project('pub_grill')
    assert projection.estimated_total == pytest.approx(400.0)
    assert projection.active_month_count == 2
