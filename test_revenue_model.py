#!/usr/bin/env python3
"""
Tests for venue archetypes and revenue projections
"""

import sys
import os

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from tabc_prospect.analysis.revenue import (
    VenueType, VenueArchetype, VENUE_ARCHETYPES, DEFAULT_VENUE_TYPE,
    resolve_venue_type, get_archetype, list_archetypes, project_revenue, estimate_food
)


def test_catalog_order_and_splits():
    expected = [
        ('fine_dining', 0.75, 0.25),
        ('upscale_casual', 0.65, 0.35),
        ('casual_dining', 0.60, 0.40),
        ('pub_grill', 0.50, 0.50),
        ('sports_bar', 0.35, 0.65),
        ('dive_bar', 0.15, 0.85),
        ('nightclub', 0.05, 0.95),
        ('no_food', 0.00, 1.00),
    ]
    actual = [(a.key.value, a.food_share, a.alcohol_share) for a in list_archetypes()]
    assert actual == expected


def test_shares_sum_to_one():
    for archetype in VENUE_ARCHETYPES.values():
        assert archetype.food_share + archetype.alcohol_share == pytest.approx(1.0)


def test_catalog_is_read_only():
    with pytest.raises(TypeError):
        VENUE_ARCHETYPES[VenueType.PUB_GRILL] = None


def test_default_is_casual_dining():
    assert DEFAULT_VENUE_TYPE is VenueType.CASUAL_DINING
    assert resolve_venue_type(None) is VenueType.CASUAL_DINING


def test_resolve_venue_type():
    assert resolve_venue_type('pub_grill') is VenueType.PUB_GRILL
    assert resolve_venue_type(' Sports_Bar ') is VenueType.SPORTS_BAR
    assert resolve_venue_type(VenueType.NIGHTCLUB) is VenueType.NIGHTCLUB
    with pytest.raises(ValueError):
        resolve_venue_type('food_truck')


def test_pub_grill_projection():
    projection = project_revenue(200.0, 'pub_grill', active_month_count=3)
    assert projection.estimated_food == pytest.approx(200.0)
    assert projection.estimated_total == pytest.approx(400.0)
    assert projection.active_month_count == 3


def test_casual_dining_projection():
    projection = project_revenue(40000.0)
    assert projection.venue_type is VenueType.CASUAL_DINING
    assert projection.estimated_food == pytest.approx(60000.0)
    assert projection.estimated_total == pytest.approx(100000.0)


def test_no_food_projection():
    projection = project_revenue(1234.0, VenueType.NO_FOOD)
    assert projection.estimated_food == 0.0
    assert projection.estimated_total == 1234.0
    assert projection.breakdown() == [{'name': 'Alcohol', 'value': 1234.0}]


def test_total_is_alcohol_plus_food_for_every_archetype():
    for venue_type in VenueType:
        projection = project_revenue(5000.0, venue_type)
        assert projection.estimated_total == pytest.approx(projection.average_alcohol + projection.estimated_food)
        assert projection.estimated_food >= 0


def test_zero_alcohol_projects_zero():
    projection = project_revenue(0.0, 'fine_dining')
    assert projection.estimated_food == 0.0
    assert projection.estimated_total == 0.0


def test_breakdown_includes_food_when_positive():
    rows = project_revenue(100.0, 'dive_bar').breakdown()
    assert [r['name'] for r in rows] == ['Alcohol', 'Food']


def test_projection_to_dict_carries_description():
    data = project_revenue(100.0, 'sports_bar').to_dict()
    assert data['venue_type'] == 'sports_bar'
    assert data['description'] == get_archetype('sports_bar').description


def test_zero_alcohol_share_has_no_food_estimate():
    archetype = VenueArchetype(VenueType.NO_FOOD, 'Zero share', 0.5, 0.0, '')
    food = estimate_food(100.0, archetype)
    assert food == 0.0
    assert 100.0 + food == 100.0
