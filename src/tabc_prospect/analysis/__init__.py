"""
Revenue estimation and aggregation
"""

from .revenue import VenueType, VenueArchetype, RevenueProjection, project_revenue, resolve_venue_type
from .history import HistorySummary, summarize_history
from .leaderboard import LeaderboardEntry, build_leaderboard, ranked

__all__ = [
    'VenueType',
    'VenueArchetype',
    'RevenueProjection',
    'project_revenue',
    'resolve_venue_type',
    'HistorySummary',
    'summarize_history',
    'LeaderboardEntry',
    'build_leaderboard',
    'ranked',
]
