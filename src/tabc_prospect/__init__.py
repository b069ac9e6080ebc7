"""
TABC Prospect

Tools to:
1. Search Texas mixed beverage permit holders in Comptroller open data
2. Estimate food and total revenue from monthly alcohol receipts
3. Rank establishments in a city or ZIP code
4. Look up ownership with an AI provider
5. Save prospects and notes
"""

__version__ = "1.0.0"
__author__ = "TABC Prospect"

from .data.api_client import TexasComptrollerAPI
from .analysis.revenue import VenueType, project_revenue
from .analysis.history import summarize_history
from .analysis.leaderboard import build_leaderboard
from .enrichment.ownership import OwnershipEnricher
from .storage.database import DatabaseManager
from .workflow import ProspectingWorkflow

__all__ = [
    'TexasComptrollerAPI',
    'VenueType',
    'project_revenue',
    'summarize_history',
    'build_leaderboard',
    'OwnershipEnricher',
    'DatabaseManager',
    'ProspectingWorkflow'
]
