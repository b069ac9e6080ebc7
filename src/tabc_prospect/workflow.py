"""
Prospecting workflow: search, select, project and rank

Holds the state a dashboard renders. Every async result is tagged with the
establishment it was requested for and is only committed while that
establishment is still the current selection.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .analysis.history import HistorySummary, summarize_history
from .analysis.leaderboard import LeaderboardEntry, build_leaderboard
from .analysis.revenue import RevenueProjection, VenueType, resolve_venue_type
from .config import config
from .data.api_client import TexasComptrollerAPI
from .data.records import EstablishmentKey, EstablishmentProfile, MonthlyReceipt, normalize_receipt
from .enrichment.ownership import OwnershipEnricher, OwnershipReport

logger = logging.getLogger(__name__)

SEARCH_FAILED = "Search failed. Please try again."
RANKING_FAILED = "Ranking failed. Please try again."
HISTORY_FAILED = "Failed to load historical data."


@dataclass
class DashboardState:
    results: List[EstablishmentProfile] = field(default_factory=list)
    selected: Optional[EstablishmentProfile] = None
    history: List[MonthlyReceipt] = field(default_factory=list)
    summary: Optional[HistorySummary] = None
    venue_type: VenueType = VenueType.CASUAL_DINING
    projection: Optional[RevenueProjection] = None
    ownership: Optional[OwnershipReport] = None
    leaderboard: List[LeaderboardEntry] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def selected_key(self) -> Optional[EstablishmentKey]:
        return self.selected.key if self.selected else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'selected': self.selected.to_dict() if self.selected else None,
            'history': [r.to_dict() for r in self.history],
            'venue_type': self.venue_type.value,
            'projection': self.projection.to_dict() if self.projection else None,
            'ownership': self.ownership.to_dict() if self.ownership else None,
            'error': self.error,
        }


class ProspectingWorkflow:
    """Coordinates open-data queries, projections and enrichment for one user"""

    def __init__(self, api_client: Optional[TexasComptrollerAPI] = None,
                 enricher: Optional[OwnershipEnricher] = None):
        self.api_client = api_client or TexasComptrollerAPI()
        self.enricher = enricher or OwnershipEnricher()
        self.state = DashboardState(venue_type=resolve_venue_type(config.analysis.default_venue_type))
        self._inflight: Dict[EstablishmentKey, List[asyncio.Task]] = {}

    def is_current(self, key: EstablishmentKey) -> bool:
        return self.state.selected_key == key

    def _commit(self, key: EstablishmentKey, **updates) -> bool:
        """Apply updates only if they belong to the current selection"""
        if not self.is_current(key):
            logger.info(f"Dropping stale result for {key} (current: {self.state.selected_key})")
            return False
        for name, value in updates.items():
            setattr(self.state, name, value)
        return True

    def _cancel_superseded(self, current: Optional[EstablishmentKey]):
        for key in list(self._inflight):
            if key == current:
                continue
            for task in self._inflight.pop(key):
                if not task.done():
                    logger.debug(f"Cancelling in-flight request for {key}")
                    task.cancel()

    async def search(self, name: str, city: Optional[str] = None) -> List[EstablishmentProfile]:
        """
        Search by name (and optional city); clears the current selection.

        Raises:
            ValueError: blank search term
        """
        self.state.selected = None
        self.state.results = []
        self.state.error = None
        self._cancel_superseded(None)

        profiles = await self.api_client.search_establishments(name, city)
        if profiles is None:
            self.state.error = SEARCH_FAILED
            return []

        self.state.results = profiles
        return profiles

    async def _load_history(self, key: EstablishmentKey) -> bool:
        rows = await self.api_client.get_history_rows(key)
        if rows is None:
            return self._commit(key, error=HISTORY_FAILED, history=[], summary=None, projection=None)

        history = [normalize_receipt(row) for row in rows]
        summary = summarize_history(history)
        return self._commit(key, history=history, summary=summary,
                            projection=summary.project(self.state.venue_type))

    async def _load_ownership(self, profile: EstablishmentProfile) -> bool:
        report = await self.enricher.lookup(profile)
        return self._commit(profile.key, ownership=report)

    async def select(self, profile: EstablishmentProfile, with_ownership: bool = True) -> DashboardState:
        """
        Make an establishment current and load its history (and ownership).

        Earlier selections' requests are cancelled; any of their results that
        still arrive are discarded.
        """
        key = profile.key
        self.state.selected = profile
        self.state.error = None
        self.state.history = []
        self.state.summary = None
        self.state.projection = None
        self.state.ownership = OwnershipReport.pending() if with_ownership else None
        self._cancel_superseded(key)

        tasks = [asyncio.ensure_future(self._load_history(key))]
        if with_ownership:
            tasks.append(asyncio.ensure_future(self._load_ownership(profile)))
        self._inflight.setdefault(key, []).extend(tasks)

        try:
            await asyncio.gather(*tasks, return_exceptions=False)
        except asyncio.CancelledError:
            if self.is_current(key):
                raise
            logger.info(f"Selection of {key} superseded before it finished loading")
        finally:
            remaining = [t for t in self._inflight.get(key, []) if not t.done()]
            if remaining:
                self._inflight[key] = remaining
            else:
                self._inflight.pop(key, None)

        return self.state

    def set_venue_type(self, venue_type: Union[str, VenueType]) -> Optional[RevenueProjection]:
        """Switch archetype and recompute the projection without refetching"""
        self.state.venue_type = resolve_venue_type(venue_type)
        if self.state.summary is None:
            return None
        self.state.projection = self.state.summary.project(self.state.venue_type)
        return self.state.projection

    async def leaderboard(self, area: str) -> List[LeaderboardEntry]:
        """
        Rank establishments in a city or ZIP by trailing annual sales.

        Raises:
            ValueError: malformed area
        """
        self.state.error = None
        rows = await self.api_client.get_leaderboard_rows(area)
        if rows is None:
            self.state.error = RANKING_FAILED
            self.state.leaderboard = []
            return []

        self.state.leaderboard = build_leaderboard(rows)
        return self.state.leaderboard
