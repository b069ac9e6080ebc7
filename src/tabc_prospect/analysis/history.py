"""
Monthly history aggregation for a single establishment
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Sequence, TypeVar, Union

from ..data.records import MonthlyReceipt, normalize_receipt
from .revenue import RevenueProjection, VenueType, project_revenue

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class HistorySummary:
    active_month_count: int
    average_alcohol: float

    def project(self, venue_type: Union[str, VenueType, None] = None) -> RevenueProjection:
        """Revenue projection for this history under an archetype"""
        return project_revenue(self.average_alcohol, venue_type, self.active_month_count)


def chronological(records: Sequence[T]) -> List[T]:
    """Oldest-first copy of a newest-first sequence"""
    return list(reversed(records))


def _as_receipt(record: Union[MonthlyReceipt, Mapping[str, Any]]) -> MonthlyReceipt:
    if isinstance(record, MonthlyReceipt):
        return record
    return normalize_receipt(record)


def summarize_history(records: Iterable[Union[MonthlyReceipt, Mapping[str, Any]]]) -> HistorySummary:
    """
    Count active months and average their total receipts.

    Months with zero total receipts did not report and are left out of the
    average. With no active months the average is 0.
    """
    active = [r for r in map(_as_receipt, records) if r.is_active]
    if not active:
        return HistorySummary(active_month_count=0, average_alcohol=0.0)

    total = sum(r.total_receipts for r in active)
    summary = HistorySummary(active_month_count=len(active), average_alcohol=total / len(active))
    logger.debug(f"History summary: {summary}")
    return summary
