"""
City / ZIP leaderboards ranked by trailing annual sales
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

import pandas as pd

from ..data.records import EstablishmentProfile, to_float

# Denominator when the grouped row carries no month count
FULL_YEAR_MONTHS = 12


@dataclass(frozen=True)
class LeaderboardEntry:
    profile: EstablishmentProfile
    annual_sales: float
    reporting_month_count: Optional[int]
    avg_monthly_volume: float

    def to_dict(self, rank: Optional[int] = None) -> Dict[str, Any]:
        data = self.profile.to_dict()
        data.update({
            'annual_sales': self.annual_sales,
            'reporting_month_count': self.reporting_month_count,
            'avg_monthly_volume': self.avg_monthly_volume,
        })
        if rank is not None:
            data['rank'] = rank
        return data


def _month_count(value: Any) -> Optional[int]:
    count = int(to_float(value))
    return count if count > 0 else None


def average_monthly_volume(annual_sales: float, month_count: Optional[int]) -> float:
    return annual_sales / (month_count or FULL_YEAR_MONTHS)


def build_leaderboard(rows: Iterable[Mapping[str, Any]]) -> List[LeaderboardEntry]:
    """
    Turn grouped aggregate rows into entries sorted by annual sales, highest first.

    Rows are expected to carry ``annual_sales`` and ``months_count`` as produced
    by the grouped query; a missing or zero count averages over a full year.
    """
    entries = []
    for row in rows:
        annual_sales = to_float(row.get('annual_sales'))
        month_count = _month_count(row.get('months_count', row.get('reporting_month_count')))
        entries.append(LeaderboardEntry(
            profile=EstablishmentProfile.from_record(row),
            annual_sales=annual_sales,
            reporting_month_count=month_count,
            avg_monthly_volume=average_monthly_volume(annual_sales, month_count),
        ))

    # sorted() is stable, so ties keep upstream order
    return sorted(entries, key=lambda e: e.annual_sales, reverse=True)


def ranked(entries: Iterable[LeaderboardEntry]) -> Iterator[Tuple[int, LeaderboardEntry]]:
    return enumerate(entries, start=1)


def leaderboard_frame(entries: Iterable[LeaderboardEntry]) -> pd.DataFrame:
    """Leaderboard as a DataFrame with a rank column, for CSV export"""
    rows = [entry.to_dict(rank) for rank, entry in ranked(entries)]
    if not rows:
        return pd.DataFrame(columns=['rank', 'location_name', 'annual_sales', 'avg_monthly_volume'])
    df = pd.DataFrame(rows)
    leading = ['rank', 'location_name', 'location_city', 'annual_sales', 'reporting_month_count', 'avg_monthly_volume']
    return df[leading + [c for c in df.columns if c not in leading]]
