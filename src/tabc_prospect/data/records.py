"""
Normalization and de-duplication of mixed beverage receipt records
"""

import logging
import math
from dataclasses import dataclass, asdict
from datetime import date, datetime
from typing import Any, Dict, Hashable, Iterable, List, Mapping, NamedTuple, Optional, TypeVar, Union

import pandas as pd

logger = logging.getLogger(__name__)

DATE_FIELD = 'obligation_end_date_yyyymmdd'
TOTAL_FIELD = 'total_receipts'
RECEIPT_FIELDS = ('liquor_receipts', 'wine_receipts', 'beer_receipts', TOTAL_FIELD)

PROFILE_FIELDS = (
    'location_name', 'location_address', 'location_city', 'location_zip',
    'taxpayer_name', 'taxpayer_number', 'location_number', 'tabc_permit_number',
)

T = TypeVar('T')


class EstablishmentKey(NamedTuple):
    """Composite identity of one licensed service location"""
    taxpayer_number: str
    location_number: str

    def __str__(self) -> str:
        return f"{self.taxpayer_number}-{self.location_number}"


@dataclass(frozen=True)
class EstablishmentProfile:
    """Read-only establishment details as published by the Comptroller"""
    location_name: str
    location_address: str
    location_city: str
    location_zip: str
    taxpayer_name: str
    taxpayer_number: str
    location_number: str
    permit_number: Optional[str] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'EstablishmentProfile':
        return cls(
            location_name=_text(record.get('location_name')),
            location_address=_text(record.get('location_address')),
            location_city=_text(record.get('location_city')),
            location_zip=_text(record.get('location_zip')),
            taxpayer_name=_text(record.get('taxpayer_name')),
            taxpayer_number=_text(record.get('taxpayer_number')),
            location_number=_text(record.get('location_number')),
            permit_number=_text(record.get('tabc_permit_number', record.get('permit_number'))) or None,
        )

    @property
    def key(self) -> EstablishmentKey:
        return EstablishmentKey(self.taxpayer_number, self.location_number)

    @property
    def full_address(self) -> str:
        """Street address with city, state and ZIP"""
        return f"{self.location_address}, {self.location_city}, TX {self.location_zip}".strip()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['key'] = str(self.key)
        return data


@dataclass(frozen=True)
class MonthlyReceipt:
    """One reporting period of mixed beverage gross receipts"""
    period_end_date: Optional[date]
    liquor_receipts: float
    wine_receipts: float
    beer_receipts: float
    total_receipts: float

    @property
    def is_active(self) -> bool:
        # Zero total means the location did not report that month
        return self.total_receipts > 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['period_end_date'] = self.period_end_date.isoformat() if self.period_end_date else None
        return data


def _text(value: Any) -> str:
    if value is None:
        return ''
    return str(value).strip()


def to_float(value: Any) -> float:
    """
    Coerce a raw currency field to float.

    Anything that is not a finite number (None, '', 'N/A', NaN, booleans)
    becomes 0.0. Never raises.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = str(value).strip().replace(',', '').replace('$', '')
        if not cleaned:
            return 0.0
        try:
            number = float(cleaned)
        except ValueError:
            logger.debug(f"Non-numeric receipt value coerced to 0: {value!r}")
            return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def parse_period_date(value: Any) -> Optional[date]:
    """Parse a period end date (Socrata timestamp, ISO date or YYYYMMDD)"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    for candidate, fmt in ((text[:10], '%Y-%m-%d'), (text[:8], '%Y%m%d')):
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue

    logger.debug(f"Unparseable period end date: {value!r}")
    return None


def normalize_receipt(record: Mapping[str, Any]) -> MonthlyReceipt:
    """Convert one raw dataset row into a MonthlyReceipt"""
    if record is None:
        record = {}
    return MonthlyReceipt(
        period_end_date=parse_period_date(record.get(DATE_FIELD, record.get('period_end_date'))),
        liquor_receipts=to_float(record.get('liquor_receipts')),
        wine_receipts=to_float(record.get('wine_receipts')),
        beer_receipts=to_float(record.get('beer_receipts')),
        total_receipts=to_float(record.get(TOTAL_FIELD)),
    )


def establishment_key(record: Union[Mapping[str, Any], EstablishmentProfile]) -> EstablishmentKey:
    """Composite key for a raw row or a profile"""
    if isinstance(record, EstablishmentProfile):
        return record.key
    return EstablishmentKey(_text(record.get('taxpayer_number')), _text(record.get('location_number')))


def deduplicate(records: Iterable[T], key=establishment_key) -> List[T]:
    """
    Collapse records to unique establishments, keeping first-seen order.

    The first record for each key wins; later ones are dropped. Applying
    this to its own output returns it unchanged.
    """
    seen = set()
    unique: List[T] = []
    for record in records:
        record_key: Hashable = key(record)
        if record_key in seen:
            continue
        seen.add(record_key)
        unique.append(record)
    return unique


def unique_profiles(records: Iterable[Mapping[str, Any]]) -> List[EstablishmentProfile]:
    """De-duplicated establishment profiles from raw search rows"""
    return [EstablishmentProfile.from_record(r) for r in deduplicate(records)]


def history_frame(receipts: Iterable[MonthlyReceipt]) -> pd.DataFrame:
    """Liquor/wine/beer breakdown per period for trend tables"""
    rows = [r.to_dict() for r in receipts]
    if not rows:
        return pd.DataFrame(columns=['period_end_date', *RECEIPT_FIELDS])

    df = pd.DataFrame(rows)
    df[list(RECEIPT_FIELDS)] = df[list(RECEIPT_FIELDS)].astype(float)
    return df
