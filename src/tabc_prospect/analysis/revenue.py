"""
Venue revenue model: projects food and total revenue from alcohol receipts
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Union


class VenueType(str, Enum):
    FINE_DINING = 'fine_dining'
    UPSCALE_CASUAL = 'upscale_casual'
    CASUAL_DINING = 'casual_dining'
    PUB_GRILL = 'pub_grill'
    SPORTS_BAR = 'sports_bar'
    DIVE_BAR = 'dive_bar'
    NIGHTCLUB = 'nightclub'
    NO_FOOD = 'no_food'


DEFAULT_VENUE_TYPE = VenueType.CASUAL_DINING


@dataclass(frozen=True)
class VenueArchetype:
    """Revenue split assumed for a kind of venue"""
    key: VenueType
    label: str
    food_share: float
    alcohol_share: float
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key.value,
            'label': self.label,
            'food_share': self.food_share,
            'alcohol_share': self.alcohol_share,
            'description': self.description,
        }


# Catalog order is the order offered to users
VENUE_ARCHETYPES: Mapping[VenueType, VenueArchetype] = MappingProxyType({
    VenueType.FINE_DINING: VenueArchetype(VenueType.FINE_DINING, 'Fine Dining', 0.75, 0.25, 'Premium food focus (75/25 split)'),
    VenueType.UPSCALE_CASUAL: VenueArchetype(VenueType.UPSCALE_CASUAL, 'Upscale Casual', 0.65, 0.35, 'Polished dining (65/35 split)'),
    VenueType.CASUAL_DINING: VenueArchetype(VenueType.CASUAL_DINING, 'Casual Dining', 0.60, 0.40, 'Balanced menu (60/40 split)'),
    VenueType.PUB_GRILL: VenueArchetype(VenueType.PUB_GRILL, 'Pub & Grill', 0.50, 0.50, 'Even revenue split (50/50 split)'),
    VenueType.SPORTS_BAR: VenueArchetype(VenueType.SPORTS_BAR, 'Sports Bar', 0.35, 0.65, 'Alcohol primary (35/65 split)'),
    VenueType.DIVE_BAR: VenueArchetype(VenueType.DIVE_BAR, 'Dive Bar / Tavern', 0.15, 0.85, 'Minimal food service (15/85 split)'),
    VenueType.NIGHTCLUB: VenueArchetype(VenueType.NIGHTCLUB, 'Nightclub / Lounge', 0.05, 0.95, 'High beverage volume (5/95 split)'),
    VenueType.NO_FOOD: VenueArchetype(VenueType.NO_FOOD, 'No Food (Alcohol Only)', 0.00, 1.00, '100% Alcohol receipts'),
})


def resolve_venue_type(value: Union[str, VenueType, None]) -> VenueType:
    """Map a key or enum member to a VenueType; None gives the default"""
    if value is None:
        return DEFAULT_VENUE_TYPE
    if isinstance(value, VenueType):
        return value
    try:
        return VenueType(str(value).strip().lower())
    except ValueError:
        valid = ', '.join(v.value for v in VenueType)
        raise ValueError(f"Unknown venue type {value!r}; expected one of: {valid}") from None


def get_archetype(venue_type: Union[str, VenueType, None] = None) -> VenueArchetype:
    return VENUE_ARCHETYPES[resolve_venue_type(venue_type)]


def list_archetypes() -> List[VenueArchetype]:
    return list(VENUE_ARCHETYPES.values())


@dataclass(frozen=True)
class RevenueProjection:
    """Monthly averages derived for one establishment under one archetype"""
    venue_type: VenueType
    average_alcohol: float
    estimated_food: float
    estimated_total: float
    active_month_count: int

    @property
    def archetype(self) -> VenueArchetype:
        return VENUE_ARCHETYPES[self.venue_type]

    def breakdown(self) -> List[Dict[str, Any]]:
        """Alcohol/food shares of the projected total; food omitted when zero"""
        rows = [{'name': 'Alcohol', 'value': self.average_alcohol}]
        if self.estimated_food > 0:
            rows.append({'name': 'Food', 'value': self.estimated_food})
        return rows

    def to_dict(self) -> Dict[str, Any]:
        return {
            'venue_type': self.venue_type.value,
            'description': self.archetype.description,
            'average_alcohol': self.average_alcohol,
            'estimated_food': self.estimated_food,
            'estimated_total': self.estimated_total,
            'active_month_count': self.active_month_count,
        }


def estimate_food(average_alcohol: float, archetype: VenueArchetype) -> float:
    # Zero alcohol share has no defined ratio
    if archetype.alcohol_share <= 0:
        return 0.0
    return (average_alcohol / archetype.alcohol_share) * archetype.food_share


def project_revenue(average_alcohol: float,
                    venue_type: Union[str, VenueType, None] = None,
                    active_month_count: int = 0) -> RevenueProjection:
    """
    Project average monthly food and total revenue.

    Args:
        average_alcohol: Average monthly mixed beverage receipts
        venue_type: Archetype key or member (default casual_dining)
        active_month_count: Months the average was taken over, carried through

    Returns:
        RevenueProjection
    """
    archetype = get_archetype(venue_type)
    estimated_food = estimate_food(average_alcohol, archetype)
    return RevenueProjection(
        venue_type=archetype.key,
        average_alcohol=average_alcohol,
        estimated_food=estimated_food,
        estimated_total=average_alcohol + estimated_food,
        active_month_count=active_month_count,
    )
