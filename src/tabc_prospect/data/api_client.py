"""
Texas open-data client for mixed beverage gross receipts (dataset naix-2893)
"""

import re
import logging
import asyncio
from datetime import date, timedelta
from typing import Any, Dict, List, Optional
import aiohttp
from pydantic import BaseModel, Field, validator

from ..config import config
from ..storage.cache import get_api_cache, set_api_cache
from .query import SoQLQuery, contains_ci, equals, equals_ci, at_least
from ..analysis.history import chronological
from .records import DATE_FIELD, TOTAL_FIELD, EstablishmentKey, EstablishmentProfile, unique_profiles

logger = logging.getLogger(__name__)

_ZIP_RE = re.compile(r'^\d{5}$')

LEADERBOARD_FIELDS = (
    'location_name', 'location_address', 'location_city', 'location_zip',
    'taxpayer_name', 'taxpayer_number', 'location_number',
)


class SearchInput(BaseModel):
    """Validated establishment search parameters"""
    name: str = Field(..., min_length=1, max_length=200, description="Establishment name fragment")
    city: Optional[str] = Field(default=None, max_length=100, description="Exact city filter")

    @validator('name')
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Search term cannot be blank')
        return v

    @validator('city')
    def validate_city(cls, v):
        if v is None:
            return v
        return v.strip() or None


class AreaInput(BaseModel):
    """A leaderboard scope: a city name or a five-digit ZIP code"""
    area: str = Field(..., min_length=1, max_length=100)

    @validator('area')
    def validate_area(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('City or ZIP code is required')
        if v.isdigit() and not _ZIP_RE.match(v):
            raise ValueError('ZIP code must have five digits')
        return v

    @property
    def is_zip(self) -> bool:
        return bool(_ZIP_RE.match(self.area))


class TexasComptrollerAPI:
    """Client for the Comptroller mixed beverage receipts resource"""

    def __init__(self, base_url: Optional[str] = None):
        self.base_url = base_url or config.api.base_url
        self.app_token = config.api.app_token
        self.timeout = config.api.timeout
        self.max_retries = config.api.max_retries
        self.backoff_factor = config.api.backoff_factor

    def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        if self.app_token:
            headers['X-App-Token'] = self.app_token
        return headers

    async def _make_request(self, url: str) -> Optional[List[Dict[str, Any]]]:
        """GET a query URL with retry logic and caching; None on failure"""
        cached_response = await get_api_cache(url)
        if cached_response is not None:
            logger.info(f"Returning cached response for {url}")
            return cached_response

        for attempt in range(self.max_retries):
            try:
                logger.info(f"Making request to {url} (attempt {attempt + 1})")
                async with aiohttp.ClientSession() as session:
                    async with session.get(url, headers=self._headers(), timeout=aiohttp.ClientTimeout(total=self.timeout)) as response:
                        if response.status == 200:
                            response_data = await response.json(content_type=None)
                            if not isinstance(response_data, list):
                                logger.error(f"Unexpected response shape from {url}: {type(response_data).__name__}")
                                return None
                            logger.info(f"API request successful, {len(response_data)} rows")
                            await set_api_cache(url, response_data)
                            return response_data
                        elif response.status == 429 or response.status >= 500:
                            logger.warning(f"Upstream returned {response.status}")
                            if attempt < self.max_retries - 1:
                                wait_time = self.backoff_factor * (2 ** attempt)
                                logger.info(f"Retrying in {wait_time}s...")
                                await asyncio.sleep(wait_time)
                            continue
                        else:
                            error_text = await response.text()
                            logger.error(f"API request failed with status {response.status}: {error_text[:500]}")
                            return None

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.error(f"Request error: {e}")
                if attempt < self.max_retries - 1:
                    wait_time = self.backoff_factor * (2 ** attempt)
                    logger.info(f"Retrying in {wait_time}s...")
                    await asyncio.sleep(wait_time)

        logger.error(f"Giving up on {url} after {self.max_retries} attempts")
        return None

    def build_search_query(self, name: str, city: Optional[str] = None) -> SoQLQuery:
        params = SearchInput(name=name, city=city)
        query = SoQLQuery().where(contains_ci('location_name', params.name))
        if params.city:
            query.where(equals_ci('location_city', params.city))
        return query.order(DATE_FIELD, descending=True).limit(config.api.search_limit)

    def build_history_query(self, key: EstablishmentKey) -> SoQLQuery:
        return (SoQLQuery()
                .where(equals('taxpayer_number', key.taxpayer_number),
                       equals('location_number', key.location_number))
                .order(DATE_FIELD, descending=True)
                .limit(config.api.history_limit))

    def build_leaderboard_query(self, area: str, today: Optional[date] = None) -> SoQLQuery:
        scope = AreaInput(area=area)
        since = (today or date.today()) - timedelta(days=config.api.leaderboard_window_days)

        if scope.is_zip:
            area_filter = equals('location_zip', scope.area)
        else:
            area_filter = equals_ci('location_city', scope.area)

        return (SoQLQuery()
                .select(*LEADERBOARD_FIELDS,
                        annual_sales=f'sum({TOTAL_FIELD})',
                        months_count=f'count({TOTAL_FIELD})')
                .where(area_filter, at_least(DATE_FIELD, f"{since.isoformat()}T00:00:00"))
                .group(*LEADERBOARD_FIELDS)
                .order('annual_sales', descending=True)
                .limit(config.api.leaderboard_limit))

    async def search_establishments(self, name: str, city: Optional[str] = None) -> Optional[List[EstablishmentProfile]]:
        """
        Find establishments whose name contains the search term

        Args:
            name: Case-insensitive name fragment
            city: Optional exact city filter

        Returns:
            Unique profiles in first-seen order, or None if the query failed
        """
        url = self.build_search_query(name, city).to_url(self.base_url)
        rows = await self._make_request(url)
        if rows is None:
            return None

        profiles = unique_profiles(rows)
        logger.info(f"Search '{name}' matched {len(rows)} rows, {len(profiles)} establishments")
        return profiles

    async def get_history_rows(self, key: EstablishmentKey) -> Optional[List[Dict[str, Any]]]:
        """
        Fetch recent monthly rows for one establishment

        Returns:
            Rows oldest-first (the query itself is newest-first), or None on failure
        """
        url = self.build_history_query(key).to_url(self.base_url)
        rows = await self._make_request(url)
        if rows is None:
            return None
        return chronological(rows)

    async def get_leaderboard_rows(self, area: str, today: Optional[date] = None) -> Optional[List[Dict[str, Any]]]:
        """Grouped trailing-window sales per establishment for a city or ZIP"""
        url = self.build_leaderboard_query(area, today).to_url(self.base_url)
        return await self._make_request(url)

    async def test_connection(self) -> bool:
        """Test if the dataset is reachable"""
        test_url = SoQLQuery().limit(1).to_url(self.base_url)
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(test_url, headers=self._headers(), timeout=aiohttp.ClientTimeout(total=10)) as response:
                    return response.status == 200
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Connection test failed: {e}")
            return False
