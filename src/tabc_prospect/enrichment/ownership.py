"""
AI-assisted ownership lookup for a selected establishment

The provider answers in loosely structured free text. Parsing is best effort
and every failure path resolves to a report synthesized from the profile, so
callers always get three renderable fields.
"""

import re
import logging
import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import aiohttp

from ..config import config
from ..data.records import EstablishmentProfile

logger = logging.getLogger(__name__)

PLACEHOLDER_UNAVAILABLE = "Data unavailable"
PLACEHOLDER_PENDING = "Searching..."

SECTION_LABELS = {
    'owners': 'OWNERS',
    'locations': 'LOCATION COUNT',
    'details': 'ACCOUNT DETAILS',
}

# An ordinal ("2.") opening the line of a label belongs to the label, not the previous section
_LABEL_RE = re.compile(
    r'(?:^[ \t]*\d+\.[ \t]*)?(' + '|'.join(re.escape(label) for label in SECTION_LABELS.values()) + r')\s*:',
    re.IGNORECASE | re.MULTILINE,
)
# Only an ordinal followed by more text; a bare "3." is content
_LEADING_ORDINAL_RE = re.compile(r'^\d+\.\s+(?=\S)')
_MARKUP_RE = re.compile(r'[*#]')

# Individual officers confirmed by hand, keyed by taxpayer number
KNOWN_OFFICERS: Dict[str, List[str]] = {
    "32082902571": ["Travis Tober", "Zane Hunt", "Brandon Hunt", "Craig Primozich"],
    "32061511302": ["Travis Tober", "Zane Hunt", "Brandon Hunt", "Craig Primozich"],
    "32069462136": ["Travis Tober", "Zane Hunt", "Brandon Hunt", "Craig Primozich"],
}

PROMPT_TEMPLATE = """Research the Texas mixed beverage permit holder below.

Business name: {location_name}
Legal entity (taxpayer): {taxpayer_name}
Address: {address}

Answer in exactly three sections using these labels:
OWNERS: the individual owners, partners or officers behind the legal entity.
LOCATION COUNT: how many locations this owner or group operates, and where.
ACCOUNT DETAILS: a two or three sentence summary of the business and its concept.
If something cannot be verified, say so in that section."""


class EnrichmentError(Exception):
    """The provider call failed in a way the caller should fall back from"""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


@dataclass
class Citation:
    uri: str
    title: str


@dataclass
class ProviderResponse:
    text: str
    citations: List[Citation] = field(default_factory=list)


@dataclass
class OwnershipReport:
    """Three display sections plus provenance"""
    owners: str
    locations: str
    details: str
    citations: List[Citation] = field(default_factory=list)
    officers: List[str] = field(default_factory=list)
    source: str = 'ai'  # 'ai', 'fallback', 'unavailable' or 'pending'

    @classmethod
    def pending(cls) -> 'OwnershipReport':
        return cls(PLACEHOLDER_PENDING, PLACEHOLDER_PENDING, PLACEHOLDER_PENDING, source='pending')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'owners': self.owners,
            'locations': self.locations,
            'details': self.details,
            'officers': list(self.officers),
            'citations': [{'uri': c.uri, 'title': c.title} for c in self.citations],
            'source': self.source,
        }


def parse_ownership_sections(text: Optional[str]) -> Dict[str, str]:
    """
    Extract the OWNERS / LOCATION COUNT / ACCOUNT DETAILS sections.

    Labels match case-insensitively after stripping ``*`` and ``#``. Each
    section runs to the next known label or the end of the text. A missing
    or empty section gets the "Data unavailable" placeholder.
    """
    sections = {name: PLACEHOLDER_UNAVAILABLE for name in SECTION_LABELS}
    if not text:
        return sections

    cleaned = _MARKUP_RE.sub('', text)
    by_label = {label: name for name, label in SECTION_LABELS.items()}
    matches = list(_LABEL_RE.finditer(cleaned))

    for i, match in enumerate(matches):
        name = by_label[match.group(1).upper()]
        if sections[name] != PLACEHOLDER_UNAVAILABLE:
            continue  # first occurrence wins
        end = matches[i + 1].start() if i + 1 < len(matches) else len(cleaned)
        content = _LEADING_ORDINAL_RE.sub('', cleaned[match.end():end].strip(), count=1).strip()
        if content:
            sections[name] = content

    return sections


def fallback_report(profile: EstablishmentProfile, source: str = 'fallback') -> OwnershipReport:
    """Report built only from what the dataset already says about the location"""
    taxpayer = profile.taxpayer_name or 'the permit holder'
    business = profile.location_name or 'This establishment'
    city = (profile.location_city or 'Texas').title()
    officers = KNOWN_OFFICERS.get(profile.taxpayer_number, [])

    owners = f"Registered to {taxpayer}"
    if officers:
        owners += f" ({', '.join(officers)})"

    return OwnershipReport(
        owners=owners,
        locations=f"Location count for {taxpayer} could not be verified",
        details=f"{business} is a mixed beverage permit holder in {city} operated by {taxpayer}.",
        officers=list(officers),
        source=source,
    )


class OwnershipLookupClient:
    """Thin async client for the generative text provider"""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 base_url: Optional[str] = None, max_retries: Optional[int] = None,
                 backoff_base: Optional[float] = None):
        self.api_key = api_key if api_key is not None else config.enrichment.api_key
        self.model = model or config.enrichment.model
        self.base_url = (base_url or config.enrichment.base_url).rstrip('/')
        self.timeout = config.enrichment.timeout
        self.max_retries = max_retries or config.enrichment.max_retries
        self.backoff_base = config.enrichment.backoff_base if backoff_base is None else backoff_base

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            'contents': [{'parts': [{'text': prompt}]}],
            'tools': [{'google_search': {}}],
        }

    async def _post(self, payload: Dict[str, Any]) -> Tuple[int, Any]:
        """One HTTP attempt; returns (status, parsed body or error text)"""
        headers = {'Content-Type': 'application/json', 'x-goog-api-key': self.api_key}
        async with aiohttp.ClientSession() as session:
            async with session.post(self.endpoint, json=payload, headers=headers,
                                    timeout=aiohttp.ClientTimeout(total=self.timeout)) as response:
                if response.status == 200:
                    return response.status, await response.json(content_type=None)
                return response.status, await response.text()

    @staticmethod
    def parse_response(data: Any) -> ProviderResponse:
        if not isinstance(data, dict):
            return ProviderResponse(text='')
        candidates = data.get('candidates') or []
        if not candidates:
            return ProviderResponse(text='')

        candidate = candidates[0] if isinstance(candidates, list) else None
        if not isinstance(candidate, dict):
            return ProviderResponse(text='')

        content = candidate.get('content')
        parts = content.get('parts') if isinstance(content, dict) else None
        text = ''.join(str(p.get('text') or '') for p in (parts if isinstance(parts, list) else []) if isinstance(p, dict))

        citations = []
        grounding = candidate.get('groundingMetadata')
        chunks = grounding.get('groundingChunks') if isinstance(grounding, dict) else None
        for chunk in chunks if isinstance(chunks, list) else []:
            web = chunk.get('web') if isinstance(chunk, dict) else None
            if isinstance(web, dict) and web.get('uri'):
                citations.append(Citation(uri=str(web['uri']), title=str(web.get('title') or web['uri'])))

        return ProviderResponse(text=text.strip(), citations=citations)

    async def generate(self, prompt: str) -> ProviderResponse:
        """
        Send a prompt, retrying transient failures with doubling delays.

        Raises:
            EnrichmentError: no credential, a non-retryable 4xx, or retries exhausted
        """
        if not self.is_configured:
            raise EnrichmentError("No enrichment API key configured")

        payload = self.build_payload(prompt)
        last_error = "no attempts made"

        for attempt in range(self.max_retries):
            try:
                status, body = await self._post(payload)
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                # ValueError covers an undecodable 200 body
                last_error = f"network error: {e}"
                status, body = None, None

            if status == 200:
                return self.parse_response(body)

            if status is not None:
                if status != 429 and status < 500:
                    logger.error(f"Enrichment request rejected with status {status}: {str(body)[:300]}")
                    raise EnrichmentError(f"Provider rejected request ({status})", status=status)
                last_error = f"status {status}"

            if attempt < self.max_retries - 1:
                wait_time = self.backoff_base * (2 ** attempt)
                logger.warning(f"Enrichment attempt {attempt + 1} failed ({last_error}), retrying in {wait_time}s")
                await asyncio.sleep(wait_time)

        raise EnrichmentError(f"Enrichment failed after {self.max_retries} attempts: {last_error}")


class OwnershipEnricher:
    """Produces an OwnershipReport for a profile, never raising"""

    def __init__(self, client: Optional[OwnershipLookupClient] = None):
        self.client = client or OwnershipLookupClient()

    def build_prompt(self, profile: EstablishmentProfile) -> str:
        return PROMPT_TEMPLATE.format(
            location_name=profile.location_name,
            taxpayer_name=profile.taxpayer_name,
            address=profile.full_address,
        )

    async def lookup(self, profile: EstablishmentProfile) -> OwnershipReport:
        if not self.client.is_configured:
            logger.info("Ownership lookup unavailable: no API key configured")
            return fallback_report(profile, source='unavailable')

        try:
            response = await self.client.generate(self.build_prompt(profile))
        except EnrichmentError as e:
            logger.warning(f"Ownership lookup failed for {profile.key}: {e}")
            return fallback_report(profile)
        except Exception as e:
            logger.error(f"Unexpected ownership lookup error for {profile.key}: {e}")
            return fallback_report(profile)

        if not response.text:
            logger.warning(f"Ownership lookup for {profile.key} returned no text")
            return fallback_report(profile)

        sections = parse_ownership_sections(response.text)
        return OwnershipReport(
            owners=sections['owners'],
            locations=sections['locations'],
            details=sections['details'],
            citations=response.citations,
            officers=list(KNOWN_OFFICERS.get(profile.taxpayer_number, [])),
            source='ai',
        )
