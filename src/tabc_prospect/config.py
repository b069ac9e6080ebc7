"""
Configuration settings for TABC Prospect
"""

import os
from typing import Dict, Any, Optional
from pydantic import BaseModel, Field, validator
from urllib.parse import urlparse


def _validate_http_url(v: str) -> str:
    parsed = urlparse(v)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError('Invalid URL format')
    if parsed.scheme not in ['http', 'https']:
        raise ValueError('URL must use HTTP or HTTPS')
    return v


def mask_database_url(url: str) -> str:
    """Mask credentials in a database URL for logging"""
    if '://' in url and '@' in url:
        scheme, rest = url.split('://', 1)
        if '@' in rest:
            _, host_db = rest.rsplit('@', 1)
            return f"{scheme}://***:***@{host_db}"
    return url


class APIConfig(BaseModel):
    """Configuration for the Texas open-data (Socrata) endpoint"""
    base_url: str = Field(default="https://data.texas.gov/resource/naix-2893.json", description="Dataset resource URL")
    app_token: Optional[str] = Field(default=None, description="Optional Socrata app token")
    timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")
    max_retries: int = Field(default=3, ge=1, le=10, description="Maximum retry attempts")
    backoff_factor: float = Field(default=0.3, ge=0.0, le=5.0, description="Backoff factor for retries")
    search_limit: int = Field(default=100, ge=1, le=1000, description="Row limit for name searches")
    history_limit: int = Field(default=12, ge=1, le=120, description="Months of history per establishment")
    leaderboard_limit: int = Field(default=100, ge=1, le=1000, description="Row limit for leaderboards")
    leaderboard_window_days: int = Field(default=365, ge=1, le=3650, description="Trailing window for leaderboards")

    @validator('base_url')
    def validate_base_url(cls, v):
        return _validate_http_url(v)


class EnrichmentConfig(BaseModel):
    """Configuration for the AI ownership lookup"""
    base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta", description="Provider API root")
    model: str = Field(default="gemini-2.5-flash", min_length=1, description="Model identifier")
    api_key: Optional[str] = Field(default=None, description="Provider credential; lookups degrade without it")
    timeout: int = Field(default=60, ge=1, le=300, description="Request timeout in seconds")
    max_retries: int = Field(default=5, ge=1, le=10, description="Maximum attempts for transient failures")
    backoff_base: float = Field(default=1.0, ge=0.0, le=30.0, description="First retry delay in seconds, doubled per attempt")

    @validator('base_url')
    def validate_base_url(cls, v):
        return _validate_http_url(v)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


class DatabaseConfig(BaseModel):
    """Configuration for prospect storage"""
    url: str = Field(default="sqlite:///tabc_prospects.db", description="Database URL")
    echo: bool = Field(default=False, description="Enable SQL echo for debugging")

    @validator('url')
    def validate_database_url(cls, v):
        if not v:
            raise ValueError('Database URL cannot be empty')
        parsed = urlparse(v)
        if parsed.scheme == 'sqlite' and not parsed.path:
            raise ValueError('SQLite URL must include a path')
        return v


class CacheConfig(BaseModel):
    """Configuration for the upstream response cache"""
    enabled: bool = Field(default=True, description="Cache upstream GET responses")
    default_ttl: int = Field(default=3600, ge=0, description="Default TTL in seconds (0 = no expiry)")
    api_cache_ttl: int = Field(default=900, ge=0, description="TTL for open-data responses in seconds")


class AnalysisConfig(BaseModel):
    """Configuration for revenue projections"""
    default_venue_type: str = Field(default="casual_dining", description="Venue archetype selected by default")

    @validator('default_venue_type')
    def validate_default_venue_type(cls, v):
        from .analysis.revenue import resolve_venue_type
        return resolve_venue_type(v).value


class Config(BaseModel):
    """Main configuration class"""
    api: APIConfig = Field(default_factory=APIConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)

    @classmethod
    def from_env(cls) -> 'Config':
        """Create configuration from environment variables with validation"""
        env_vars = {
            'api': {
                'base_url': os.getenv('TABC_API_URL', 'https://data.texas.gov/resource/naix-2893.json'),
                'app_token': os.getenv('TABC_APP_TOKEN') or None,
                'timeout': int(os.getenv('TABC_API_TIMEOUT', '30')),
                'max_retries': int(os.getenv('TABC_API_MAX_RETRIES', '3')),
                'backoff_factor': float(os.getenv('TABC_API_BACKOFF_FACTOR', '0.3')),
                'leaderboard_window_days': int(os.getenv('TABC_LEADERBOARD_WINDOW_DAYS', '365'))
            },
            'enrichment': {
                'base_url': os.getenv('TABC_AI_URL', 'https://generativelanguage.googleapis.com/v1beta'),
                'model': os.getenv('TABC_AI_MODEL', 'gemini-2.5-flash'),
                'api_key': os.getenv('TABC_AI_API_KEY') or None,
                'timeout': int(os.getenv('TABC_AI_TIMEOUT', '60')),
                'max_retries': int(os.getenv('TABC_AI_MAX_RETRIES', '5'))
            },
            'database': {
                'url': os.getenv('TABC_DB_URL', 'sqlite:///tabc_prospects.db'),
                'echo': os.getenv('TABC_DB_ECHO', 'false').lower() == 'true'
            },
            'cache': {
                'enabled': os.getenv('TABC_CACHE_ENABLED', 'true').lower() == 'true',
                'api_cache_ttl': int(os.getenv('TABC_CACHE_API_TTL', '900'))
            },
            'analysis': {
                'default_venue_type': os.getenv('TABC_DEFAULT_VENUE_TYPE', 'casual_dining')
            }
        }
        return cls(**env_vars)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary (excluding sensitive data)"""
        return {
            'api': {
                'base_url': self.api.base_url,
                'app_token_configured': self.api.app_token is not None,
                'timeout': self.api.timeout,
                'max_retries': self.api.max_retries,
                'backoff_factor': self.api.backoff_factor,
                'leaderboard_window_days': self.api.leaderboard_window_days
            },
            'enrichment': {
                'base_url': self.enrichment.base_url,
                'model': self.enrichment.model,
                'configured': self.enrichment.is_configured,
                'max_retries': self.enrichment.max_retries
            },
            'database': {
                'url': mask_database_url(self.database.url),
                'echo': self.database.echo
            },
            'cache': {
                'enabled': self.cache.enabled,
                'api_cache_ttl': self.cache.api_cache_ttl
            },
            'analysis': {
                'default_venue_type': self.analysis.default_venue_type
            }
        }


# Global configuration instance
def load_config():
    """Load configuration based on environment"""
    environment = os.getenv('ENVIRONMENT', 'dev').lower()
    if environment == 'dev':
        from .config_dev import dev_config
        return dev_config
    elif environment == 'staging':
        from .config_staging import staging_config
        return staging_config
    elif environment == 'prod':
        from .config_prod import prod_config
        return prod_config
    else:
        # Fallback to default from env
        return Config.from_env()

config = load_config()
