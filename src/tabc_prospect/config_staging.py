"""
Staging Configuration for TABC Prospect
"""

import os
from .config import APIConfig, EnrichmentConfig, DatabaseConfig, CacheConfig, AnalysisConfig, Config

# Staging-specific settings
staging_config = Config(
    api=APIConfig(
        base_url=os.getenv('TABC_API_URL', 'https://data.texas.gov/resource/naix-2893.json'),
        app_token=os.getenv('TABC_APP_TOKEN') or None,
        timeout=45,
        max_retries=4,
        backoff_factor=0.4
    ),
    enrichment=EnrichmentConfig(
        model=os.getenv('TABC_AI_MODEL', 'gemini-2.5-flash'),
        api_key=os.getenv('TABC_AI_API_KEY') or None,
        max_retries=4
    ),
    database=DatabaseConfig(
        url=os.getenv('TABC_DB_URL', 'sqlite:///staging_tabc_prospects.db'),
        echo=False
    ),
    cache=CacheConfig(
        enabled=True,
        api_cache_ttl=600
    ),
    analysis=AnalysisConfig(
        default_venue_type=os.getenv('TABC_DEFAULT_VENUE_TYPE', 'casual_dining')
    )
)
