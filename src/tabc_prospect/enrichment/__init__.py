"""
Ownership enrichment module
"""

from .ownership import OwnershipEnricher, OwnershipLookupClient, OwnershipReport, parse_ownership_sections

__all__ = ['OwnershipEnricher', 'OwnershipLookupClient', 'OwnershipReport', 'parse_ownership_sections']
