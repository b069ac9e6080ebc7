"""
Data storage module
"""

from .database import DatabaseManager
from .models import Base, Prospect, Note

__all__ = ['DatabaseManager', 'Base', 'Prospect', 'Note']
