"""
SQLAlchemy models for saved prospects and their notes
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
from typing import Dict, Any

Base = declarative_base()

class Prospect(Base):
    """An establishment a user chose to follow up on"""
    __tablename__ = "prospects"

    id = Column(Integer, primary_key=True, index=True)
    location_number = Column(String, unique=True, nullable=False, index=True)
    location_name = Column(String)
    taxpayer_name = Column(String)
    address = Column(String)
    city = Column(String)

    created_at = Column(DateTime, default=func.now())

    notes = relationship("Note", back_populates="prospect")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'location_number': self.location_number,
            'location_name': self.location_name,
            'taxpayer_name': self.taxpayer_name,
            'address': self.address,
            'city': self.city,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

class Note(Base):
    """Free-text note attached to a prospect; append-only"""
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    location_number = Column(String, ForeignKey("prospects.location_number"), nullable=False, index=True)
    note_text = Column(Text, nullable=False)
    created_at = Column(DateTime, default=func.now())

    prospect = relationship("Prospect", back_populates="notes")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'id': self.id,
            'location_number': self.location_number,
            'note_text': self.note_text,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

# Notes are read newest-first per prospect
Index('ix_note_location_created', Note.location_number, Note.created_at)
