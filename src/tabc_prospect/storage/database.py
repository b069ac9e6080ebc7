"""
Prospect and note persistence with SQLAlchemy
"""

import logging
from typing import Dict, List, Optional, Any
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import IntegrityError

from ..config import config, mask_database_url
from ..data.records import EstablishmentProfile
from .models import Base, Prospect, Note

logger = logging.getLogger(__name__)

class DatabaseManager:
    """Stores prospects (insert-if-absent) and their notes (append-only)"""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or config.database.url
        self.engine = create_engine(self.database_url, echo=config.database.echo)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine, expire_on_commit=False)
        logger.info(f"Initialized database with URL: {mask_database_url(self.database_url)}")

        self._create_tables()

    def _create_tables(self):
        """Create all database tables"""
        try:
            Base.metadata.create_all(bind=self.engine)
            logger.info("Database tables created successfully")
        except Exception as e:
            logger.error(f"Error creating database tables: {e}")
            raise

    @contextmanager
    def get_session(self):
        """Context manager for database sessions"""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    def save_prospect(self, location_number: str, location_name: str = '', taxpayer_name: str = '',
                      address: str = '', city: str = '') -> bool:
        """
        Save a prospect unless one already exists for the location

        Args:
            location_number: Unique location identifier
            location_name: Business name
            taxpayer_name: Legal entity
            address: Street address
            city: City

        Returns:
            True if a new prospect was created, False if it already existed
        """
        location_number = (location_number or '').strip()
        if not location_number:
            raise ValueError('location_number is required')

        with self.get_session() as session:
            if session.query(Prospect).filter_by(location_number=location_number).first():
                logger.info(f"Prospect {location_number} already saved")
                return False

        try:
            with self.get_session() as session:
                session.add(Prospect(
                    location_number=location_number,
                    location_name=location_name,
                    taxpayer_name=taxpayer_name,
                    address=address,
                    city=city,
                ))
        except IntegrityError:
            # Saved concurrently between the check and the insert
            logger.info(f"Prospect {location_number} already saved")
            return False

        logger.info(f"Saved prospect {location_number}")
        return True

    def save_prospect_profile(self, profile: EstablishmentProfile) -> bool:
        return self.save_prospect(
            location_number=profile.location_number,
            location_name=profile.location_name,
            taxpayer_name=profile.taxpayer_name,
            address=profile.location_address,
            city=profile.location_city,
        )

    def save_note(self, location_number: str, note_text: str) -> Optional[Dict[str, Any]]:
        """
        Append a note to a saved prospect

        Returns:
            The stored note, or None if no prospect exists for the location
        """
        note_text = (note_text or '').strip()
        if not note_text:
            raise ValueError('Note text cannot be empty')

        with self.get_session() as session:
            if not session.query(Prospect).filter_by(location_number=location_number).first():
                logger.warning(f"Cannot add note: prospect {location_number} not saved")
                return None

            note = Note(location_number=location_number, note_text=note_text)
            session.add(note)
            session.flush()
            logger.info(f"Stored note {note.id} for prospect {location_number}")
            return note.to_dict()

    def get_notes(self, location_number: str) -> List[Dict[str, Any]]:
        """Notes for a prospect, newest first"""
        with self.get_session() as session:
            notes = (session.query(Note)
                     .filter_by(location_number=location_number)
                     .order_by(Note.created_at.desc(), Note.id.desc())
                     .all())
            return [note.to_dict() for note in notes]

    def get_prospect_status(self, location_number: str) -> Dict[str, Any]:
        """Whether the location is saved, plus its notes newest first"""
        with self.get_session() as session:
            prospect = session.query(Prospect).filter_by(location_number=location_number).first()
            exists = prospect is not None
            details = prospect.to_dict() if prospect else None

        return {
            'exists': exists,
            'prospect': details,
            'notes': self.get_notes(location_number) if exists else []
        }

    def list_prospects(self) -> List[Dict[str, Any]]:
        with self.get_session() as session:
            return [p.to_dict() for p in session.query(Prospect).order_by(Prospect.created_at.desc(), Prospect.id.desc()).all()]

    def get_stats(self) -> Dict[str, Any]:
        with self.get_session() as session:
            return {
                'total_prospects': session.query(Prospect).count(),
                'total_notes': session.query(Note).count()
            }

    def test_connection(self) -> bool:
        """Test database connection"""
        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
                return True
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            return False
