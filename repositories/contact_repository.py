"""
ContactRepository - Data access layer for owner contacts
"""

from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from crm_database import Contact
from repositories.base_repository import BaseRepository
import logging

logger = logging.getLogger(__name__)


class ContactRepository(BaseRepository[Contact]):
    """Repository for Contact data access"""

    def __init__(self, session: Session):
        super().__init__(session, Contact)

    def search(self, query: str, fields: Optional[List[str]] = None) -> List[Contact]:
        """
        Search contacts by phone, email or notes.

        Args:
            query: Search query string
            fields: Specific fields to search (default: phone, email, notes)

        Returns:
            List of matching contacts
        """
        if not query:
            return []

        fields = fields or ['phone', 'email', 'notes']
        conditions = [
            getattr(Contact, field).ilike(f'%{query}%')
            for field in fields if hasattr(Contact, field)
        ]
        if not conditions:
            return []

        return self.session.query(Contact).filter(or_(*conditions)).all()

    def find_by_owner(self, owner_id: int) -> List[Contact]:
        """
        Get all contacts for an owner, lowest priority number first.

        Args:
            owner_id: Owner ID

        Returns:
            List of contacts ordered by priority
        """
        try:
            return (
                self.session.query(Contact)
                .filter(Contact.owner_id == owner_id)
                .order_by(Contact.priority.asc(), Contact.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting contacts for owner {owner_id}: {e}")
            return []
