"""OwnerRepository - Repository pattern implementation for Owner entity

Provides the identity lookups the deduplication pipeline relies on:
exact name lookups and phone-number lookups through owner contacts.
"""

from typing import List, Optional
from sqlalchemy import or_, and_
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import SQLAlchemyError

from crm_database import Owner, Contact, Property
from repositories.base_repository import BaseRepository
import logging

logger = logging.getLogger(__name__)


class OwnerRepository(BaseRepository[Owner]):
    """Repository for Owner entity operations"""

    def __init__(self, session: Session):
        """Initialize OwnerRepository with database session

        Args:
            session: SQLAlchemy database session
        """
        super().__init__(session, Owner)

    def search(self, query: str, fields: Optional[List[str]] = None) -> List[Owner]:
        """Search owners by name fragments

        Args:
            query: Text to look for
            fields: Owner columns to search (defaults to the name columns)

        Returns:
            List of matching owners
        """
        if not query:
            return []

        fields = fields or ['first_name', 'last_name', 'full_name', 'llc_contact']
        conditions = [
            getattr(Owner, field).ilike(f'%{query}%')
            for field in fields if hasattr(Owner, field)
        ]
        if not conditions:
            return []

        return self.session.query(Owner).filter(or_(*conditions)).all()

    def find_by_name(self,
                     full_name: Optional[str],
                     first_name: Optional[str],
                     last_name: Optional[str]) -> List[Owner]:
        """Find owners whose full name matches, or whose first and last names both match

        Contacts are loaded eagerly since callers compare against them.

        Args:
            full_name: Full name to match exactly (skipped when blank)
            first_name: First name to match together with last_name
            last_name: Last name to match together with first_name

        Returns:
            List of candidate owners
        """
        conditions = []
        if full_name:
            conditions.append(Owner.full_name == full_name)
        if first_name is not None and last_name is not None:
            conditions.append(and_(Owner.first_name == first_name, Owner.last_name == last_name))

        if not conditions:
            return []

        try:
            return (
                self.session.query(Owner)
                .options(selectinload(Owner.contacts))
                .filter(or_(*conditions))
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error finding owners by name {full_name!r}: {e}")
            return []

    def find_by_contact_phone(self, phone_fragment: str) -> List[Owner]:
        """Find owners with any contact whose phone contains the given digits

        Args:
            phone_fragment: Normalized phone digits

        Returns:
            List of owners, each at most once
        """
        if not phone_fragment:
            return []

        try:
            return (
                self.session.query(Owner)
                .join(Contact, Contact.owner_id == Owner.id)
                .filter(Contact.phone.contains(phone_fragment))
                .options(selectinload(Owner.contacts))
                .distinct()
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error finding owners by phone {phone_fragment}: {e}")
            return []

    def get_with_properties(self, owner_id: int) -> Optional[Owner]:
        """Get an owner with contacts and properties loaded

        Args:
            owner_id: Owner ID

        Returns:
            Owner or None if not found
        """
        try:
            return (
                self.session.query(Owner)
                .options(
                    selectinload(Owner.contacts),
                    selectinload(Owner.properties).selectinload(Property.coordinate)
                )
                .filter(Owner.id == owner_id)
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error loading owner {owner_id} with properties: {e}")
            return None
