"""PropertyRepository - Repository pattern implementation for Property entity

Provides the address lookups used by property reconciliation, the paginated
listing used by the property API and the queries batch geocoding needs.
"""

from typing import List, Optional
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from crm_database import Property, Owner, Coordinate
from repositories.base_repository import BaseRepository, PaginationParams, PaginatedResult
import logging

logger = logging.getLogger(__name__)


class PropertyRepository(BaseRepository[Property]):
    """Repository for Property entity operations

    Provides specialized methods for property management including:
    - Exact and candidate address lookups for reconciliation
    - Owner association
    - Search and pagination
    - Coordinate coverage queries
    """

    def __init__(self, session: Session):
        """Initialize PropertyRepository with database session

        Args:
            session: SQLAlchemy database session
        """
        super().__init__(session, Property)

    def _location_query(self, city: str, zip_code: int, state: Optional[str] = None):
        query = self.session.query(Property).filter(
            Property.city == city,
            Property.zip_code == zip_code
        )
        if state:
            query = query.filter(Property.state == state)
        return query

    def find_exact_address(self,
                           street_address: str,
                           city: str,
                           zip_code: int,
                           state: Optional[str] = None) -> Optional[Property]:
        """Find a property whose address tuple matches exactly

        Args:
            street_address: Street line as stored
            city: City name
            zip_code: Numeric zip (-1 for unknown)
            state: Optional state; only compared when given

        Returns:
            Matching Property or None
        """
        try:
            return self._location_query(city, zip_code, state).filter(
                Property.street_address == street_address
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Error finding exact property match for {street_address}: {e}")
            return None

    def find_by_location(self,
                         city: str,
                         zip_code: int,
                         state: Optional[str] = None) -> List[Property]:
        """Find all properties in a city and zip (and state when given)

        These are the fuzzy-match candidates for an incoming address.
        """
        try:
            return self._location_query(city, zip_code, state).all()
        except SQLAlchemyError as e:
            logger.error(f"Error finding properties in {city} {zip_code}: {e}")
            return []

    def add_owner(self, property_instance: Property, owner: Owner) -> Property:
        """Connect an owner to a property (no-op when already connected)

        Raises:
            SQLAlchemyError: If database operation fails
        """
        try:
            if owner not in property_instance.owners:
                property_instance.owners.append(owner)
                self.session.flush()
                logger.debug(f"Connected owner {owner.id} to property {property_instance.id}")
            return property_instance
        except SQLAlchemyError as e:
            logger.error(f"Error connecting owner {owner.id} to property {property_instance.id}: {e}")
            raise

    def add_owners_by_id(self, property_instance: Property, owner_ids: List[int]) -> Property:
        """Connect several owners by id

        Raises:
            ValueError: If an owner does not exist
            SQLAlchemyError: If database operation fails
        """
        for owner_id in owner_ids:
            owner = self.session.get(Owner, owner_id)
            if owner is None:
                raise ValueError(f"Owner not found: {owner_id}")
            self.add_owner(property_instance, owner)
        return property_instance

    def get_with_details(self, property_id: int) -> Optional[Property]:
        """Get a property with owners, owner contacts, coordinate and notes loaded"""
        try:
            return (
                self.session.query(Property)
                .options(
                    selectinload(Property.owners).selectinload(Owner.contacts),
                    selectinload(Property.coordinate),
                    selectinload(Property.notes)
                )
                .filter(Property.id == property_id)
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error loading property {property_id}: {e}")
            return None

    def _search_conditions(self, query: str) -> list:
        pattern = f'%{query}%'
        conditions = [
            Property.street_address.ilike(pattern),
            Property.city.ilike(pattern),
            Property.owners.any(Owner.first_name.ilike(pattern)),
            Property.owners.any(Owner.last_name.ilike(pattern)),
        ]
        if query.strip().isdigit():
            conditions.append(Property.zip_code == int(query.strip()))
        return conditions

    def search(self, query: str, fields: Optional[List[str]] = None) -> List[Property]:
        """Search properties by street, city, owner first/last name or zip

        Args:
            query: Search text; numeric text also matches the zip code
            fields: Ignored, the searchable columns are fixed

        Returns:
            List of matching properties
        """
        if not query:
            return []
        return self.session.query(Property).filter(or_(*self._search_conditions(query))).all()

    def search_paginated(self,
                         pagination: PaginationParams,
                         search: str = '') -> PaginatedResult[Property]:
        """Get a page of properties, newest first, optionally filtered by search text

        Args:
            pagination: Page number and page size
            search: Optional search text (see search())

        Returns:
            PaginatedResult with items and totals
        """
        try:
            query = self.session.query(Property)
            if search:
                query = query.filter(or_(*self._search_conditions(search)))

            total = query.count()
            items = (
                query.options(
                    selectinload(Property.owners).selectinload(Owner.contacts),
                    selectinload(Property.coordinate)
                )
                .order_by(Property.created_at.desc(), Property.id.desc())
                .offset(pagination.offset)
                .limit(pagination.limit)
                .all()
            )

            return PaginatedResult(
                items=items,
                total=total,
                page=pagination.page,
                per_page=pagination.per_page
            )
        except SQLAlchemyError as e:
            logger.error(f"Error getting paginated properties: {e}")
            return PaginatedResult(items=[], total=0, page=pagination.page, per_page=pagination.per_page)

    def find_without_coordinates(self, limit: Optional[int] = None) -> List[Property]:
        """Find properties that have never been geocoded

        Args:
            limit: Optional maximum number of rows

        Returns:
            List of properties lacking a Coordinate row, oldest first
        """
        try:
            query = (
                self.session.query(Property)
                .outerjoin(Coordinate, Coordinate.property_id == Property.id)
                .filter(Coordinate.id.is_(None))
                .order_by(Property.id.asc())
            )
            if limit is not None:
                query = query.limit(limit)
            return query.all()
        except SQLAlchemyError as e:
            logger.error(f"Error finding properties without coordinates: {e}")
            return []
