"""
CoordinateRepository - Data access for cached geocoding results
"""

from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from crm_database import Coordinate
from repositories.base_repository import BaseRepository
import logging

logger = logging.getLogger(__name__)


class CoordinateRepository(BaseRepository[Coordinate]):
    """Repository for Coordinate data access (one row per property)"""

    def __init__(self, session: Session):
        super().__init__(session, Coordinate)

    def search(self, query: str, fields: Optional[List[str]] = None) -> List[Coordinate]:
        """Search coordinates by the provider's formatted address"""
        if not query:
            return []
        return self.session.query(Coordinate).filter(
            Coordinate.formatted_address.ilike(f'%{query}%')
        ).all()

    def find_by_property_id(self, property_id: int) -> Optional[Coordinate]:
        """Get the coordinate cached for a property, if any"""
        return self.find_one_by(property_id=property_id)

    def find_by_property_ids(self, property_ids: List[int]) -> Dict[int, Coordinate]:
        """
        Get coordinates for several properties.

        Returns:
            Mapping of property id to Coordinate; properties without one are absent
        """
        if not property_ids:
            return {}
        return {
            coordinate.property_id: coordinate
            for coordinate in self.find_by(property_id=list(property_ids))
        }

    def upsert(self, property_id: int, **fields) -> Coordinate:
        """
        Update the property's coordinate or create it when missing.

        Raises:
            SQLAlchemyError: If database operation fails
        """
        existing = self.find_by_property_id(property_id)
        if existing:
            return self.update(existing, **fields)
        return self.create(property_id=property_id, **fields)

    def delete_by_property_id(self, property_id: int) -> bool:
        """Delete the coordinate of a property; False when there was none"""
        try:
            deleted = (
                self.session.query(Coordinate)
                .filter(Coordinate.property_id == property_id)
                .delete(synchronize_session=False)
            )
            self.session.flush()
            return deleted > 0
        except SQLAlchemyError as e:
            logger.error(f"Error deleting coordinates for property {property_id}: {e}")
            raise
