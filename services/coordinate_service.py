"""
CoordinateService - stores property coordinates, geocoding on demand
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from crm_database import Coordinate, Property
from repositories.coordinate_repository import CoordinateRepository
from services.enums import CoordinateConfidence
from services.geocoding_service import GeocodingService

logger = logging.getLogger(__name__)

REQUEST_DELAY_SECONDS = 0.1


@dataclass
class BatchGeocodeOutcome:
    success: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)


class CoordinateService:
    """Get-or-geocode coordinate management for properties"""

    def __init__(self,
                 coordinate_repository: CoordinateRepository,
                 geocoding_service: Optional[GeocodingService],
                 request_delay: float = REQUEST_DELAY_SECONDS):
        """
        Args:
            coordinate_repository: Repository for stored coordinates
            geocoding_service: Geocoder, or None when geocoding is disabled
            request_delay: Seconds to wait between provider calls in a batch
        """
        self.coordinate_repository = coordinate_repository
        self.geocoding_service = geocoding_service
        self.request_delay = request_delay

    def get_or_create_coordinates(self,
                                  property_id: int,
                                  street_address: str,
                                  city: str,
                                  state: Optional[str] = None,
                                  zip_code: Optional[str] = None) -> Optional[Coordinate]:
        """
        Return the stored coordinate for a property, geocoding it first if needed.

        Returns:
            Coordinate, or None when the address could not be geocoded
        """
        existing = self.coordinate_repository.find_by_property_id(property_id)
        if existing:
            return existing

        if self.geocoding_service is None:
            logger.warning(f"Geocoding disabled; no coordinates for property {property_id}")
            return None

        result = self.geocoding_service.geocode_property(street_address, city, state, zip_code)
        if not result:
            logger.warning(f"Failed to geocode address: {street_address}, {city}, {state} {zip_code}")
            return None

        # A failed insert must not undo coordinates saved earlier in the batch
        try:
            with self.coordinate_repository.savepoint():
                return self.coordinate_repository.create(
                    property_id=property_id,
                    latitude=result.lat,
                    longitude=result.lng,
                    confidence=result.confidence,
                    place_id=result.place_id,
                    formatted_address=result.formatted_address,
                )
        except SQLAlchemyError as e:
            logger.error(f"Error saving coordinates for property {property_id}: {e}")
            return None

    def update_coordinates(self,
                           property_id: int,
                           latitude: float,
                           longitude: float,
                           confidence: str = CoordinateConfidence.MANUAL.value,
                           place_id: Optional[str] = None) -> Optional[Coordinate]:
        """Set a property's coordinates by hand, creating the row if needed"""
        try:
            with self.coordinate_repository.savepoint():
                return self.coordinate_repository.upsert(
                    property_id,
                    latitude=latitude,
                    longitude=longitude,
                    confidence=confidence,
                    place_id=place_id,
                )
        except SQLAlchemyError as e:
            logger.error(f"Error updating coordinates for property {property_id}: {e}")
            return None

    def get_coordinates_for_properties(self, property_ids: Iterable[int]) -> Dict[int, Coordinate]:
        return self.coordinate_repository.find_by_property_ids(list(property_ids))

    def delete_coordinates(self, property_id: int) -> bool:
        try:
            with self.coordinate_repository.savepoint():
                return self.coordinate_repository.delete_by_property_id(property_id)
        except SQLAlchemyError as e:
            logger.error(f"Error deleting coordinates for property {property_id}: {e}")
            return False

    def batch_geocode_properties(self, properties: Iterable[Property]) -> BatchGeocodeOutcome:
        """
        Geocode properties that have no coordinates yet.

        Properties that already have coordinates are skipped without being
        counted. Provider calls are spaced by request_delay.

        Args:
            properties: Objects with id, street_address, city, state and zip_code

        Returns:
            BatchGeocodeOutcome with success/failed counts and error messages
        """
        outcome = BatchGeocodeOutcome()

        for prop in properties:
            try:
                if self.coordinate_repository.find_by_property_id(prop.id):
                    continue

                coordinate = self.get_or_create_coordinates(
                    prop.id,
                    prop.street_address,
                    prop.city,
                    prop.state,
                    str(prop.zip_code) if prop.zip_code is not None else None
                )
                if coordinate:
                    outcome.success += 1
                else:
                    outcome.failed += 1
                    outcome.errors.append(f"Failed to geocode: {prop.street_address}, {prop.city}")

                time.sleep(self.request_delay)
            except Exception as e:
                logger.error(f"Error geocoding property {prop.id}: {e}")
                outcome.failed += 1
                outcome.errors.append(f"Error geocoding {prop.street_address}: {e}")

        return outcome
