"""
BatchGeocodingService - backfills coordinates for properties that lack them
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from crm_database import Property
from repositories.property_repository import PropertyRepository
from repositories.coordinate_repository import CoordinateRepository
from services.coordinate_service import CoordinateService

logger = logging.getLogger(__name__)


@dataclass
class BatchGeocodingResult:
    total_properties: int = 0
    properties_with_coordinates: int = 0
    properties_without_coordinates: int = 0
    geocoded_successfully: int = 0
    geocoding_failed: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalProperties': self.total_properties,
            'propertiesWithCoordinates': self.properties_with_coordinates,
            'propertiesWithoutCoordinates': self.properties_without_coordinates,
            'geocodedSuccessfully': self.geocoded_successfully,
            'geocodingFailed': self.geocoding_failed,
            'errors': list(self.errors),
        }


@dataclass
class PropertyGeocodeResult:
    success: bool
    error: Optional[str] = None


class BatchGeocodingService:
    """Coordinate coverage statistics and batched backfill"""

    def __init__(self,
                 property_repository: PropertyRepository,
                 coordinate_repository: CoordinateRepository,
                 coordinate_service: CoordinateService):
        self.property_repository = property_repository
        self.coordinate_repository = coordinate_repository
        self.coordinate_service = coordinate_service

    def get_geocoding_stats(self) -> BatchGeocodingResult:
        """Count properties with and without stored coordinates"""
        total = self.property_repository.count()
        with_coordinates = self.coordinate_repository.count()
        return BatchGeocodingResult(
            total_properties=total,
            properties_with_coordinates=with_coordinates,
            properties_without_coordinates=total - with_coordinates,
        )

    def batch_geocode_all_properties(self,
                                     batch_size: int = 10,
                                     delay_between_batches: float = 1.0) -> BatchGeocodingResult:
        """
        Geocode every property without coordinates, batch by batch.

        Each batch is committed before the next one starts, so an interrupted
        run keeps the coordinates it already found.

        Args:
            batch_size: Properties per batch
            delay_between_batches: Seconds to wait between batches

        Returns:
            BatchGeocodingResult with counts taken before the run plus outcomes
        """
        batch_size = max(1, int(batch_size))
        pending = self.property_repository.find_without_coordinates()

        result = BatchGeocodingResult(
            total_properties=self.property_repository.count(),
            properties_with_coordinates=self.coordinate_repository.count(),
            properties_without_coordinates=len(pending),
        )
        if not pending:
            return result

        total_batches = (len(pending) + batch_size - 1) // batch_size
        for start in range(0, len(pending), batch_size):
            batch = pending[start:start + batch_size]
            logger.info(f"Processing geocoding batch {start // batch_size + 1}/{total_batches}")

            outcome = self.coordinate_service.batch_geocode_properties(batch)
            self.coordinate_repository.commit()

            result.geocoded_successfully += outcome.success
            result.geocoding_failed += outcome.failed
            result.errors.extend(outcome.errors)

            if start + batch_size < len(pending):
                time.sleep(delay_between_batches)

        logger.info(
            f"Batch geocoding finished: {result.geocoded_successfully} geocoded, "
            f"{result.geocoding_failed} failed"
        )
        return result

    def geocode_property(self, property_id: int) -> PropertyGeocodeResult:
        """Geocode one property by id"""
        prop = self.property_repository.get_by_id(property_id)
        if prop is None:
            return PropertyGeocodeResult(success=False, error='Property not found')

        coordinate = self.coordinate_service.get_or_create_coordinates(
            prop.id,
            prop.street_address,
            prop.city,
            prop.state,
            str(prop.zip_code)
        )
        if coordinate is None:
            return PropertyGeocodeResult(success=False, error='Failed to geocode property')

        self.coordinate_repository.commit()
        return PropertyGeocodeResult(success=True)

    def get_properties_needing_geocoding(self, limit: int = 100) -> List[Property]:
        return self.property_repository.find_without_coordinates(limit=limit)
