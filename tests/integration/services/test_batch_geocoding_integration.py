"""
Integration tests for batch geocoding
Runs the coordinate and batch services against the test database
"""

import pytest
from unittest.mock import Mock

from crm_database import Coordinate
from repositories.coordinate_repository import CoordinateRepository
from repositories.property_repository import PropertyRepository
from services.batch_geocoding_service import BatchGeocodingService
from services.coordinate_service import CoordinateService
from services.geocoding_client import GeocodingResult
from services.geocoding_service import GeocodingService
from tests.conftest import create_test_property


def _result(lat, lng, place_id):
    return GeocodingResult(lat=lat, lng=lng, formatted_address='Springfield, IL',
                           confidence='high', place_id=place_id)


class TestBatchGeocodingIntegration:

    @pytest.fixture
    def properties(self, db_session):
        props = [
            create_test_property(street_address='1 Oak Street'),
            create_test_property(street_address='2 Oak Street'),
            create_test_property(street_address='3 Oak Street'),
        ]
        db_session.add_all(props)
        db_session.flush()
        return props

    @pytest.fixture
    def geocoder(self):
        results = {
            '1 Oak Street': _result(39.1, -89.1, 'place-1'),
            '2 Oak Street': _result(39.2, -89.2, 'place-2'),
            # latitude is NOT NULL, so this insert fails
            '3 Oak Street': _result(None, -89.3, 'place-3'),
        }
        geocoder = Mock(spec=GeocodingService)
        geocoder.geocode_property.side_effect = lambda street, *args: results[street]
        return geocoder

    @pytest.fixture
    def service(self, db_session, geocoder):
        coordinate_repository = CoordinateRepository(db_session)
        coordinate_service = CoordinateService(coordinate_repository, geocoder, request_delay=0)
        return BatchGeocodingService(PropertyRepository(db_session), coordinate_repository, coordinate_service)

    def test_failed_insert_keeps_earlier_coordinates(self, service, db_session, properties):
        result = service.batch_geocode_all_properties(batch_size=10, delay_between_batches=0)

        assert result.geocoded_successfully == 2
        assert result.geocoding_failed == 1
        assert result.errors == ['Failed to geocode: 3 Oak Street, Springfield']
        stored = {c.place_id for c in db_session.query(Coordinate).all()}
        assert stored == {'place-1', 'place-2'}

    def test_successes_match_stored_rows(self, service, db_session, properties):
        result = service.batch_geocode_all_properties(batch_size=1, delay_between_batches=0)

        assert db_session.query(Coordinate).count() == result.geocoded_successfully
        assert service.get_geocoding_stats().properties_without_coordinates == 1
