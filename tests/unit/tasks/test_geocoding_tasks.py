"""
Tests for the geocoding Celery tasks, run inline with a mocked app
"""

import pytest
from unittest.mock import MagicMock

from services.batch_geocoding_service import BatchGeocodingResult, PropertyGeocodeResult
from tasks.geocoding_tasks import batch_geocode_properties_task, geocode_property_task


@pytest.fixture
def mock_app(mocker):
    flask_app = MagicMock()
    mocker.patch('app.create_app', return_value=flask_app)
    return flask_app


@pytest.fixture
def batch_service(mock_app):
    service = MagicMock()
    mock_app.services.get.return_value = service
    return service


class TestBatchGeocodePropertiesTask:

    def test_returns_batch_totals(self, mock_app, batch_service):
        batch_service.batch_geocode_all_properties.return_value = BatchGeocodingResult(
            total_properties=3,
            properties_with_coordinates=1,
            properties_without_coordinates=2,
            geocoded_successfully=1,
            geocoding_failed=1,
            errors=['Failed to geocode: 9 Elm Ct, Springfield'],
        )

        summary = batch_geocode_properties_task.run(batch_size=5, delay_between_batches=0.5)

        mock_app.services.get.assert_called_once_with('batch_geocoding')
        batch_service.batch_geocode_all_properties.assert_called_once_with(
            batch_size=5, delay_between_batches=0.5
        )
        assert summary['geocodedSuccessfully'] == 1
        assert summary['geocodingFailed'] == 1
        assert summary['errors'] == ['Failed to geocode: 9 Elm Ct, Springfield']
        assert 'completedAt' in summary

    def test_retries_on_failure(self, mocker, batch_service):
        batch_service.batch_geocode_all_properties.side_effect = RuntimeError('database unavailable')
        retry = mocker.patch.object(batch_geocode_properties_task, 'retry', side_effect=RuntimeError('retry'))

        with pytest.raises(RuntimeError, match='retry'):
            batch_geocode_properties_task.run()

        assert str(retry.call_args.kwargs['exc']) == 'database unavailable'


class TestGeocodePropertyTask:

    def test_success(self, batch_service):
        batch_service.geocode_property.return_value = PropertyGeocodeResult(success=True)

        assert geocode_property_task.run(7) == {'success': True, 'error': None}
        batch_service.geocode_property.assert_called_once_with(7)

    def test_failure_is_reported(self, batch_service):
        batch_service.geocode_property.return_value = PropertyGeocodeResult(
            success=False, error='Property not found'
        )

        assert geocode_property_task.run(7) == {'success': False, 'error': 'Property not found'}
