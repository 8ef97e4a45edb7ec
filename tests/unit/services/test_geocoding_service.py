"""
Unit tests for the geocoding client and service factory
"""

import pytest
import requests
from unittest.mock import Mock, patch

from services.geocoding_client import GoogleGeocodingClient, GeocodingRequest, GeocodingResult
from services.geocoding_service import (
    GeocodingService,
    GeocodingConfigurationError,
    create_geocoding_service,
)


def _response(payload, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def _ok_payload(types=('street_address',), lat=39.7817, lng=-89.6501):
    return {
        'status': 'OK',
        'results': [{
            'formatted_address': '123 Main St, Springfield, IL 62701, USA',
            'geometry': {'location': {'lat': lat, 'lng': lng}},
            'place_id': 'place-123',
            'types': list(types),
        }]
    }


class TestGoogleGeocodingClient:
    """Test suite for Google geocoding API calls"""

    @pytest.fixture
    def client(self):
        return GoogleGeocodingClient(api_key='test-key')

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            GoogleGeocodingClient(api_key='')

    def test_build_full_address_skips_blank_parts(self):
        request = GeocodingRequest(address='123 Main St', city='Springfield', state=None, zip_code='62701',
                                   country='US')
        assert GoogleGeocodingClient.build_full_address(request) == '123 Main St, Springfield, 62701, US'

    @pytest.mark.parametrize('lat,lng,valid', [
        (0, 0, True),
        (90, 180, True),
        (-90.0, -180.0, True),
        (90.1, 0, False),
        (0, -180.5, False),
        ('abc', 0, False),
        (None, 0, False),
        (float('nan'), 0, False),
    ])
    def test_validate_coordinates(self, lat, lng, valid):
        assert GoogleGeocodingClient.validate_coordinates(lat, lng) is valid

    @pytest.mark.parametrize('types,expected', [
        (['premise'], 'high'),
        (['subpremise', 'route'], 'high'),
        (['route'], 'medium'),
        (['neighborhood', 'political'], 'medium'),
        (['locality', 'political'], 'low'),
        ([], 'low'),
    ])
    def test_determine_confidence(self, types, expected):
        assert GoogleGeocodingClient.determine_confidence(types) == expected

    @patch('services.geocoding_client.requests.get')
    def test_geocode_success(self, mock_get, client):
        mock_get.return_value = _response(_ok_payload())

        result = client.geocode(GeocodingRequest(address='123 Main St', city='Springfield', state='IL',
                                                 zip_code='62701', country='US'))

        assert result == GeocodingResult(
            lat=39.7817,
            lng=-89.6501,
            formatted_address='123 Main St, Springfield, IL 62701, USA',
            confidence='high',
            place_id='place-123',
        )
        params = mock_get.call_args.kwargs['params']
        assert params['address'] == '123 Main St, Springfield, IL, 62701, US'
        assert params['key'] == 'test-key'
        assert mock_get.call_args.kwargs['timeout'] == (5, 15)

    @patch('services.geocoding_client.requests.get')
    def test_geocode_zero_results(self, mock_get, client):
        mock_get.return_value = _response({'status': 'ZERO_RESULTS', 'results': []})
        assert client.geocode(GeocodingRequest(address='Nowhere')) is None

    @patch('services.geocoding_client.requests.get')
    def test_geocode_timeout_returns_none(self, mock_get, client):
        mock_get.side_effect = requests.exceptions.Timeout('slow')
        assert client.geocode(GeocodingRequest(address='123 Main St')) is None

    @patch('services.geocoding_client.requests.get')
    def test_geocode_http_error_returns_none(self, mock_get, client):
        response = _response({}, status_code=500)
        response.raise_for_status.side_effect = requests.exceptions.HTTPError('500')
        mock_get.return_value = response

        assert client.geocode(GeocodingRequest(address='123 Main St')) is None

    @patch('services.geocoding_client.requests.get')
    def test_geocode_rejects_out_of_range_coordinates(self, mock_get, client):
        mock_get.return_value = _response(_ok_payload(lat=123.0))
        assert client.geocode(GeocodingRequest(address='123 Main St')) is None

    @patch('services.geocoding_client.requests.get')
    def test_reverse_geocode_echoes_input(self, mock_get, client):
        mock_get.return_value = _response(_ok_payload(types=['route'], lat=1.0, lng=2.0))

        result = client.reverse_geocode(39.78, -89.65)

        assert result.lat == 39.78
        assert result.lng == -89.65
        assert result.confidence == 'medium'
        assert mock_get.call_args.kwargs['params']['latlng'] == '39.78,-89.65'

    @patch('services.geocoding_client.requests.get')
    def test_reverse_geocode_invalid_input_skips_request(self, mock_get, client):
        assert client.reverse_geocode(100, 0) is None
        mock_get.assert_not_called()


class TestGeocodingServiceFactory:

    def test_google_provider(self):
        service = create_geocoding_service('google', 'test-key')
        assert isinstance(service, GeocodingService)
        assert isinstance(service.client, GoogleGeocodingClient)

    def test_provider_name_case_insensitive(self):
        assert isinstance(create_geocoding_service('GOOGLE', 'test-key').client, GoogleGeocodingClient)

    def test_google_without_key(self):
        with pytest.raises(GeocodingConfigurationError, match='API key is required'):
            create_geocoding_service('google', None)

    @pytest.mark.parametrize('provider', ['mapbox', 'nominatim'])
    def test_unimplemented_providers(self, provider):
        with pytest.raises(GeocodingConfigurationError, match='not yet implemented'):
            create_geocoding_service(provider, 'key')

    def test_unknown_provider(self):
        with pytest.raises(GeocodingConfigurationError, match='Unsupported geocoding provider: here'):
            create_geocoding_service('here', 'key')


class TestGeocodingService:

    def test_geocode_property_builds_us_request(self):
        client = Mock()
        client.geocode.return_value = None
        service = GeocodingService(client)

        service.geocode_property('123 Main St', 'Springfield', 'IL', 62701)

        request = client.geocode.call_args[0][0]
        assert request == GeocodingRequest(address='123 Main St', city='Springfield', state='IL',
                                           zip_code='62701', country='US')

    def test_reverse_geocode_delegates(self):
        client = Mock()
        service = GeocodingService(client)

        assert service.reverse_geocode(1.0, 2.0) is client.reverse_geocode.return_value
        client.reverse_geocode.assert_called_once_with(1.0, 2.0)
