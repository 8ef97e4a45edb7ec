"""
GeocodingService - provider-neutral geocoding used by coordinate management
"""

import logging
from typing import Optional

from services.geocoding_client import (
    BaseGeocodingClient,
    GeocodingRequest,
    GeocodingResult,
    GoogleGeocodingClient,
)

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ('google', 'mapbox', 'nominatim')


class GeocodingConfigurationError(Exception):
    """Raised when no usable geocoding provider can be built"""
    pass


class GeocodingService:
    """Thin facade over a geocoding client"""

    def __init__(self, client: BaseGeocodingClient):
        self.client = client

    def geocode(self, request: GeocodingRequest) -> Optional[GeocodingResult]:
        return self.client.geocode(request)

    def reverse_geocode(self, lat: float, lng: float) -> Optional[GeocodingResult]:
        return self.client.reverse_geocode(lat, lng)

    def geocode_property(self,
                         street_address: str,
                         city: str,
                         state: Optional[str] = None,
                         zip_code: Optional[str] = None) -> Optional[GeocodingResult]:
        """Geocode a property address; properties are always in the US"""
        return self.geocode(GeocodingRequest(
            address=street_address,
            city=city,
            state=state,
            zip_code=str(zip_code) if zip_code is not None else None,
            country='US',
        ))


def create_geocoding_service(provider: str = 'google', api_key: Optional[str] = None) -> GeocodingService:
    """
    Build a GeocodingService for the configured provider.

    Args:
        provider: google, mapbox or nominatim
        api_key: Provider API key

    Raises:
        GeocodingConfigurationError: Missing key, or provider not available
    """
    provider = (provider or 'google').lower()

    if provider == 'google':
        if not api_key:
            raise GeocodingConfigurationError('Google Maps API key is required for geocoding')
        return GeocodingService(GoogleGeocodingClient(api_key))

    # TODO: add Mapbox and Nominatim clients
    if provider == 'mapbox':
        raise GeocodingConfigurationError('Mapbox geocoding not yet implemented')
    if provider == 'nominatim':
        raise GeocodingConfigurationError('Nominatim geocoding not yet implemented')

    raise GeocodingConfigurationError(f'Unsupported geocoding provider: {provider}')
