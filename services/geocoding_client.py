"""
Geocoding clients

Handles direct API communication with geocoding providers:
- Address and reverse lookups
- Confidence grading of provider results
- Coordinate sanity checks

Clients never raise for provider or network trouble; they log and return None.
"""

import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from logging_config import performance_logger
from services.enums import CoordinateConfidence

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE_TYPES = {'street_address', 'premise', 'subpremise'}
MEDIUM_CONFIDENCE_TYPES = {'route', 'intersection', 'neighborhood'}


@dataclass
class GeocodingRequest:
    address: str
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


@dataclass
class GeocodingResult:
    lat: float
    lng: float
    formatted_address: str
    confidence: str
    place_id: Optional[str] = None


class BaseGeocodingClient(ABC):
    """Shared address building and validation for geocoding providers"""

    @abstractmethod
    def geocode(self, request: GeocodingRequest) -> Optional[GeocodingResult]:
        pass

    @abstractmethod
    def reverse_geocode(self, lat: float, lng: float) -> Optional[GeocodingResult]:
        pass

    @staticmethod
    def build_full_address(request: GeocodingRequest) -> str:
        """Join the populated address parts with ', '"""
        parts = [request.address]
        for part in (request.city, request.state, request.zip_code, request.country):
            if part:
                parts.append(str(part))
        return ', '.join(parts)

    @staticmethod
    def validate_coordinates(lat: Any, lng: Any) -> bool:
        try:
            lat = float(lat)
            lng = float(lng)
        except (TypeError, ValueError):
            return False
        if math.isnan(lat) or math.isnan(lng):
            return False
        return -90 <= lat <= 90 and -180 <= lng <= 180


class GoogleGeocodingClient(BaseGeocodingClient):
    """Client for the Google Maps Geocoding API"""

    def __init__(self, api_key: str, base_url: str = "https://maps.googleapis.com/maps/api/geocode/json"):
        """
        Initialize Google geocoding client.

        Args:
            api_key: Google Maps API key
            base_url: Geocoding JSON endpoint
        """
        if not api_key:
            raise ValueError("Google Maps API key not configured")
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = (5, 15)  # Connection timeout, read timeout

    def _make_request(self, params: Dict[str, str]) -> Optional[Dict[str, Any]]:
        """
        Call the geocoding endpoint.

        Returns:
            Decoded JSON body, or None on network/HTTP errors
        """
        params = dict(params, key=self.api_key)
        started = time.monotonic()
        status_code = None
        try:
            response = requests.get(self.base_url, params=params, timeout=self.timeout)
            status_code = response.status_code
            response.raise_for_status()
            return response.json()
        except requests.exceptions.Timeout as e:
            logger.error(f"Geocoding request timed out: {e}")
            return None
        except requests.exceptions.RequestException as e:
            logger.error(f"Geocoding request failed: {e}")
            return None
        except ValueError as e:
            logger.error(f"Geocoding response was not valid JSON: {e}")
            return None
        finally:
            performance_logger.log_api_call(
                service='google_geocoding',
                endpoint='geocode/json',
                duration_ms=round((time.monotonic() - started) * 1000, 2),
                status_code=status_code
            )

    @staticmethod
    def determine_confidence(types: List[str]) -> str:
        """Grade a result by the most specific place type Google reports"""
        types = set(types or [])
        if types & HIGH_CONFIDENCE_TYPES:
            return CoordinateConfidence.HIGH.value
        if types & MEDIUM_CONFIDENCE_TYPES:
            return CoordinateConfidence.MEDIUM.value
        return CoordinateConfidence.LOW.value

    @staticmethod
    def _first_result(data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if not data or data.get('status') != 'OK' or not data.get('results'):
            return None
        return data['results'][0]

    def geocode(self, request: GeocodingRequest) -> Optional[GeocodingResult]:
        """
        Look up coordinates for an address.

        Args:
            request: Address parts to geocode

        Returns:
            GeocodingResult or None if nothing usable came back
        """
        full_address = self.build_full_address(request)
        data = self._make_request({'address': full_address})

        result = self._first_result(data)
        if result is None:
            status = data.get('status') if data else None
            logger.warning(f"Geocoding failed for address: {full_address}. Status: {status}")
            return None

        location = result.get('geometry', {}).get('location', {})
        lat, lng = location.get('lat'), location.get('lng')
        if not self.validate_coordinates(lat, lng):
            logger.warning(f"Invalid coordinates returned for address: {full_address}")
            return None

        return GeocodingResult(
            lat=float(lat),
            lng=float(lng),
            formatted_address=result.get('formatted_address', ''),
            confidence=self.determine_confidence(result.get('types')),
            place_id=result.get('place_id'),
        )

    def reverse_geocode(self, lat: float, lng: float) -> Optional[GeocodingResult]:
        """
        Look up the address at a coordinate pair.

        The returned coordinates are the ones passed in.
        """
        if not self.validate_coordinates(lat, lng):
            logger.warning(f"Invalid coordinates for reverse geocoding: {lat}, {lng}")
            return None

        data = self._make_request({'latlng': f'{lat},{lng}'})
        result = self._first_result(data)
        if result is None:
            status = data.get('status') if data else None
            logger.warning(f"Reverse geocoding failed for coordinates: {lat}, {lng}. Status: {status}")
            return None

        return GeocodingResult(
            lat=float(lat),
            lng=float(lng),
            formatted_address=result.get('formatted_address', ''),
            confidence=self.determine_confidence(result.get('types')),
            place_id=result.get('place_id'),
        )
