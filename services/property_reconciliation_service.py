"""
PropertyReconciliationService - decides whether an incoming property is one
we already store (merge) or a new one (create)

Matching order:
1. Exact (street_address, city, zip_code[, state]) match, confidence 1.0
2. Fuzzy street match among properties in the same city/zip[/state],
   accepted only strictly above the match floor

Only matches at or above the merge confidence are merged. Weaker fuzzy
matches are reported but a new property is still created.
"""

import re
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from crm_database import Property
from repositories.property_repository import PropertyRepository
from repositories.owner_repository import OwnerRepository
from services.common.field_merge import merge_fields
from services.common.normalization import token_overlap
from services.enums import ReconciliationAction

logger = logging.getLogger(__name__)

ADDRESS_MATCH_FLOOR = 0.7
MERGE_CONFIDENCE = 0.95

FINANCIAL_FIELDS = [
    'net_operating_income',
    'price',
    'return_on_investment',
    'number_of_units',
    'square_feet',
]

# Applied in order after punctuation is stripped
STREET_SUFFIXES = [
    (re.compile(r'\b(?:street|st)\b'), 'st'),
    (re.compile(r'\b(?:avenue|ave)\b'), 'ave'),
    (re.compile(r'\b(?:road|rd)\b'), 'rd'),
    (re.compile(r'\b(?:drive|dr)\b'), 'dr'),
    (re.compile(r'\b(?:lane|ln)\b'), 'ln'),
    (re.compile(r'\b(?:boulevard|blvd)\b'), 'blvd'),
    (re.compile(r'\b(?:court|ct)\b'), 'ct'),
    (re.compile(r'\b(?:place|pl)\b'), 'pl'),
    (re.compile(r'\b(?:circle|cir)\b'), 'cir'),
    (re.compile(r'\bway\b'), 'way'),
    (re.compile(r'\b(?:terrace|ter)\b'), 'ter'),
]

HOUSE_NUMBER = re.compile(r'^\d+$')


@dataclass
class PropertyMatch:
    property: Property
    confidence: float
    match_reason: str


@dataclass
class PropertyProcessResult:
    property: Property
    action: str
    match: Optional[PropertyMatch] = None


class PropertyReconciliationService:
    """Address normalization, fuzzy matching and create-vs-merge for properties"""

    def __init__(self,
                 property_repository: PropertyRepository,
                 owner_repository: OwnerRepository,
                 match_floor: float = ADDRESS_MATCH_FLOOR,
                 merge_confidence: float = MERGE_CONFIDENCE):
        """
        Initialize with repository dependencies and matching thresholds.

        Args:
            property_repository: Repository for property lookups and writes
            owner_repository: Repository used to load owners being connected
            match_floor: Fuzzy scores must be strictly above this to count
            merge_confidence: Matches at or above this are merged
        """
        self.property_repository = property_repository
        self.owner_repository = owner_repository
        self.match_floor = match_floor
        self.merge_confidence = merge_confidence

    @staticmethod
    def normalize_address(address: Optional[str]) -> str:
        """
        Canonical form of a street line.

        Lowercases, trims, collapses whitespace, drops periods and commas,
        then abbreviates street suffixes ("123 Main Street." -> "123 main st").
        Idempotent.
        """
        if not address:
            return ''
        normalized = re.sub(r'\s+', ' ', address.lower().strip())
        normalized = re.sub(r'[.,]', '', normalized)
        for pattern, replacement in STREET_SUFFIXES:
            normalized = pattern.sub(replacement, normalized)
        return re.sub(r'\s+', ' ', normalized).strip()

    def calculate_address_similarity(self, address1: Optional[str], address2: Optional[str]) -> float:
        """
        Score two street lines between 0 and 1.

        The word overlap of the normalized forms is averaged with a house
        number score (1 when equal, 0.5 when different) whenever both lines
        contain a number.
        """
        normalized1 = self.normalize_address(address1)
        normalized2 = self.normalize_address(address2)

        if normalized1 == normalized2:
            return 1.0
        if not normalized1 or not normalized2:
            return 0.0

        words1 = normalized1.split(' ')
        words2 = normalized2.split(' ')
        word_similarity = token_overlap(words1, words2)

        number1 = next((word for word in words1 if HOUSE_NUMBER.match(word)), None)
        number2 = next((word for word in words2 if HOUSE_NUMBER.match(word)), None)

        if number1 is not None and number2 is not None:
            number_similarity = 1.0 if number1 == number2 else 0.5
            return (word_similarity + number_similarity) / 2

        return word_similarity

    def find_matching_property(self,
                               street_address: str,
                               city: str,
                               zip_code: int,
                               state: Optional[str] = None) -> Optional[PropertyMatch]:
        """
        Find the stored property an incoming address refers to.

        Returns:
            PropertyMatch for an exact or fuzzy hit, None otherwise
        """
        exact = self.property_repository.find_exact_address(street_address, city, zip_code, state)
        if exact:
            return PropertyMatch(property=exact, confidence=1.0, match_reason='Exact address match')

        best_match = None
        best_score = 0.0
        for candidate in self.property_repository.find_by_location(city, zip_code, state):
            score = self.calculate_address_similarity(street_address, candidate.street_address)
            if score > self.match_floor and score > best_score:
                best_match = candidate
                best_score = score

        if best_match is None:
            return None

        return PropertyMatch(
            property=best_match,
            confidence=best_score,
            match_reason=f'Fuzzy address match ({round(best_score * 100)}% similarity)'
        )

    def merge_property_data(self, existing: Property, new_data: Dict[str, Any]) -> Property:
        """
        Fill gaps on a stored property from incoming data.

        parcel_id is only set when missing; financial fields are replaced by
        any non-zero incoming value. Nothing is written when nothing changes.
        """
        parcel = merge_fields(existing, new_data, ['parcel_id'])
        financials = merge_fields(existing, new_data, FINANCIAL_FIELDS, overwrite=True)
        patch = {**parcel.patch, **financials.patch}

        if not patch:
            return existing

        logger.info(f"Merging property {existing.id}: updating {sorted(patch)}")
        return self.property_repository.update(existing, **patch)

    def create_new_property(self, data: Dict[str, Any], owner_id: Optional[int]) -> Property:
        """Insert a property (financial fields default to 0) and connect the owner"""
        values = {
            'street_address': data['street_address'],
            'city': data['city'],
            'zip_code': data['zip_code'],
            'state': data.get('state'),
            'parcel_id': data.get('parcel_id'),
        }
        for name in FINANCIAL_FIELDS:
            values[name] = data.get(name) or 0

        new_property = self.property_repository.create(**values)
        self._connect_owner(new_property, owner_id)
        logger.info(f"Created property {new_property.id} at {new_property.street_address}, {new_property.city}")
        return new_property

    def process_property(self, data: Dict[str, Any], owner_id: Optional[int]) -> PropertyProcessResult:
        """
        Reconcile one incoming property against stored ones.

        Args:
            data: street_address, city, zip_code, state, parcel_id and financial fields
            owner_id: Owner to connect to the created or merged property

        Returns:
            PropertyProcessResult with action "created" or "merged"
        """
        match = self.find_matching_property(
            data['street_address'],
            data['city'],
            data['zip_code'],
            data.get('state')
        )

        if match and match.confidence >= self.merge_confidence:
            merged = self.merge_property_data(match.property, data)
            self._connect_owner(merged, owner_id)
            return PropertyProcessResult(property=merged, action=ReconciliationAction.MERGED.value, match=match)

        if match:
            logger.info(
                f"Ignoring {match.match_reason.lower()} for {data['street_address']} "
                f"(below merge confidence {self.merge_confidence})"
            )

        created = self.create_new_property(data, owner_id)
        return PropertyProcessResult(property=created, action=ReconciliationAction.CREATED.value, match=match)

    def _connect_owner(self, property_instance: Property, owner_id: Optional[int]) -> None:
        if owner_id is None:
            return
        owner = self.owner_repository.get_by_id(owner_id)
        if owner is None:
            logger.warning(f"Owner {owner_id} not found; property {property_instance.id} left unconnected")
            return
        self.property_repository.add_owner(property_instance, owner)
