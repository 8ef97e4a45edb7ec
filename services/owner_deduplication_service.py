"""
OwnerDeduplicationService - identifies incoming owners we already know
about and decides between creating a new owner and merging into one

Candidates come from two lookups: exact name matches (scored by token
similarity) and phone matches through existing contacts. Only a match at or
above the merge confidence is merged; everything else creates a new owner.
Merging only ever fills empty fields and adds contacts.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional

from crm_database import Owner
from repositories.owner_repository import OwnerRepository
from repositories.contact_repository import ContactRepository
from services.common.field_merge import merge_fields
from services.common.normalization import normalize_phone, normalize_name, token_overlap
from services.enums import ContactType, ReconciliationAction

logger = logging.getLogger(__name__)

NAME_MATCH_FLOOR = 0.8
PHONE_MATCH_CONFIDENCE = 0.9
MERGE_CONFIDENCE = 0.95

OWNER_MERGE_FIELDS = ['llc_contact', 'street_address', 'city', 'state', 'zip_code']
CONTACT_FIELDS = ['phone', 'email', 'type', 'label', 'priority', 'notes']


class OwnerMergeError(Exception):
    """Raised when the owner selected for a merge no longer exists"""
    pass


@dataclass
class OwnerMatch:
    owner: Owner
    confidence: float
    match_reason: str
    phone_conflict: bool = False
    email_conflict: bool = False


@dataclass
class ConflictResolution:
    action: str  # "create_new" or "merge"
    target_owner_id: Optional[int] = None
    phone_resolution: Optional[str] = None
    email_resolution: Optional[str] = None


@dataclass
class OwnerProcessResult:
    owner: Owner
    action: str
    matches: List[OwnerMatch] = field(default_factory=list)
    contacts_added: int = 0


def _value(source: Any, name: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def _clean_email(email: Optional[str]) -> str:
    return (email or '').strip().lower()


class OwnerDeduplicationService:
    """Name/phone matching and create-vs-merge for owners"""

    def __init__(self,
                 owner_repository: OwnerRepository,
                 contact_repository: ContactRepository,
                 name_match_floor: float = NAME_MATCH_FLOOR,
                 phone_match_confidence: float = PHONE_MATCH_CONFIDENCE,
                 merge_confidence: float = MERGE_CONFIDENCE):
        """
        Initialize with repository dependencies and matching thresholds.

        Args:
            owner_repository: Repository for owner lookups and writes
            contact_repository: Repository for contact lookups and inserts
            name_match_floor: Minimum name similarity for a name candidate
            phone_match_confidence: Confidence assigned to phone matches
            merge_confidence: Matches at or above this are merged
        """
        self.owner_repository = owner_repository
        self.contact_repository = contact_repository
        self.name_match_floor = name_match_floor
        self.phone_match_confidence = phone_match_confidence
        self.merge_confidence = merge_confidence

    normalize_phone = staticmethod(normalize_phone)
    normalize_name = staticmethod(normalize_name)

    def calculate_name_similarity(self, name1: Optional[str], name2: Optional[str]) -> float:
        """
        Token overlap of two normalized names.

        Names are split on single spaces, so the empty tokens left behind by
        stripped punctuation ("john  jane") take part in the comparison.
        """
        normalized1 = self.normalize_name(name1)
        normalized2 = self.normalize_name(name2)

        if normalized1 == normalized2:
            return 1.0
        if not normalized1 or not normalized2:
            return 0.0

        return token_overlap(normalized1.split(' '), normalized2.split(' '))

    def _has_phone_conflict(self, owner: Owner, phone: Optional[str]) -> bool:
        normalized = self.normalize_phone(phone)
        if not normalized:
            return False
        return any(self.normalize_phone(contact.phone) == normalized for contact in owner.contacts)

    @staticmethod
    def _has_email_conflict(owner: Owner, email: Optional[str]) -> bool:
        cleaned = _clean_email(email)
        if not cleaned:
            return False
        return any(_clean_email(contact.email) == cleaned for contact in owner.contacts)

    def find_potential_duplicates(self, owner_data: Mapping[str, Any]) -> List[OwnerMatch]:
        """
        Find stored owners that may be the incoming owner.

        Args:
            owner_data: full_name, first_name, last_name and optional phone/email

        Returns:
            Matches sorted by confidence, highest first
        """
        full_name = owner_data.get('full_name')
        first_name = owner_data.get('first_name')
        last_name = owner_data.get('last_name')
        phone = owner_data.get('phone')
        email = owner_data.get('email')

        incoming_name = full_name or f'{first_name or ""} {last_name or ""}'.strip()
        matches: List[OwnerMatch] = []

        for candidate in self.owner_repository.find_by_name(full_name, first_name, last_name):
            candidate_name = candidate.full_name or f'{candidate.first_name} {candidate.last_name}'.strip()
            similarity = self.calculate_name_similarity(incoming_name, candidate_name)
            if similarity < self.name_match_floor:
                continue
            matches.append(OwnerMatch(
                owner=candidate,
                confidence=similarity,
                match_reason='Name match',
                phone_conflict=self._has_phone_conflict(candidate, phone),
                email_conflict=self._has_email_conflict(candidate, email),
            ))

        normalized_phone = self.normalize_phone(phone)
        if normalized_phone:
            by_id = {match.owner.id: match for match in matches}
            for candidate in self.owner_repository.find_by_contact_phone(normalized_phone):
                existing = by_id.get(candidate.id)
                if existing:
                    existing.confidence = max(existing.confidence, self.phone_match_confidence)
                    existing.match_reason = 'Name and phone match'
                    existing.phone_conflict = True
                    continue
                match = OwnerMatch(
                    owner=candidate,
                    confidence=self.phone_match_confidence,
                    match_reason='Phone number match',
                    phone_conflict=True,
                    email_conflict=self._has_email_conflict(candidate, email),
                )
                matches.append(match)
                by_id[candidate.id] = match

        matches.sort(key=lambda match: match.confidence, reverse=True)
        return matches

    def resolve_phone_conflicts(self,
                                owner_data: Mapping[str, Any],
                                matches: List[OwnerMatch]) -> ConflictResolution:
        """
        Decide between merging into the best match and creating a new owner.

        Conflicting phones and emails are always added as new contacts on merge.
        """
        if not matches:
            return ConflictResolution(action='create_new')

        best = matches[0]
        if best.confidence >= self.merge_confidence:
            return ConflictResolution(
                action='merge',
                target_owner_id=best.owner.id,
                phone_resolution='add_new',
                email_resolution='add_new',
            )

        logger.debug(
            f"Best owner match {best.owner.id} ({best.match_reason}, {best.confidence:.2f}) "
            f"is below merge confidence; creating new owner"
        )
        return ConflictResolution(action='create_new')

    def merge_owner_data(self, existing: Owner, new_data: Mapping[str, Any]) -> Owner:
        """Fill empty owner fields from incoming data; populated fields are never replaced"""
        merge = merge_fields(existing, new_data, OWNER_MERGE_FIELDS)
        if not merge.changed:
            return existing

        logger.info(f"Merging owner {existing.id}: filling {sorted(merge.patch)}")
        return self.owner_repository.update(existing, **merge.patch)

    def add_contacts_to_owner(self, owner_id: int, contacts: Iterable[Any]) -> int:
        """
        Attach contacts to an owner, skipping ones it already has.

        A contact is a duplicate when its normalized phone or its trimmed,
        lowercased email matches an existing contact or an earlier one in the
        same batch. Contacts with neither phone nor email are dropped.

        Returns:
            Number of contacts inserted
        """
        existing = self.contact_repository.find_by_owner(owner_id)
        known_phones = {self.normalize_phone(contact.phone) for contact in existing if contact.phone}
        known_emails = {_clean_email(contact.email) for contact in existing if contact.email}
        known_phones.discard('')
        known_emails.discard('')

        rows = []
        for contact in contacts:
            phone = (_value(contact, 'phone') or '').strip()
            email = (_value(contact, 'email') or '').strip()
            if not phone and not email:
                continue

            normalized_phone = self.normalize_phone(phone) if phone else ''
            cleaned_email = _clean_email(email) if email else ''
            if normalized_phone and normalized_phone in known_phones:
                continue
            if cleaned_email and cleaned_email in known_emails:
                continue

            if normalized_phone:
                known_phones.add(normalized_phone)
            if cleaned_email:
                known_emails.add(cleaned_email)

            row = {name: _value(contact, name) for name in CONTACT_FIELDS}
            row['phone'] = phone or None
            row['email'] = email or None
            row['priority'] = row['priority'] or 1
            row['owner_id'] = owner_id
            rows.append(row)

        created = self.contact_repository.create_many(rows)
        if created:
            logger.info(f"Added {len(created)} contacts to owner {owner_id}")
        return len(created)

    def create_new_owner(self, owner_data: Mapping[str, Any]) -> Owner:
        owner = self.owner_repository.create(
            first_name=owner_data.get('first_name') or '',
            last_name=owner_data.get('last_name') or '',
            full_name=owner_data.get('full_name'),
            llc_contact=owner_data.get('llc_contact'),
            street_address=owner_data.get('street_address'),
            city=owner_data.get('city'),
            state=owner_data.get('state'),
            zip_code=owner_data.get('zip_code'),
        )
        logger.info(f"Created owner {owner.id} ({owner.full_name or owner.first_name})")
        return owner

    @staticmethod
    def _contacts_to_add(owner_data: Mapping[str, Any]) -> List[Any]:
        contacts = list(owner_data.get('contacts') or [])

        phone = (owner_data.get('phone') or '').strip()
        email = (owner_data.get('email') or '').strip()
        if phone:
            contacts.append({'phone': phone, 'type': ContactType.CELL.value, 'priority': 1})
        if email:
            contacts.append({'email': email, 'type': ContactType.EMAIL.value, 'priority': 1})

        return contacts

    def process_owner(self, owner_data: Mapping[str, Any]) -> OwnerProcessResult:
        """
        Create or merge one incoming owner and attach its contacts.

        Args:
            owner_data: Name and address fields, optional legacy phone/email and
                an optional list of contact seeds under "contacts"

        Returns:
            OwnerProcessResult with action "created" or "merged"

        Raises:
            OwnerMergeError: If the merge target disappeared
        """
        contacts = self._contacts_to_add(owner_data)
        matches = self.find_potential_duplicates(owner_data)

        resolution = self.resolve_phone_conflicts(owner_data, matches)
        if resolution.action == 'merge':
            target = self.owner_repository.get_by_id(resolution.target_owner_id)
            if target is None:
                raise OwnerMergeError('Target owner not found for merge')

            merged = self.merge_owner_data(target, owner_data)
            added = self.add_contacts_to_owner(merged.id, contacts)
            return OwnerProcessResult(
                owner=merged,
                action=ReconciliationAction.MERGED.value,
                matches=matches,
                contacts_added=added,
            )

        owner = self.create_new_owner(owner_data)
        added = self.add_contacts_to_owner(owner.id, contacts)
        return OwnerProcessResult(
            owner=owner,
            action=ReconciliationAction.CREATED.value,
            matches=matches,
            contacts_added=added,
        )
