"""
CSV Row Processor - parsing, validation and field extraction for one
property/owner CSV row

Rows arrive as dicts keyed by the canonical column names below (see
resolve_csv_row() for how uploaded headers and column mappings get there).
"""

import re
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Mapping, Optional

from services.common.normalization import normalize_phone
from services.enums import ContactType


# Canonical CSV column keys
OWNER_NAME = 'OwnerName'
ADDRESS = 'Address'
CITY = 'City'
STATE = 'State'
ZIP = 'Zip'
PARCEL_ID = 'ParcelId'
LLC_CONTACT = 'LLC Contact'
OWNER_ADDRESS = 'OwnerAddress'
OWNER_CITY = 'OwnerCity'
OWNER_STATE = 'OwnerState'
OWNER_ZIP = 'OwnerZip'

EMAIL_COLUMNS = ['Email 1', 'Email 2']
WIRELESS_COLUMNS = ['Wireless 1', 'Wireless 2', 'Wireless 3', 'Wireless 4']
LANDLINE_COLUMNS = ['Landline 1', 'Landline 2', 'Landline 3', 'Landline 4']

# Database field names accepted as column mapping targets, and the CSV key each one feeds
DB_FIELD_TO_CSV_KEY = {
    'street_address': ADDRESS,
    'city': CITY,
    'zip_code': ZIP,
    'state': STATE,
    'parcel_id': PARCEL_ID,
    'full_name': OWNER_NAME,
    'llc_contact': LLC_CONTACT,
    'owner_street_address': OWNER_ADDRESS,
    'owner_city': OWNER_CITY,
    'owner_state': OWNER_STATE,
    'owner_zip_code': OWNER_ZIP,
    'phone': 'Wireless 1',
    'email': 'Email 1',
}

ZIP_PATTERN = re.compile(r'^\d{5}(-\d{4})?$')
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
_LEADING_INT = re.compile(r'^\s*([+-]?\d+)')

CsvRow = Dict[str, Optional[str]]


@dataclass
class ContactSeed:
    """Phone or email taken from a CSV row, not yet attached to an owner"""
    type: str
    priority: int
    phone: Optional[str] = None
    email: Optional[str] = None

    def to_dict(self) -> dict:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass
class ProcessedOwner:
    first_name: str
    last_name: str
    full_name: Optional[str] = None
    llc_contact: Optional[str] = None
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    contacts: List[ContactSeed] = field(default_factory=list)


@dataclass
class ProcessedProperty:
    street_address: str
    city: str
    zip_code: int
    state: Optional[str] = None
    parcel_id: Optional[str] = None


@dataclass
class ProcessedRow:
    owner: ProcessedOwner
    property: ProcessedProperty


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def parse_csv_line(line: str) -> List[str]:
    """
    Split one CSV line into trimmed fields.

    Double quotes toggle quoted mode, and commas inside quotes are kept.
    Escaped quotes ("") are not supported.
    """
    fields = []
    current = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == ',' and not in_quotes:
            fields.append(''.join(current).strip())
            current = []
        else:
            current.append(char)

    fields.append(''.join(current).strip())
    return fields


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def parse_int_prefix(value: Optional[str]) -> Optional[int]:
    """Parse the leading integer of a string ('98101-1234' -> 98101); None when there is none"""
    if not value:
        return None
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else None


def resolve_csv_row(headers: List[str],
                    column_mapping: Optional[Mapping[str, Optional[str]]],
                    values: List[str]) -> CsvRow:
    """
    Build a CsvRow from raw values using the caller's column mapping.

    Each header maps to column_mapping[header] when set, otherwise to the
    header itself. Database field targets (street_address, phone, ...) are
    translated to their CSV keys. first_name/last_name targets are combined
    into OwnerName when no full name column is present.

    Args:
        headers: Header line fields
        column_mapping: Header -> target field (None or missing means unmapped)
        values: Raw values of one data line, positionally aligned with headers

    Returns:
        Dict keyed by canonical CSV column names
    """
    column_mapping = column_mapping or {}
    row: CsvRow = {}
    name_parts: Dict[str, str] = {}

    for index, header in enumerate(headers):
        value = values[index] if index < len(values) else ''
        target = column_mapping.get(header) or header

        if target in ('first_name', 'last_name'):
            name_parts[target] = value
            continue

        key = DB_FIELD_TO_CSV_KEY.get(target, target)
        # An empty later column does not replace a populated one
        if key in row and row[key] and not value:
            continue
        row[key] = value

    if name_parts and not (row.get(OWNER_NAME) or '').strip():
        combined = ' '.join(
            part.strip() for part in (name_parts.get('first_name', ''), name_parts.get('last_name', ''))
            if part and part.strip()
        )
        row[OWNER_NAME] = combined

    return row


def process_csv_row(row: CsvRow) -> ProcessedRow:
    """
    Extract owner and property fields from a CSV row.

    Contacts are not extracted here (owner.contacts is always empty); see
    create_contacts_from_csv().
    """
    owner_name = (row.get(OWNER_NAME) or '').strip()
    name_parts = owner_name.split()

    owner = ProcessedOwner(
        first_name=name_parts[0] if name_parts else '',
        last_name=' '.join(name_parts[1:]),
        full_name=owner_name or None,
        llc_contact=_clean(row.get(LLC_CONTACT)),
        street_address=_clean(row.get(OWNER_ADDRESS)),
        city=_clean(row.get(OWNER_CITY)),
        state=_clean(row.get(OWNER_STATE)),
        zip_code=_clean(row.get(OWNER_ZIP)),
    )

    zip_code = parse_int_prefix((row.get(ZIP) or '').strip())
    prop = ProcessedProperty(
        street_address=(row.get(ADDRESS) or '').strip(),
        city=(row.get(CITY) or '').strip() or 'unknown',
        zip_code=zip_code or 0,
        state=_clean(row.get(STATE)),
        parcel_id=_clean(row.get(PARCEL_ID)),
    )

    return ProcessedRow(owner=owner, property=prop)


def is_valid_phone(value: Optional[str]) -> bool:
    """
    NANP check on the digits of a phone number.

    Ten digits with an area code starting 2-9, or eleven digits starting
    with the country code 1.
    """
    digits = re.sub(r'\D', '', value or '')
    if not digits:
        return False
    if len(digits) == 10:
        return digits[0] in '23456789'
    if len(digits) == 11:
        return digits[0] == '1'
    return False


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and bool(EMAIL_PATTERN.match(value))


def validate_csv_row(row: CsvRow) -> ValidationResult:
    """Check a CSV row and collect every problem found (no short-circuit)"""
    errors = []

    if not (row.get(OWNER_NAME) or '').strip():
        errors.append('OwnerName is required')

    if not (row.get(ADDRESS) or '').strip():
        errors.append('Address is required')

    # Formats are checked on the raw cell; only the zip blank check trims
    zip_value = row.get(ZIP) or ''
    if zip_value.strip() and not ZIP_PATTERN.fullmatch(zip_value):
        errors.append('Zip code must be in valid format (e.g., 12345 or 12345-6789)')

    for column in EMAIL_COLUMNS:
        value = row.get(column) or ''
        if value and not is_valid_email(value):
            errors.append(f'{column} is not in valid format')

    for column in WIRELESS_COLUMNS + LANDLINE_COLUMNS:
        value = row.get(column) or ''
        if value and not is_valid_phone(value):
            errors.append(f'{column} is not in valid phone format')

    return ValidationResult(is_valid=not errors, errors=errors)


def create_contacts_from_csv(row: CsvRow) -> List[ContactSeed]:
    """
    Build contact seeds from the email, wireless and landline columns.

    Emails come first, then wireless numbers, then landlines. Priority
    follows the column number within each group; blank cells are skipped
    and phone numbers are stored normalized.
    """
    contacts = []

    for priority, column in enumerate(EMAIL_COLUMNS, start=1):
        email = (row.get(column) or '').strip()
        if email:
            contacts.append(ContactSeed(type=ContactType.EMAIL.value, priority=priority, email=email))

    for columns, contact_type in ((WIRELESS_COLUMNS, ContactType.CELL), (LANDLINE_COLUMNS, ContactType.LANDLINE)):
        for priority, column in enumerate(columns, start=1):
            phone = normalize_phone(row.get(column))
            if phone:
                contacts.append(ContactSeed(type=contact_type.value, priority=priority, phone=phone))

    return contacts
