"""
CSV Upload Service - imports a property/owner CSV into the CRM

Processing runs in two passes:
1. Every data line is mapped, checked for a repeated address and validated
2. Valid rows are reconciled (owner, then property), geocoded and committed

A row that fails in pass 2 is rolled back and reported; the rest of the
upload carries on.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from werkzeug.datastructures import FileStorage

from services.csv_row_processor import (
    ADDRESS,
    DB_FIELD_TO_CSV_KEY,
    CsvRow,
    create_contacts_from_csv,
    parse_csv_line,
    process_csv_row,
    resolve_csv_row,
    validate_csv_row,
)
from services.coordinate_service import CoordinateService
from services.enums import ReconciliationAction
from services.owner_deduplication_service import OwnerDeduplicationService
from services.owner_name_parser import parse_owner_name
from services.property_reconciliation_service import FINANCIAL_FIELDS, PropertyReconciliationService

logger = logging.getLogger(__name__)

DB_FIELDS = list(DB_FIELD_TO_CSV_KEY) + ['first_name', 'last_name']

DUPLICATE_MESSAGE = 'Duplicate address - only first occurrence will be processed'
UNKNOWN_ADDRESS = 'Unknown Address'

CsvFile = Union[FileStorage, bytes, str, Any]


@dataclass
class UploadResult:
    """Accumulated outcome of one upload"""
    success: bool = True
    message: str = 'CSV processed successfully'
    processed_rows: int = 0
    created_owners: int = 0
    created_properties: int = 0
    created_contacts: int = 0
    geocoded_properties: int = 0
    merged_owners: int = 0
    merged_properties: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    duplicates: List[Dict[str, Any]] = field(default_factory=list)
    geocoding_errors: List[str] = field(default_factory=list)
    reconciliation_summary: Dict[str, int] = field(default_factory=lambda: {
        'propertiesCreated': 0,
        'propertiesMerged': 0,
        'ownersCreated': 0,
        'ownersMerged': 0,
    })

    @classmethod
    def failed(cls, message: str) -> 'UploadResult':
        return cls(success=False, message=message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'message': self.message,
            'processedRows': self.processed_rows,
            'errors': self.errors,
            'duplicates': self.duplicates,
            'createdOwners': self.created_owners,
            'createdProperties': self.created_properties,
            'createdContacts': self.created_contacts,
            'geocodedProperties': self.geocoded_properties,
            'geocodingErrors': self.geocoding_errors,
            'mergedProperties': self.merged_properties,
            'mergedOwners': self.merged_owners,
            'reconciliationSummary': dict(self.reconciliation_summary),
        }


@dataclass
class _ValidRow:
    row: int
    address: str
    data: CsvRow


def read_csv_text(file: CsvFile) -> str:
    """
    Read an uploaded CSV as text.

    Accepts a FileStorage, raw bytes, a str, or any readable file object.
    Bytes are decoded as UTF-8 with an optional BOM.
    """
    if isinstance(file, str):
        return file
    if isinstance(file, (bytes, bytearray)):
        return bytes(file).decode('utf-8-sig')

    if hasattr(file, 'seek'):
        file.seek(0)
    content = file.read()
    if hasattr(file, 'seek'):
        file.seek(0)  # Reset file pointer for future reads

    if isinstance(content, (bytes, bytearray)):
        return bytes(content).decode('utf-8-sig')
    return content


def _normalize_header(value: str) -> str:
    return re.sub(r'[^a-z0-9]', '', value.lower())


class CSVUploadService:
    """
    Orchestrates CSV uploads using the reconciliation services

    - Owner identity through OwnerDeduplicationService
    - Property identity through PropertyReconciliationService
    - Optional geocoding through CoordinateService
    """

    def __init__(self,
                 owner_deduplication_service: OwnerDeduplicationService,
                 property_reconciliation_service: PropertyReconciliationService,
                 coordinate_service: Optional[CoordinateService] = None,
                 max_rows: Optional[int] = None):
        """
        Args:
            owner_deduplication_service: Owner create-vs-merge
            property_reconciliation_service: Property create-vs-merge
            coordinate_service: Geocoder for imported properties (None disables it)
            max_rows: Largest number of data rows accepted by check_row_limit()
        """
        self.owner_deduplication_service = owner_deduplication_service
        self.property_reconciliation_service = property_reconciliation_service
        self.coordinate_service = coordinate_service
        self.max_rows = max_rows

    @property
    def session(self):
        """Session shared by the reconciliation repositories"""
        return self.owner_deduplication_service.owner_repository.session

    def extract_csv_headers(self, file: CsvFile) -> List[str]:
        text = read_csv_text(file)
        header_line = text.split('\n', 1)[0].rstrip('\r')
        return parse_csv_line(header_line)

    @staticmethod
    def suggest_column_mapping(csv_headers: List[str],
                               db_fields: Optional[List[str]] = None) -> Dict[str, Optional[str]]:
        """
        Map each CSV header to the first database field with the same name,
        ignoring case and punctuation ("Street Address" -> street_address).
        Unmatched headers map to None.
        """
        db_fields = DB_FIELDS if db_fields is None else db_fields
        normalized_fields = [(_normalize_header(name), name) for name in db_fields]

        mapping: Dict[str, Optional[str]] = {}
        for header in csv_headers:
            normalized = _normalize_header(header)
            mapping[header] = next(
                (name for candidate, name in normalized_fields if candidate == normalized),
                None
            )
        return mapping

    @staticmethod
    def count_data_rows(file: CsvFile) -> int:
        """Non-blank lines after the header"""
        lines = [line for line in read_csv_text(file).split('\n') if line.strip()]
        return max(0, len(lines) - 1)

    def check_row_limit(self, file: CsvFile) -> Optional[str]:
        """
        Returns:
            Error message when the file has more data rows than max_rows, else None
        """
        if not self.max_rows:
            return None
        row_count = self.count_data_rows(file)
        if row_count > self.max_rows:
            return (
                f'CSV file has {row_count} rows, but the maximum allowed is {self.max_rows}. '
                f'Please reduce the number of rows and try again.'
            )
        return None

    def process_csv_upload(self,
                           file: CsvFile,
                           column_mapping: Optional[Mapping[str, Optional[str]]] = None) -> UploadResult:
        """
        Import a CSV file.

        Args:
            file: Uploaded file, bytes or text
            column_mapping: CSV header -> target field; unmapped headers are used as-is

        Returns:
            UploadResult; success is False only when the file could not be processed at all
        """
        try:
            text = read_csv_text(file)
            lines = text.split('\n')
            headers = parse_csv_line(lines[0].rstrip('\r')) if lines else []
            data_lines = [line.rstrip('\r') for line in lines[1:] if line.strip()]

            result = UploadResult()
            valid_rows = self._validate_rows(headers, data_lines, column_mapping, result)

            logger.info(
                f"CSV upload: {len(data_lines)} data rows, {len(valid_rows)} valid, "
                f"{len(result.duplicates)} duplicates, {len(result.errors)} invalid"
            )

            for valid_row in valid_rows:
                self._process_row(valid_row, result)

            logger.info(
                f"CSV upload finished: {result.processed_rows} processed, "
                f"{result.created_owners} owners created, {result.merged_owners} merged, "
                f"{result.created_properties} properties created, {result.merged_properties} merged"
            )
            return result

        except Exception as e:
            logger.error(f"Error processing CSV upload: {e}")
            return UploadResult.failed(str(e) or 'Unknown error occurred')

    def _validate_rows(self,
                       headers: List[str],
                       data_lines: List[str],
                       column_mapping: Optional[Mapping[str, Optional[str]]],
                       result: UploadResult) -> List[_ValidRow]:
        seen_addresses = set()
        valid_rows = []

        for index, line in enumerate(data_lines):
            row_number = index + 2  # header line plus 1-based numbering
            row = resolve_csv_row(headers, column_mapping, parse_csv_line(line))

            address = row.get(ADDRESS) or UNKNOWN_ADDRESS
            normalized_address = address.lower().strip()

            if normalized_address in seen_addresses:
                result.duplicates.append({
                    'row': row_number,
                    'address': f'"{address}"',
                    'message': DUPLICATE_MESSAGE,
                })
                continue
            seen_addresses.add(normalized_address)

            validation = validate_csv_row(row)
            if not validation.is_valid:
                result.errors.append({
                    'row': row_number,
                    'address': f'"{address}"',
                    'errors': validation.errors,
                })
                continue

            valid_rows.append(_ValidRow(row=row_number, address=address, data=row))

        return valid_rows

    def _process_row(self, valid_row: _ValidRow, result: UploadResult) -> None:
        row = valid_row.data
        try:
            processed = process_csv_row(row)
            prop = processed.property
            owner = processed.owner

            if prop.zip_code == 0:
                prop.zip_code = -1  # unknown zip
            if not prop.city.strip():
                prop.city = 'unknown'

            parsed_name = parse_owner_name(owner.full_name or '')
            owner_data = {
                'first_name': parsed_name.first_name,
                'last_name': parsed_name.last_name,
                'full_name': parsed_name.full_name,
                'llc_contact': owner.llc_contact,
                'street_address': owner.street_address,
                'city': owner.city,
                'state': owner.state,
                'zip_code': owner.zip_code,
                'phone': (row.get('Wireless 1') or '').strip() or (row.get('Landline 1') or '').strip() or None,
                'email': (row.get('Email 1') or '').strip() or None,
                'contacts': create_contacts_from_csv(row),
            }
            owner_result = self.owner_deduplication_service.process_owner(owner_data)

            property_data = {
                'street_address': prop.street_address,
                'city': prop.city,
                'zip_code': prop.zip_code,
                'state': prop.state,
                'parcel_id': prop.parcel_id,
            }
            property_data.update({name: 0 for name in FINANCIAL_FIELDS})
            property_result = self.property_reconciliation_service.process_property(
                property_data, owner_result.owner.id
            )

            self.session.commit()

            self._count_actions(owner_result.action, property_result.action, result)
            result.created_contacts += owner_result.contacts_added

            self._geocode(property_result.property.id, prop, result)
            result.processed_rows += 1

        except Exception as e:
            logger.error(f"Error processing row {valid_row.row} ({valid_row.address}): {e}")
            self.session.rollback()
            result.errors.append({
                'row': valid_row.row,
                'address': f'"{valid_row.address}"',
                'errors': [str(e) or 'Database error occurred'],
            })

    @staticmethod
    def _count_actions(owner_action: str, property_action: str, result: UploadResult) -> None:
        summary = result.reconciliation_summary
        if owner_action == ReconciliationAction.CREATED.value:
            result.created_owners += 1
            summary['ownersCreated'] += 1
        elif owner_action == ReconciliationAction.MERGED.value:
            result.merged_owners += 1
            summary['ownersMerged'] += 1

        if property_action == ReconciliationAction.CREATED.value:
            result.created_properties += 1
            summary['propertiesCreated'] += 1
        elif property_action == ReconciliationAction.MERGED.value:
            result.merged_properties += 1
            summary['propertiesMerged'] += 1

    def _geocode(self, property_id: int, prop, result: UploadResult) -> None:
        """Geocode an imported property; failures are reported, never raised"""
        if self.coordinate_service is None:
            return
        try:
            coordinate = self.coordinate_service.get_or_create_coordinates(
                property_id,
                prop.street_address,
                prop.city,
                prop.state,
                str(prop.zip_code)
            )
            if coordinate:
                self.session.commit()
                result.geocoded_properties += 1
            else:
                result.geocoding_errors.append(f'Failed to geocode: {prop.street_address}, {prop.city}')
        except Exception as e:
            logger.warning(f"Geocoding error for property {property_id}: {e}")
            self.session.rollback()
            result.geocoding_errors.append(f'Geocoding error for {prop.street_address}: {e}')
