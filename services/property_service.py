"""
PropertyService - property listing, creation, notes and combined edits
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from crm_database import Property, PropertyNote
from repositories.base_repository import PaginationParams
from repositories.property_repository import PropertyRepository
from repositories.property_note_repository import PropertyNoteRepository
from services.contact_service import ContactService, TEMP_ID_PREFIX
from services.enums import ContactEditAction

logger = logging.getLogger(__name__)

EDITABLE_PROPERTY_FIELDS = [
    'street_address',
    'city',
    'zip_code',
    'state',
    'parcel_id',
    'net_operating_income',
    'price',
    'return_on_investment',
    'number_of_units',
    'square_feet',
]

REQUIRED_FIELDS = ['street_address', 'city', 'zip_code', 'price']


class PropertyNotFoundError(Exception):
    pass


def _is_real_id(value: Any) -> bool:
    return value is not None and not (isinstance(value, str) and value.startswith(TEMP_ID_PREFIX))


class PropertyService:
    """Property management on top of the property, note and contact layers"""

    def __init__(self,
                 property_repository: PropertyRepository,
                 property_note_repository: PropertyNoteRepository,
                 contact_service: ContactService):
        self.property_repository = property_repository
        self.property_note_repository = property_note_repository
        self.contact_service = contact_service

    def get_property_by_id(self, property_id: int) -> Property:
        """
        Get a property with owners, contacts, coordinate and notes.

        Raises:
            PropertyNotFoundError: If no such property exists
        """
        prop = self.property_repository.get_with_details(property_id)
        if prop is None:
            raise PropertyNotFoundError('Property not found')
        return prop

    def get_properties(self, page: int = 1, limit: int = 10, search: str = '') -> Dict[str, Any]:
        """
        Page through properties, newest first.

        Search matches street, city and owner first/last names, plus the zip
        code when the search text is a number.

        Returns:
            Dict with "properties" (model instances) and "pagination"
        """
        page = max(1, int(page or 1))
        limit = max(1, int(limit or 10))

        result = self.property_repository.search_paginated(
            PaginationParams(page=page, per_page=limit),
            search=(search or '').strip()
        )
        return {
            'properties': result.items,
            'pagination': result.to_pagination_dict(),
        }

    def create_property(self, data: Mapping[str, Any]) -> Property:
        """
        Create a property and connect the given owners.

        Args:
            data: Property fields plus optional owner_ids

        Raises:
            ValueError: If a required field is missing or zero
        """
        if any(not data.get(name) for name in REQUIRED_FIELDS):
            raise ValueError('Missing required fields')

        values = {name: data.get(name) for name in EDITABLE_PROPERTY_FIELDS if data.get(name) is not None}
        try:
            prop = self.property_repository.create(**values)
            if data.get('owner_ids'):
                self.property_repository.add_owners_by_id(prop, data['owner_ids'])
            self.property_repository.commit()
        except Exception:
            self.property_repository.rollback()
            raise

        logger.info(f"Created property {prop.id} at {prop.street_address}")
        return prop

    # Notes

    def get_notes_for_property(self, property_id: int) -> List[PropertyNote]:
        return self.property_note_repository.find_by_property(property_id)

    def add_note_to_property(self, property_id: int, content: str) -> PropertyNote:
        if not self.property_repository.exists(id=property_id):
            raise PropertyNotFoundError('Property not found')
        note = self.property_note_repository.create(property_id=property_id, content=content)
        self.property_note_repository.commit()
        return note

    def update_note(self, note_id: int, content: str) -> Optional[PropertyNote]:
        note = self.property_note_repository.update_by_id(note_id, content=content)
        if note:
            self.property_note_repository.commit()
        return note

    def delete_note(self, note_id: int) -> bool:
        deleted = self.property_note_repository.delete_by_id(note_id)
        if deleted:
            self.property_note_repository.commit()
        return deleted

    # Combined edit

    def update_property_comprehensive(self,
                                      property_id: int,
                                      property_fields: Optional[Mapping[str, Any]] = None,
                                      contacts_by_owner: Optional[List[Mapping[str, Any]]] = None,
                                      notes: Optional[List[Mapping[str, Any]]] = None) -> Property:
        """
        Update a property, its owners' contacts and its notes in one transaction.

        Args:
            property_id: Property to edit
            property_fields: New values for editable property fields
            contacts_by_owner: [{"owner_id": ..., "contacts": [change, ...]}] where each
                change is a contact edit as accepted by ContactService.apply_contact_changes
            notes: [{"id": ..., "content": ..., "action": create|update|delete}]

        Returns:
            The property reloaded with its relations

        Raises:
            PropertyNotFoundError: If the property does not exist
            Exception: Any failure; nothing is stored in that case
        """
        prop = self.property_repository.get_by_id(property_id)
        if prop is None:
            raise PropertyNotFoundError('Property not found')

        with self.property_repository.transaction():
            fields = {
                name: value for name, value in (property_fields or {}).items()
                if name in EDITABLE_PROPERTY_FIELDS
            }
            if fields:
                self.property_repository.update(prop, **fields)

            for group in contacts_by_owner or []:
                owner_id = group.get('owner_id', group.get('ownerId'))
                self.contact_service.apply_contact_changes(int(owner_id), group.get('contacts') or [])

            for change in notes or []:
                self._apply_note_change(property_id, change)

        logger.info(f"Updated property {property_id} with related contacts and notes")
        return self.get_property_by_id(property_id)

    def _apply_note_change(self, property_id: int, change: Mapping[str, Any]) -> None:
        action = change.get('action')
        note_id = change.get('id')

        if action == ContactEditAction.CREATE.value:
            if not _is_real_id(note_id) and change.get('content'):
                self.property_note_repository.create(property_id=property_id, content=change['content'])
        elif action == ContactEditAction.UPDATE.value:
            if _is_real_id(note_id):
                note = self.property_note_repository.get_by_id(int(note_id))
                if note is None:
                    raise ValueError(f'Note not found: {note_id}')
                self.property_note_repository.update(note, content=change.get('content'))
        elif action == ContactEditAction.DELETE.value:
            if _is_real_id(note_id):
                # Deleting a note that is already gone is not an error
                self.property_note_repository.delete_by_id(int(note_id))
        else:
            raise ValueError(f'Unknown note action: {action}')
