"""
ContactService - manual contact editing for owners
Handles single and batch contact edits using the Result pattern
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from crm_database import Contact
from repositories.contact_repository import ContactRepository
from services.common.normalization import normalize_phone
from services.common.result import Result
from services.enums import ContactEditAction, ContactLabel

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ['phone', 'email', 'type', 'label', 'priority', 'notes']
TEMP_ID_PREFIX = 'temp-'


class ContactValidationError(ValueError):
    """Raised for contact data that cannot be stored"""
    pass


def _is_temporary_id(contact_id: Any) -> bool:
    return contact_id is None or (isinstance(contact_id, str) and contact_id.startswith(TEMP_ID_PREFIX))


class ContactService:
    """Service for managing owner contacts using Result pattern and Repository"""

    def __init__(self, contact_repository: ContactRepository):
        """
        Args:
            contact_repository: ContactRepository for data access
        """
        self.contact_repository = contact_repository

    @staticmethod
    def _contact_fields(data: Mapping[str, Any]) -> Dict[str, Any]:
        """Pick the editable fields from request data and check the label"""
        fields = {name: data[name] for name in EDITABLE_FIELDS if name in data}

        # Stored as digits, the same form CSV imports use, so phone lookups find it
        if 'phone' in fields:
            phone = fields['phone']
            fields['phone'] = (normalize_phone(str(phone)) if phone else '') or None

        label = fields.get('label')
        if label:
            valid_labels = {item.value for item in ContactLabel}
            if label not in valid_labels:
                raise ContactValidationError(f"Invalid contact label: {label}")
        elif 'label' in fields:
            fields['label'] = None

        if 'priority' in fields and fields['priority'] is not None:
            priority = int(fields['priority'])
            if priority < 1:
                raise ContactValidationError("Contact priority must be positive")
            fields['priority'] = priority

        return fields

    def create_contact(self, owner_id: int, data: Mapping[str, Any]) -> Result[Contact]:
        """
        Add a contact to an owner.

        Args:
            owner_id: Owner the contact belongs to
            data: phone, email, type, label, priority, notes

        Returns:
            Result[Contact]: Success with the contact or failure with error
        """
        try:
            fields = self._contact_fields(data)
            if not fields.get('type'):
                return Result.failure("Contact type is required", code="VALIDATION_ERROR")

            contact = self.contact_repository.create(owner_id=owner_id, **fields)
            self.contact_repository.commit()
            logger.info(f"Created contact {contact.id} for owner {owner_id}")
            return Result.success(contact)

        except ContactValidationError as e:
            return Result.failure(str(e), code="VALIDATION_ERROR")
        except Exception as e:
            logger.error(f"Failed to create contact for owner {owner_id}: {str(e)}")
            self.contact_repository.rollback()
            return Result.failure(f"Failed to create contact: {str(e)}", code="CREATE_ERROR")

    def update_contact(self, contact_id: int, data: Mapping[str, Any]) -> Result[Contact]:
        try:
            contact = self.contact_repository.get_by_id(contact_id)
            if not contact:
                return Result.failure(f"Contact not found: {contact_id}", code="NOT_FOUND")

            contact = self.contact_repository.update(contact, **self._contact_fields(data))
            self.contact_repository.commit()
            return Result.success(contact)

        except ContactValidationError as e:
            return Result.failure(str(e), code="VALIDATION_ERROR")
        except Exception as e:
            logger.error(f"Failed to update contact {contact_id}: {str(e)}")
            self.contact_repository.rollback()
            return Result.failure(f"Failed to update contact: {str(e)}", code="UPDATE_ERROR")

    def delete_contact(self, contact_id: int) -> Result[bool]:
        try:
            if not self.contact_repository.delete_by_id(contact_id):
                return Result.failure(f"Contact not found: {contact_id}", code="NOT_FOUND")
            self.contact_repository.commit()
            return Result.success(True)
        except Exception as e:
            logger.error(f"Failed to delete contact {contact_id}: {str(e)}")
            self.contact_repository.rollback()
            return Result.failure(f"Failed to delete contact: {str(e)}", code="DELETE_ERROR")

    def get_contacts_by_owner(self, owner_id: int) -> List[Contact]:
        """Contacts for an owner, lowest priority number first"""
        return self.contact_repository.find_by_owner(owner_id)

    def apply_contact_changes(self, owner_id: int, changes: List[Mapping[str, Any]]) -> List[Contact]:
        """
        Apply a batch of contact edits without committing.

        Each change carries an action (create, update or delete) and an id.
        Creates are applied only for a missing id or a "temp-" id; updates and
        deletes only for real ids. Other combinations are ignored, as are
        deletes of contacts that no longer exist.

        Returns:
            Created and updated contacts, in request order

        Raises:
            ContactValidationError: Bad action, label or priority
            SQLAlchemyError: If a database operation fails
        """
        results = []

        for change in changes:
            action = change.get('action')
            contact_id = change.get('id')

            if action == ContactEditAction.CREATE.value:
                if not _is_temporary_id(contact_id):
                    continue
                fields = self._contact_fields(change)
                if not fields.get('type'):
                    raise ContactValidationError("Contact type is required")
                results.append(self.contact_repository.create(owner_id=owner_id, **fields))

            elif action == ContactEditAction.UPDATE.value:
                if _is_temporary_id(contact_id):
                    continue
                contact = self.contact_repository.get_by_id(int(contact_id))
                if contact is None or contact.owner_id != owner_id:
                    raise ContactValidationError(f"Contact not found: {contact_id}")
                results.append(self.contact_repository.update(contact, **self._contact_fields(change)))

            elif action == ContactEditAction.DELETE.value:
                if _is_temporary_id(contact_id):
                    continue
                contact = self.contact_repository.get_by_id(int(contact_id))
                if contact is None or contact.owner_id != owner_id:
                    # Already gone
                    logger.debug(f"Skipping delete of missing contact {contact_id}")
                    continue
                self.contact_repository.delete(contact)

            else:
                raise ContactValidationError(f"Unknown contact action: {action}")

        return results

    def update_owner_contacts(self, owner_id: int, changes: List[Mapping[str, Any]]) -> Result[List[Contact]]:
        """
        Apply a batch of contact edits as one transaction.

        Either every edit is stored or none is.

        Returns:
            Result[List[Contact]]: Created and updated contacts, or failure
        """
        try:
            with self.contact_repository.transaction():
                contacts = self.apply_contact_changes(owner_id, changes)
            logger.info(f"Applied {len(changes)} contact changes for owner {owner_id}")
            return Result.success(contacts)

        except ContactValidationError as e:
            return Result.failure(str(e), code="VALIDATION_ERROR")
        except Exception as e:
            logger.error(f"Failed to update contacts for owner {owner_id}: {str(e)}")
            return Result.failure(f"Failed to update contacts: {str(e)}", code="UPDATE_ERROR")
