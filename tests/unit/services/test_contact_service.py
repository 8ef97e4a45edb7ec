"""
Unit tests for ContactService
Tests single contact edits and batch edits with mocked repository
"""

import pytest
from unittest.mock import MagicMock, Mock

from services.contact_service import ContactService, ContactValidationError
from repositories.contact_repository import ContactRepository


class TestContactService:
    """Test suite for owner contact editing"""

    @pytest.fixture
    def mock_repository(self):
        # MagicMock so transaction() works as a context manager
        repository = MagicMock(spec=ContactRepository)
        repository.create.side_effect = lambda **fields: Mock(id=100, **fields)
        repository.update.side_effect = lambda contact, **fields: contact
        return repository

    @pytest.fixture
    def service(self, mock_repository):
        return ContactService(contact_repository=mock_repository)

    # create_contact

    def test_create_contact(self, service, mock_repository):
        result = service.create_contact(1, {'phone': '5551234567', 'type': 'Cell', 'label': 'wife',
                                            'priority': '2', 'ignored': 'x'})

        assert result.is_success
        mock_repository.create.assert_called_once_with(
            owner_id=1, phone='5551234567', type='Cell', label='wife', priority=2
        )
        mock_repository.commit.assert_called_once()

    def test_create_contact_requires_type(self, service, mock_repository):
        result = service.create_contact(1, {'phone': '5551234567'})

        assert result.is_failure
        assert result.code == 'VALIDATION_ERROR'
        mock_repository.create.assert_not_called()

    def test_create_contact_rejects_unknown_label(self, service):
        result = service.create_contact(1, {'phone': '5551234567', 'type': 'Cell', 'label': 'cousin'})

        assert result.is_failure
        assert result.error == 'Invalid contact label: cousin'

    def test_create_contact_rejects_non_positive_priority(self, service):
        result = service.create_contact(1, {'email': 'a@b.com', 'type': 'Email', 'priority': 0})
        assert result.code == 'VALIDATION_ERROR'

    def test_create_contact_stores_phone_digits(self, service, mock_repository):
        service.create_contact(1, {'phone': '+1 (206) 555-0101', 'type': 'Cell'})
        assert mock_repository.create.call_args.kwargs['phone'] == '2065550101'

    def test_blank_phone_stored_as_none(self, service, mock_repository):
        service.create_contact(1, {'phone': '  ', 'email': 'a@b.com', 'type': 'Email'})
        assert mock_repository.create.call_args.kwargs['phone'] is None

    def test_blank_label_stored_as_none(self, service, mock_repository):
        service.create_contact(1, {'email': 'a@b.com', 'type': 'Email', 'label': ''})
        assert mock_repository.create.call_args.kwargs['label'] is None

    def test_create_contact_database_error(self, service, mock_repository):
        mock_repository.create.side_effect = Exception('disk full')

        result = service.create_contact(1, {'email': 'a@b.com', 'type': 'Email'})

        assert result.code == 'CREATE_ERROR'
        assert result.error == 'Failed to create contact: disk full'
        mock_repository.rollback.assert_called_once()

    # update_contact / delete_contact

    def test_update_contact(self, service, mock_repository):
        contact = Mock(id=5, owner_id=1)
        mock_repository.get_by_id.return_value = contact

        result = service.update_contact(5, {'notes': 'call after 5pm'})

        assert result.data is contact
        mock_repository.update.assert_called_once_with(contact, notes='call after 5pm')

    def test_update_missing_contact(self, service, mock_repository):
        mock_repository.get_by_id.return_value = None

        result = service.update_contact(5, {'notes': 'x'})

        assert result.code == 'NOT_FOUND'
        assert result.error == 'Contact not found: 5'

    def test_delete_contact(self, service, mock_repository):
        mock_repository.delete_by_id.return_value = True
        assert service.delete_contact(5).data is True
        mock_repository.commit.assert_called_once()

    def test_delete_missing_contact(self, service, mock_repository):
        mock_repository.delete_by_id.return_value = False
        assert service.delete_contact(5).code == 'NOT_FOUND'

    def test_get_contacts_by_owner(self, service, mock_repository):
        contacts = [Mock(priority=1), Mock(priority=2)]
        mock_repository.find_by_owner.return_value = contacts
        assert service.get_contacts_by_owner(1) == contacts

    # apply_contact_changes

    def test_create_only_for_temporary_ids(self, service, mock_repository):
        results = service.apply_contact_changes(1, [
            {'action': 'create', 'id': 'temp-1', 'phone': '5550001111', 'type': 'Cell'},
            {'action': 'create', 'phone': '5550002222', 'type': 'Home'},
            {'action': 'create', 'id': 42, 'phone': '5550003333', 'type': 'Cell'},
        ])

        assert len(results) == 2
        assert mock_repository.create.call_count == 2

    def test_update_and_delete_real_ids(self, service, mock_repository):
        existing = Mock(id=7, owner_id=1)
        doomed = Mock(id=8, owner_id=1)
        mock_repository.get_by_id.side_effect = lambda contact_id: {7: existing, 8: doomed}.get(contact_id)

        results = service.apply_contact_changes(1, [
            {'action': 'update', 'id': '7', 'label': 'primary'},
            {'action': 'delete', 'id': 8},
            {'action': 'delete', 'id': 'temp-9'},
            {'action': 'update', 'id': 'temp-3', 'label': 'wife'},
        ])

        assert results == [existing]
        mock_repository.update.assert_called_once_with(existing, label='primary')
        mock_repository.delete.assert_called_once_with(doomed)

    def test_delete_of_missing_contact_is_ignored(self, service, mock_repository):
        mock_repository.get_by_id.return_value = None

        assert service.apply_contact_changes(1, [{'action': 'delete', 'id': 99}]) == []
        mock_repository.delete.assert_not_called()

    def test_update_of_other_owners_contact_raises(self, service, mock_repository):
        mock_repository.get_by_id.return_value = Mock(id=7, owner_id=2)

        with pytest.raises(ContactValidationError, match='Contact not found: 7'):
            service.apply_contact_changes(1, [{'action': 'update', 'id': 7, 'notes': 'x'}])

    def test_unknown_action_raises(self, service):
        with pytest.raises(ContactValidationError, match='Unknown contact action: merge'):
            service.apply_contact_changes(1, [{'action': 'merge', 'id': 1}])

    # update_owner_contacts

    def test_update_owner_contacts_runs_in_transaction(self, service, mock_repository):
        result = service.update_owner_contacts(1, [
            {'action': 'create', 'id': 'temp-1', 'email': 'a@b.com', 'type': 'Email'}
        ])

        assert result.is_success
        assert len(result.data) == 1
        mock_repository.transaction.assert_called_once()
        mock_repository.transaction.return_value.__exit__.assert_called_once()

    def test_update_owner_contacts_validation_failure(self, service, mock_repository):
        result = service.update_owner_contacts(1, [{'action': 'create', 'phone': '5550001111'}])

        assert result.is_failure
        assert result.code == 'VALIDATION_ERROR'
        assert result.error == 'Contact type is required'

    def test_update_owner_contacts_database_failure(self, service, mock_repository):
        mock_repository.create.side_effect = Exception('constraint failed')

        result = service.update_owner_contacts(1, [
            {'action': 'create', 'email': 'a@b.com', 'type': 'Email'}
        ])

        assert result.code == 'UPDATE_ERROR'
        assert result.error == 'Failed to update contacts: constraint failed'
