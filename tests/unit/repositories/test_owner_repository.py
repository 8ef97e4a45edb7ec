"""
Tests for OwnerRepository and ContactRepository against the test database
"""

import pytest

from crm_database import Contact
from repositories.owner_repository import OwnerRepository
from repositories.contact_repository import ContactRepository
from tests.conftest import create_test_owner


class TestOwnerRepository:
    """Identity lookups used by owner deduplication"""

    @pytest.fixture
    def repository(self, db_session):
        return OwnerRepository(db_session)

    def test_find_by_full_name(self, repository, owner):
        assert repository.find_by_name('John Smith', None, None) == [owner]

    def test_find_by_first_and_last_name(self, repository, owner):
        assert repository.find_by_name(None, 'John', 'Smith') == [owner]

    def test_find_by_name_requires_both_name_parts(self, repository, owner):
        assert repository.find_by_name(None, 'John', None) == []
        assert repository.find_by_name('', None, None) == []

    def test_find_by_name_no_match(self, repository, owner):
        assert repository.find_by_name('Jane Doe', 'Jane', 'Doe') == []

    def test_find_by_name_loads_contacts(self, repository, owner):
        found = repository.find_by_name('John Smith', None, None)[0]
        assert [contact.phone for contact in found.contacts] == ['5551234567']

    def test_find_by_contact_phone(self, repository, owner):
        assert repository.find_by_contact_phone('5551234567') == [owner]
        # Substring match
        assert repository.find_by_contact_phone('1234567') == [owner]
        assert repository.find_by_contact_phone('9998887777') == []
        assert repository.find_by_contact_phone('') == []

    def test_find_by_contact_phone_returns_owner_once(self, repository, db_session, owner):
        db_session.add(Contact(owner_id=owner.id, phone='5551234567', type='Home', priority=2))
        db_session.flush()

        assert repository.find_by_contact_phone('5551234567') == [owner]

    def test_get_with_properties(self, repository, owner, property_record):
        loaded = repository.get_with_properties(owner.id)
        assert loaded is owner
        assert loaded.properties == [property_record]

    def test_get_with_properties_missing(self, repository):
        assert repository.get_with_properties(999999) is None

    def test_search(self, repository, db_session, owner):
        other = create_test_owner(first_name='Acme', last_name='', full_name='Acme Holdings LLC',
                                  llc_contact='Pat Jones')
        db_session.add(other)
        db_session.flush()

        assert repository.search('holdings') == [other]
        assert repository.search('jones') == [other]
        assert repository.search('') == []


class TestContactRepository:

    @pytest.fixture
    def repository(self, db_session):
        return ContactRepository(db_session)

    def test_find_by_owner_orders_by_priority(self, repository, db_session, owner):
        db_session.add(Contact(owner_id=owner.id, email='john@example.com', type='Email', priority=1))
        db_session.add(Contact(owner_id=owner.id, phone='5550000000', type='Home', priority=3))
        db_session.flush()

        contacts = repository.find_by_owner(owner.id)

        assert [contact.priority for contact in contacts] == [1, 1, 3]
        assert contacts[0].phone == '5551234567'

    def test_create_many(self, repository, owner):
        created = repository.create_many([
            {'owner_id': owner.id, 'email': 'a@example.com', 'type': 'Email', 'priority': 1},
            {'owner_id': owner.id, 'phone': '2065550101', 'type': 'Cell', 'priority': 2},
        ])

        assert all(contact.id for contact in created)
        assert len(repository.find_by_owner(owner.id)) == 3

    def test_search(self, repository, owner):
        assert [contact.phone for contact in repository.search('555123')] == ['5551234567']
