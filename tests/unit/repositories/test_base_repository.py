"""
Unit tests for BaseRepository
Tests the common functionality through a concrete repository with a mocked session
"""

import pytest
from unittest.mock import MagicMock
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from crm_database import Owner
from repositories.base_repository import (
    BaseRepository,
    PaginationParams,
    PaginatedResult,
)


class OwnerStubRepository(BaseRepository[Owner]):
    """Concrete repository for testing"""

    def search(self, query: str, fields=None):
        return self.find_by(full_name=query)


class TestBaseRepository:
    """Test suite for BaseRepository"""

    @pytest.fixture
    def mock_session(self):
        session = MagicMock(spec=Session)
        session.query.return_value = MagicMock()
        return session

    @pytest.fixture
    def repository(self, mock_session):
        return OwnerStubRepository(mock_session, Owner)

    # CREATE Operations Tests

    def test_create_flushes_without_commit(self, repository, mock_session):
        owner = repository.create(first_name='John', last_name='Smith', full_name='John Smith')

        assert isinstance(owner, Owner)
        assert owner.full_name == 'John Smith'
        mock_session.add.assert_called_once_with(owner)
        mock_session.flush.assert_called_once()
        mock_session.commit.assert_not_called()

    def test_create_error_leaves_session_to_caller(self, repository, mock_session):
        mock_session.flush.side_effect = SQLAlchemyError("Database error")

        with pytest.raises(SQLAlchemyError):
            repository.create(full_name='John Smith')

        mock_session.rollback.assert_not_called()

    def test_create_many(self, repository, mock_session):
        owners = repository.create_many([{'full_name': 'A'}, {'full_name': 'B'}])

        assert [owner.full_name for owner in owners] == ['A', 'B']
        mock_session.add_all.assert_called_once_with(owners)
        mock_session.flush.assert_called_once()

    def test_create_many_empty(self, repository, mock_session):
        assert repository.create_many([]) == []
        mock_session.add_all.assert_not_called()

    # READ Operations Tests

    def test_get_by_id(self, repository, mock_session):
        owner = Owner(id=1)
        mock_session.get.return_value = owner

        assert repository.get_by_id(1) is owner
        mock_session.get.assert_called_once_with(Owner, 1)

    def test_get_by_id_swallows_database_error(self, repository, mock_session):
        mock_session.get.side_effect = SQLAlchemyError("Database error")
        assert repository.get_by_id(1) is None

    def test_find_by_ignores_unknown_fields(self, repository, mock_session):
        query = mock_session.query.return_value
        query.all.return_value = []

        repository.find_by(no_such_column='x')

        query.filter.assert_not_called()

    def test_find_by_filters_known_fields(self, repository, mock_session):
        query = mock_session.query.return_value
        query.filter.return_value = query
        query.all.return_value = ['owner']

        assert repository.find_by(full_name='John Smith', city=None, id=[1, 2]) == ['owner']
        assert query.filter.call_count == 3

    def test_count_returns_zero_on_error(self, repository, mock_session):
        mock_session.query.return_value.count.side_effect = SQLAlchemyError("Database error")
        assert repository.count() == 0

    def test_exists(self, repository, mock_session):
        query = mock_session.query.return_value
        query.filter.return_value = query
        query.first.return_value = None

        assert repository.exists(id=5) is False

    # UPDATE Operations Tests

    def test_update_sets_known_attributes_only(self, repository, mock_session):
        owner = Owner(full_name='Old')

        repository.update(owner, full_name='New', not_a_column='x')

        assert owner.full_name == 'New'
        assert not hasattr(owner, 'not_a_column')
        mock_session.flush.assert_called_once()

    def test_update_by_id_missing(self, repository, mock_session):
        mock_session.get.return_value = None
        assert repository.update_by_id(99, full_name='x') is None

    # DELETE Operations Tests

    def test_delete_by_id(self, repository, mock_session):
        owner = Owner(id=3)
        mock_session.get.return_value = owner

        assert repository.delete_by_id(3) is True
        mock_session.delete.assert_called_once_with(owner)

    def test_delete_by_id_missing(self, repository, mock_session):
        mock_session.get.return_value = None

        assert repository.delete_by_id(3) is False
        mock_session.delete.assert_not_called()

    # Transaction Management Tests

    def test_commit_rolls_back_on_error(self, repository, mock_session):
        mock_session.commit.side_effect = SQLAlchemyError("Commit failed")

        with pytest.raises(SQLAlchemyError):
            repository.commit()

        mock_session.rollback.assert_called_once()

    def test_transaction_commits(self, repository, mock_session):
        with repository.transaction() as session:
            assert session is mock_session

        mock_session.commit.assert_called_once()
        mock_session.rollback.assert_not_called()

    def test_transaction_rolls_back_and_reraises(self, repository, mock_session):
        with pytest.raises(ValueError, match='bad label'):
            with repository.transaction():
                raise ValueError('bad label')

        mock_session.commit.assert_not_called()
        mock_session.rollback.assert_called_once()

    def test_savepoint_uses_nested_transaction(self, repository, mock_session):
        with repository.savepoint() as session:
            assert session is mock_session

        mock_session.begin_nested.assert_called_once()
        mock_session.begin_nested.return_value.__enter__.assert_called_once()
        mock_session.commit.assert_not_called()


class TestPagination:

    def test_params(self):
        params = PaginationParams(page=3, per_page=20)
        assert params.offset == 40
        assert params.limit == 20

    @pytest.mark.parametrize('total,per_page,pages', [(0, 10, 0), (10, 10, 1), (11, 10, 2), (5, 0, 0)])
    def test_pages(self, total, per_page, pages):
        assert PaginatedResult(items=[], total=total, page=1, per_page=per_page).pages == pages

    def test_last_page(self):
        result = PaginatedResult(items=['a'], total=21, page=3, per_page=10)

        assert result.to_pagination_dict() == {
            'currentPage': 3,
            'totalPages': 3,
            'totalCount': 21,
            'limit': 10,
            'hasNextPage': False,
            'hasPreviousPage': True,
        }
