"""
Base Repository - Abstract base class for all repositories
Owners, contacts, properties, coordinates and notes share these operations
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import TypeVar, Generic, List, Optional, Dict, Any, Type, Iterator
from sqlalchemy.orm import Session, Query
from sqlalchemy.exc import SQLAlchemyError
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)

# Type variable for model classes
T = TypeVar('T')


@dataclass
class PaginationParams:
    """Parameters for pagination"""
    page: int = 1
    per_page: int = 10

    @property
    def offset(self) -> int:
        """Calculate offset for query"""
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        """Get limit for query"""
        return self.per_page


@dataclass
class PaginatedResult(Generic[T]):
    """Result of a paginated query"""
    items: List[T]
    total: int
    page: int
    per_page: int

    @property
    def pages(self) -> int:
        """Calculate total number of pages"""
        return (self.total + self.per_page - 1) // self.per_page if self.per_page > 0 else 0

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    def to_pagination_dict(self) -> Dict[str, Any]:
        """Pagination block returned by the property listing endpoint"""
        return {
            'currentPage': self.page,
            'totalPages': self.pages,
            'totalCount': self.total,
            'limit': self.per_page,
            'hasNextPage': self.has_next,
            'hasPreviousPage': self.has_prev,
        }


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base repository with common CRUD operations.

    Writes flush rather than commit so callers decide the unit of work;
    the upload pipeline commits once per CSV row and batch edits commit
    once per transaction() block. A failed write is re-raised without
    rolling back, so the caller can undo just its own savepoint.
    """

    def __init__(self, session: Session, model_class: Type[T]):
        """
        Initialize repository with database session and model class.

        Args:
            session: SQLAlchemy database session
            model_class: The model class this repository manages
        """
        self.session = session
        self.model_class = model_class

    # CREATE Operations

    def create(self, **kwargs) -> T:
        """
        Create a new entity and flush it so the id is available.

        Raises:
            SQLAlchemyError: If database operation fails
        """
        try:
            entity = self.model_class(**kwargs)
            self.session.add(entity)
            self.session.flush()
            logger.debug(f"Created {self.model_class.__name__} with id {entity.id}")
            return entity
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model_class.__name__}: {e}")
            raise

    def create_many(self, entities_data: List[Dict[str, Any]]) -> List[T]:
        """
        Create multiple entities in a single flush.

        Raises:
            SQLAlchemyError: If database operation fails
        """
        if not entities_data:
            return []
        try:
            entities = [self.model_class(**data) for data in entities_data]
            self.session.add_all(entities)
            self.session.flush()
            logger.debug(f"Created {len(entities)} {self.model_class.__name__} entities")
            return entities
        except SQLAlchemyError as e:
            logger.error(f"Error creating multiple {self.model_class.__name__}: {e}")
            raise

    # READ Operations

    def get_by_id(self, entity_id: int) -> Optional[T]:
        """Get entity by ID, or None if it does not exist"""
        try:
            return self.session.get(self.model_class, entity_id)
        except SQLAlchemyError as e:
            logger.error(f"Error getting {self.model_class.__name__} by id {entity_id}: {e}")
            return None

    def find_by(self, **filters) -> List[T]:
        """
        Find entities by exact field values.

        Unknown field names are ignored.
        """
        try:
            return self._build_query(filters).all()
        except SQLAlchemyError as e:
            logger.error(f"Error finding {self.model_class.__name__} by filters: {e}")
            return []

    def find_one_by(self, **filters) -> Optional[T]:
        """Find first entity matching the field values"""
        try:
            return self._build_query(filters).first()
        except SQLAlchemyError as e:
            logger.error(f"Error finding {self.model_class.__name__} by filters: {e}")
            return None

    def exists(self, **filters) -> bool:
        """Check if an entity exists with the given field values"""
        return self.find_one_by(**filters) is not None

    def count(self, **filters) -> int:
        """Count entities matching filters"""
        try:
            return self._build_query(filters).count()
        except SQLAlchemyError as e:
            logger.error(f"Error counting {self.model_class.__name__}: {e}")
            return 0

    # UPDATE Operations

    def update(self, entity: T, **updates) -> T:
        """
        Update an entity with new values.

        Raises:
            SQLAlchemyError: If database operation fails
        """
        try:
            for field, value in updates.items():
                if hasattr(entity, field):
                    setattr(entity, field, value)
            self.session.flush()
            logger.debug(f"Updated {self.model_class.__name__} with id {entity.id}")
            return entity
        except SQLAlchemyError as e:
            logger.error(f"Error updating {self.model_class.__name__}: {e}")
            raise

    def update_by_id(self, entity_id: int, **updates) -> Optional[T]:
        """Update entity by ID; None if it does not exist"""
        entity = self.get_by_id(entity_id)
        if entity:
            return self.update(entity, **updates)
        return None

    # DELETE Operations

    def delete(self, entity: T) -> bool:
        """
        Delete an entity.

        Raises:
            SQLAlchemyError: If database operation fails
        """
        try:
            self.session.delete(entity)
            self.session.flush()
            logger.debug(f"Deleted {self.model_class.__name__} with id {entity.id}")
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error deleting {self.model_class.__name__}: {e}")
            raise

    def delete_by_id(self, entity_id: int) -> bool:
        """Delete entity by ID; False if it does not exist"""
        entity = self.get_by_id(entity_id)
        if entity:
            return self.delete(entity)
        return False

    # Transaction Management

    def commit(self) -> None:
        """Commit the current transaction."""
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error committing transaction: {e}")
            self.session.rollback()
            raise

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self.session.rollback()

    def flush(self) -> None:
        """Flush pending changes without committing."""
        self.session.flush()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Run several writes as one unit of work.

        Commits when the block exits normally; any exception rolls back
        everything written inside the block and is re-raised.
        """
        try:
            yield self.session
            self.session.commit()
        except Exception:
            logger.warning(f"Rolling back {self.model_class.__name__} transaction")
            self.session.rollback()
            raise

    @contextmanager
    def savepoint(self) -> Iterator[Session]:
        """
        Run writes inside a SAVEPOINT.

        An exception undoes only the writes made in the block; earlier
        uncommitted work in the session is kept.
        """
        with self.session.begin_nested():
            yield self.session

    # Helper Methods

    def _build_query(self, filters: Optional[Dict[str, Any]] = None) -> Query:
        """
        Build a query with filters.

        Lists become IN clauses and None becomes an IS NULL check.
        """
        query = self.session.query(self.model_class)

        if filters:
            for field, value in filters.items():
                if hasattr(self.model_class, field):
                    column = getattr(self.model_class, field)
                    if isinstance(value, (list, tuple, set)):
                        query = query.filter(column.in_(list(value)))
                    elif value is None:
                        query = query.filter(column.is_(None))
                    else:
                        query = query.filter(column == value)

        return query

    # Abstract Methods (to be implemented by subclasses)

    @abstractmethod
    def search(self, query: str, fields: Optional[List[str]] = None) -> List[T]:
        """
        Search entities by text query.

        Args:
            query: Search query string
            fields: Fields to search in (None for default fields)
        """
        pass
