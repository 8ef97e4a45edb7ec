"""
Repository Layer - Data Access Abstraction
Implements the Repository Pattern for owners, contacts, properties,
coordinates and property notes
"""

from .base_repository import (
    BaseRepository,
    PaginationParams,
    PaginatedResult
)
from .owner_repository import OwnerRepository
from .contact_repository import ContactRepository
from .property_repository import PropertyRepository
from .coordinate_repository import CoordinateRepository
from .property_note_repository import PropertyNoteRepository

__all__ = [
    'BaseRepository',
    'PaginationParams',
    'PaginatedResult',
    'OwnerRepository',
    'ContactRepository',
    'PropertyRepository',
    'CoordinateRepository',
    'PropertyNoteRepository'
]
