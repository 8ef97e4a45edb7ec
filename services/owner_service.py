"""
OwnerService - owner lookups for the property detail views
"""

import logging

from crm_database import Owner
from repositories.owner_repository import OwnerRepository

logger = logging.getLogger(__name__)


class OwnerNotFoundError(Exception):
    pass


class OwnerService:

    def __init__(self, owner_repository: OwnerRepository):
        self.owner_repository = owner_repository

    def get_owner_with_properties(self, owner_id: int) -> Owner:
        """
        Get an owner with contacts (by priority) and properties loaded.

        Raises:
            ValueError: If owner_id is missing
            OwnerNotFoundError: If no such owner exists
        """
        if not owner_id:
            raise ValueError('Owner ID is required')

        owner = self.owner_repository.get_with_properties(owner_id)
        if owner is None:
            raise OwnerNotFoundError('Owner not found')

        return owner
