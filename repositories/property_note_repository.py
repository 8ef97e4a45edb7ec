"""
PropertyNoteRepository - Data access for notes attached to properties
"""

from typing import List, Optional
from sqlalchemy.orm import Session

from crm_database import PropertyNote
from repositories.base_repository import BaseRepository


class PropertyNoteRepository(BaseRepository[PropertyNote]):
    """Repository for PropertyNote data access"""

    def __init__(self, session: Session):
        super().__init__(session, PropertyNote)

    def search(self, query: str, fields: Optional[List[str]] = None) -> List[PropertyNote]:
        if not query:
            return []
        return self.session.query(PropertyNote).filter(
            PropertyNote.content.ilike(f'%{query}%')
        ).all()

    def find_by_property(self, property_id: int) -> List[PropertyNote]:
        """Notes for a property, newest first"""
        return (
            self.session.query(PropertyNote)
            .filter(PropertyNote.property_id == property_id)
            .order_by(PropertyNote.created_at.desc(), PropertyNote.id.desc())
            .all()
        )
