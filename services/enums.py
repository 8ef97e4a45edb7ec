"""
Service layer enums
These enums are used by services and mirror the string columns on the
models, so services can validate values without importing database models
"""

from enum import Enum


class ContactType(str, Enum):
    """Kinds of contact channel an owner can have"""
    EMAIL = 'Email'
    CELL = 'Cell'
    HOME = 'Home'
    WORK = 'Work'
    LANDLINE = 'Landline'
    FAX = 'Fax'
    BUSINESS = 'Business'
    PERSONAL = 'Personal'


class ContactLabel(str, Enum):
    """Relationship role of a contact, set only through manual edits"""
    PRIMARY = 'primary'
    SECONDARY = 'secondary'
    HUSBAND = 'husband'
    WIFE = 'wife'
    SON = 'son'
    DAUGHTER = 'daughter'
    PROPERTY_MANAGER = 'property_manager'
    ATTORNEY = 'attorney'
    TENANT = 'tenant'
    GRANDSON = 'grandson'
    GRANDDAUGHTER = 'granddaughter'
    OTHER = 'other'


class CoordinateConfidence(str, Enum):
    """How precisely a coordinate pins down a property"""
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'
    MANUAL = 'manual'


class ReconciliationAction(str, Enum):
    """Outcome of reconciling an incoming record against stored ones"""
    CREATED = 'created'
    MERGED = 'merged'


class ContactEditAction(str, Enum):
    """Operations accepted by batch contact edits"""
    CREATE = 'create'
    UPDATE = 'update'
    DELETE = 'delete'
