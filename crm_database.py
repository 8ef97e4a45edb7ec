# crm_database.py

from extensions import db
from utils.datetime_utils import utc_now, to_iso


# Many-to-many link between owners and the properties they hold
owner_property = db.Table(
    'owner_property',
    db.Column('owner_id', db.Integer, db.ForeignKey('owner.id', ondelete='CASCADE'), primary_key=True),
    db.Column('property_id', db.Integer, db.ForeignKey('property.id', ondelete='CASCADE'), primary_key=True),
)


class Owner(db.Model):
    """Person or business holding one or more properties"""
    __tablename__ = 'owner'

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(200), nullable=False, default='')
    last_name = db.Column(db.String(200), nullable=False, default='')
    full_name = db.Column(db.String(300), nullable=True, index=True)
    llc_contact = db.Column(db.String(200), nullable=True)

    # Mailing address of the owner (may differ from the property address)
    street_address = db.Column(db.String(200), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(50), nullable=True)
    zip_code = db.Column(db.String(10), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=True, default=utc_now, onupdate=utc_now)

    contacts = db.relationship(
        'Contact',
        backref='owner',
        lazy=True,
        cascade='all, delete-orphan',
        order_by='Contact.priority'
    )
    properties = db.relationship(
        'Property',
        secondary=owner_property,
        back_populates='owners',
        lazy=True
    )

    __table_args__ = (
        db.Index('ix_owner_first_last', 'first_name', 'last_name'),
    )

    def __repr__(self):
        name = self.full_name or f'{self.first_name or ""} {self.last_name or ""}'.strip()
        return f'<Owner {self.id}: {name}>'

    def to_dict(self, include_contacts: bool = True, include_properties: bool = False) -> dict:
        data = {
            'id': self.id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'llc_contact': self.llc_contact,
            'street_address': self.street_address,
            'city': self.city,
            'state': self.state,
            'zip_code': self.zip_code,
            'created_at': to_iso(self.created_at),
            'updated_at': to_iso(self.updated_at),
        }
        if include_contacts:
            data['contacts'] = [contact.to_dict() for contact in self.contacts]
        if include_properties:
            data['properties'] = [prop.to_dict(include_owners=False) for prop in self.properties]
        return data


class Contact(db.Model):
    """Phone number or email address belonging to an owner"""
    __tablename__ = 'contact'

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey('owner.id', ondelete='CASCADE'), nullable=False, index=True)
    phone = db.Column(db.String(20), nullable=True, index=True)
    email = db.Column(db.String(200), nullable=True)
    type = db.Column(db.String(20), nullable=False)  # See services.enums.ContactType
    label = db.Column(db.String(30), nullable=True)  # See services.enums.ContactLabel
    priority = db.Column(db.Integer, nullable=False, default=1)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=True, default=utc_now, onupdate=utc_now)

    def __repr__(self):
        return f'<Contact {self.id} owner={self.owner_id} {self.type}:{self.phone or self.email}>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'owner_id': self.owner_id,
            'phone': self.phone,
            'email': self.email,
            'type': self.type,
            'label': self.label,
            'priority': self.priority,
            'notes': self.notes,
            'created_at': to_iso(self.created_at),
            'updated_at': to_iso(self.updated_at),
        }


class Property(db.Model):
    """Real-estate parcel; zip_code -1 means the zip is unknown"""
    __tablename__ = 'property'

    id = db.Column(db.Integer, primary_key=True)
    street_address = db.Column(db.String(200), nullable=False)
    city = db.Column(db.String(100), nullable=False, default='unknown')
    zip_code = db.Column(db.Integer, nullable=False, default=-1)
    state = db.Column(db.String(50), nullable=True)
    parcel_id = db.Column(db.String(100), nullable=True)

    # Financial fields (CSV imports start these at 0)
    net_operating_income = db.Column(db.Float, nullable=False, default=0)
    price = db.Column(db.Float, nullable=False, default=0)
    return_on_investment = db.Column(db.Float, nullable=False, default=0)
    number_of_units = db.Column(db.Integer, nullable=False, default=0)
    square_feet = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=True, default=utc_now, onupdate=utc_now)

    owners = db.relationship(
        'Owner',
        secondary=owner_property,
        back_populates='properties',
        lazy=True
    )
    coordinate = db.relationship(
        'Coordinate',
        back_populates='property',
        uselist=False,
        cascade='all, delete-orphan'
    )
    notes = db.relationship(
        'PropertyNote',
        backref='property',
        lazy=True,
        cascade='all, delete-orphan',
        order_by='PropertyNote.created_at.desc()'
    )

    __table_args__ = (
        db.Index('ix_property_city_zip', 'city', 'zip_code'),
    )

    def __repr__(self):
        return f'<Property {self.id}: {self.street_address}, {self.city} {self.state or ""} {self.zip_code}>'

    def to_dict(self, include_owners: bool = True) -> dict:
        data = {
            'id': self.id,
            'street_address': self.street_address,
            'city': self.city,
            'zip_code': self.zip_code,
            'state': self.state,
            'parcel_id': self.parcel_id,
            'net_operating_income': self.net_operating_income,
            'price': self.price,
            'return_on_investment': self.return_on_investment,
            'number_of_units': self.number_of_units,
            'square_feet': self.square_feet,
            'coordinates': self.coordinate.to_dict() if self.coordinate else None,
            'created_at': to_iso(self.created_at),
            'updated_at': to_iso(self.updated_at),
        }
        if include_owners:
            data['owners'] = [owner.to_dict() for owner in self.owners]
        return data


class Coordinate(db.Model):
    """Cached geocoding result, one row per property"""
    __tablename__ = 'coordinate'

    id = db.Column(db.Integer, primary_key=True)
    property_id = db.Column(
        db.Integer,
        db.ForeignKey('property.id', ondelete='CASCADE'),
        nullable=False,
        unique=True
    )
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)
    confidence = db.Column(db.String(10), nullable=False, default='low')  # high, medium, low, manual
    place_id = db.Column(db.String(255), nullable=True)
    formatted_address = db.Column(db.String(300), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=True, default=utc_now, onupdate=utc_now)

    property = db.relationship('Property', back_populates='coordinate')

    def __repr__(self):
        return f'<Coordinate property={self.property_id} ({self.latitude}, {self.longitude}) {self.confidence}>'

    def to_dict(self) -> dict:
        return {
            'property_id': self.property_id,
            'lat': self.latitude,
            'lng': self.longitude,
            'confidence': self.confidence,
            'place_id': self.place_id,
            'formatted_address': self.formatted_address,
            'updated_at': to_iso(self.updated_at),
        }


class PropertyNote(db.Model):
    """Free-text note attached to a property"""
    __tablename__ = 'property_note'

    id = db.Column(db.Integer, primary_key=True)
    property_id = db.Column(db.Integer, db.ForeignKey('property.id', ondelete='CASCADE'), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=True, default=utc_now, onupdate=utc_now)

    def __repr__(self):
        return f'<PropertyNote {self.id} property={self.property_id}>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'property_id': self.property_id,
            'content': self.content,
            'created_at': to_iso(self.created_at),
            'updated_at': to_iso(self.updated_at),
        }
