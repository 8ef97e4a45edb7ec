"""Property and owner API endpoints.

Thin handlers over PropertyService, OwnerService and ContactService.
"""

from flask import Blueprint, jsonify, request, current_app

from services.owner_service import OwnerNotFoundError
from services.property_service import PropertyNotFoundError

property_bp = Blueprint('property', __name__)


def _property_detail(prop):
    data = prop.to_dict()
    data['notes'] = [note.to_dict() for note in prop.notes]
    return data


def _error(message, status, details=None):
    body = {'error': message}
    if details:
        body['details'] = details
    return jsonify(body), status


# Properties

@property_bp.route('/properties', methods=['GET'])
def list_properties():
    """Page through properties.

    Query parameters:
    - page: Page number (default: 1)
    - limit: Items per page (default: 10)
    - search: Street, city, owner name, or zip when numeric
    """
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', 10, type=int)
    search = request.args.get('search', '')

    try:
        result = current_app.services.get('property').get_properties(page=page, limit=limit, search=search)
    except Exception as e:
        current_app.logger.error(f"Error fetching properties: {e}", exc_info=True)
        return _error('Failed to fetch properties', 500, str(e))

    return jsonify({
        'properties': [prop.to_dict() for prop in result['properties']],
        'pagination': result['pagination'],
    })


@property_bp.route('/properties/<int:property_id>', methods=['GET'])
def get_property(property_id):
    try:
        prop = current_app.services.get('property').get_property_by_id(property_id)
    except PropertyNotFoundError as e:
        return _error(str(e), 404)
    return jsonify(_property_detail(prop))


@property_bp.route('/properties', methods=['POST'])
def create_property():
    """Create a property.

    Expected JSON payload:
    {
        "street_address": "...", "city": "...", "zip_code": 12345, "price": 100000,
        "state": "...", "net_operating_income": 0, ...,
        "owners": [owner ids]
    }
    """
    data = request.get_json(silent=True) or {}
    payload = dict(data)
    payload['owner_ids'] = data.get('owners') or data.get('owner_ids') or []

    try:
        prop = current_app.services.get('property').create_property(payload)
    except ValueError as e:
        return _error(str(e), 400)
    except Exception as e:
        current_app.logger.error(f"Error creating property: {e}", exc_info=True)
        return _error('Failed to create property', 500, str(e))

    return jsonify(prop.to_dict()), 201


@property_bp.route('/properties/<int:property_id>', methods=['PUT'])
def update_property(property_id):
    """Update a property with its owners' contacts and its notes in one transaction.

    Expected JSON payload:
    {
        "property": {editable property fields},
        "contacts": [{"ownerId": 1, "contacts": [{"action": "create|update|delete", "id": ..., ...}]}],
        "notes": [{"action": "create|update|delete", "id": ..., "content": "..."}]
    }
    """
    data = request.get_json(silent=True)
    if not data:
        return _error('No data provided', 400)

    try:
        prop = current_app.services.get('property').update_property_comprehensive(
            property_id,
            property_fields=data.get('property'),
            contacts_by_owner=data.get('contacts'),
            notes=data.get('notes')
        )
    except PropertyNotFoundError as e:
        return _error(str(e), 404)
    except ValueError as e:
        return _error(str(e), 400)
    except Exception as e:
        current_app.logger.error(f"Error updating property {property_id}: {e}", exc_info=True)
        return _error('Failed to update property', 500, str(e))

    return jsonify(_property_detail(prop))


# Property notes

@property_bp.route('/properties/<int:property_id>/notes', methods=['GET'])
def list_notes(property_id):
    notes = current_app.services.get('property').get_notes_for_property(property_id)
    return jsonify([note.to_dict() for note in notes])


@property_bp.route('/properties/<int:property_id>/notes', methods=['POST'])
def add_note(property_id):
    data = request.get_json(silent=True) or {}
    if not data.get('content'):
        return _error('Missing content', 400)

    try:
        note = current_app.services.get('property').add_note_to_property(property_id, data['content'])
    except PropertyNotFoundError as e:
        return _error(str(e), 404)
    return jsonify(note.to_dict()), 201


@property_bp.route('/properties/<int:property_id>/notes', methods=['PUT'])
def update_note(property_id):
    data = request.get_json(silent=True) or {}
    note_id = data.get('noteId')
    if not note_id or not data.get('content'):
        return _error('Missing noteId or content', 400)

    note = current_app.services.get('property').update_note(int(note_id), data['content'])
    if note is None:
        return _error('Note not found', 404)
    return jsonify(note.to_dict())


@property_bp.route('/properties/<int:property_id>/notes', methods=['DELETE'])
def delete_note(property_id):
    data = request.get_json(silent=True) or {}
    note_id = data.get('noteId')
    if not note_id:
        return _error('Missing noteId', 400)

    current_app.services.get('property').delete_note(int(note_id))
    return jsonify({'success': True})


# Owners

@property_bp.route('/owners/<int:owner_id>', methods=['GET'])
def get_owner(owner_id):
    try:
        owner = current_app.services.get('owner').get_owner_with_properties(owner_id)
    except ValueError as e:
        return _error(str(e), 400)
    except OwnerNotFoundError as e:
        return _error(str(e), 404)
    return jsonify(owner.to_dict(include_contacts=True, include_properties=True))


@property_bp.route('/owners/<int:owner_id>/contacts', methods=['GET'])
def get_owner_contacts(owner_id):
    contacts = current_app.services.get('contact').get_contacts_by_owner(owner_id)
    return jsonify([contact.to_dict() for contact in contacts])


@property_bp.route('/owners/<int:owner_id>/contacts', methods=['PUT'])
def update_owner_contacts(owner_id):
    """Apply a batch of contact edits for an owner, all or nothing.

    Expected JSON payload:
    {"contacts": [{"action": "create|update|delete", "id": ..., "type": ..., ...}]}
    """
    data = request.get_json(silent=True) or {}
    changes = data.get('contacts')
    if not isinstance(changes, list):
        return _error('Contacts array is required', 400)

    result = current_app.services.get('contact').update_owner_contacts(owner_id, changes)
    if result.is_failure:
        status = 400 if result.code == 'VALIDATION_ERROR' else 500
        return _error('Failed to update contacts', status, result.error)

    contacts = current_app.services.get('contact').get_contacts_by_owner(owner_id)
    return jsonify([contact.to_dict() for contact in contacts])
