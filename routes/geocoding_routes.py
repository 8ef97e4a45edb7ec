"""Geocoding API endpoints.

Coverage statistics, batch backfill (inline or queued on Celery) and
single-property geocoding.
"""

from flask import Blueprint, jsonify, request, current_app

geocoding_bp = Blueprint('geocoding', __name__)


@geocoding_bp.route('/batch', methods=['GET'])
def geocoding_stats():
    """Count properties with and without coordinates"""
    try:
        stats = current_app.services.get('batch_geocoding').get_geocoding_stats()
        return jsonify({'success': True, 'stats': stats.to_dict()})
    except Exception as e:
        current_app.logger.error(f"Error getting geocoding stats: {e}", exc_info=True)
        return jsonify({'error': 'Failed to get geocoding statistics', 'details': str(e)}), 500


@geocoding_bp.route('/batch', methods=['POST'])
def batch_geocode():
    """Geocode all properties that lack coordinates.

    Expected JSON payload (all optional):
    {
        "batchSize": 10,
        "delayBetweenBatches": 1000,   # milliseconds
        "async": false                 # queue a Celery task instead
    }

    Returns:
        200: Batch result
        202: Task queued, with its id
        500: Batch failed
    """
    data = request.get_json(silent=True) or {}
    try:
        batch_size = int(data.get('batchSize', 10))
        delay_seconds = float(data.get('delayBetweenBatches', 1000)) / 1000.0
    except (TypeError, ValueError):
        return jsonify({'error': 'batchSize and delayBetweenBatches must be numbers'}), 400

    if data.get('async'):
        from tasks.geocoding_tasks import batch_geocode_properties_task
        task = batch_geocode_properties_task.delay(
            batch_size=batch_size,
            delay_between_batches=delay_seconds
        )
        return jsonify({'success': True, 'taskId': task.id}), 202

    try:
        result = current_app.services.get('batch_geocoding').batch_geocode_all_properties(
            batch_size=batch_size,
            delay_between_batches=delay_seconds
        )
        return jsonify({'success': True, 'result': result.to_dict()})
    except Exception as e:
        current_app.logger.error(f"Error in batch geocoding: {e}", exc_info=True)
        return jsonify({'error': 'Failed to perform batch geocoding', 'details': str(e)}), 500


@geocoding_bp.route('/property/<int:property_id>', methods=['POST'])
def geocode_property(property_id):
    """Geocode one property"""
    try:
        result = current_app.services.get('batch_geocoding').geocode_property(property_id)
    except Exception as e:
        current_app.logger.error(f"Error geocoding property {property_id}: {e}", exc_info=True)
        return jsonify({'error': 'Failed to geocode property', 'details': str(e)}), 500

    if not result.success:
        return jsonify({'success': False, 'error': result.error or 'Failed to geocode property'}), 400

    return jsonify({
        'success': True,
        'message': 'Property geocoded successfully',
        'propertyId': property_id,
    })
