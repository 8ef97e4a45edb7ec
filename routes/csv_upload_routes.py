"""CSV upload API endpoints.

Uploads run synchronously inside the request; the row limit keeps them short.
"""

import json

from flask import Blueprint, jsonify, request, current_app

csv_upload_bp = Blueprint('csv_upload', __name__)


def _uploaded_csv():
    """Return (file, error_response) for the multipart "file" field"""
    file = request.files.get('file')
    if file is None or not file.filename:
        return None, (jsonify({'error': 'No file provided'}), 400)
    if not file.filename.lower().endswith('.csv'):
        return None, (jsonify({'error': 'File must be a CSV file'}), 400)
    return file, None


def _upload_summary(payload):
    return {
        'processedRows': payload['processedRows'],
        'errors': len(payload['errors']),
        'duplicates': len(payload['duplicates']),
        'createdOwners': payload['createdOwners'],
        'createdProperties': payload['createdProperties'],
        'createdContacts': payload['createdContacts'],
        'geocodedProperties': payload['geocodedProperties'],
        'geocodingErrors': len(payload['geocodingErrors']),
        'mergedProperties': payload['mergedProperties'],
        'mergedOwners': payload['mergedOwners'],
        'reconciliationSummary': payload['reconciliationSummary'],
    }


@csv_upload_bp.route('', methods=['POST'])
def upload_csv():
    """Import owners, properties and contacts from a CSV file.

    Multipart form fields:
    - file: the .csv file
    - columnMapping: optional JSON object {csvHeader: targetField|null}

    Returns:
        200: Upload result with per-row errors and duplicates
        400: Missing or invalid file, too many rows, bad column mapping
        500: The file could not be processed at all
    """
    file, error_response = _uploaded_csv()
    if error_response:
        return error_response

    upload_service = current_app.services.get('csv_upload')

    limit_error = upload_service.check_row_limit(file)
    if limit_error:
        return jsonify({'error': limit_error}), 400

    column_mapping = {}
    mapping_json = request.form.get('columnMapping')
    if mapping_json:
        try:
            column_mapping = json.loads(mapping_json)
        except ValueError:
            return jsonify({'error': 'Invalid column mapping format'}), 400
        if not isinstance(column_mapping, dict):
            return jsonify({'error': 'Invalid column mapping format'}), 400

    current_app.logger.info(f"Processing CSV file: {file.filename}")

    try:
        result = upload_service.process_csv_upload(file, column_mapping)
    except Exception as e:
        current_app.logger.error(f"Error in CSV upload endpoint: {e}", exc_info=True)
        return jsonify({'error': 'Failed to process CSV file', 'details': str(e)}), 500

    if not result.success:
        return jsonify({'error': result.message}), 500

    payload = result.to_dict()
    payload['summary'] = _upload_summary(payload)
    return jsonify(payload)


@csv_upload_bp.route('/headers', methods=['POST'])
def csv_headers():
    """Read the header line of a CSV and suggest a column mapping.

    Returns:
        200: {"headers": [...], "suggestedMapping": {...}, "fields": [...], "rowCount": n}
        400: Missing or invalid file
    """
    file, error_response = _uploaded_csv()
    if error_response:
        return error_response

    from services.csv_upload_service import DB_FIELDS

    upload_service = current_app.services.get('csv_upload')
    headers = upload_service.extract_csv_headers(file)

    return jsonify({
        'headers': headers,
        'suggestedMapping': upload_service.suggest_column_mapping(headers),
        'fields': DB_FIELDS,
        'rowCount': upload_service.count_data_rows(file),
    })
