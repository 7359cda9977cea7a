"""
Contact routes: bulk spreadsheet import, single contact entry and listing
Uses the service registry; all responses are JSON
"""

import base64

from flask import Blueprint, request, jsonify, current_app
from services.enums import ImportErrorCode
import logging

logger = logging.getLogger(__name__)

contact_import_bp = Blueprint('contact_import', __name__)

# HTTP status for each failure code; anything unlisted is a server error
ERROR_STATUS = {
    ImportErrorCode.INVALID_SUBURB.value: 400,
    ImportErrorCode.UNSUPPORTED_FILE.value: 400,
    ImportErrorCode.EMPTY_INPUT.value: 400,
    ImportErrorCode.MISSING_OWNER.value: 400,
    ImportErrorCode.NONE_QUALIFYING.value: 422,
    ImportErrorCode.STREET_NOT_FOUND.value: 422,
    ImportErrorCode.DUPLICATE_CONTACT.value: 409,
}


def _failure_response(result):
    status = ERROR_STATUS.get(result.error_code, 500)
    return jsonify({
        'success': False,
        'error': result.error,
        'code': result.error_code,
        'details': result.metadata or {},
    }), status


def _flag(value) -> bool:
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


@contact_import_bp.route('/import', methods=['POST'])
def import_contacts():
    """Import an uploaded .csv/.xlsx of owner contacts into a suburb

    Form fields: file, suburb, optional imported_by, strict and background.
    With background set the import is queued and 202 returned with the task id.
    """
    contact_import_service = current_app.services.get('contact_import')

    file = request.files.get('file')
    suburb = (request.form.get('suburb') or '').strip()
    imported_by = request.form.get('imported_by') or None
    strict_parsing = _flag(request.form['strict']) if 'strict' in request.form else None

    if not suburb:
        return jsonify({
            'success': False,
            'error': 'Please select a suburb before importing',
            'code': ImportErrorCode.INVALID_SUBURB.value,
            'details': {},
        }), 400

    if file is None or not file.filename:
        return jsonify({
            'success': False,
            'error': 'No file selected',
            'code': ImportErrorCode.UNSUPPORTED_FILE.value,
            'details': {},
        }), 400

    if _flag(request.form.get('background', 'false')):
        from tasks.contact_import_tasks import process_contact_import
        task = process_contact_import.delay(
            file_content=base64.b64encode(file.read()).decode('ascii'),
            filename=file.filename,
            suburb=suburb,
            imported_by=imported_by,
            strict_parsing=strict_parsing
        )
        logger.info(f"Queued contact import of {file.filename} for {suburb} as task {task.id}")
        return jsonify({'success': True, 'async': True, 'task_id': task.id}), 202

    result = contact_import_service.import_file(
        file,
        suburb,
        imported_by=imported_by,
        strict_parsing=strict_parsing
    )
    if result.is_failure:
        return _failure_response(result)

    outcome = result.data
    return jsonify({
        'success': True,
        'contact_import_id': outcome.contact_import_id,
        'summary': outcome.to_summary(),
    })


@contact_import_bp.route('/import-progress/<task_id>')
def import_progress(task_id):
    """Report the state of a queued import"""
    from tasks.contact_import_tasks import process_contact_import

    task = process_contact_import.AsyncResult(task_id)
    response = {'task_id': task_id, 'state': task.state}
    if task.state == 'PROGRESS':
        response['status'] = (task.info or {}).get('status')
    elif task.state == 'SUCCESS':
        response['result'] = task.result
    elif task.state == 'FAILURE':
        response['error'] = str(task.info)
    return jsonify(response)


@contact_import_bp.route('', methods=['POST'])
def add_contact():
    """Add one contact on a known street of a suburb"""
    contact_import_service = current_app.services.get('contact_import')

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    suburb = data.get('suburb')
    fields = {key: value for key, value in data.items() if key != 'suburb'}
    result = contact_import_service.add_contact(fields, suburb if isinstance(suburb, str) else None)
    if result.is_failure:
        return _failure_response(result)

    return jsonify({'success': True, 'contact': result.data.to_dict()}), 201


@contact_import_bp.route('', methods=['GET'])
def list_contacts():
    """List a suburb's contacts, optionally for one street"""
    contact_import_service = current_app.services.get('contact_import')

    result = contact_import_service.list_contacts(
        request.args.get('suburb'),
        street_name=request.args.get('street_name')
    )
    if result.is_failure:
        return _failure_response(result)

    return jsonify({
        'success': True,
        'contacts': [contact.to_dict() for contact in result.data],
    })


@contact_import_bp.route('/streets', methods=['GET'])
def list_streets():
    """Known streets of a suburb, for the contact entry form"""
    suburb = (request.args.get('suburb') or '').strip()
    if not suburb:
        return jsonify({
            'success': False,
            'error': 'Suburb is required',
            'code': ImportErrorCode.INVALID_SUBURB.value,
            'details': {},
        }), 400

    property_repository = current_app.services.get('property_repository')
    return jsonify({'success': True, 'streets': property_repository.get_street_names(suburb)})


@contact_import_bp.route('/imports', methods=['GET'])
def import_history():
    """Recent import runs, newest first"""
    contact_import_service = current_app.services.get('contact_import')

    limit = request.args.get('limit', 10, type=int)
    imports = contact_import_service.get_import_history(
        suburb=request.args.get('suburb'),
        limit=max(1, min(limit, 100))
    )
    return jsonify({'success': True, 'imports': [record.to_dict() for record in imports]})
