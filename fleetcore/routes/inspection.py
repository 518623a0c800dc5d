"""
Inspection routes - checklist walkthrough for one vehicle.
Each handler is a thin wrapper over the services; errors map to JSON via the
app-level handlers.
"""
from flask import Blueprint, session, request, jsonify

from fleetcore.auth import require_auth, can_edit_inspection
from fleetcore.config import resolve_settings
from fleetcore.exceptions import NotFoundError
from fleetcore.services import checklist_store, inspection_service
from fleetcore.services.defect_classifier import classify_defects
from fleetcore.services.vehicle_service import get_vehicle
from fleetcore.services.work_order_synthesizer import retry_work_order

inspection_bp = Blueprint('inspection', __name__, url_prefix='/inspection')


def _payload():
    return request.get_json(silent=True) or request.form.to_dict()


@inspection_bp.route('')
@require_auth
def list_inspections():
    inspections = inspection_service.list_inspections(
        status=request.args.get('status'),
        vehicle_id=request.args.get('vehicle_id'),
    )
    return jsonify({'inspections': inspections, 'total': len(inspections)})


@inspection_bp.route('/start/<vehicle_id>', methods=['POST'])
@require_auth
def start_inspection(vehicle_id):
    data = _payload()
    inspection = inspection_service.create_inspection(
        vehicle_id,
        data.get('type', 'periodic'),
        session['user_id'],
        session['user_name'],
        notes=data.get('notes'),
    )
    return jsonify({
        'inspection': inspection,
        'items': checklist_store.get_items(inspection['id']),
    }), 201


@inspection_bp.route('/<inspection_id>')
@require_auth
def inspect(inspection_id):
    inspection = inspection_service.get_inspection(inspection_id)
    can_edit, lock_reason = can_edit_inspection(inspection['status'], session.get('role'))
    return jsonify({
        'inspection': inspection,
        'vehicle': get_vehicle(inspection['vehicle_id']),
        'can_edit': can_edit,
        'lock_reason': lock_reason,
    })


@inspection_bp.route('/<inspection_id>/items')
@require_auth
def list_items(inspection_id):
    inspection_service.get_inspection(inspection_id)
    return jsonify({'items': checklist_store.get_items(inspection_id)})


def _item_in(inspection_id, item_id):
    item = checklist_store.get_item(item_id)
    if item['inspection_id'] != inspection_id:
        raise NotFoundError('ChecklistItem', item_id)
    return item


@inspection_bp.route('/<inspection_id>/item/<item_id>', methods=['POST'])
@require_auth
def update_item(inspection_id, item_id):
    data = _payload()
    status = data.get('status')
    if not status:
        return jsonify({'error': 'status is required'}), 400

    _item_in(inspection_id, item_id)
    item = checklist_store.update_item(
        item_id, status, data.get('notes'),
        settings=resolve_settings(),
        user_id=session['user_id'], user_name=session['user_name'],
    )
    return jsonify({
        'item': item,
        'inspection': inspection_service.get_inspection(inspection_id),
    })


@inspection_bp.route('/<inspection_id>/item/<item_id>/proof', methods=['POST'])
@require_auth
def add_proof(inspection_id, item_id):
    data = _payload()
    _item_in(inspection_id, item_id)
    proof = checklist_store.add_proof(
        item_id, data.get('uri'), data.get('type', 'photo'), data.get('notes'),
        user_id=session['user_id'],
    )
    return jsonify(proof), 201


@inspection_bp.route('/<inspection_id>/item/<item_id>/proof/<proof_id>', methods=['DELETE'])
@require_auth
def remove_proof(inspection_id, item_id, proof_id):
    _item_in(inspection_id, item_id)
    checklist_store.remove_proof(item_id, proof_id, user_id=session['user_id'])
    return '', 204


@inspection_bp.route('/<inspection_id>/defects')
@require_auth
def list_defects(inspection_id):
    inspection_service.get_inspection(inspection_id)
    defects = classify_defects(checklist_store.get_items(inspection_id))
    return jsonify({'defects': defects, 'total': len(defects)})


@inspection_bp.route('/<inspection_id>/progress')
@require_auth
def get_progress(inspection_id):
    return jsonify(inspection_service.get_progress(inspection_id))


@inspection_bp.route('/<inspection_id>/work-order', methods=['POST'])
@require_auth
def create_work_order(inspection_id):
    """Manual retry when automatic work order creation failed."""
    inspection = retry_work_order(inspection_id, settings=resolve_settings(),
                                  user_id=session['user_id'])
    return jsonify({'inspection': inspection}), 201
