"""
Vehicle routes - fleet registry.
"""
from flask import Blueprint, request, jsonify

from fleetcore.auth import require_auth, require_role
from fleetcore.services import vehicle_service
from fleetcore.services.inspection_service import list_inspections

vehicles_bp = Blueprint('vehicles', __name__, url_prefix='/vehicles')


@vehicles_bp.route('')
@require_auth
def list_vehicles():
    query = request.args.get('q', '').strip()
    if query:
        vehicles = vehicle_service.search_vehicles(query)
    else:
        vehicles = vehicle_service.list_vehicles()
    return jsonify({'vehicles': vehicles, 'total': len(vehicles)})


@vehicles_bp.route('', methods=['POST'])
@require_role('dispatcher')
def add_vehicle():
    data = request.get_json(silent=True) or {}
    vehicle = vehicle_service.add_vehicle(data)
    return jsonify(vehicle), 201


@vehicles_bp.route('/<vehicle_id>')
@require_auth
def view_vehicle(vehicle_id):
    vehicle = vehicle_service.get_vehicle(vehicle_id)
    return jsonify({
        'vehicle': vehicle,
        'inspections': list_inspections(vehicle_id=vehicle_id),
    })


@vehicles_bp.route('/<vehicle_id>', methods=['POST'])
@require_role('dispatcher')
def update_vehicle(vehicle_id):
    data = request.get_json(silent=True) or {}
    return jsonify(vehicle_service.update_vehicle(vehicle_id, data))
