"""
Work order routes - read side of generated work orders.
"""
from flask import Blueprint, request, jsonify

from fleetcore.auth import require_auth
from fleetcore.services import work_order_service

work_orders_bp = Blueprint('work_orders', __name__, url_prefix='/work-orders')


@work_orders_bp.route('')
@require_auth
def list_work_orders():
    orders = work_order_service.list_work_orders(
        vehicle_id=request.args.get('vehicle_id'),
        status=request.args.get('status'),
    )
    return jsonify({'work_orders': orders, 'total': len(orders)})


@work_orders_bp.route('/stats')
@require_auth
def stats():
    return jsonify(work_order_service.get_work_order_stats())


@work_orders_bp.route('/<work_order_id>')
@require_auth
def view_work_order(work_order_id):
    return jsonify(work_order_service.get_work_order(work_order_id))
