"""
Work order service.
Creates repair work orders from inspection defects and answers list/stat
queries. Numbering, priority and cost/time estimates are decided here.
"""
import logging
import random
import sqlite3
from datetime import datetime

from fleetcore.exceptions import NotFoundError, ValidationError, DownstreamSynthesisError
from fleetcore.models import DefectType, WorkOrderPriority, WorkOrderStatus
from fleetcore.services.db import get_document, put_document, kv_remove, get_index, append_to_index
from fleetcore.utils import generate_id, utc_now

logger = logging.getLogger(__name__)

WORK_ORDER_INDEX = 'work_order_index'

# Per-defect estimates: (minutes, cost)
ESTIMATES = {
    DefectType.MAJOR: (120, 500),
    DefectType.MINOR: (60, 150),
}


def _key(work_order_id):
    return f'work_order:{work_order_id}'


def generate_order_number(now=None):
    """WO-<yymm>-<4 random digits>."""
    now = now or datetime.now()
    return f"WO-{now:%y%m}-{random.randint(0, 9999):04d}"


def priority_for(major_count: int) -> WorkOrderPriority:
    if major_count > 2:
        return WorkOrderPriority.URGENT
    if major_count > 0:
        return WorkOrderPriority.HIGH
    return WorkOrderPriority.MEDIUM


def create_work_order_from_inspection(inspection_id: str, vehicle_id: str,
                                      vehicle_name: str, defects: list) -> dict:
    """
    Build and store a PENDING work order with one item per defect record.
    Store failures are raised as DownstreamSynthesisError.
    """
    if not defects:
        raise ValidationError('A work order needs at least one defect',
                              details={'inspection_id': inspection_id})

    items = []
    for defect in defects:
        defect_type = DefectType(defect['defect_type'])
        minutes, cost = ESTIMATES[defect_type]
        items.append({
            'id': generate_id('woi'),
            'description': defect['description'],
            'component_code': defect['component_code'],
            'defect_type': defect_type.value,
            'estimated_time': minutes,
            'estimated_cost': cost,
            'actual_time': None,
            'actual_cost': None,
            'status': 'PENDING',
        })

    major_count = sum(1 for i in items if i['defect_type'] == DefectType.MAJOR.value)
    now = utc_now()
    work_order = {
        'id': generate_id('wo'),
        'order_number': generate_order_number(),
        'vehicle_id': vehicle_id,
        'vehicle_name': vehicle_name,
        'inspection_id': inspection_id,
        'technician_id': None,
        'technician_name': None,
        'status': WorkOrderStatus.PENDING.value,
        'priority': priority_for(major_count).value,
        'title': f'Repairs following inspection - {vehicle_name}',
        'description': (f'Generated from inspection {inspection_id}. '
                        f'{len(items)} defect(s) found, {major_count} major.'),
        'items': items,
        'estimated_total_time': sum(i['estimated_time'] for i in items),
        'estimated_total_cost': sum(i['estimated_cost'] for i in items),
        'actual_total_time': None,
        'actual_total_cost': None,
        'created_at': now,
        'updated_at': now,
    }

    try:
        put_document(_key(work_order['id']), work_order)
        try:
            append_to_index(WORK_ORDER_INDEX, work_order['id'])
        except sqlite3.Error:
            # no work order document without its index entry
            kv_remove(_key(work_order['id']))
            raise
    except sqlite3.Error as exc:
        raise DownstreamSynthesisError(
            f'Could not store work order: {exc}', inspection_id=inspection_id) from exc

    logger.info('Work order %s created with %d item(s)', work_order['order_number'], len(items),
                extra={'inspection_id': inspection_id, 'work_order_id': work_order['id'],
                       'vehicle_id': vehicle_id})
    return work_order


def get_work_order(work_order_id: str) -> dict:
    work_order = get_document(_key(work_order_id))
    if work_order is None:
        raise NotFoundError('WorkOrder', work_order_id)
    return work_order


def list_work_orders(vehicle_id: str | None = None, status: str | None = None) -> list:
    orders = [get_work_order(wid) for wid in get_index(WORK_ORDER_INDEX)]
    if vehicle_id:
        orders = [o for o in orders if o['vehicle_id'] == vehicle_id]
    if status:
        orders = [o for o in orders if o['status'] == status]
    return orders


def get_work_order_stats() -> dict:
    orders = list_work_orders()
    by_status = {s.value: 0 for s in WorkOrderStatus}
    for order in orders:
        by_status[order['status']] += 1
    return {
        'total': len(orders),
        'pending': by_status['PENDING'] + by_status['ASSIGNED'],
        'in_progress': by_status['IN_PROGRESS'],
        'completed': by_status['COMPLETED'],
        'cancelled': by_status['CANCELLED'],
        'total_estimated_cost': sum(o['estimated_total_cost'] for o in orders),
    }
