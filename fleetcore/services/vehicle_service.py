"""
Vehicle store.
Vehicles are referenced (never owned) by inspections and work orders; the
last_inspection_* fields are a denormalized projection kept for dashboards.
"""
import logging

from fleetcore.exceptions import NotFoundError, ValidationError
from fleetcore.models import VEHICLE_CLASSES, VehicleStatus
from fleetcore.services.db import get_document, put_document, get_index, append_to_index
from fleetcore.utils import generate_id, utc_now
from fleetcore.utils.audit import log_audit

logger = logging.getLogger(__name__)

VEHICLE_INDEX = 'vehicle_index'
REQUIRED_FIELDS = ('vin', 'plate', 'unit', 'vehicle_class')
SEARCH_FIELDS = ('plate', 'vin', 'unit', 'make', 'model')
READ_ONLY_FIELDS = ('id', 'created_at', 'company_id')


def _key(vehicle_id):
    return f'vehicle:{vehicle_id}'


def _validate(fields):
    if 'vehicle_class' in fields and fields['vehicle_class'] not in VEHICLE_CLASSES:
        raise ValidationError('Unknown vehicle class',
                              details={'vehicle_class': fields['vehicle_class']})
    if 'status' in fields:
        try:
            VehicleStatus(fields['status'])
        except ValueError:
            raise ValidationError('Unknown vehicle status', details={'status': fields['status']}) from None


def add_vehicle(data: dict, company_id: str = 'default') -> dict:
    missing = [f for f in REQUIRED_FIELDS if not data.get(f)]
    if missing:
        raise ValidationError('Missing vehicle fields', details={f: 'required' for f in missing})
    _validate(data)

    now = utc_now()
    vehicle = {
        'make': '',
        'model': '',
        'year': None,
        'status': VehicleStatus.ACTIVE.value,
        **data,
        'id': generate_id('veh'),
        'company_id': company_id,
        'last_inspection_date': None,
        'last_inspection_status': None,
        'created_at': now,
        'updated_at': now,
    }
    put_document(_key(vehicle['id']), vehicle)
    append_to_index(VEHICLE_INDEX, vehicle['id'])
    log_audit('vehicle', vehicle['id'], 'vehicle_added', new_value=vehicle['plate'])
    logger.info('Vehicle %s added', vehicle['plate'], extra={'vehicle_id': vehicle['id']})
    return vehicle


def get_vehicle(vehicle_id: str) -> dict:
    vehicle = get_document(_key(vehicle_id))
    if vehicle is None:
        raise NotFoundError('Vehicle', vehicle_id)
    return vehicle


def list_vehicles() -> list:
    return [get_vehicle(vid) for vid in get_index(VEHICLE_INDEX)]


def search_vehicles(query: str) -> list:
    needle = query.lower()
    return [
        v for v in list_vehicles()
        if any(needle in str(v.get(f) or '').lower() for f in SEARCH_FIELDS)
    ]


def update_vehicle(vehicle_id: str, changes: dict) -> dict:
    """Apply a partial update. Identity fields are ignored."""
    vehicle = get_vehicle(vehicle_id)
    changes = {k: v for k, v in changes.items() if k not in READ_ONLY_FIELDS}
    _validate(changes)
    vehicle.update(changes)
    vehicle['updated_at'] = utc_now()
    put_document(_key(vehicle_id), vehicle)
    return vehicle


def record_inspection_result(vehicle_id: str, status: str, inspected_on: str) -> dict:
    """Projection update run after an inspection reaches COMPLETED or BLOCKED."""
    return update_vehicle(vehicle_id, {
        'last_inspection_date': inspected_on,
        'last_inspection_status': status,
    })


def describe_vehicle(vehicle: dict) -> str:
    """Display name used in notifications and work order titles."""
    name = ' '.join(p for p in (vehicle.get('make'), vehicle.get('model')) if p)
    if name:
        return f"{name} - {vehicle['plate']}"
    return vehicle['plate']
