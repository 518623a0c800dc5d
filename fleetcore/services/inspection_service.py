"""
Inspection service - lifecycle and rollup for inspection runs.

Status is always derived from the checklist counters:

    DRAFT        no item resolved yet
    IN_PROGRESS  some items resolved, some pending
    BLOCKED      all items resolved and at least one major defect
    COMPLETED    all items resolved, no major defect

COMPLETED and BLOCKED are terminal; the inspection is locked afterwards.
"""
import logging

from fleetcore.exceptions import NotFoundError, ValidationError
from fleetcore.models import InspectionStatus, InspectionType, ItemStatus, WorkOrderStatus
from fleetcore.services import checklist_store, vehicle_service
from fleetcore.services.db import get_document, put_document, get_index, append_to_index
from fleetcore.services.template_loader import get_template_for_class
from fleetcore.utils import generate_id, utc_now
from fleetcore.utils.audit import log_audit

logger = logging.getLogger(__name__)

INSPECTION_INDEX = 'inspection_index'


def _key(inspection_id):
    return f'inspection:{inspection_id}'


def create_inspection(vehicle_id: str, inspection_type: str, technician_id: str,
                      technician_name: str, notes: str | None = None) -> dict:
    """Start an inspection against a vehicle with items cloned from its class template."""
    try:
        inspection_type = InspectionType(inspection_type)
    except ValueError:
        raise ValidationError('Unknown inspection type', details={'type': inspection_type}) from None

    vehicle = vehicle_service.get_vehicle(vehicle_id)
    template = get_template_for_class(vehicle['vehicle_class'])

    now = utc_now()
    inspection = {
        'id': generate_id('insp'),
        'vehicle_id': vehicle_id,
        'technician_id': technician_id,
        'technician_name': technician_name,
        'type': inspection_type.value,
        'status': InspectionStatus.DRAFT.value,
        'template_id': template['id'],
        'started_at': now,
        'completed_at': None,
        'total_items': 0,
        'completed_items': 0,
        'ok_count': 0,
        'minor_defect_count': 0,
        'major_defect_count': 0,
        'notes': notes,
        'completion_path': None,
        'work_order_id': None,
        'work_order_number': None,
        'requires_resolution': False,
        'synthesis_error': None,
        'notification_errors': [],
        'created_at': now,
        'updated_at': now,
    }

    items = checklist_store.create_items(inspection['id'], template)
    inspection['total_items'] = len(items)
    put_document(_key(inspection['id']), inspection)
    append_to_index(INSPECTION_INDEX, inspection['id'])

    log_audit('inspection', inspection['id'], 'inspection_created',
              new_value=InspectionStatus.DRAFT.value,
              user_id=technician_id, user_name=technician_name,
              metadata={'vehicle_id': vehicle_id, 'template_id': template['id']})
    logger.info('Inspection created with %d items', len(items),
                extra={'inspection_id': inspection['id'], 'vehicle_id': vehicle_id})
    return inspection


def get_inspection(inspection_id: str) -> dict:
    inspection = get_document(_key(inspection_id))
    if inspection is None:
        raise NotFoundError('Inspection', inspection_id)
    return inspection


def save_inspection(inspection: dict) -> dict:
    inspection['updated_at'] = utc_now()
    return put_document(_key(inspection['id']), inspection)


def list_inspections(status: str | None = None, vehicle_id: str | None = None) -> list:
    inspections = [get_inspection(iid) for iid in get_index(INSPECTION_INDEX)]
    if status:
        inspections = [i for i in inspections if i['status'] == status]
    if vehicle_id:
        inspections = [i for i in inspections if i['vehicle_id'] == vehicle_id]
    return inspections


def compute_rollup(items: list) -> dict:
    """Counters for a set of checklist items."""
    statuses = [ItemStatus(i['status']) for i in items]
    return {
        'total_items': len(statuses),
        'completed_items': sum(1 for s in statuses if s is not ItemStatus.PENDING),
        'ok_count': statuses.count(ItemStatus.OK),
        'minor_defect_count': statuses.count(ItemStatus.MINOR_DEFECT),
        'major_defect_count': statuses.count(ItemStatus.MAJOR_DEFECT),
    }


def derive_status(total_items: int, completed_items: int, major_defect_count: int) -> InspectionStatus:
    """Inspection status as a function of its counters. A major defect always wins."""
    if total_items > 0 and completed_items >= total_items:
        if major_defect_count > 0:
            return InspectionStatus.BLOCKED
        return InspectionStatus.COMPLETED
    if completed_items == 0:
        return InspectionStatus.DRAFT
    return InspectionStatus.IN_PROGRESS


def refresh_rollup(inspection_id: str, settings=None, user_id=None, user_name=None) -> dict:
    """
    Recompute counters and status from the items, persist, and run the
    completion side effects when the inspection has just become terminal.
    """
    inspection = get_inspection(inspection_id)
    previous = InspectionStatus(inspection['status'])

    counters = compute_rollup(checklist_store.get_items(inspection_id))
    status = derive_status(counters['total_items'], counters['completed_items'],
                           counters['major_defect_count'])
    entered_terminal = status.is_terminal and not previous.is_terminal

    now = utc_now()
    inspection.update(counters)
    inspection['status'] = status.value
    if entered_terminal:
        inspection['completed_at'] = now
    elif not status.is_terminal:
        inspection['completed_at'] = None
    inspection['updated_at'] = now
    put_document(_key(inspection_id), inspection)

    if status is not previous:
        log_audit('inspection', inspection_id, 'status_change',
                  old_value=previous.value, new_value=status.value,
                  user_id=user_id, user_name=user_name)
        logger.info('Inspection %s -> %s', previous.value, status.value,
                    extra={'inspection_id': inspection_id, 'event_type': 'status_change'})

    if entered_terminal:
        inspection = _run_completion(inspection, settings)
        vehicle_service.record_inspection_result(
            inspection['vehicle_id'], status.value, inspection['completed_at'][:10])

    return inspection


def _run_completion(inspection, settings):
    from fleetcore.config import resolve_settings
    from fleetcore.services.work_order_synthesizer import complete_inspection

    if settings is None:
        settings = resolve_settings()
    inspection.update(complete_inspection(inspection, settings))
    return save_inspection(inspection)


def get_progress(inspection_id: str) -> dict:
    inspection = get_inspection(inspection_id)
    total = inspection['total_items']
    completed = inspection['completed_items']
    return {
        'status': inspection['status'],
        'total': total,
        'completed': completed,
        'remaining': total - completed,
        'percent': round(completed * 100 / total) if total else 0,
        'defects': inspection['minor_defect_count'] + inspection['major_defect_count'],
    }


def get_dashboard_stats() -> dict:
    """Fleet-wide counters, read from the denormalized inspection documents."""
    from fleetcore.services.work_order_service import list_work_orders

    vehicles = vehicle_service.list_vehicles()
    inspections = list_inspections()
    today = utc_now()[:10]

    completed = sum(1 for i in inspections if i['status'] == InspectionStatus.COMPLETED.value)
    minor = sum(i['minor_defect_count'] for i in inspections)
    major = sum(i['major_defect_count'] for i in inspections)
    open_statuses = (WorkOrderStatus.PENDING.value, WorkOrderStatus.ASSIGNED.value)

    return {
        'total_vehicles': len(vehicles),
        'active_vehicles': sum(1 for v in vehicles if v['status'] == 'active'),
        'total_inspections': len(inspections),
        'today_inspections': sum(1 for i in inspections if i['started_at'].startswith(today)),
        'pending_inspections': sum(
            1 for i in inspections
            if i['status'] in (InspectionStatus.DRAFT.value, InspectionStatus.IN_PROGRESS.value)),
        'blocked_inspections': sum(
            1 for i in inspections if i['status'] == InspectionStatus.BLOCKED.value),
        'active_defects': minor + major,
        'minor_defects': minor,
        'major_defects': major,
        'compliance_score': round(completed * 100 / len(inspections)) if inspections else 100,
        'pending_work_orders': sum(1 for w in list_work_orders() if w['status'] in open_statuses),
    }
