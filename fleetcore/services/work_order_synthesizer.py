"""
Work order synthesizer - what happens when an inspection is finalised.

    major defects  -> notify major defect, work order from all defects,
                      notify work order created, blocking resolution flow
    minor only     -> work order from minor defects, notify work order
                      created, notify inspection completed
    no defects     -> notify inspection completed

Downstream failures never undo the inspection's terminal status. A failed
work order is kept in synthesis_error, failed notifications in
notification_errors; retry_work_order() redoes whichever is missing.
"""
import logging

from fleetcore.config import resolve_settings
from fleetcore.exceptions import DownstreamSynthesisError, ValidationError
from fleetcore.models import CompletionPath, DefectType, InspectionStatus, NotificationType
from fleetcore.services import notification_service, work_order_service
from fleetcore.services.checklist_store import get_items
from fleetcore.services.defect_classifier import classify_defects
from fleetcore.services.vehicle_service import get_vehicle, describe_vehicle
from fleetcore.utils.audit import log_audit

logger = logging.getLogger(__name__)


def resolve_completion_path(major_defect_count: int, minor_defect_count: int) -> CompletionPath:
    if major_defect_count > 0:
        return CompletionPath.BLOCKING_DEFECTS
    if minor_defect_count > 0:
        return CompletionPath.MINOR_DEFECTS
    return CompletionPath.NO_DEFECTS


def defects_for_path(path: CompletionPath, items: list) -> list:
    """Defect records the work order is built from on each path."""
    defects = classify_defects(items)
    if path is CompletionPath.BLOCKING_DEFECTS:
        return defects
    if path is CompletionPath.MINOR_DEFECTS:
        return [d for d in defects if d['defect_type'] == DefectType.MINOR.value]
    if path is CompletionPath.NO_DEFECTS:
        return []
    raise ValueError(f'Unhandled completion path: {path}')


def _send(notification_type, inspection, vehicle_name, defect_count, settings):
    if notification_type is NotificationType.MAJOR_DEFECT:
        return notification_service.notify_major_defect(
            vehicle_name, f"{inspection['major_defect_count']} major defect(s) detected",
            inspection['id'], settings)
    if notification_type is NotificationType.WORK_ORDER_CREATED:
        return notification_service.notify_work_order_created(
            vehicle_name, inspection['work_order_number'], defect_count, settings)
    if notification_type is NotificationType.INSPECTION_COMPLETED:
        return notification_service.notify_inspection_completed(
            vehicle_name, inspection['id'], settings)
    raise ValueError(f'Unhandled notification type: {notification_type}')


def _notify(outcome, inspection, notification_type, vehicle_name, defect_count, settings):
    try:
        _send(notification_type, inspection, vehicle_name, defect_count, settings)
    except DownstreamSynthesisError as exc:
        logger.error('Notification %s failed: %s', notification_type.value, exc,
                     extra={'inspection_id': inspection['id'], 'event_type': 'notification_failed'})
        outcome['notification_errors'].append({'type': notification_type.value, 'error': str(exc)})


def _synthesize(outcome, inspection, vehicle_name, defects, settings):
    try:
        work_order = work_order_service.create_work_order_from_inspection(
            inspection['id'], inspection['vehicle_id'], vehicle_name, defects)
    except DownstreamSynthesisError as exc:
        logger.error('Work order synthesis failed: %s', exc,
                     extra={'inspection_id': inspection['id'], 'event_type': 'synthesis_failed'})
        outcome['synthesis_error'] = str(exc)
        log_audit('inspection', inspection['id'], 'work_order_failed', new_value=str(exc))
        return None

    outcome['work_order_id'] = work_order['id']
    outcome['work_order_number'] = work_order['order_number']
    log_audit('work_order', work_order['id'], 'work_order_created',
              new_value=work_order['order_number'],
              metadata={'inspection_id': inspection['id'], 'defects': len(defects)})
    _notify(outcome, {**inspection, **outcome}, NotificationType.WORK_ORDER_CREATED,
            vehicle_name, len(defects), settings)
    return work_order


def complete_inspection(inspection: dict, settings) -> dict:
    """
    Run the decision table once for an inspection that just became terminal.
    Returns the outcome fields to persist on the inspection.
    """
    vehicle_name = describe_vehicle(get_vehicle(inspection['vehicle_id']))
    path = resolve_completion_path(inspection['major_defect_count'],
                                   inspection['minor_defect_count'])
    outcome = {
        'completion_path': path.value,
        'work_order_id': None,
        'work_order_number': None,
        'requires_resolution': path is CompletionPath.BLOCKING_DEFECTS,
        'synthesis_error': None,
        'notification_errors': [],
    }

    if path is CompletionPath.BLOCKING_DEFECTS:
        _notify(outcome, inspection, NotificationType.MAJOR_DEFECT, vehicle_name, 0, settings)
        _synthesize(outcome, inspection, vehicle_name,
                    defects_for_path(path, get_items(inspection['id'])), settings)
    elif path is CompletionPath.MINOR_DEFECTS:
        _synthesize(outcome, inspection, vehicle_name,
                    defects_for_path(path, get_items(inspection['id'])), settings)
        _notify(outcome, inspection, NotificationType.INSPECTION_COMPLETED,
                vehicle_name, 0, settings)
    elif path is CompletionPath.NO_DEFECTS:
        _notify(outcome, inspection, NotificationType.INSPECTION_COMPLETED,
                vehicle_name, 0, settings)
    else:
        raise ValueError(f'Unhandled completion path: {path}')

    logger.info('Completion path %s', path.value,
                extra={'inspection_id': inspection['id'], 'work_order_id': outcome['work_order_id']})
    return outcome


def retry_work_order(inspection_id: str, settings=None, user_id=None) -> dict:
    """
    Manual retry after a failed synthesis or failed notifications.

    Creates the work order if the inspection needs one and has none, then
    re-sends every notification that could not be stored. Raises
    DownstreamSynthesisError if the work order still cannot be stored.
    """
    from fleetcore.services.inspection_service import get_inspection, save_inspection

    inspection = get_inspection(inspection_id)
    if not InspectionStatus(inspection['status']).is_terminal:
        raise ValidationError('Inspection is not finished yet',
                              details={'status': inspection['status']})

    path = resolve_completion_path(inspection['major_defect_count'],
                                   inspection['minor_defect_count'])
    defects = defects_for_path(path, get_items(inspection_id))
    failed = inspection.get('notification_errors') or []
    needs_work_order = bool(defects) and not inspection['work_order_id']

    if not needs_work_order and not failed:
        if inspection['work_order_id']:
            raise ValidationError('Inspection already has a work order',
                                  details={'work_order_id': inspection['work_order_id']})
        raise ValidationError('Inspection has no defects to repair')

    if settings is None:
        settings = resolve_settings()
    vehicle_name = describe_vehicle(get_vehicle(inspection['vehicle_id']))
    to_send = [NotificationType(entry['type']) for entry in failed]

    if needs_work_order:
        work_order = work_order_service.create_work_order_from_inspection(
            inspection_id, inspection['vehicle_id'], vehicle_name, defects)
        inspection['work_order_id'] = work_order['id']
        inspection['work_order_number'] = work_order['order_number']
        inspection['synthesis_error'] = None
        log_audit('work_order', work_order['id'], 'work_order_created',
                  new_value=work_order['order_number'], user_id=user_id,
                  metadata={'inspection_id': inspection_id, 'defects': len(defects), 'retry': True})
        to_send.append(NotificationType.WORK_ORDER_CREATED)

    outcome = {'notification_errors': []}
    for notification_type in to_send:
        _notify(outcome, inspection, notification_type, vehicle_name, len(defects), settings)
    inspection['notification_errors'] = outcome['notification_errors']

    return save_inspection(inspection)
