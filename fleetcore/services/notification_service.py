"""
Notification dispatcher.
Stores business notifications for the inspection completion pipeline and
honours the per-request Settings (disabled categories are skipped).
"""
import logging
import sqlite3

from fleetcore.exceptions import NotFoundError, DownstreamSynthesisError
from fleetcore.models import NotificationType
from fleetcore.services.db import get_document, put_document, get_index, append_to_index
from fleetcore.utils import generate_id, utc_now

logger = logging.getLogger(__name__)

NOTIFICATION_INDEX = 'notification_index'


def _key(notification_id):
    return f'notification:{notification_id}'


def _dispatch(notification_type, priority, title, message, entity_type, entity_id):
    notification = {
        'id': generate_id('ntf'),
        'type': notification_type.value,
        'priority': priority,
        'title': title,
        'message': message,
        'entity_type': entity_type,
        'entity_id': entity_id,
        'is_read': False,
        'read_at': None,
        'created_at': utc_now(),
    }
    try:
        put_document(_key(notification['id']), notification)
        append_to_index(NOTIFICATION_INDEX, notification['id'])
    except sqlite3.Error as exc:
        raise DownstreamSynthesisError(f'Could not store notification: {exc}') from exc

    logger.info('%s: %s', title, message, extra={'event_type': notification_type.value})
    return notification


def notify_inspection_completed(vehicle_name, inspection_id, settings):
    if not (settings.notifications_enabled and settings.inspection_completed):
        logger.debug('inspection_completed notification disabled')
        return None
    return _dispatch(NotificationType.INSPECTION_COMPLETED, 'medium',
                     'Inspection completed',
                     f'Inspection of {vehicle_name} is completed',
                     'inspection', inspection_id)


def notify_major_defect(vehicle_name, message, inspection_id, settings):
    if not (settings.notifications_enabled and settings.major_defects):
        logger.debug('major_defect notification disabled')
        return None
    return _dispatch(NotificationType.MAJOR_DEFECT, 'critical',
                     'Major defect detected',
                     f'{vehicle_name}: {message}',
                     'inspection', inspection_id)


def notify_work_order_created(vehicle_name, order_number, item_count, settings):
    if not settings.notifications_enabled:
        logger.debug('work_order_created notification disabled')
        return None
    return _dispatch(NotificationType.WORK_ORDER_CREATED, 'high',
                     'Work order created',
                     f'{order_number}: {item_count} defect(s) to repair on {vehicle_name}',
                     'work_order', order_number)


def list_notifications(unread_only=False):
    notifications = [get_document(_key(nid)) for nid in get_index(NOTIFICATION_INDEX)]
    if unread_only:
        notifications = [n for n in notifications if not n['is_read']]
    return notifications


def mark_read(notification_id):
    notification = get_document(_key(notification_id))
    if notification is None:
        raise NotFoundError('Notification', notification_id)
    notification['is_read'] = True
    notification['read_at'] = utc_now()
    put_document(_key(notification_id), notification)
    return notification
