"""
Checklist item store.
One item per inspected component, cloned from the template when the
inspection is created. update_item() is the only way an item changes and
every change re-derives the parent inspection's rollup.
"""
import logging

from fleetcore.exceptions import NotFoundError, ValidationError, MissingEvidenceError, InspectionLockedError
from fleetcore.models import ItemStatus, InspectionStatus
from fleetcore.services.db import get_document, put_document, kv_remove, get_index
from fleetcore.services.template_loader import flatten_template
from fleetcore.utils import generate_id, utc_now
from fleetcore.utils.audit import log_audit

logger = logging.getLogger(__name__)

PROOF_TYPES = ('photo', 'video')


def _item_key(item_id):
    return f'checklist_item:{item_id}'


def _items_key(inspection_id):
    return f'inspection_items:{inspection_id}'


def _proof_key(proof_id):
    return f'proof:{proof_id}'


def create_items(inspection_id: str, template: dict) -> list:
    """Clone every template item as a pending checklist item, keeping template order."""
    now = utc_now()
    items = []
    for ordinal, entry in enumerate(flatten_template(template)):
        tpl = entry['item']
        items.append({
            'id': generate_id('cli'),
            'inspection_id': inspection_id,
            'template_item_id': tpl['id'],
            'section_id': entry['section_id'],
            'section_name': entry['section_name'],
            'ordinal': ordinal,
            'item_number': ordinal + 1,
            'title': tpl['title'],
            'description': tpl.get('description', ''),
            'vmrs_code': tpl.get('vmrs_code'),
            'status': ItemStatus.PENDING.value,
            'notes': None,
            'proof_ids': [],
            'is_required': bool(tpl.get('is_required', True)),
            'created_at': now,
            'updated_at': now,
        })

    for item in items:
        put_document(_item_key(item['id']), item)
    put_document(_items_key(inspection_id), [item['id'] for item in items])
    return items


def get_items(inspection_id: str) -> list:
    """Items of an inspection in ordinal order."""
    items = [get_document(_item_key(iid)) for iid in get_index(_items_key(inspection_id))]
    return sorted(items, key=lambda i: i['ordinal'])


def get_item(item_id: str) -> dict:
    item = get_document(_item_key(item_id))
    if item is None:
        raise NotFoundError('ChecklistItem', item_id)
    return item


def _editable_inspection(item):
    from fleetcore.services.inspection_service import get_inspection

    inspection = get_inspection(item['inspection_id'])
    if InspectionStatus(inspection['status']).is_terminal:
        raise InspectionLockedError(inspection['id'], inspection['status'])
    return inspection


def _parse_status(status):
    try:
        parsed = ItemStatus(status)
    except ValueError:
        raise ValidationError('Unknown item status', details={'status': status}) from None
    if parsed is ItemStatus.PENDING:
        raise ValidationError('An item cannot be reset to pending', details={'status': status})
    return parsed


def update_item(item_id: str, status: str, notes: str | None = None,
                settings=None, user_id=None, user_name=None) -> dict:
    """
    Record the technician's verdict for one item.

    Defect statuses need evidence: non-empty notes or at least one proof.
    Without it MissingEvidenceError is raised and nothing is written.
    The inspection rollup (and, on the last item, the completion pipeline)
    runs before this returns.
    """
    from fleetcore.services.inspection_service import refresh_rollup

    item = get_item(item_id)
    inspection = _editable_inspection(item)
    new_status = _parse_status(status)
    notes = (notes or '').strip() or None

    if new_status.is_defect and not notes and not item['proof_ids']:
        logger.info('Defect on %s rejected: no notes or proof', item['title'],
                    extra={'inspection_id': inspection['id'], 'item_id': item_id})
        raise MissingEvidenceError(item_id, new_status.value)

    old_status = item['status']
    item['status'] = new_status.value
    item['notes'] = notes
    item['updated_at'] = utc_now()
    put_document(_item_key(item_id), item)

    log_audit('checklist_item', item_id, 'item_marked',
              old_value=old_status, new_value=new_status.value,
              user_id=user_id, user_name=user_name,
              metadata={'inspection_id': inspection['id']})
    logger.debug('Item %s marked %s', item['title'], new_status.value,
                 extra={'inspection_id': inspection['id'], 'item_id': item_id})

    refresh_rollup(inspection['id'], settings=settings, user_id=user_id, user_name=user_name)
    return item


# --- Proofs ---

def add_proof(item_id: str, uri: str, proof_type: str = 'photo', notes: str | None = None,
              user_id=None) -> dict:
    """Attach a captured photo/video to an item. Proofs are immutable once stored."""
    item = get_item(item_id)
    _editable_inspection(item)
    if not uri:
        raise ValidationError('Proof uri is required')
    if proof_type not in PROOF_TYPES:
        raise ValidationError('Unknown proof type', details={'type': proof_type})

    proof = {
        'id': generate_id('proof'),
        'checklist_item_id': item_id,
        'type': proof_type,
        'uri': uri,
        'notes': notes,
        'timestamp': utc_now(),
    }
    put_document(_proof_key(proof['id']), proof)
    item['proof_ids'].append(proof['id'])
    item['updated_at'] = proof['timestamp']
    put_document(_item_key(item_id), item)

    log_audit('proof', proof['id'], 'proof_added', user_id=user_id,
              metadata={'checklist_item_id': item_id})
    return proof


def get_proofs(item_id: str) -> list:
    item = get_item(item_id)
    return [get_document(_proof_key(pid)) for pid in item['proof_ids']]


def remove_proof(item_id: str, proof_id: str, user_id=None) -> dict:
    """Delete a proof before the inspection is finalised."""
    item = get_item(item_id)
    _editable_inspection(item)
    if proof_id not in item['proof_ids']:
        raise NotFoundError('Proof', proof_id)
    # A recorded defect must keep some evidence
    if ItemStatus(item['status']).is_defect and not item['notes'] and len(item['proof_ids']) == 1:
        raise MissingEvidenceError(item_id, item['status'])

    item['proof_ids'].remove(proof_id)
    item['updated_at'] = utc_now()
    put_document(_item_key(item_id), item)
    kv_remove(_proof_key(proof_id))

    log_audit('proof', proof_id, 'proof_removed', user_id=user_id,
              metadata={'checklist_item_id': item_id})
    return item
