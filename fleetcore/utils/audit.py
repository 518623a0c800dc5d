"""
Audit Log Helper
Append-only trail of state changes, chained with SHA-256 so edits are detectable.

Usage:
    from fleetcore.utils.audit import log_audit

    log_audit(
        entity_type='inspection',
        entity_id=inspection_id,
        action='status_change',
        old_value='IN_PROGRESS',
        new_value='BLOCKED',
        user_id=technician_id,
        user_name=technician_name
    )
"""
import hashlib
import json

from fleetcore.services.db import get_document, put_document, get_index, append_to_index
from fleetcore.utils import generate_id, utc_now

AUDIT_INDEX = 'audit_index'

HASHED_FIELDS = ('id', 'timestamp', 'entity_type', 'entity_id', 'action',
                 'old_value', 'new_value', 'user_id', 'metadata', 'previous_hash')


def _entry_hash(entry):
    payload = json.dumps({k: entry.get(k) for k in HASHED_FIELDS}, sort_keys=True)
    return hashlib.sha256(payload.encode('utf-8')).hexdigest()


def log_audit(entity_type, entity_id, action,
              old_value=None, new_value=None,
              user_id=None, user_name=None, metadata=None):
    """
    Record an audit trail entry.

    Args:
        entity_type: 'vehicle', 'inspection', 'checklist_item', 'proof', 'work_order'
        entity_id: ID of the entity being changed
        action: What happened (see action types below)
        old_value: Previous state (optional)
        new_value: New state (optional)
        user_id: Who performed the action
        user_name: Display name (denormalized for quick reads)
        metadata: dict with extra context (optional)
    """
    ids = get_index(AUDIT_INDEX)
    previous = get_document(f'audit:{ids[-1]}') if ids else None

    entry = {
        'id': generate_id('aud'),
        'timestamp': utc_now(),
        'entity_type': entity_type,
        'entity_id': entity_id,
        'action': action,
        'old_value': old_value,
        'new_value': new_value,
        'user_id': user_id or 'system',
        'user_name': user_name or 'System',
        'metadata': metadata,
        'previous_hash': previous['hash'] if previous else None,
    }
    entry['hash'] = _entry_hash(entry)

    put_document(f"audit:{entry['id']}", entry)
    append_to_index(AUDIT_INDEX, entry['id'])
    return entry['id']


def get_audit_trail(entity_id=None):
    """Entries in write order, optionally for one entity."""
    entries = [get_document(f'audit:{aid}') for aid in get_index(AUDIT_INDEX)]
    if entity_id is not None:
        entries = [e for e in entries if e['entity_id'] == entity_id]
    return entries


def verify_audit_chain():
    """True when every entry hash matches its content and links to its predecessor."""
    previous_hash = None
    for entry in get_audit_trail():
        if entry['previous_hash'] != previous_hash:
            return False
        if _entry_hash(entry) != entry['hash']:
            return False
        previous_hash = entry['hash']
    return True


# --- Standard action types for reference ---
# vehicle_added          - Vehicle registered
# inspection_created     - Inspection and its checklist items created (DRAFT)
# item_marked            - Checklist item status saved
# proof_added            - Photo attached to a checklist item
# proof_removed          - Photo deleted before submission
# status_change          - Inspection status changed (DRAFT/IN_PROGRESS/COMPLETED/BLOCKED)
# work_order_created     - Work order synthesized from inspection defects
# work_order_failed      - Work order synthesis failed (inspection not rolled back)
