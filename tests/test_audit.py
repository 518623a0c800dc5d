"""
Audit trail hash chain.
"""
from fleetcore.services.db import get_document, put_document
from fleetcore.utils.audit import get_audit_trail, log_audit, verify_audit_chain


def test_entries_are_chained():
    first = log_audit('vehicle', 'veh-1', 'vehicle_added', new_value='L1')
    second = log_audit('vehicle', 'veh-2', 'vehicle_added', new_value='L2')

    entries = get_audit_trail()
    assert [e['id'] for e in entries] == [first, second]
    assert entries[0]['previous_hash'] is None
    assert entries[1]['previous_hash'] == entries[0]['hash']
    assert entries[0]['user_id'] == 'system'
    assert verify_audit_chain()


def test_filter_by_entity():
    log_audit('vehicle', 'veh-1', 'vehicle_added')
    log_audit('vehicle', 'veh-2', 'vehicle_added')
    assert [e['entity_id'] for e in get_audit_trail('veh-2')] == ['veh-2']


def test_tampering_detected():
    entry_id = log_audit('inspection', 'insp-1', 'status_change',
                         old_value='IN_PROGRESS', new_value='BLOCKED')
    log_audit('inspection', 'insp-1', 'work_order_created')

    entry = get_document(f'audit:{entry_id}')
    entry['new_value'] = 'COMPLETED'
    put_document(f'audit:{entry_id}', entry)

    assert not verify_audit_chain()


def test_inspection_flow_keeps_chain_valid(inspection):
    from fleetcore.services import checklist_store

    for item in checklist_store.get_items(inspection['id']):
        checklist_store.update_item(item['id'], 'ok')

    actions = [e['action'] for e in get_audit_trail(inspection['id'])]
    assert actions[0] == 'inspection_created'
    assert actions.count('status_change') == 2
    assert verify_audit_chain()
