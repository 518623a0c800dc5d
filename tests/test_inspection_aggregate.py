"""
Inspection lifecycle: status derivation, counters, locking, vehicle
projection and the three completion paths.
"""
import pytest

from fleetcore.exceptions import InspectionLockedError, NotFoundError, ValidationError
from fleetcore.models import InspectionStatus
from fleetcore.services import checklist_store, vehicle_service
from fleetcore.services.inspection_service import (
    create_inspection, derive_status, get_inspection, get_progress, list_inspections,
)
from fleetcore.services.notification_service import list_notifications
from fleetcore.services.work_order_service import list_work_orders


def _mark(inspection_id, *verdicts):
    """Apply (status, notes) pairs to the items in order."""
    items = checklist_store.get_items(inspection_id)
    for item, (status, notes) in zip(items, verdicts):
        checklist_store.update_item(item['id'], status, notes)
    return get_inspection(inspection_id)


class TestDeriveStatus:

    @pytest.mark.parametrize('total, completed, major, expected', [
        (3, 0, 0, InspectionStatus.DRAFT),
        (3, 1, 0, InspectionStatus.IN_PROGRESS),
        (3, 2, 1, InspectionStatus.IN_PROGRESS),
        (3, 3, 0, InspectionStatus.COMPLETED),
        (3, 3, 1, InspectionStatus.BLOCKED),
        (3, 3, 3, InspectionStatus.BLOCKED),
    ])
    def test_table(self, total, completed, major, expected):
        assert derive_status(total, completed, major) is expected


class TestCreateInspection:

    def test_starts_as_draft(self, inspection, vehicle):
        assert inspection['status'] == 'DRAFT'
        assert inspection['vehicle_id'] == vehicle['id']
        assert inspection['template_id'] == 'ct-small'
        assert inspection['total_items'] == 3
        assert inspection['completed_items'] == 0
        assert inspection['completed_at'] is None

    def test_listed_by_vehicle(self, inspection, vehicle):
        assert [i['id'] for i in list_inspections(vehicle_id=vehicle['id'])] == [inspection['id']]
        assert list_inspections(status='BLOCKED') == []

    def test_unknown_vehicle(self):
        with pytest.raises(NotFoundError):
            create_inspection('veh-missing', 'periodic', 'tech01', 'Marc Tremblay')

    def test_unknown_type(self, vehicle):
        with pytest.raises(ValidationError):
            create_inspection(vehicle['id'], 'yearly', 'tech01', 'Marc Tremblay')

    def test_bundled_template_for_heavy_classes(self):
        truck = vehicle_service.add_vehicle(
            {'vin': '1FUJGLDR5CSBM1234', 'plate': 'L123456', 'unit': '101', 'vehicle_class': 'A'})
        created = create_inspection(truck['id'], 'pre_trip', 'tech01', 'Marc Tremblay')
        assert created['template_id'] == 'ct-heavy'
        assert created['total_items'] == 33

    def test_unknown_inspection(self):
        with pytest.raises(NotFoundError):
            get_inspection('insp-missing')


class TestRollup:

    def test_first_update_moves_to_in_progress(self, inspection):
        after = _mark(inspection['id'], ('ok', None))
        assert after['status'] == 'IN_PROGRESS'
        assert after['completed_items'] == 1
        assert after['ok_count'] == 1

    def test_completed_items_matches_resolved_items(self, inspection):
        after = _mark(inspection['id'], ('minor_defect', 'Rust'), ('ok', None))
        items = checklist_store.get_items(inspection['id'])
        resolved = sum(1 for i in items if i['status'] != 'pending')
        assert after['completed_items'] == resolved == 2
        assert after['minor_defect_count'] == 1

    def test_repeated_update_does_not_double_count(self, inspection):
        item = checklist_store.get_items(inspection['id'])[0]
        checklist_store.update_item(item['id'], 'minor_defect', 'Rust')
        checklist_store.update_item(item['id'], 'minor_defect', 'Rust')

        after = get_inspection(inspection['id'])
        assert after['completed_items'] == 1
        assert after['minor_defect_count'] == 1
        assert after['ok_count'] == 0

    def test_changing_verdict_moves_counters(self, inspection):
        item = checklist_store.get_items(inspection['id'])[0]
        checklist_store.update_item(item['id'], 'major_defect', 'Cracked disc')
        checklist_store.update_item(item['id'], 'ok')

        after = get_inspection(inspection['id'])
        assert after['major_defect_count'] == 0
        assert after['ok_count'] == 1
        assert after['completed_items'] == 1

    def test_progress(self, inspection):
        _mark(inspection['id'], ('ok', None), ('minor_defect', 'Dim'))
        progress = get_progress(inspection['id'])
        assert progress == {
            'status': 'IN_PROGRESS',
            'total': 3,
            'completed': 2,
            'remaining': 1,
            'percent': 67,
            'defects': 1,
        }


class TestTerminalStates:

    def test_completed_sets_timestamp_and_vehicle_projection(self, inspection, vehicle):
        after = _mark(inspection['id'], ('ok', None), ('ok', None), ('ok', None))
        assert after['status'] == 'COMPLETED'
        assert after['completed_at'] is not None

        updated = vehicle_service.get_vehicle(vehicle['id'])
        assert updated['last_inspection_status'] == 'COMPLETED'
        assert updated['last_inspection_date'] == after['completed_at'][:10]

    def test_terminal_inspection_is_locked(self, inspection):
        _mark(inspection['id'], ('ok', None), ('ok', None), ('ok', None))
        item = checklist_store.get_items(inspection['id'])[0]

        with pytest.raises(InspectionLockedError):
            checklist_store.update_item(item['id'], 'major_defect', 'Late finding')
        with pytest.raises(InspectionLockedError):
            checklist_store.add_proof(item['id'], 'file:///late.jpg')
        assert get_inspection(inspection['id'])['status'] == 'COMPLETED'

    def test_blocked_iff_major_defect(self, inspection):
        after = _mark(inspection['id'], ('ok', None), ('major_defect', 'Out'), ('ok', None))
        assert after['status'] == 'BLOCKED'
        assert after['major_defect_count'] == 1
        assert after['requires_resolution'] is True
        assert vehicle_service.get_vehicle(after['vehicle_id'])['last_inspection_status'] == 'BLOCKED'


class TestCompletionScenarios:

    def test_all_ok_completes_without_work_order(self, inspection):
        after = _mark(inspection['id'], ('ok', None), ('ok', None), ('ok', None))

        assert after['status'] == 'COMPLETED'
        assert after['completion_path'] == 'no_defects'
        assert after['work_order_id'] is None
        assert list_work_orders() == []
        assert [n['type'] for n in list_notifications()] == ['inspection_completed']

    def test_major_defect_blocks_and_creates_work_order(self, inspection):
        after = _mark(inspection['id'],
                      ('major_defect', 'Brake line leaking'), ('ok', None), ('ok', None))

        assert after['status'] == 'BLOCKED'
        assert after['completion_path'] == 'blocking_defects'
        orders = list_work_orders()
        assert len(orders) == 1
        assert orders[0]['id'] == after['work_order_id']
        assert orders[0]['inspection_id'] == inspection['id']
        assert [i['defect_type'] for i in orders[0]['items']] == ['MAJOR']
        assert orders[0]['items'][0]['description'] == 'Service brake: Brake line leaking'
        assert [n['type'] for n in list_notifications()] == ['major_defect', 'work_order_created']

    def test_minor_defect_completes_with_work_order(self, inspection):
        after = _mark(inspection['id'],
                      ('ok', None), ('minor_defect', 'Lens cracked'), ('ok', None))

        assert after['status'] == 'COMPLETED'
        assert after['completion_path'] == 'minor_defects'
        assert after['requires_resolution'] is False
        orders = list_work_orders()
        assert len(orders) == 1
        assert [i['defect_type'] for i in orders[0]['items']] == ['MINOR']
        assert orders[0]['items'][0]['component_code'] == 's2'
        assert [n['type'] for n in list_notifications()] == [
            'work_order_created', 'inspection_completed']

    def test_blocking_work_order_covers_minor_defects_too(self, inspection):
        _mark(inspection['id'],
              ('major_defect', 'Brake line leaking'), ('minor_defect', 'Dim'), ('ok', None))
        order = list_work_orders()[0]
        assert [i['defect_type'] for i in order['items']] == ['MAJOR', 'MINOR']
        assert order['priority'] == 'HIGH'

    def test_disabled_notifications_skip_dispatch(self, inspection):
        from fleetcore.config import save_settings

        settings = save_settings(notifications_enabled=False)
        items = checklist_store.get_items(inspection['id'])
        for item in items:
            checklist_store.update_item(item['id'], 'ok', settings=settings)

        assert get_inspection(inspection['id'])['status'] == 'COMPLETED'
        assert list_notifications() == []

    def test_completion_runs_before_vehicle_projection(self, inspection, monkeypatch):
        import sqlite3

        def fail(*args, **kwargs):
            raise sqlite3.OperationalError('database is locked')

        monkeypatch.setattr(vehicle_service, 'record_inspection_result', fail)

        with pytest.raises(sqlite3.OperationalError):
            _mark(inspection['id'], ('minor_defect', 'Rust'), ('ok', None), ('ok', None))

        after = get_inspection(inspection['id'])
        assert after['status'] == 'COMPLETED'
        assert after['completion_path'] == 'minor_defects'
        assert after['work_order_id'] is not None
