"""
Populate demo data for a local FleetCore instance.
Creates:
- 4 login codes (one per role)
- 6 vehicles across classes A-E
- 1 clean completed inspection, 1 blocked inspection, 1 in progress
"""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fleetcore import create_app
from fleetcore.auth import list_technicians, register_technician
from fleetcore.services import checklist_store, vehicle_service
from fleetcore.services.inspection_service import create_inspection, get_inspection

TECHNICIANS = [
    ('tech01', 'Marc Tremblay', 'technician'),
    ('disp01', 'Julie Gagnon', 'dispatcher'),
    ('mgr01', 'Sophie Roy', 'manager'),
    ('admin', 'Admin', 'admin'),
]

VEHICLES = [
    {'vin': '1FUJGLDR5CSBM1234', 'plate': 'L123456', 'unit': '101', 'vehicle_class': 'A',
     'make': 'Freightliner', 'model': 'Cascadia', 'year': 2021},
    {'vin': '3AKJHHDR7KSKA5678', 'plate': 'L234567', 'unit': '102', 'vehicle_class': 'A',
     'make': 'Freightliner', 'model': 'Cascadia', 'year': 2019},
    {'vin': '1XKYDP9X0LJ123987', 'plate': 'L345678', 'unit': '201', 'vehicle_class': 'B',
     'make': 'Kenworth', 'model': 'T680', 'year': 2020},
    {'vin': '4V4NC9EH6LN228811', 'plate': 'L456789', 'unit': '301', 'vehicle_class': 'C',
     'make': 'Volvo', 'model': 'VNL', 'year': 2020},
    {'vin': '1HTMMAAL5JH534420', 'plate': 'L567890', 'unit': '401', 'vehicle_class': 'D',
     'make': 'International', 'model': 'MV', 'year': 2018},
    {'vin': '1FDUF5HT6KEE70101', 'plate': 'L678901', 'unit': '501', 'vehicle_class': 'E',
     'make': 'Ford', 'model': 'F-550', 'year': 2019},
]


def run_inspection(vehicle, technician, defects=None, stop_after=None):
    """Walk the checklist; defects maps item position to (status, notes)."""
    defects = defects or {}
    inspection = create_inspection(vehicle['id'], 'periodic', technician[0], technician[1])
    items = checklist_store.get_items(inspection['id'])

    for position, item in enumerate(items):
        if stop_after is not None and position >= stop_after:
            break
        status, notes = defects.get(position, ('ok', None))
        checklist_store.update_item(item['id'], status, notes,
                                    user_id=technician[0], user_name=technician[1])

    return get_inspection(inspection['id'])


def main():
    app = create_app()
    with app.app_context():
        print("Registering technicians...")
        for tech_id, name, role in TECHNICIANS:
            register_technician(tech_id, name, role)
            print(f"  {tech_id} ({role}) -> /login?u={tech_id}")
        print(f"  {len(list_technicians())} login codes registered")

        print("Adding vehicles...")
        vehicles = [vehicle_service.add_vehicle(v) for v in VEHICLES]
        for v in vehicles:
            print(f"  {v['unit']}: {vehicle_service.describe_vehicle(v)}")

        technician = TECHNICIANS[0]

        clean = run_inspection(vehicles[0], technician)
        print(f"Clean inspection {clean['id']}: {clean['status']}")

        blocked = run_inspection(vehicles[1], technician, defects={
            0: ('major_defect', 'Brake pads below minimum thickness'),
            10: ('minor_defect', 'Tail lamp lens cracked'),
        })
        print(f"Blocked inspection {blocked['id']}: {blocked['status']} "
              f"work order {blocked['work_order_number']}")

        partial = run_inspection(vehicles[2], technician, stop_after=10)
        print(f"Partial inspection {partial['id']}: {partial['status']}")

    print("\nDone.")


if __name__ == '__main__':
    main()
