"""
Shared pytest fixtures for the FleetCore test suite.

Provides:
    - app: Flask application on a fresh SQLite file (function-scoped)
    - ctx: Application context for calling services directly (autouse)
    - client / auth_client: Flask test clients, anonymous and logged in
    - small_template: 3-item checklist for vehicle class E
    - vehicle / inspection: Pre-created entities using the small template
"""
import pytest

from fleetcore import create_app
from fleetcore.auth import register_technician
from fleetcore.services import vehicle_service
from fleetcore.services.inspection_service import create_inspection
from fleetcore.services.template_loader import get_template, save_template

SMALL_TEMPLATE = {
    'id': 'ct-small',
    'name': 'Light vehicle walkaround',
    'vehicle_classes': ['E'],
    'sections': [
        {'id': 's1', 'name': 'Brakes', 'order': 1, 'items': [
            {'id': 's1i1', 'title': 'Service brake', 'vmrs_code': '013-001', 'is_required': True},
        ]},
        {'id': 's2', 'name': 'Lights', 'order': 2, 'items': [
            {'id': 's2i1', 'title': 'Headlights', 'is_required': True},
            {'id': 's2i2', 'title': 'Fog lights', 'is_required': False},
        ]},
    ],
}


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture()
def app(tmp_path):
    """Flask application backed by a throwaway database file."""
    return create_app('testing', {'DATABASE_PATH': str(tmp_path / 'test.db')})


@pytest.fixture(autouse=True)
def ctx(app):
    """Per-test application context so services can reach the store."""
    with app.app_context():
        yield


@pytest.fixture()
def client(app):
    """Flask test client without a session."""
    return app.test_client()


@pytest.fixture()
def auth_client(app):
    """Test client logged in as a technician."""
    register_technician('tech01', 'Marc Tremblay', 'technician')
    test_client = app.test_client()
    with test_client.session_transaction() as sess:
        sess['user_id'] = 'tech01'
        sess['user_name'] = 'Marc Tremblay'
        sess['role'] = 'technician'
    return test_client


# ── Convenience fixtures ─────────────────────────────────────────────────


def make_vehicle(**overrides):
    data = {
        'vin': '1FDUF5HT6KEE70101',
        'plate': 'L678901',
        'unit': '501',
        'vehicle_class': 'E',
        'make': 'Ford',
        'model': 'F-550',
        'year': 2019,
    }
    data.update(overrides)
    return vehicle_service.add_vehicle(data)


@pytest.fixture()
def small_template():
    """Restrict the bundled template to classes A-D and give class E three items."""
    heavy = get_template('ct-heavy')
    heavy['vehicle_classes'] = ['A', 'B', 'C', 'D']
    save_template(heavy)
    return save_template(dict(SMALL_TEMPLATE))


@pytest.fixture()
def vehicle(small_template):
    return make_vehicle()


@pytest.fixture()
def inspection(vehicle):
    return create_inspection(vehicle['id'], 'periodic', 'tech01', 'Marc Tremblay')
