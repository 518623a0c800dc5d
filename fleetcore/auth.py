"""
Authentication decorators and utilities.
Centralized auth for all routes.

Role Hierarchy (highest to lowest):
- admin: Full access to everything
- manager: Fleet dashboards, work order review
- dispatcher: Vehicle registry, work order dispatch
- technician: Runs inspections, marks checklist items
"""
from functools import wraps

from flask import session, jsonify

from fleetcore.exceptions import NotFoundError, ValidationError
from fleetcore.models import InspectionStatus
from fleetcore.services.db import get_document, put_document, get_index, append_to_index

TECHNICIAN_INDEX = 'technician_index'

# Role hierarchy - higher index = more permissions
ROLE_HIERARCHY = {
    'technician': 1,
    'dispatcher': 2,
    'manager': 3,
    'admin': 4
}


def get_role_level(role):
    """Get numeric level for role comparison."""
    return ROLE_HIERARCHY.get(role, 0)


def can_edit_inspection(inspection_status, user_role):
    """
    Determine if user can edit an inspection based on status and role.

    Locking rules:
    - Terminal states (COMPLETED, BLOCKED) are locked for everyone
    - technician and above can edit DRAFT and IN_PROGRESS inspections

    Returns: (can_edit: bool, reason: str or None)
    """
    status = InspectionStatus(inspection_status)
    if status.is_terminal:
        return False, f'This inspection is {status.value} and cannot be edited.'
    if get_role_level(user_role) < get_role_level('technician'):
        return False, 'Only technicians can record inspection results.'
    return True, None


def require_auth(f):
    """Decorator: require any authenticated user."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if 'user_id' not in session:
            return jsonify({'error': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated


def require_role(min_role):
    """Decorator: require user to have at least min_role level."""
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            if 'user_id' not in session:
                return jsonify({'error': 'Authentication required'}), 401
            if get_role_level(session.get('role')) < get_role_level(min_role):
                return jsonify({'error': f'{min_role} role required'}), 403
            return f(*args, **kwargs)
        return decorated
    return decorator


# --- Technician registry (login codes) ---

def register_technician(technician_id, name, role='technician', active=True):
    if role not in ROLE_HIERARCHY:
        raise ValidationError('Unknown role', details={'role': role})
    key = f'technician:{technician_id}'
    is_new = get_document(key) is None
    technician = {'id': technician_id, 'name': name, 'role': role, 'active': active}
    put_document(key, technician)
    if is_new:
        append_to_index(TECHNICIAN_INDEX, technician_id)
    return technician


def get_technician(technician_id):
    technician = get_document(f'technician:{technician_id}')
    if technician is None:
        raise NotFoundError('Technician', technician_id)
    return technician


def list_technicians():
    return [get_technician(tid) for tid in get_index(TECHNICIAN_INDEX)]
