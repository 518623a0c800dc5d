"""
Closed status types for vehicles, inspections, checklist items and work orders.

Documents are stored as JSON, so every enum is a ``str`` subclass and is
written to the store through ``.value``.
"""
from enum import Enum


class VehicleStatus(str, Enum):
    ACTIVE = 'active'
    INACTIVE = 'inactive'
    MAINTENANCE = 'maintenance'


VEHICLE_CLASSES = ('A', 'B', 'C', 'D', 'E')


class InspectionType(str, Enum):
    PERIODIC = 'periodic'
    PRE_TRIP = 'pre_trip'
    POST_TRIP = 'post_trip'
    INCIDENT = 'incident'


class InspectionStatus(str, Enum):
    DRAFT = 'DRAFT'
    IN_PROGRESS = 'IN_PROGRESS'
    COMPLETED = 'COMPLETED'
    BLOCKED = 'BLOCKED'

    @property
    def is_terminal(self):
        return self in (InspectionStatus.COMPLETED, InspectionStatus.BLOCKED)


class ItemStatus(str, Enum):
    PENDING = 'pending'
    OK = 'ok'
    MINOR_DEFECT = 'minor_defect'
    MAJOR_DEFECT = 'major_defect'

    @property
    def is_defect(self):
        return self in (ItemStatus.MINOR_DEFECT, ItemStatus.MAJOR_DEFECT)


class DefectType(str, Enum):
    MINOR = 'MINOR'
    MAJOR = 'MAJOR'


class CompletionPath(str, Enum):
    """Which branch of the completion decision table an inspection took."""
    BLOCKING_DEFECTS = 'blocking_defects'
    MINOR_DEFECTS = 'minor_defects'
    NO_DEFECTS = 'no_defects'


class WorkOrderStatus(str, Enum):
    PENDING = 'PENDING'
    ASSIGNED = 'ASSIGNED'
    IN_PROGRESS = 'IN_PROGRESS'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'


class WorkOrderPriority(str, Enum):
    LOW = 'LOW'
    MEDIUM = 'MEDIUM'
    HIGH = 'HIGH'
    URGENT = 'URGENT'


class NotificationType(str, Enum):
    INSPECTION_COMPLETED = 'inspection_completed'
    MAJOR_DEFECT = 'major_defect'
    WORK_ORDER_CREATED = 'work_order_created'
