"""
Defect classifier.
Pure mapping from checklist items to the defect records a work order is built from.
"""
from fleetcore.models import DefectType, ItemStatus


def defect_type_for(status) -> DefectType | None:
    """MAJOR/MINOR for defect statuses, None for ok/pending."""
    status = ItemStatus(status)
    if status is ItemStatus.MAJOR_DEFECT:
        return DefectType.MAJOR
    if status is ItemStatus.MINOR_DEFECT:
        return DefectType.MINOR
    if status in (ItemStatus.OK, ItemStatus.PENDING):
        return None
    raise ValueError(f'Unhandled item status: {status}')


def describe_defect(item: dict) -> str:
    if item.get('notes'):
        return f"{item['title']}: {item['notes']}"
    return item['title']


def classify_defects(items: list) -> list:
    """
    Defect records for every minor/major item, in item order.

    Each record is {description, component_code, defect_type}; component_code
    is the item's VMRS code, falling back to its section id.
    """
    defects = []
    for item in sorted(items, key=lambda i: i['ordinal']):
        defect_type = defect_type_for(item['status'])
        if defect_type is None:
            continue
        defects.append({
            'description': describe_defect(item),
            'component_code': item.get('vmrs_code') or item['section_id'],
            'defect_type': defect_type.value,
        })
    return defects
