"""
Template loader for inspection checklists.
Templates are hierarchical: Sections > Items, selected by vehicle class.
"""
import json
import logging
import os

from openpyxl import load_workbook

from fleetcore.exceptions import NotFoundError, ValidationError
from fleetcore.models import VEHICLE_CLASSES
from fleetcore.services.db import get_document, put_document, get_index, append_to_index

logger = logging.getLogger(__name__)

TEMPLATE_INDEX = 'checklist_template_index'
SEED_PATH = os.path.join(os.path.dirname(__file__), 'template_seed.json')

REQUIRED_FLAGS = ('True', 'False', 'TRUE', 'FALSE')


def _key(template_id):
    return f'checklist_template:{template_id}'


def seed_templates(path=SEED_PATH) -> int:
    """Store bundled templates that are not in the store yet. Returns count added."""
    with open(path, 'r', encoding='utf-8') as f:
        templates = json.load(f)

    added = 0
    for template in templates:
        if get_document(_key(template['id'])) is None:
            save_template(template)
            added += 1
    return added


def save_template(template: dict) -> dict:
    """Validate and store a checklist template (insert or replace)."""
    if not template.get('id') or not template.get('name'):
        raise ValidationError('Template id and name are required')

    unknown = [c for c in template.get('vehicle_classes', []) if c not in VEHICLE_CLASSES]
    if unknown:
        raise ValidationError('Unknown vehicle class', details={'vehicle_classes': unknown})

    if not flatten_template(template):
        raise ValidationError('Template has no checklist items', details={'id': template['id']})

    is_new = get_document(_key(template['id'])) is None
    template.setdefault('is_active', True)
    put_document(_key(template['id']), template)
    if is_new:
        append_to_index(TEMPLATE_INDEX, template['id'])
    return template


def get_template(template_id: str) -> dict:
    template = get_document(_key(template_id))
    if template is None:
        raise NotFoundError('ChecklistTemplate', template_id)
    return template


def list_templates() -> list:
    return [get_template(tid) for tid in get_index(TEMPLATE_INDEX)]


def get_template_for_class(vehicle_class: str) -> dict:
    """First active template covering the vehicle class."""
    for template in list_templates():
        if template.get('is_active', True) and vehicle_class in template.get('vehicle_classes', []):
            return template
    raise NotFoundError('ChecklistTemplate', f'class={vehicle_class}')


def flatten_template(template: dict) -> list:
    """
    Flatten sections into one ordered list.
    Sections sort by their 'order' field; items keep their list position.
    Each entry carries its section so items can be cloned without a lookup.
    """
    result = []
    sections = sorted(template.get('sections', []), key=lambda s: s.get('order', 0))
    for section_index, section in enumerate(sections):
        for item_index, item in enumerate(section.get('items', [])):
            result.append({
                'section_id': section['id'],
                'section_name': section['name'],
                'section_index': section_index,
                'item_index': item_index,
                'item': item,
            })
    return result


# --- Spreadsheet import ---

def is_section_header(col0, col1):
    if not col0:
        return False
    if col1 in REQUIRED_FLAGS:
        return False
    return col0.isupper()


def is_checklist_item(col0, col1):
    return bool(col0) and col1 in REQUIRED_FLAGS


def template_from_rows(rows, template_id, name, vehicle_classes) -> dict:
    """
    Build a template from spreadsheet rows.

    Row layout: (title, required flag, description, vmrs code).
    A row with an upper-case title and no flag opens a new section; rows with a
    flag are items of the current section. Anything else is ignored.
    """
    sections = []
    current = None

    for row in rows:
        cells = [str(c).strip() if c is not None else '' for c in row]
        cells += [''] * (4 - len(cells))
        col0, col1, description, vmrs_code = cells[:4]

        if is_section_header(col0, col1):
            current = {
                'id': f's{len(sections) + 1}',
                'name': col0.title(),
                'order': len(sections) + 1,
                'items': [],
            }
            sections.append(current)
        elif is_checklist_item(col0, col1):
            if current is None:
                raise ValidationError('Checklist item found before any section header',
                                      details={'title': col0})
            item = {
                'id': f"{current['id']}i{len(current['items']) + 1}",
                'title': col0,
                'description': description,
                'is_required': col1.lower() == 'true',
            }
            if vmrs_code:
                item['vmrs_code'] = vmrs_code
            current['items'].append(item)

    return {
        'id': template_id,
        'name': name,
        'vehicle_classes': list(vehicle_classes),
        'is_active': True,
        'sections': [s for s in sections if s['items']],
    }


def read_workbook_rows(path, sheet_name=None) -> list:
    """Read all rows of a workbook sheet as value tuples."""
    wb = load_workbook(path, read_only=True, data_only=True)
    try:
        ws = wb[sheet_name] if sheet_name else wb.active
        return [tuple(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()
