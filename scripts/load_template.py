#!/usr/bin/env python3
"""
Load a checklist template from an Excel file.

Usage:
    python scripts/load_template.py <workbook.xlsx> <template_id> "<name>" A,B,C [sheet]

Row layout: title | required flag (TRUE/FALSE) | description | VMRS code.
Upper-case titles without a flag start a new section.
"""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fleetcore import create_app
from fleetcore.services.template_loader import (
    flatten_template, read_workbook_rows, save_template, template_from_rows,
)


def main(argv):
    if len(argv) < 5:
        print(__doc__)
        return 1

    path, template_id, name, classes = argv[1:5]
    sheet_name = argv[5] if len(argv) > 5 else None

    print(f"Loading {path}...")
    rows = read_workbook_rows(path, sheet_name)
    print(f"  {len(rows)} rows read")

    template = template_from_rows(rows, template_id, name, classes.split(','))

    app = create_app()
    with app.app_context():
        save_template(template)

    print(f"Template {template_id}: {len(template['sections'])} sections, "
          f"{len(flatten_template(template))} items")
    return 0


if __name__ == '__main__':
    sys.exit(main(sys.argv))
