"""
Document store for FleetCore.
String-keyed JSON documents in a single SQLite table, one connection per
application context.
"""
import json
import logging
import os
import sqlite3

from flask import g, current_app

from fleetcore.utils import utc_now

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


def get_db():
    """Get database connection for current app context."""
    if 'db' not in g:
        db_path = current_app.config['DATABASE_PATH']
        g.db = sqlite3.connect(db_path)
        g.db.row_factory = sqlite3.Row
    return g.db


def close_db(e=None):
    """Close database connection at end of app context."""
    db = g.pop('db', None)
    if db is not None:
        db.close()


def init_db(app):
    """Initialize the store and seed checklist templates if missing."""
    app.teardown_appcontext(close_db)

    db_path = app.config['DATABASE_PATH']

    # Ensure data directory exists
    db_dir = os.path.dirname(db_path)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

    conn = sqlite3.connect(db_path)
    conn.execute(SCHEMA)
    conn.commit()
    conn.close()

    from fleetcore.services.template_loader import seed_templates
    seeded = seed_templates()
    if seeded:
        logger.info('Store initialized at %s (%d checklist templates seeded)', db_path, seeded)


# --- Key-value interface ---

def kv_get(key):
    """Return the raw string stored under key, or None."""
    row = get_db().execute('SELECT value FROM kv_store WHERE key = ?', [key]).fetchone()
    return row['value'] if row else None


def kv_set(key, value):
    """Store a raw string under key and commit."""
    db = get_db()
    db.execute("""
        INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
        ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
    """, [key, value, utc_now()])
    db.commit()


def kv_remove(key):
    """Delete key (no-op if absent) and commit."""
    db = get_db()
    db.execute('DELETE FROM kv_store WHERE key = ?', [key])
    db.commit()


# --- JSON documents ---

def get_document(key):
    data = kv_get(key)
    return json.loads(data) if data else None


def put_document(key, doc):
    kv_set(key, json.dumps(doc))
    return doc


def get_index(key):
    """Ordered id list stored under key (empty list if missing)."""
    return get_document(key) or []


def append_to_index(key, value):
    ids = get_index(key)
    ids.append(value)
    put_document(key, ids)
    return ids
