"""
database.py — SQLite schema creation, seed data, and database operations.

Holds the three collaborators the planning core talks to:
- PlanStore: save / delete / load plans (persistence)
- VarietyCatalog: variety lookup by (crop_id, variety_id) (inventory)
- get_setting / update_setting: user settings (date format, frost dates)

Uses WAL mode for concurrent read performance. The database path defaults to
data/garden_planner.db and can be overridden with GARDEN_DB_PATH or by
passing db_path explicitly.
"""

import logging
import os
import sqlite3
from datetime import datetime

from models import SowingPlan, TaskPlan, CropVariety, plan_from_dict

_LOGGER = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when a plan cannot be written to or removed from storage."""


def get_db_path():
    """Get the database path from environment or default."""
    default_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'garden_planner.db')
    return os.environ.get('GARDEN_DB_PATH', default_path)


def get_db(db_path=None):
    """Get a database connection with WAL mode and foreign keys enabled."""
    db_path = db_path or get_db_path()
    directory = os.path.dirname(db_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path=None):
    """Create all tables and indexes if they don't exist."""
    conn = get_db(db_path)
    cursor = conn.cursor()

    # Table: settings
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
    """)

    # Table: crops
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS crops (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            group_id TEXT NOT NULL DEFAULT ''
        )
    """)

    # Table: varieties
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS varieties (
            crop_id TEXT NOT NULL REFERENCES crops(id),
            variety_id TEXT NOT NULL,
            name TEXT NOT NULL,
            days_to_germination INTEGER NOT NULL DEFAULT 0,
            days_to_transplant INTEGER NOT NULL DEFAULT 0,
            days_to_harvest INTEGER NOT NULL DEFAULT 0,
            start_month INTEGER NOT NULL CHECK (start_month BETWEEN 1 AND 12),
            end_month INTEGER NOT NULL CHECK (end_month BETWEEN 1 AND 12),
            frost_sensitivity TEXT NOT NULL DEFAULT 'none'
                CHECK (frost_sensitivity IN ('none','low','moderate','high')),
            overwinter BOOLEAN DEFAULT 0,
            spacing_cm INTEGER,
            row_spacing_cm INTEGER,
            PRIMARY KEY (crop_id, variety_id)
        )
    """)

    # Table: sowing_plans
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS sowing_plans (
            id TEXT PRIMARY KEY,
            crop_id TEXT NOT NULL,
            variety_id TEXT NOT NULL,
            sowing_date TEXT NOT NULL,
            succession_interval INTEGER NOT NULL CHECK (succession_interval >= 1),
            succession_count INTEGER NOT NULL CHECK (succession_count >= 1),
            skip_sowing_date BOOLEAN DEFAULT 0,
            status TEXT CHECK (status IS NULL OR status IN ('damaged','failed','harvested')),
            harvest_date TEXT,
            estimated_harvest_date TEXT,
            damage_multiplier REAL,
            reason_code TEXT,
            notes TEXT,
            last_modified TEXT
        )
    """)

    # Table: task_plans
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS task_plans (
            id TEXT PRIMARY KEY,
            task_id TEXT NOT NULL DEFAULT '',
            task_name TEXT NOT NULL,
            task_description TEXT DEFAULT '',
            start_date TEXT NOT NULL,
            succession_interval INTEGER NOT NULL CHECK (succession_interval >= 1),
            succession_count INTEGER NOT NULL CHECK (succession_count >= 1),
            notes TEXT,
            last_modified TEXT
        )
    """)

    cursor.execute("""
        CREATE INDEX IF NOT EXISTS idx_sowing_plans_date
        ON sowing_plans(sowing_date)
    """)

    conn.commit()
    conn.close()


def seed_defaults(db_path=None):
    """Populate default data if tables are empty. Idempotent — skips if data exists."""
    conn = get_db(db_path)
    cursor = conn.cursor()

    # --- Settings ---
    defaults = {
        'date_format': 'dd/MM/yyyy',
        'last_spring_frost': '2024-04-01',
        'first_autumn_frost': '2024-11-01',
    }
    for key, value in defaults.items():
        cursor.execute("INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?)", (key, value))

    # --- Crops ---
    existing = cursor.execute("SELECT COUNT(*) FROM crops").fetchone()[0]
    if existing == 0:
        crops = [
            ('tomato', 'Tomato', 'nightshades'),
            ('lettuce', 'Lettuce', 'lettuce'),
            ('carrot', 'Carrot', 'roots'),
            ('cabbage', 'Cabbage', 'brassicas'),
            ('pea', 'Pea', 'legumes'),
            ('garlic', 'Garlic', 'alliums'),
        ]
        cursor.executemany("INSERT INTO crops (id, name, group_id) VALUES (?, ?, ?)", crops)

    # --- Varieties ---
    existing = cursor.execute("SELECT COUNT(*) FROM varieties").fetchone()[0]
    if existing == 0:
        varieties = [
            # crop, variety, name, germ, transplant, harvest, start, end, frost, overwinter, spacing, rows
            ('tomato', 'moneymaker', 'Moneymaker', 7, 56, 120, 2, 4, 'high', 0, 45, 60),
            ('lettuce', 'little-gem', 'Little Gem', 7, 28, 56, 3, 8, 'low', 0, 20, 30),
            ('carrot', 'nantes', 'Nantes 2', 14, 0, 75, 3, 7, 'low', 0, 5, 30),
            ('cabbage', 'january-king', 'January King', 7, 35, 150, 4, 6, 'none', 1, 45, 60),
            ('pea', 'kelvedon', 'Kelvedon Wonder', 10, 0, 80, 3, 6, 'moderate', 0, 5, 45),
            ('garlic', 'germidour', 'Germidour', 21, 0, 240, 10, 3, 'none', 1, 15, 30),
        ]
        cursor.executemany(
            """INSERT INTO varieties
               (crop_id, variety_id, name, days_to_germination, days_to_transplant,
                days_to_harvest, start_month, end_month, frost_sensitivity,
                overwinter, spacing_cm, row_spacing_cm)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            varieties
        )

    conn.commit()
    conn.close()


# ========================================
# Settings
# ========================================

def get_setting(key, default=None, db_path=None):
    """Get a setting value by key."""
    conn = get_db(db_path)
    row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    if row:
        return row['value']
    return default


def get_settings(db_path=None):
    """All settings as a plain dict."""
    conn = get_db(db_path)
    rows = conn.execute("SELECT key, value FROM settings ORDER BY key").fetchall()
    conn.close()
    return {row['key']: row['value'] for row in rows}


def update_setting(key, value, db_path=None):
    """Insert or replace a setting value."""
    conn = get_db(db_path)
    conn.execute("INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)", (key, str(value)))
    conn.commit()
    conn.close()


# ========================================
# Inventory (varieties)
# ========================================

def _row_to_variety(row):
    return CropVariety(
        crop_id=row['crop_id'],
        variety_id=row['variety_id'],
        name=row['name'],
        days_to_germination=row['days_to_germination'],
        days_to_transplant=row['days_to_transplant'],
        days_to_harvest=row['days_to_harvest'],
        start_month=row['start_month'],
        end_month=row['end_month'],
        frost_sensitivity=row['frost_sensitivity'],
        overwinter=bool(row['overwinter']),
        group_id=row['group_id'] or '',
        spacing_cm=row['spacing_cm'],
        row_spacing_cm=row['row_spacing_cm'],
    )


_VARIETY_SELECT = """
    SELECT v.*, c.group_id
    FROM varieties v
    JOIN crops c ON v.crop_id = c.id
"""


def get_variety(crop_id, variety_id, db_path=None):
    """Look up one variety. Returns None for unknown ids."""
    conn = get_db(db_path)
    row = conn.execute(
        _VARIETY_SELECT + " WHERE v.crop_id = ? AND v.variety_id = ?",
        (crop_id, variety_id)
    ).fetchone()
    conn.close()
    return _row_to_variety(row) if row else None


def get_varieties(crop_id=None, db_path=None):
    """Retrieve varieties, optionally filtered by crop."""
    conn = get_db(db_path)
    if crop_id:
        rows = conn.execute(
            _VARIETY_SELECT + " WHERE v.crop_id = ? ORDER BY v.name",
            (crop_id,)
        ).fetchall()
    else:
        rows = conn.execute(_VARIETY_SELECT + " ORDER BY v.crop_id, v.name").fetchall()
    conn.close()
    return [_row_to_variety(row) for row in rows]


class VarietyCatalog:
    """Inventory collaborator backed by the varieties table."""

    def __init__(self, db_path=None):
        self.db_path = db_path

    def get_variety(self, crop_id, variety_id):
        return get_variety(crop_id, variety_id, db_path=self.db_path)

    def list_varieties(self, crop_id=None):
        return get_varieties(crop_id, db_path=self.db_path)


# ========================================
# Plans
# ========================================

_SOWING_COLUMNS = (
    'id', 'crop_id', 'variety_id', 'sowing_date', 'succession_interval',
    'succession_count', 'skip_sowing_date', 'status', 'harvest_date',
    'estimated_harvest_date', 'damage_multiplier', 'reason_code', 'notes',
    'last_modified',
)

_TASK_COLUMNS = (
    'id', 'task_id', 'task_name', 'task_description', 'start_date',
    'succession_interval', 'succession_count', 'notes', 'last_modified',
)


class PlanStore:
    """Persistence collaborator: writes complete plans to SQLite."""

    def __init__(self, db_path=None):
        self.db_path = db_path

    def save(self, plan):
        """
        Insert or replace a plan.

        Raises:
            PersistenceError: if the write fails.
        """
        if isinstance(plan, SowingPlan):
            table, columns = 'sowing_plans', _SOWING_COLUMNS
        elif isinstance(plan, TaskPlan):
            table, columns = 'task_plans', _TASK_COLUMNS
        else:
            raise PersistenceError(f"Unsupported plan type: {type(plan).__name__}")

        values = [getattr(plan, column) for column in columns]
        placeholders = ', '.join('?' for _ in columns)
        try:
            conn = get_db(self.db_path)
            try:
                conn.execute(
                    f"INSERT OR REPLACE INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
                    values
                )
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError(f"Could not save plan {plan.id}: {e}") from e
        _LOGGER.debug("Saved %s plan %s", plan.type, plan.id)

    def delete(self, plan_id):
        """
        Remove a plan of either type.

        Raises:
            PersistenceError: if the delete fails.
        """
        try:
            conn = get_db(self.db_path)
            try:
                conn.execute("DELETE FROM sowing_plans WHERE id = ?", (plan_id,))
                conn.execute("DELETE FROM task_plans WHERE id = ?", (plan_id,))
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError(f"Could not delete plan {plan_id}: {e}") from e
        _LOGGER.debug("Deleted plan %s", plan_id)

    def load_plans(self):
        """Load every stored plan, sowing plans first, each ordered by date."""
        conn = get_db(self.db_path)
        try:
            sowing_rows = conn.execute(
                "SELECT * FROM sowing_plans ORDER BY sowing_date, id"
            ).fetchall()
            task_rows = conn.execute(
                "SELECT * FROM task_plans ORDER BY start_date, id"
            ).fetchall()
        finally:
            conn.close()

        plans = []
        for row in sowing_rows:
            plans.append(plan_from_dict(dict(row, type='sowing')))
        for row in task_rows:
            plans.append(plan_from_dict(dict(row, type='task')))
        return plans


def now_iso():
    """Timestamp used for last_modified."""
    return datetime.now().isoformat(timespec='seconds')
