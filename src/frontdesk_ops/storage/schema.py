"""SQLite schema for the local cache.

Every table has an autoincrement surrogate key and a creation timestamp
defaulting to the current time. ``members.external_id`` is unique so the
store itself refuses a second row for the same directory identity, and
``cloud_sync`` holds exactly one ledger row per (table_name, record_id).
"""

import sqlite3

# Tables whose local writes are mirrored to the cloud store and therefore
# tracked in the cloud_sync ledger.
CLOUD_SYNCED_TABLES = frozenset(
    {"members", "check_ins", "incidents", "announcements", "knowledge_base"}
)

_TABLES = {
    "members": """
        CREATE TABLE IF NOT EXISTS members (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            external_id TEXT UNIQUE,
            first_name TEXT,
            last_name TEXT,
            email TEXT,
            phone TEXT,
            membership_status TEXT DEFAULT 'unknown',
            membership_expiry TEXT,
            last_synced_at TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
    "check_ins": """
        CREATE TABLE IF NOT EXISTS check_ins (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            member_id TEXT,
            member_name TEXT,
            purpose TEXT,
            notes TEXT,
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
    "incidents": """
        CREATE TABLE IF NOT EXISTS incidents (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            reported_by TEXT,
            description TEXT NOT NULL,
            location TEXT,
            incident_type TEXT,
            incident_date TEXT,
            incident_time TEXT,
            action_taken TEXT,
            status TEXT DEFAULT 'open',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
    "announcements": """
        CREATE TABLE IF NOT EXISTS announcements (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            content TEXT NOT NULL,
            priority TEXT DEFAULT 'normal',
            expiry_date TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
    "knowledge_base": """
        CREATE TABLE IF NOT EXISTS knowledge_base (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            content TEXT NOT NULL,
            category TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
    "cloud_sync": """
        CREATE TABLE IF NOT EXISTS cloud_sync (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            table_name TEXT NOT NULL,
            record_id INTEGER NOT NULL,
            sync_status TEXT DEFAULT 'pending',
            last_attempt_at TIMESTAMP,
            error_message TEXT,
            generation INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (table_name, record_id)
        )
    """,
}

# Columns added after the first release: (table, column, DDL)
_ADDED_COLUMNS = (
    (
        "cloud_sync",
        "generation",
        "ALTER TABLE cloud_sync ADD COLUMN generation INTEGER NOT NULL DEFAULT 0",
    ),
)

_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_check_ins_timestamp ON check_ins(timestamp DESC)",
    "CREATE INDEX IF NOT EXISTS idx_cloud_sync_status ON cloud_sync(sync_status)",
)


def table_names() -> list[str]:
    return list(_TABLES)


def init_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes if they do not exist yet."""
    for ddl in _TABLES.values():
        conn.execute(ddl)
    for table, column, ddl in _ADDED_COLUMNS:
        existing = {row[1] for row in conn.execute(f"PRAGMA table_info({table})")}
        if column not in existing:
            conn.execute(ddl)
    for ddl in _INDEXES:
        conn.execute(ddl)
