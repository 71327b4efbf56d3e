"""
SQLite backing for the durable key-value storage slots.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator


@contextmanager
def get_db(db_path: str) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection."""
    conn = sqlite3.connect(db_path)
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: str):
    """Initialize the database with required tables."""
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    with get_db(db_path) as conn:
        cursor = conn.cursor()

        # One row per storage slot; keys carry their own user namespace
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        conn.commit()


def health_check(db_path: str) -> bool:
    """Check database connectivity."""
    try:
        with get_db(db_path) as conn:
            conn.execute("SELECT 1 FROM kv_store LIMIT 1")
        return True
    except sqlite3.Error:
        return False
