"""
Durable key-value stores backing the session (token + serialized user).
"""

import sys
from typing import Dict, MutableMapping, Optional

from sqlalchemy import create_engine, text

STATE_TABLE = "portal_state"


class MemoryStore:
    """Dict-backed store; state lives as long as the object."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SessionCookieStore:
    """Store over a mutable mapping such as Flask's signed-cookie ``session``."""

    def __init__(self, mapping: MutableMapping):
        self._mapping = mapping

    def get(self, key: str) -> Optional[str]:
        return self._mapping.get(key)

    def set(self, key: str, value: str) -> None:
        self._mapping[key] = value

    def remove(self, key: str) -> None:
        self._mapping.pop(key, None)


class SqlStore:
    """
    Store persisted in a single SQL table.

    Global and unscoped: every client sharing the database sees the same
    values and the most recent write wins.
    """

    def __init__(self, engine):
        self.engine = engine
        with engine.begin() as conn:
            conn.execute(text(
                f"CREATE TABLE IF NOT EXISTS {STATE_TABLE} ("
                " key VARCHAR(64) PRIMARY KEY,"
                " value TEXT NOT NULL)"
            ))

    def get(self, key: str) -> Optional[str]:
        sql = text(f"SELECT value FROM {STATE_TABLE} WHERE key = :k")
        with self.engine.connect() as conn:
            row = conn.execute(sql, {"k": key}).mappings().first()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        with self.engine.begin() as conn:
            conn.execute(text(f"DELETE FROM {STATE_TABLE} WHERE key = :k"), {"k": key})
            conn.execute(
                text(f"INSERT INTO {STATE_TABLE} (key, value) VALUES (:k, :v)"),
                {"k": key, "v": value},
            )

    def remove(self, key: str) -> None:
        with self.engine.begin() as conn:
            conn.execute(text(f"DELETE FROM {STATE_TABLE} WHERE key = :k"), {"k": key})


def init_engine(db_uri: str):
    """Create a SQLAlchemy engine for the state database and verify the connection."""
    engine = create_engine(db_uri, echo=False, future=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not open state DB:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Opened state DB.")
    return engine
