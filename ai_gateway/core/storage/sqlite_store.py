"""
SQLite-backed rotation cursor storage.

Each advance is one ``INSERT ... ON CONFLICT DO UPDATE ... RETURNING``
statement, so SQLite applies the increment atomically even when several
gateway processes share the same database file.
"""

import asyncio
import sqlite3
import threading
from pathlib import Path

from . import AtomicCounterStore

ROTATION_STATE_TABLE = "rotation_state"

_UPSERT_SQL = f"""
    INSERT INTO {ROTATION_STATE_TABLE} (service_name, next_index, last_updated)
    VALUES (?1, 1, CURRENT_TIMESTAMP)
    ON CONFLICT(service_name) DO UPDATE
    SET
        next_index = (next_index + 1) % ?2,
        last_updated = CURRENT_TIMESTAMP
    RETURNING next_index
"""


class SqliteCounterStore(AtomicCounterStore):
    """Counters persisted in a SQLite table.

    The connection is opened lazily and shared behind a threading lock;
    statements run in a worker thread so the event loop never blocks on disk.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path).expanduser()
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA busy_timeout = 5000")
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {ROTATION_STATE_TABLE} (
                    service_name TEXT    PRIMARY KEY,
                    next_index   INTEGER NOT NULL,
                    last_updated TIMESTAMP
                )
                """
            )
            conn.commit()
            self._conn = conn
        return self._conn

    def _advance_sync(self, key: str, modulus: int) -> int:
        with self._lock:
            conn = self._connect()
            rows = conn.execute(_UPSERT_SQL, (key, modulus)).fetchall()
            conn.commit()
        if not rows:
            raise sqlite3.OperationalError(f"upsert for '{key}' returned no row")
        return int(rows[0][0])

    async def advance_and_wrap(self, key: str, modulus: int) -> int:
        if modulus < 1:
            raise ValueError(f"modulus must be at least 1, got {modulus}")
        return await asyncio.to_thread(self._advance_sync, key, modulus)

    def _close_sync(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    async def close(self) -> None:
        await asyncio.to_thread(self._close_sync)

    def __repr__(self) -> str:
        return f"SqliteCounterStore(db_path={str(self.db_path)!r})"
