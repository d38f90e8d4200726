# govledger/storage/sqlite.py
import os
import sqlite3
import json
from pathlib import Path
from typing import List, Optional

import structlog

from govledger.core.types import Snapshot
from govledger.core.canon import canonical_json_str, state_hash
from . import StorageBackend

logger = structlog.get_logger(__name__)


class SQLiteStorage(StorageBackend):
    """SQLite persistent storage for hash-chained ledger snapshots."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            env_path = os.environ.get("GOVLEDGER_DB_PATH")
            db_path = env_path if env_path else Path.cwd() / "govledger.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = self.db_path.resolve()

        self._conn: Optional[sqlite3.Connection] = None
        self._connect()

    def _connect(self):
        self._conn = sqlite3.connect(str(self.db_path), isolation_level=None)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_schema()

    def _create_schema(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS snapshots (
                ledger_id       TEXT    NOT NULL,
                version         INTEGER NOT NULL,
                saved_at        TEXT    NOT NULL,
                prev_hash       TEXT    NOT NULL,
                state_hash      TEXT    NOT NULL,
                canonical_json  TEXT    NOT NULL,
                PRIMARY KEY (ledger_id, version)
            )
        """)
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_saved_at ON snapshots(ledger_id, saved_at)")

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Storage connection is closed")
        return self._conn

    def append(self, snapshot: Snapshot) -> None:
        if not snapshot.state_hash:
            raise ValueError("Cannot persist snapshot without state_hash")
        if snapshot.state_hash != state_hash(snapshot.state):
            raise ValueError("Snapshot state_hash does not match its state")

        # Plain INSERT: a version collision means two writers raced
        self.conn.execute("""
            INSERT INTO snapshots
            (ledger_id, version, saved_at, prev_hash, state_hash, canonical_json)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            snapshot.ledger_id, snapshot.version, snapshot.saved_at,
            snapshot.prev_hash, snapshot.state_hash, canonical_json_str(snapshot.state),
        ))
        logger.debug("snapshot_saved", ledger_id=snapshot.ledger_id, version=snapshot.version)

    def _row_to_snapshot(self, ledger_id: str, row) -> Snapshot:
        version, saved_at, prev, digest, cjson = row
        return Snapshot(
            ledger_id=ledger_id,
            version=version,
            saved_at=saved_at,
            state=json.loads(cjson),
            prev_hash=prev,
            state_hash=digest,
        )

    def load_snapshots(self, ledger_id: str) -> List[Snapshot]:
        """All versions, oldest first. Raises ValueError if the hash chain is broken."""
        cursor = self.conn.execute("""
            SELECT version, saved_at, prev_hash, state_hash, canonical_json
            FROM snapshots WHERE ledger_id = ? ORDER BY version ASC
        """, (ledger_id,))

        loaded = [self._row_to_snapshot(ledger_id, row) for row in cursor]
        for i in range(1, len(loaded)):
            if loaded[i].prev_hash != loaded[i - 1].state_hash:
                raise ValueError(f"Chain broken at version {loaded[i].version}")
        return loaded

    def latest(self, ledger_id: str) -> Optional[Snapshot]:
        """Most recent version; its stored hash must match its content."""
        row = self.conn.execute("""
            SELECT version, saved_at, prev_hash, state_hash, canonical_json
            FROM snapshots WHERE ledger_id = ? ORDER BY version DESC LIMIT 1
        """, (ledger_id,)).fetchone()
        if row is None:
            return None
        snapshot = self._row_to_snapshot(ledger_id, row)
        if state_hash(snapshot.state) != snapshot.state_hash:
            raise ValueError(f"Snapshot {snapshot.version} of '{ledger_id}' was modified")
        return snapshot

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def list_ledgers(self) -> list[str]:
        """All ledger ids, most recently saved first."""
        cursor = self.conn.execute("""
            SELECT ledger_id
            FROM snapshots
            GROUP BY ledger_id
            ORDER BY MAX(saved_at) DESC
        """)
        return [row[0] for row in cursor.fetchall()]

    def get_snapshot_count(self, ledger_id: str) -> int:
        cursor = self.conn.execute(
            "SELECT COUNT(*) FROM snapshots WHERE ledger_id = ?",
            (ledger_id,)
        )
        return cursor.fetchone()[0]
