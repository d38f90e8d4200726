# govledger/storage/__init__.py
"""
Snapshot chain storage.

A ledger's history is an append-only chain of Snapshots: version n carries
prev_hash == state_hash of version n-1 (the first has prev_hash ""). Backends
persist that chain and refuse to hand back one whose links or hashes do not
hold.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from govledger.core.types import Snapshot


class StorageBackend(ABC):
    """Append-only, per-ledger snapshot chain."""

    @abstractmethod
    def append(self, snapshot: Snapshot) -> None:
        """Store the next link. ValueError if its state_hash is missing or
        does not match its state."""

    @abstractmethod
    def load_snapshots(self, ledger_id: str) -> List[Snapshot]:
        """Whole chain, oldest first; ValueError on a broken link."""

    @abstractmethod
    def latest(self, ledger_id: str) -> Optional[Snapshot]:
        """Head of the chain, or None for an unknown ledger."""

    @abstractmethod
    def close(self) -> None:
        ...


def create_storage(uri: str) -> StorageBackend:
    """Backend for a storage URI. Only sqlite://<path> is supported;
    sqlite:////abs/path.db is accepted as well."""
    scheme, sep, rest = uri.partition("://")
    if not sep or scheme != "sqlite":
        raise ValueError(f"Unsupported storage URI: {uri}")
    from .sqlite import SQLiteStorage
    if rest.startswith("//"):
        rest = rest[1:]
    return SQLiteStorage(Path(rest).resolve())


from .sqlite import SQLiteStorage

__all__ = ["StorageBackend", "create_storage", "SQLiteStorage"]
