# govledger/chain/session.py
from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import List, Optional, Union

import structlog

from govledger.chain.token import GovernedToken
from govledger.core.canon import state_hash
from govledger.core.types import Account, Snapshot
from govledger.storage import StorageBackend, create_storage

logger = structlog.get_logger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class LedgerSession:
    """
    Binds one ledger id to its token and, optionally, persistent storage.
    Every commit() appends a snapshot chained to the previous one.
    """
    ledger_id: str
    storage: Optional[Union[StorageBackend, str]] = None
    _token: Optional[GovernedToken] = field(default=None, repr=False)
    _last: Optional[Snapshot] = field(default=None, repr=False)

    def __post_init__(self):
        if isinstance(self.storage, str):
            stripped = self.storage.strip()
            if stripped.startswith("sqlite://"):
                self.storage = create_storage(stripped)
            elif stripped:
                # Plain file path → SQLite
                self.storage = create_storage(f"sqlite://{stripped}")
            else:
                self.storage = None

        if self.storage and self._token is None:
            latest = self.storage.latest(self.ledger_id)
            if latest is not None:
                self._token = GovernedToken.from_state(latest.state)
                self._last = latest
                logger.info("ledger_loaded", ledger_id=self.ledger_id, version=latest.version)

    @property
    def initialized(self) -> bool:
        return self._token is not None

    @property
    def token(self) -> GovernedToken:
        if self._token is None:
            raise RuntimeError(f"Ledger '{self.ledger_id}' has not been initialized")
        return self._token

    @property
    def version(self) -> Optional[int]:
        return self._last.version if self._last else None

    def create(
        self,
        owner: Account,
        guardian1: Account,
        guardian2: Account,
        guardian3: Account,
        **kwargs,
    ) -> GovernedToken:
        if self._token is not None:
            raise RuntimeError(f"Ledger '{self.ledger_id}' already exists")
        self._token = GovernedToken(owner, guardian1, guardian2, guardian3, **kwargs)
        return self._token

    def snapshot(self, timestamp: Optional[str] = None) -> Snapshot:
        """Next snapshot of the current state, not yet persisted."""
        state = self.token.to_state()
        return Snapshot(
            ledger_id=self.ledger_id,
            version=0 if self._last is None else self._last.version + 1,
            saved_at=timestamp or utc_now(),
            state=state,
            prev_hash=self._last.state_hash if self._last else "",
            state_hash=state_hash(state),
        )

    def commit(self, timestamp: Optional[str] = None) -> Snapshot:
        snap = self.snapshot(timestamp)
        if self.storage:
            self.storage.append(snap)
        self._last = snap
        return snap

    def history(self) -> List[Snapshot]:
        if not self.storage:
            return [self._last] if self._last else []
        return self.storage.load_snapshots(self.ledger_id)

    def close(self) -> None:
        if self.storage:
            self.storage.close()
            logger.debug("storage_closed", ledger_id=self.ledger_id)
            self.storage = None
