# govledger/governance/reentrancy.py
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog

from govledger.core.errors import Reentrant

logger = structlog.get_logger(__name__)


class ReentrancyGuard:
    """
    Per-token flag that is set while a guarded entry point runs.

    Any guarded entry point must acquire it through hold(); a second
    acquisition while the first is in flight (e.g. from a payment hook that
    calls back into the token) fails fast with Reentrant.
    """

    def __init__(self):
        self._holder: Optional[str] = None

    @property
    def locked(self) -> bool:
        return self._holder is not None

    @property
    def holder(self) -> Optional[str]:
        return self._holder

    @contextmanager
    def hold(self, entry_point: str) -> Iterator[None]:
        if self._holder is not None:
            logger.warning("reentry_blocked", entry_point=entry_point, held_by=self._holder)
            raise Reentrant(
                "Reentrant call",
                {"entry_point": entry_point, "held_by": self._holder},
            )
        self._holder = entry_point
        try:
            yield
        finally:
            self._holder = None
