# govledger/governance/quorum.py
"""
Quorum approval engine shared by minting (3-of-3) and withdrawal (2-of-3).

Each request key (e.g. (recipient, amount) or amount) owns an ordered set
of guardian approvals. The approval that reaches the threshold runs the
guarded action; the entry is removed only if the action succeeded, so a
failing action leaves the request exactly as it was.
"""

from enum import Enum
from typing import Callable, Dict, Hashable, Iterable, List, Tuple

import structlog

from govledger.core.errors import DuplicateApproval, NotGuardian
from govledger.core.types import Account, ApprovalOutcome, RequestState
from govledger.governance.config import GovernanceConfig

logger = structlog.get_logger(__name__)


class ApprovalEvent(str, Enum):
    RECORD = "record"               # approval added, still below threshold
    REACH_QUORUM = "reach_quorum"   # approval hits the threshold


TRANSITIONS: Dict[Tuple[RequestState, ApprovalEvent], RequestState] = {
    (RequestState.NO_REQUEST, ApprovalEvent.RECORD): RequestState.PARTIAL_APPROVAL,
    (RequestState.NO_REQUEST, ApprovalEvent.REACH_QUORUM): RequestState.EXECUTED,
    (RequestState.PARTIAL_APPROVAL, ApprovalEvent.RECORD): RequestState.PARTIAL_APPROVAL,
    (RequestState.PARTIAL_APPROVAL, ApprovalEvent.REACH_QUORUM): RequestState.EXECUTED,
}


class QuorumTracker:
    """Keyed approval sets with a configurable threshold over a fixed guardian set."""

    def __init__(self, governance: GovernanceConfig, threshold: int, name: str = "quorum"):
        if not 1 <= threshold <= len(governance):
            raise ValueError(
                f"Threshold must be between 1 and {len(governance)}, got {threshold}"
            )
        self.governance = governance
        self.threshold = threshold
        self.name = name
        self._pending: Dict[Hashable, List[Account]] = {}

    def state_of(self, key: Hashable) -> RequestState:
        if key in self._pending:
            return RequestState.PARTIAL_APPROVAL
        return RequestState.NO_REQUEST

    def approvals_for(self, key: Hashable) -> Tuple[Account, ...]:
        return tuple(self._pending.get(key, ()))

    def pending(self) -> Dict[Hashable, Tuple[Account, ...]]:
        return {k: tuple(v) for k, v in self._pending.items()}

    def require_guardian(self, caller: Account) -> None:
        if not self.governance.is_guardian(caller):
            raise NotGuardian(f"{self.name}: caller is not a guardian", {"caller": caller})

    def approve(
        self,
        caller: Account,
        key: Hashable,
        action: Callable[[], None],
    ) -> ApprovalOutcome:
        self.require_guardian(caller)

        current = self._pending.get(key, [])
        if caller in current:
            raise DuplicateApproval(
                f"{self.name}: guardian already approved this request",
                {"caller": caller, "key": key},
            )

        approvals = current + [caller]
        event = ApprovalEvent.REACH_QUORUM if len(approvals) >= self.threshold else ApprovalEvent.RECORD
        next_state = TRANSITIONS[(self.state_of(key), event)]

        if next_state is RequestState.EXECUTED:
            action()
            self._pending.pop(key, None)
            logger.info(f"{self.name}_executed", key=key, approvals=approvals)
        else:
            self._pending[key] = approvals
            logger.info(
                f"{self.name}_approved",
                key=key,
                caller=caller,
                count=len(approvals),
                threshold=self.threshold,
            )

        return ApprovalOutcome(
            key=key,
            state=next_state,
            approvals=tuple(approvals),
            threshold=self.threshold,
        )

    def load(self, entries: Iterable[Tuple[Hashable, Iterable[Account]]]) -> None:
        """Restore pending approvals (e.g. from a snapshot). Validates membership."""
        restored: Dict[Hashable, List[Account]] = {}
        for key, approvals in entries:
            approvals = list(approvals)
            for g in approvals:
                if not self.governance.is_guardian(g):
                    raise NotGuardian(f"{self.name}: stored approval from non-guardian", {"caller": g})
            if len(set(approvals)) != len(approvals) or not 0 < len(approvals) < self.threshold:
                raise ValueError(f"{self.name}: invalid stored approval set for {key!r}")
            restored[key] = approvals
        self._pending = restored
