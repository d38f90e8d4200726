# govledger/core/types.py
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Hashable, Tuple

from govledger.core.errors import InvalidAccount, InvalidAmount

Account = str                   # opaque address-like handle

DECIMALS = 18
SCALE = 10 ** DECIMALS
INITIAL_SUPPLY = 1_000_000 * SCALE
ZERO_ACCOUNT = "0x" + "0" * 40

TOKEN_NAME = "Group 1 Token"
TOKEN_SYMBOL = "G1TK"
DEFAULT_SALE_PRICE = 10 ** 15   # 0.001 native per whole unit

MINT_QUORUM = 3
WITHDRAWAL_QUORUM = 2


class RequestState(str, Enum):
    """Lifecycle of a keyed approval request."""
    NO_REQUEST = "no_request"
    PARTIAL_APPROVAL = "partial_approval"
    EXECUTED = "executed"


@dataclass(frozen=True)
class ApprovalOutcome:
    """What a single approval call did to its request."""
    key: Hashable
    state: RequestState
    approvals: Tuple[Account, ...] = ()
    threshold: int = 0

    @property
    def executed(self) -> bool:
        return self.state is RequestState.EXECUTED

    @property
    def remaining(self) -> int:
        if self.executed:
            return 0
        return self.threshold - len(self.approvals)


def check_account(account: Any, role: str = "account") -> Account:
    if not isinstance(account, str) or not account.strip() or account == ZERO_ACCOUNT:
        raise InvalidAccount(f"Invalid {role}", {role: account})
    return account


def check_amount(amount: Any, allow_zero: bool = False) -> int:
    # bool is an int subclass; True is not an amount
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidAmount("Amount must be an integer", {"amount": amount})
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidAmount("Amount must be positive", {"amount": amount})
    return amount


@dataclass(frozen=True)
class Snapshot:
    """One persisted version of a ledger's logical state, hash-chained to the previous one."""
    ledger_id: str
    version: int                    # 0 for the deployment snapshot
    saved_at: str                   # ISO 8601 UTC
    state: dict = field(default_factory=dict)
    prev_hash: str = ""             # state_hash of version - 1, empty for version 0
    state_hash: str = ""

    def to_dict(self) -> dict:
        return asdict(self)
