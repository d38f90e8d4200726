# govledger/book/ledger.py
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

import structlog

from govledger.core.errors import InsufficientAllowance, InsufficientBalance
from govledger.core.types import Account, check_account, check_amount

logger = structlog.get_logger(__name__)


@dataclass
class Ledger:
    """
    Account book of fungible units.
    Owns balances, allowances and the total supply; the sum of all balances
    equals total_supply between any two calls.
    """
    balances: Dict[Account, int] = field(default_factory=dict)
    allowances: Dict[Tuple[Account, Account], int] = field(default_factory=dict)
    total_supply: int = 0

    def balance_of(self, account: Account) -> int:
        return self.balances.get(account, 0)

    def credit(self, account: Account, amount: int) -> None:
        """Mint: increases both the account balance and the total supply."""
        check_account(account, "recipient")
        check_amount(amount)
        self.balances[account] = self.balance_of(account) + amount
        self.total_supply += amount
        logger.debug("ledger_credit", account=account, amount=amount, total_supply=self.total_supply)

    def transfer(self, sender: Account, to: Account, amount: int) -> None:
        check_account(sender, "sender")
        check_account(to, "receiver")
        check_amount(amount, allow_zero=True)

        available = self.balance_of(sender)
        if available < amount:
            raise InsufficientBalance(
                "Transfer amount exceeds balance",
                {"sender": sender, "balance": available, "amount": amount},
            )

        self.balances[sender] = available - amount
        self.balances[to] = self.balance_of(to) + amount
        logger.debug("ledger_transfer", sender=sender, to=to, amount=amount)

    # ── ERC-20 allowances

    def allowance(self, owner: Account, spender: Account) -> int:
        return self.allowances.get((owner, spender), 0)

    def approve(self, owner: Account, spender: Account, amount: int) -> None:
        check_account(owner, "owner")
        check_account(spender, "spender")
        check_amount(amount, allow_zero=True)
        if amount:
            self.allowances[(owner, spender)] = amount
        else:
            self.allowances.pop((owner, spender), None)

    def transfer_from(self, spender: Account, sender: Account, to: Account, amount: int) -> None:
        check_amount(amount, allow_zero=True)
        allowed = self.allowance(sender, spender)
        if allowed < amount:
            raise InsufficientAllowance(
                "Transfer amount exceeds allowance",
                {"owner": sender, "spender": spender, "allowance": allowed, "amount": amount},
            )
        self.transfer(sender, to, amount)
        self.approve(sender, spender, allowed - amount)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Restore balances, allowances and supply if the enclosed block raises."""
        balances = dict(self.balances)
        allowances = dict(self.allowances)
        total_supply = self.total_supply
        try:
            yield
        except Exception:
            self.balances.clear()
            self.balances.update(balances)
            self.allowances.clear()
            self.allowances.update(allowances)
            self.total_supply = total_supply
            raise

    # ── views / serialization

    def holders(self) -> List[Tuple[Account, int]]:
        """Non-zero balances, largest first."""
        return sorted(
            ((a, b) for a, b in self.balances.items() if b),
            key=lambda item: (-item[1], item[0]),
        )

    def to_state(self) -> dict:
        return {
            "total_supply": str(self.total_supply),
            "balances": {a: str(b) for a, b in sorted(self.balances.items()) if b},
            "allowances": [
                {"owner": o, "spender": s, "amount": str(v)}
                for (o, s), v in sorted(self.allowances.items())
            ],
        }

    @classmethod
    def from_state(cls, state: dict) -> "Ledger":
        return cls(
            balances={a: int(b) for a, b in state.get("balances", {}).items()},
            allowances={
                (entry["owner"], entry["spender"]): int(entry["amount"])
                for entry in state.get("allowances", [])
            },
            total_supply=int(state.get("total_supply", "0")),
        )
