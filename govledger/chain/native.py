# govledger/chain/native.py
from dataclasses import dataclass, field
from typing import Callable, Dict

import structlog

from govledger.core.errors import InsufficientFunds
from govledger.core.types import Account, check_account, check_amount

logger = structlog.get_logger(__name__)

ReceiveHook = Callable[[Account, int], None]


@dataclass
class NativeBank:
    """
    Native-currency balances of the surrounding execution environment.

    A receive hook stands in for code at the receiving account: it runs after
    the funds land and may call back into the token. If it raises, every
    balance is restored to what it was before the send, including whatever
    the hook itself moved, and the error propagates to the sender.
    """
    balances: Dict[Account, int] = field(default_factory=dict)
    hooks: Dict[Account, ReceiveHook] = field(default_factory=dict, repr=False)

    def balance_of(self, account: Account) -> int:
        return self.balances.get(account, 0)

    def deposit(self, account: Account, amount: int) -> None:
        """Faucet: new native currency for an account (tests, local setups)."""
        check_account(account)
        check_amount(amount)
        self.balances[account] = self.balance_of(account) + amount

    def on_receive(self, account: Account, hook: ReceiveHook) -> None:
        self.hooks[account] = hook

    def remove_hook(self, account: Account) -> None:
        self.hooks.pop(account, None)

    def send(self, sender: Account, to: Account, amount: int) -> None:
        check_account(to, "receiver")
        check_amount(amount, allow_zero=True)
        available = self.balance_of(sender)
        if available < amount:
            raise InsufficientFunds(
                "Native balance too low",
                {"sender": sender, "balance": available, "amount": amount},
            )

        checkpoint = dict(self.balances)
        self.balances[sender] = available - amount
        self.balances[to] = self.balance_of(to) + amount

        hook = self.hooks.get(to)
        if hook is None:
            return
        try:
            hook(sender, amount)
        except Exception:
            self.balances.clear()
            self.balances.update(checkpoint)
            logger.warning("native_send_reverted", sender=sender, to=to, amount=amount)
            raise
