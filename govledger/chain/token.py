# govledger/chain/token.py
"""
GovernedToken: the ledger, its governance and its sale behind one boundary.

Callers identify themselves explicitly (caller / sender arguments); native
currency payments are taken from the caller's NativeBank account into the
token's own account, which is the reserve.
"""

from typing import Optional, Tuple

import structlog

from govledger.book.ledger import Ledger
from govledger.chain.native import NativeBank
from govledger.core.config import TokenConfig
from govledger.core.errors import InsufficientReserve
from govledger.core.types import (
    Account,
    ApprovalOutcome,
    check_account,
    check_amount,
)
from govledger.governance.config import GovernanceConfig
from govledger.governance.quorum import QuorumTracker
from govledger.governance.reentrancy import ReentrancyGuard
from govledger.sale.engine import SaleEngine

logger = structlog.get_logger(__name__)

MintKey = Tuple[Account, int]


class GovernedToken:
    """Fungible token with 3-of-3 minting, 2-of-3 reserve withdrawal and a fixed-price sale."""

    def __init__(
        self,
        owner: Account,
        guardian1: Account,
        guardian2: Account,
        guardian3: Account,
        sale_price: Optional[int] = None,
        bank: Optional[NativeBank] = None,
        config: Optional[TokenConfig] = None,
        address: Optional[Account] = None,
        _ledger: Optional[Ledger] = None,
    ):
        self.config = config or TokenConfig()
        self.owner = check_account(owner, "owner")
        self.governance = GovernanceConfig((guardian1, guardian2, guardian3))
        self.price = sale_price if sale_price is not None else self.config.sale_price
        self.bank = bank if bank is not None else NativeBank()
        self.address = check_account(address or f"token:{self.config.symbol.lower()}", "address")

        if _ledger is None:
            self.ledger = Ledger()
            if self.config.initial_supply:
                self.ledger.credit(self.owner, self.config.initial_supply)
        else:
            self.ledger = _ledger

        self.sale = SaleEngine(self.ledger, self.price, self.config.strict_implicit_payment)
        self.mint_approvals = QuorumTracker(self.governance, self.config.mint_quorum, name="mint")
        self.withdrawal_approvals = QuorumTracker(
            self.governance, self.config.withdrawal_quorum, name="withdrawal"
        )
        self.guard = ReentrancyGuard()

        if _ledger is None:
            logger.info(
                "token_deployed",
                symbol=self.config.symbol,
                owner=self.owner,
                guardians=list(self.governance),
                price=self.price,
            )

    # ── ERC-20 surface

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def symbol(self) -> str:
        return self.config.symbol

    @property
    def decimals(self) -> int:
        return self.config.decimals

    @property
    def total_supply(self) -> int:
        return self.ledger.total_supply

    @property
    def guardians(self) -> Tuple[Account, ...]:
        return self.governance.guardians

    def balance_of(self, account: Account) -> int:
        return self.ledger.balance_of(account)

    def transfer(self, sender: Account, to: Account, amount: int) -> None:
        self.ledger.transfer(sender, to, amount)
        logger.info("transfer", sender=sender, to=to, amount=amount)

    def approve(self, owner: Account, spender: Account, amount: int) -> None:
        self.ledger.approve(owner, spender, amount)

    def allowance(self, owner: Account, spender: Account) -> int:
        return self.ledger.allowance(owner, spender)

    def transfer_from(self, spender: Account, sender: Account, to: Account, amount: int) -> None:
        self.ledger.transfer_from(spender, sender, to, amount)
        logger.info("transfer", sender=sender, to=to, amount=amount, spender=spender)

    # ── sale

    @property
    def reserve(self) -> int:
        return self.bank.balance_of(self.address)

    def buy_tokens(self, caller: Account, amount: int, payment: int) -> int:
        with self.guard.hold("buy_tokens"), self.ledger.atomic():
            check_account(caller, "buyer")
            self.sale.check_payment(amount, payment)
            self.bank.send(caller, self.address, payment)
            return self.sale.buy(caller, amount, payment)

    def receive(self, caller: Account, payment: int) -> int:
        """Bare native payment to the token; credits payment // price units."""
        with self.guard.hold("receive"), self.ledger.atomic():
            check_account(caller, "payer")
            self.sale.units_for(payment)
            self.bank.send(caller, self.address, payment)
            return self.sale.receive(caller, payment)

    # ── governance

    def approve_mint(self, caller: Account, recipient: Account, amount: int) -> ApprovalOutcome:
        with self.guard.hold("approve_mint"), self.ledger.atomic():
            self.mint_approvals.require_guardian(caller)
            check_account(recipient, "recipient")
            check_amount(amount)

            def mint() -> None:
                self.ledger.credit(recipient, amount)
                logger.info("mint_executed", recipient=recipient, amount=amount)

            return self.mint_approvals.approve(caller, (recipient, amount), mint)

    def approve_withdrawal(self, caller: Account, amount: int) -> ApprovalOutcome:
        """2-of-3 release of `amount` reserve to the owner. Keyed by amount."""
        with self.guard.hold("approve_withdrawal"), self.ledger.atomic():
            self.withdrawal_approvals.require_guardian(caller)
            check_amount(amount)

            def release() -> None:
                if self.reserve < amount:
                    raise InsufficientReserve(
                        "Reserve too low for withdrawal",
                        {"reserve": self.reserve, "amount": amount},
                    )
                self.bank.send(self.address, self.owner, amount)
                logger.info("withdrawal_released", beneficiary=self.owner, amount=amount)

            return self.withdrawal_approvals.approve(caller, amount, release)

    def pending_mints(self):
        return self.mint_approvals.pending()

    def pending_withdrawals(self):
        return self.withdrawal_approvals.pending()

    # ── serialization

    def to_state(self) -> dict:
        """Logical state as plain JSON data; amounts are decimal strings."""
        return {
            "token": {
                "name": self.config.name,
                "symbol": self.config.symbol,
                "decimals": self.config.decimals,
                "initial_supply": str(self.config.initial_supply),
                "sale_price": str(self.price),
                "mint_quorum": self.config.mint_quorum,
                "withdrawal_quorum": self.config.withdrawal_quorum,
                "strict_implicit_payment": self.config.strict_implicit_payment,
                "address": self.address,
                "owner": self.owner,
                "guardians": list(self.governance),
            },
            "ledger": self.ledger.to_state(),
            "mint_approvals": [
                {"recipient": r, "amount": str(a), "approvals": list(g)}
                for (r, a), g in sorted(self.mint_approvals.pending().items())
            ],
            "withdrawal_approvals": [
                {"amount": str(a), "approvals": list(g)}
                for a, g in sorted(self.withdrawal_approvals.pending().items())
            ],
            "native": {a: str(b) for a, b in sorted(self.bank.balances.items()) if b},
        }

    @classmethod
    def from_state(cls, state: dict, bank: Optional[NativeBank] = None) -> "GovernedToken":
        meta = state["token"]
        config = TokenConfig(
            name=meta["name"],
            symbol=meta["symbol"],
            decimals=meta["decimals"],
            initial_supply=int(meta["initial_supply"]),
            sale_price=int(meta["sale_price"]),
            mint_quorum=meta["mint_quorum"],
            withdrawal_quorum=meta["withdrawal_quorum"],
            strict_implicit_payment=meta["strict_implicit_payment"],
        )
        if bank is None:
            bank = NativeBank({a: int(b) for a, b in state.get("native", {}).items()})

        g1, g2, g3 = meta["guardians"]
        token = cls(
            meta["owner"], g1, g2, g3,
            sale_price=config.sale_price,
            bank=bank,
            config=config,
            address=meta["address"],
            _ledger=Ledger.from_state(state["ledger"]),
        )
        token.mint_approvals.load(
            ((e["recipient"], int(e["amount"])), e["approvals"]) for e in state.get("mint_approvals", [])
        )
        token.withdrawal_approvals.load(
            (int(e["amount"]), e["approvals"]) for e in state.get("withdrawal_approvals", [])
        )
        return token

    def __repr__(self) -> str:
        return f"GovernedToken(symbol={self.symbol!r}, owner={self.owner!r}, supply={self.total_supply})"
