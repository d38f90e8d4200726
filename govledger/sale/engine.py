# govledger/sale/engine.py
from dataclasses import dataclass

import structlog

from govledger.book.ledger import Ledger
from govledger.core.errors import IncorrectPayment
from govledger.core.types import SCALE, Account, check_account, check_amount

logger = structlog.get_logger(__name__)


@dataclass
class SaleEngine:
    """
    Fixed-price unit sale.

    price is in smallest native units per whole token (SCALE smallest units).
    Two entry paths:
      buy()     explicit amount: payment must equal amount * price // SCALE
      receive() bare payment: amount = payment // price
    Neither path credits units for a zero payment. In strict mode the implicit path also
    rejects payments that are not an exact multiple of the price; otherwise
    the remainder stays in the reserve.
    """
    ledger: Ledger
    price: int
    strict_implicit_payment: bool = True

    def __post_init__(self):
        check_amount(self.price)

    def required_payment(self, amount: int) -> int:
        return amount * self.price // SCALE

    def quote(self, amount: int) -> int:
        """Validated required_payment, for callers that pay first and credit later."""
        check_amount(amount)
        return self.required_payment(amount)

    def units_for(self, payment: int) -> int:
        """Units the implicit path credits for a bare payment (validated)."""
        check_amount(payment, allow_zero=True)
        amount, remainder = divmod(payment, self.price)
        if amount == 0:
            raise IncorrectPayment(
                "Payment is below the price of one unit",
                {"payment": payment, "price": self.price},
            )
        if remainder and self.strict_implicit_payment:
            raise IncorrectPayment(
                "Payment is not a whole multiple of the price",
                {"payment": payment, "price": self.price, "remainder": remainder},
            )
        return amount

    def check_payment(self, amount: int, payment: int) -> None:
        required = self.quote(amount)
        if required == 0:
            raise IncorrectPayment(
                "Amount is below one payable unit",
                {"amount": amount, "price": self.price},
            )
        if payment != required:
            raise IncorrectPayment(
                "Incorrect payment sent for units",
                {"amount": amount, "payment": payment, "required": required},
            )

    def buy(self, caller: Account, amount: int, payment: int) -> int:
        check_account(caller, "buyer")
        self.check_payment(amount, payment)
        self.ledger.credit(caller, amount)
        logger.info("units_sold", buyer=caller, amount=amount, payment=payment)
        return amount

    def receive(self, caller: Account, payment: int) -> int:
        check_account(caller, "payer")
        amount = self.units_for(payment)
        self.ledger.credit(caller, amount)
        logger.info("payment_converted", payer=caller, amount=amount, payment=payment)
        return amount
