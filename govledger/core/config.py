# govledger/core/config.py
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from govledger.core.types import (
    DECIMALS,
    DEFAULT_SALE_PRICE,
    INITIAL_SUPPLY,
    MINT_QUORUM,
    TOKEN_NAME,
    TOKEN_SYMBOL,
    WITHDRAWAL_QUORUM,
    check_amount,
)
from govledger.core.units import parse_units

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class TokenConfig:
    """Construction-time parameters of a governed token. Immutable once deployed."""
    name: str = TOKEN_NAME
    symbol: str = TOKEN_SYMBOL
    decimals: int = DECIMALS
    initial_supply: int = INITIAL_SUPPLY
    sale_price: int = DEFAULT_SALE_PRICE        # smallest native units per whole token
    mint_quorum: int = MINT_QUORUM
    withdrawal_quorum: int = WITHDRAWAL_QUORUM
    strict_implicit_payment: bool = True

    def __post_init__(self):
        check_amount(self.sale_price)
        check_amount(self.initial_supply, allow_zero=True)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "TokenConfig":
        """
        Defaults, overridden by:
          GOVLEDGER_SALE_PRICE               native units per token, e.g. "0.001"
          GOVLEDGER_STRICT_IMPLICIT_PAYMENT  "true" / "false"
        """
        env = os.environ if env is None else env
        config = cls()

        price = env.get("GOVLEDGER_SALE_PRICE")
        if price:
            config = replace(config, sale_price=parse_units(price, DECIMALS))

        strict = env.get("GOVLEDGER_STRICT_IMPLICIT_PAYMENT")
        if strict:
            value = strict.strip().lower()
            if value not in _TRUTHY | _FALSY:
                raise ValueError(f"GOVLEDGER_STRICT_IMPLICIT_PAYMENT must be a boolean, got {strict!r}")
            config = replace(config, strict_implicit_payment=value in _TRUTHY)

        return config
