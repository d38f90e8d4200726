# tests/conftest.py
import logging

import pytest
import structlog

from govledger.chain.native import NativeBank
from govledger.chain.token import GovernedToken
from govledger.core.types import SCALE

OWNER = "0xowner"
ALICE = "0xalice"
BOB = "0xbob"
G1 = "0xguardian1"
G2 = "0xguardian2"
G3 = "0xguardian3"
TOKEN_PRICE = 10 ** 15  # 0.001 native per token


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    # CLI tests point the root handler at CliRunner streams that close afterwards
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


@pytest.fixture
def bank() -> NativeBank:
    b = NativeBank()
    b.deposit(OWNER, 100 * SCALE)
    b.deposit(ALICE, 10 * SCALE)
    return b


@pytest.fixture
def token(bank: NativeBank) -> GovernedToken:
    return GovernedToken(OWNER, G1, G2, G3, sale_price=TOKEN_PRICE, bank=bank)


def supply_matches(token: GovernedToken) -> bool:
    return token.total_supply == sum(token.ledger.balances.values())
