# tests/test_ledger.py
import pytest

from govledger.book.ledger import Ledger
from govledger.core.errors import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidAccount,
    InvalidAmount,
)
from govledger.core.types import ZERO_ACCOUNT


@pytest.fixture
def ledger() -> Ledger:
    book = Ledger()
    book.credit("alice", 1_000)
    return book


def consistent(book: Ledger) -> bool:
    return book.total_supply == sum(book.balances.values())


def test_unknown_account_has_zero_balance(ledger):
    assert ledger.balance_of("nobody") == 0


def test_credit_increases_balance_and_supply(ledger):
    ledger.credit("bob", 250)
    assert ledger.balance_of("bob") == 250
    assert ledger.total_supply == 1_250
    assert consistent(ledger)


@pytest.mark.parametrize("amount", [0, -5])
def test_credit_requires_positive_amount(ledger, amount):
    with pytest.raises(InvalidAmount):
        ledger.credit("bob", amount)
    assert ledger.total_supply == 1_000


def test_transfer_moves_units(ledger):
    ledger.transfer("alice", "bob", 100)
    assert ledger.balance_of("alice") == 900
    assert ledger.balance_of("bob") == 100
    assert ledger.total_supply == 1_000
    assert consistent(ledger)


def test_transfer_insufficient_balance_changes_nothing(ledger):
    with pytest.raises(InsufficientBalance) as exc:
        ledger.transfer("alice", "bob", 1_001)
    assert exc.value.context["balance"] == 1_000
    assert ledger.balance_of("alice") == 1_000
    assert ledger.balance_of("bob") == 0


def test_transfer_whole_balance(ledger):
    ledger.transfer("alice", "bob", 1_000)
    assert ledger.balance_of("alice") == 0
    assert consistent(ledger)


def test_transfer_to_zero_account_rejected(ledger):
    with pytest.raises(InvalidAccount):
        ledger.transfer("alice", ZERO_ACCOUNT, 1)
    assert ledger.balance_of("alice") == 1_000


def test_self_transfer_keeps_balance(ledger):
    ledger.transfer("alice", "alice", 400)
    assert ledger.balance_of("alice") == 1_000


def test_allowance_flow(ledger):
    ledger.approve("alice", "store", 300)
    assert ledger.allowance("alice", "store") == 300

    ledger.transfer_from("store", "alice", "carol", 200)
    assert ledger.balance_of("carol") == 200
    assert ledger.allowance("alice", "store") == 100

    with pytest.raises(InsufficientAllowance):
        ledger.transfer_from("store", "alice", "carol", 101)
    assert ledger.balance_of("carol") == 200


def test_transfer_from_keeps_allowance_on_insufficient_balance(ledger):
    ledger.approve("alice", "store", 5_000)
    with pytest.raises(InsufficientBalance):
        ledger.transfer_from("store", "alice", "carol", 2_000)
    assert ledger.allowance("alice", "store") == 5_000


def test_holders_sorted_by_balance(ledger):
    ledger.credit("bob", 5_000)
    ledger.credit("carol", 10)
    ledger.transfer("carol", "alice", 10)
    assert ledger.holders() == [("bob", 5_000), ("alice", 1_010)]


def test_state_roundtrip(ledger):
    ledger.approve("alice", "store", 7)
    restored = Ledger.from_state(ledger.to_state())
    assert restored.balances == ledger.balances
    assert restored.allowances == ledger.allowances
    assert restored.total_supply == ledger.total_supply
