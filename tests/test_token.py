# tests/test_token.py
import pytest

from govledger.chain.native import NativeBank
from govledger.chain.token import GovernedToken
from govledger.core.config import TokenConfig
from govledger.core.errors import (
    DuplicateApproval,
    IncorrectPayment,
    InsufficientBalance,
    InsufficientFunds,
    InsufficientReserve,
    InvalidAmount,
    InvalidGuardianSet,
    NotGuardian,
    Reentrant,
)
from govledger.core.types import SCALE, RequestState

from conftest import ALICE, BOB, G1, G2, G3, OWNER, TOKEN_PRICE, supply_matches


# ── deployment & basics

def test_name_and_symbol(token):
    assert token.name == "Group 1 Token"
    assert token.symbol == "G1TK"
    assert token.decimals == 18


def test_initial_supply_credited_to_owner(token):
    assert token.balance_of(OWNER) == 1_000_000 * SCALE
    assert token.total_supply == 1_000_000 * SCALE
    assert supply_matches(token)


def test_basic_transfer(token):
    token.transfer(OWNER, ALICE, 100 * SCALE)
    assert token.balance_of(ALICE) == 100 * SCALE
    assert token.balance_of(OWNER) == 999_900 * SCALE
    assert supply_matches(token)


def test_transfer_insufficient_balance(token):
    with pytest.raises(InsufficientBalance):
        token.transfer(ALICE, BOB, 1)


def test_bad_guardians_fail_construction():
    with pytest.raises(InvalidGuardianSet):
        GovernedToken(OWNER, G1, G1, G3)


def test_independent_instances_do_not_share_state(token):
    other = GovernedToken(OWNER, G1, G2, G3)
    token.transfer(OWNER, ALICE, 5)
    assert other.balance_of(ALICE) == 0
    assert other.bank is not token.bank


# ── sale

def test_receive_converts_payment(token, bank):
    payment = 10 ** 16  # 0.01 native
    token.receive(ALICE, payment)
    assert token.balance_of(ALICE) == payment // TOKEN_PRICE
    assert token.reserve == payment
    assert bank.balance_of(ALICE) == 10 * SCALE - payment
    assert supply_matches(token)


def test_buy_tokens(token):
    tokens_to_buy = 50 * SCALE
    required = tokens_to_buy * TOKEN_PRICE // SCALE
    token.buy_tokens(ALICE, tokens_to_buy, required)
    assert token.balance_of(ALICE) == tokens_to_buy
    assert token.reserve == required
    assert supply_matches(token)


def test_buy_tokens_incorrect_payment(token, bank):
    with pytest.raises(IncorrectPayment):
        token.buy_tokens(ALICE, 50 * SCALE, 10 ** 16)
    assert token.balance_of(ALICE) == 0
    assert token.reserve == 0
    assert bank.balance_of(ALICE) == 10 * SCALE


def test_buy_tokens_without_funds(token):
    with pytest.raises(InsufficientFunds):
        token.buy_tokens(BOB, SCALE, TOKEN_PRICE)
    assert token.balance_of(BOB) == 0
    assert token.total_supply == 1_000_000 * SCALE


def test_buy_tokens_rejects_free_units(token):
    for _ in range(3):
        with pytest.raises(IncorrectPayment):
            token.buy_tokens(BOB, 999, 0)
    assert token.balance_of(BOB) == 0
    assert token.total_supply == 1_000_000 * SCALE


def test_receive_below_price_rejected(token, bank):
    with pytest.raises(IncorrectPayment):
        token.receive(ALICE, TOKEN_PRICE - 1)
    assert token.reserve == 0
    assert bank.balance_of(ALICE) == 10 * SCALE


def test_loose_receive_keeps_remainder_in_reserve(bank):
    config = TokenConfig(strict_implicit_payment=False)
    token = GovernedToken(OWNER, G1, G2, G3, bank=bank, config=config)
    token.receive(ALICE, 2 * TOKEN_PRICE + 5)
    assert token.balance_of(ALICE) == 2
    assert token.reserve == 2 * TOKEN_PRICE + 5


# ── minting

MINT_AMOUNT = 1000 * SCALE


def test_two_approvals_do_not_mint(token):
    token.approve_mint(G1, BOB, MINT_AMOUNT)
    outcome = token.approve_mint(G2, BOB, MINT_AMOUNT)
    assert outcome.state is RequestState.PARTIAL_APPROVAL
    assert token.balance_of(BOB) == 0
    assert token.total_supply == 1_000_000 * SCALE


def test_three_approvals_mint(token):
    token.approve_mint(G1, BOB, MINT_AMOUNT)
    token.approve_mint(G2, BOB, MINT_AMOUNT)
    outcome = token.approve_mint(G3, BOB, MINT_AMOUNT)
    assert outcome.executed
    assert token.balance_of(BOB) == MINT_AMOUNT
    assert token.total_supply == 1_000_000 * SCALE + MINT_AMOUNT
    assert token.pending_mints() == {}
    assert supply_matches(token)


def test_mint_scenario_with_small_amount(token):
    token.approve_mint(G1, "X", 1000)
    token.approve_mint(G2, "X", 1000)
    assert token.balance_of("X") == 0
    token.approve_mint(G3, "X", 1000)
    assert token.balance_of("X") == 1000


def test_mint_resets_for_next_round(token):
    for _ in range(2):
        for g in (G3, G1, G2):
            token.approve_mint(g, BOB, MINT_AMOUNT)
    assert token.balance_of(BOB) == 2 * MINT_AMOUNT


def test_different_pairs_do_not_combine(token):
    token.approve_mint(G1, BOB, MINT_AMOUNT)
    token.approve_mint(G2, BOB, MINT_AMOUNT + 1)
    token.approve_mint(G3, ALICE, MINT_AMOUNT)
    assert token.balance_of(BOB) == 0
    assert token.balance_of(ALICE) == 0
    assert len(token.pending_mints()) == 3


def test_duplicate_mint_approval(token):
    token.approve_mint(G1, BOB, MINT_AMOUNT)
    with pytest.raises(DuplicateApproval):
        token.approve_mint(G1, BOB, MINT_AMOUNT)
    token.approve_mint(G2, BOB, MINT_AMOUNT)
    assert token.balance_of(BOB) == 0


def test_non_guardian_cannot_approve_mint(token):
    with pytest.raises(NotGuardian):
        token.approve_mint(ALICE, BOB, MINT_AMOUNT)
    assert token.pending_mints() == {}


def test_zero_mint_rejected(token):
    with pytest.raises(InvalidAmount):
        token.approve_mint(G1, BOB, 0)


def test_outsider_sees_not_guardian_before_argument_checks(token):
    with pytest.raises(NotGuardian):
        token.approve_mint(ALICE, BOB, 0)
    with pytest.raises(NotGuardian):
        token.approve_mint(ALICE, "", MINT_AMOUNT)
    with pytest.raises(NotGuardian):
        token.approve_withdrawal(ALICE, -1)


# ── withdrawal

@pytest.fixture
def funded(token):
    # owner sends 2 native to the token
    token.receive(OWNER, 2 * SCALE)
    return token


def test_two_of_three_withdrawal(funded, bank):
    before = bank.balance_of(OWNER)
    funded.approve_withdrawal(G1, SCALE)
    outcome = funded.approve_withdrawal(G2, SCALE)
    assert outcome.executed
    assert bank.balance_of(OWNER) == before + SCALE
    assert funded.reserve == SCALE
    assert funded.pending_withdrawals() == {}


def test_solo_approval_does_not_release(funded, bank):
    before = bank.balance_of(OWNER)
    outcome = funded.approve_withdrawal(G3, SCALE)
    assert outcome.state is RequestState.PARTIAL_APPROVAL
    assert bank.balance_of(OWNER) == before
    assert funded.reserve == 2 * SCALE


def test_withdrawal_goes_to_owner_not_caller(funded, bank):
    funded.approve_withdrawal(G1, SCALE)
    funded.approve_withdrawal(G2, SCALE)
    assert bank.balance_of(G1) == 0
    assert bank.balance_of(G2) == 0


def test_duplicate_withdrawal_approval(funded):
    funded.approve_withdrawal(G1, SCALE)
    with pytest.raises(DuplicateApproval):
        funded.approve_withdrawal(G1, SCALE)
    assert funded.reserve == 2 * SCALE


def test_non_guardian_cannot_approve_withdrawal(funded):
    with pytest.raises(NotGuardian):
        funded.approve_withdrawal(OWNER, SCALE)
    assert funded.pending_withdrawals() == {}


def test_different_amounts_tracked_independently(funded):
    funded.approve_withdrawal(G1, SCALE)
    funded.approve_withdrawal(G2, SCALE // 2)
    assert funded.reserve == 2 * SCALE
    assert funded.pending_withdrawals() == {SCALE: (G1,), SCALE // 2: (G2,)}


def test_insufficient_reserve_keeps_approvals(token, bank):
    token.approve_withdrawal(G1, SCALE)
    with pytest.raises(InsufficientReserve):
        token.approve_withdrawal(G2, SCALE)
    assert token.pending_withdrawals() == {SCALE: (G1,)}

    token.receive(ALICE, SCALE)
    before = bank.balance_of(OWNER)
    assert token.approve_withdrawal(G2, SCALE).executed
    assert bank.balance_of(OWNER) == before + SCALE


# ── reentrancy

def test_reentrant_withdrawal_blocked_and_release_completes_once(bank):
    token = GovernedToken(OWNER, G1, G2, G3, bank=bank)
    token.receive(OWNER, 10 * SCALE)
    amount = SCALE // 2
    blocked = []

    def attack(sender, value):
        try:
            token.approve_withdrawal(G3, amount)
        except Reentrant as e:
            blocked.append(e)

    bank.on_receive(OWNER, attack)
    before = bank.balance_of(OWNER)

    token.approve_withdrawal(G1, amount)
    assert token.approve_withdrawal(G2, amount).executed

    assert len(blocked) == 1
    assert bank.balance_of(OWNER) == before + amount
    assert token.reserve == 10 * SCALE - amount
    assert token.pending_withdrawals() == {}
    assert not token.guard.locked


def test_reentrant_failure_aborts_release(bank):
    token = GovernedToken(OWNER, G1, G2, G3, bank=bank)
    token.receive(OWNER, 10 * SCALE)

    def attack(sender, value):
        token.buy_tokens(OWNER, SCALE, TOKEN_PRICE)

    bank.on_receive(OWNER, attack)
    before = bank.balance_of(OWNER)
    token.approve_withdrawal(G1, SCALE)
    with pytest.raises(Reentrant):
        token.approve_withdrawal(G2, SCALE)

    assert bank.balance_of(OWNER) == before
    assert token.reserve == 10 * SCALE
    assert token.pending_withdrawals() == {SCALE: (G1,)}
    assert not token.guard.locked

    bank.remove_hook(OWNER)
    assert token.approve_withdrawal(G2, SCALE).executed


def test_hook_may_use_unguarded_transfer(bank):
    token = GovernedToken(OWNER, G1, G2, G3, bank=bank)
    token.receive(ALICE, SCALE)
    bank.on_receive(OWNER, lambda sender, value: token.transfer(OWNER, BOB, 1))
    token.approve_withdrawal(G1, SCALE)
    token.approve_withdrawal(G2, SCALE)
    assert token.balance_of(BOB) == 1


def test_reverting_hook_undoes_everything_it_did(bank):
    token = GovernedToken(OWNER, G1, G2, G3, bank=bank)
    token.receive(ALICE, SCALE)
    owner_native = bank.balance_of(OWNER)
    owner_units = token.balance_of(OWNER)

    def spend_then_refuse(sender, value):
        bank.send(OWNER, BOB, bank.balance_of(OWNER))
        token.transfer(OWNER, BOB, 7)
        raise RuntimeError("refused")

    bank.on_receive(OWNER, spend_then_refuse)
    token.approve_withdrawal(G1, SCALE)
    with pytest.raises(RuntimeError):
        token.approve_withdrawal(G2, SCALE)

    assert bank.balance_of(OWNER) == owner_native
    assert bank.balance_of(BOB) == 0
    assert token.reserve == SCALE
    assert token.balance_of(OWNER) == owner_units
    assert token.balance_of(BOB) == 0
    assert token.pending_withdrawals() == {SCALE: (G1,)}
    assert supply_matches(token)

# ── invariants & state

def test_supply_invariant_across_operations(funded):
    token = funded
    ops = [
        lambda: token.transfer(OWNER, ALICE, 7 * SCALE),
        lambda: token.buy_tokens(ALICE, 3 * SCALE, 3 * TOKEN_PRICE),
        lambda: token.approve_mint(G1, BOB, 11),
        lambda: token.approve_mint(G2, BOB, 11),
        lambda: token.approve_mint(G3, BOB, 11),
        lambda: token.approve_withdrawal(G1, SCALE),
        lambda: token.approve_withdrawal(G3, SCALE),
    ]
    for op in ops:
        op()
        assert supply_matches(token)
    with pytest.raises(InsufficientBalance):
        token.transfer(BOB, ALICE, 12)
    assert supply_matches(token)


def test_state_roundtrip(funded):
    funded.approve_mint(G1, BOB, MINT_AMOUNT)
    funded.approve_withdrawal(G2, SCALE)
    funded.approve(OWNER, ALICE, 5)

    restored = GovernedToken.from_state(funded.to_state())
    assert restored.to_state() == funded.to_state()
    assert restored.reserve == 2 * SCALE
    assert restored.allowance(OWNER, ALICE) == 5

    restored.approve_mint(G2, BOB, MINT_AMOUNT)
    restored.approve_mint(G3, BOB, MINT_AMOUNT)
    assert restored.balance_of(BOB) == MINT_AMOUNT
    assert funded.balance_of(BOB) == 0


def test_explicit_bank_is_shared(token, bank):
    assert token.bank is bank
    assert isinstance(bank, NativeBank)
