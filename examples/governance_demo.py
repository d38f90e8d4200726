# examples/governance_demo.py
# Run with: poetry run python examples/governance_demo.py

from govledger import GovernedToken, NativeBank, Reentrant
from govledger.core.logs import configure_logging
from govledger.core.types import SCALE
from govledger.core.units import format_units
from govledger.integration.credentials import CredentialStore


OWNER = "0xowner"
GUARDIANS = ("0xguardian1", "0xguardian2", "0xguardian3")
STUDENT = "0xstudent"
REGISTRAR = "0xregistrar"


if __name__ == "__main__":
    configure_logging(level="INFO")

    bank = NativeBank()
    bank.deposit(OWNER, 10 * SCALE)
    bank.deposit(STUDENT, SCALE)

    token = GovernedToken(OWNER, *GUARDIANS, bank=bank)

    # Sale
    print("\n[Sale]")
    token.buy_tokens(STUDENT, 20 * SCALE, token.sale.required_payment(20 * SCALE))
    print(f"  student holds {format_units(token.balance_of(STUDENT))} {token.symbol}")
    print(f"  reserve: {format_units(token.reserve)} native")

    # Minting needs all three guardians
    print("\n[Mint]")
    for g in GUARDIANS:
        outcome = token.approve_mint(g, STUDENT, 100 * SCALE)
        print(f"  {g}: {outcome.state.value} ({len(outcome.approvals)}/{outcome.threshold})")
    print(f"  student holds {format_units(token.balance_of(STUDENT))} {token.symbol}")

    # Withdrawal needs two; a hook at the owner tries to re-enter
    print("\n[Withdrawal]")

    def reenter(sender, amount):
        try:
            token.approve_withdrawal(GUARDIANS[2], amount)
        except Reentrant as e:
            print(f"  re-entry blocked: {e}")

    bank.on_receive(OWNER, reenter)
    amount = token.reserve // 2
    token.approve_withdrawal(GUARDIANS[0], amount)
    token.approve_withdrawal(GUARDIANS[1], amount)
    print(f"  owner native balance: {format_units(bank.balance_of(OWNER))}")

    # Fee-gated credential store
    print("\n[Credential store]")
    store = CredentialStore(token, fee_recipient=REGISTRAR)
    store.record(STUDENT, "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08")
    print(f"  recorded: {len(store)}, registrar holds {format_units(token.balance_of(REGISTRAR))} {token.symbol}")

    print("\n" + "=" * 60)
