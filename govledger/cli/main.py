# govledger/cli/main.py
"""
CLI for operating a governed token ledger persisted in SQLite.

Token amounts and native payments are given as decimal strings ("100", "0.5").
"""

import os
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from govledger.chain.session import LedgerSession
from govledger.core.config import TokenConfig
from govledger.core.errors import LedgerError
from govledger.core.logs import configure_logging
from govledger.core.types import ApprovalOutcome
from govledger.core.units import format_units, parse_units
from govledger.storage import SQLiteStorage
from govledger.verify.verifier import StateVerifier

app = typer.Typer(
    name="govledger",
    help="Operate a governed token ledger: transfers, sales, guardian mints and withdrawals",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

DB_OPTION = typer.Option(None, "--db", help="Path to SQLite database (overrides GOVLEDGER_DB_PATH)")
LEDGER_OPTION = typer.Option("default", "--ledger", "-l", help="Ledger id inside the database")


def get_db_path(db_flag: Optional[Path] = None) -> Path:
    """Resolve DB path in this order:
    1. --db flag
    2. GOVLEDGER_DB_PATH environment variable
    3. Default: ~/.govledger/ledger.db
    """
    if db_flag:
        path = db_flag.resolve()
    else:
        env_path = os.environ.get("GOVLEDGER_DB_PATH")
        if env_path:
            path = Path(env_path).resolve()
        else:
            path = Path.home() / ".govledger" / "ledger.db"

    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def open_session(db: Optional[Path], ledger: str, must_exist: bool = True) -> LedgerSession:
    db_path = get_db_path(db)

    if must_exist and not db_path.exists():
        console.print(f"[red]Database file not found: {db_path}[/]")
        console.print("[yellow]To get started:[/]")
        console.print("  • Create a ledger: govledger init OWNER G1 G2 G3 --db /path/to.db")
        console.print("  • Or set env var: export GOVLEDGER_DB_PATH=/path/to.db")
        raise typer.Exit(1)

    try:
        session = LedgerSession(ledger, storage=SQLiteStorage(db_path))
    except Exception as e:
        console.print(f"[red]Failed to open database: {str(e)}[/]")
        console.print("[yellow]The file may be corrupted or not a valid ledger DB.[/]")
        raise typer.Exit(1)

    if must_exist and not session.initialized:
        console.print(f"[red]Ledger '{ledger}' not found in {db_path}[/]")
        session.close()
        raise typer.Exit(1)
    return session


def to_units(value: str) -> int:
    try:
        return parse_units(value)
    except LedgerError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)


def fmt(amount: int) -> str:
    return format_units(amount)


def run_and_commit(session: LedgerSession, fn):
    """Run a ledger operation; commit on success, report and exit 1 on LedgerError."""
    try:
        result = fn(session.token)
    except LedgerError as e:
        console.print(f"[red]✗ {type(e).__name__}: {escape(str(e))}[/]")
        session.close()
        raise typer.Exit(1)
    snap = session.commit()
    session.close()
    return result, snap


def print_outcome(kind: str, outcome: ApprovalOutcome) -> None:
    if outcome.executed:
        console.print(f"[green]✓ {kind} executed with {len(outcome.approvals)}/{outcome.threshold} approvals[/]")
    else:
        console.print(
            f"[yellow]{kind} pending: {len(outcome.approvals)}/{outcome.threshold} approvals "
            f"({outcome.remaining} more needed)[/]"
        )


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Log level (overrides GOVLEDGER_LOG_LEVEL)"
    ),
):
    """Manage governed token ledgers."""
    configure_logging(level=log_level)


@app.command()
def init(
    owner: str = typer.Argument(..., help="Deployer; receives the initial supply and withdrawals"),
    guardian1: str = typer.Argument(...),
    guardian2: str = typer.Argument(...),
    guardian3: str = typer.Argument(...),
    price: Optional[str] = typer.Option(None, "--price", help="Native units per token (default 0.001 or GOVLEDGER_SALE_PRICE)"),
    db: Optional[Path] = DB_OPTION,
    ledger: str = LEDGER_OPTION,
):
    """Deploy a new ledger with three guardians."""
    session = open_session(db, ledger, must_exist=False)
    if session.initialized:
        console.print(f"[red]Ledger '{ledger}' already exists[/]")
        session.close()
        raise typer.Exit(1)

    config = TokenConfig.from_env()
    sale_price = to_units(price) if price else None
    try:
        token = session.create(owner, guardian1, guardian2, guardian3, sale_price=sale_price, config=config)
    except LedgerError as e:
        console.print(f"[red]✗ {type(e).__name__}: {escape(str(e))}[/]")
        session.close()
        raise typer.Exit(1)

    session.commit()
    session.close()
    console.print(f"[green]✓ Deployed {token.name} ({token.symbol}) as ledger '{ledger}'[/]")
    console.print(f"  Initial supply {fmt(token.total_supply)} credited to {owner}")


@app.command()
def info(
    db: Optional[Path] = DB_OPTION,
    ledger: str = LEDGER_OPTION,
):
    """Show token parameters, reserve and pending approvals."""
    session = open_session(db, ledger)
    token = session.token

    console.print(f"[bold]{token.name}[/] ({token.symbol}), ledger '{ledger}' v{session.version}")
    console.print(f"  Owner:        {token.owner}")
    console.print(f"  Guardians:    {', '.join(token.guardians)}")
    console.print(f"  Total supply: {fmt(token.total_supply)}")
    console.print(f"  Sale price:   {fmt(token.price)} native / token")
    console.print(f"  Reserve:      {fmt(token.reserve)} native")

    pending = Table(title="Pending approvals")
    pending.add_column("Kind")
    pending.add_column("Request")
    pending.add_column("Approvals")
    for (recipient, amount), approvals in token.pending_mints().items():
        pending.add_row("mint", f"{fmt(amount)} → {recipient}", f"{len(approvals)}/{token.config.mint_quorum}")
    for amount, approvals in token.pending_withdrawals().items():
        pending.add_row("withdrawal", fmt(amount), f"{len(approvals)}/{token.config.withdrawal_quorum}")

    if pending.row_count:
        console.print(pending)
    else:
        console.print("  No pending approvals")
    session.close()


@app.command()
def holders(
    db: Optional[Path] = DB_OPTION,
    ledger: str = LEDGER_OPTION,
):
    """List all accounts with a non-zero balance."""
    session = open_session(db, ledger)
    token = session.token

    table = Table(title=f"{token.symbol} Holders")
    table.add_column("Account")
    table.add_column("Balance", justify="right")
    for account, balance in token.ledger.holders():
        table.add_row(account, fmt(balance))
    console.print(table)
    session.close()


@app.command()
def balance(
    account: str = typer.Argument(..., help="Account to inspect"),
    db: Optional[Path] = DB_OPTION,
    ledger: str = LEDGER_OPTION,
):
    """Show token and native balances of an account."""
    session = open_session(db, ledger)
    token = session.token
    console.print(f"{account}: {fmt(token.balance_of(account))} {token.symbol}, "
                  f"{fmt(token.bank.balance_of(account))} native")
    session.close()


@app.command()
def transfer(
    sender: str = typer.Argument(...),
    to: str = typer.Argument(...),
    amount: str = typer.Argument(..., help="Tokens, e.g. 100 or 0.5"),
    db: Optional[Path] = DB_OPTION,
    ledger: str = LEDGER_OPTION,
):
    """Move tokens between accounts."""
    units = to_units(amount)
    session = open_session(db, ledger)
    run_and_commit(session, lambda t: t.transfer(sender, to, units))
    console.print(f"[green]✓ Transferred {amount} from {sender} to {to}[/]")


@app.command()
def fund(
    account: str = typer.Argument(...),
    amount: str = typer.Argument(..., help="Native units, e.g. 2 or 0.01"),
    db: Optional[Path] = DB_OPTION,
    ledger: str = LEDGER_OPTION,
):
    """Give an account native currency (local environments only)."""
    units = to_units(amount)
    session = open_session(db, ledger)
    run_and_commit(session, lambda t: t.bank.deposit(account, units))
    console.print(f"[green]✓ Funded {account} with {amount} native[/]")


@app.command()
def buy(
    caller: str = typer.Argument(...),
    amount: str = typer.Argument(..., help="Tokens to buy"),
    payment: Optional[str] = typer.Option(None, "--payment", help="Native sent (default: exact price)"),
    db: Optional[Path] = DB_OPTION,
    ledger: str = LEDGER_OPTION,
):
    """Buy tokens at the fixed sale price."""
    units = to_units(amount)
    session = open_session(db, ledger)
    paid = to_units(payment) if payment is not None else session.token.sale.required_payment(units)
    run_and_commit(session, lambda t: t.buy_tokens(caller, units, paid))
    console.print(f"[green]✓ {caller} bought {amount} for {fmt(paid)} native[/]")


@app.command()
def pay(
    caller: str = typer.Argument(...),
    payment: str = typer.Argument(..., help="Native sent to the token"),
    db: Optional[Path] = DB_OPTION,
    ledger: str = LEDGER_OPTION,
):
    """Send bare native currency to the token (credited at payment // price)."""
    paid = to_units(payment)
    session = open_session(db, ledger)
    credited, _ = run_and_commit(session, lambda t: t.receive(caller, paid))
    console.print(f"[green]✓ {caller} paid {payment} native, credited {credited} smallest units[/]")


@app.command("approve-mint")
def approve_mint(
    guardian: str = typer.Argument(...),
    recipient: str = typer.Argument(...),
    amount: str = typer.Argument(..., help="Tokens to mint"),
    db: Optional[Path] = DB_OPTION,
    ledger: str = LEDGER_OPTION,
):
    """Record a guardian's approval to mint; all three are required."""
    units = to_units(amount)
    session = open_session(db, ledger)
    outcome, _ = run_and_commit(session, lambda t: t.approve_mint(guardian, recipient, units))
    print_outcome("Mint", outcome)


@app.command("approve-withdrawal")
def approve_withdrawal(
    guardian: str = typer.Argument(...),
    amount: str = typer.Argument(..., help="Native units to release to the owner"),
    db: Optional[Path] = DB_OPTION,
    ledger: str = LEDGER_OPTION,
):
    """Record a guardian's approval to withdraw reserve; two are required."""
    units = to_units(amount)
    session = open_session(db, ledger)
    outcome, _ = run_and_commit(session, lambda t: t.approve_withdrawal(guardian, units))
    print_outcome("Withdrawal", outcome)


@app.command()
def verify(
    db: Optional[Path] = DB_OPTION,
    ledger: str = LEDGER_OPTION,
):
    """Verify the snapshot hash chain and ledger invariants."""
    db_path = get_db_path(db)
    if not db_path.exists():
        console.print(f"[red]Database file not found: {db_path}[/]")
        raise typer.Exit(1)

    with SQLiteStorage(db_path) as storage:
        result = StateVerifier().verify_from_storage(ledger, storage)
        count = storage.get_snapshot_count(ledger)

    if count == 0:
        console.print(f"[yellow]No snapshots found for ledger '{ledger}'[/]")
        raise typer.Exit(1)

    if result.is_valid:
        console.print(f"[green]✓ Ledger '{ledger}' is valid ({count} snapshots)[/]")
    else:
        console.print(f"[red]✗ Verification failed for ledger '{ledger}'[/]")
        for failure in result.failures:
            console.print(f"  • [{failure.index}] {failure.category}: {failure.message}")
        raise typer.Exit(1)


@app.command()
def export(
    db: Optional[Path] = DB_OPTION,
    ledger: str = LEDGER_OPTION,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file (default: <ledger>.jsonl)"),
):
    """Export the ledger history as JSONL (one snapshot per line)."""
    session = open_session(db, ledger)
    try:
        snaps = session.history()
    except ValueError as e:
        console.print(f"[red]Failed to load ledger '{ledger}': {str(e)}[/]")
        session.close()
        raise typer.Exit(1)
    session.close()

    out_path = output or Path(f"{ledger}.jsonl")
    with open(out_path, "w", encoding="utf-8") as f:
        for snap in snaps:
            json.dump(snap.to_dict(), f, separators=(",", ":"), sort_keys=True)
            f.write("\n")

    console.print(f"[green]Exported {len(snaps)} snapshots to {out_path}[/]")


if __name__ == "__main__":
    app()
