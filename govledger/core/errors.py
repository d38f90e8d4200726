# govledger/core/errors.py
"""
Error taxonomy for the governed ledger.

Every error is raised at the call that detects it, before any state is
touched, so the caller always sees either a complete change or none at all.
"""

from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base exception for all ledger failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class NotGuardian(LedgerError):
    """Caller is not one of the three guardians."""


class DuplicateApproval(LedgerError):
    """Guardian already approved this pending request."""


class InsufficientBalance(LedgerError):
    """Sender holds fewer units than requested."""


class InsufficientAllowance(LedgerError):
    """Spender was not allowed to move this many units."""


class InsufficientReserve(LedgerError):
    """Reserve holds less native currency than the withdrawal amount."""


class InsufficientFunds(LedgerError):
    """Payer holds less native currency than the payment."""


class IncorrectPayment(LedgerError):
    """Payment does not match the sale price."""


class Reentrant(LedgerError):
    """A guarded entry point was entered while another one is in flight."""


class InvalidGuardianSet(LedgerError, ValueError):
    """Guardians are not exactly three distinct, valid identities."""


class InvalidAmount(LedgerError, ValueError):
    """Amount is not a positive integer (or negative where zero is allowed)."""


class InvalidAccount(LedgerError, ValueError):
    """Account identity is empty or the zero account."""


__all__ = [
    "LedgerError",
    "NotGuardian",
    "DuplicateApproval",
    "InsufficientBalance",
    "InsufficientAllowance",
    "InsufficientReserve",
    "InsufficientFunds",
    "IncorrectPayment",
    "Reentrant",
    "InvalidGuardianSet",
    "InvalidAmount",
    "InvalidAccount",
]
