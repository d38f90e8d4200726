# govledger/__init__.py
"""
govledger: a governed token ledger.

Fungible units whose supply grows only with the approval of all three
guardians, whose native-currency reserve is released only with a majority of
them, and which sells units at a fixed price.
"""

__version__ = "0.1.0-dev"

from govledger.chain.native import NativeBank
from govledger.chain.session import LedgerSession
from govledger.chain.token import GovernedToken
from govledger.core.config import TokenConfig
from govledger.core.errors import *  # noqa: F401,F403
from govledger.core.types import ApprovalOutcome, RequestState
from govledger.verify.verifier import StateVerifier

__all__ = [
    "GovernedToken",
    "LedgerSession",
    "NativeBank",
    "StateVerifier",
    "TokenConfig",
    "ApprovalOutcome",
    "RequestState",
]
