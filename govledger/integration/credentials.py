# govledger/integration/credentials.py
from typing import Dict, Optional

import structlog

from govledger.chain.token import GovernedToken
from govledger.core.types import SCALE, Account, check_account, check_amount

logger = structlog.get_logger(__name__)

DEFAULT_VERIFICATION_FEE = 5 * SCALE


class CredentialStore:
    """
    Fee-gated record of credential hashes.

    Only uses the token's transfer and balance_of: the fee moves from the payer
    to fee_recipient first, and the hash is recorded only if that succeeded.
    """

    def __init__(
        self,
        token: GovernedToken,
        fee_recipient: Account,
        fee: int = DEFAULT_VERIFICATION_FEE,
    ):
        self.token = token
        self.fee_recipient = check_account(fee_recipient, "fee_recipient")
        self.fee = check_amount(fee, allow_zero=True)
        self._records: Dict[str, Account] = {}

    @staticmethod
    def _normalize(credential_hash: str) -> str:
        value = credential_hash.strip().lower()
        if value.startswith("0x"):
            value = value[2:]
        if not value or any(c not in "0123456789abcdef" for c in value):
            raise ValueError(f"Not a hex digest: {credential_hash!r}")
        return value

    def record(self, payer: Account, credential_hash: str) -> None:
        digest = self._normalize(credential_hash)
        if digest in self._records:
            raise ValueError(f"Credential already recorded: {credential_hash}")

        self.token.transfer(payer, self.fee_recipient, self.fee)
        self._records[digest] = payer
        logger.info("credential_recorded", payer=payer, digest=digest, fee=self.fee)

    def is_recorded(self, credential_hash: str) -> bool:
        return self._normalize(credential_hash) in self._records

    def recorded_by(self, credential_hash: str) -> Optional[Account]:
        return self._records.get(self._normalize(credential_hash))

    def can_afford(self, payer: Account) -> bool:
        return self.token.balance_of(payer) >= self.fee

    def __len__(self) -> int:
        return len(self._records)
