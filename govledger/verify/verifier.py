# govledger/verify/verifier.py
from typing import List, Optional
from dataclasses import dataclass, field

from govledger.core.canon import state_hash
from govledger.core.types import Snapshot, ZERO_ACCOUNT
from govledger.storage import StorageBackend


@dataclass
class VerificationFailure:
    index: int
    message: str
    category: str = "general"  # e.g. "hash_chain", "supply", "guardians", "approvals"


@dataclass
class VerificationResult:
    is_valid: bool
    message: str = ""
    failures: List[VerificationFailure] = field(default_factory=list)

    @property
    def first_failure(self) -> Optional[VerificationFailure]:
        return self.failures[0] if self.failures else None

    def __bool__(self):
        return self.is_valid

    def __str__(self):
        if self.is_valid:
            return "Ledger history is valid ✓"
        lines = [f"Verification FAILED ({len(self.failures)} issues):"]
        for f in self.failures:
            lines.append(f"  • [{f.index}] {f.category}: {f.message}")
        return "\n".join(lines)


class StateVerifier:
    """
    Offline verifier for persisted ledger snapshots.
    Checks the hash chain and the ledger invariants inside every version.
    """

    def verify(self, chain: List[Snapshot]) -> VerificationResult:
        if not chain:
            return VerificationResult(True, "Empty history is valid")

        result = VerificationResult(True)

        def fail(i: int, message: str, category: str) -> None:
            result.failures.append(VerificationFailure(i, message, category))
            result.is_valid = False

        # 1. Identity & ordering
        ledger_id = chain[0].ledger_id
        for i, snap in enumerate(chain):
            if snap.ledger_id != ledger_id:
                fail(i, f"Ledger mismatch: {snap.ledger_id}", "ledger")
            if snap.version != i:
                fail(i, f"Version mismatch: expected {i}, got {snap.version}", "sequence")

        # 2. Hash chain
        for i, snap in enumerate(chain):
            if state_hash(snap.state) != snap.state_hash:
                fail(i, "state_hash does not match snapshot content", "hash_chain")
            expected_prev = chain[i - 1].state_hash if i else ""
            if snap.prev_hash != expected_prev:
                fail(i, "prev_hash does not match previous snapshot hash", "hash_chain")

        # 3. Ledger invariants
        for i, snap in enumerate(chain):
            try:
                self._check_state(i, snap.state, fail)
            except (KeyError, TypeError, ValueError) as e:
                fail(i, f"Malformed state: {e!r}", "format")

        result.message = "Valid history" if result.is_valid else f"Failed with {len(result.failures)} issues"
        return result

    def _check_state(self, i: int, state: dict, fail) -> None:
        token = state["token"]
        ledger = state["ledger"]

        balances = {a: int(b) for a, b in ledger["balances"].items()}
        if any(b < 0 for b in balances.values()):
            fail(i, "Negative balance", "balances")
        total = int(ledger["total_supply"])
        if total != sum(balances.values()):
            fail(i, f"Total supply {total} != sum of balances {sum(balances.values())}", "supply")

        guardians = token["guardians"]
        if len(guardians) != 3 or len(set(guardians)) != 3 or any(
            not g or g == ZERO_ACCOUNT for g in guardians
        ):
            fail(i, "Guardian set must be three distinct identities", "guardians")

        for kind, quorum in (("mint_approvals", token["mint_quorum"]),
                             ("withdrawal_approvals", token["withdrawal_quorum"])):
            for entry in state.get(kind, []):
                approvals = entry["approvals"]
                if len(set(approvals)) != len(approvals):
                    fail(i, f"Duplicate approval in {kind}", "approvals")
                if not set(approvals) <= set(guardians):
                    fail(i, f"Non-guardian approval in {kind}", "approvals")
                if not 0 < len(approvals) < quorum:
                    fail(i, f"{kind} entry holds {len(approvals)} approvals (quorum {quorum})", "approvals")

    def verify_from_storage(self, ledger_id: str, storage: StorageBackend) -> VerificationResult:
        """
        Load snapshots from persistent storage and verify them.
        A load failure (e.g. broken chain) becomes a failed result.
        """
        try:
            chain = storage.load_snapshots(ledger_id)
        except Exception as e:
            return VerificationResult(
                False,
                f"Failed to load ledger '{ledger_id}' from storage: {str(e)}",
                [VerificationFailure(-1, str(e), "storage")]
            )

        return self.verify(chain)
