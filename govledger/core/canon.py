# govledger/core/canon.py
import hashlib
from typing import Any

try:
    import jcs
except ImportError:
    raise ImportError("Please install jcs: pip install jcs")


def canonical_json(obj: Any) -> bytes:
    """
    Produce deterministic UTF-8 bytes according to RFC 8785 (JSON Canonicalization Scheme).
    Keep amounts as decimal strings: JCS numbers are IEEE doubles.
    """
    return jcs.canonicalize(obj)


def canonical_json_str(obj: Any) -> str:
    return canonical_json(obj).decode("utf-8")


def state_hash(state: Any) -> str:
    """hex(sha256) of the canonical form of a serialized ledger state."""
    return hashlib.sha256(canonical_json(state)).hexdigest()
