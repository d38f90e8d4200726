# govledger/governance/config.py
from typing import Iterator, Sequence, Tuple

from govledger.core.errors import InvalidAccount, InvalidGuardianSet
from govledger.core.types import Account, check_account

GUARDIAN_COUNT = 3


class GovernanceConfig:
    """Immutable, ordered set of exactly three distinct guardians."""

    __slots__ = ("_guardians",)

    def __init__(self, guardians: Sequence[Account]):
        guardians = tuple(guardians)
        if len(guardians) != GUARDIAN_COUNT:
            raise InvalidGuardianSet(
                f"Expected {GUARDIAN_COUNT} guardians, got {len(guardians)}",
                {"guardians": guardians},
            )
        for g in guardians:
            try:
                check_account(g, "guardian")
            except InvalidAccount as e:
                raise InvalidGuardianSet("Guardian identity is empty or zero", e.context) from e
        if len(set(guardians)) != len(guardians):
            raise InvalidGuardianSet("Guardians must be distinct", {"guardians": guardians})

        object.__setattr__(self, "_guardians", guardians)

    def __setattr__(self, name, value):
        raise AttributeError("GovernanceConfig is immutable")

    @property
    def guardians(self) -> Tuple[Account, ...]:
        return self._guardians

    def is_guardian(self, identity: Account) -> bool:
        return identity in self._guardians

    def __iter__(self) -> Iterator[Account]:
        return iter(self._guardians)

    def __len__(self) -> int:
        return len(self._guardians)

    def __eq__(self, other) -> bool:
        return isinstance(other, GovernanceConfig) and other._guardians == self._guardians

    def __hash__(self) -> int:
        return hash(self._guardians)

    def __repr__(self) -> str:
        return f"GovernanceConfig({list(self._guardians)!r})"
