import enum
from typing import NewType, Optional

from eth_typing import BLSPubkey, BLSSignature, BlockNumber, Hash32

Slot = NewType("Slot", int)  # uint64
Epoch = NewType("Epoch", int)  # uint64

CommitteeIndex = NewType("CommitteeIndex", int)  # uint64, a committee index at a slot
ValidatorIndex = NewType("ValidatorIndex", int)  # uint64, a validator registry index

Gwei = NewType("Gwei", int)  # uint64

Timestamp = NewType("Timestamp", int)

Root = NewType("Root", Hash32)  # a Merkle root

ChainID = NewType("ChainID", int)

__all__ = (
    "BLSPubkey",
    "BLSSignature",
    "BlockNumber",
    "ChainID",
    "CommitteeIndex",
    "Epoch",
    "Gwei",
    "Hash32",
    "Root",
    "Slot",
    "Timestamp",
    "Tristate",
    "ValidatorIndex",
)


class Tristate(enum.Enum):
    """
    A flag that is only meaningful once some later pass has classified it.

    ``UNKNOWN`` means "not classified yet", which is different from ``FALSE``:
    a block that has not been through a canonical-chain pass is not orphaned.
    """
    UNKNOWN = None
    TRUE = True
    FALSE = False

    @classmethod
    def from_optional(cls, value: Optional[bool]) -> "Tristate":
        if value is None:
            return cls.UNKNOWN
        return cls.TRUE if value else cls.FALSE

    def to_optional(self) -> Optional[bool]:
        return self.value

    @property
    def is_known(self) -> bool:
        return self is not Tristate.UNKNOWN

    def __bool__(self) -> bool:
        # UNKNOWN is neither true nor false
        raise TypeError(f"{self!r} has no truth value, compare against Tristate members")

    def __str__(self) -> str:
        return self.name.lower()
