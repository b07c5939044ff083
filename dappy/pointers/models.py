"""Content pointer model: a fixed-shape multihash."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import ClassVar

from dappy.errors import InvalidPointerError

ZERO_HASH = "0x" + "0" * 64

SHA2_256 = 0x12

_DIGEST_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


@dataclass(frozen=True)
class Multihash:
    """A content address: 32-byte digest, hash function code and digest size.

    The all-zero pointer is the "unset" sentinel.
    """

    digest: str = ZERO_HASH
    hash_function: int = 0
    size: int = 0

    EMPTY: ClassVar["Multihash"]

    def __post_init__(self) -> None:
        if not isinstance(self.digest, str) or not _DIGEST_RE.match(self.digest):
            raise InvalidPointerError(f"digest must be a 0x-prefixed 32-byte hex string: {self.digest!r}")
        for name in ("hash_function", "size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 0xFF:
                raise InvalidPointerError(f"{name} must be an integer in 0..255, got {value!r}")
        object.__setattr__(self, "digest", self.digest.lower())

    @property
    def is_empty(self) -> bool:
        return self.digest == ZERO_HASH and self.hash_function == 0 and self.size == 0

    def as_tuple(self) -> tuple[str, int, int]:
        return (self.digest, self.hash_function, self.size)

    def to_dict(self) -> dict:
        return {"digest": self.digest, "hash_function": self.hash_function, "size": self.size}

    @classmethod
    def from_dict(cls, data: dict) -> "Multihash":
        return cls(
            digest=data.get("digest", ZERO_HASH),
            hash_function=data.get("hash_function", 0),
            size=data.get("size", 0),
        )

    @classmethod
    def from_content(cls, content: bytes | str) -> "Multihash":
        """Build a sha2-256 pointer for ``content``."""
        if isinstance(content, str):
            content = content.encode()
        digest = hashlib.sha256(content).digest()
        return cls(digest="0x" + digest.hex(), hash_function=SHA2_256, size=len(digest))


Multihash.EMPTY = Multihash()
