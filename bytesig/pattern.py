"""Compile textual hex/wildcard signatures into byte + mask patterns."""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import List, Tuple

from .errors import EmptyPatternError, MalformedByteTokenError

WILDCARD = "?"

_HEX_DIGITS = frozenset(string.hexdigits)


@dataclass(frozen=True)
class Pattern:
    """An ordered run of ``(value, significant)`` pairs.

    ``values`` holds ``0`` for wildcard positions; ``mask[i]`` is ``True``
    when ``values[i]`` has to match exactly.
    """

    values: bytes
    mask: Tuple[bool, ...]

    def __post_init__(self) -> None:
        if not self.values:
            raise ValueError("Pattern must contain at least one element")
        if len(self.values) != len(self.mask):
            raise ValueError("Pattern values and mask must have the same length")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Pattern":
        return cls(bytes(data), (True,) * len(data))

    def __len__(self) -> int:
        return len(self.values)

    @property
    def significant_count(self) -> int:
        return sum(self.mask)

    def prefix(self, length: int) -> "Pattern":
        return Pattern(self.values[:length], self.mask[:length])

    def tokens(self) -> List[str]:
        return [
            f"{value:02X}" if significant else WILDCARD
            for value, significant in zip(self.values, self.mask)
        ]

    def to_text(self) -> str:
        return " ".join(self.tokens())


def compile_signature(text: str) -> Pattern:
    """Parse ``text`` into a :class:`Pattern`.

    Whitespace is purely cosmetic and removed before tokenizing, so
    ``"DEAD?EF"`` and ``"DE AD ? EF"`` compile to the same pattern.  A ``?``
    is always a single-character wildcard; anything else has to be a
    two-digit hexadecimal byte.
    """

    compact = "".join(text.split())
    if not compact:
        raise EmptyPatternError()

    # Upper bound: every character is a wildcard.
    values = bytearray(len(compact))
    mask = [False] * len(compact)
    count = 0
    position = 0
    while position < len(compact):
        if compact[position] == WILDCARD:
            count += 1
            position += 1
            continue

        token = compact[position : position + 2]
        if len(token) != 2 or not _HEX_DIGITS.issuperset(token):
            raise MalformedByteTokenError(token, position)
        values[count] = int(token, 16)
        mask[count] = True
        count += 1
        position += 2

    return Pattern(bytes(values[:count]), tuple(mask[:count]))
