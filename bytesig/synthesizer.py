"""Build wildcard-aware signatures from instruction streams."""

from __future__ import annotations

from typing import Iterable, Iterator

from .instruction import InstructionRecord
from .pattern import WILDCARD


def iter_signature_tokens(instructions: Iterable[InstructionRecord]) -> Iterator[str]:
    """Yield one token per instruction byte.

    Fallthrough instructions are emitted verbatim; every byte of any other
    instruction becomes a wildcard so the signature keeps the exact byte
    length of the code it was built from.
    """

    for instruction in instructions:
        if instruction.fallthrough:
            for value in instruction.data:
                yield f"{value:02X}"
        else:
            for _ in instruction.data:
                yield WILDCARD


def synthesize(instructions: Iterable[InstructionRecord]) -> str:
    """Return the full signature text; every token is followed by a space."""

    return "".join(f"{token} " for token in iter_signature_tokens(instructions))
