"""Shrink a unique signature to its shortest still-unique prefix."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from .errors import MinimizationError, SearchBudgetExceededError
from .image import AddressRange
from .pattern import Pattern, compile_signature
from .scanner import ByteScanner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MinimizedSignature:
    pattern: Pattern
    steps: int

    @property
    def text(self) -> str:
        return self.pattern.to_text()


def _concrete_length(pattern: Pattern, length: int) -> int:
    while length and not pattern.mask[length - 1]:
        length -= 1
    return length


def canonicalize(pattern: Pattern) -> Pattern:
    """Drop trailing wildcards; they never make a signature more specific."""

    length = _concrete_length(pattern, len(pattern))
    if not length:
        raise MinimizationError("signature does not contain a single concrete byte")
    return pattern.prefix(length)


class SignatureMinimizer:
    """Greedy suffix trimming driven by :class:`ByteScanner`.

    Each step removes the last concrete byte (plus any wildcards it exposes)
    and keeps the shorter signature while its first match is still the
    target.  Bytes are never removed from the middle or the front, so the
    result is the shortest unique *prefix*, not a globally minimal pattern.

    Every step is a full scan of ``scan_range``; ``max_steps`` bounds the
    number of scans for callers that cannot afford to wait on large or very
    repetitive images.
    """

    def __init__(self, scanner: ByteScanner, *, max_steps: Optional[int] = None) -> None:
        if max_steps is not None and max_steps < 0:
            raise ValueError("max_steps must be non-negative")
        self.scanner = scanner
        self.max_steps = max_steps

    def minimize(
        self,
        signature: Union[str, Pattern],
        target: int,
        scan_range: AddressRange,
    ) -> str:
        return self.minimize_pattern(signature, target, scan_range).text

    def minimize_pattern(
        self,
        signature: Union[str, Pattern],
        target: int,
        scan_range: AddressRange,
    ) -> MinimizedSignature:
        """Minimize ``signature``, which must already first-match ``target``."""

        full = compile_signature(signature) if isinstance(signature, str) else signature
        length = len(canonicalize(full))
        steps = 0
        while True:
            candidate = _concrete_length(full, length - 1)
            if not candidate:
                break
            if self.max_steps is not None and steps >= self.max_steps:
                raise SearchBudgetExceededError(full.prefix(length).to_text(), steps)

            steps += 1
            found = self.scanner.find_first(scan_range, full.prefix(candidate))
            if found != target:
                logger.debug(
                    "%d-byte prefix first matches %s, keeping %d bytes",
                    candidate,
                    "nothing" if found is None else f"0x{found:X}",
                    length,
                )
                break
            length = candidate

        logger.debug("minimized signature to %d of %d bytes in %d step(s)", length, len(full), steps)
        return MinimizedSignature(full.prefix(length), steps)
