"""Exception types raised by the signature engine."""

from __future__ import annotations

from typing import Optional


class SignatureError(Exception):
    """Base class for every failure reported by the engine."""


class PatternError(SignatureError, ValueError):
    """The textual signature could not be compiled."""


class EmptyPatternError(PatternError):
    def __init__(self) -> None:
        super().__init__("Signature cannot be empty")


class MalformedByteTokenError(PatternError):
    def __init__(self, token: str, position: int) -> None:
        super().__init__(f"Invalid byte token {token!r} at position {position}")
        self.token = token
        self.position = position


class MemoryUnavailableError(SignatureError):
    """A byte required by a scan could not be read from the image."""

    def __init__(self, address: int) -> None:
        super().__init__(f"Memory at 0x{address:X} is not readable")
        self.address = address


class NoEnclosingFunctionError(SignatureError):
    def __init__(self, address: int) -> None:
        super().__init__(f"No function contains address 0x{address:X}")
        self.address = address


class InsufficientUniquenessError(SignatureError):
    """The synthesized signature does not first-match its own source.

    This usually means the selected region is too short or too repetitive
    compared to the rest of the image.
    """

    def __init__(self, expected: int, found: Optional[int]) -> None:
        where = "nowhere" if found is None else f"0x{found:X}"
        super().__init__(
            f"Signature for 0x{expected:X} first matches {where}; "
            "the region is most likely not big enough to be unique"
        )
        self.expected = expected
        self.found = found


class MinimizationError(SignatureError):
    """A signature reduced to nothing while it was being minimized."""


class SearchBudgetExceededError(SignatureError):
    """Minimization ran out of its configured step budget.

    ``signature`` still first-matches the target; it is only not known to
    be the shortest prefix.
    """

    def __init__(self, signature: str, steps: int) -> None:
        super().__init__(f"Minimization stopped after {steps} step(s)")
        self.signature = signature
        self.steps = steps
