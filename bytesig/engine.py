"""High level create/find operations wired over the injected collaborators."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .config import EngineConfig
from .errors import InsufficientUniquenessError, NoEnclosingFunctionError
from .functions import FunctionIndex, FunctionSpan
from .image import AddressRange
from .instruction import InstructionSource
from .minimizer import SignatureMinimizer
from .pattern import compile_signature
from .scanner import ByteScanner, MemoryReader
from .synthesizer import synthesize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureResult:
    signature: str
    address: int
    length: int
    steps: int
    function: Optional[FunctionSpan] = None


@dataclass(frozen=True)
class FindResult:
    address: Optional[int]
    function: Optional[FunctionSpan] = None

    @property
    def found(self) -> bool:
        return self.address is not None

    @property
    def inside_function(self) -> bool:
        return self.function is not None


class SignatureEngine:
    """Create signatures for code ranges and locate existing ones.

    ``reader`` supplies image bytes, ``instructions`` decodes code ranges
    and the optional ``functions`` index resolves addresses to function
    bodies.  Every scan covers ``scan_range``, defaulting to the full bounds
    of the image.
    """

    def __init__(
        self,
        reader: MemoryReader,
        instructions: InstructionSource,
        functions: Optional[FunctionIndex] = None,
        *,
        config: Optional[EngineConfig] = None,
        scan_range: Optional[AddressRange] = None,
    ) -> None:
        self.reader = reader
        self.instructions = instructions
        self.functions = functions
        self.config = config or EngineConfig()
        self.scanner = ByteScanner(reader)
        self.minimizer = SignatureMinimizer(
            self.scanner, max_steps=self.config.max_minimize_steps
        )
        self._scan_range = scan_range

    @property
    def scan_range(self) -> AddressRange:
        if self._scan_range is not None:
            return self._scan_range
        return self.reader.bounds()

    def synthesize_and_minimize(
        self,
        code_range: AddressRange,
        *,
        function: Optional[FunctionSpan] = None,
    ) -> SignatureResult:
        target = code_range.start
        text = synthesize(self.instructions.instructions(code_range))
        if not text:
            raise ValueError(f"no instructions decoded in {code_range}")
        pattern = compile_signature(text)
        logger.debug("synthesized %d-byte signature for %s", len(pattern), code_range)

        found = self.scanner.find_first(self.scan_range, pattern)
        if found != target:
            raise InsufficientUniquenessError(target, found)

        minimized = self.minimizer.minimize_pattern(pattern, target, self.scan_range)
        return SignatureResult(
            signature=minimized.text,
            address=target,
            length=len(minimized.pattern),
            steps=minimized.steps,
            function=function,
        )

    def create_signature_at(self, address: int) -> SignatureResult:
        """Create a signature for the function that contains ``address``."""

        function = self.functions.function_containing(address) if self.functions else None
        if function is None:
            raise NoEnclosingFunctionError(address)
        logger.info("creating signature for %s @ 0x%X", function.name, function.entry)
        return self.synthesize_and_minimize(function.range, function=function)

    def find(self, signature_text: str) -> FindResult:
        address = self.scanner.find_first(self.scan_range, compile_signature(signature_text))
        if address is None:
            return FindResult(None)

        function = self.functions.function_containing(address) if self.functions else None
        if function is None:
            logger.warning("address 0x%X found is not inside a function", address)
        return FindResult(address, function)
