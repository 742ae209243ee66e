"""Public package exports for the byte signature engine."""

from .config import EngineConfig
from .engine import FindResult, SignatureEngine, SignatureResult
from .errors import (
    EmptyPatternError,
    InsufficientUniquenessError,
    MalformedByteTokenError,
    MemoryUnavailableError,
    MinimizationError,
    NoEnclosingFunctionError,
    PatternError,
    SearchBudgetExceededError,
    SignatureError,
)
from .functions import FunctionIndex, FunctionSpan
from .image import AddressRange, BinaryImage, MemoryBlock
from .instruction import InstructionRecord, ListingInstructionSource
from .minimizer import SignatureMinimizer, canonicalize
from .pattern import Pattern, compile_signature
from .scanner import ByteScanner
from .synthesizer import iter_signature_tokens, synthesize

__all__ = [
    "AddressRange",
    "BinaryImage",
    "ByteScanner",
    "EmptyPatternError",
    "EngineConfig",
    "FindResult",
    "FunctionIndex",
    "FunctionSpan",
    "InstructionRecord",
    "InsufficientUniquenessError",
    "ListingInstructionSource",
    "MalformedByteTokenError",
    "MemoryBlock",
    "MemoryUnavailableError",
    "MinimizationError",
    "NoEnclosingFunctionError",
    "Pattern",
    "PatternError",
    "SearchBudgetExceededError",
    "SignatureEngine",
    "SignatureError",
    "SignatureMinimizer",
    "SignatureResult",
    "canonicalize",
    "compile_signature",
    "iter_signature_tokens",
    "synthesize",
]
