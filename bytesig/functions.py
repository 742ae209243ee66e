"""Function boundary lookup used to resolve the user's selection."""

from __future__ import annotations

import bisect
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from elftools.elf.elffile import ELFFile
from elftools.elf.sections import SymbolTableSection

from .image import AddressRange
from .instruction import parse_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FunctionSpan:
    name: str
    range: AddressRange

    @property
    def entry(self) -> int:
        return self.range.start


class FunctionIndex:
    """Sorted, non-overlapping set of function bodies."""

    def __init__(self, spans: Iterable[FunctionSpan]) -> None:
        self._spans: List[FunctionSpan] = sorted(spans, key=lambda span: span.range.start)
        for prev, curr in zip(self._spans, self._spans[1:]):
            if curr.range.start < prev.range.end:
                raise ValueError(f"Functions {prev.name} and {curr.name} overlap")
        self._starts = [span.range.start for span in self._spans]

    @classmethod
    def load(cls, path: Path) -> "FunctionIndex":
        """Read ``{"functions": [{"name", "start", "end"}, ...]}``.

        ``end`` is exclusive; ``size`` may be given instead of ``end``.
        """

        payload = json.loads(path.read_text("utf-8"))
        if isinstance(payload, Mapping):
            payload = payload.get("functions", [])
        if not isinstance(payload, list):
            raise ValueError(f"{path}: expected a list of functions")

        spans = []
        for entry in payload:
            if not isinstance(entry, Mapping) or "start" not in entry:
                raise ValueError(f"invalid function entry: {entry!r}")
            start = parse_address(entry["start"])
            if "end" in entry:
                end = parse_address(entry["end"])
            elif "size" in entry:
                end = start + parse_address(entry["size"])
            else:
                raise ValueError(f"function at 0x{start:X} needs an end or a size")
            name = str(entry.get("name") or f"sub_{start:X}")
            spans.append(FunctionSpan(name, AddressRange(start, end)))
        return cls(spans)

    @classmethod
    def from_elf(cls, path: Path) -> "FunctionIndex":
        spans: Dict[int, FunctionSpan] = {}
        with path.open("rb") as handle:
            elf = ELFFile(handle)
            for section in elf.iter_sections():
                if not isinstance(section, SymbolTableSection):
                    continue
                for symbol in section.iter_symbols():
                    if symbol["st_info"]["type"] != "STT_FUNC":
                        continue
                    start, size = symbol["st_value"], symbol["st_size"]
                    if not size or symbol["st_shndx"] == "SHN_UNDEF":
                        continue
                    # .symtab and .dynsym usually describe the same functions
                    spans.setdefault(
                        start, FunctionSpan(symbol.name, AddressRange(start, start + size))
                    )

        accepted: List[FunctionSpan] = []
        for start in sorted(spans):
            span = spans[start]
            if accepted and start < accepted[-1].range.end:
                logger.debug("skipping %s nested in %s", span.name, accepted[-1].name)
                continue
            accepted.append(span)
        return cls(accepted)

    def __len__(self) -> int:
        return len(self._spans)

    def __iter__(self) -> Iterator[FunctionSpan]:
        return iter(self._spans)

    def function_containing(self, address: int) -> Optional[FunctionSpan]:
        index = bisect.bisect_right(self._starts, address) - 1
        if index < 0:
            return None
        span = self._spans[index]
        if span.range.contains(address):
            return span
        return None
