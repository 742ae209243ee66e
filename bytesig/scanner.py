"""Masked first-match search over a memory reader."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterator, Optional, Protocol

from .errors import MemoryUnavailableError
from .image import AddressRange
from .pattern import Pattern


class MemoryReader(Protocol):
    def bounds(self) -> AddressRange:
        ...

    def runs(self, search_range: Optional[AddressRange] = None) -> Iterator[AddressRange]:
        ...

    def read(self, address: int, length: int) -> bytes:
        ...


@lru_cache(maxsize=256)
def pattern_regex(pattern: Pattern) -> "re.Pattern[bytes]":
    """Translate ``pattern`` into a fixed-width bytes regex.

    Wildcard runs become ``.{n}``; the expression is compiled with DOTALL so
    a wildcard also matches ``0x0A``.
    """

    parts = []
    wildcards = 0
    for value, significant in zip(pattern.values, pattern.mask):
        if not significant:
            wildcards += 1
            continue
        if wildcards:
            parts.append(_wildcard_run(wildcards))
            wildcards = 0
        parts.append(re.escape(bytes([value])))
    if wildcards:
        parts.append(_wildcard_run(wildcards))
    return re.compile(b"".join(parts), re.DOTALL)


def _wildcard_run(count: int) -> bytes:
    return b"." if count == 1 else b".{%d}" % count


class ByteScanner:
    """Locate the lowest address at which a :class:`Pattern` matches.

    Candidate windows never straddle an unmapped hole in the address space;
    each contiguous mapped run is searched on its own, in ascending order.
    Uninitialized memory inside a run is different: a candidate that needs a
    byte from it raises :class:`MemoryUnavailableError` instead of being
    treated as a mismatch.
    """

    def __init__(self, reader: MemoryReader) -> None:
        self.reader = reader

    def find_first(self, search_range: AddressRange, pattern: Pattern) -> Optional[int]:
        length = len(pattern)
        for run in self.reader.runs(search_range):
            if run.length < length:
                continue
            if not pattern.significant_count:
                return run.start
            found = self._scan_run(run, pattern)
            if found is not None:
                return found
        return None

    def _scan_run(self, run: AddressRange, pattern: Pattern) -> Optional[int]:
        regex = pattern_regex(pattern)
        length = len(pattern)
        start = run.start
        while run.end - start >= length:
            try:
                data = self.reader.read(start, run.end - start)
            except MemoryUnavailableError as exc:
                hole = exc.address
            else:
                match = regex.search(data)
                return None if match is None else start + match.start()

            # windows entirely before the unreadable byte
            match = regex.search(self.reader.read(start, hole - start))
            if match is not None:
                return start + match.start()

            # windows covering it
            last = min(hole, run.end - length)
            for candidate in range(max(start, hole - length + 1), last + 1):
                if self._matches_at(candidate, pattern):
                    return candidate
            start = hole + 1
        return None

    def _matches_at(self, address: int, pattern: Pattern) -> bool:
        required = [
            (self.reader.read(address + index, 1)[0], value)
            for index, (value, significant) in enumerate(zip(pattern.values, pattern.mask))
            if significant
        ]
        return all(actual == expected for actual, expected in required)
