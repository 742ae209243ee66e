"""Instruction records and host-independent instruction sources."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Mapping, Protocol, Union

from .image import AddressRange


@dataclass(frozen=True)
class InstructionRecord:
    """A decoded instruction as seen by the signature synthesizer.

    ``fallthrough`` is true when the instruction has no control flow other
    than falling through to its successor.  Such encodings are assumed to
    carry no address-dependent values and are safe to match verbatim.
    """

    address: int
    data: bytes
    fallthrough: bool

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def end(self) -> int:
        return self.address + len(self.data)


class InstructionSource(Protocol):
    def instructions(self, code_range: AddressRange) -> Iterator[InstructionRecord]:
        ...


def parse_address(value: Union[int, str]) -> int:
    """Accept integers as well as ``"0x..."``/decimal strings."""

    if isinstance(value, bool):
        raise ValueError(f"invalid address: {value!r}")
    if isinstance(value, int):
        return value
    return int(str(value), 0)


class ListingInstructionSource:
    """Serve instructions exported from a disassembler as a JSON listing.

    The listing is either a list of records or an object with an
    ``instructions`` key.  Each record carries ``address``, ``bytes`` (a hex
    string, spaces allowed) and ``fallthrough``.
    """

    def __init__(self, records: Iterable[InstructionRecord]) -> None:
        self._records: List[InstructionRecord] = sorted(records, key=lambda r: r.address)
        for prev, curr in zip(self._records, self._records[1:]):
            if curr.address < prev.end:
                raise ValueError(
                    f"Instructions at 0x{prev.address:X} and 0x{curr.address:X} overlap"
                )

    @classmethod
    def load(cls, path: Path) -> "ListingInstructionSource":
        payload = json.loads(path.read_text("utf-8"))
        if isinstance(payload, Mapping):
            payload = payload.get("instructions", [])
        if not isinstance(payload, list):
            raise ValueError(f"{path}: expected a list of instructions")
        return cls(cls._record_from_json(entry) for entry in payload)

    @staticmethod
    def _record_from_json(entry: Any) -> InstructionRecord:
        if not isinstance(entry, Mapping):
            raise ValueError(f"invalid instruction entry: {entry!r}")
        try:
            address = parse_address(entry["address"])
            data = bytes.fromhex(str(entry["bytes"]))
        except KeyError as exc:
            raise ValueError(f"instruction entry is missing {exc.args[0]!r}") from exc
        if not data:
            raise ValueError(f"instruction at 0x{address:X} has no bytes")
        return InstructionRecord(address, data, bool(entry.get("fallthrough", False)))

    def __len__(self) -> int:
        return len(self._records)

    def instructions(self, code_range: AddressRange) -> Iterator[InstructionRecord]:
        """Yield the records covering ``code_range`` without holes."""

        previous = None
        for record in self._records:
            if not code_range.contains(record.address):
                continue
            expected = code_range.start if previous is None else previous.end
            if record.address != expected:
                raise ValueError(
                    f"Listing has a gap between 0x{expected:X} and 0x{record.address:X}"
                )
            yield record
            previous = record
        if previous is None:
            raise ValueError(f"Listing has no instructions in {code_range}")
        if previous.end < code_range.end:
            raise ValueError(
                f"Listing has a gap between 0x{previous.end:X} and 0x{code_range.end:X}"
            )
