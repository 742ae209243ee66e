"""Flat, read-only views over binary images."""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

from elftools.elf.elffile import ELFFile

from .errors import MemoryUnavailableError

ELF_MAGIC = b"\x7fELF"


@dataclass(frozen=True)
class AddressRange:
    """Half-open ``[start, end)`` span of addresses."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError("Address ranges cannot start below zero")
        if self.end < self.start:
            raise ValueError(
                f"Address range end 0x{self.end:X} precedes start 0x{self.start:X}"
            )

    @property
    def length(self) -> int:
        return self.end - self.start

    def contains(self, address: int) -> bool:
        return self.start <= address < self.end

    def clip(self, other: "AddressRange") -> Optional["AddressRange"]:
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if start >= end:
            return None
        return AddressRange(start, end)

    def __str__(self) -> str:
        return f"[0x{self.start:X}, 0x{self.end:X})"


@dataclass(frozen=True)
class MemoryBlock:
    """A mapped block of the image.

    ``data`` is ``None`` for blocks that are mapped but carry no initialized
    contents (``.bss`` and friends); reading them fails.
    """

    name: str
    start: int
    size: int
    data: Optional[bytes] = None

    def __post_init__(self) -> None:
        if self.start < 0 or self.size < 0:
            raise ValueError(f"Block {self.name} has negative bounds")
        if self.data is not None and len(self.data) != self.size:
            raise ValueError(
                f"Block {self.name} declares {self.size} bytes but carries {len(self.data)}"
            )

    @property
    def end(self) -> int:
        return self.start + self.size

    @property
    def initialized(self) -> bool:
        return self.data is not None


class BinaryImage:
    """Memory reader over a set of non-overlapping blocks."""

    def __init__(
        self,
        blocks: Iterable[MemoryBlock],
        path: Optional[Path] = None,
        *,
        image_format: str = "raw",
    ) -> None:
        self.path = path
        self.format = image_format
        self._blocks = sorted((block for block in blocks if block.size), key=lambda b: b.start)
        for prev, curr in zip(self._blocks, self._blocks[1:]):
            if curr.start < prev.end:
                raise ValueError(f"Blocks {prev.name} and {curr.name} overlap")
        self._starts = [block.start for block in self._blocks]

    @classmethod
    def from_bytes(cls, data: bytes, base: int = 0, *, name: str = "raw") -> "BinaryImage":
        return cls([MemoryBlock(name, base, len(data), bytes(data))])

    @classmethod
    def load(cls, path: Path, image_format: str = "auto", base: int = 0) -> "BinaryImage":
        if image_format == "auto":
            with path.open("rb") as handle:
                image_format = "elf" if handle.read(4) == ELF_MAGIC else "raw"
        if image_format == "elf":
            return cls.load_elf(path)
        if image_format == "raw":
            return cls.load_raw(path, base)
        raise ValueError(f"unknown image format: {image_format}")

    @classmethod
    def load_raw(cls, path: Path, base: int = 0) -> "BinaryImage":
        data = path.read_bytes()
        return cls([MemoryBlock(path.name, base, len(data), data)], path)

    @classmethod
    def load_elf(cls, path: Path) -> "BinaryImage":
        """Map the ``PT_LOAD`` segments of an ELF file at their virtual addresses."""

        blocks: List[MemoryBlock] = []
        with path.open("rb") as handle:
            elf = ELFFile(handle)
            for index, segment in enumerate(elf.iter_segments()):
                if segment["p_type"] != "PT_LOAD":
                    continue
                vaddr = segment["p_vaddr"]
                filesz = segment["p_filesz"]
                memsz = segment["p_memsz"]
                if filesz:
                    blocks.append(MemoryBlock(f"LOAD{index}", vaddr, filesz, segment.data()))
                if memsz > filesz:
                    # zero-fill at load time, nothing to match against on disk
                    blocks.append(MemoryBlock(f"LOAD{index}.bss", vaddr + filesz, memsz - filesz))
        return cls(blocks, path, image_format="elf")

    @property
    def blocks(self) -> Sequence[MemoryBlock]:
        return tuple(self._blocks)

    def bounds(self) -> AddressRange:
        if not self._blocks:
            return AddressRange(0, 0)
        return AddressRange(self._blocks[0].start, max(block.end for block in self._blocks))

    def runs(self, search_range: Optional[AddressRange] = None) -> Iterator[AddressRange]:
        """Yield maximal contiguous mapped spans, clipped to ``search_range``."""

        current: Optional[AddressRange] = None
        for block in self._blocks:
            if current is not None and block.start == current.end:
                current = AddressRange(current.start, block.end)
                continue
            if current is not None:
                clipped = current if search_range is None else current.clip(search_range)
                if clipped is not None:
                    yield clipped
            current = AddressRange(block.start, block.end)
        if current is not None:
            clipped = current if search_range is None else current.clip(search_range)
            if clipped is not None:
                yield clipped

    def read(self, address: int, length: int) -> bytes:
        """Return ``length`` bytes at ``address``.

        Raises :class:`MemoryUnavailableError` naming the first address that is
        unmapped or uninitialized.
        """

        end = address + length
        chunks: List[bytes] = []
        cursor = address
        while cursor < end:
            block = self._block_at(cursor)
            if block is None or block.data is None:
                raise MemoryUnavailableError(cursor)
            stop = min(block.end, end)
            chunks.append(block.data[cursor - block.start : stop - block.start])
            cursor = stop
        return b"".join(chunks)

    def _block_at(self, address: int) -> Optional[MemoryBlock]:
        index = bisect.bisect_right(self._starts, address) - 1
        if index < 0:
            return None
        block = self._blocks[index]
        if address < block.end:
            return block
        return None
