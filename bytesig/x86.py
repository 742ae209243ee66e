"""x86 instruction source backed by capstone."""

from __future__ import annotations

import logging
from typing import Iterator

import capstone

from .image import AddressRange
from .instruction import InstructionRecord
from .scanner import MemoryReader

logger = logging.getLogger(__name__)

# Anything in these groups transfers control somewhere other than the next
# instruction, so its encoding is likely to hold a relative or absolute target.
BRANCH_GROUPS = (
    capstone.CS_GRP_JUMP,
    capstone.CS_GRP_CALL,
    capstone.CS_GRP_RET,
    capstone.CS_GRP_INT,
    capstone.CS_GRP_IRET,
)

MODES = {
    32: capstone.CS_MODE_32,
    64: capstone.CS_MODE_64,
}


class CapstoneInstructionSource:
    def __init__(self, reader: MemoryReader, *, mode: int = 64) -> None:
        if mode not in MODES:
            raise ValueError(f"unsupported x86 mode: {mode}")
        self.reader = reader
        self.mode = mode
        self._cs = capstone.Cs(capstone.CS_ARCH_X86, MODES[mode])
        self._cs.detail = True

    def instructions(self, code_range: AddressRange) -> Iterator[InstructionRecord]:
        code = self.reader.read(code_range.start, code_range.length)
        end = code_range.start
        for insn in self._cs.disasm(code, code_range.start):
            fallthrough = not any(insn.group(group) for group in BRANCH_GROUPS)
            yield InstructionRecord(insn.address, bytes(insn.bytes), fallthrough)
            end = insn.address + insn.size
        if end < code_range.end:
            logger.warning(
                "stopped decoding at 0x%X, %d byte(s) of %s left undecoded",
                end,
                code_range.end - end,
                code_range,
            )
