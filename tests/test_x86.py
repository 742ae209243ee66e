import logging

import pytest

from bytesig import AddressRange, BinaryImage, FunctionIndex, FunctionSpan, SignatureEngine, synthesize
from bytesig.x86 import CapstoneInstructionSource


def _records(code: bytes, mode: int = 64, base: int = 0x1000):
    image = BinaryImage.from_bytes(code, base=base)
    source = CapstoneInstructionSource(image, mode=mode)
    return list(source.instructions(image.bounds()))


def test_calls_and_returns_are_not_fallthrough():
    records = _records(bytes.fromhex("90 E8 01 02 03 04 C3"))

    assert [(record.address, record.size, record.fallthrough) for record in records] == [
        (0x1000, 1, True),
        (0x1001, 5, False),
        (0x1006, 1, False),
    ]
    assert synthesize(records) == "90 ? ? ? ? ? ? "


def test_jumps_are_not_fallthrough():
    records = _records(bytes.fromhex("B8 01 00 00 00 EB 00 74 02"))

    assert [record.fallthrough for record in records] == [True, False, False]


def test_32bit_mode_decodes_legacy_opcodes():
    records = _records(bytes.fromhex("06 07"), mode=32)

    assert [record.data for record in records] == [b"\x06", b"\x07"]


def test_undecodable_tail_is_reported(caplog):
    with caplog.at_level(logging.WARNING, logger="bytesig.x86"):
        records = _records(bytes.fromhex("90 06 90"))

    assert [record.data for record in records] == [b"\x90"]
    assert "left undecoded" in caplog.text


def test_unsupported_mode_is_rejected():
    with pytest.raises(ValueError, match="unsupported x86 mode"):
        CapstoneInstructionSource(BinaryImage.from_bytes(b"\x90"), mode=16)


def test_engine_with_capstone_source():
    code = bytearray(b"\xCC" * 0x20)
    code[0x00:0x0B] = bytes.fromhex("55 48 89 E5 E8 00 00 00 00 5D C3")
    code[0x10:0x1D] = bytes.fromhex("55 48 89 E5 E8 10 00 00 00 31 C0 5D C3")
    image = BinaryImage.from_bytes(bytes(code))
    functions = FunctionIndex(
        [
            FunctionSpan("alpha", AddressRange(0x00, 0x0B)),
            FunctionSpan("beta", AddressRange(0x10, 0x1D)),
        ]
    )
    engine = SignatureEngine(image, CapstoneInstructionSource(image), functions)

    assert engine.create_signature_at(0x12).signature == "55 48 89 E5 ? ? ? ? ? 31"
    assert engine.create_signature_at(0x00).signature == "55"
