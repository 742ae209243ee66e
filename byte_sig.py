#!/usr/bin/env python3
"""Create and find wildcard byte signatures in binary images."""

from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Optional, Sequence

from bytesig import (
    AddressRange,
    BinaryImage,
    EngineConfig,
    FunctionIndex,
    ListingInstructionSource,
    SearchBudgetExceededError,
    SignatureEngine,
    SignatureError,
)
from bytesig.config import IMAGE_FORMATS, X86_MODES
from bytesig.instruction import parse_address
from bytesig.x86 import CapstoneInstructionSource


def _address(value: str) -> int:
    try:
        return parse_address(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid address: {value}")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("binary", type=Path, help="Raw or ELF image to work on")
    common.add_argument(
        "--format",
        choices=IMAGE_FORMATS,
        default=None,
        help="Image format, detected from the file header by default",
    )
    common.add_argument(
        "--base",
        type=_address,
        default=None,
        help="Load address of raw images",
    )
    common.add_argument(
        "--mode",
        type=int,
        choices=X86_MODES,
        default=None,
        help="x86 decoding mode used when no --listing is given",
    )
    common.add_argument(
        "--functions",
        type=Path,
        default=None,
        help="JSON function map; ELF symbols are used when omitted",
    )
    common.add_argument(
        "--listing",
        type=Path,
        default=None,
        help="JSON instruction listing exported from a disassembler",
    )
    common.add_argument(
        "--config",
        type=Path,
        default=Path("bytesig.json"),
        help="Optional JSON configuration file",
    )
    common.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help="Upper bound on minimization scans",
    )
    common.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    parser = argparse.ArgumentParser(description=__doc__)
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser(
        "create", parents=[common], help="Create a signature for a function or range"
    )
    target = create.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--address",
        type=_address,
        help="Any address inside the function to sign",
    )
    target.add_argument(
        "--range",
        type=_address,
        nargs=2,
        metavar=("START", "END"),
        help="Explicit code range [START, END) to sign",
    )

    find = commands.add_parser("find", parents=[common], help="Find the first match of a signature")
    find.add_argument("signature", help='Signature such as "48 8B ? ? 89"')

    return parser.parse_args(argv)


def build_engine(args: argparse.Namespace) -> SignatureEngine:
    config = EngineConfig.load(args.config).with_overrides(
        max_minimize_steps=args.max_steps,
        x86_mode=args.mode,
        base_address=args.base,
        image_format=args.format,
    )
    if not args.binary.exists():
        raise SystemExit(f"missing input file: {args.binary}")

    image = BinaryImage.load(args.binary, config.image_format, config.base_address)

    if args.functions is not None:
        functions: Optional[FunctionIndex] = FunctionIndex.load(args.functions)
    elif image.format == "elf":
        functions = FunctionIndex.from_elf(args.binary)
    else:
        functions = None

    if args.listing is not None:
        instructions = ListingInstructionSource.load(args.listing)
    else:
        instructions = CapstoneInstructionSource(image, mode=config.x86_mode)

    return SignatureEngine(image, instructions, functions, config=config)


def create_signature(engine: SignatureEngine, args: argparse.Namespace) -> None:
    try:
        if args.range is not None:
            result = engine.synthesize_and_minimize(AddressRange(*args.range))
        else:
            result = engine.create_signature_at(args.address)
    except SearchBudgetExceededError as exc:
        raise SystemExit(
            f"Failed to create signature: {exc}; shortest unique signature so far: {exc.signature}"
        )
    except (SignatureError, ValueError) as exc:
        raise SystemExit(f"Failed to create signature: {exc}")

    if result.function is not None:
        print(f"Function:  {result.function.name}")
    print(f"Signature: {result.signature}")
    print(f"Address:   0x{result.address:X}")
    print(f"Length:    {result.length} bytes ({result.steps} refinement step(s))")


def find_signature(engine: SignatureEngine, args: argparse.Namespace) -> None:
    try:
        result = engine.find(args.signature)
    except SignatureError as exc:
        raise SystemExit(f"Failed to find signature: {exc}")

    if not result.found:
        print("Signature not found")
        return
    if not result.inside_function:
        print("Warning: The address found is not inside a function")
    print(f"Found signature at: 0x{result.address:X}")


def main(argv: Optional[Sequence[str]] = None) -> None:
    start_time = time.perf_counter()
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    engine = build_engine(args)
    if args.command == "create":
        create_signature(engine, args)
    else:
        find_signature(engine, args)

    logging.getLogger(__name__).info(
        "total execution time: %.2fs", time.perf_counter() - start_time
    )


if __name__ == "__main__":
    main()
