import pytest

from bytesig import (
    BinaryImage,
    ByteScanner,
    MemoryBlock,
    MinimizationError,
    SearchBudgetExceededError,
    SignatureMinimizer,
    canonicalize,
    compile_signature,
)


def _minimizer(hex_data: str, **kwargs):
    image = BinaryImage.from_bytes(bytes.fromhex(hex_data))
    scanner = ByteScanner(image)
    return SignatureMinimizer(scanner, **kwargs), scanner, image.bounds()


def test_already_minimal_signature_is_returned_unchanged():
    minimizer, _, bounds = _minimizer("AA 00 00 00 AA BB")

    result = minimizer.minimize_pattern("AA BB", 4, bounds)

    assert result.text == "AA BB"
    assert result.steps == 1


def test_trims_down_to_single_unique_byte():
    minimizer, _, bounds = _minimizer("00 11 22 33 44 55 66")

    result = minimizer.minimize_pattern("22 33 44 55", 2, bounds)

    assert result.text == "22"
    assert result.steps == 3


def test_trailing_wildcards_and_whitespace_are_dropped():
    minimizer, _, bounds = _minimizer("00 11 22 33 44 55 66")

    assert minimizer.minimize("22 33 ? ? ", 2, bounds) == "22"


def test_wildcards_exposed_by_trimming_are_dropped_with_the_byte():
    minimizer, _, bounds = _minimizer("AA 01 BB AA 02 CC")

    assert minimizer.minimize("AA ? BB", 0, bounds) == "AA"


def test_stops_when_shorter_prefix_matches_earlier():
    minimizer, _, bounds = _minimizer("10 20 30 50 10 99 30 40 00")

    result = minimizer.minimize_pattern("10 99 30 ? ?", 4, bounds)

    assert result.text == "10 99"
    assert result.steps == 2


def test_interior_wildcards_are_kept():
    minimizer, _, bounds = _minimizer("10 20 30 50 10 99 30 40 00")

    assert minimizer.minimize("10 ? 30 40", 4, bounds) == "10 ? 30 40"


def test_result_is_a_fixed_point():
    minimizer, scanner, bounds = _minimizer("55 48 89 E5 CC 55 48 89 E5 31 C0 5D C3")
    target = 5

    result = minimizer.minimize("55 48 89 E5 31 C0 5D C3", target, bounds)

    assert result == "55 48 89 E5 31"
    assert scanner.find_first(bounds, compile_signature(result)) == target
    shorter = canonicalize(compile_signature(result).prefix(len(compile_signature(result)) - 1))
    assert scanner.find_first(bounds, shorter) != target
    assert minimizer.minimize(result, target, bounds) == result


def test_accepts_compiled_patterns():
    minimizer, _, bounds = _minimizer("00 11 22 33")

    assert minimizer.minimize(compile_signature("11 22 33"), 1, bounds) == "11"


def test_signature_without_concrete_bytes_is_an_error():
    minimizer, _, bounds = _minimizer("00 11 22 33")

    with pytest.raises(MinimizationError):
        minimizer.minimize("? ? ", 0, bounds)


def test_all_wildcard_candidates_are_never_accepted():
    # a bare "?" would first-match address 0 too, but identifies nothing
    minimizer, _, bounds = _minimizer("00 BB 00 00")

    result = minimizer.minimize_pattern("? BB", 0, bounds)

    assert result.text == "? BB"
    assert result.steps == 0


def test_step_budget_reports_best_signature_so_far():
    minimizer, _, bounds = _minimizer("00 11 22 33 44 55 66", max_steps=1)

    with pytest.raises(SearchBudgetExceededError) as excinfo:
        minimizer.minimize("22 33 44 55", 2, bounds)

    assert excinfo.value.signature == "22 33 44"
    assert excinfo.value.steps == 1


def test_zero_budget_is_enough_for_single_byte_signature():
    minimizer, _, bounds = _minimizer("00 11 22", max_steps=0)

    assert minimizer.minimize("11", 1, bounds) == "11"


def test_negative_budget_is_rejected():
    image = BinaryImage.from_bytes(b"\x00")

    with pytest.raises(ValueError):
        SignatureMinimizer(ByteScanner(image), max_steps=-1)


def test_canonicalize_strips_trailing_wildcards():
    assert canonicalize(compile_signature("AA ? BB ? ?")).to_text() == "AA ? BB"
    with pytest.raises(MinimizationError):
        canonicalize(compile_signature("?"))


def test_prefix_matching_at_end_of_earlier_run_is_not_accepted():
    # "AA ?" cannot fit at the end of the first run, but "AA" does
    image = BinaryImage(
        [
            MemoryBlock("head", 0x00, 2, b"\x00\xAA"),
            MemoryBlock("body", 0x10, 3, b"\xAA\x00\xCC"),
        ]
    )
    scanner = ByteScanner(image)
    bounds = image.bounds()

    result = SignatureMinimizer(scanner).minimize_pattern("AA ? CC", 0x10, bounds)

    assert result.text == "AA ? CC"
    assert result.steps == 1
    assert scanner.find_first(bounds, result.pattern) == 0x10
