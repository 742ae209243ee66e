import json
import logging
from pathlib import Path

import pytest

from bytesig import EngineConfig


def test_missing_file_yields_defaults(tmp_path: Path) -> None:
    config = EngineConfig.load(tmp_path / "absent.json")

    assert config == EngineConfig()
    assert config.max_minimize_steps is None
    assert config.x86_mode == 64
    assert EngineConfig.load(None) == EngineConfig()


def test_load_values(tmp_path: Path) -> None:
    path = tmp_path / "bytesig.json"
    path.write_text(
        json.dumps(
            {
                "max_minimize_steps": 200,
                "x86_mode": 32,
                "base_address": "0x400000",
                "image_format": "raw",
            }
        ),
        "utf-8",
    )

    config = EngineConfig.load(path)

    assert config.max_minimize_steps == 200
    assert config.x86_mode == 32
    assert config.base_address == 0x400000
    assert config.image_format == "raw"


def test_unknown_keys_are_ignored_with_warning(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="bytesig.config"):
        config = EngineConfig.from_json({"x86_mode": 32, "colour": "blue"})

    assert config.x86_mode == 32
    assert "colour" in caplog.text


@pytest.mark.parametrize(
    "payload",
    [
        {"x86_mode": 16},
        {"image_format": "pe"},
        {"max_minimize_steps": -1},
        {"base_address": "nowhere"},
    ],
)
def test_invalid_values_are_rejected(payload) -> None:
    with pytest.raises(ValueError):
        EngineConfig.from_json(payload)


def test_non_object_file_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "bytesig.json"
    path.write_text("[1, 2]", "utf-8")

    with pytest.raises(ValueError, match="JSON object"):
        EngineConfig.load(path)


def test_overrides_skip_unset_values() -> None:
    config = EngineConfig(max_minimize_steps=10, x86_mode=32)

    updated = config.with_overrides(max_minimize_steps=None, x86_mode=64, base_address=None)

    assert updated.max_minimize_steps == 10
    assert updated.x86_mode == 64
    assert config.x86_mode == 32
