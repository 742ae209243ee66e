"""Engine configuration loaded from an optional JSON file."""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .instruction import parse_address

logger = logging.getLogger(__name__)

IMAGE_FORMATS = ("auto", "raw", "elf")
X86_MODES = (32, 64)


@dataclass(frozen=True)
class EngineConfig:
    """Knobs shared by the CLI and :class:`~bytesig.engine.SignatureEngine`.

    ``max_minimize_steps`` caps the number of full-image scans spent on
    minimization; ``None`` means unbounded.
    """

    max_minimize_steps: Optional[int] = None
    x86_mode: int = 64
    base_address: int = 0
    image_format: str = "auto"

    def __post_init__(self) -> None:
        if self.max_minimize_steps is not None and self.max_minimize_steps < 0:
            raise ValueError("max_minimize_steps must be non-negative")
        if self.x86_mode not in X86_MODES:
            raise ValueError(f"x86_mode must be one of {X86_MODES}")
        if self.base_address < 0:
            raise ValueError("base_address must be non-negative")
        if self.image_format not in IMAGE_FORMATS:
            raise ValueError(f"image_format must be one of {IMAGE_FORMATS}")

    @classmethod
    def load(cls, path: Optional[Path]) -> "EngineConfig":
        if path is None or not path.exists():
            return cls()
        payload = json.loads(path.read_text("utf-8"))
        if not isinstance(payload, Mapping):
            raise ValueError(f"{path}: configuration must be a JSON object")
        return cls.from_json(payload, source=str(path))

    @classmethod
    def from_json(cls, payload: Mapping[str, Any], *, source: str = "<config>") -> "EngineConfig":
        known = {field.name for field in dataclasses.fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in payload.items():
            if key not in known:
                logger.warning("%s: ignoring unknown configuration key %r", source, key)
                continue
            values[key] = value
        if "base_address" in values:
            values["base_address"] = parse_address(values["base_address"])
        if values.get("max_minimize_steps") is not None:
            values["max_minimize_steps"] = int(values["max_minimize_steps"])
        if "x86_mode" in values:
            values["x86_mode"] = int(values["x86_mode"])
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "EngineConfig":
        """Return a copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **changes)
