"""Parameter schema for spectrogram reconstruction.

This is the contract between a host UI and the engine: every caller
produces a dict in this format and GriffinLim.from_params consumes it.
Defined declaratively with ParamDef; ParamSchema derives defaults,
ranges, and validation from the list.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .errors import InvalidInput

SR = 44100
FRAME_SIZE = 2048
ITERATIONS = 30

# Named quality presets -> iteration count
QUALITY_ITERATIONS = {"fastest": 10, "balanced": 30, "high": 50}


class ParamType(Enum):
    FLOAT = "float"
    INT = "int"
    CHOICE = "choice"
    SEED = "seed"       # int or None


@dataclass
class ParamDef:
    key: str
    type: ParamType
    default: Any
    label: str = ""
    range: tuple | None = None        # (min, max), inclusive
    choices: list | None = None       # allowed values for CHOICE
    exclusive_min: bool = False       # min itself is rejected (e.g. duration 0)


class ParamSchema:
    """Derives defaults, ranges and validation from a declarative param list."""

    def __init__(self, params: list[ParamDef]):
        self._params = params
        self._by_key: dict[str, ParamDef] = {p.key: p for p in params}

    def default_params(self) -> dict:
        return {p.key: p.default for p in self._params}

    def param_ranges(self) -> dict[str, tuple]:
        return {p.key: p.range for p in self._params if p.range is not None}

    def validate_and_clamp(self, raw: dict) -> dict:
        """Loose validation for UI/preset sources.

        Unknown keys are dropped, values are cast and clamped to range,
        unknown choices fall back to the default. Missing keys get defaults.
        """
        result = self.default_params()
        for key, value in raw.items():
            p = self._by_key.get(key)
            if p is None:
                continue
            if p.type == ParamType.CHOICE:
                result[key] = p.choices[p.choices.index(value)] if value in p.choices else p.default
                continue
            if p.type == ParamType.SEED and value is None:
                result[key] = None
                continue
            try:
                v = float(value) if p.type == ParamType.FLOAT else int(round(value))
            except (TypeError, ValueError, OverflowError):
                continue
            if p.range:
                lo, hi = p.range
                v = max(lo, min(hi, v))
            result[key] = v
        return result

    def validate(self, raw: dict) -> dict:
        """Strict validation: raises InvalidInput on any bad value."""
        result = self.default_params()
        for key, value in raw.items():
            p = self._by_key.get(key)
            if p is None:
                raise InvalidInput(f"unknown parameter {key!r}")
            result[key] = _check(p, value)
        return result

    def get(self, key: str) -> ParamDef | None:
        return self._by_key.get(key)

    def __iter__(self):
        return iter(self._params)

    def __len__(self):
        return len(self._params)


def _check(p: ParamDef, value):
    if p.type == ParamType.CHOICE:
        if value not in p.choices:
            raise InvalidInput(f"{p.key} must be one of {p.choices}, got {value!r}")
        return p.choices[p.choices.index(value)]
    if p.type == ParamType.SEED and value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidInput(f"{p.key} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise InvalidInput(f"{p.key} must be finite, got {value!r}")
    if p.type in (ParamType.INT, ParamType.SEED) and value != int(value):
        raise InvalidInput(f"{p.key} must be an integer, got {value!r}")
    v = float(value) if p.type == ParamType.FLOAT else int(value)
    if p.range:
        lo, hi = p.range
        too_low = v <= lo if p.exclusive_min else v < lo
        if too_low or v > hi:
            raise InvalidInput(f"{p.key}={value} outside {p.range}")
    return v


# ── Schema ────────────────────────────────────────────────────────────

_PARAMS = [
    ParamDef("frame_size", ParamType.CHOICE, default=FRAME_SIZE,
             label="FFT size",
             choices=[256, 512, 1024, 2048, 4096, 8192]),

    ParamDef("iterations", ParamType.INT, default=ITERATIONS,
             label="Griffin-Lim iterations", range=(0, 500)),

    ParamDef("quality", ParamType.CHOICE, default="balanced",
             label="Quality", choices=list(QUALITY_ITERATIONS)),

    ParamDef("sample_rate", ParamType.INT, default=SR,
             label="Sample rate (Hz)", range=(8000, 48000)),

    ParamDef("duration", ParamType.FLOAT, default=5.0,
             label="Duration (s)", range=(0.0, 600.0), exclusive_min=True),

    ParamDef("seed", ParamType.SEED, default=None,
             label="Phase seed", range=(0, 2 ** 32 - 1)),
]

SCHEMA = ParamSchema(_PARAMS)


def default_params() -> dict:
    return SCHEMA.default_params()


def iterations_for_quality(quality: str) -> int:
    """Map a quality preset name to its iteration count."""
    try:
        return QUALITY_ITERATIONS[quality]
    except KeyError:
        raise InvalidInput(
            f"unknown quality {quality!r}, expected one of {list(QUALITY_ITERATIONS)}"
        ) from None
