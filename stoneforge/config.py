"""Pipeline configuration.

Every knob of a run lives on :class:`PipelineConfig`. Values that can be
repaired (non-positive tolerance or height, too small ``k``) are corrected by
:meth:`PipelineConfig.normalized` with a warning; values that cannot be
interpreted raise :class:`~stoneforge.errors.InvalidConfigurationError`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Mapping, Optional

from .errors import InvalidConfigurationError

log = logging.getLogger('stoneforge.config')

ENV_PREFIX = "STONEFORGE_"

DEFAULT_EPSILON = 1.0
DEFAULT_EXTRUSION_HEIGHT = 10.0
MIN_K = 3


class HullStrategy(str, Enum):
    CONVEX = "convex"
    GIFT_WRAP = "gift-wrap"
    CONCAVE = "concave-k"
    NEAREST = "nearest"


class UVMode(str, Enum):
    PLANAR = "planar"
    BOX = "box"
    PERIMETER = "perimeter"


@dataclass(frozen=True)
class PipelineConfig:
    epsilon: float = DEFAULT_EPSILON
    hull_strategy: HullStrategy = HullStrategy.CONCAVE
    k: int = 5
    max_k: int = 25
    extrusion_height: float = DEFAULT_EXTRUSION_HEIGHT
    is_3d: bool = True
    bottom_face: bool = True
    colliders: bool = True
    top_scale: float = 1.0
    bottom_scale: float = 1.0
    noise_scale: float = 0.0
    noise_strength: float = 0.0
    noise_seed: int = 0
    scale_unit: float = 1.0
    uv_mode: UVMode = UVMode.PERIMETER
    material: str = "stone"
    trace_step_factor: int = 4
    preview_scale: float = 0.04
    preview_offset: tuple[float, float, float] = (-3.0, 0.0, -1.0)

    def normalized(self) -> "PipelineConfig":
        """Return a copy with enum fields coerced and out-of-range values corrected."""
        changes: dict[str, Any] = {
            "hull_strategy": _coerce_enum(HullStrategy, "hull_strategy", self.hull_strategy),
            "uv_mode": _coerce_enum(UVMode, "uv_mode", self.uv_mode),
        }

        def correct(name: str, value: Any) -> None:
            log.warning("Correcting %s=%r to %r", name, getattr(self, name), value)
            changes[name] = value

        if self.epsilon <= 0:
            correct("epsilon", DEFAULT_EPSILON)
        if self.extrusion_height <= 0:
            correct("extrusion_height", DEFAULT_EXTRUSION_HEIGHT)
        k = self.k
        if k < MIN_K:
            k = MIN_K
            correct("k", k)
        if self.max_k < k:
            correct("max_k", k)
        for name in ("top_scale", "bottom_scale", "scale_unit", "preview_scale"):
            if getattr(self, name) <= 0:
                correct(name, 1.0)
        for name in ("noise_scale", "noise_strength"):
            if getattr(self, name) < 0:
                correct(name, 0.0)
        if self.trace_step_factor < 1:
            correct("trace_step_factor", 1)
        if len(self.preview_offset) != 3:
            raise InvalidConfigurationError("preview_offset", self.preview_offset)
        changes["preview_offset"] = tuple(float(v) for v in self.preview_offset)

        return replace(self, **changes)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "PipelineConfig":
        """Build a config from a plain mapping, converting string values by field type."""
        known = {f.name: f for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for name, raw in values.items():
            if name not in known:
                raise InvalidConfigurationError(name, raw)
            default = getattr(cls, name)
            kwargs[name] = _convert(name, raw, default)
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PipelineConfig":
        """Read ``STONEFORGE_<FIELD>`` variables, e.g. ``STONEFORGE_EPSILON=0.5``."""
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            key = ENV_PREFIX + f.name.upper()
            if key in environ:
                values[f.name] = environ[key]
        return cls.from_mapping(values)


def _coerce_enum(enum_cls, name: str, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise InvalidConfigurationError(name, value) from None


def _convert(name: str, raw: Any, default: Any) -> Any:
    if not isinstance(raw, str):
        return raw
    text = raw.strip()
    try:
        if isinstance(default, Enum):
            return _coerce_enum(type(default), name, text)
        if isinstance(default, bool):
            lowered = text.lower()
            if lowered in ("1", "true", "yes", "on"):
                return True
            if lowered in ("0", "false", "no", "off"):
                return False
            raise ValueError(text)
        if isinstance(default, int):
            return int(text)
        if isinstance(default, float):
            return float(text)
        if isinstance(default, tuple):
            return tuple(float(part) for part in text.split(","))
    except ValueError:
        raise InvalidConfigurationError(name, raw) from None
    return text
