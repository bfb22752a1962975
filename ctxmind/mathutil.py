"""Scalar helpers shared by the axes, threat, belief and graph layers."""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping

import numpy as np

CURVE_PRESETS = ("linear", "smoothstep", "sqrt", "sigmoid", "pow2", "pow4")

_SIGMOID_K = 10.0
_SIGMOID_Y0 = 1.0 / (1.0 + math.exp(_SIGMOID_K * 0.5))
_SIGMOID_Y1 = 1.0 / (1.0 + math.exp(-_SIGMOID_K * 0.5))


def is_finite_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if not isinstance(value, (int, float, np.floating, np.integer)):
        return False
    return math.isfinite(float(value))


def clamp01(x: float) -> float:
    """Clip into [0, 1]; non-finite input collapses to 0."""
    try:
        v = float(x)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(v):
        return 0.0
    return float(np.clip(v, 0.0, 1.0))


def clamp(x: float, lo: float, hi: float) -> float:
    return float(max(lo, min(hi, x)))


def as01(value: Any, fallback: float = 0.0) -> float:
    """Coerce to [0, 1], returning ``fallback`` for missing or non-finite input."""
    if value is None or isinstance(value, bool):
        return fallback
    try:
        v = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(v):
        return fallback
    return clamp01(v)


def avg01(values: Iterable[float], fallback: float = 0.0) -> float:
    xs = [float(v) for v in values if is_finite_number(v)]
    if not xs:
        return fallback
    return float(np.mean(xs))


def mix(a: float, b: float, t: float) -> float:
    return a * (1.0 - t) + b * t


def sigmoid(x: float) -> float:
    return 1.0 / (1.0 + math.exp(-x))


def noisy_or01(values: Iterable[float]) -> float:
    prod = 1.0
    for v in values:
        prod *= 1.0 - v
    return clamp01(1.0 - prod)


def sign(x: float) -> float:
    if x > 0:
        return 1.0
    if x < 0:
        return -1.0
    return 0.0


def curve01(x: float, preset: str = "smoothstep") -> float:
    """Monotone response curve on [0, 1]."""
    v = clamp01(x)
    if preset == "linear":
        return v
    if preset == "smoothstep":
        return v * v * (3.0 - 2.0 * v)
    if preset == "sqrt":
        return math.sqrt(v)
    if preset == "pow2":
        return v * v
    if preset == "pow4":
        return v * v * v * v
    if preset == "sigmoid":
        y = 1.0 / (1.0 + math.exp(-_SIGMOID_K * (v - 0.5)))
        return clamp01((y - _SIGMOID_Y0) / (_SIGMOID_Y1 - _SIGMOID_Y0))
    raise ValueError(f"unknown curve preset: {preset!r}")


def as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def dig(payload: Any, *path: str) -> Any:
    """Walk nested mappings, returning ``None`` on the first missing hop."""
    cur = payload
    for key in path:
        if not isinstance(cur, Mapping):
            return None
        cur = cur.get(key)
    return cur


__all__ = [
    "CURVE_PRESETS",
    "as01",
    "as_mapping",
    "avg01",
    "clamp",
    "clamp01",
    "curve01",
    "dig",
    "is_finite_number",
    "mix",
    "noisy_or01",
    "sigmoid",
    "sign",
]
