"""Context axis vector and tuning records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from ..mathutil import clamp01, is_finite_number

AXES: Tuple[str, ...] = (
    "danger",
    "control",
    "intimacy",
    "hierarchy",
    "publicness",
    "normPressure",
    "surveillance",
    "scarcity",
    "timePressure",
    "uncertainty",
    "legitimacy",
    "secrecy",
    "grief",
    "pain",
)

_ATTR = {
    "normPressure": "norm_pressure",
    "timePressure": "time_pressure",
}


def _attr(axis: str) -> str:
    return _ATTR.get(axis, axis)


@dataclass
class ContextAxesVector:
    """Fourteen normalised situational features. Every write is clipped."""

    danger: float = 0.0
    control: float = 0.0
    intimacy: float = 0.0
    hierarchy: float = 0.0
    publicness: float = 0.0
    norm_pressure: float = 0.0
    surveillance: float = 0.0
    scarcity: float = 0.0
    time_pressure: float = 0.0
    uncertainty: float = 0.0
    legitimacy: float = 0.0
    secrecy: float = 0.0
    grief: float = 0.0
    pain: float = 0.0

    def __setattr__(self, name: str, value: Any) -> None:
        object.__setattr__(self, name, clamp01(value))

    def __getitem__(self, axis: str) -> float:
        return getattr(self, _attr(axis))

    def __setitem__(self, axis: str, value: float) -> None:
        if axis not in AXES:
            raise KeyError(axis)
        setattr(self, _attr(axis), value)

    def items(self) -> Iterator[Tuple[str, float]]:
        for axis in AXES:
            yield axis, self[axis]

    def copy(self) -> "ContextAxesVector":
        return ContextAxesVector.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, float]:
        return {axis: float(value) for axis, value in self.items()}

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "ContextAxesVector":
        out = cls()
        for axis, value in (payload or {}).items():
            if axis in AXES and is_finite_number(value):
                out[axis] = value
        return out


def _axis_map(payload: Any) -> Dict[str, float]:
    if not isinstance(payload, Mapping):
        return {}
    return {k: float(v) for k, v in payload.items() if k in AXES and is_finite_number(v)}


@dataclass
class ContextTuning:
    """Manual overrides evaluated after raw derivation.

    ``lock`` hard-sets an axis. Otherwise ``add`` (clipped to [-1, 1]) and
    ``mul`` (clipped to [0, 2]) are applied and scaled by ``gain``.
    ``per_target`` carries the same structure keyed by target id.
    """

    gain: float = 1.0
    lock: Dict[str, float] = field(default_factory=dict)
    add: Dict[str, float] = field(default_factory=dict)
    mul: Dict[str, float] = field(default_factory=dict)
    per_target: Dict[str, "ContextTuning"] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Any) -> Optional["ContextTuning"]:
        if isinstance(payload, ContextTuning):
            return payload
        if not isinstance(payload, Mapping):
            return None
        gain = payload.get("gain")
        per_target_raw = payload.get("perTarget", payload.get("per_target")) or {}
        per_target: Dict[str, ContextTuning] = {}
        if isinstance(per_target_raw, Mapping):
            for target_id, sub in per_target_raw.items():
                parsed = cls.from_dict(sub)
                if parsed is not None:
                    per_target[str(target_id)] = parsed
        return cls(
            gain=clamp01(gain) if is_finite_number(gain) else 1.0,
            lock=_axis_map(payload.get("lock")),
            add=_axis_map(payload.get("add")),
            mul=_axis_map(payload.get("mul")),
            per_target=per_target,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"gain": self.gain}
        if self.lock:
            out["lock"] = dict(self.lock)
        if self.add:
            out["add"] = dict(self.add)
        if self.mul:
            out["mul"] = dict(self.mul)
        if self.per_target:
            out["perTarget"] = {k: v.to_dict() for k, v in self.per_target.items()}
        return out


__all__ = ["AXES", "ContextAxesVector", "ContextTuning"]
