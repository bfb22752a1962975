"""Per-agent contextual mind state and its bounded history."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..mathutil import as01, dig, is_finite_number
from ..tom.memory import DyadBeliefMemory

HISTORY_LIMIT = 24

SELF_KEYS = ("fear", "anger", "shame", "hope", "guilt", "stress", "fatigue", "valence", "arousal", "control")
DYAD_KEYS = ("trust", "threat", "support", "attachment", "dominance", "respect")


def affect01(affect: Any, key: str, fallback: float = 0.0) -> float:
    """Read ``affect.e.<key>`` then ``affect.<key>``, clipped to [0, 1]."""
    nested = dig(affect, "e", key)
    if nested is not None:
        return as01(nested, as01(dig(affect, key), fallback))
    return as01(dig(affect, key), fallback)


@dataclass
class HistoryPoint:
    tick: int
    self_affect: Dict[str, float] = field(default_factory=dict)
    dyads: Dict[str, Dict[str, float]] = field(default_factory=dict)

    @classmethod
    def snapshot(cls, tick: int, affect: Any, dyads: Mapping[str, Mapping[str, float]]) -> "HistoryPoint":
        self_affect = {k: affect01(affect, k, 0.5 if k == "control" else 0.0) for k in SELF_KEYS}
        return cls(
            tick=tick,
            self_affect=self_affect,
            dyads={tid: {k: float(v[k]) for k in DYAD_KEYS} for tid, v in dyads.items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"tick": self.tick, "self": dict(self.self_affect), "dyads": {k: dict(v) for k, v in self.dyads.items()}}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "HistoryPoint":
        return cls(
            tick=int(payload.get("tick", 0)),
            self_affect=dict(payload.get("self") or {}),
            dyads={k: dict(v) for k, v in (payload.get("dyads") or {}).items()},
        )


def push_history(prev: Optional[List[HistoryPoint]], point: HistoryPoint, limit: int = HISTORY_LIMIT) -> List[HistoryPoint]:
    """Append to a copy of ``prev`` and drop the oldest entries beyond ``limit``.

    ``limit`` never exceeds :data:`HISTORY_LIMIT`, whatever the config says.
    """
    cap = max(0, min(int(limit), HISTORY_LIMIT)) if is_finite_number(limit) else HISTORY_LIMIT
    out = list(prev or [])
    out.append(point)
    if len(out) > cap:
        del out[: len(out) - cap]
    return out


@dataclass
class ContextualMindState:
    self_id: str
    affect: Dict[str, Any] = field(default_factory=dict)
    dyads: Dict[str, DyadBeliefMemory] = field(default_factory=dict)
    history: List[HistoryPoint] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selfId": self.self_id,
            "affect": dict(self.affect),
            "dyads": {k: v.to_dict() for k, v in self.dyads.items()},
            "history": [p.to_dict() for p in self.history],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ContextualMindState":
        return cls(
            self_id=str(payload.get("selfId", "")),
            affect=dict(payload.get("affect") or {}),
            dyads={k: DyadBeliefMemory.from_dict(v) for k, v in (payload.get("dyads") or {}).items()},
            history=[HistoryPoint.from_dict(p) for p in payload.get("history") or []],
        )


__all__ = [
    "ContextualMindState",
    "HISTORY_LIMIT",
    "HistoryPoint",
    "affect01",
    "push_history",
]
