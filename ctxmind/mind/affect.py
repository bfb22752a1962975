"""Self-affect capability consumed by the contextual engine.

The engine only needs two calls: an appraisal of the current situation and an
affect update from that appraisal. :class:`BaselineAffectCapability` is a
small deterministic implementation for tests and the CLI; richer appraisal
models plug in through :class:`AffectCapability`.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from ..mathutil import as01, as_mapping, clamp, clamp01, dig, is_finite_number

EMOTIONS = ("fear", "anger", "shame", "guilt", "hope")


@dataclass
class AppraisalResult:
    appraisal: Dict[str, float]
    why: List[str] = field(default_factory=list)
    trace: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AffectUpdate:
    affect: Dict[str, Any]


class AffectCapability(Protocol):
    def appraise(self, agent_id: str, world: Any, frame: Any) -> AppraisalResult:
        """Score the situation (threat, goalBlock, socialSupport, ...) for ``agent_id``."""

    def update_affect(
        self,
        prev: Optional[Dict[str, Any]],
        appraisal: Dict[str, float],
        why: List[str],
        tick: int,
    ) -> AffectUpdate:
        """Blend the previous affect toward the appraisal targets."""


def default_affect(tick: int = 0) -> Dict[str, Any]:
    return {
        "e": {k: 0.0 for k in EMOTIONS},
        "valence": 0.0,
        "arousal": 0.2,
        "control": 0.5,
        "stress": 0.2,
        "fatigue": 0.2,
        "updatedAtTick": tick,
    }


def _percent01(value: Any) -> float:
    return clamp01(float(value) / 100.0) if is_finite_number(value) else 0.0


def _trace_line(key: str, total: float, parts: Dict[str, float]) -> str:
    items = sorted(((k, v) for k, v in parts.items() if abs(v) > 1e-6), key=lambda kv: -abs(kv[1]))
    return f"{key}={total:.3f} :: " + " · ".join(f"{k}={v:.3f}" for k, v in items[:8])


class BaselineAffectCapability:
    """Appraisal from scene metrics and frame norms, then an EMA toward emotion targets."""

    def appraise(self, agent_id: str, world: Any, frame: Any) -> AppraisalResult:
        a: Dict[str, float] = {}
        why: List[str] = []
        trace: Dict[str, Any] = {}

        def _score(key: str, parts: Dict[str, float]) -> float:
            total = clamp01(sum(parts.values()))
            a[key] = total
            trace[key] = {"total": total, "parts": parts}
            why.append(_trace_line(key, total, parts))
            return total

        scene_threat = _percent01(dig(world, "scene", "metrics", "threat"))
        scene_chaos = _percent01(dig(world, "scene", "metrics", "chaos"))
        map_hazard = as01(dig(frame, "where", "map", "hazard"), 0.0)
        env_danger = clamp01(max(scene_threat, map_hazard, 0.6 * scene_chaos))

        tags = dig(frame, "where", "locationTags")
        tags = tags if isinstance(tags, (list, tuple)) else []
        is_private = "private" in tags or "safe_hub" in tags

        norms = as_mapping(dig(frame, "tom", "norms"))
        public_exposure = as01(norms.get("publicExposure"), 0.2 if is_private else 0.8)
        privacy = as01(norms.get("privacy"), 0.9 if is_private else 0.2)
        norm_pressure = as01(norms.get("normPressure"), 0.2)
        surveillance = as01(norms.get("surveillance"), 0.1)
        what = as_mapping(dig(frame, "what"))

        threat = _score(
            "threat",
            {
                "envDanger": 0.75 * env_danger,
                "normPressure": 0.12 * norm_pressure,
                "chaos": 0.10 * scene_chaos,
                "safeDamp": -0.40 * env_danger if is_private and map_hazard < 0.25 else 0.0,
            },
        )
        unc = _score(
            "uncertainty",
            {
                "lackInfo": 0.65 * (1.0 - as01(what.get("infoAdequacy01"), 0.3)),
                "surveillance": 0.25 * surveillance,
                "chaos": 0.20 * scene_chaos,
                "safeReduce": -0.10 if is_private else 0.0,
            },
        )
        intimacy = _score(
            "intimacy",
            {
                "privacy": 0.60 * privacy,
                "privateTag": 0.25 if is_private else 0.0,
                "publicPenalty": -0.30 * public_exposure,
            },
        )
        _score("publicExposure", {"publicExposure": 0.70 * public_exposure, "invPrivacy": 0.30 * (1.0 - privacy)})
        _score(
            "goalBlock",
            {
                "obstacles": 0.55 * as01(what.get("obstacle01"), 0.2),
                "threatSpill": 0.25 * threat,
                "goalPressure": 0.35 * as01(what.get("goalPressure01"), 0.0),
            },
        )
        _score(
            "socialSupport",
            {
                "nearbyAllies": 0.55 * as01(what.get("nearbyAllies01"), 0.0),
                "intimacy": 0.25 * intimacy,
                "threatPenalty": -0.20 * threat,
                "surveillancePenalty": -0.15 * surveillance,
            },
        )
        _score(
            "normViolation",
            {
                "explicit": 0.70 * as01(what.get("ruleViolation01"), 0.0),
                "pressure": 0.25 * norm_pressure,
                "protocol": 0.25 * as01(what.get("protocolStrict01"), 0.3),
                "threatAmplify": 0.15 * threat,
                "privateDamp": -0.10 if is_private else 0.0,
            },
        )
        _score("controllability", {"inverseThreat": 0.45 * (1.0 - threat), "inverseUnc": 0.35 * (1.0 - unc), "base": 0.05})
        return AppraisalResult(appraisal=a, why=why, trace=trace)

    def update_affect(
        self,
        prev: Optional[Dict[str, Any]],
        appraisal: Dict[str, float],
        why: List[str],  # noqa: ARG002
        tick: int,
    ) -> AffectUpdate:
        base = default_affect(tick)
        prev = as_mapping(prev)
        nxt = copy.deepcopy({**base, **prev})
        nxt["e"] = {**base["e"], **as_mapping(prev.get("e"))}

        threat = as01(appraisal.get("threat"), 0.0)
        goal_block = as01(appraisal.get("goalBlock"), 0.0)
        support = as01(appraisal.get("socialSupport"), 0.0)
        intimacy = as01(appraisal.get("intimacy"), 0.0)
        unc = as01(appraisal.get("uncertainty"), 0.0)
        norm_v = as01(appraisal.get("normViolation"), 0.0)
        ctrl = as01(appraisal.get("controllability"), 0.5)
        pub = as01(appraisal.get("publicExposure"), 0.2)

        targets = {
            "fear": clamp01(0.55 * threat + 0.35 * unc - 0.20 * support),
            "anger": clamp01(0.55 * goal_block + 0.25 * threat - 0.15 * ctrl),
            "shame": clamp01(0.55 * norm_v + 0.25 * pub + 0.20 * (1.0 - ctrl)),
            "guilt": clamp01(0.55 * norm_v + 0.20 * (1.0 - ctrl)),
            "hope": clamp01(0.50 * support + 0.25 * (1.0 - threat) + 0.20 * intimacy),
        }

        last = prev.get("updatedAtTick", tick)
        dt = max(1, tick - (int(last) if is_finite_number(last) else tick))
        k = 0.8 if dt > 10 else 0.25
        e = nxt["e"]
        for key, target in targets.items():
            e[key] = clamp01(as01(e.get(key), 0.0) * (1.0 - k) + target * k)

        nxt["arousal"] = clamp01(0.55 * e["fear"] + 0.35 * e["anger"] + 0.15 * unc)
        nxt["valence"] = clamp(clamp01(0.55 * e["hope"] - 0.45 * e["fear"] - 0.30 * e["shame"] - 0.18 * e["guilt"]) * 2 - 1, -1.0, 1.0)
        nxt["control"] = clamp01(0.55 * (1.0 - threat) + 0.25 * support + 0.20 * ctrl - 0.15 * unc)
        nxt["stress"] = clamp01(0.60 * threat + 0.25 * goal_block + 0.20 * unc - 0.15 * support)
        nxt["fatigue"] = clamp01(0.60 * as01(nxt.get("fatigue"), 0.2) + 0.40 * nxt["stress"])
        for key in EMOTIONS:
            nxt[key] = e[key]
        nxt["updatedAtTick"] = tick
        return AffectUpdate(affect=nxt)


__all__ = [
    "AffectCapability",
    "AffectUpdate",
    "AppraisalResult",
    "BaselineAffectCapability",
    "default_affect",
]
