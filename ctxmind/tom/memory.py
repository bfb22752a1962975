"""Per-dyad belief memory: context shift, Beta filtering and base-view anchoring."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from ..config import BetaFilterCfg
from ..context.types import AXES, ContextAxesVector
from ..mathutil import as01, avg01, clamp01, mix
from ..weights import CONTEXT_SHIFT_WEIGHTS, ContextShiftWeights, linear
from .beta import BetaCell, beta_confidence, beta_mean, beta_update, init_beta_from_mean_exact
from .types import DIMENSIONS, TomBeliefState

logger = logging.getLogger(__name__)

# (memory cell, belief dimension)
CELLS: Tuple[Tuple[str, str], ...] = (
    ("trust", "trust"),
    ("threat", "threat"),
    ("respect", "respect"),
    ("closeness", "attachment"),
    ("dominance", "dominance"),
    ("support", "support"),
)

OBSERVATION_DEFAULTS = {
    "trust": 0.5,
    "threat": 0.2,
    "respect": 0.5,
    "dominance": 0.5,
    "attachment": 0.1,
    "predictability": 0.5,
    "alignment": 0.5,
}


@dataclass
class DyadBeliefMemory:
    """What an observer remembers about one target between ticks."""

    target_id: str
    trust: BetaCell
    threat: BetaCell
    respect: BetaCell
    closeness: BetaCell
    dominance: BetaCell
    support: BetaCell
    last_value: TomBeliefState = field(default_factory=TomBeliefState)

    def cell(self, name: str) -> BetaCell:
        return getattr(self, name)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"targetId": self.target_id}
        for name, _ in CELLS:
            out[name] = self.cell(name).to_dict()
        out["lastValue"] = self.last_value.to_dict()
        return out

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "DyadBeliefMemory":
        return cls(
            target_id=str(payload.get("targetId", "")),
            last_value=TomBeliefState.from_dict(payload.get("lastValue")),
            **{name: BetaCell.from_dict(payload.get(name) or {}) for name, _ in CELLS},
        )


@dataclass
class DyadStep:
    memory: DyadBeliefMemory
    current: TomBeliefState
    confidence: float
    observation: Dict[str, float]
    delta: Optional[Dict[str, float]] = None


def observations_from_base(base_view: Optional[TomBeliefState]) -> Dict[str, float]:
    if base_view is None:
        obs = dict(OBSERVATION_DEFAULTS)
        obs["support"] = obs["trust"]
        return obs
    return {dim: clamp01(base_view[dim]) for dim in DIMENSIONS}


def _axis_signals(axes: Any, defaults: Mapping[str, float]) -> Dict[str, float]:
    if isinstance(axes, ContextAxesVector):
        return axes.to_dict()
    payload = axes if isinstance(axes, Mapping) else {}
    return {axis: as01(payload.get(axis), defaults.get(axis, 0.0)) for axis in AXES}


def contextual_observations(
    obs: Mapping[str, float],
    axes: Any,
    weights: ContextShiftWeights = CONTEXT_SHIFT_WEIGHTS,
) -> Dict[str, float]:
    """Shift raw observations by the situation before they reach the filter."""
    signals = _axis_signals(axes, weights.axis_defaults)
    out: Dict[str, float] = {}
    for dim in ("trust", "threat", "dominance", "respect", "attachment"):
        out[dim] = clamp01(obs[dim] + linear(weights.shifts[dim], signals)[0])
    signals["ctxTrustCentered"] = out["trust"] - 0.5
    out["support"] = clamp01(obs["support"] + linear(weights.shifts["support"], signals)[0])
    return out


def new_memory(
    target_id: str,
    obs: Mapping[str, float],
    base_conf: float,
    tick: int,
    cfg: BetaFilterCfg,
) -> DyadBeliefMemory:
    strength = cfg.init_strength_base + cfg.init_strength_gain * clamp01(base_conf)
    cells = {
        name: init_beta_from_mean_exact(obs[dim], strength, cfg.min_ab, tick=tick)
        for name, dim in CELLS
    }
    return DyadBeliefMemory(
        target_id=target_id,
        last_value=TomBeliefState.from_dict(obs),
        **cells,
    )


def process_dyad(
    target_id: str,
    memory: Optional[DyadBeliefMemory],
    base_view: Optional[TomBeliefState],
    base_conf: float,
    axes: Any,
    tick: int,
    *,
    cfg: Optional[BetaFilterCfg] = None,
    weights: ContextShiftWeights = CONTEXT_SHIFT_WEIGHTS,
) -> DyadStep:
    """Advance one dyad by a tick. ``memory`` is never modified in place."""
    cfg = cfg or BetaFilterCfg()
    base_conf = clamp01(base_conf)
    obs = observations_from_base(base_view)
    shifted = contextual_observations(obs, axes, weights)

    prev = memory if memory is not None else new_memory(target_id, obs, base_conf, tick, cfg)
    w = cfg.update_weight_base + cfg.update_weight_gain * base_conf
    cells = {
        name: beta_update(prev.cell(name), shifted[dim], w, cfg.decay, tick=tick)
        for name, dim in CELLS
    }

    # At base_conf == 1 the anchor is 0.85, so the filter keeps only 15% of the say.
    anchor = clamp01(cfg.anchor_gain * base_conf)
    values = {dim: mix(beta_mean(cells[name]), obs[dim], anchor) for name, dim in CELLS}
    values["predictability"] = obs["predictability"]
    values["alignment"] = obs["alignment"]
    current = TomBeliefState.from_dict(values)

    filter_conf = avg01([beta_confidence(c) for c in cells.values()], 0.0)
    confidence = clamp01(cfg.confidence_mix * filter_conf + (1.0 - cfg.confidence_mix) * base_conf)

    delta = None
    if base_view is not None:
        delta = {dim: current[dim] - obs[dim] for dim in DIMENSIONS}

    next_memory = replace(prev, last_value=current, **cells)
    logger.debug("dyad %s tick=%s trust=%.3f threat=%.3f conf=%.3f", target_id, tick, current.trust, current.threat, confidence)
    return DyadStep(
        memory=next_memory,
        current=current,
        confidence=confidence,
        observation=shifted,
        delta=delta,
    )


__all__ = [
    "CELLS",
    "DyadBeliefMemory",
    "DyadStep",
    "contextual_observations",
    "new_memory",
    "observations_from_base",
    "process_dyad",
]
