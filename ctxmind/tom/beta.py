"""Beta-distribution cells with decayed pseudo-counts.

This is a fixed accumulator, not a full Bayesian model: each update decays
both counts and adds the (weighted) observation to alpha and its complement
to beta.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from ..mathutil import clamp, clamp01

INIT_CAP = 100.0
UPDATE_CAP = 200.0
UPDATE_FLOOR = 1e-6


@dataclass(frozen=True)
class BetaCell:
    alpha: float
    beta: float
    last_tick: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"alpha": float(self.alpha), "beta": float(self.beta), "lastTick": int(self.last_tick)}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "BetaCell":
        return cls(
            alpha=float(payload.get("alpha", 1.0)),
            beta=float(payload.get("beta", 1.0)),
            last_tick=int(payload.get("lastTick", payload.get("last_tick", 0))),
        )


def init_beta_from_mean_exact(mean: float, strength: float, min_ab: float = 1.0, *, tick: int = 0) -> BetaCell:
    """Build a cell whose mean is ``mean`` and whose pseudo-count is ``strength``.

    Both counts are rescaled together to respect the ``min_ab`` floor and the
    100 cap. At ``mean`` 0 or 1 the small count sits on the floor and the
    large one on the cap, which keeps the mean within 1/101 of the target.
    """
    m = clamp01(mean)
    s = max(float(strength), 2.0 * min_ab)
    a = m * s
    b = (1.0 - m) * s

    lo = min(a, b)
    if lo <= 0.0:
        a, b = (INIT_CAP, min_ab) if a > b else (min_ab, INIT_CAP)
    elif lo < min_ab:
        k = min_ab / lo
        a, b = a * k, b * k
    hi = max(a, b)
    if hi > INIT_CAP:
        k = INIT_CAP / hi
        a, b = a * k, b * k

    return BetaCell(clamp(a, min_ab, INIT_CAP), clamp(b, min_ab, INIT_CAP), tick)


def beta_update(cell: BetaCell, observation: float, weight: float, decay: float, *, tick: int | None = None) -> BetaCell:
    x = clamp01(observation)
    alpha = cell.alpha * decay + x * weight
    beta = cell.beta * decay + (1.0 - x) * weight
    return BetaCell(
        clamp(alpha, UPDATE_FLOOR, UPDATE_CAP),
        clamp(beta, UPDATE_FLOOR, UPDATE_CAP),
        cell.last_tick if tick is None else tick,
    )


def beta_mean(cell: BetaCell) -> float:
    return cell.alpha / (cell.alpha + cell.beta)


def beta_confidence(cell: BetaCell) -> float:
    """1 - exp(-0.12 * (alpha + beta - 2)); non-decreasing in total mass."""
    mass = max(0.0, cell.alpha + cell.beta - 2.0)
    return clamp01(1.0 - math.exp(-0.12 * mass))


__all__ = [
    "BetaCell",
    "beta_confidence",
    "beta_mean",
    "beta_update",
    "init_beta_from_mean_exact",
]
