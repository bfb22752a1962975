"""Energy diffusion over a signed, weighted directed graph.

Energy starts at 1.0 on the start nodes. Each step every charged node with
out-edges injects ``E * (1 - decay)``, scaled by its curve-shaped base
importance, and splits it across its out-edges with a softmax over ``|w| / T``.
Nodes without out-edges keep ``E * (1 - decay)``. Every node is clipped to
[0, 1] after each step, so total energy is not conserved.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..mathutil import CURVE_PRESETS, clamp01, curve01, is_finite_number, sign

DIRECTIONS = ("forward", "backward", "undirected")
MAX_STEPS = 50
MIN_TEMPERATURE = 0.05


@dataclass(frozen=True)
class SpreadEdge:
    source: str
    target: str
    weight: float = 0.0

    @property
    def key(self) -> str:
        return f"{self.source}->{self.target}"

    @classmethod
    def coerce(cls, edge: Any) -> Optional["SpreadEdge"]:
        if isinstance(edge, SpreadEdge):
            return edge
        if isinstance(edge, Mapping):
            src = edge.get("from", edge.get("source"))
            dst = edge.get("to", edge.get("target"))
            w = edge.get("weight", 0.0)
        elif isinstance(edge, (list, tuple)) and len(edge) in (2, 3):
            src, dst = edge[0], edge[1]
            w = edge[2] if len(edge) == 3 else 0.0
        else:
            return None
        if src is None or dst is None:
            return None
        return cls(str(src), str(dst), float(w) if is_finite_number(w) else 0.0)


@dataclass
class SpreadResult:
    node_energy: Dict[str, float] = field(default_factory=dict)
    edge_flow: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"nodeEnergy": dict(self.node_energy), "edgeFlow": dict(self.edge_flow)}


def normalize_base(node_ids: Sequence[str], base: Optional[Mapping[str, Any]]) -> Dict[str, float]:
    """Min-max scale ``base`` over ``node_ids``; all zeros when absent or constant."""
    zeros = {nid: 0.0 for nid in node_ids}
    if not base:
        return zeros
    raw = {nid: base.get(nid, 0.0) for nid in node_ids}
    finite = np.array([float(v) for v in raw.values() if is_finite_number(v)], dtype=float)
    if finite.size == 0:
        return zeros
    lo, hi = float(finite.min()), float(finite.max())
    if hi == lo:
        return zeros
    return {nid: (float(v) - lo) / (hi - lo) if is_finite_number(v) else 0.0 for nid, v in raw.items()}


def _oriented(edges: Iterable[SpreadEdge], direction: str) -> List[SpreadEdge]:
    out: List[SpreadEdge] = []
    for e in edges:
        if direction in ("forward", "undirected"):
            out.append(e)
        if direction in ("backward", "undirected"):
            out.append(SpreadEdge(e.target, e.source, e.weight))
    return out


def _softmax_abs(weights: Sequence[float], temperature: float) -> np.ndarray:
    scores = np.abs(np.asarray(weights, dtype=float)) / temperature
    exps = np.exp(scores - scores.max())
    z = float(exps.sum())
    return exps / (z if z > 0 else 1.0)


def spread_energy(
    node_ids: Sequence[str],
    edges: Iterable[Any],
    start_node_ids: Iterable[str],
    steps: Any = 2,
    decay: Any = 0.8,
    temperature: Any = 1.0,
    curve: str = "smoothstep",
    node_base: Optional[Mapping[str, Any]] = None,
    direction: str = "forward",
) -> SpreadResult:
    if direction not in DIRECTIONS:
        raise ValueError(f"unknown spread direction: {direction!r}")
    if curve not in CURVE_PRESETS:
        raise ValueError(f"unknown curve preset: {curve!r}")

    ids = [str(n) for n in node_ids]
    n_steps = int(max(0, min(MAX_STEPS, math.floor(float(steps))))) if is_finite_number(steps) else 0
    decay01 = clamp01(decay) if is_finite_number(decay) else 0.0
    temp = max(MIN_TEMPERATURE, float(temperature)) if is_finite_number(temperature) else 1.0

    base01 = normalize_base(ids, node_base)
    parsed = [e for e in (SpreadEdge.coerce(x) for x in edges) if e is not None]
    out_edges: Dict[str, List[SpreadEdge]] = {}
    for e in _oriented(parsed, direction):
        out_edges.setdefault(e.source, []).append(e)

    energy: Dict[str, float] = {nid: 0.0 for nid in ids}
    for sid in start_node_ids:
        if str(sid) in energy:
            energy[str(sid)] = 1.0
    flow: Dict[str, float] = {}

    for _ in range(n_steps):
        nxt: Dict[str, float] = {nid: 0.0 for nid in ids}
        for u in ids:
            e_u = energy[u]
            if e_u <= 0:
                continue
            outs = out_edges.get(u)
            if not outs:
                nxt[u] += e_u * (1.0 - decay01)
                continue
            importance = curve01(base01.get(u, 0.0), curve)
            injected = e_u * (1.0 - decay01) * (0.35 + 0.65 * importance)
            probs = _softmax_abs([o.weight for o in outs], temp)
            for o, p in zip(outs, probs):
                amount = injected * float(p)
                if o.target in nxt:
                    nxt[o.target] += amount
                flow[o.key] = flow.get(o.key, 0.0) + amount * sign(o.weight)
        energy = {nid: clamp01(v) for nid, v in nxt.items()}

    return SpreadResult(node_energy=energy, edge_flow=flow)


def edge_flow_for(result: SpreadResult, source: str, target: str, direction: str = "forward") -> Tuple[float, bool]:
    """Flow carried by the edge ``source -> target`` under ``direction``; second item tells if any was recorded."""
    keys = []
    if direction in ("forward", "undirected"):
        keys.append(f"{source}->{target}")
    if direction in ("backward", "undirected"):
        keys.append(f"{target}->{source}")
    hits = [result.edge_flow[k] for k in keys if k in result.edge_flow]
    return float(sum(hits)), bool(hits)


__all__ = [
    "DIRECTIONS",
    "SpreadEdge",
    "SpreadResult",
    "edge_flow_for",
    "normalize_base",
    "spread_energy",
]
