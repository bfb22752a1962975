"""Decision-graph energy overlay and the dyad-report explanation graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from ..config import SpreadCfg
from ..mathutil import clamp01, curve01, is_finite_number
from ..tom.types import TomDyadReport
from ..weights import DYAD_REPORT_WEIGHTS, DyadReportWeights
from .energy import edge_flow_for, normalize_base, spread_energy

logger = logging.getLogger(__name__)

ANIMATE_STRENGTH = 0.35
LABEL_MODES = ("flow", "weight")


def format_signed2(value: Any) -> str:
    if not is_finite_number(value):
        return "0.00"
    r = round(float(value), 2) + 0.0
    return f"{'+' if r >= 0 else ''}{r:.2f}"


@dataclass
class GraphNode:
    id: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "data": dict(self.data)}


@dataclass
class GraphEdge:
    source: str
    target: str
    data: Dict[str, Any] = field(default_factory=dict)
    animated: bool = False

    @property
    def id(self) -> str:
        return f"{self.source}->{self.target}"

    @property
    def raw_weight(self) -> float:
        value = self.data.get("rawWeight", self.data.get("weight", 0.0))
        return float(value) if is_finite_number(value) else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "data": dict(self.data),
            "animated": self.animated,
        }


@dataclass
class DecisionGraph:
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)

    def node(self, node_id: str) -> Optional[GraphNode]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def edge(self, source: str, target: str) -> Optional[GraphEdge]:
        for e in self.edges:
            if e.source == source and e.target == target:
                return e
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"nodes": [n.to_dict() for n in self.nodes], "edges": [e.to_dict() for e in self.edges]}


@dataclass
class DecisionEnergyParams:
    enabled: bool = True
    edge_label_mode: str = "flow"
    start_node_id: Optional[str] = None
    steps: int = 2
    decay: float = 0.8
    temperature: float = 1.0
    curve: str = "smoothstep"
    direction: str = "forward"

    @classmethod
    def from_cfg(cls, cfg: SpreadCfg, **overrides: Any) -> "DecisionEnergyParams":
        base = cls(
            steps=cfg.steps,
            decay=cfg.decay,
            temperature=cfg.temperature,
            curve=cfg.curve,
            direction=cfg.direction,
        )
        return replace(base, **overrides)


def apply_decision_graph_energy(graph: DecisionGraph, params: DecisionEnergyParams) -> DecisionGraph:
    """Return a copy of ``graph`` annotated with spread energy, importance and edge flow."""
    if params.edge_label_mode not in LABEL_MODES:
        raise ValueError(f"unknown edge label mode: {params.edge_label_mode!r}")

    if not params.enabled:
        if params.edge_label_mode != "weight":
            return graph
        return DecisionGraph(
            nodes=list(graph.nodes),
            edges=[
                replace(e, data={**e.data, "rawWeight": e.raw_weight, "label": format_signed2(e.raw_weight)})
                for e in graph.edges
            ],
        )

    node_ids = [n.id for n in graph.nodes]
    if not node_ids:
        return graph

    node_base: Dict[str, float] = {}
    for n in graph.nodes:
        value = n.data.get("value", 0.0)
        if is_finite_number(value):
            node_base[n.id] = abs(float(value))
    base01 = normalize_base(node_ids, node_base)

    starts = [params.start_node_id] if params.start_node_id in node_ids else []
    result = spread_energy(
        node_ids,
        [{"from": e.source, "to": e.target, "weight": e.raw_weight} for e in graph.edges],
        starts,
        steps=params.steps,
        decay=params.decay,
        temperature=params.temperature,
        curve=params.curve,
        node_base=node_base,
        direction=params.direction,
    )

    nodes = [
        replace(
            n,
            data={
                **n.data,
                "energy": result.node_energy.get(n.id, 0.0),
                "importance": clamp01(curve01(base01.get(n.id, 0.0), params.curve)),
            },
        )
        for n in graph.nodes
    ]

    edges: List[GraphEdge] = []
    for e in graph.edges:
        w = e.raw_weight
        flow, _ = edge_flow_for(result, e.source, e.target, params.direction)
        strength = clamp01(abs(flow))
        if params.edge_label_mode == "weight":
            label = format_signed2(w)
        else:
            label = f"w={format_signed2(w)} · f={format_signed2(flow)}"
        edges.append(
            replace(
                e,
                data={**e.data, "rawWeight": w, "weight": w, "flow": flow, "strength": strength, "label": label},
                animated=strength > ANIMATE_STRENGTH,
            )
        )
    logger.debug("decision overlay from %s: %d nodes, %d edges", params.start_node_id, len(nodes), len(edges))
    return DecisionGraph(nodes=nodes, edges=edges)


def _contributor_node_id(kind: str, key: str, dim: str) -> str:
    if kind == "prior":
        return f"prior:{dim}"
    return f"{kind}:{key}"


def dyad_report_graph(report: TomDyadReport, weights: DyadReportWeights = DYAD_REPORT_WEIGHTS) -> DecisionGraph:
    """Contributors -> belief dimensions -> predicted actions, with signed weights.

    Contributor nodes are shared across dimensions (``context:danger`` feeds
    both trust and threat); each prior gets its own node.
    """
    nodes: Dict[str, GraphNode] = {}
    edges: List[GraphEdge] = []

    for dim, dec in report.decomposition.items():
        dim_id = f"belief:{dim}"
        nodes[dim_id] = GraphNode(dim_id, {"label": dim, "kind": "belief", "value": dec.final})
        for c in dec.contributors:
            cid = _contributor_node_id(c.kind, c.key, dim)
            node = nodes.setdefault(cid, GraphNode(cid, {"label": c.key, "kind": c.kind, "value": 0.0}))
            node.data["value"] = max(node.data["value"], abs(c.weight))
            edges.append(GraphEdge(cid, dim_id, {"weight": c.weight}))

    predicted = {a.action: a.p for a in report.prediction}
    for action, terms in weights.actions.items():
        act_id = f"action:{action}"
        nodes[act_id] = GraphNode(act_id, {"label": action, "kind": "action", "value": predicted.get(action, 0.0)})
        for key, w in terms.items():
            inverted = key.startswith("inv_")
            dim = key[4:] if inverted else key
            edges.append(GraphEdge(f"belief:{dim}", act_id, {"weight": -w if inverted else w}))

    return DecisionGraph(nodes=list(nodes.values()), edges=edges)


__all__ = [
    "DecisionEnergyParams",
    "DecisionGraph",
    "GraphEdge",
    "GraphNode",
    "apply_decision_graph_energy",
    "dyad_report_graph",
    "format_signed2",
]
