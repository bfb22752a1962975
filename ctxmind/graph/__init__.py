# -*- coding: utf-8 -*-
"""Graph energy spread and the decision-graph explanation overlay."""

from .decision import (  # noqa: F401
    DecisionEnergyParams,
    DecisionGraph,
    GraphEdge,
    GraphNode,
    apply_decision_graph_energy,
    dyad_report_graph,
)
from .energy import SpreadEdge, SpreadResult, spread_energy  # noqa: F401

__all__ = [
    "DecisionEnergyParams",
    "DecisionGraph",
    "GraphEdge",
    "GraphNode",
    "SpreadEdge",
    "SpreadResult",
    "apply_decision_graph_energy",
    "dyad_report_graph",
    "spread_energy",
]
