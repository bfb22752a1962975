from __future__ import annotations

import pytest

from ctxmind.config import SpreadCfg
from ctxmind.graph import (
    DecisionEnergyParams,
    DecisionGraph,
    GraphEdge,
    GraphNode,
    apply_decision_graph_energy,
    dyad_report_graph,
)
from ctxmind.graph.decision import format_signed2
from ctxmind.tom import build_dyad_report


def _report():
    return build_dyad_report(
        "mira",
        "stranger",
        domains={"danger": 0.8, "hierarchy": 0.4},
        self_affect={"fear": 0.6},
        evidence={"aggression": 0.5},
        prior={"trust": 0.5, "threat": 0.2},
    )


def _small_graph() -> DecisionGraph:
    return DecisionGraph(
        nodes=[GraphNode("goal", {"value": 0.9}), GraphNode("flee", {"value": 0.4}), GraphNode("hide", {"value": 0.1})],
        edges=[GraphEdge("goal", "flee", {"weight": 0.8}), GraphEdge("goal", "hide", {"weight": -0.3})],
    )


def test_format_signed2() -> None:
    assert format_signed2(0.5) == "+0.50"
    assert format_signed2(-0.25) == "-0.25"
    assert format_signed2(-0.001) == "+0.00"
    assert format_signed2(float("nan")) == "0.00"
    assert format_signed2(None) == "0.00"


def test_report_graph_links_contributors_beliefs_actions() -> None:
    graph = dyad_report_graph(_report())
    ids = {n.id for n in graph.nodes}
    assert {"prior:trust", "context:danger", "affect:fear", "evidence:aggression"} <= ids
    assert {"belief:trust", "belief:threat", "action:withdraw"} <= ids
    edge = graph.edge("belief:threat", "action:comfort")
    assert edge is not None
    assert edge.raw_weight == pytest.approx(-0.2)
    danger_to_threat = graph.edge("context:danger", "belief:threat")
    assert danger_to_threat.raw_weight == pytest.approx(0.35 * 0.8)
    # shared contributor node keeps its largest magnitude
    assert graph.node("context:danger").data["value"] == pytest.approx(0.35 * 0.8)


def test_overlay_annotates_nodes_and_edges() -> None:
    graph = _small_graph()
    params = DecisionEnergyParams(start_node_id="goal", steps=1)
    out = apply_decision_graph_energy(graph, params)
    goal, flee = out.node("goal"), out.node("flee")
    assert goal.data["importance"] == pytest.approx(1.0)
    assert out.node("hide").data["importance"] == pytest.approx(0.0)
    assert flee.data["energy"] > 0.0
    edge = out.edge("goal", "hide")
    assert edge.data["flow"] < 0.0
    assert edge.data["label"].startswith("w=-0.30")
    assert 0.0 <= edge.data["strength"] <= 1.0
    assert edge.animated is (edge.data["strength"] > 0.35)
    # input graph is left untouched
    assert "energy" not in graph.node("goal").data


def test_overlay_without_start_has_no_energy() -> None:
    out = apply_decision_graph_energy(_small_graph(), DecisionEnergyParams(start_node_id="missing"))
    assert all(n.data["energy"] == 0.0 for n in out.nodes)
    assert all(e.data["flow"] == 0.0 for e in out.edges)
    assert not any(e.animated for e in out.edges)


def test_disabled_overlay_weight_labels() -> None:
    graph = _small_graph()
    assert apply_decision_graph_energy(graph, DecisionEnergyParams(enabled=False)) is graph
    out = apply_decision_graph_energy(graph, DecisionEnergyParams(enabled=False, edge_label_mode="weight"))
    assert [e.data["label"] for e in out.edges] == ["+0.80", "-0.30"]
    assert "energy" not in out.node("goal").data


def test_overlay_rejects_unknown_label_mode() -> None:
    with pytest.raises(ValueError):
        apply_decision_graph_energy(_small_graph(), DecisionEnergyParams(edge_label_mode="both"))


def test_params_from_spread_config() -> None:
    params = DecisionEnergyParams.from_cfg(SpreadCfg(steps=4, curve="sqrt"), start_node_id="goal")
    assert params.steps == 4
    assert params.curve == "sqrt"
    assert params.start_node_id == "goal"
    assert params.direction == "forward"


def test_overlay_on_report_graph() -> None:
    graph = dyad_report_graph(_report())
    out = apply_decision_graph_energy(graph, DecisionEnergyParams(start_node_id="context:danger", steps=1))
    assert out.node("belief:threat").data["energy"] > 0.0
    payload = out.to_dict()
    assert len(payload["nodes"]) == len(graph.nodes)
    assert all("->" in e["id"] for e in payload["edges"])
