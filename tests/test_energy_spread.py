from __future__ import annotations

import numpy as np
import pytest

from ctxmind.graph import SpreadEdge, spread_energy
from ctxmind.graph.energy import edge_flow_for, normalize_base

NODES = ["a", "b", "c"]
EDGES = [{"from": "a", "to": "b", "weight": 1.0}, ("b", "c", 0.5)]


def test_empty_start_gives_zero_energy() -> None:
    result = spread_energy(NODES, EDGES, [], steps=5)
    assert result.node_energy == {"a": 0.0, "b": 0.0, "c": 0.0}
    assert result.edge_flow == {}


def test_spread_is_deterministic() -> None:
    rng = np.random.default_rng(3)
    nodes = [f"n{i}" for i in range(8)]
    edges = [(nodes[i], nodes[j], float(rng.normal())) for i in range(8) for j in range(8) if i != j and rng.random() < 0.4]
    base = {n: float(rng.random()) for n in nodes}
    first = spread_energy(nodes, edges, ["n0", "n3"], steps=4, node_base=base, curve="sqrt")
    second = spread_energy(nodes, edges, ["n0", "n3"], steps=4, node_base=base, curve="sqrt")
    assert first == second
    assert all(0.0 <= v <= 1.0 for v in first.node_energy.values())


def test_single_step_forward() -> None:
    result = spread_energy(NODES, EDGES, ["a"], steps=1)
    # energy leaves a: 1 * (1 - 0.8) * 0.35 with a flat base
    assert result.node_energy["a"] == pytest.approx(0.0)
    assert result.node_energy["b"] == pytest.approx(0.07)
    assert result.edge_flow == {"a->b": pytest.approx(0.07)}


def test_two_steps_reach_the_sink() -> None:
    result = spread_energy(NODES, EDGES, ["a"], steps=2)
    assert result.node_energy["c"] == pytest.approx(0.07 * 0.2 * 0.35)


def test_sink_keeps_decayed_energy() -> None:
    result = spread_energy(NODES, EDGES, ["c"], steps=1)
    assert result.node_energy["c"] == pytest.approx(0.2)


def test_backward_direction_reverses_edges() -> None:
    result = spread_energy(NODES, EDGES, ["c"], steps=1, direction="backward")
    assert result.node_energy["b"] > 0.0
    assert "c->b" in result.edge_flow
    flow, found = edge_flow_for(result, "b", "c", "backward")
    assert found
    assert flow == pytest.approx(result.edge_flow["c->b"])
    assert edge_flow_for(result, "b", "c", "forward") == (0.0, False)


def test_negative_weights_carry_negative_flow() -> None:
    result = spread_energy(["a", "b"], [("a", "b", -2.0)], ["a"], steps=1)
    assert result.edge_flow["a->b"] < 0.0
    assert result.node_energy["b"] > 0.0


def test_unknown_targets_only_record_flow() -> None:
    result = spread_energy(["a"], [("a", "ghost", 1.0)], ["a"], steps=1)
    assert "ghost" not in result.node_energy
    assert result.edge_flow["a->ghost"] > 0.0


def test_invalid_arguments_raise() -> None:
    with pytest.raises(ValueError):
        spread_energy(NODES, EDGES, ["a"], direction="sideways")
    with pytest.raises(ValueError):
        spread_energy(NODES, EDGES, ["a"], curve="cubic")


def test_edge_coercion_and_base_normalisation() -> None:
    assert SpreadEdge.coerce({"source": "x", "target": "y", "weight": "bad"}) == SpreadEdge("x", "y", 0.0)
    assert SpreadEdge.coerce(("x",)) is None
    assert SpreadEdge.coerce({"from": "x"}) is None
    assert normalize_base(["a", "b"], {"a": 2.0, "b": 2.0}) == {"a": 0.0, "b": 0.0}
    assert normalize_base(["a", "b", "c"], {"a": 1.0, "b": 3.0}) == {"a": pytest.approx(1 / 3), "b": 1.0, "c": 0.0}


def test_sharp_temperature_with_heavy_edge_stays_finite() -> None:
    edges = [("a", "b", 40.0), ("a", "c", 1.0)]
    result = spread_energy(NODES, edges, ["a"], steps=1, temperature=0.05)
    assert all(np.isfinite(v) for v in result.edge_flow.values())
    assert result.edge_flow["a->b"] == pytest.approx(0.07)
    assert result.edge_flow["a->c"] == pytest.approx(0.0)
    assert result.node_energy["b"] == pytest.approx(0.07)
