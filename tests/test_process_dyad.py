from __future__ import annotations

from dataclasses import replace

import pytest

from ctxmind.config import BetaFilterCfg
from ctxmind.context import ContextAxesVector
from ctxmind.tom import DyadBeliefMemory, TomBeliefState, process_dyad
from ctxmind.tom.beta import beta_mean
from ctxmind.tom.memory import contextual_observations, new_memory, observations_from_base

BASE = TomBeliefState(
    trust=0.5,
    threat=0.2,
    support=0.5,
    attachment=0.3,
    respect=0.5,
    dominance=0.4,
    predictability=0.6,
    alignment=0.55,
)


def test_repeated_observation_moves_belief_closer() -> None:
    axes = ContextAxesVector(danger=1.0)
    first = process_dyad("tobin", None, BASE, 0.5, axes, tick=1)
    second = process_dyad("tobin", first.memory, BASE, 0.5, axes, tick=2)
    assert second.observation == first.observation
    for dim in ("trust", "threat", "support", "attachment"):
        target = first.observation[dim]
        assert abs(second.current[dim] - target) < abs(first.current[dim] - target)


def test_memory_is_not_mutated() -> None:
    first = process_dyad("tobin", None, BASE, 0.8, ContextAxesVector(), tick=1)
    snapshot = first.memory.to_dict()
    second = process_dyad("tobin", first.memory, BASE, 0.8, ContextAxesVector(danger=1.0), tick=2)
    assert first.memory.to_dict() == snapshot
    assert second.memory is not first.memory
    assert second.memory.trust.last_tick == 2


def test_delta_only_with_base_view() -> None:
    with_base = process_dyad("tobin", None, BASE, 0.6, ContextAxesVector(), tick=0)
    without = process_dyad("tobin", None, None, 0.15, ContextAxesVector(), tick=0)
    assert with_base.delta is not None
    assert set(with_base.delta) == set(BASE.to_dict())
    assert without.delta is None


def test_predictability_and_alignment_pass_through() -> None:
    step = process_dyad("tobin", None, BASE, 0.3, ContextAxesVector(danger=1.0, intimacy=1.0), tick=0)
    assert step.current.predictability == pytest.approx(0.6)
    assert step.current.alignment == pytest.approx(0.55)


def test_full_base_confidence_anchors_to_base() -> None:
    cfg = BetaFilterCfg()
    step = process_dyad("tobin", None, BASE, 1.0, ContextAxesVector(danger=1.0), tick=0, cfg=cfg)
    # the filter keeps (1 - anchor_gain) of the say
    assert abs(step.current.trust - BASE.trust) < (1.0 - cfg.anchor_gain) * 0.25 + 1e-9


def test_outputs_are_bounded() -> None:
    axes = ContextAxesVector(**{name: 1.0 for name in ("danger", "intimacy", "hierarchy", "scarcity", "secrecy")})
    memory = None
    for tick in range(30):
        step = process_dyad("tobin", memory, BASE, 0.7, axes, tick=tick)
        memory = step.memory
        assert 0.0 <= step.confidence <= 1.0
        for _, value in step.current.items():
            assert 0.0 <= value <= 1.0


def test_confidence_grows_with_repetition() -> None:
    memory = None
    confs = []
    for tick in range(5):
        step = process_dyad("tobin", memory, BASE, 0.5, ContextAxesVector(), tick=tick)
        memory = step.memory
        confs.append(step.confidence)
    assert confs == sorted(confs)


def test_no_base_support_follows_trust() -> None:
    obs = observations_from_base(None)
    assert obs["support"] == obs["trust"] == 0.5
    assert obs["attachment"] == 0.1


def test_mapping_axes_use_defaults() -> None:
    obs = observations_from_base(BASE)
    from_mapping = contextual_observations(obs, {})
    from_vector = contextual_observations(obs, ContextAxesVector())
    # publicness 0.2 and legitimacy 0.5 are assumed for a bare mapping
    assert from_mapping["trust"] == pytest.approx(0.5 - 0.08 * 0.2 + 0.10 * 0.5)
    assert from_vector["trust"] == pytest.approx(0.5)


def test_memory_round_trip() -> None:
    step = process_dyad("tobin", None, BASE, 0.5, ContextAxesVector(danger=0.4), tick=3)
    restored = DyadBeliefMemory.from_dict(step.memory.to_dict())
    assert restored == step.memory


def test_zero_threat_prior_starts_near_zero() -> None:
    obs = observations_from_base(replace(BASE, threat=0.0))
    memory = new_memory("tobin", obs, 0.6, 0, BetaFilterCfg())
    assert beta_mean(memory.threat) < 0.01
    assert beta_mean(memory.trust) == pytest.approx(0.5)
