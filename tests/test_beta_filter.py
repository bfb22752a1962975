from __future__ import annotations

import numpy as np
import pytest

from ctxmind.tom.beta import BetaCell, beta_confidence, beta_mean, beta_update, init_beta_from_mean_exact


@pytest.mark.parametrize("strength", [2.0, 4.0, 10.0, 18.0])
def test_init_recovers_mean_when_floor_allows(strength) -> None:
    for mean in np.linspace(1.0 / strength, 1.0 - 1.0 / strength, 9):
        cell = init_beta_from_mean_exact(float(mean), strength, 1.0)
        assert beta_mean(cell) == pytest.approx(mean)


def test_init_rescales_to_respect_floor() -> None:
    cell = init_beta_from_mean_exact(0.05, 10.0, 1.0)
    assert cell.alpha == pytest.approx(1.0)
    assert cell.beta == pytest.approx(19.0)
    assert beta_mean(cell) == pytest.approx(0.05)


@pytest.mark.parametrize("strength", [2.0, 4.0, 18.0])
def test_init_extremes_stay_near_requested_mean(strength) -> None:
    for mean in (0.0, 1.0):
        cell = init_beta_from_mean_exact(mean, strength, 1.0)
        assert abs(beta_mean(cell) - mean) < 0.01
        assert min(cell.alpha, cell.beta) == pytest.approx(1.0)
        assert max(cell.alpha, cell.beta) == pytest.approx(100.0)


def test_init_caps_pseudo_counts() -> None:
    cell = init_beta_from_mean_exact(0.5, 500.0, 1.0, tick=4)
    assert cell.alpha == pytest.approx(100.0)
    assert cell.beta == pytest.approx(100.0)
    assert cell.last_tick == 4


def test_confidence_non_decreasing_in_mass() -> None:
    masses = np.linspace(0.0, 120.0, 61)
    confs = [beta_confidence(BetaCell(1.0 + m / 2, 1.0 + m / 2)) for m in masses]
    assert np.all(np.diff(confs) >= 0.0)
    assert confs[0] == pytest.approx(0.0)
    assert confs[-1] < 1.0 + 1e-12


def test_update_decays_and_adds_observation() -> None:
    cell = BetaCell(4.0, 6.0, 1)
    nxt = beta_update(cell, 0.8, 0.5, 0.9, tick=2)
    assert nxt.alpha == pytest.approx(4.0 * 0.9 + 0.4)
    assert nxt.beta == pytest.approx(6.0 * 0.9 + 0.1)
    assert nxt.last_tick == 2
    assert beta_update(cell, 0.8, 0.5, 0.9).last_tick == 1
    assert cell.alpha == 4.0


def test_repeated_updates_stay_capped() -> None:
    cell = BetaCell(1.0, 1.0)
    for _ in range(200):
        cell = beta_update(cell, 1.0, 10.0, 1.0)
    assert cell.alpha == pytest.approx(200.0)
    assert cell.beta == pytest.approx(1.0)


def test_cell_round_trips_camel_case() -> None:
    cell = BetaCell(2.5, 3.5, 7)
    payload = cell.to_dict()
    assert payload == {"alpha": 2.5, "beta": 3.5, "lastTick": 7}
    assert BetaCell.from_dict(payload) == cell
