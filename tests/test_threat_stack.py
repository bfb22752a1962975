from __future__ import annotations

from dataclasses import replace

import numpy as np
import pytest

from ctxmind.threat import ThreatInputs, compute_threat_stack, threat_to_appraisal, threat_to_scene_metric


def _totals(field: str, base: ThreatInputs) -> np.ndarray:
    grid = np.linspace(0.0, 1.0, 11)
    return np.array([compute_threat_stack(replace(base, **{field: float(v)})).total for v in grid])


@pytest.mark.parametrize("field", ["env_danger", "nearby_hostile_mean", "time_pressure", "wounded_pressure"])
def test_total_is_non_decreasing(field) -> None:
    base = ThreatInputs(nearby_count=0.6, nearby_trust_mean=0.5, crowding=0.3)
    totals = _totals(field, base)
    assert np.all(np.diff(totals) >= -1e-12)
    assert totals[-1] > totals[0]


def test_breakdown_is_bounded_and_serialisable() -> None:
    result = compute_threat_stack(ThreatInputs(env_danger=1.0, paranoia=1.0, trauma=1.0, time_pressure=1.0))
    for value in (result.env, result.social, result.scenario, result.personal, result.total):
        assert 0.0 <= value <= 1.0
    payload = result.to_dict()
    assert payload["inputs"]["envDanger"] == 1.0
    assert payload["usedAtomIds"] == []


def test_experience_buffers_personal_bias() -> None:
    raw = compute_threat_stack(ThreatInputs(paranoia=0.8, exhaustion=0.6))
    seasoned = compute_threat_stack(ThreatInputs(paranoia=0.8, exhaustion=0.6, experience=1.0))
    assert seasoned.personal < raw.personal
    assert seasoned.total < raw.total


def test_inputs_from_dict_accepts_camel_case() -> None:
    inputs = ThreatInputs.from_dict({"envDanger": 0.4, "time_pressure": 2.0})
    assert inputs.env_danger == 0.4
    assert inputs.time_pressure == 1.0


def test_atoms_override_inputs_and_are_recorded() -> None:
    atoms = [
        {"id": "ctx:danger:mira", "subject": "mira", "magnitude": 0.9},
        {"id": "obs:nearby:mira:bob", "subject": "mira", "magnitude": 0.9},
        {"id": "tom:dyad:mira:bob:threat", "subject": "mira", "magnitude": 0.8},
    ]
    result = compute_threat_stack(ThreatInputs(env_danger=0.1), atoms=atoms)
    assert result.inputs.env_danger == pytest.approx(0.9)
    assert result.inputs.nearby_count == pytest.approx(0.9)
    assert result.inputs.nearby_hostile_mean == pytest.approx(0.8)
    assert "ctx:danger:mira" in result.used_atom_ids
    assert "tom:dyad:mira:bob:threat" in result.used_atom_ids
    assert result.why


def test_low_information_raises_paranoia() -> None:
    def paranoia(adequacy: float) -> float:
        atoms = [{"id": "obs:infoAdequacy:mira", "subject": "mira", "magnitude": adequacy}]
        return compute_threat_stack(atoms=atoms).inputs.paranoia

    assert paranoia(1.0) == pytest.approx(0.0)
    assert paranoia(0.0) == pytest.approx(0.3)


def test_scene_and_appraisal_mappings() -> None:
    assert threat_to_scene_metric(0.0) == 0
    assert threat_to_scene_metric(1.0) == 150
    assert threat_to_scene_metric(0.5) == int(round(150 * 0.5**0.85))
    assert threat_to_appraisal(1.0) == pytest.approx(1.0)
    assert threat_to_appraisal(0.5) < 0.5
