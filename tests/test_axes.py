from __future__ import annotations

import numpy as np
import pytest

from ctxmind.context import AXES, ContextAxesVector, ContextTuning, apply_tuning, axes_for_dyad, derive_context_axes


def _in_unit(vec: ContextAxesVector) -> bool:
    return all(0.0 <= v <= 1.0 for _, v in vec.items())


def test_axes_vector_clamps_every_write() -> None:
    vec = ContextAxesVector(danger=3.0, intimacy=-1.0)
    assert vec.danger == 1.0
    assert vec.intimacy == 0.0
    vec["normPressure"] = float("nan")
    assert vec.norm_pressure == 0.0
    with pytest.raises(KeyError):
        vec["mood"] = 0.5
    assert set(vec.to_dict()) == set(AXES)


def test_empty_inputs_yield_bounded_axes() -> None:
    result = derive_context_axes(frame=None, world=None)
    assert _in_unit(result.raw)
    assert _in_unit(result.tuned)
    # public default exposure with no privacy cues
    assert result.raw.publicness > 0.5
    assert result.tuning_applied is None


def test_random_domain_mix_stays_in_unit_interval() -> None:
    rng = np.random.default_rng(7)
    for _ in range(25):
        mix = {axis: float(v) for axis, v in zip(AXES, rng.uniform(-3.0, 3.0, len(AXES)))}
        norms = {k: float(v) for k, v in zip(("publicExposure", "privacy", "normPressure"), rng.uniform(-1, 2, 3))}
        result = derive_context_axes(
            frame={"tom": {"norms": norms}},
            world={"scene": {"metrics": {"threat": float(rng.uniform(0, 300))}}},
            domain_mix=mix,
            tuning={"add": {"danger": 0.5}, "mul": {"intimacy": 5.0}, "gain": 0.5},
        )
        assert _in_unit(result.raw)
        assert _in_unit(result.tuned)


def test_private_space_damps_scene_danger() -> None:
    world = {"scene": {"metrics": {"threat": 80}}}
    public = derive_context_axes(frame={}, world=world)
    private = derive_context_axes(frame={"where": {"locationTags": ["private"]}}, world=world)
    assert public.raw.danger == pytest.approx(0.8)
    assert private.raw.danger == pytest.approx(0.8 * 0.35)
    assert private.flags.is_private
    assert private.raw.intimacy > public.raw.intimacy


def test_observer_scoped_atom_drives_danger() -> None:
    atoms = [{"id": "ctx:danger", "magnitude": 0.2}, {"id": "ctx:danger:mira", "magnitude": 0.7}]
    result = derive_context_axes(frame={}, world={}, self_id="mira", atoms=atoms)
    assert result.raw.danger == pytest.approx(0.7)
    assert result.atoms_used["ctx_danger"].found


def test_apply_tuning_lock_add_mul_gain() -> None:
    raw = ContextAxesVector(danger=0.4, intimacy=0.5, hierarchy=0.2)
    tuned = apply_tuning(raw, {"lock": {"danger": 0.9}, "add": {"hierarchy": 0.3}, "mul": {"intimacy": 0.5}})
    assert tuned.danger == pytest.approx(0.9)
    assert tuned.hierarchy == pytest.approx(0.5)
    assert tuned.intimacy == pytest.approx(0.25)
    assert raw.danger == pytest.approx(0.4)

    damped = apply_tuning(raw, {"gain": 0.0})
    assert damped.intimacy == pytest.approx(0.5 * 0.35)


def test_apply_tuning_private_clamps() -> None:
    raw = ContextAxesVector(intimacy=0.1, publicness=0.9, surveillance=0.9)
    tuned = apply_tuning(raw, {}, is_private=True)
    assert tuned.intimacy == pytest.approx(0.45)
    assert tuned.publicness == pytest.approx(0.55)
    assert tuned.surveillance == pytest.approx(0.65)


def test_global_lock_survives_dyad_merge() -> None:
    tuning = {"lock": {"danger": 0.9}}
    result = derive_context_axes(frame={}, world={}, tuning=tuning)
    assert result.tuned.danger == pytest.approx(0.9)
    dyad = axes_for_dyad(
        global_axes=result.tuned,
        target_id="tobin",
        dyad_domains={"danger": 1.0},
        tuning=tuning,
    )
    assert dyad.danger == pytest.approx(0.9)


def test_dyad_merge_is_monotone() -> None:
    base = ContextAxesVector(danger=0.5, intimacy=0.6, publicness=0.2)
    dyad = axes_for_dyad(
        global_axes=base,
        target_id="tobin",
        dyad_domains={"danger": 0.3, "grief": 0.7},
        dyad_norms={"publicExposure": 0.8, "privacy": 0.1},
    )
    assert dyad.danger == pytest.approx(0.5)
    assert dyad.grief == pytest.approx(0.7)
    assert dyad.publicness == pytest.approx(0.8)
    assert dyad.intimacy == pytest.approx(0.6)
    assert base.grief == 0.0


def test_per_target_tuning_applies_only_to_that_target() -> None:
    tuning = ContextTuning.from_dict({"perTarget": {"stranger": {"add": {"uncertainty": 0.2}}}})
    base = ContextAxesVector(uncertainty=0.4)
    assert axes_for_dyad(global_axes=base, target_id="stranger", tuning=tuning).uncertainty == pytest.approx(0.6)
    assert axes_for_dyad(global_axes=base, target_id="tobin", tuning=tuning).uncertainty == pytest.approx(0.4)
