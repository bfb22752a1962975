from __future__ import annotations

import pytest

from ctxmind.tom import DIMENSIONS, TomBeliefState, build_dyad_report, emit_effective_dyad_atoms, emit_tom_atoms


def test_effective_atoms_cover_every_dimension() -> None:
    atoms = emit_effective_dyad_atoms("mira", "tobin", TomBeliefState(trust=0.734, threat=0.1), 0.6, 3)
    assert [a.id for a in atoms] == [f"tom:effective:dyad:mira:tobin:{dim}" for dim in DIMENSIONS]
    trust = atoms[0]
    assert trust.kind == "tom_dyad_metric"
    assert trust.source == "tom_effective"
    assert trust.label == "trust_eff:73%"
    assert trust.confidence == pytest.approx(0.6)
    assert trust.timestamp == 3
    assert trust.to_dict()["relatedAgentId"] == "tobin"


def test_tom_atom_projections() -> None:
    report = build_dyad_report(
        "mira",
        "tobin",
        norms={"publicExposure": 1.0, "normPressure": 0.5, "surveillance": 0.0, "privacy": 1.0},
        prior={"trust": 0.8, "threat": 0.1},
    )
    atoms = {a.id.split(":")[1]: a for a in emit_tom_atoms(report)}
    assert atoms["public_mask"].magnitude == pytest.approx(0.6 + 0.4 * 0.5)
    assert atoms["social_risk"].magnitude == pytest.approx(0.5)
    assert atoms["public_mask"].kind == "tom_public_mask"
    assert atoms["public_mask"].label == "signals_may_be_role"
    s = report.state
    assert atoms["safe_vulnerable"].magnitude == pytest.approx(s.trust * (1.0 - s.threat))
    assert atoms["intent_help"].magnitude == pytest.approx(0.6 * s.trust + 0.4 * s.support)
    assert atoms["confidence"].magnitude == pytest.approx(report.confidence.overall)
