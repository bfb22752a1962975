"""Interpretation atoms projected from dyad reports and contextual beliefs."""

from __future__ import annotations

from typing import List, Optional, TYPE_CHECKING

from ..mathutil import clamp01
from .types import DIMENSIONS, TomAtom, TomBeliefState

if TYPE_CHECKING:  # pragma: no cover
    from .types import TomDyadReport


def _atom_id(*parts: Optional[str]) -> str:
    return ":".join(str(p) for p in parts if p)


def emit_tom_atoms(report: "TomDyadReport") -> List[TomAtom]:
    s, o, ts = report.self_id, report.other_id, report.timestamp
    state, norms = report.state, report.norms
    conf = report.confidence.overall

    rows = [
        ("threat", "tom_perceived_threat", state.threat, "perceived_threat"),
        ("support", "tom_expected_support", state.support, "expected_support"),
        ("control", "tom_perceived_control", state.dominance, "perceived_control"),
        (
            "public_mask",
            "tom_public_mask",
            0.6 * norms.public_exposure + 0.4 * norms.norm_pressure,
            "signals_may_be_role",
        ),
        (
            "social_risk",
            "tom_social_risk",
            0.5 * norms.public_exposure + 0.5 * norms.surveillance,
            "social_risk",
        ),
        (
            "safe_vulnerable",
            "tom_safe_to_be_vulnerable",
            state.trust * (1.0 - state.threat) * norms.privacy,
            "safe_to_be_vulnerable",
        ),
        (
            "need_deescalation",
            "tom_need_deescalation",
            state.threat * (1.0 - state.trust) * (0.5 + 0.5 * norms.norm_pressure),
            "need_deescalation",
        ),
        ("confidence", "tom_confidence", conf, "confidence"),
        # help vs harm as complementary projections
        ("intent_help", "tom_perceived_intent_help", 0.6 * state.trust + 0.4 * state.support, "intent_help"),
        (
            "intent_harm",
            "tom_perceived_intent_harm",
            0.7 * state.threat + 0.3 * (1.0 - state.trust),
            "intent_harm",
        ),
    ]
    return [
        TomAtom(
            id=_atom_id("tom", metric, s, o),
            kind=kind,
            source="tom",
            magnitude=clamp01(value),
            confidence=conf,
            related_agent_id=o,
            timestamp=ts,
            label=label,
        )
        for metric, kind, value, label in rows
    ]


def emit_effective_dyad_atoms(
    self_id: str,
    target_id: str,
    state: TomBeliefState,
    confidence: float,
    timestamp: Optional[float] = None,
) -> List[TomAtom]:
    """One ``tom:effective:dyad:S:O:<metric>`` atom per belief dimension."""
    out: List[TomAtom] = []
    for metric in DIMENSIONS:
        value = clamp01(state[metric])
        out.append(
            TomAtom(
                id=_atom_id("tom:effective:dyad", self_id, target_id, metric),
                kind="tom_dyad_metric",
                source="tom_effective",
                magnitude=value,
                confidence=clamp01(confidence),
                related_agent_id=target_id,
                timestamp=timestamp,
                label=f"{metric}_eff:{round(value * 100)}%",
            )
        )
    return out


__all__ = ["emit_effective_dyad_atoms", "emit_tom_atoms"]
