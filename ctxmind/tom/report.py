"""Dyad report: decompose a belief about another agent into prior, context, affect and evidence."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..mathutil import as_mapping, clamp01, is_finite_number
from ..weights import DYAD_REPORT_WEIGHTS, DyadReportWeights, linear
from .emit import emit_tom_atoms
from .types import (
    DIMENSIONS,
    ActionGuess,
    TomBeliefState,
    TomConfidence,
    TomContributor,
    TomDecomposition,
    TomDyadicAffect,
    TomDyadReport,
    TomNormativeContext,
)

logger = logging.getLogger(__name__)

EVIDENCE_KEYS = ("oath_kept", "care", "aggression")


def _num(mapping: Mapping[str, Any], key: str) -> Optional[float]:
    value = mapping.get(key)
    return float(value) if is_finite_number(value) else None


def _evidence_map(evidence: Any) -> Dict[str, float]:
    """Collapse ``[{key, val}]`` / ``[(key, val)]`` / ``{key: val}`` into a dict; last value wins."""
    if isinstance(evidence, Mapping):
        items: Iterable[Any] = evidence.items()
    elif isinstance(evidence, (list, tuple)):
        items = evidence
    else:
        return {}
    out: Dict[str, float] = {}
    for item in items:
        if isinstance(item, Mapping):
            key, val = item.get("key"), item.get("val", item.get("value"))
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            key, val = item
        else:
            continue
        if key is not None and is_finite_number(val):
            out[str(key)] = float(val)
    return out


def top_actions_from_state(
    state: TomBeliefState,
    weights: DyadReportWeights = DYAD_REPORT_WEIGHTS,
) -> List[ActionGuess]:
    """Score the five action categories, normalise by their sum and keep the best few."""
    raw: List[ActionGuess] = []
    for action, terms in weights.actions.items():
        p = 0.0
        for key, w in terms.items():
            if key.startswith("inv_"):
                p += w * (1.0 - state[key[4:]])
            else:
                p += w * state[key]
        raw.append(ActionGuess(action, clamp01(p)))
    total = sum(a.p for a in raw) or 1.0
    normed = [ActionGuess(a.action, a.p / total) for a in raw]
    normed.sort(key=lambda a: -a.p)
    return normed[: weights.top_actions]


def build_dyad_report(
    self_id: str,
    other_id: str,
    timestamp: float = 0.0,
    domains: Optional[Mapping[str, Any]] = None,
    norms: Any = None,
    self_affect: Optional[Mapping[str, Any]] = None,
    evidence: Any = None,
    prior: Optional[Mapping[str, Any]] = None,
    *,
    weights: DyadReportWeights = DYAD_REPORT_WEIGHTS,
) -> TomDyadReport:
    domains = as_mapping(domains)
    norms_obj = norms if isinstance(norms, TomNormativeContext) else TomNormativeContext.from_dict(as_mapping(norms))
    affect = as_mapping(self_affect)
    prior = as_mapping(prior)
    ev = _evidence_map(evidence)

    surv = _num(domains, "surveillance")
    norm = _num(domains, "normPressure")
    context_signals = {
        "danger": clamp01(_num(domains, "danger") or 0.0),
        "intimacy": clamp01(_num(domains, "intimacy") or 0.0),
        "hierarchy": clamp01(_num(domains, "hierarchy") or 0.0),
        "surveillance": clamp01(surv if surv is not None else norms_obj.surveillance),
        "normPressure": clamp01(norm if norm is not None else norms_obj.norm_pressure),
    }
    affect_signals = {k: clamp01(_num(affect, k) or 0.0) for k in ("fear", "anger", "shame", "intimacy")}
    evidence_signals = {k: clamp01(ev.get(k, 0.0)) for k in EVIDENCE_KEYS}

    decomposition: Dict[str, TomDecomposition] = {}
    for dim in DIMENSIONS:
        dw = weights.dimensions[dim]
        p = _num(prior, dim)
        p = clamp01(p if p is not None else dw.prior_default)
        ctx, ctx_parts = linear(dw.context, context_signals)
        aff, aff_parts = linear(dw.affect, affect_signals)
        evi, evi_parts = linear(dw.evidence, evidence_signals)
        if dw.clamp_terms:
            ctx, aff, evi = clamp01(ctx), clamp01(aff), clamp01(evi)
        contributors = [TomContributor("prior", dim, p)]
        contributors += [TomContributor("context", k, v) for k, v in ctx_parts.items()]
        contributors += [TomContributor("affect", k, v) for k, v in aff_parts.items()]
        contributors += [TomContributor("evidence", k, v) for k, v in evi_parts.items()]
        decomposition[dim] = TomDecomposition(
            prior=p,
            context_bias=ctx,
            affect_bias=aff,
            evidence_update=evi,
            final=clamp01(p + ctx + aff + evi),
            contributors=contributors,
        )

    state = TomBeliefState(**{dim: decomposition[dim].final for dim in DIMENSIONS})

    evidence_mass = clamp01(sum(evidence_signals.values()) / len(EVIDENCE_KEYS))
    mask = clamp01(
        weights.mask_public_exposure * norms_obj.public_exposure
        + weights.mask_norm_pressure * context_signals["normPressure"]
    )
    overall = clamp01(weights.evidence_mass_weight * evidence_mass + weights.mask_weight * (1.0 - mask))
    confidence = TomConfidence.uniform(overall, data_adequacy=evidence_mass)

    fear = affect_signals["fear"]
    dyadic_affect = TomDyadicAffect(
        felt_safety=state.trust * (1.0 - state.threat) * norms_obj.privacy,
        felt_fear=state.threat * (0.5 + 0.5 * fear),
        felt_shame=context_signals["surveillance"]
        * context_signals["normPressure"]
        * (0.5 + 0.5 * affect_signals["shame"]),
        felt_anger=state.threat * (0.3 + 0.7 * affect_signals["anger"]),
        felt_tenderness=state.attachment * (0.5 + 0.5 * affect_signals["intimacy"]) * (1.0 - state.threat),
    )

    report = TomDyadReport(
        self_id=self_id,
        other_id=other_id,
        timestamp=timestamp,
        domains={k: float(v) for k, v in domains.items() if is_finite_number(v)},
        norms=norms_obj,
        state=state,
        confidence=confidence,
        decomposition=decomposition,
        prediction=top_actions_from_state(state, weights),
        dyadic_affect=dyadic_affect,
    )
    report.atoms = emit_tom_atoms(report)
    logger.debug(
        "dyad report %s->%s trust=%.3f threat=%.3f conf=%.3f",
        self_id,
        other_id,
        state.trust,
        state.threat,
        overall,
    )
    return report


__all__ = ["EVIDENCE_KEYS", "build_dyad_report", "top_actions_from_state"]
