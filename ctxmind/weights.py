# -*- coding: utf-8 -*-
"""Named coefficient tables for the belief, context-shift and threat formulas.

Each table is a frozen dataclass with a ``version`` tag so that coefficient
changes show up as reviewable diffs and each formula can be tested on its own.
Linear terms are stored as ``{signal_key: weight}`` mappings; the consumers
multiply each weight by the matching signal and keep the product as a
contributor for explanations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Tuple


def linear(weights: Mapping[str, float], signals: Mapping[str, float]) -> Tuple[float, Dict[str, float]]:
    """Return ``(sum, parts)`` for a weighted sum over ``signals``."""
    parts: Dict[str, float] = {}
    total = 0.0
    for key, w in weights.items():
        v = w * float(signals.get(key, 0.0))
        parts[key] = v
        total += v
    return total, parts


@dataclass(frozen=True)
class DimensionWeights:
    """prior + context + affect + evidence for one belief dimension."""

    prior_default: float
    context: Dict[str, float] = field(default_factory=dict)
    affect: Dict[str, float] = field(default_factory=dict)
    evidence: Dict[str, float] = field(default_factory=dict)
    # Clip each term group to [0, 1] before summing.
    clamp_terms: bool = False


def _dims() -> Dict[str, DimensionWeights]:
    return {
        "trust": DimensionWeights(
            prior_default=0.5,
            context={"intimacy": 0.25, "surveillance": -0.15, "danger": -0.10},
            affect={"intimacy": 0.15, "fear": -0.25, "anger": -0.10},
            evidence={"oath_kept": 0.25, "care": 0.20, "aggression": -0.20},
        ),
        "threat": DimensionWeights(
            prior_default=0.2,
            context={"danger": 0.35, "hierarchy": 0.15, "surveillance": 0.10},
            affect={"fear": 0.35, "anger": 0.15, "shame": 0.15},
            evidence={"aggression": 0.30, "care": -0.20, "oath_kept": -0.10},
        ),
        "support": DimensionWeights(
            prior_default=0.5,
            context={"intimacy": 0.20, "danger": -0.10},
            affect={"intimacy": 0.10, "fear": -0.15},
            evidence={"care": 0.25, "oath_kept": 0.10, "aggression": -0.15},
            clamp_terms=True,
        ),
        "attachment": DimensionWeights(
            prior_default=0.4,
            context={"intimacy": 0.25, "normPressure": -0.10},
            affect={"intimacy": 0.25, "anger": -0.10},
            evidence={"care": 0.15, "aggression": -0.10},
            clamp_terms=True,
        ),
        "respect": DimensionWeights(
            prior_default=0.5,
            context={"hierarchy": 0.35, "normPressure": 0.10},
            affect={"anger": -0.10},
            evidence={"oath_kept": 0.05},
            clamp_terms=True,
        ),
        "dominance": DimensionWeights(
            prior_default=0.3,
            context={"hierarchy": 0.30, "surveillance": 0.10},
            affect={"fear": 0.10},
            evidence={"aggression": 0.20},
            clamp_terms=True,
        ),
        "predictability": DimensionWeights(
            prior_default=0.5,
            context={"normPressure": 0.10, "danger": -0.10},
            affect={"fear": -0.10},
            evidence={"oath_kept": 0.10},
            clamp_terms=True,
        ),
        "alignment": DimensionWeights(
            prior_default=0.5,
            context={"normPressure": 0.10, "intimacy": 0.10},
            affect={"intimacy": 0.05, "anger": -0.05},
            evidence={"oath_kept": 0.10},
            clamp_terms=True,
        ),
    }


def _actions() -> Dict[str, Dict[str, float]]:
    # keys prefixed with "inv_" read as (1 - value)
    return {
        "support": {"support": 0.5, "trust": 0.3, "attachment": 0.2},
        "threaten": {"threat": 0.6, "dominance": 0.2, "inv_trust": 0.2},
        "command": {"dominance": 0.6, "respect": 0.2, "alignment": 0.2},
        "withdraw": {"threat": 0.6, "inv_predictability": 0.2, "inv_attachment": 0.2},
        "comfort": {"attachment": 0.5, "trust": 0.3, "inv_threat": 0.2},
    }


@dataclass(frozen=True)
class DyadReportWeights:
    version: str = "dyad-report/3"
    dimensions: Dict[str, DimensionWeights] = field(default_factory=_dims)
    evidence_mass_weight: float = 0.65
    mask_weight: float = 0.35
    mask_public_exposure: float = 0.6
    mask_norm_pressure: float = 0.4
    actions: Dict[str, Dict[str, float]] = field(default_factory=_actions)
    top_actions: int = 3


def _shift() -> Dict[str, Dict[str, float]]:
    return {
        "trust": {
            "danger": -0.25,
            "intimacy": 0.25,
            "publicness": -0.08,
            "secrecy": -0.10,
            "legitimacy": 0.10,
        },
        "threat": {
            "danger": 0.35,
            "intimacy": -0.15,
            "normPressure": 0.10,
            "scarcity": 0.10,
            "timePressure": 0.12,
            "uncertainty": 0.10,
            "secrecy": 0.08,
        },
        "dominance": {"hierarchy": 0.20, "publicness": 0.05},
        "respect": {"hierarchy": 0.15, "publicness": 0.10},
        "attachment": {"intimacy": 0.35, "danger": -0.15},
        "support": {
            "intimacy": 0.20,
            "danger": -0.10,
            "ctxTrustCentered": 0.10,
            "scarcity": -0.08,
            "timePressure": -0.10,
        },
    }


@dataclass(frozen=True)
class ContextShiftWeights:
    """Additive axis shifts applied to raw observations before filtering."""

    version: str = "context-shift/2"
    shifts: Dict[str, Dict[str, float]] = field(default_factory=_shift)
    axis_defaults: Dict[str, float] = field(
        default_factory=lambda: {"publicness": 0.2, "legitimacy": 0.5}
    )


@dataclass(frozen=True)
class ThreatWeights:
    version: str = "threat-stack/1"
    env: Dict[str, float] = field(
        default_factory=lambda: {
            "envDanger": 0.45,
            "visibilityBad": 0.20,
            "coverLack": 0.15,
            "crowding": 0.20,
        }
    )
    social_distrust: float = 0.55
    social_hostility: float = 0.45
    social_hierarchy: float = 0.20
    social_surveillance: float = 0.10
    scenario: Dict[str, float] = field(
        default_factory=lambda: {"timePressure": 0.40, "woundedPressure": 0.35, "goalBlock": 0.25}
    )
    personal: Dict[str, float] = field(
        default_factory=lambda: {"paranoia": 0.35, "trauma": 0.25, "exhaustion": 0.25, "dissociation": 0.10}
    )
    experience_buffer: float = 0.45
    w_env: float = 0.40
    w_social: float = 0.30
    w_scenario: float = 0.30
    gain: float = 2.4
    offset: float = 0.35
    personal_gain: float = 0.55
    perceptibility_los: float = 0.6
    perceptibility_audio: float = 0.4
    closeness_floor: float = 0.35
    default_trust: float = 0.45


DYAD_REPORT_WEIGHTS = DyadReportWeights()
CONTEXT_SHIFT_WEIGHTS = ContextShiftWeights()
THREAT_WEIGHTS = ThreatWeights()

__all__ = [
    "CONTEXT_SHIFT_WEIGHTS",
    "DYAD_REPORT_WEIGHTS",
    "THREAT_WEIGHTS",
    "ContextShiftWeights",
    "DimensionWeights",
    "DyadReportWeights",
    "ThreatWeights",
    "linear",
]
