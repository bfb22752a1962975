# -*- coding: utf-8 -*-
"""Theory-of-mind beliefs: dyad reports, Beta-filtered memory and legacy store adapter."""

from .beta import BetaCell, beta_confidence, beta_mean, beta_update, init_beta_from_mean_exact  # noqa: F401
from .emit import emit_effective_dyad_atoms, emit_tom_atoms  # noqa: F401
from .legacy import (  # noqa: F401
    LegacyTomStore,
    LegacyTraits,
    apply_evidence_to_legacy,
    base_view_from_legacy,
    integrate_effective_atoms,
)
from .memory import DyadBeliefMemory, DyadStep, process_dyad  # noqa: F401
from .report import build_dyad_report, top_actions_from_state  # noqa: F401
from .types import (  # noqa: F401
    DIMENSIONS,
    TomAtom,
    TomBeliefState,
    TomConfidence,
    TomContributor,
    TomDecomposition,
    TomDyadicAffect,
    TomDyadReport,
    TomNormativeContext,
)

__all__ = [
    "BetaCell",
    "DIMENSIONS",
    "DyadBeliefMemory",
    "DyadStep",
    "LegacyTomStore",
    "LegacyTraits",
    "TomAtom",
    "TomBeliefState",
    "TomConfidence",
    "TomContributor",
    "TomDecomposition",
    "TomDyadReport",
    "TomDyadicAffect",
    "TomNormativeContext",
    "apply_evidence_to_legacy",
    "base_view_from_legacy",
    "beta_confidence",
    "beta_mean",
    "beta_update",
    "build_dyad_report",
    "emit_effective_dyad_atoms",
    "emit_tom_atoms",
    "init_beta_from_mean_exact",
    "integrate_effective_atoms",
    "process_dyad",
    "top_actions_from_state",
]
