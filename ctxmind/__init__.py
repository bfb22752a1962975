# -*- coding: utf-8 -*-
"""ctxmind: contextual belief and affect engine.

Derives situational context axes, aggregates threat, decomposes dyad beliefs,
filters them through decayed Beta cells and emits interpretation atoms.
"""

from .atoms import AtomRegistry, ContextAtom  # noqa: F401
from .config import EngineCfg, load_engine_cfg  # noqa: F401
from .context import ContextAxesVector, ContextTuning, axes_for_dyad, derive_context_axes  # noqa: F401
from .graph import apply_decision_graph_energy, dyad_report_graph, spread_energy  # noqa: F401
from .mind import (  # noqa: F401
    BaselineAffectCapability,
    ContextualMindEngine,
    InMemoryBeliefStore,
    JsonlBeliefStore,
    compute_contextual_mind,
)
from .threat import compute_threat_stack  # noqa: F401
from .tom import build_dyad_report, process_dyad  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "AtomRegistry",
    "BaselineAffectCapability",
    "ContextAtom",
    "ContextAxesVector",
    "ContextTuning",
    "ContextualMindEngine",
    "EngineCfg",
    "InMemoryBeliefStore",
    "JsonlBeliefStore",
    "apply_decision_graph_energy",
    "axes_for_dyad",
    "build_dyad_report",
    "compute_contextual_mind",
    "compute_threat_stack",
    "derive_context_axes",
    "dyad_report_graph",
    "load_engine_cfg",
    "process_dyad",
    "spread_energy",
]
