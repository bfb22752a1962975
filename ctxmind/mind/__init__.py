# -*- coding: utf-8 -*-
"""Per-agent contextual mind: state, stores, self-affect and the tick engine."""

from .affect import AffectCapability, AffectUpdate, AppraisalResult, BaselineAffectCapability  # noqa: F401
from .engine import (  # noqa: F401
    ContextualDyadReport,
    ContextualMindEngine,
    ContextualMindReport,
    ContextualMindResult,
    compute_contextual_mind,
)
from .state import ContextualMindState, HistoryPoint, push_history  # noqa: F401
from .store import BeliefStore, InMemoryBeliefStore, JsonlBeliefStore  # noqa: F401

__all__ = [
    "AffectCapability",
    "AffectUpdate",
    "AppraisalResult",
    "BaselineAffectCapability",
    "BeliefStore",
    "ContextualDyadReport",
    "ContextualMindEngine",
    "ContextualMindReport",
    "ContextualMindResult",
    "ContextualMindState",
    "HistoryPoint",
    "InMemoryBeliefStore",
    "JsonlBeliefStore",
    "compute_contextual_mind",
    "push_history",
]
