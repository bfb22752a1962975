# -*- coding: utf-8 -*-
"""Situational context axes (danger, intimacy, hierarchy, ...)."""

from .axes import DeriveAxesResult, apply_tuning, axes_for_dyad, derive_context_axes  # noqa: F401
from .types import AXES, ContextAxesVector, ContextTuning  # noqa: F401

__all__ = [
    "AXES",
    "ContextAxesVector",
    "ContextTuning",
    "DeriveAxesResult",
    "apply_tuning",
    "axes_for_dyad",
    "derive_context_axes",
]
