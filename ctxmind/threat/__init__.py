# -*- coding: utf-8 -*-
"""Threat stack: environment, social, scenario and personal threat aggregation."""

from .stack import (  # noqa: F401
    ThreatBreakdown,
    ThreatInputs,
    compute_threat_stack,
    threat_to_appraisal,
    threat_to_scene_metric,
)

__all__ = [
    "ThreatBreakdown",
    "ThreatInputs",
    "compute_threat_stack",
    "threat_to_appraisal",
    "threat_to_scene_metric",
]
