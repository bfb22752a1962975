"""Context-axis derivation: raw signal fusion, tuning overrides and per-dyad merge."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ..atoms import AtomRead, AtomRegistry
from ..mathutil import as01, as_mapping, clamp, clamp01, dig, is_finite_number
from .types import AXES, ContextAxesVector, ContextTuning

logger = logging.getLogger(__name__)

# Axes that a dyad's domain weights may raise (monotone max merge).
DYAD_DOMAIN_AXES = (
    "danger",
    "intimacy",
    "hierarchy",
    "scarcity",
    "timePressure",
    "uncertainty",
    "legitimacy",
    "secrecy",
    "grief",
    "pain",
)

# norm key -> axis it may raise
DYAD_NORM_AXES = {
    "publicExposure": "publicness",
    "normPressure": "normPressure",
    "surveillance": "surveillance",
    "privacy": "intimacy",
}

_ATOM_SIGNALS = {
    "soc_publicness": "soc_publicness",
    "soc_surveillance": "soc_surveillance",
    "soc_norm_pressure": "soc_norm_pressure",
    "ctx_publicness": "ctx:publicness",
    "ctx_surveillance": "ctx:surveillance",
    "ctx_norm_pressure": "ctx:normPressure",
    "ctx_danger": "ctx:danger",
    "ctx_control": "ctx:control",
    "ctx_intimacy": "ctx:intimacy",
    "ctx_hierarchy": "ctx:hierarchy",
    "ctx_scarcity": "ctx:scarcity",
    "ctx_time_pressure": "ctx:timePressure",
    "ctx_uncertainty": "ctx:uncertainty",
    "ctx_legitimacy": "ctx:legitimacy",
    "ctx_secrecy": "ctx:secrecy",
    "ctx_grief": "ctx:grief",
    "ctx_pain": "ctx:pain",
}


@dataclass
class LocationFlags:
    is_formal: bool = False
    is_private: bool = False
    safe_hub: bool = False
    private_tag: bool = False


@dataclass
class DeriveAxesResult:
    raw: ContextAxesVector
    tuned: ContextAxesVector
    atoms_used: Dict[str, AtomRead] = field(default_factory=dict)
    signals: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    flags: LocationFlags = field(default_factory=LocationFlags)
    tuning_applied: Optional[ContextTuning] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw": self.raw.to_dict(),
            "tuned": self.tuned.to_dict(),
            "atomsUsed": {k: v.to_dict() for k, v in self.atoms_used.items()},
            "signals": {k: dict(v) for k, v in self.signals.items()},
            "tuningApplied": self.tuning_applied.to_dict() if self.tuning_applied else None,
        }


def default_axes() -> ContextAxesVector:
    return ContextAxesVector()


def location_flags(frame: Any, world: Any) -> LocationFlags:
    tags = dig(frame, "where", "locationTags")
    tags = list(tags) if isinstance(tags, (list, tuple)) else []
    safe_hub = "safe_hub" in tags
    private_tag = "private" in tags or safe_hub

    def _flag(name: str, fallback: bool) -> bool:
        for value in (dig(world, "situation", name), dig(frame, "what", name)):
            if value is not None:
                return bool(value)
        return fallback

    return LocationFlags(
        is_formal=_flag("isFormal", False),
        is_private=_flag("isPrivate", private_tag),
        safe_hub=safe_hub,
        private_tag=private_tag,
    )


def _mix(domain_mix: Mapping[str, Any], *keys: str) -> float:
    for key in keys:
        value = domain_mix.get(key)
        if value is not None:
            return float(value) if is_finite_number(value) else 0.0
    return 0.0


def _scene01(world: Any, metric: str) -> float:
    value = dig(world, "scene", "metrics", metric)
    return clamp01(value / 100.0) if is_finite_number(value) else 0.0


def derive_context_axes(
    *,
    frame: Any,
    world: Any,
    self_id: Optional[str] = None,
    atoms: Any = None,
    domain_mix: Optional[Mapping[str, Any]] = None,
    tuning: Any = None,
    registry: Optional[AtomRegistry] = None,
) -> DeriveAxesResult:
    """Fuse frame, world, atom and goal-mix signals into 14 axes."""
    reg = registry if registry is not None else AtomRegistry(atoms)
    mix = as_mapping(domain_mix)
    tuning_obj = ContextTuning.from_dict(tuning)
    flags = location_flags(frame, world)
    raw = default_axes()
    signals: Dict[str, Dict[str, Any]] = {}

    def note(name: str, value: float, source: str) -> float:
        signals[name] = {"value": float(value), "from": source}
        return value

    norms = as_mapping(dig(frame, "tom", "norms"))

    def _norm(key: str, fallback: float) -> float:
        value = norms.get(key)
        if is_finite_number(value):
            return note(key, clamp01(value), "frame.tom.norms")
        return note(key, fallback, "default")

    public_exposure = _norm("publicExposure", 0.2 if flags.is_private else 0.8)
    privacy = _norm("privacy", 0.9 if flags.is_private else 0.2)
    norm_pressure = _norm("normPressure", 0.2)
    surveillance = _norm("surveillance", 0.1)

    scene_threat = note("sceneThreat", _scene01(world, "threat"), "world.scene.metrics.threat")
    scene_chaos = note("sceneChaos", _scene01(world, "chaos"), "world.scene.metrics.chaos")
    map_hazard = note("mapHazard", as01(dig(frame, "where", "map", "hazard"), 0.0), "frame.where.map.hazard")

    a = {name: reg.pick_for(atom_id, self_id) for name, atom_id in _ATOM_SIGNALS.items()}

    def _preferred(primary: AtomRead, fallback: AtomRead) -> AtomRead:
        return primary if primary.found else fallback

    publicness_atom = _preferred(a["soc_publicness"], a["ctx_publicness"])
    norm_pressure_atom = _preferred(a["soc_norm_pressure"], a["ctx_norm_pressure"])
    surveillance_atom = _preferred(a["soc_surveillance"], a["ctx_surveillance"])

    danger_base = clamp01(max(a["ctx_danger"].value, map_hazard, scene_threat, _mix(mix, "danger")))
    raw.danger = danger_base * 0.35 if flags.is_private and map_hazard < 0.2 else danger_base

    raw.intimacy = (
        0.55 * privacy
        + (0.20 if flags.is_private else 0.0)
        + 0.35 * a["ctx_intimacy"].value
        + 0.25 * _mix(mix, "intimacy", "personal_bond")
        - 0.25 * public_exposure
    )

    raw.hierarchy = (
        0.45 * a["ctx_hierarchy"].value
        + 0.30 * norm_pressure
        + 0.20 * surveillance
        + 0.20 * _mix(mix, "hierarchy", "status")
        + (0.15 if flags.is_formal else 0.0)
    )

    raw.publicness = (
        0.45 * public_exposure
        + 0.25 * publicness_atom.value
        + 0.20 * (1.0 - privacy)
        + (0.10 if flags.is_formal else 0.0)
    )

    raw.norm_pressure = max(norm_pressure, norm_pressure_atom.value, _mix(mix, "normPressure"))
    raw.surveillance = max(surveillance, surveillance_atom.value, _mix(mix, "surveillance"))

    scarcity = note("sceneScarcity", _scene01(world, "scarcity"), "world.scene.metrics.scarcity")
    raw.scarcity = max(a["ctx_scarcity"].value, scarcity, _mix(mix, "scarcity"))

    urgency = note("sceneUrgency", _scene01(world, "urgency"), "world.scene.metrics.urgency")
    raw.time_pressure = max(a["ctx_time_pressure"].value, urgency, _mix(mix, "timePressure"))

    info = note("infoAdequacy", as01(dig(frame, "what", "infoAdequacy01"), 0.3), "frame.what.infoAdequacy01")
    raw.uncertainty = max(a["ctx_uncertainty"].value, scene_chaos, 1.0 - info, _mix(mix, "uncertainty"))

    control_ctx = clamp01(
        0.65 * a["ctx_control"].value
        + 0.20 * (1.0 - raw.danger)
        + 0.10 * (1.0 - raw.time_pressure)
        + 0.05 * (1.0 - raw.uncertainty)
    )
    raw.control = max(control_ctx, _mix(mix, "control", "order"))

    legitimacy_ctx = clamp01(
        0.55 * a["ctx_legitimacy"].value
        + 0.25 * (1.0 - raw.surveillance)
        + 0.20 * (1.0 - raw.norm_pressure)
    )
    raw.legitimacy = max(legitimacy_ctx, _mix(mix, "legitimacy"))

    raw.secrecy = (
        0.55 * a["ctx_secrecy"].value
        + 0.25 * raw.surveillance
        + 0.20 * raw.publicness
        - (0.15 if flags.is_private else 0.0)
    )

    loss = note("sceneLoss", _scene01(world, "loss"), "world.scene.metrics.loss")
    raw.grief = max(a["ctx_grief"].value, loss, _mix(mix, "grief"))

    body_pain = note("bodyPain", as01(dig(frame, "how", "pain01"), 0.0), "frame.how.pain01")
    raw.pain = max(a["ctx_pain"].value, body_pain, _mix(mix, "pain"))

    tuned = apply_tuning(raw, tuning_obj, is_private=flags.is_private)
    logger.debug("axes for %s: raw=%s tuned=%s", self_id, raw.to_dict(), tuned.to_dict())
    return DeriveAxesResult(
        raw=raw,
        tuned=tuned,
        atoms_used=a,
        signals=signals,
        flags=flags,
        tuning_applied=tuning_obj,
    )


def apply_tuning(
    raw: ContextAxesVector,
    tuning: Any,
    *,
    is_private: bool = False,
) -> ContextAxesVector:
    """Apply lock / add / mul / gain overrides; ``raw`` is left untouched."""
    out = raw.copy()
    tuning_obj = ContextTuning.from_dict(tuning)
    if tuning_obj is None:
        return out

    gain = clamp01(tuning_obj.gain)
    for axis in AXES:
        lock = tuning_obj.lock.get(axis)
        if lock is not None:
            out[axis] = lock
            continue
        add = clamp(tuning_obj.add.get(axis, 0.0), -1.0, 1.0)
        mul = clamp(tuning_obj.mul.get(axis, 1.0), 0.0, 2.0)
        out[axis] = (out[axis] * mul + add) * (0.35 + 0.65 * gain)

    if is_private:
        out.intimacy = max(out.intimacy, 0.45)
        out.publicness = min(out.publicness, 0.55)
        out.surveillance = min(out.surveillance, 0.65)
    return out


def axes_for_dyad(
    *,
    global_axes: ContextAxesVector,
    target_id: str,
    dyad_domains: Optional[Mapping[str, Any]] = None,
    dyad_norms: Optional[Mapping[str, Any]] = None,
    tuning: Any = None,
) -> ContextAxesVector:
    """Merge a dyad's own domains/norms into the global axes, then retune."""
    out = global_axes.copy()
    domains = as_mapping(dyad_domains)
    norms = as_mapping(dyad_norms)

    for axis in DYAD_DOMAIN_AXES:
        out[axis] = max(out[axis], as01(domains.get(axis), 0.0))

    for norm_key, axis in DYAD_NORM_AXES.items():
        value = norms.get(norm_key)
        if is_finite_number(value):
            out[axis] = max(out[axis], clamp01(value))

    tuning_obj = ContextTuning.from_dict(tuning)
    if tuning_obj is None:
        return out

    # A global lock stays authoritative over the monotone merge.
    for axis, lock in tuning_obj.lock.items():
        out[axis] = lock

    per_target = tuning_obj.per_target.get(target_id)
    return apply_tuning(out, per_target)


__all__ = [
    "DYAD_DOMAIN_AXES",
    "DYAD_NORM_AXES",
    "DeriveAxesResult",
    "LocationFlags",
    "apply_tuning",
    "axes_for_dyad",
    "default_axes",
    "derive_context_axes",
    "location_flags",
]
