"""Threat aggregation: environment, social, scenario and personal signals -> one scalar."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, List, Optional

from ..atoms import AtomKey, AtomRegistry, key_id
from ..mathutil import clamp01, noisy_or01, sigmoid
from ..weights import THREAT_WEIGHTS, ThreatWeights, linear

logger = logging.getLogger(__name__)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass
class ThreatInputs:
    # environment
    env_danger: float = 0.0
    visibility_bad: float = 0.0
    cover_lack: float = 0.0
    crowding: float = 0.0
    # social
    nearby_count: float = 0.0
    nearby_trust_mean: float = 0.0
    nearby_hostile_mean: float = 0.0
    hierarchy_pressure: float = 0.0
    surveillance: float = 0.0
    # scenario
    time_pressure: float = 0.0
    wounded_pressure: float = 0.0
    goal_block: float = 0.0
    # personal bias
    paranoia: float = 0.0
    trauma: float = 0.0
    exhaustion: float = 0.0
    dissociation: float = 0.0
    experience: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {_camel(k): float(v) for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, payload: Optional[Dict[str, Any]]) -> "ThreatInputs":
        payload = payload or {}
        kwargs: Dict[str, float] = {}
        for f in fields(cls):
            value = payload.get(_camel(f.name), payload.get(f.name))
            if value is not None:
                kwargs[f.name] = clamp01(value)
        return cls(**kwargs)


@dataclass
class ThreatBreakdown:
    env: float
    social: float
    scenario: float
    personal: float
    total: float
    inputs: ThreatInputs
    used_atom_ids: List[str] = field(default_factory=list)
    why: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "env": self.env,
            "social": self.social,
            "scenario": self.scenario,
            "personal": self.personal,
            "total": self.total,
            "inputs": self.inputs.to_dict(),
            "usedAtomIds": list(self.used_atom_ids),
            "why": list(self.why),
        }


class _Reader:
    """Registry reads that record every atom id they consulted."""

    def __init__(self, registry: AtomRegistry) -> None:
        self.registry = registry
        self.used: List[str] = []

    def _touch(self, key: AtomKey) -> None:
        atom_id = key_id(key)
        if atom_id not in self.used:
            self.used.append(atom_id)

    def get(self, key: AtomKey, default: float) -> float:
        self._touch(key)
        v = self.registry.value(*key)
        return default if v is None else v

    def maybe(self, key: AtomKey) -> Optional[float]:
        self._touch(key)
        return self.registry.value(*key)

    def first(self, keys: List[AtomKey], default: Optional[float]) -> Optional[float]:
        for key in keys:
            self._touch(key)
        return self.registry.first(keys, default)

    def chain(self, keys: List[AtomKey], default: float) -> float:
        value = self.first(keys, None)
        return default if value is None else value


def _derive_from_atoms(
    base: ThreatInputs,
    registry: AtomRegistry,
    w: ThreatWeights,
) -> tuple[ThreatInputs, List[str], List[str]]:
    inputs = replace(base)
    why: List[str] = []
    r = _Reader(registry)
    s = registry.first_subject() or "unknown"

    # environment
    env_danger = max(
        r.get(("world:map", "danger", s, None), 0.0),
        r.get(("world:env", "hazard", s, None), 0.0),
        r.get(("ctx", "danger", s, None), 0.0),
    )
    visibility = r.get(("world:loc", "visibility", s, None), 0.6)
    cover = r.get(("world:map", "cover", s, None), 0.0)
    crowd = max(
        r.get(("world:loc", "crowd", s, None), 0.0),
        r.get(("scene", "crowd", s, None), 0.0),
        r.get(("ctx", "crowd", s, None), 0.0),
    )
    inputs.env_danger = clamp01(env_danger)
    inputs.visibility_bad = clamp01(1.0 - visibility)
    inputs.cover_lack = clamp01(1.0 - cover)
    inputs.crowding = clamp01(crowd)

    # authority / surveillance
    inputs.surveillance = clamp01(
        r.chain(
            [
                ("ctx", "surveillance", s, None),
                ("norm", "surveillance", s, None),
                ("world:loc", "control_level", s, None),
            ],
            inputs.surveillance,
        )
    )
    inputs.hierarchy_pressure = clamp01(
        r.chain(
            [
                ("ctx", "hierarchy", s, None),
                ("ctx", "normPressure", s, None),
                ("world:loc", "normative_pressure", s, None),
                ("world:loc", "control_level", s, None),
            ],
            inputs.hierarchy_pressure,
        )
    )

    # scenario
    inputs.time_pressure = clamp01(
        r.chain([("scene", "urgency", s, None), ("ctx", "timePressure", s, None)], inputs.time_pressure)
    )
    fatigue = r.get(("feat:char", "body.fatigue", s, None), inputs.exhaustion)
    pain = r.get(("feat:char", "body.pain", s, None), 0.0)
    inputs.wounded_pressure = clamp01(max(inputs.wounded_pressure, 0.6 * fatigue + 0.4 * pain))

    # social
    closeness: List[float] = []
    weights: List[float] = []
    trust_w: List[float] = []
    host_w: List[float] = []
    for other in registry.objects("obs", "nearby", s):
        close = clamp01(r.get(("obs", "nearby", s, other), 0.0))
        los = clamp01(r.get(("obs", "los", s, other), 0.0))
        audio = clamp01(r.get(("obs", "audio", s, other), 0.0))
        percept = clamp01(w.perceptibility_los * los + w.perceptibility_audio * audio)
        weight = clamp01(close * (w.closeness_floor + (1.0 - w.closeness_floor) * percept))
        trust = r.chain(
            [
                ("tom:dyad", "trust_ctx", s, other),
                ("tom:dyad", "trust_prior", s, other),
                ("tom:dyad", "trust", s, other),
            ],
            w.default_trust,
        )
        hostile = r.chain(
            [
                ("tom:dyad", "threat_ctx", s, other),
                ("tom:dyad", "threat_prior", s, other),
                ("tom:dyad", "threat", s, other),
                ("rel:base", "hostility", s, other),
            ],
            0.0,
        )
        closeness.append(close)
        weights.append(weight)
        trust_w.append(clamp01(trust) * weight)
        host_w.append(clamp01(hostile) * weight)

    w_sum = sum(weights) or 1.0
    inputs.nearby_count = noisy_or01(closeness)
    inputs.nearby_trust_mean = clamp01(sum(trust_w) / w_sum)
    inputs.nearby_hostile_mean = clamp01(sum(host_w) / w_sum)

    # epistemic noise; adequacy is inverted, see compute_threat_stack
    unc_atom = r.maybe(("ctx", "uncertainty", s, None))
    if unc_atom is not None:
        uncertainty = clamp01(unc_atom)
    else:
        uncertainty = clamp01(1.0 - r.get(("obs", "infoAdequacy", s, None), 0.6))
    rumor = r.get(("belief", "banner", s, None), 0.0)
    trauma_priming = r.get(("trace", "traumaPriming", s, None), 0.0)
    noise = max(uncertainty, 0.6 * rumor)

    # traits
    inputs.paranoia = r.get(("feat:char", "trait.paranoia", s, None), inputs.paranoia)
    inputs.experience = clamp01(r.get(("feat:char", "trait.experience", s, None), inputs.experience))
    inputs.exhaustion = clamp01(fatigue)
    inputs.paranoia = clamp01(inputs.paranoia + 0.3 * noise + 0.5 * trauma_priming)

    if trauma_priming > 0.1:
        why.append(f"traumaPriming={trauma_priming:.2f} (+{0.5 * trauma_priming:.2f} paranoia)")
    why.append(
        "inputs :: "
        f"envDanger={inputs.env_danger:.2f} crowd={inputs.crowding:.2f} "
        f"nearby={inputs.nearby_count:.2f} trustMean={inputs.nearby_trust_mean:.2f} "
        f"hostileMean={inputs.nearby_hostile_mean:.2f} auth={inputs.hierarchy_pressure:.2f} "
        f"unc={uncertainty:.2f}"
    )
    return inputs, r.used, why


def compute_threat_stack(
    inputs: Optional[ThreatInputs] = None,
    atoms: Any = None,
    *,
    weights: ThreatWeights = THREAT_WEIGHTS,
    registry: Optional[AtomRegistry] = None,
) -> ThreatBreakdown:
    """Aggregate threat signals into sub-scores and a sigmoid-squashed total.

    When atoms are supplied every input is re-derived from them, with atom
    values taking precedence over the pre-filled ``inputs``.

    Without a ``ctx:uncertainty`` atom the epistemic noise falls back to
    ``1 - obs:infoAdequacy`` (adequacy defaults to 0.6), so well-informed observers are
    less noisy. Adequacy is never read as uncertainty directly.
    """
    resolved = replace(inputs) if inputs is not None else ThreatInputs()
    used: List[str] = []
    why: List[str] = []
    reg = registry if registry is not None else AtomRegistry(atoms)
    if len(reg):
        resolved, used, why = _derive_from_atoms(resolved, reg, weights)

    x = resolved.to_dict()
    env = clamp01(linear(weights.env, x)[0])

    people = clamp01(resolved.nearby_count)
    distrust = clamp01(1.0 - resolved.nearby_trust_mean)
    hostility = clamp01(resolved.nearby_hostile_mean)
    social = clamp01(
        people * (weights.social_distrust * distrust + weights.social_hostility * hostility)
        + weights.social_hierarchy * resolved.hierarchy_pressure
        + weights.social_surveillance * resolved.surveillance
    )

    scenario = clamp01(linear(weights.scenario, x)[0])

    personal_raw = clamp01(linear(weights.personal, x)[0])
    personal = clamp01(personal_raw * (1.0 - weights.experience_buffer * clamp01(resolved.experience)))

    combined = 1.0 - (
        (1.0 - weights.w_env * env)
        * (1.0 - weights.w_social * social)
        * (1.0 - weights.w_scenario * scenario)
    )
    total = clamp01(sigmoid(weights.gain * (combined - weights.offset + weights.personal_gain * personal)))
    logger.debug(
        "threat env=%.3f social=%.3f scenario=%.3f personal=%.3f total=%.3f",
        env,
        social,
        scenario,
        personal,
        total,
    )
    return ThreatBreakdown(
        env=env,
        social=social,
        scenario=scenario,
        personal=personal,
        total=total,
        inputs=resolved,
        used_atom_ids=used,
        why=why,
    )


def threat_to_scene_metric(total01: float) -> int:
    """Map a threat total onto the 0..150 scene-metric scale."""
    return int(round(150 * clamp01(total01) ** 0.85))


def threat_to_appraisal(total01: float) -> float:
    return clamp01(clamp01(total01) ** 1.05)


__all__ = [
    "ThreatBreakdown",
    "ThreatInputs",
    "compute_threat_stack",
    "threat_to_appraisal",
    "threat_to_scene_metric",
]
