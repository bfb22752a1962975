"""Adapter over the legacy ``world["tom"][observer][target]`` relation store.

The legacy store keeps one entry per ordered pair with a ``traits`` mapping
(trust, align, bond, dominance, respect, conflict, threat, ...) and an
optional ``uncertainty``. The contextual engine reads base views from it and
mirrors its filtered beliefs back into it after every tick.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Tuple

from ..atoms import AtomRegistry
from ..mathutil import as01, clamp01, is_finite_number
from .types import TomBeliefState

logger = logging.getLogger(__name__)

EVIDENCE_RATE = 0.1
EMA_ALPHA = 0.25
FEAR_ALPHA = 0.3
UNCERTAINTY_ALPHA = 0.2

# legacy trait key -> belief dimension
EFFECTIVE_TRAITS = {
    "trust": "trust",
    "align": "alignment",
    "respect": "respect",
    "dominance": "dominance",
    "bond": "attachment",
}


@dataclass
class LegacyTraits:
    trust: Optional[float] = None
    align: Optional[float] = None
    bond: Optional[float] = None
    dominance: Optional[float] = None
    respect: Optional[float] = None
    conflict: Optional[float] = None
    threat: Optional[float] = None
    support: Optional[float] = None
    reliability: Optional[float] = None
    competence: Optional[float] = None
    uncertainty: Optional[float] = None
    fear: Optional[float] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls) if f.name != "extras")

    def get(self, key: str, default: float) -> float:
        value = getattr(self, key, None) if key in self.field_names() else self.extras.get(key)
        return float(value) if is_finite_number(value) else default

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = dict(self.extras)
        for name in self.field_names():
            value = getattr(self, name)
            if value is not None:
                out[name] = float(value)
        return out

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "LegacyTraits":
        payload = payload or {}
        known = cls.field_names()
        kwargs: Dict[str, Any] = {}
        extras: Dict[str, Any] = {}
        for key, value in payload.items():
            if key in known:
                if is_finite_number(value):
                    kwargs[key] = clamp01(value)
            else:
                extras[key] = value
        return cls(extras=extras, **kwargs)


class LegacyTomStore:
    """Read/write view over ``world["tom"]``; the world mapping is updated in place."""

    def __init__(self, world: Any) -> None:
        if isinstance(world, MutableMapping):
            tom = world.get("tom")
            if not isinstance(tom, MutableMapping):
                tom = {}
                world["tom"] = tom
        else:
            tom = {}
        self._tom: MutableMapping[str, Any] = tom

    @property
    def data(self) -> MutableMapping[str, Any]:
        return self._tom

    def targets(self, observer_id: str) -> List[str]:
        row = self._tom.get(observer_id)
        return [str(k) for k in row.keys()] if isinstance(row, Mapping) else []

    def entry(self, observer_id: str, target_id: str) -> Optional[MutableMapping[str, Any]]:
        row = self._tom.get(observer_id)
        if not isinstance(row, MutableMapping):
            return None
        entry = row.get(target_id)
        return entry if isinstance(entry, MutableMapping) else None

    def traits(self, observer_id: str, target_id: str) -> Optional[LegacyTraits]:
        entry = self.entry(observer_id, target_id)
        if entry is None or not isinstance(entry.get("traits"), Mapping):
            return None
        return LegacyTraits.from_dict(entry["traits"])

    def write_traits(self, observer_id: str, target_id: str, traits: LegacyTraits, *, tick: Optional[int] = None) -> None:
        row = self._tom.setdefault(observer_id, {})
        entry = row.setdefault(target_id, {})
        existing = entry.get("traits") if isinstance(entry.get("traits"), Mapping) else {}
        merged = dict(existing)
        merged.update(traits.to_dict())
        entry["traits"] = merged
        if tick is not None:
            entry["lastUpdatedTick"] = tick

    def mirror(self, observer_id: str, target_id: str, state: TomBeliefState, *, tick: Optional[int] = None) -> None:
        """Copy contextual beliefs back into the legacy trait record."""
        traits = self.traits(observer_id, target_id) or LegacyTraits()
        traits.trust = state.trust
        traits.threat = state.threat
        traits.conflict = state.threat
        traits.respect = state.respect
        traits.dominance = state.dominance
        traits.bond = state.attachment
        traits.align = state.alignment
        traits.support = state.support
        self.write_traits(observer_id, target_id, traits, tick=tick)


def base_view_from_legacy(store: LegacyTomStore, observer_id: str, target_id: str) -> Optional[Tuple[TomBeliefState, float]]:
    """Return ``(state, confidence)`` read from legacy traits, or ``None``."""
    traits = store.traits(observer_id, target_id)
    if traits is None:
        return None
    trust = traits.get("trust", 0.5)
    threat = traits.threat if traits.threat is not None else traits.get("conflict", 0.2)
    if traits.support is not None:
        support = traits.support
    elif traits.reliability is not None:
        support = traits.reliability
    else:
        support = trust
    state = TomBeliefState(
        trust=trust,
        threat=threat,
        support=support,
        attachment=traits.get("bond", 0.1),
        respect=traits.get("respect", 0.5),
        dominance=traits.get("dominance", 0.5),
        predictability=1.0 - traits.get("uncertainty", 0.7),
        alignment=traits.get("align", 0.5),
    )
    entry = store.entry(observer_id, target_id) or {}
    confidence = clamp01(1.0 - as01(entry.get("uncertainty"), 0.9))
    return state, confidence


def _signed(value: float) -> float:
    return 1.0 if value > 0 else -1.0


def apply_evidence_to_legacy(store: LegacyTomStore, observer_id: str, evidence: Iterable[Mapping[str, Any]]) -> int:
    """Nudge the observer's legacy traits about each evidence subject.

    Each piece is ``{subjectId, key, val, tick}``. Only existing entries with
    traits are updated; evidence about the observer itself is skipped.
    Returns the number of pieces applied.
    """
    applied = 0
    for piece in evidence or []:
        if not isinstance(piece, Mapping):
            continue
        subject = piece.get("subjectId")
        val = piece.get("val")
        if not subject or subject == observer_id or not is_finite_number(val):
            continue
        traits = store.traits(observer_id, str(subject))
        if traits is None:
            continue
        key = piece.get("key")
        w = EVIDENCE_RATE * abs(float(val))
        if key == "care":
            traits.trust = clamp01(traits.get("trust", 0.5) + w * _signed(val))
            traits.bond = clamp01(traits.get("bond", 0.1) + 0.5 * w)
        elif key == "aggression":
            traits.trust = clamp01(traits.get("trust", 0.5) - 1.5 * w)
            traits.conflict = clamp01(traits.get("conflict", 0.0) + w)
        elif key == "oath_kept":
            traits.reliability = clamp01(traits.get("reliability", 0.5) + w * _signed(val))
            traits.trust = clamp01(traits.get("trust", 0.5) + 0.5 * w)
        elif key == "competence":
            traits.competence = clamp01(traits.get("competence", 0.5) + w * _signed(val))
        else:
            continue
        store.write_traits(observer_id, str(subject), traits, tick=piece.get("tick"))
        applied += 1
    return applied


def integrate_effective_atoms(
    store: LegacyTomStore,
    observer_id: str,
    atoms: Any,
    tick: Optional[int] = None,
    *,
    alpha: float = EMA_ALPHA,
) -> List[str]:
    """EMA existing legacy entries toward ``tom:effective:dyad`` and ``emo:dyad`` atoms.

    Targets without a legacy entry are skipped; returns the updated targets.
    """
    registry = atoms if isinstance(atoms, AtomRegistry) else AtomRegistry(atoms)
    updated: List[str] = []
    for target_id in _effective_targets(registry, observer_id):
        entry = store.entry(observer_id, target_id)
        if entry is None:
            continue
        traits = store.traits(observer_id, target_id) or LegacyTraits()

        def effective(metric: str) -> Optional[float]:
            return registry.value("tom:effective:dyad", metric, observer_id, target_id)

        def emotion(metric: str) -> Optional[float]:
            return registry.value("emo:dyad", metric, observer_id, target_id)

        changed = False
        for trait, metric in EFFECTIVE_TRAITS.items():
            value = effective(metric)
            if value is not None:
                _ema_trait(traits, trait, value, alpha, 0.5)
                changed = True

        threat, hostility = effective("threat"), emotion("hostility")
        if threat is not None or hostility is not None:
            goal = 0.75 * _or_half(threat) + 0.25 * _or_half(hostility)
            _ema_trait(traits, "conflict", goal, alpha, 0.0)
            changed = True

        fear = emotion("fearOf")
        if fear is not None:
            _ema_trait(traits, "fear", fear, FEAR_ALPHA, 0.5)
            changed = True

        uncertainty = effective("uncertainty")
        if uncertainty is not None:
            _ema_trait(traits, "uncertainty", uncertainty, UNCERTAINTY_ALPHA, 0.5)
            entry["uncertainty"] = traits.uncertainty
            changed = True

        if changed:
            store.write_traits(observer_id, target_id, traits, tick=tick)
            updated.append(target_id)
    logger.debug("integrated effective atoms for %s: %s", observer_id, updated)
    return updated


def _or_half(value: Optional[float]) -> float:
    return 0.5 if value is None else clamp01(value)


def _ema_trait(traits: LegacyTraits, trait: str, value: float, alpha: float, default: float) -> None:
    prev = traits.get(trait, default)
    setattr(traits, trait, clamp01(prev + alpha * (clamp01(value) - prev)))


def _effective_targets(registry: AtomRegistry, observer_id: str) -> List[str]:
    out: List[str] = []
    for atom in registry.atoms:
        prefix = f"tom:effective:dyad:{observer_id}:"
        if not atom.id.startswith(prefix):
            continue
        target = atom.id[len(prefix):].split(":", 1)[0]
        if target and target != observer_id and target not in out:
            out.append(target)
    return out


__all__ = [
    "LegacyTomStore",
    "LegacyTraits",
    "apply_evidence_to_legacy",
    "base_view_from_legacy",
    "integrate_effective_atoms",
]
