"""Theory-of-mind records: belief state, confidence, norms, dyadic affect, reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from ..mathutil import clamp01, is_finite_number

DIMENSIONS: Tuple[str, ...] = (
    "trust",
    "threat",
    "support",
    "attachment",
    "respect",
    "dominance",
    "predictability",
    "alignment",
)

ACTIONS: Tuple[str, ...] = ("support", "threaten", "command", "withdraw", "comfort")


class _Clamped:
    """Mixin: every attribute write is clipped to [0, 1]."""

    def __setattr__(self, name: str, value: Any) -> None:
        if value is not None:
            value = clamp01(value)
        object.__setattr__(self, name, value)


@dataclass
class TomBeliefState(_Clamped):
    trust: float = 0.0
    threat: float = 0.0
    support: float = 0.0
    attachment: float = 0.0
    respect: float = 0.0
    dominance: float = 0.0
    predictability: float = 0.0
    alignment: float = 0.0

    def __getitem__(self, key: str) -> float:
        if key not in DIMENSIONS:
            raise KeyError(key)
        return getattr(self, key)

    def items(self) -> Iterator[Tuple[str, float]]:
        for key in DIMENSIONS:
            yield key, getattr(self, key)

    def to_dict(self) -> Dict[str, float]:
        return {k: float(v) for k, v in self.items()}

    @classmethod
    def from_dict(
        cls,
        payload: Optional[Mapping[str, Any]],
        defaults: Optional[Mapping[str, float]] = None,
    ) -> "TomBeliefState":
        payload = payload or {}
        defaults = defaults or {}
        kwargs = {}
        for key in DIMENSIONS:
            value = payload.get(key)
            kwargs[key] = value if is_finite_number(value) else defaults.get(key, 0.0)
        return cls(**kwargs)


@dataclass
class TomConfidence(_Clamped):
    trust: float = 0.0
    threat: float = 0.0
    support: float = 0.0
    attachment: float = 0.0
    respect: float = 0.0
    dominance: float = 0.0
    predictability: float = 0.0
    alignment: float = 0.0
    overall: float = 0.0
    data_adequacy: Optional[float] = None

    @classmethod
    def uniform(cls, overall: float, data_adequacy: Optional[float] = None) -> "TomConfidence":
        return cls(**{k: overall for k in DIMENSIONS}, overall=overall, data_adequacy=data_adequacy)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {k: float(getattr(self, k)) for k in DIMENSIONS}
        out["overall"] = float(self.overall)
        if self.data_adequacy is not None:
            out["dataAdequacy"] = float(self.data_adequacy)
        return out

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "TomConfidence":
        payload = payload or {}
        kwargs: Dict[str, Any] = {}
        for key in DIMENSIONS + ("overall",):
            value = payload.get(key)
            if is_finite_number(value):
                kwargs[key] = value
        adequacy = payload.get("dataAdequacy")
        if is_finite_number(adequacy):
            kwargs["data_adequacy"] = adequacy
        return cls(**kwargs)


@dataclass
class TomNormativeContext(_Clamped):
    public_exposure: float = 0.0
    norm_pressure: float = 0.0
    surveillance: float = 0.0
    privacy: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "publicExposure": float(self.public_exposure),
            "normPressure": float(self.norm_pressure),
            "surveillance": float(self.surveillance),
            "privacy": float(self.privacy),
        }

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "TomNormativeContext":
        payload = payload or {}

        def _get(*keys: str) -> float:
            for key in keys:
                value = payload.get(key)
                if is_finite_number(value):
                    return float(value)
            return 0.0

        return cls(
            public_exposure=_get("publicExposure", "public_exposure"),
            norm_pressure=_get("normPressure", "norm_pressure"),
            surveillance=_get("surveillance"),
            privacy=_get("privacy"),
        )


@dataclass
class TomDyadicAffect(_Clamped):
    felt_safety: float = 0.0
    felt_fear: float = 0.0
    felt_shame: float = 0.0
    felt_anger: float = 0.0
    felt_tenderness: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "feltSafety": float(self.felt_safety),
            "feltFear": float(self.felt_fear),
            "feltShame": float(self.felt_shame),
            "feltAnger": float(self.felt_anger),
            "feltTenderness": float(self.felt_tenderness),
        }


@dataclass
class TomContributor:
    kind: str  # "prior" | "context" | "affect" | "evidence"
    key: str
    weight: float

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "key": self.key, "weight": float(self.weight)}


@dataclass
class TomDecomposition:
    """prior + context_bias + affect_bias + evidence_update -> final."""

    prior: float
    context_bias: float
    affect_bias: float
    evidence_update: float
    final: float
    contributors: List[TomContributor] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prior": float(self.prior),
            "contextBias": float(self.context_bias),
            "affectBias": float(self.affect_bias),
            "evidenceUpdate": float(self.evidence_update),
            "final": float(self.final),
            "contributors": [c.to_dict() for c in self.contributors],
        }


@dataclass
class TomAtom:
    """Interpretation atom emitted from ToM outputs for downstream consumers."""

    id: str
    kind: str
    source: str
    magnitude: float
    confidence: float
    related_agent_id: Optional[str] = None
    timestamp: Optional[float] = None
    label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "source": self.source,
            "magnitude": float(self.magnitude),
            "confidence": float(self.confidence),
            "relatedAgentId": self.related_agent_id,
            "timestamp": self.timestamp,
            "label": self.label,
        }


@dataclass
class ActionGuess:
    action: str
    p: float

    def to_dict(self) -> Dict[str, Any]:
        return {"action": self.action, "p": float(self.p)}


@dataclass
class TomDyadReport:
    self_id: str
    other_id: str
    timestamp: float
    domains: Dict[str, float]
    norms: TomNormativeContext
    state: TomBeliefState
    confidence: TomConfidence
    decomposition: Dict[str, TomDecomposition]
    prediction: List[ActionGuess]
    dyadic_affect: TomDyadicAffect
    atoms: List[TomAtom] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selfId": self.self_id,
            "otherId": self.other_id,
            "timestamp": self.timestamp,
            "domains": dict(self.domains),
            "norms": self.norms.to_dict(),
            "state": self.state.to_dict(),
            "confidence": self.confidence.to_dict(),
            "decomposition": {k: v.to_dict() for k, v in self.decomposition.items()},
            "prediction": {"top": [a.to_dict() for a in self.prediction]},
            "dyadicAffect": self.dyadic_affect.to_dict(),
            "atoms": [a.to_dict() for a in self.atoms],
        }


__all__ = [
    "ACTIONS",
    "DIMENSIONS",
    "ActionGuess",
    "TomAtom",
    "TomBeliefState",
    "TomConfidence",
    "TomContributor",
    "TomDecomposition",
    "TomDyadReport",
    "TomDyadicAffect",
    "TomNormativeContext",
]
