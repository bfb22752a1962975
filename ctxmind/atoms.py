"""Context atoms and the per-tick lookup registry.

Atoms are the interchange unit between subsystems: a small record with an id,
a magnitude in [0, 1], an optional confidence and provenance. Readers never
scan atom lists with string heuristics; instead an :class:`AtomRegistry` is
built once per tick and answers two kinds of query:

* exact id lookups (case-insensitive, ``kind:id`` or bare ``id``), used by the
  context-axis derivation;
* structured lookups keyed by ``(namespace, metric, subject, object)``, used by
  the threat stack and the ToM readers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .mathutil import clamp01, is_finite_number

# Layout of the segments following each namespace prefix.  Namespaces not
# listed here use ``ns:metric[:subject[:object]]``.
_LAYOUTS: Dict[str, Tuple[str, ...]] = {
    "tom:effective:dyad": ("subject", "object", "metric"),
    "tom:dyad": ("subject", "object", "metric"),
    "rel:base": ("subject", "object", "metric"),
    "emo:dyad": ("metric", "subject", "object"),
    "feat:char": ("subject", "metric"),
    "world:map": ("metric", "subject"),
    "world:env": ("metric", "subject"),
    "world:loc": ("metric", "subject"),
}
_DEFAULT_LAYOUT = ("metric", "subject", "object")

# Longest prefix first so "tom:effective:dyad" wins over "tom".
_PREFIXES = sorted(_LAYOUTS, key=lambda p: -p.count(":"))

AtomKey = Tuple[str, str, Optional[str], Optional[str]]


def _norm(value: Any) -> str:
    return str(value if value is not None else "").lower()


@dataclass
class ContextAtom:
    """A typed fact record read from upstream context builders."""

    id: str
    magnitude: Optional[float] = None
    confidence: Optional[float] = None
    kind: Optional[str] = None
    subject: Optional[str] = None
    target: Optional[str] = None
    source: Optional[str] = None
    label: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "ContextAtom":
        mag = payload.get("magnitude", payload.get("mag", payload.get("m")))
        conf = payload.get("confidence", payload.get("c"))
        return cls(
            id=str(payload.get("id", "")),
            magnitude=float(mag) if is_finite_number(mag) else None,
            confidence=float(conf) if is_finite_number(conf) else None,
            kind=payload.get("kind"),
            subject=payload.get("subject"),
            target=payload.get("target", payload.get("targetId", payload.get("relatedAgentId"))),
            source=payload.get("source"),
            label=payload.get("label"),
            meta=dict(payload.get("meta") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id}
        for key in ("magnitude", "confidence", "kind", "subject", "target", "source", "label"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        if self.meta:
            out["meta"] = dict(self.meta)
        return out


def coerce_atoms(atoms: Any) -> List[ContextAtom]:
    """Normalise an arbitrary atom payload; anything that is not a list is empty."""
    if not isinstance(atoms, (list, tuple)):
        return []
    out: List[ContextAtom] = []
    for item in atoms:
        if isinstance(item, ContextAtom):
            out.append(item)
        elif isinstance(item, Mapping) and item.get("id") is not None:
            out.append(ContextAtom.from_mapping(item))
        elif callable(getattr(item, "to_dict", None)):
            out.append(ContextAtom.from_mapping(item.to_dict()))
    return out


def parse_atom_id(atom_id: str) -> Optional[AtomKey]:
    """Split an atom id into ``(namespace, metric, subject, object)``."""
    if not atom_id or ":" not in atom_id:
        return None
    for prefix in _PREFIXES:
        if atom_id.startswith(prefix + ":"):
            namespace = prefix
            rest = atom_id[len(prefix) + 1 :]
            layout = _LAYOUTS[prefix]
            break
    else:
        namespace, rest = atom_id.split(":", 1)
        layout = _DEFAULT_LAYOUT
    segments = rest.split(":")
    # The last slot absorbs any extra segments (e.g. dotted feature paths).
    if len(segments) > len(layout):
        segments = segments[: len(layout) - 1] + [":".join(segments[len(layout) - 1 :])]
    slots = dict(zip(layout, segments))
    metric = slots.get("metric")
    if not metric:
        return None
    return (namespace, metric, slots.get("subject"), slots.get("object"))


@dataclass(frozen=True)
class AtomRead:
    """Result of an exact lookup, kept for provenance traces."""

    value: float
    confidence: Optional[float]
    source: str

    @property
    def found(self) -> bool:
        return self.source != "none"

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "confidence": self.confidence, "from": self.source}


MISSING = AtomRead(0.0, None, "none")


class AtomRegistry:
    """Index over a tick's atoms. Build once, query many times."""

    def __init__(self, atoms: Any = None) -> None:
        self.atoms: List[ContextAtom] = coerce_atoms(atoms)
        self._by_id: Dict[str, ContextAtom] = {}
        self._by_kind_id: Dict[str, ContextAtom] = {}
        self._by_key: Dict[AtomKey, ContextAtom] = {}
        self._objects: Dict[Tuple[str, str, Optional[str]], List[str]] = {}
        for atom in self.atoms:
            idn = _norm(atom.id)
            if idn:
                self._by_id[idn] = atom
            self._by_kind_id[f"{_norm(atom.kind)}:{idn}"] = atom
            key = parse_atom_id(atom.id)
            if key is None:
                continue
            self._by_key[key] = atom
            ns, metric, subject, obj = key
            if obj is not None:
                objs = self._objects.setdefault((ns, metric, subject), [])
                if obj not in objs:
                    objs.append(obj)

    def __len__(self) -> int:
        return len(self.atoms)

    # ------------------------------------------------------------------
    # exact id lookups
    # ------------------------------------------------------------------

    def pick(self, atom_id: str, *, kind: Optional[str] = None, target_id: Optional[str] = None) -> AtomRead:
        idn = _norm(atom_id)
        atom = self._by_id.get(idn)
        if atom is None and kind:
            atom = self._by_kind_id.get(f"{_norm(kind)}:{idn}")
        if atom is None:
            return MISSING
        if target_id and atom.target and atom.target != target_id:
            return MISSING
        value = clamp01(atom.magnitude) if atom.magnitude is not None else 0.0
        conf = clamp01(atom.confidence) if atom.confidence is not None else None
        return AtomRead(value, conf, atom.kind or atom.id or atom_id)

    def pick_for(self, atom_id: str, self_id: Optional[str], *, kind: Optional[str] = None) -> AtomRead:
        """Prefer the observer-scoped ``id:self`` atom over the global ``id``."""
        if self_id:
            scoped = self.pick(f"{atom_id}:{self_id}", kind=kind)
            if scoped.found:
                return scoped
        return self.pick(atom_id, kind=kind)

    def magnitude(self, atom_id: str) -> Optional[float]:
        """Raw finite magnitude for an exact (case-insensitive) id, else ``None``."""
        atom = self._by_id.get(_norm(atom_id))
        if atom is None or atom.magnitude is None:
            return None
        return float(atom.magnitude)

    # ------------------------------------------------------------------
    # structured lookups
    # ------------------------------------------------------------------

    def get(
        self,
        namespace: str,
        metric: str,
        subject: Optional[str] = None,
        obj: Optional[str] = None,
    ) -> Optional[ContextAtom]:
        return self._by_key.get((namespace, metric, subject, obj))

    def value(
        self,
        namespace: str,
        metric: str,
        subject: Optional[str] = None,
        obj: Optional[str] = None,
        default: Optional[float] = None,
    ) -> Optional[float]:
        atom = self.get(namespace, metric, subject, obj)
        if atom is None or atom.magnitude is None:
            return default
        return float(atom.magnitude)

    def first(self, keys: Sequence[AtomKey], default: Optional[float] = None) -> Optional[float]:
        for key in keys:
            v = self.value(*key)
            if v is not None:
                return v
        return default

    def objects(self, namespace: str, metric: str, subject: Optional[str]) -> List[str]:
        """Object ids of every ``namespace:metric:subject:<object>`` atom, in input order."""
        return list(self._objects.get((namespace, metric, subject), []))

    def first_subject(self) -> Optional[str]:
        for atom in self.atoms:
            if atom.subject:
                return str(atom.subject)
        return None


def key_id(key: AtomKey) -> str:
    """Inverse of :func:`parse_atom_id` for provenance lists."""
    namespace, metric, subject, obj = key
    layout = _LAYOUTS.get(namespace, _DEFAULT_LAYOUT)
    slots = {"metric": metric, "subject": subject, "object": obj}
    parts = [namespace] + [slots[name] for name in layout if slots.get(name) is not None]
    return ":".join(str(p) for p in parts)


__all__ = [
    "AtomKey",
    "AtomRead",
    "AtomRegistry",
    "ContextAtom",
    "MISSING",
    "coerce_atoms",
    "key_id",
    "parse_atom_id",
]
