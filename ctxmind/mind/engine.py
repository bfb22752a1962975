"""Contextual mind engine: one observer, one tick, every dyad in view."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from telemetry import event as telemetry_event

from ..atoms import AtomRegistry
from ..config import EngineCfg
from ..context.axes import axes_for_dyad, derive_context_axes
from ..context.types import ContextAxesVector
from ..mathutil import as01, as_mapping, avg01, clamp01, dig, is_finite_number
from ..tom.emit import emit_effective_dyad_atoms
from ..tom.legacy import LegacyTomStore, base_view_from_legacy
from ..tom.memory import OBSERVATION_DEFAULTS, process_dyad
from ..tom.types import TomAtom, TomBeliefState
from .affect import AffectCapability, BaselineAffectCapability
from .state import ContextualMindState, HistoryPoint, affect01, push_history
from .store import BeliefStore, InMemoryBeliefStore

logger = logging.getLogger(__name__)

TelemetryHook = Callable[[str, Dict[str, Any]], Any]

SUMMARY_AXES = ("danger", "intimacy", "hierarchy", "publicness", "normPressure")
GOAL_BLOCK_PRIORITY = 0.85
GOAL_BLOCK_FLOOR = 0.2


@dataclass
class BaseView:
    state: TomBeliefState
    confidence: float
    source: str  # "frame" | "legacy"
    confidence_by_axis: Optional[Dict[str, Any]] = None
    domains: Optional[Dict[str, Any]] = None
    norms: Optional[Dict[str, Any]] = None
    decomposition: Optional[Dict[str, Any]] = None
    data_adequacy: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "state": self.state.to_dict(),
            "confidenceOverall": self.confidence,
            "source": self.source,
        }
        for key, value in (
            ("confidenceByAxis", self.confidence_by_axis),
            ("domains", self.domains),
            ("norms", self.norms),
            ("decomposition", self.decomposition),
            ("dataAdequacy", self.data_adequacy),
        ):
            if value is not None:
                out[key] = value
        return out


@dataclass
class ContextualDyadReport:
    target_id: str
    state: TomBeliefState
    confidence: float
    ctx_axes_full: ContextAxesVector
    dyad_affect: Dict[str, float]
    base: Optional[BaseView] = None
    delta: Optional[Dict[str, float]] = None
    target_name: Optional[str] = None
    role_label: str = "none"

    @property
    def ctx_axes(self) -> Dict[str, float]:
        return {axis: self.ctx_axes_full[axis] for axis in SUMMARY_AXES}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "targetId": self.target_id,
            "targetName": self.target_name,
            "base": self.base.to_dict() if self.base else None,
            "contextual": {
                "state": self.state.to_dict(),
                "confidence": self.confidence,
                "deltaFromBase": dict(self.delta) if self.delta is not None else None,
                "ctxAxes": self.ctx_axes,
                "ctxAxesFull": self.ctx_axes_full.to_dict(),
            },
            "dyadAffect": dict(self.dyad_affect),
            "role": {"label": self.role_label},
        }


@dataclass
class ContextualMindReport:
    tick: int
    observer_id: str
    targets_used: List[str]
    affect: Dict[str, Any]
    appraisal: Dict[str, float]
    appraisal_why: List[str]
    appraisal_trace: Dict[str, Any]
    signals: Dict[str, Any]
    dyads: List[ContextualDyadReport]
    domain_mix: Dict[str, float]
    targets_debug: Dict[str, Any]
    history: List[HistoryPoint]
    atoms: List[TomAtom] = field(default_factory=list)
    top_goals: Optional[List[Dict[str, Any]]] = None
    scope: str = "scene"

    @property
    def primary_target_id(self) -> Optional[str]:
        return self.targets_used[0] if self.targets_used else None

    def dyad(self, target_id: str) -> Optional[ContextualDyadReport]:
        for row in self.dyads:
            if row.target_id == target_id:
                return row
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tick": self.tick,
            "observerId": self.observer_id,
            "scope": self.scope,
            "primaryTargetId": self.primary_target_id,
            "targetsUsed": list(self.targets_used),
            "affect": dict(self.affect),
            "appraisal": dict(self.appraisal),
            "appraisalWhy": list(self.appraisal_why),
            "appraisalTrace": dict(self.appraisal_trace),
            "signals": self.signals,
            "dyads": [d.to_dict() for d in self.dyads],
            "topGoals": self.top_goals,
            "domainMix": dict(self.domain_mix),
            "targetsDebug": self.targets_debug,
            "history": [p.to_dict() for p in self.history],
            "atoms": [a.to_dict() for a in self.atoms],
        }


@dataclass
class ContextualMindResult:
    next_state: ContextualMindState
    report: ContextualMindReport


def _as_payload(value: Any) -> Any:
    if callable(getattr(value, "to_dict", None)):
        return value.to_dict()
    return value


def _frame_state_defaults(state: Mapping[str, Any]) -> Dict[str, float]:
    trust = state.get("trust")
    return {**OBSERVATION_DEFAULTS, "support": float(trust) if is_finite_number(trust) else 0.5}


def base_view_from_frame(frame: Any, target_id: str) -> Optional[BaseView]:
    report = _as_payload(dig(frame, "tom", "reports", target_id))
    if not isinstance(report, Mapping) or not isinstance(report.get("state"), Mapping):
        return None
    confidence = as_mapping(report.get("confidence"))
    overall = as01(confidence.get("overall"), avg01(confidence.values(), 0.3))
    adequacy = report.get("dataAdequacy", confidence.get("dataAdequacy"))
    return BaseView(
        state=TomBeliefState.from_dict(report["state"], defaults=_frame_state_defaults(report["state"])),
        confidence=overall,
        source="frame",
        confidence_by_axis=dict(confidence) or None,
        domains=dict(as_mapping(report.get("domains"))) or None,
        norms=dict(as_mapping(report.get("norms"))) or None,
        decomposition=report.get("decomposition"),
        data_adequacy=float(adequacy) if is_finite_number(adequacy) else None,
    )


def candidate_targets(frame: Any, legacy: LegacyTomStore, observer_id: str) -> Dict[str, List[str]]:
    """Targets per source; the ``all`` entry is the ordered, de-duplicated union."""
    relations = dig(frame, "tom", "relations")
    nearby = dig(frame, "what", "nearbyAgents")
    sources = {
        "relations": [str(r.get("targetId")) for r in relations or [] if isinstance(r, Mapping) and r.get("targetId")],
        "nearby": [str(n.get("id")) for n in nearby or [] if isinstance(n, Mapping) and n.get("id")],
        "worldTom": legacy.targets(observer_id),
    }
    union: List[str] = []
    for ids in sources.values():
        for tid in ids:
            if tid != observer_id and tid not in union:
                union.append(tid)
    sources["all"] = union
    return sources


def _top_goal_priority(goal_preview: Any) -> float:
    priorities = [float(g.get("priority")) for g in goal_preview or [] if isinstance(g, Mapping) and is_finite_number(g.get("priority"))]
    return max(priorities) if priorities else 0.0


def _target_name(world: Any, target_id: str) -> Optional[str]:
    for agent in dig(world, "agents") or []:
        if isinstance(agent, Mapping) and agent.get("entityId") == target_id:
            return agent.get("title")
    return None


def _role_label(frame: Any, target_id: str) -> str:
    for row in dig(frame, "what", "nearbyAgents") or []:
        if isinstance(row, Mapping) and row.get("id") == target_id and row.get("role"):
            return str(row["role"])
    return "none"


def dyad_affect(self_affect: Any, state: TomBeliefState, axes: ContextAxesVector, appraisal: Mapping[str, Any]) -> Dict[str, float]:
    """Self affect coloured by the belief about one target."""
    self_control = affect01(self_affect, "control", 0.5)
    d_threat = state.threat - 0.5
    d_trust = state.trust - 0.5
    exhaustion = as01(dig(self_affect, "fatigue"), 0.0)
    return {
        "fear": clamp01(affect01(self_affect, "fear") + 0.95 * d_threat - 0.35 * d_trust - 0.15 * self_control),
        "anger": clamp01(affect01(self_affect, "anger") + 0.85 * d_threat + 0.10 * (1.0 - self_control)),
        "shame": clamp01(
            affect01(self_affect, "shame")
            + 0.70 * axes.publicness * max(0.0, state.dominance - 0.5)
            + 0.40 * as01(appraisal.get("normViolation"), 0.0)
        ),
        "hope": clamp01(as01(dig(self_affect, "hope"), 0.0) + 0.55 * (state.support - state.threat) + 0.25 * d_trust),
        "exhaustion": exhaustion,
        "fatigue": exhaustion,
    }


class ContextualMindEngine:
    """Runs the per-tick belief update for one observer at a time."""

    def __init__(
        self,
        store: Optional[BeliefStore] = None,
        affect: Optional[AffectCapability] = None,
        cfg: Optional[EngineCfg] = None,
        telemetry_hook: Optional[TelemetryHook] = None,
    ) -> None:
        self.store: BeliefStore = store if store is not None else InMemoryBeliefStore()
        self.affect: AffectCapability = affect if affect is not None else BaselineAffectCapability()
        self.cfg = cfg or EngineCfg()
        self.telemetry_hook = telemetry_hook

    def tick(
        self,
        world: Any,
        agent_id: str,
        frame: Any = None,
        *,
        atoms: Any = None,
        domain_mix: Optional[Mapping[str, Any]] = None,
        tuning: Any = None,
        goal_preview: Optional[List[Mapping[str, Any]]] = None,
    ) -> ContextualMindResult:
        world = world if isinstance(world, Mapping) else {}
        frame = frame if isinstance(frame, Mapping) else {}
        raw_tick = world.get("tick")
        tick = int(raw_tick) if is_finite_number(raw_tick) else 0

        prev = self.store.get(agent_id) or self.store.create(agent_id, tick)

        appraised = self.affect.appraise(agent_id, world, frame)
        appraisal = dict(appraised.appraisal)
        top_priority = _top_goal_priority(goal_preview)
        if top_priority > GOAL_BLOCK_PRIORITY:
            appraisal["goalBlock"] = max(as01(appraisal.get("goalBlock"), 0.0), GOAL_BLOCK_FLOOR)
        affect = self.affect.update_affect(prev.affect or None, appraisal, appraised.why, tick).affect

        registry = AtomRegistry(atoms)
        effective_tuning = dig(frame, "what", "contextTuning") or tuning or dig(world, "scene", "contextTuning")
        axes = derive_context_axes(
            frame=frame,
            world=world,
            self_id=agent_id,
            domain_mix=domain_mix,
            tuning=effective_tuning,
            registry=registry,
        )

        legacy = LegacyTomStore(world)
        sources = candidate_targets(frame, legacy, agent_id)
        targets = sources["all"]

        next_dyads = dict(prev.dyads)
        dyad_reports: List[ContextualDyadReport] = []
        emitted: List[TomAtom] = []
        for target_id in targets:
            base = base_view_from_frame(frame, target_id)
            if base is None:
                legacy_view = base_view_from_legacy(legacy, agent_id, target_id)
                if legacy_view is not None:
                    base = BaseView(state=legacy_view[0], confidence=legacy_view[1], source="legacy")
            base_conf = base.confidence if base is not None else self.cfg.beta.no_base_confidence

            dyad_axes = axes_for_dyad(
                global_axes=axes.tuned,
                target_id=target_id,
                dyad_domains=base.domains if base else None,
                dyad_norms=base.norms if base else None,
                tuning=effective_tuning,
            )
            step = process_dyad(
                target_id,
                prev.dyads.get(target_id),
                base.state if base else None,
                base_conf,
                dyad_axes,
                tick,
                cfg=self.cfg.beta,
            )
            next_dyads[target_id] = step.memory
            dyad_reports.append(
                ContextualDyadReport(
                    target_id=target_id,
                    state=step.current,
                    confidence=step.confidence,
                    ctx_axes_full=dyad_axes,
                    dyad_affect=dyad_affect(affect, step.current, dyad_axes, appraisal),
                    base=base,
                    delta=step.delta,
                    target_name=_target_name(world, target_id),
                    role_label=_role_label(frame, target_id),
                )
            )
            emitted.extend(emit_effective_dyad_atoms(agent_id, target_id, step.current, step.confidence, tick))

        point = HistoryPoint.snapshot(tick, affect, {d.target_id: d.state for d in dyad_reports})
        next_state = ContextualMindState(
            self_id=agent_id,
            affect=affect,
            dyads=next_dyads,
            history=push_history(prev.history, point, self.cfg.history.limit),
        )
        self.store.persist(next_state)
        for row in dyad_reports:
            legacy.mirror(agent_id, row.target_id, row.state, tick=tick)

        tags = dig(frame, "where", "locationTags")
        tags = tags if isinstance(tags, (list, tuple)) else []
        tuned = axes.tuned
        report = ContextualMindReport(
            tick=tick,
            observer_id=agent_id,
            targets_used=list(targets),
            affect=affect,
            appraisal=appraisal,
            appraisal_why=list(appraised.why),
            appraisal_trace=dict(appraised.trace),
            signals={
                "safeHub": "safe_hub" in tags,
                "privateSpace": "private" in tags or "safe_hub" in tags,
                "topGoalPriority": top_priority,
                "goalDomainMix": dict(domain_mix) if domain_mix else None,
                "targetSource": {
                    "fromRelations": bool(sources["relations"]),
                    "fromNearby": bool(sources["nearby"]),
                    "fromWorldTomKeys": bool(sources["worldTom"]),
                },
                "axes": {
                    "raw": axes.raw.to_dict(),
                    "tuned": tuned.to_dict(),
                    "tuningApplied": axes.tuning_applied.to_dict() if axes.tuning_applied else None,
                },
                "signalAtomsUsed": {k: v.to_dict() for k, v in axes.atoms_used.items()},
            },
            dyads=dyad_reports,
            domain_mix={
                **{k: float(v) for k, v in as_mapping(domain_mix).items() if is_finite_number(v)},
                "danger": tuned.danger,
                "intimacy": tuned.intimacy,
                "hierarchy": tuned.hierarchy,
                "publicness": tuned.publicness,
                "normPressure": tuned.norm_pressure,
                "surveillance": tuned.surveillance,
                "privacy": tuned.intimacy,
            },
            targets_debug={
                "candidates": list(targets),
                "used": list(targets),
                "sources": {
                    "relationsCount": len(sources["relations"]),
                    "nearbyCount": len(sources["nearby"]),
                    "worldTomKeyCount": len(sources["worldTom"]),
                },
            },
            history=next_state.history,
            atoms=emitted,
            top_goals=[dict(g) for g in goal_preview] if goal_preview else None,
        )
        logger.debug("contextual mind %s tick=%s targets=%s", agent_id, tick, targets)
        self._emit_telemetry(report)
        return ContextualMindResult(next_state=next_state, report=report)

    def _emit_telemetry(self, report: ContextualMindReport) -> None:
        payload = {
            "observer": report.observer_id,
            "tick": report.tick,
            "targets": list(report.targets_used),
            "dyads": {
                d.target_id: {"trust": d.state.trust, "threat": d.state.threat, "confidence": d.confidence}
                for d in report.dyads
            },
        }
        if self.telemetry_hook is not None:
            self.telemetry_hook("contextual_mind.tick", payload)
        elif self.cfg.telemetry.enabled:
            telemetry_event.event("contextual_mind.tick", payload, log_path=self.cfg.telemetry.log_path)


def compute_contextual_mind(
    world: Any,
    agent_id: str,
    frame: Any = None,
    *,
    store: Optional[BeliefStore] = None,
    affect: Optional[AffectCapability] = None,
    cfg: Optional[EngineCfg] = None,
    **kwargs: Any,
) -> ContextualMindResult:
    """One-shot tick with a throwaway engine; pass ``store`` to keep state across calls."""
    engine = ContextualMindEngine(store=store, affect=affect, cfg=cfg)
    return engine.tick(world, agent_id, frame, **kwargs)


__all__ = [
    "BaseView",
    "ContextualDyadReport",
    "ContextualMindEngine",
    "ContextualMindReport",
    "ContextualMindResult",
    "base_view_from_frame",
    "candidate_targets",
    "compute_contextual_mind",
    "dyad_affect",
]
