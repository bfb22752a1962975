#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Run contextual-mind ticks over a YAML/JSON scenario and print per-dyad beliefs."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import sys

import yaml

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ctxmind.config import load_engine_cfg
from ctxmind.mind import BaselineAffectCapability, ContextualMindEngine, InMemoryBeliefStore, JsonlBeliefStore
from ctxmind.threat import compute_threat_stack, threat_to_scene_metric
from telemetry import event as telemetry_event

logger = logging.getLogger("ctxmind.cli")


def _load_scenario(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        payload = json.loads(text)
    else:
        payload = yaml.safe_load(text)
    if not isinstance(payload, dict):
        raise SystemExit(f"scenario {path} must be a mapping")
    return payload


def _observers(scenario: Dict[str, Any], requested: Optional[str]) -> List[str]:
    if requested:
        return [requested]
    frames = scenario.get("frames") or {}
    if frames:
        return [str(k) for k in frames]
    agents = (scenario.get("world") or {}).get("agents") or []
    return [str(a["entityId"]) for a in agents if isinstance(a, dict) and a.get("entityId")]


def _format_table(rows: List[Dict[str, Any]]) -> str:
    header = f"{'tick':>4}  {'observer':<10} {'target':<10} {'trust':>6} {'threat':>6} {'respect':>7} {'attach':>6} {'conf':>5}  delta(trust/threat)"
    lines = [header, "-" * len(header)]
    for row in rows:
        delta = row.get("delta")
        delta_txt = f"{delta['trust']:+.2f}/{delta['threat']:+.2f}" if delta else "-"
        lines.append(
            f"{row['tick']:>4}  {row['observer']:<10} {row['target']:<10} "
            f"{row['trust']:>6.2f} {row['threat']:>6.2f} {row['respect']:>7.2f} "
            f"{row['attachment']:>6.2f} {row['confidence']:>5.2f}  {delta_txt}"
        )
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument("--scenario", type=Path, required=True, help="YAML/JSON scenario file.")
    ap.add_argument("--observer", type=str, default=None, help="Only tick this observer.")
    ap.add_argument("--ticks", type=int, default=1)
    ap.add_argument("--config", type=Path, default=ROOT / "config" / "ctxmind.yaml")
    ap.add_argument("--state", type=Path, default=None, help="JSONL belief store (in-memory when omitted).")
    ap.add_argument("--events", type=Path, default=None, help="Append tick telemetry to this JSONL file.")
    ap.add_argument("--json", action="store_true", help="Print full reports as JSON.")
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    scenario = _load_scenario(args.scenario)
    cfg = load_engine_cfg(args.config)
    store = JsonlBeliefStore(args.state) if args.state else InMemoryBeliefStore()

    hook = None
    if args.events:
        events_path = args.events

        def hook(name: str, payload: Dict[str, Any]) -> None:
            telemetry_event.event(name, payload, log_path=events_path)

    engine = ContextualMindEngine(store=store, affect=BaselineAffectCapability(), cfg=cfg, telemetry_hook=hook)

    world: Dict[str, Any] = dict(scenario.get("world") or {})
    world.setdefault("tick", 0)
    frames: Dict[str, Any] = scenario.get("frames") or {}
    atoms = scenario.get("atoms") or []
    tuning = scenario.get("tuning")
    goals = scenario.get("goals")
    observers = _observers(scenario, args.observer)
    if not observers:
        logger.warning("scenario %s names no observers", args.scenario)
        return 1

    threat = compute_threat_stack(atoms=atoms)
    logger.info(
        "threat stack total=%.3f (scene metric %d) env=%.2f social=%.2f scenario=%.2f personal=%.2f",
        threat.total,
        threat_to_scene_metric(threat.total),
        threat.env,
        threat.social,
        threat.scenario,
        threat.personal,
    )

    rows: List[Dict[str, Any]] = []
    reports: List[Dict[str, Any]] = []
    for _ in range(max(1, args.ticks)):
        for observer in observers:
            result = engine.tick(
                world,
                observer,
                frames.get(observer),
                atoms=atoms,
                tuning=tuning,
                goal_preview=goals,
            )
            report = result.report
            reports.append(report.to_dict())
            for dyad in report.dyads:
                rows.append(
                    {
                        "tick": report.tick,
                        "observer": observer,
                        "target": dyad.target_id,
                        "trust": dyad.state.trust,
                        "threat": dyad.state.threat,
                        "respect": dyad.state.respect,
                        "attachment": dyad.state.attachment,
                        "confidence": dyad.confidence,
                        "delta": dyad.delta,
                    }
                )
            logger.info("tick=%d observer=%s targets=%s", report.tick, observer, ",".join(report.targets_used))
        world["tick"] = int(world["tick"]) + 1

    if args.json:
        print(json.dumps({"threat": threat.to_dict(), "reports": reports}, ensure_ascii=False, indent=2))
    else:
        print(_format_table(rows))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
