from __future__ import annotations

import json

from ctxmind.config import load_engine_cfg
from ctxmind.mind import ContextualMindEngine, InMemoryBeliefStore, JsonlBeliefStore
from ctxmind.mind.affect import AffectUpdate, AppraisalResult
from ctxmind.mind.state import HISTORY_LIMIT, HistoryPoint, push_history


class QuietAffect:
    def appraise(self, agent_id, world, frame):
        return AppraisalResult(appraisal={"threat": 0.1})

    def update_affect(self, prev, appraisal, why, tick):
        return AffectUpdate(affect={"e": {"fear": 0.1}, "updatedAtTick": tick})


FRAME = {"what": {"nearbyAgents": [{"id": "tobin"}, {"id": "dana"}]}}


def test_in_memory_store_create_and_persist() -> None:
    store = InMemoryBeliefStore()
    assert store.get("mira") is None
    created = store.create("mira", 0)
    assert store.get("mira") is created
    assert created.dyads == {}


def test_jsonl_store_round_trip(tmp_path) -> None:
    path = tmp_path / "beliefs.jsonl"
    engine = ContextualMindEngine(store=JsonlBeliefStore(path), affect=QuietAffect())
    world = {"tick": 0}
    for tick in range(3):
        world["tick"] = tick
        engine.tick(world, "mira", FRAME)
        engine.tick(world, "tobin", {"what": {"nearbyAgents": [{"id": "mira"}]}})

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 6

    reloaded = JsonlBeliefStore(path)
    mira = reloaded.get("mira")
    assert mira is not None
    assert mira.to_dict() == engine.store.get("mira").to_dict()
    assert [p.tick for p in mira.history] == [0, 1, 2]
    assert set(mira.dyads) == {"tobin", "dana"}
    assert reloaded.get("tobin").dyads["mira"].trust.last_tick == 2


def test_jsonl_store_skips_malformed_rows(tmp_path) -> None:
    path = tmp_path / "beliefs.jsonl"
    good = {"selfId": "mira", "affect": {"fear": 0.3}, "dyads": {}, "history": []}
    path.write_text("not json\n\n" + json.dumps([1, 2]) + "\n" + json.dumps(good) + "\n", encoding="utf-8")
    store = JsonlBeliefStore(path)
    assert store.get("mira").affect == {"fear": 0.3}
    assert store.get("tobin") is None


def test_push_history_copies_and_trims() -> None:
    prev = [HistoryPoint(tick=t) for t in range(4)]
    out = push_history(prev, HistoryPoint(tick=4), limit=3)
    assert [p.tick for p in out] == [2, 3, 4]
    assert len(prev) == 4


def test_history_point_snapshot_reads_nested_affect() -> None:
    point = HistoryPoint.snapshot(5, {"e": {"fear": 0.4}, "stress": 0.3}, {})
    assert point.self_affect["fear"] == 0.4
    assert point.self_affect["stress"] == 0.3
    assert point.self_affect["control"] == 0.5
    assert HistoryPoint.from_dict(point.to_dict()) == point


def test_push_history_never_exceeds_hard_limit() -> None:
    history: list = []
    for tick in range(40):
        history = push_history(history, HistoryPoint(tick=tick), limit=100)
    assert len(history) == HISTORY_LIMIT
    assert history[-1].tick == 39
    assert len(push_history(history, HistoryPoint(tick=40), limit="lots")) == HISTORY_LIMIT


def test_engine_caps_configured_history(tmp_path) -> None:
    cfg_path = tmp_path / "ctxmind.yaml"
    cfg_path.write_text("history:\n  limit: 500\n", encoding="utf-8")
    engine = ContextualMindEngine(affect=QuietAffect(), cfg=load_engine_cfg(cfg_path))
    world = {"tick": 0}
    for tick in range(30):
        world["tick"] = tick
        engine.tick(world, "mira", FRAME)
    assert len(engine.store.get("mira").history) == HISTORY_LIMIT


def test_jsonl_store_compacts_to_latest_snapshots(tmp_path) -> None:
    path = tmp_path / "beliefs.jsonl"
    store = JsonlBeliefStore(path)
    engine = ContextualMindEngine(store=store, affect=QuietAffect())
    world = {"tick": 0}
    for tick in range(4):
        world["tick"] = tick
        engine.tick(world, "mira", FRAME)
        engine.tick(world, "tobin", {"what": {"nearbyAgents": [{"id": "mira"}]}})
    assert len(path.read_text(encoding="utf-8").splitlines()) == 8

    assert store.compact() == 6
    lines = path.read_text(encoding="utf-8").splitlines()
    assert sorted(json.loads(line)["selfId"] for line in lines) == ["mira", "tobin"]
    reloaded = JsonlBeliefStore(path)
    assert reloaded.get("mira").to_dict() == store.get("mira").to_dict()
    assert [p.tick for p in reloaded.get("mira").history] == [0, 1, 2, 3]
