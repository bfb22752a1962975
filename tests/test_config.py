from __future__ import annotations

import logging

from ctxmind.config import EngineCfg, load_engine_cfg


def test_missing_file_gives_defaults(tmp_path) -> None:
    cfg = load_engine_cfg(tmp_path / "absent.yaml")
    assert cfg == EngineCfg()
    assert cfg.beta.decay == 0.985
    assert cfg.history.limit == 24
    assert cfg.spread.curve == "smoothstep"
    assert cfg.telemetry.enabled is False


def test_known_keys_are_merged(tmp_path) -> None:
    path = tmp_path / "ctxmind.yaml"
    path.write_text(
        "beta:\n  decay: 0.9\n  unknown_knob: 3\nhistory:\n  limit: 8\ntelemetry:\n  enabled: true\n  log_path: out.jsonl\n",
        encoding="utf-8",
    )
    cfg = load_engine_cfg(path)
    assert cfg.beta.decay == 0.9
    assert cfg.beta.anchor_gain == 0.85
    assert not hasattr(cfg.beta, "unknown_knob")
    assert cfg.history.limit == 8
    assert cfg.telemetry.enabled is True
    assert cfg.telemetry.log_path == "out.jsonl"
    assert cfg.spread.steps == 2


def test_malformed_yaml_falls_back_with_warning(tmp_path, caplog) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text("beta: [unterminated\n", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="ctxmind.config"):
        cfg = load_engine_cfg(path)
    assert cfg == EngineCfg()
    assert any("using defaults" in r.getMessage() for r in caplog.records)


def test_non_mapping_payload_falls_back(tmp_path, caplog) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="ctxmind.config"):
        assert load_engine_cfg(path) == EngineCfg()
    assert caplog.records


def test_non_mapping_section_is_ignored(tmp_path) -> None:
    path = tmp_path / "partial.yaml"
    path.write_text("beta: 3\nspread:\n  direction: backward\n", encoding="utf-8")
    cfg = load_engine_cfg(path)
    assert cfg.beta == EngineCfg().beta
    assert cfg.spread.direction == "backward"


def test_shipped_config_matches_defaults() -> None:
    from pathlib import Path

    shipped = Path(__file__).resolve().parents[1] / "config" / "ctxmind.yaml"
    cfg = load_engine_cfg(shipped)
    assert cfg.beta == EngineCfg().beta
    assert cfg.spread == EngineCfg().spread
    assert cfg.history == EngineCfg().history
