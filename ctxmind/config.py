from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


@dataclass
class BetaFilterCfg:
    decay: float = field(default=0.985)
    min_ab: float = field(default=1.0)
    init_strength_base: float = field(default=4.0)
    init_strength_gain: float = field(default=14.0)
    update_weight_base: float = field(default=0.25)
    update_weight_gain: float = field(default=0.75)
    anchor_gain: float = field(default=0.85)
    confidence_mix: float = field(default=0.55)
    no_base_confidence: float = field(default=0.15)


@dataclass
class HistoryCfg:
    limit: int = field(default=24)


@dataclass
class SpreadCfg:
    steps: int = field(default=2)
    decay: float = field(default=0.8)
    temperature: float = field(default=1.0)
    curve: str = field(default="smoothstep")
    direction: str = field(default="forward")


@dataclass
class TelemetryCfg:
    enabled: bool = field(default=False)
    log_path: str | None = field(default=None)


@dataclass
class EngineCfg:
    beta: BetaFilterCfg = field(default_factory=BetaFilterCfg)
    history: HistoryCfg = field(default_factory=HistoryCfg)
    spread: SpreadCfg = field(default_factory=SpreadCfg)
    telemetry: TelemetryCfg = field(default_factory=TelemetryCfg)


def load_engine_cfg(path: str | Path = "config/ctxmind.yaml") -> EngineCfg:
    cfg_path = Path(path)
    if not cfg_path.exists():
        return EngineCfg()
    try:
        payload = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("could not read %s (%s); using defaults", cfg_path, exc)
        return EngineCfg()
    if not isinstance(payload, dict):
        logger.warning("%s is not a mapping; using defaults", cfg_path)
        return EngineCfg()
    return EngineCfg(
        beta=_merge_dataclass(BetaFilterCfg(), _section(payload, "beta")),
        history=_merge_dataclass(HistoryCfg(), _section(payload, "history")),
        spread=_merge_dataclass(SpreadCfg(), _section(payload, "spread")),
        telemetry=_merge_dataclass(TelemetryCfg(), _section(payload, "telemetry")),
    )


def _section(payload: dict[str, Any], key: str) -> dict[str, Any]:
    value = payload.get(key)
    return value if isinstance(value, dict) else {}


def _merge_dataclass(instance, overrides: dict[str, Any]):
    data = instance.__dict__.copy()
    for key, value in (overrides or {}).items():
        if key not in data:
            continue
        data[key] = value
    return instance.__class__(**data)


__all__ = [
    "load_engine_cfg",
    "EngineCfg",
    "BetaFilterCfg",
    "HistoryCfg",
    "SpreadCfg",
    "TelemetryCfg",
]
