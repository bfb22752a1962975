"""JSONL event log for per-tick engine summaries."""

from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any, Mapping

import numpy as np

DEFAULT_LOG = Path(os.getenv("CTXMIND_EVENT_LOG", "logs/ctxmind_events.jsonl"))


def event(name: str, payload: Mapping[str, Any], *, log_path: str | Path | None = None) -> dict:
    """Append ``{ts, event, data}`` to the event log and return the record."""
    log_file = Path(log_path) if log_path else DEFAULT_LOG
    log_file.parent.mkdir(parents=True, exist_ok=True)
    record = {"ts": time.time(), "event": str(name), "data": _coerce_payload(payload)}
    with log_file.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(record, ensure_ascii=False) + "\n")
    return record


def read_events(log_path: str | Path | None = None, *, name: str | None = None) -> list[dict]:
    log_file = Path(log_path) if log_path else DEFAULT_LOG
    if not log_file.exists():
        return []
    rows: list[dict] = []
    with log_file.open("r", encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            try:
                row = json.loads(line)
            except json.JSONDecodeError:
                continue
            if name is None or row.get("event") == name:
                rows.append(row)
    return rows


def _coerce_payload(payload: Mapping[str, Any]) -> dict:
    return {str(key): _coerce_value(value) for key, value in payload.items()}


def _coerce_value(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, Mapping):
        return {str(k): _coerce_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_coerce_value(v) for v in value]
    if callable(getattr(value, "to_dict", None)):
        return _coerce_value(value.to_dict())
    try:
        return float(value)
    except (TypeError, ValueError):
        return str(value)


__all__ = ["event", "read_events"]
