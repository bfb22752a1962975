"""Belief stores: where each agent's contextual mind state lives between ticks."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from .state import ContextualMindState

logger = logging.getLogger(__name__)


class BeliefStore(Protocol):
    """Storage contract for per-agent contextual mind state."""

    def get(self, agent_id: str) -> Optional[ContextualMindState]:
        """Return the stored state, or None when the agent is unknown."""

    def create(self, agent_id: str, tick: int) -> ContextualMindState:
        """Create, remember and return a fresh state for ``agent_id``."""

    def persist(self, state: ContextualMindState) -> None:
        """Replace the stored state for ``state.self_id``."""


def fresh_state(agent_id: str) -> ContextualMindState:
    return ContextualMindState(self_id=agent_id)


@dataclass
class InMemoryBeliefStore:
    """Dict-backed store for tests and single-process runs."""

    states: Dict[str, ContextualMindState] = field(default_factory=dict)

    def get(self, agent_id: str) -> Optional[ContextualMindState]:
        return self.states.get(agent_id)

    def create(self, agent_id: str, tick: int) -> ContextualMindState:  # noqa: ARG002
        state = fresh_state(agent_id)
        self.states[agent_id] = state
        return state

    def persist(self, state: ContextualMindState) -> None:
        self.states[state.self_id] = state


class JsonlBeliefStore:
    """Append-only JSONL snapshots; the last line per agent wins on load.

    Every ``persist`` appends a full snapshot (history included), so the file
    grows with the tick count. Call :meth:`compact` to rewrite it with one line
    per agent.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._cache: Dict[str, ContextualMindState] = {}
        for row in self._iter_jsonl(self.path):
            try:
                state = ContextualMindState.from_dict(row)
            except (TypeError, ValueError, AttributeError) as exc:
                logger.warning("skipping malformed belief snapshot in %s: %s", self.path, exc)
                continue
            self._cache[state.self_id] = state

    def get(self, agent_id: str) -> Optional[ContextualMindState]:
        return self._cache.get(agent_id)

    def create(self, agent_id: str, tick: int) -> ContextualMindState:  # noqa: ARG002
        state = fresh_state(agent_id)
        self._cache[agent_id] = state
        return state

    def persist(self, state: ContextualMindState) -> None:
        self._cache[state.self_id] = state
        self._append_jsonl(self.path, state.to_dict())

    def compact(self) -> int:
        """Rewrite the file with the latest snapshot per agent; returns lines dropped."""
        before = len(self._iter_jsonl(self.path))
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.parent.mkdir(parents=True, exist_ok=True)
        with tmp.open("w", encoding="utf-8") as handle:
            for state in self._cache.values():
                handle.write(json.dumps(state.to_dict(), ensure_ascii=False) + "\n")
        tmp.replace(self.path)
        dropped = max(0, before - len(self._cache))
        logger.info("compacted %s: %d snapshots dropped", self.path, dropped)
        return dropped

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _append_jsonl(path: Path, payload: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, ensure_ascii=False) + "\n")

    @staticmethod
    def _iter_jsonl(path: Path) -> List[dict]:
        if not path.exists():
            return []
        rows = []
        with path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                try:
                    rows.append(json.loads(line))
                except json.JSONDecodeError:
                    continue
        return rows


__all__ = ["BeliefStore", "InMemoryBeliefStore", "JsonlBeliefStore", "fresh_state"]
