"""Match artifact recorder — writes structured files into {base_dir}/{match_id}/.

Produces:
  - config.json       Match config snapshot plus the agent roster
  - events.jsonl      Per-agent errors, warnings and terminations (append)
  - results.json      Whatever the Design's get_results returned (written once)
  - agent_<id>.log    Raw per-agent log bytes (thrown errors, then stderr)

Uses only stdlib (json, pathlib, datetime). No database dependency.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dimension.match.match import Match


class MatchRecorder:
    """Writes match artifacts to a match directory."""

    def __init__(self, base_dir: str | Path, match_id: str) -> None:
        self._match_dir = Path(base_dir) / match_id
        self._match_dir.mkdir(parents=True, exist_ok=True)
        self._events_path = self._match_dir / "events.jsonl"

    @property
    def match_dir(self) -> Path:
        return self._match_dir

    # ------------------------------------------------------------------
    # Config snapshot
    # ------------------------------------------------------------------

    def write_config(self, config_dict: dict[str, Any]) -> None:
        """Write the match config as config.json."""
        payload = {
            "written_at": datetime.now(timezone.utc).isoformat(),
            **config_dict,
        }
        (self._match_dir / "config.json").write_text(
            json.dumps(payload, indent=2, default=str), encoding="utf-8"
        )

    # ------------------------------------------------------------------
    # Events (append)
    # ------------------------------------------------------------------

    def log_events(self, events: list[dict[str, Any]]) -> None:
        """Append agent events to events.jsonl."""
        if not events:
            return
        with self._events_path.open("a", encoding="utf-8") as f:
            for evt in events:
                f.write(json.dumps(evt, default=str) + "\n")

    # ------------------------------------------------------------------
    # Results (write once)
    # ------------------------------------------------------------------

    def write_results(self, results: Any) -> None:
        """Write the match results as results.json."""
        payload = {
            "written_at": datetime.now(timezone.utc).isoformat(),
            "results": results,
        }
        (self._match_dir / "results.json").write_text(
            json.dumps(payload, indent=2, default=str), encoding="utf-8"
        )

    # ------------------------------------------------------------------
    # Agent logs
    # ------------------------------------------------------------------

    def write_agent_log(self, agent_id: int, data: bytes) -> None:
        if not data:
            return
        (self._match_dir / f"agent_{agent_id}.log").write_bytes(data)

    def record(self, match: Match) -> Path:
        """Write every artifact of *match*.  Returns the match directory."""
        config = match.config.model_dump(mode="json")
        config["match_id"] = match.id
        config["match_name"] = match.name
        config["status"] = match.status.value
        config["agents"] = [agent.to_dict() for agent in match.agents]
        self.write_config(config)
        self.log_events(match.events)
        if match.results is not None:
            self.write_results(match.results)
        for agent in match.agents:
            self.write_agent_log(agent.id, match.agent_log(agent.id))
        return self._match_dir
