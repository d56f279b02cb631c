"""Response models for the API layer.

These are thin API-surface models only.  The state they describe lives in
dimension.match / dimension.station and is read, never written, from here.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Dimensions
# ---------------------------------------------------------------------------

class DimensionSummary(BaseModel):
    id: str
    name: str
    design: str
    match_count: int


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------

class AgentSummary(BaseModel):
    id: int
    name: str
    file: str
    status: Literal["alive", "terminated"]


class MatchSummary(BaseModel):
    id: str
    name: str
    dimension_id: str | None = None
    design: str
    status: Literal[
        "uninitialized", "initialized", "running", "stopped",
        "finished", "error", "destroyed",
    ]
    timestep: int = Field(ge=0)
    agents: list[AgentSummary]
    terminated: dict[str, str] = Field(
        default_factory=dict,
        description="Agent id -> cause ('timeout' or 'exited').",
    )
    created_at: str
    finished_at: str | None = None
