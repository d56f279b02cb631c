"""Configuration schema for dimensions and matches — single source of truth.

This module defines the Pydantic models that fully describe how a match is
run.  The engine, the match, the dimension and the backend all import these
directly; no duplication.

Design references:
  - engine config is frozen once a match is initialized
  - timeouts are in seconds; the effective per-agent deadline of a round is
    ``max + lag_tolerance``
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from dimension.core.types import FinishPolicy


def _coerce_level(value: Any) -> Any:
    """Accept logging level names ("DEBUG", "warning") as well as ints."""
    if isinstance(value, str):
        level = logging.getLevelName(value.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown logging level: {value!r}")
        return level
    return value


# ---------------------------------------------------------------------------
# Section 1: Timeouts
# ---------------------------------------------------------------------------

class TimeoutConfig(BaseModel):
    """Per-agent, per-round deadline."""

    model_config = ConfigDict(frozen=True)

    active: bool = Field(
        default=True,
        description="Enforce a deadline on each agent every round.",
    )
    max: float = Field(
        default=1.0, gt=0.0,
        description="Seconds an agent has to finish its turn.",
    )
    lag_tolerance: float = Field(
        default=0.025, ge=0.0,
        description="Extra seconds allowed for process and pipe latency.",
    )

    @property
    def deadline(self) -> float:
        return self.max + self.lag_tolerance


# ---------------------------------------------------------------------------
# Section 2: Engine
# ---------------------------------------------------------------------------

class EngineConfig(BaseModel):
    """How a round of commands is collected.  Immutable."""

    model_config = ConfigDict(frozen=True)

    command_finish_policy: FinishPolicy = Field(
        default=FinishPolicy.FINISH_SYMBOL,
        description="FINISH_SYMBOL: agent ends its turn with a sentinel line. "
                    "LINE_COUNT: a turn is exactly `command_lines` lines.",
    )
    command_lines: int = Field(
        default=1, ge=1,
        description="Lines per turn under LINE_COUNT.",
    )
    delimiter: str = Field(
        default=",", min_length=1, max_length=1,
        description="Single character separating tokens within a line.",
    )
    finish_symbol: str = Field(
        default="D_FINISH", min_length=1,
        description="Sentinel line that ends a turn under FINISH_SYMBOL.",
    )
    timeout: TimeoutConfig = TimeoutConfig()

    @field_validator("finish_symbol")
    @classmethod
    def single_line_symbol(cls, value: str) -> str:
        if "\n" in value or "\r" in value:
            raise ValueError("finish_symbol must fit on one line.")
        return value

    @field_validator("delimiter")
    @classmethod
    def delimiter_not_newline(cls, value: str) -> str:
        if value in ("\n", "\r"):
            raise ValueError("delimiter cannot be a line break.")
        return value


# ---------------------------------------------------------------------------
# Section 3: Agents
# ---------------------------------------------------------------------------

class AgentSpec(BaseModel):
    """One participant: a program file and an optional display name."""

    file: str = Field(min_length=1, description="Path to the agent program.")
    name: str | None = Field(
        default=None,
        description="Display name. Defaults to agent_<id>.",
    )


# ---------------------------------------------------------------------------
# Section 4: Match
# ---------------------------------------------------------------------------

class MatchConfig(BaseModel):
    """Everything needed to run one match besides the Design and agents."""

    name: str | None = Field(
        default=None,
        description="Match name. Defaults to match_<id>.",
    )
    engine: EngineConfig = EngineConfig()
    logging_level: int = Field(
        default=logging.INFO, ge=0,
        description="stdlib logging level for this match's logger.",
    )
    design_options: dict[str, Any] = Field(
        default_factory=dict,
        description="Free-form options read by the Design (e.g. best_of).",
    )

    @field_validator("logging_level", mode="before")
    @classmethod
    def level_from_name(cls, value: Any) -> Any:
        return _coerce_level(value)


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

class DimensionConfig(BaseModel):
    """Configuration for a Dimension: one Design, many matches."""

    name: str | None = Field(
        default=None,
        description="Dimension name. Defaults to dimension_<id>.",
    )
    observe: bool = Field(
        default=True,
        description="Register with the Station when one is supplied.",
    )
    logging_level: int = Field(
        default=logging.INFO, ge=0,
        description="Default logging level for the dimension and its matches.",
    )
    storage_dir: Path | None = Field(
        default=None,
        description="Write match artifacts under this directory after run_match.",
    )
    default_match: MatchConfig = Field(default_factory=MatchConfig)

    @field_validator("logging_level", mode="before")
    @classmethod
    def level_from_name(cls, value: Any) -> Any:
        return _coerce_level(value)

    @model_validator(mode="after")
    def match_level_follows_dimension(self) -> DimensionConfig:
        if "logging_level" not in self.default_match.model_fields_set:
            # copy: the MatchConfig may be the caller's own instance
            self.default_match = self.default_match.model_copy(
                update={"logging_level": self.logging_level}
            )
        return self
