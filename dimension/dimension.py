"""Dimension — one Design plus the matches created from it.

``create_match`` builds and initializes a match; ``run_match`` additionally
runs it to completion, tears it down and returns the Design's results.
Match configs are the dimension's defaults overridden by whatever the caller
passes, merged key by key.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Iterable
from typing import Any

from dimension.config.schema import AgentSpec, DimensionConfig, MatchConfig
from dimension.core.design import Design
from dimension.core.errors import DimensionError
from dimension.match.match import Match
from dimension.runner.match_recorder import MatchRecorder
from dimension.station.station import Station

logger = logging.getLogger(__name__)

_ids = itertools.count()

AgentList = Iterable[str | AgentSpec | dict[str, Any]]


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Dimension:
    """Creates, runs and keeps track of matches for one Design."""

    def __init__(
        self,
        design: Design,
        config: DimensionConfig | None = None,
        station: Station | None = None,
    ) -> None:
        self.design = design
        self.config = config or DimensionConfig()
        self.id = f"dimension_{next(_ids)}"
        self.name = self.config.name or self.id
        self.station = station
        self.matches: dict[str, Match] = {}

        self.log = logging.getLogger(f"{__name__}.{self.name}")
        self.log.setLevel(self.config.logging_level)

        if station is not None and self.config.observe:
            station.observe(self)
        self.log.debug("Created dimension %s with design %s", self.name, design.name)

    def __repr__(self) -> str:
        return f"Dimension(name={self.name!r}, design={self.design.name!r})"

    def match_config(self, overrides: MatchConfig | dict[str, Any] | None = None) -> MatchConfig:
        """The dimension's default match config with *overrides* applied."""
        base = self.config.default_match.model_dump()
        if overrides is None:
            return MatchConfig.model_validate(base)
        if isinstance(overrides, MatchConfig):
            overrides = overrides.model_dump(exclude_unset=True)
        return MatchConfig.model_validate(_deep_merge(base, overrides))

    async def create_match(
        self,
        agents: AgentList,
        config: MatchConfig | dict[str, Any] | None = None,
    ) -> Match:
        """Create and initialize a match.  Raises FATAL for an empty or unstartable roster."""
        agents = list(agents)
        if not agents:
            raise DimensionError.fatal("No files provided for match.")

        match = Match(
            self.design,
            agents,
            self.match_config(config),
            station=self.station,
            dimension_id=self.id,
        )
        self.matches[match.id] = match
        await match.initialize()
        return match

    async def run_match(
        self,
        agents: AgentList,
        config: MatchConfig | dict[str, Any] | None = None,
    ) -> Any:
        """Create, run and tear down a match; return its results."""
        match = await self.create_match(agents, config)
        try:
            results = await match.run()
        finally:
            if self.config.storage_dir is not None:
                MatchRecorder(self.config.storage_dir, match.id).record(match)
            # FINISHED and ERROR have already released the agents
            if not match.status.is_terminal:
                await match.destroy()
        return results

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "design": self.design.name,
            "match_count": len(self.matches),
        }


def create(
    design: Design,
    config: DimensionConfig | dict[str, Any] | None = None,
    station: Station | None = None,
) -> Dimension:
    """Create a dimension to start matches on."""
    if isinstance(config, dict):
        config = DimensionConfig.model_validate(config)
    return Dimension(design, config, station)
