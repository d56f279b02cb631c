"""Pydantic configuration for dimensions, matches and the match engine."""

from dimension.config.defaults import default_engine_config, default_match_config
from dimension.config.schema import (
    AgentSpec,
    DimensionConfig,
    EngineConfig,
    MatchConfig,
    TimeoutConfig,
)

__all__ = [
    "AgentSpec",
    "DimensionConfig",
    "EngineConfig",
    "MatchConfig",
    "TimeoutConfig",
    "default_engine_config",
    "default_match_config",
]
