"""dimension — turn-based matches between external agent programs.

A Design supplies the rules; a Match spawns the agents, collects one round
of commands per timestep through its MatchEngine and hands them to the
Design until it declares the match finished.
"""

from dimension.agents import Agent, AgentProcess
from dimension.config import (
    AgentSpec,
    DimensionConfig,
    EngineConfig,
    MatchConfig,
    TimeoutConfig,
    default_engine_config,
    default_match_config,
)
from dimension.core.design import Design
from dimension.core.errors import DimensionError, ErrorKind
from dimension.core.tokenizer import LineTokenizer
from dimension.core.types import AgentID, AgentStatus, Command, FinishPolicy, MatchStatus
from dimension.dimension import Dimension, create
from dimension.engine.match_engine import MatchEngine
from dimension.match.match import Match
from dimension.station import Station

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "AgentID",
    "AgentProcess",
    "AgentSpec",
    "AgentStatus",
    "Command",
    "Design",
    "Dimension",
    "DimensionConfig",
    "DimensionError",
    "EngineConfig",
    "ErrorKind",
    "FinishPolicy",
    "LineTokenizer",
    "Match",
    "MatchConfig",
    "MatchEngine",
    "MatchStatus",
    "Station",
    "TimeoutConfig",
    "create",
    "default_engine_config",
    "default_match_config",
]
