"""Agents package — external programs and the processes that run them."""

from __future__ import annotations

from dimension.agents.agent import INTERPRETERS, Agent, resolve_command
from dimension.agents.process import AgentProcess

__all__ = [
    "Agent",
    "AgentProcess",
    "INTERPRETERS",
    "resolve_command",
]
