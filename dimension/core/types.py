"""Framework-level types shared by every match.

These are the shared vocabulary of the match core.  Anything specific to a
particular Design (moves, boards, scores) lives with that Design, not here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from dimension.core.tokenizer import LineTokenizer


# ---------------------------------------------------------------------------
# Agent identity
# ---------------------------------------------------------------------------

AgentID = int  # 0..N-1, stable for the lifetime of a match


class AgentStatus(Enum):
    """Liveness of one agent.  Monotonic: ALIVE -> TERMINATED only."""

    ALIVE = "alive"
    TERMINATED = "terminated"


# ---------------------------------------------------------------------------
# Match state machine
# ---------------------------------------------------------------------------

class MatchStatus(Enum):
    """Match-wide state.

    INITIALIZED -> RUNNING <-> STOPPED -> FINISHED | ERROR, and DESTROYED is
    reachable from anywhere and terminal.
    """

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RUNNING = "running"
    STOPPED = "stopped"
    FINISHED = "finished"
    ERROR = "error"
    DESTROYED = "destroyed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = frozenset(
    (MatchStatus.FINISHED, MatchStatus.ERROR, MatchStatus.DESTROYED)
)


class FinishPolicy(Enum):
    """How the engine decides an agent's turn output is complete."""

    FINISH_SYMBOL = "finish_symbol"
    LINE_COUNT = "line_count"


# ---------------------------------------------------------------------------
# Command (what the engine hands to Design.update per agent per round)
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Command:
    """Everything one agent sent during one round.

    Under LINE_COUNT an agent may contribute several lines; they stay grouped
    in ``lines`` so a round never holds more than one Command per agent.
    """

    agent_id: AgentID
    lines: tuple[str, ...]
    delimiter: str = ","

    @property
    def command(self) -> str:
        """The raw text the agent sent, lines joined by newlines."""
        return "\n".join(self.lines)

    @property
    def tokens(self) -> tuple[tuple[str, ...], ...]:
        """Delimiter-split tokens of every line, in order."""
        return tuple(tuple(line.split(self.delimiter)) for line in self.lines)

    def tokenizer(self, index: int = 0) -> LineTokenizer:
        """A fresh tokenizer over line *index*."""
        return LineTokenizer(self.lines[index], self.delimiter)
