"""Abstract Design — the simulation-rules contract.

Every simulation (rock-paper-scissors, territory games, ...) implements this
interface.  The match core never looks past these three callbacks:

  1. initialize()  — set up ``match.state`` and message agents
  2. update()      — consume one round of commands, return FINISHED to end
  3. get_results() — summarise a finished match

Callbacks are coroutines and are invoked strictly one at a time per match,
so ``match.state`` needs no locking.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from dimension.core.types import Command, MatchStatus

if TYPE_CHECKING:
    from dimension.match.match import Match


class Design(ABC):
    """Abstract simulation rules.  Domain-agnostic."""

    def __init__(self, name: str = "") -> None:
        self.name = name or type(self).__name__

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    @abstractmethod
    async def initialize(self, match: Match) -> None:
        """Prepare ``match.state`` and send agents their starting information."""
        ...

    @abstractmethod
    async def update(
        self, match: Match, commands: list[Command]
    ) -> MatchStatus | None:
        """Advance one timestep.

        Return ``MatchStatus.FINISHED`` to end the match; ``None`` continues.
        Commands arrive in no particular order.
        """
        ...

    @abstractmethod
    async def get_results(self, match: Match) -> Any:
        """Compute the results of a finished match."""
        ...
