"""MatchEngine — collects one round of commands from every live agent.

Per round:
  1. Every ALIVE agent gets the same deadline, ``timeout.max +
     timeout.lag_tolerance`` seconds from the start of the round (none when
     timeouts are inactive).
  2. Each agent's lines are read concurrently until its turn is complete:
       FINISH_SYMBOL — lines before the sentinel are kept, the sentinel is
                       swallowed
       LINE_COUNT    — exactly ``command_lines`` lines are kept; with a
                       deadline the round stays open until it passes and
                       anything else the agent printed by then is dropped;
                       without one only already-buffered lines are dropped
  3. An agent that misses its deadline, or whose stdout closes, is terminated
     and contributes nothing to the round.
  4. The round ends when every agent has finished or been terminated (under
     LINE_COUNT with a deadline, when the deadline passes).

A round therefore yields at most one Command per agent alive at its start.
"""

from __future__ import annotations

import asyncio
import logging

from dimension.agents.agent import Agent
from dimension.config.schema import EngineConfig
from dimension.core.errors import DimensionError
from dimension.core.types import AgentID, Command, FinishPolicy

logger = logging.getLogger(__name__)

TIMEOUT = "timeout"
EXITED = "exited"


class MatchEngine:
    """Per-timestep command collection with timeout and finish-policy enforcement."""

    def __init__(self, config: EngineConfig, log: logging.Logger | None = None) -> None:
        self.config = config
        self.log = log or logger
        self.rounds = 0
        # agent id -> why it was terminated ("timeout" or "exited")
        self.terminated: dict[AgentID, str] = {}
        self.round_terminated: list[AgentID] = []
        self._inflight: list[asyncio.Task[Command | None]] = []
        self._closed = False
        self._closed_event = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Round collection
    # ------------------------------------------------------------------

    async def collect(self, agents: list[Agent]) -> list[Command]:
        """Collect one round of commands.  Order of the result is meaningless."""
        if self._closed:
            raise DimensionError.destroyed("Match engine has been closed.")

        live = [agent for agent in agents if not agent.is_terminated]
        self.round_terminated = []

        deadline: float | None = None
        if self.config.timeout.active:
            deadline = asyncio.get_running_loop().time() + self.config.timeout.deadline

        self._inflight = [
            asyncio.create_task(self._collect_agent(agent, deadline), name=f"collect-{agent.id}")
            for agent in live
        ]
        try:
            results = await asyncio.gather(*self._inflight)
        except asyncio.CancelledError:
            await self._cancel_inflight()
            if self._closed:
                raise DimensionError.destroyed("Match engine closed mid-round.") from None
            raise
        except BaseException:
            await self._cancel_inflight()
            raise
        finally:
            self._inflight = []

        if self.config.command_finish_policy is FinishPolicy.LINE_COUNT:
            survivors = [agent for agent in live if not agent.is_terminated]
            if deadline is not None and survivors:
                await self._hold_until(deadline)
            for agent in survivors:
                dropped = agent.process.discard_pending()
                if dropped:
                    self.log.debug(
                        "Discarded %d extra line(s) from agent %d in round %d",
                        dropped, agent.id, self.rounds,
                    )

        self.rounds += 1
        return [command for command in results if command is not None]

    async def _hold_until(self, deadline: float) -> None:
        """Keep the round open until *deadline* so late extra lines get dropped."""
        remaining = deadline - asyncio.get_running_loop().time()
        if remaining > 0:
            try:
                await asyncio.wait_for(self._closed_event.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                pass
        if self._closed:
            raise DimensionError.destroyed("Match engine closed mid-round.")

    async def _collect_agent(self, agent: Agent, deadline: float | None) -> Command | None:
        config = self.config
        loop = asyncio.get_running_loop()
        lines: list[str] = []

        while True:
            remaining: float | None = None
            if deadline is not None:
                remaining = deadline - loop.time()
            try:
                if remaining is not None and remaining <= 0:
                    raise asyncio.TimeoutError
                line = await agent.read_line(remaining)
            except asyncio.TimeoutError:
                await self._terminate(agent, TIMEOUT)
                return None

            if line is None:
                await self._terminate(agent, EXITED)
                return None

            if config.command_finish_policy is FinishPolicy.FINISH_SYMBOL:
                if line.strip() == config.finish_symbol:
                    break
                lines.append(line)
            else:
                lines.append(line)
                if len(lines) >= config.command_lines:
                    break

        if not lines:
            return None
        return Command(agent_id=agent.id, lines=tuple(lines), delimiter=config.delimiter)

    # ------------------------------------------------------------------
    # Termination & teardown
    # ------------------------------------------------------------------

    async def _terminate(self, agent: Agent, cause: str) -> None:
        if cause == TIMEOUT:
            self.log.warning(
                "Agent %d (%s) timed out after %.3fs in round %d; terminating",
                agent.id, agent.name, self.config.timeout.deadline, self.rounds,
            )
        else:
            self.log.warning(
                "Agent %d (%s) closed its output in round %d (exit code %s); terminating",
                agent.id, agent.name, self.rounds, agent.process.returncode,
            )
        await agent.terminate()
        self.terminated[agent.id] = cause
        self.round_terminated.append(agent.id)

    async def _cancel_inflight(self) -> None:
        for task in self._inflight:
            task.cancel()
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    def close(self) -> None:
        """Abandon any in-flight round.  Idempotent."""
        self._closed = True
        self._closed_event.set()
        for task in self._inflight:
            task.cancel()
