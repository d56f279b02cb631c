"""Match — one run of a Design across a fixed roster of agent programs.

Owns the agents (and their processes), one MatchEngine and the match state
machine:

  UNINITIALIZED --initialize()--> INITIALIZED --run()--> RUNNING
  RUNNING --stop()--> STOPPED --resume()/run()--> RUNNING
  RUNNING --update() returns FINISHED--> FINISHED
  any non-terminal --fatal error--> ERROR
  any --destroy()--> DESTROYED

Agent processes are released whenever the match reaches a terminal state.
"""

from __future__ import annotations

import asyncio
import io
import logging
import uuid
from collections.abc import Awaitable, Iterable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TypeVar

from dimension.agents.agent import Agent
from dimension.config.schema import AgentSpec, MatchConfig
from dimension.core.design import Design
from dimension.core.errors import DimensionError, ErrorKind
from dimension.core.types import AgentID, Command, MatchStatus
from dimension.engine.match_engine import MatchEngine

if TYPE_CHECKING:
    from dimension.station.station import Station

logger = logging.getLogger(__name__)

T = TypeVar("T")


def coerce_agent_specs(
    agents: Iterable[str | AgentSpec | dict[str, Any]],
) -> list[AgentSpec]:
    """Accept file paths, ``{"file": ..., "name": ...}`` dicts or AgentSpecs."""
    specs: list[AgentSpec] = []
    for item in agents:
        if isinstance(item, AgentSpec):
            specs.append(item)
        elif isinstance(item, dict):
            specs.append(AgentSpec.model_validate(item))
        else:
            specs.append(AgentSpec(file=str(item)))
    return specs


class Match:
    """Lifecycle, state machine and error routing for one match."""

    def __init__(
        self,
        design: Design,
        agents: Iterable[str | AgentSpec | dict[str, Any]],
        config: MatchConfig | None = None,
        *,
        station: Station | None = None,
        dimension_id: str | None = None,
    ) -> None:
        self.id = uuid.uuid4().hex[:12]
        self.design = design
        self.config = config or MatchConfig()
        self.name = self.config.name or f"match_{self.id}"
        self.dimension_id = dimension_id

        self.log = logging.getLogger(f"{__name__}.{self.name}")
        self.log.setLevel(self.config.logging_level)

        self.agent_specs = coerce_agent_specs(agents)
        self.agents: list[Agent] = []
        self.engine = MatchEngine(self.config.engine, log=self.log)

        # Design-owned; the core only stores the reference
        self.state: Any = None
        self.results: Any = None
        self.timestep = 0
        self.events: list[dict[str, Any]] = []
        self.created_at = datetime.now(timezone.utc)
        self.finished_at: datetime | None = None

        self._status = MatchStatus.UNINITIALIZED
        self._station = station
        self._agent_logs: dict[AgentID, io.BytesIO] = {}
        self._resume_event = asyncio.Event()
        self._loop_active = False

    def __repr__(self) -> str:
        return f"Match(id={self.id!r}, name={self.name!r}, status={self._status.value})"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def status(self) -> MatchStatus:
        return self._status

    @property
    def agent_files(self) -> list[str]:
        return [spec.file for spec in self.agent_specs]

    @property
    def terminated(self) -> dict[AgentID, str]:
        """Agents terminated during play, mapped to the cause."""
        return dict(self.engine.terminated)

    def get_agent(self, agent: AgentID | Agent) -> Agent:
        agent_id = agent.id if isinstance(agent, Agent) else agent
        if not isinstance(agent_id, int) or not 0 <= agent_id < len(self.agents):
            raise ValueError(f"Match {self.name} has no agent with id {agent_id!r}.")
        return self.agents[agent_id]

    def agent_log(self, agent: AgentID | Agent) -> bytes:
        """Everything recorded against an agent: thrown errors, then its stderr."""
        target = self.get_agent(agent)
        buffer = self._agent_logs.get(target.id)
        recorded = buffer.getvalue() if buffer is not None else b""
        return recorded + target.process.stderr_bytes

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "dimension_id": self.dimension_id,
            "design": self.design.name,
            "status": self._status.value,
            "timestep": self.timestep,
            "agents": [agent.to_dict() for agent in self.agents],
            "terminated": {str(k): v for k, v in self.terminated.items()},
            "created_at": self.created_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Spawn every agent in declaration order, then run ``Design.initialize``."""
        self._ensure_not_over("initialize")
        if self._status is not MatchStatus.UNINITIALIZED:
            raise DimensionError.match_error(f"Match {self.name} is already initialized.")

        if not self.agent_specs:
            self._set_status(MatchStatus.ERROR)
            raise DimensionError.fatal(f"No agents provided for match {self.name}.")

        self.agents = [
            Agent(agent_id, spec.file, spec.name)
            for agent_id, spec in enumerate(self.agent_specs)
        ]
        spawned: list[Agent] = []
        try:
            for agent in self.agents:
                await agent.spawn()
                spawned.append(agent)
        except DimensionError as err:
            await self._abort_spawn(spawned)
            raise DimensionError.fatal(
                f"Match {self.name} could not start its agents: {err.message}"
            ) from err
        except BaseException:
            await self._abort_spawn(spawned)
            raise

        self.log.info(
            "Initialized match %s with %d agents: %s",
            self.name, len(self.agents), ", ".join(a.name for a in self.agents),
        )
        await self._call_design(self.design.initialize(self))
        self._set_status(MatchStatus.INITIALIZED)

    async def _abort_spawn(self, spawned: list[Agent]) -> None:
        for agent in spawned:
            await agent.terminate()
        self._set_status(MatchStatus.ERROR)

    async def run(self) -> Any:
        """Run rounds until the Design finishes the match; return its results.

        Waits through ``stop()`` pauses.  Raises FATAL errors from the Design
        and MATCH_DESTROYED if the match is destroyed while running.
        """
        self._ensure_not_over("run")
        if self._status is MatchStatus.UNINITIALIZED:
            raise DimensionError.match_error(f"Match {self.name} must be initialized before run().")
        if self._loop_active:
            raise DimensionError.match_error(f"Match {self.name} is already running.")

        if self._status in (MatchStatus.INITIALIZED, MatchStatus.STOPPED):
            self._set_status(MatchStatus.RUNNING)
            self._resume_event.set()

        self._loop_active = True
        try:
            while True:
                if self._status is MatchStatus.STOPPED:
                    await self._resume_event.wait()
                    continue
                if self._status is not MatchStatus.RUNNING:
                    self._ensure_not_over("run")
                if await self._step():
                    return self.results
        finally:
            self._loop_active = False

    async def _step(self) -> bool:
        """Collect one round and hand it to the Design.  True once FINISHED."""
        commands = await self.engine.collect(self.agents)
        self._ensure_not_over("run")
        for agent_id in self.engine.round_terminated:
            self._record(agent_id, "terminated", f"terminated ({self.engine.terminated[agent_id]})")

        outcome = await self._call_design(self.design.update(self, commands))
        self.timestep += 1
        self._ensure_not_over("run")

        if outcome is MatchStatus.FINISHED:
            self.results = await self._call_design(self.design.get_results(self))
            self.finished_at = datetime.now(timezone.utc)
            self._set_status(MatchStatus.FINISHED)
            await self._release_agents()
            return True
        return False

    def stop(self) -> bool:
        """Pause before the next round.  False unless the match was RUNNING."""
        self._ensure_not_over("stop")
        if self._status is not MatchStatus.RUNNING:
            return False
        self._resume_event.clear()
        self._set_status(MatchStatus.STOPPED)
        return True

    def resume(self) -> bool:
        """Continue a stopped match.  False unless the match was STOPPED."""
        self._ensure_not_over("resume")
        if self._status is not MatchStatus.STOPPED:
            return False
        self._set_status(MatchStatus.RUNNING)
        self._resume_event.set()
        return True

    async def destroy(self) -> None:
        """Kill every agent and abandon any in-flight round.  Idempotent."""
        if self._status is MatchStatus.DESTROYED:
            return
        self.engine.close()
        self._set_status(MatchStatus.DESTROYED)
        # wake a run loop paused by stop()
        self._resume_event.set()
        for agent in self.agents:
            await agent.terminate()

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    def send(self, message: Any, agent: AgentID | Agent) -> bool:
        """Send one line to an agent.  False if the agent is terminated."""
        self._ensure_not_over("send")
        target = self.get_agent(agent)
        if not target.send(str(message)):
            self.log.debug("Dropped message to terminated agent %d", target.id)
            return False
        return True

    def send_all(self, message: Any) -> None:
        """Send one line to every live agent."""
        self._ensure_not_over("send")
        text = str(message)
        for agent in self.agents:
            agent.send(text)

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    def throw(self, agent: AgentID | Agent, error: DimensionError) -> None:
        """Report a problem caused by an agent.

        MATCH_ERROR / MATCH_WARN / TOKEN are recorded against the agent and the
        match goes on.  FATAL (and SPAWN) puts the match in ERROR, kills every
        agent process and is re-raised.
        """
        target = self.get_agent(agent)
        kind = error.kind

        if error.is_fatal:
            if kind is ErrorKind.SPAWN:
                fatal = DimensionError.fatal(error.message)
                fatal.__cause__ = error
                error = fatal
            self._record(target.id, ErrorKind.FATAL.value, error.message)
            self.log.critical("FatalError from agent %d: %s", target.id, error.message)
            if not self._status.is_terminal:
                self._set_status(MatchStatus.ERROR)
                self.finished_at = datetime.now(timezone.utc)
            self.engine.close()
            # reaped later by _fail() or destroy()
            for agent in self.agents:
                agent.process.kill()
            raise error

        if kind is ErrorKind.MATCH_WARN:
            self._record(target.id, kind.value, error.message)
            self.log.warning("MatchWarn from agent %d: %s", target.id, error.message)
        else:
            self._record(target.id, ErrorKind.MATCH_ERROR.value, error.message)
            self.log.error("MatchError from agent %d: %s", target.id, error.message)

    async def _call_design(self, callback: Awaitable[T]) -> T:
        """Await a Design callback; fatal failures end the match in ERROR."""
        try:
            return await callback
        except DimensionError as err:
            if err.kind is ErrorKind.MATCH_DESTROYED:
                raise
            if err.is_fatal:
                await self._fail(err)
                raise
            # an unattributed agent-level error escaping the Design is local
            self.events.append(self._event(None, err.kind.value, err.message))
            self.log.error("Unhandled %s from design %s: %s", err.kind.name, self.design.name, err.message)
            return None
        except Exception as exc:
            self.log.exception("Design %s raised during match %s", self.design.name, self.name)
            await self._fail(exc)
            raise

    async def _fail(self, exc: BaseException) -> None:
        if not self._status.is_terminal:
            self._set_status(MatchStatus.ERROR)
        self.finished_at = datetime.now(timezone.utc)
        self.engine.close()
        await self._release_agents()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_not_over(self, operation: str) -> None:
        if self._status.is_terminal:
            raise DimensionError.destroyed(
                f"Cannot {operation} match {self.name}: it is {self._status.value}."
            )

    def _set_status(self, status: MatchStatus) -> None:
        previous, self._status = self._status, status
        self.log.debug("Match %s: %s -> %s", self.name, previous.value, status.value)
        if self._station is not None:
            self._station.publish({
                "type": "status",
                "dimension_id": self.dimension_id,
                "match_id": self.id,
                "previous": previous.value,
                "status": status.value,
                "timestep": self.timestep,
            })

    async def _release_agents(self) -> None:
        for agent in self.agents:
            await agent.release()

    def _event(self, agent_id: AgentID | None, kind: str, message: str) -> dict[str, Any]:
        return {
            "timestep": self.timestep,
            "agent_id": agent_id,
            "kind": kind,
            "message": message,
        }

    def _record(self, agent_id: AgentID, kind: str, message: str) -> None:
        self.events.append(self._event(agent_id, kind, message))
        buffer = self._agent_logs.setdefault(agent_id, io.BytesIO())
        buffer.write(f"[{kind}] timestep {self.timestep}: {message}\n".encode("utf-8"))
