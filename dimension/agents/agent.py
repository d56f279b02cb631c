"""Agent — one participant of a match, backed by an AgentProcess."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dimension.agents.process import AgentProcess
from dimension.core.errors import DimensionError
from dimension.core.types import AgentID, AgentStatus

# Interpreter prefix per file extension.  Anything else is executed directly
# and must carry the executable bit.
INTERPRETERS: dict[str, tuple[str, ...]] = {
    ".py": (sys.executable, "-u"),
    ".js": ("node",),
    ".ts": ("npx", "ts-node"),
    ".rb": ("ruby",),
    ".php": ("php",),
    ".sh": ("sh",),
}


def resolve_command(file: str | Path) -> tuple[str, list[str], Path]:
    """Work out ``(command, args, working_dir)`` for an agent program file.

    Raises a SPAWN error if the file does not exist, or if it has no known
    interpreter and is not executable.
    """
    path = Path(file).resolve()
    if not path.is_file():
        raise DimensionError.spawn(f"Agent file {str(file)!r} does not exist.")

    prefix = INTERPRETERS.get(path.suffix.lower())
    if prefix is None:
        if not os.access(path, os.X_OK):
            raise DimensionError.spawn(
                f"Agent file {str(file)!r} has no known interpreter and is not executable."
            )
        return str(path), [], path.parent
    return prefix[0], [*prefix[1:], str(path)], path.parent


class Agent:
    """Identity and liveness of one external program in a match."""

    def __init__(self, agent_id: AgentID, file: str | Path, name: str | None = None) -> None:
        self.id = agent_id
        self.file = str(file)
        self.name = name or f"agent_{agent_id}"
        self.status = AgentStatus.ALIVE
        self.process = AgentProcess(label=f"{self.name} (id {agent_id})")

    def __repr__(self) -> str:
        return f"Agent(id={self.id}, name={self.name!r}, status={self.status.value})"

    @property
    def cmd(self) -> list[str]:
        return self.process.command

    @property
    def is_terminated(self) -> bool:
        return self.status is AgentStatus.TERMINATED

    async def spawn(self) -> None:
        command, args, working_dir = resolve_command(self.file)
        await self.process.spawn(command, args, working_dir)

    def send(self, message: str) -> bool:
        if self.is_terminated:
            return False
        return self.process.send(message)

    async def read_line(self, timeout: float | None = None) -> str | None:
        return await self.process.read_line(timeout)

    async def terminate(self) -> None:
        """Kill the process and mark the agent TERMINATED.  Idempotent."""
        self.status = AgentStatus.TERMINATED
        await self.process.terminate()

    async def release(self) -> None:
        """Kill the process at match teardown without changing ``status``."""
        await self.process.terminate()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "file": self.file,
            "status": self.status.value,
        }
