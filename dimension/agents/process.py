"""AgentProcess — one spawned external program and its standard streams.

The program is a black box: lines of text in on stdin, lines of text out on
stdout.  A single reader task drains stdout into an ``asyncio.Queue`` so the
program's output is never dropped while the consumer is busy; ``read_line``
pops from that queue, optionally raced against a timeout.  stderr is kept in
an in-memory byte buffer for the match's per-agent logs.
"""

from __future__ import annotations

import asyncio
import io
import logging
from pathlib import Path

from dimension.core.errors import DimensionError

logger = logging.getLogger(__name__)

# Queue marker for end of stream (process exited, crashed or was terminated)
_EOF = object()

# Longest single line accepted from an agent, in bytes
_STREAM_LIMIT = 1 << 20

# Seconds to wait for output pipes to close after the process is killed
_DRAIN_TIMEOUT = 1.0


class AgentProcess:
    """Async wrapper around ``asyncio.subprocess.Process``."""

    def __init__(self, label: str = "agent") -> None:
        self.label = label
        self.command: list[str] = []
        self._proc: asyncio.subprocess.Process | None = None
        self._lines: asyncio.Queue[object] = asyncio.Queue()
        self._stderr = io.BytesIO()
        self._readers: list[asyncio.Task[None]] = []
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def spawn(
        self,
        command: str,
        args: list[str] | tuple[str, ...] = (),
        working_dir: str | Path | None = None,
    ) -> None:
        """Start the program.  Raises a SPAWN error if it cannot be executed."""
        if self._proc is not None:
            raise RuntimeError(f"{self.label} has already been spawned.")
        self.command = [command, *args]
        try:
            self._proc = await asyncio.create_subprocess_exec(
                command,
                *args,
                cwd=str(working_dir) if working_dir is not None else None,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=_STREAM_LIMIT,
            )
        except OSError as exc:
            # missing, not permitted, or not an executable format (ENOEXEC)
            raise DimensionError.spawn(
                f"Could not start {self.label} with {self.command!r}: {exc}"
            ) from exc

        self._readers = [
            asyncio.create_task(self._pump_stdout(), name=f"{self.label}-stdout"),
            asyncio.create_task(self._pump_stderr(), name=f"{self.label}-stderr"),
        ]
        logger.debug("Spawned %s (pid %s): %s", self.label, self.pid, self.command)

    async def terminate(self) -> None:
        """Forcibly end the process.  Idempotent."""
        if self._closed:
            return
        self._closed = True

        proc = self._proc
        if proc is not None:
            self.kill()
            if proc.stdin is not None and not proc.stdin.is_closing():
                proc.stdin.close()
            await proc.wait()
        if self._readers:
            # the pipes close with the process; let stderr reach EOF first
            _, pending = await asyncio.wait(self._readers, timeout=_DRAIN_TIMEOUT)
            for task in pending:
                task.cancel()
            await asyncio.gather(*self._readers, return_exceptions=True)
        # wake any reader still blocked in read_line
        self._lines.put_nowait(_EOF)
        logger.debug("Terminated %s", self.label)

    def kill(self) -> None:
        """Send SIGKILL without waiting for the process to exit.

        For callers that cannot await; ``terminate`` still has to run later to
        reap the process and its stream readers.
        """
        proc = self._proc
        if proc is not None and proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc is not None else None

    @property
    def returncode(self) -> int | None:
        return self._proc.returncode if self._proc is not None else None

    @property
    def alive(self) -> bool:
        return (
            self._proc is not None
            and not self._closed
            and self._proc.returncode is None
        )

    @property
    def stderr_bytes(self) -> bytes:
        return self._stderr.getvalue()

    # ------------------------------------------------------------------
    # I/O
    # ------------------------------------------------------------------

    def send(self, message: str) -> bool:
        """Write one line to stdin without waiting for the pipe to drain.

        Returns False if the process can no longer receive input.
        """
        if not self.alive or self._proc.stdin is None or self._proc.stdin.is_closing():
            return False
        line = message if message.endswith("\n") else message + "\n"
        try:
            self._proc.stdin.write(line.encode("utf-8"))
        except (BrokenPipeError, ConnectionResetError):
            return False
        return True

    async def read_line(self, timeout: float | None = None) -> str | None:
        """Return the next stdout line (without its newline).

        Returns None once the stream has ended.  Raises ``asyncio.TimeoutError``
        if *timeout* seconds pass without a line.
        """
        if timeout is None:
            item = await self._lines.get()
        else:
            item = await asyncio.wait_for(self._lines.get(), timeout=max(timeout, 0.0))
        if item is _EOF:
            # keep the marker for later readers
            self._lines.put_nowait(_EOF)
            return None
        return item

    def discard_pending(self) -> int:
        """Drop every line already buffered.  Returns how many were dropped."""
        dropped = 0
        while not self._lines.empty():
            item = self._lines.get_nowait()
            if item is _EOF:
                self._lines.put_nowait(_EOF)
                break
            dropped += 1
        return dropped

    # ------------------------------------------------------------------
    # Stream pumps
    # ------------------------------------------------------------------

    async def _pump_stdout(self) -> None:
        stream = self._proc.stdout
        try:
            while True:
                raw = await stream.readline()
                if not raw:
                    break
                self._lines.put_nowait(raw.decode("utf-8", errors="replace").rstrip("\r\n"))
        finally:
            self._lines.put_nowait(_EOF)

    async def _pump_stderr(self) -> None:
        stream = self._proc.stderr
        while True:
            chunk = await stream.read(4096)
            if not chunk:
                break
            self._stderr.write(chunk)
