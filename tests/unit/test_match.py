"""Tests for Match — lifecycle, state machine, pause/resume and error routing."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any

import pytest

from dimension.agents.agent import Agent
from dimension.config.schema import EngineConfig, MatchConfig, TimeoutConfig
from dimension.core.design import Design
from dimension.core.errors import DimensionError, ErrorKind
from dimension.core.types import AgentStatus, Command, MatchStatus
from dimension.match.match import Match

KITS = Path(__file__).resolve().parents[1] / "kits" / "basic"
ECHO = str(KITS / "echo.py")
SILENT = str(KITS / "silent.py")
STDERR_ECHO = str(KITS / "stderr_echo.py")


class CountingDesign(Design):
    """Pokes every agent each round and records what came back.

    Options (``design_options``):
      rounds        finish after this many rounds (default 3)
      stop_after    call match.stop() from update after this many rounds
      throw         per-round kind to throw against agent 0 ("warn"/"error"/"fatal")
    """

    async def initialize(self, match: Match) -> None:
        match.state = {"rounds": [], "opts": match.config.design_options}
        match.send_all("go")

    async def update(self, match: Match, commands: list[Command]) -> MatchStatus | None:
        state = match.state
        state["rounds"].append({c.agent_id: c.command for c in commands})
        opts = state["opts"]

        kind = opts.get("throw")
        if kind == "warn":
            match.throw(0, DimensionError.match_warn("suspicious move"))
        elif kind == "error":
            match.throw(0, DimensionError.match_error("illegal move"))
        elif kind == "token":
            # "n,n*1.5" has a float second token
            try:
                commands[0].tokenizer().next_int_array()
            except DimensionError as err:
                match.throw(commands[0].agent_id, err)
        elif kind == "fatal":
            match.throw(0, DimensionError.fatal("rules violated"))
        elif kind == "crash":
            raise ZeroDivisionError("design bug")

        if opts.get("stop_after") == len(state["rounds"]):
            match.stop()

        if len(state["rounds"]) >= opts.get("rounds", 3):
            return MatchStatus.FINISHED
        match.send_all("go")
        return None

    async def get_results(self, match: Match) -> Any:
        return {"rounds": match.state["rounds"], "terminated": match.terminated}


def _config(**design_options) -> MatchConfig:
    return MatchConfig(
        engine=EngineConfig(timeout=TimeoutConfig(max=0.5)),
        design_options=design_options,
    )


async def _running_match(files: list[str], **design_options) -> Match:
    match = Match(CountingDesign("counting"), files, _config(**design_options))
    await match.initialize()
    return match


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

class TestInitialize:
    def test_agents_get_sequential_ids_and_names(self):
        async def scenario():
            match = Match(
                CountingDesign(),
                [{"file": ECHO, "name": "bob 0"}, ECHO, {"file": ECHO}],
                _config(),
            )
            await match.initialize()
            snapshot = [(a.id, a.name, a.process.alive) for a in match.agents]
            status = match.status
            await match.destroy()
            return snapshot, status

        snapshot, status = asyncio.run(scenario())
        assert snapshot == [(0, "bob 0", True), (1, "agent_1", True), (2, "agent_2", True)]
        assert status is MatchStatus.INITIALIZED

    def test_empty_roster_is_fatal(self):
        match = Match(CountingDesign(), [], _config())
        with pytest.raises(DimensionError) as exc_info:
            asyncio.run(match.initialize())
        assert exc_info.value.kind is ErrorKind.FATAL
        assert match.status is MatchStatus.ERROR

    def test_missing_file_is_fatal_and_releases_spawned(self, tmp_path: Path):
        match = Match(CountingDesign(), [ECHO, ECHO, str(tmp_path / "missing.py")], _config())
        with pytest.raises(DimensionError) as exc_info:
            asyncio.run(match.initialize())
        err = exc_info.value
        assert err.kind is ErrorKind.FATAL
        assert isinstance(err.__cause__, DimensionError)
        assert err.__cause__.kind is ErrorKind.SPAWN
        assert match.status is MatchStatus.ERROR
        for agent in match.agents[:2]:
            assert agent.status is AgentStatus.TERMINATED
            assert agent.process.returncode is not None

    def test_unexecutable_agent_is_fatal_and_releases_spawned(self, tmp_path: Path):
        garbage = tmp_path / "bot.bin"
        garbage.write_bytes(b"\x00\x01\x02 not a program\n")
        os.chmod(garbage, 0o755)

        match = Match(CountingDesign(), [ECHO, str(garbage)], _config())
        with pytest.raises(DimensionError) as exc_info:
            asyncio.run(match.initialize())
        err = exc_info.value
        assert err.kind is ErrorKind.FATAL
        assert err.__cause__.kind is ErrorKind.SPAWN
        assert match.status is MatchStatus.ERROR
        assert match.agents[0].process.alive is False
        assert match.agents[0].process.returncode is not None

    def test_interrupted_spawn_releases_spawned(self, monkeypatch: pytest.MonkeyPatch):
        real_spawn = Agent.spawn

        async def spawn_or_interrupt(self):
            if self.id == 1:
                raise RuntimeError("spawn interrupted")
            await real_spawn(self)

        monkeypatch.setattr(Agent, "spawn", spawn_or_interrupt)
        match = Match(CountingDesign(), [ECHO, ECHO], _config())
        with pytest.raises(RuntimeError):
            asyncio.run(match.initialize())
        assert match.status is MatchStatus.ERROR
        assert match.agents[0].process.alive is False

    def test_initialize_twice_rejected(self):
        async def scenario():
            match = await _running_match([ECHO])
            try:
                await match.initialize()
            finally:
                await match.destroy()

        with pytest.raises(DimensionError) as exc_info:
            asyncio.run(scenario())
        assert exc_info.value.kind is ErrorKind.MATCH_ERROR


# ---------------------------------------------------------------------------
# Run loop
# ---------------------------------------------------------------------------

class TestRun:
    def test_run_returns_results_and_finishes(self):
        async def scenario():
            match = await _running_match([ECHO, ECHO], rounds=3)
            results = await match.run()
            return match, results

        match, results = asyncio.run(scenario())
        assert match.status is MatchStatus.FINISHED
        assert match.results is results
        assert results["rounds"] == [
            {0: "0,0.0", 1: "0,0.0"},
            {0: "1,1.5", 1: "1,1.5"},
            {0: "2,3.0", 1: "2,3.0"},
        ]
        assert match.timestep == 3
        assert match.finished_at is not None
        # processes are released once the match is over
        assert all(not a.process.alive for a in match.agents)

    def test_run_before_initialize_rejected(self):
        match = Match(CountingDesign(), [ECHO], _config())
        with pytest.raises(DimensionError) as exc_info:
            asyncio.run(match.run())
        assert exc_info.value.kind is ErrorKind.MATCH_ERROR

    def test_timed_out_agent_recorded(self):
        async def scenario():
            match = await _running_match([ECHO, SILENT], rounds=2)
            return match, await match.run()

        match, results = asyncio.run(scenario())
        assert results["terminated"] == {1: "timeout"}
        assert all(1 not in r for r in results["rounds"])
        assert match.agents[1].status is AgentStatus.TERMINATED
        assert any(e["kind"] == "terminated" and e["agent_id"] == 1 for e in match.events)


# ---------------------------------------------------------------------------
# Pause / resume
# ---------------------------------------------------------------------------

class TestStopResume:
    def test_stop_then_resume_keeps_every_round(self):
        async def scenario():
            match = await _running_match([ECHO, ECHO], rounds=4, stop_after=2)
            task = asyncio.create_task(match.run())
            for _ in range(200):
                if match.status is MatchStatus.STOPPED:
                    break
                await asyncio.sleep(0.01)
            paused_status = match.status
            paused_rounds = len(match.state["rounds"])
            # still paused a moment later; nothing collected meanwhile
            await asyncio.sleep(0.1)
            still_paused = len(match.state["rounds"])
            agents_alive = all(a.process.alive for a in match.agents)
            assert match.resume() is True
            resumed_status = match.status
            results = await asyncio.wait_for(task, timeout=10.0)
            return paused_status, paused_rounds, still_paused, agents_alive, resumed_status, results

        paused, paused_rounds, still_paused, alive, resumed, results = asyncio.run(scenario())
        assert paused is MatchStatus.STOPPED
        assert paused_rounds == 2
        assert still_paused == 2
        assert alive is True
        assert resumed is MatchStatus.RUNNING
        assert [r[0] for r in results["rounds"]] == ["0,0.0", "1,1.5", "2,3.0", "3,4.5"]

    def test_stop_and_resume_report_flags(self):
        async def scenario():
            match = await _running_match([ECHO])
            flags = [match.stop(), match.resume()]
            await match.destroy()
            return flags

        assert asyncio.run(scenario()) == [False, False]


# ---------------------------------------------------------------------------
# Destroy
# ---------------------------------------------------------------------------

class TestDestroy:
    def test_destroy_mid_round(self):
        async def scenario():
            match = Match(
                CountingDesign(),
                [SILENT],
                MatchConfig(engine=EngineConfig(timeout=TimeoutConfig(active=False))),
            )
            await match.initialize()
            task = asyncio.create_task(match.run())
            await asyncio.sleep(0.2)
            await match.destroy()
            await match.destroy()
            try:
                await asyncio.wait_for(task, timeout=5.0)
            except DimensionError as err:
                return match, err
            return match, None

        match, err = asyncio.run(scenario())
        assert err is not None and err.kind is ErrorKind.MATCH_DESTROYED
        assert match.status is MatchStatus.DESTROYED
        assert match.agents[0].process.returncode is not None

    def test_destroy_while_stopped(self):
        async def scenario():
            match = await _running_match([ECHO], rounds=5, stop_after=1)
            task = asyncio.create_task(match.run())
            for _ in range(200):
                if match.status is MatchStatus.STOPPED:
                    break
                await asyncio.sleep(0.01)
            await match.destroy()
            with pytest.raises(DimensionError) as exc_info:
                await asyncio.wait_for(task, timeout=5.0)
            return exc_info.value

        assert asyncio.run(scenario()).kind is ErrorKind.MATCH_DESTROYED

    def test_mutations_after_destroy_raise(self):
        async def scenario():
            match = await _running_match([ECHO])
            await match.destroy()
            return match

        match = asyncio.run(scenario())
        for call in (lambda: match.send("x", 0), lambda: match.send_all("x"), match.stop, match.resume):
            with pytest.raises(DimensionError) as exc_info:
                call()
            assert exc_info.value.kind is ErrorKind.MATCH_DESTROYED
        with pytest.raises(DimensionError) as exc_info:
            asyncio.run(match.run())
        assert exc_info.value.kind is ErrorKind.MATCH_DESTROYED


# ---------------------------------------------------------------------------
# Error routing
# ---------------------------------------------------------------------------

class TestThrow:
    def test_match_warn_is_recorded_not_fatal(self):
        async def scenario():
            match = await _running_match([ECHO], rounds=2, throw="warn")
            await match.run()
            return match

        match = asyncio.run(scenario())
        assert match.status is MatchStatus.FINISHED
        warns = [e for e in match.events if e["kind"] == "match_warn"]
        assert len(warns) == 2
        assert b"[match_warn] timestep 0: suspicious move" in match.agent_log(0)

    def test_match_error_is_recorded_not_fatal(self):
        async def scenario():
            match = await _running_match([ECHO], rounds=1, throw="error")
            await match.run()
            return match

        match = asyncio.run(scenario())
        assert match.status is MatchStatus.FINISHED
        assert [e["kind"] for e in match.events] == ["match_error"]

    def test_token_error_becomes_match_error(self):
        async def scenario():
            match = await _running_match([ECHO], rounds=1, throw="token")
            await match.run()
            return match

        match = asyncio.run(scenario())
        assert match.status is MatchStatus.FINISHED
        assert [e["kind"] for e in match.events] == ["match_error"]

    def test_fatal_throw_ends_match_in_error(self):
        async def scenario():
            match = await _running_match([ECHO, ECHO], rounds=3, throw="fatal")
            try:
                await match.run()
            except DimensionError as err:
                return match, err
            return match, None

        match, err = asyncio.run(scenario())
        assert err is not None and err.kind is ErrorKind.FATAL
        assert match.status is MatchStatus.ERROR
        assert match.results is None
        assert all(not a.process.alive for a in match.agents)
        with pytest.raises(DimensionError) as exc_info:
            match.send("late", 0)
        assert exc_info.value.kind is ErrorKind.MATCH_DESTROYED

    def test_fatal_throw_between_rounds_kills_agents(self):
        async def scenario():
            match = await _running_match([ECHO, SILENT])
            with pytest.raises(DimensionError) as exc_info:
                match.throw(1, DimensionError.fatal("referee gave up"))
            status = match.status
            # stdout reaches EOF only once the process is gone; neither kit exits by itself
            for agent in match.agents:
                while await agent.read_line(timeout=5.0) is not None:
                    pass
            await match.destroy()
            return match, exc_info.value, status

        match, err, status = asyncio.run(scenario())
        assert err.kind is ErrorKind.FATAL
        assert status is MatchStatus.ERROR
        assert match.engine.closed
        assert match.finished_at is not None
        assert all(a.process.returncode is not None for a in match.agents)

    def test_design_exception_puts_match_in_error(self):
        async def scenario():
            match = await _running_match([ECHO], throw="crash")
            try:
                await match.run()
            except ZeroDivisionError:
                return match
            return None

        match = asyncio.run(scenario())
        assert match is not None
        assert match.status is MatchStatus.ERROR

    def test_unknown_agent_id_rejected(self):
        match = Match(CountingDesign(), [ECHO], _config())
        with pytest.raises(ValueError):
            match.throw(7, DimensionError.match_error("who?"))


class TestAgentLog:
    def test_stderr_is_kept_per_agent(self):
        async def scenario():
            match = await _running_match([STDERR_ECHO, ECHO], rounds=2)
            await match.run()
            return match

        match = asyncio.run(scenario())
        assert b"turn 0" in match.agent_log(0)
        assert b"turn 1" in match.agent_log(0)
        assert match.agent_log(1) == b""
