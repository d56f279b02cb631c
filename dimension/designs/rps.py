"""Rock-paper-scissors — two agents play a best-of-n.

Protocol (comma-delimited lines):
  initialize  each agent gets its own id, then everyone gets ``best_of``
  each round  agents answer with one of R, P or S and end their turn
  after it    everyone gets the round winner's id (-1 for a tie), then each
              agent gets its opponent's move

Ties do not count towards ``best_of``.  An invalid move is reported as a match
error and loses the round.  An agent that is terminated (timeout or crash)
forfeits: the other agent wins the match on the spot.
"""

from __future__ import annotations

from typing import Any

from dimension.core.design import Design
from dimension.core.errors import DimensionError
from dimension.core.types import Command, MatchStatus
from dimension.match.match import Match

VALID_MOVES = frozenset(("R", "P", "S"))
BEATS = {"R": "S", "P": "R", "S": "P"}

TIE = -1


def round_winner(move_0: str | None, move_1: str | None) -> int:
    """Winner id of one round given both moves; invalid/missing moves lose."""
    valid_0 = move_0 in VALID_MOVES
    valid_1 = move_1 in VALID_MOVES
    if not valid_0 and not valid_1:
        return TIE
    if not valid_0:
        return 1
    if not valid_1:
        return 0
    if move_0 == move_1:
        return TIE
    return 0 if BEATS[move_0] == move_1 else 1


class RockPaperScissorsDesign(Design):
    """Best-of-n rock-paper-scissors between exactly two agents."""

    async def initialize(self, match: Match) -> None:
        if len(match.agents) != 2:
            raise DimensionError.fatal(
                f"Rock-paper-scissors needs exactly 2 agents, got {len(match.agents)}."
            )
        best_of = int(match.config.design_options.get("best_of", 3))
        match.state = {
            "max_rounds": best_of,
            "results": [],
            "rounds": 0,
            "forfeit": None,
        }
        for agent in match.agents:
            match.send(agent.id, agent.id)
        match.send_all(best_of)

    async def update(self, match: Match, commands: list[Command]) -> MatchStatus | None:
        state = match.state

        alive = [agent.id for agent in match.agents if not agent.is_terminated]
        if len(alive) < 2:
            state["forfeit"] = alive[0] if alive else TIE
            return MatchStatus.FINISHED

        moves: dict[int, str | None] = {0: None, 1: None}
        for command in commands:
            try:
                moves[command.agent_id] = command.tokenizer().next_str().strip()
            except DimensionError as err:
                match.throw(command.agent_id, err)
        for agent_id, move in moves.items():
            if move not in VALID_MOVES:
                match.throw(
                    agent_id,
                    DimensionError.match_error(f"agent {agent_id}'s {move!r} is not a valid command!"),
                )

        winner = round_winner(moves[0], moves[1])
        state["results"].append(winner)
        if winner != TIE:
            state["rounds"] += 1

        match.send_all(winner)
        match.send(moves[1] or "", 0)
        match.send(moves[0] or "", 1)

        if state["rounds"] >= state["max_rounds"]:
            return MatchStatus.FINISHED
        return None

    async def get_results(self, match: Match) -> dict[str, Any]:
        state = match.state
        results: dict[str, Any] = {
            "scores": {0: 0, 1: 0},
            "ties": 0,
            "winner": "",
            "terminated": {
                agent_id: "terminated" for agent_id in sorted(match.terminated)
            },
        }
        for res in state["results"]:
            if res == TIE:
                results["ties"] += 1
            else:
                results["scores"][res] += 1

        forfeit = state["forfeit"]
        if forfeit is not None:
            results["winner"] = match.agents[forfeit].name if forfeit != TIE else "Tie"
        elif results["scores"][0] > results["scores"][1]:
            results["winner"] = match.agents[0].name
        elif results["scores"][0] < results["scores"][1]:
            results["winner"] = match.agents[1].name
        else:
            results["winner"] = "Tie"
        return results
