"""Minimal agent-side helpers for the rock-paper-scissors kits."""

import sys

FINISH = "D_FINISH"


def read_line():
    """Next line from the match, or None once stdin closes."""
    line = sys.stdin.readline()
    if not line:
        return None
    return line.rstrip("\n")


def end_turn(*lines):
    """Print this turn's lines followed by the finish symbol."""
    sys.stdout.write("".join(f"{line}\n" for line in lines) + FINISH + "\n")
    sys.stdout.flush()


def play(choose):
    """Standard RPS loop; ``choose(opponent_moves)`` picks the next move."""
    read_line()  # own id
    read_line()  # best of
    opponent_moves = []
    while True:
        end_turn(choose(opponent_moves))
        winner = read_line()
        opponent = read_line()
        if winner is None or opponent is None:
            return
        opponent_moves.append(opponent)
