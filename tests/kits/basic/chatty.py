"""Answers every line with a move followed by noise, in a single write."""

import sys

n = 0
for _ in sys.stdin:
    sys.stdout.write(f"move,{n}\nnoise\nmore,noise\nD_FINISH\n")
    sys.stdout.flush()
    n += 1
