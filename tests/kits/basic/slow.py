"""Answers every line after a short delay."""

import sys
import time

for _ in sys.stdin:
    time.sleep(0.3)
    sys.stdout.write("late\nD_FINISH\n")
    sys.stdout.flush()
