"""Like echo.py, but also writes a line to stderr each turn."""

import sys

n = 0
for _ in sys.stdin:
    sys.stderr.write(f"turn {n}\n")
    sys.stderr.flush()
    sys.stdout.write(f"{n}\nD_FINISH\n")
    sys.stdout.flush()
    n += 1
