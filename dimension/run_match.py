"""CLI entrypoint: python -m dimension.run_match

Usage:
    python -m dimension.run_match bots/rock.py bots/paper.py --best-of 5 --timeout 0.5
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dimension.config.schema import DimensionConfig, EngineConfig, MatchConfig, TimeoutConfig
from dimension.core.errors import DimensionError
from dimension.core.types import FinishPolicy
from dimension.designs.rps import RockPaperScissorsDesign
from dimension.dimension import create


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run one rock-paper-scissors match between two agent programs."
    )
    parser.add_argument(
        "agents",
        nargs=2,
        metavar="FILE",
        help="Agent program files, in id order.",
    )
    parser.add_argument(
        "--best-of",
        type=int,
        default=3,
        help="Decisive rounds to play (ties do not count).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=1.0,
        help="Seconds each agent has per round.",
    )
    parser.add_argument(
        "--no-timeout",
        action="store_true",
        help="Wait for agents indefinitely.",
    )
    parser.add_argument(
        "--line-count",
        type=int,
        default=None,
        help="End turns after this many lines instead of on the finish symbol.",
    )
    parser.add_argument(
        "--storage-dir",
        type=Path,
        default=None,
        help="Write match artifacts under this directory.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level name (DEBUG, INFO, WARNING, ...).",
    )
    return parser.parse_args(argv)


def _match_config(args: argparse.Namespace) -> MatchConfig:
    engine = EngineConfig(
        command_finish_policy=(
            FinishPolicy.LINE_COUNT if args.line_count else FinishPolicy.FINISH_SYMBOL
        ),
        command_lines=args.line_count or 1,
        timeout=TimeoutConfig(active=not args.no_timeout, max=args.timeout),
    )
    return MatchConfig(engine=engine, design_options={"best_of": args.best_of})


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    dimension = create(
        RockPaperScissorsDesign("Rock Paper Scissors"),
        DimensionConfig(
            name="cli",
            logging_level=args.log_level,
            storage_dir=args.storage_dir,
        ),
    )
    try:
        results = asyncio.run(dimension.run_match(args.agents, _match_config(args)))
    except DimensionError as err:
        print(f"ERROR: {err}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(results, indent=2, default=str))
    if args.storage_dir is not None:
        (match,) = dimension.matches.values()
        print(f"Artifacts saved to: {args.storage_dir / match.id}")


if __name__ == "__main__":
    main()
