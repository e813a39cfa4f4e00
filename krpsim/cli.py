"""
Command line entry points.

Usage:
    krpsim <problem> <delay> [-s STRATEGY ...] [-o DIR] [--seed N] [-v]
    krpsim-verif <problem> <trace> [-v]

Examples:
    # Every strategy, 10 seconds each, traces next to the current directory
    krpsim resources/simple 10

    # Only A* and the genetic algorithm, reproducible
    krpsim resources/ikea 5 -s astar -s genetic --seed 42 -o traces

    # Check a trace produced above
    krpsim-verif resources/ikea traces/ikea_astar.log
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from krpsim.cancellation import CancellationToken, cancel_on_interrupt, interrupted, release_interrupt
from krpsim.errors import ModelError
from krpsim.parser import load_problem
from krpsim.strategies import STRATEGIES, run_strategy
from krpsim.tracelog import TraceWriter, read_trace
from krpsim.verifier import TraceVerifier

logger = logging.getLogger(__name__)


def _configure_logging(verbose: int):
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(name)s %(levelname)s: %(message)s")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="krpsim",
        description="Schedule processes to optimize a resource-flow problem",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Strategies: {', '.join(STRATEGIES)} (default: all)",
    )
    parser.add_argument("file", type=Path, help="Problem description file")
    parser.add_argument("delay", type=float, help="Time budget per strategy in seconds")
    parser.add_argument(
        "-s",
        "--strategy",
        dest="strategies",
        action="append",
        choices=list(STRATEGIES),
        help="Strategy to run, may be repeated",
    )
    parser.add_argument("-o", "--output-dir", type=Path, default=Path("."), help="Directory for trace logs (default: .)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the stochastic strategies")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging, repeat for debug")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        problem = load_problem(args.file)
    except (ModelError, OSError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    strategies = args.strategies or list(STRATEGIES)
    try:
        args.output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Problem: {args.file}")
    print(f"Stocks: {len(problem.stocks)}, processes: {len(problem.processes)}, optimize: {';'.join(problem.objectives)}")
    print(f"Delay: {args.delay}s per strategy")

    writer = TraceWriter()
    try:
        for name in strategies:
            token = CancellationToken()
            # already cancelled when registered after an interrupt
            cancel_on_interrupt(token)
            if interrupted():
                logger.info("Interrupted, %s keeps its initial result", name)
            else:
                token.start_timer(args.delay)
            try:
                schedule = run_strategy(name, problem, token, seed=args.seed)
            finally:
                token.stop_timer()
                release_interrupt(token)

            print(f"\n{name}:")
            suffix = " (minimized)" if problem.optimize_time else ""
            print(f"  elapsed time: {schedule.time}{suffix}")
            print(f"  runs: {schedule.runs} ({len(schedule.log)} records)")
            for objective in problem.stock_objectives:
                print(f"  {objective}: {schedule.stocks.get(objective, 0)}")

            path = args.output_dir / f"{args.file.stem}_{name}.log"
            writer.submit(schedule, path)
    finally:
        try:
            paths = writer.join()
        except OSError as e:
            print(f"Error writing trace: {e}")
            sys.exit(1)

    print()
    for path in paths:
        print(f"Trace saved to: {path}")


def build_verify_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="krpsim-verif",
        description="Replay a trace log against a problem and check its final stocks",
    )
    parser.add_argument("file", type=Path, help="Problem description file")
    parser.add_argument("trace", type=Path, help="Trace log to check")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging, repeat for debug")
    return parser


def verify_main(argv=None):
    args = build_verify_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        problem = load_problem(args.file)
        trace = read_trace(args.trace)
    except (ModelError, OSError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    for warning in trace.warnings:
        logger.warning(warning)

    verifier = TraceVerifier(problem)
    if verifier.validate(trace.firings, trace.final_stocks):
        print("Execution is valid.")
    else:
        print(f"Execution is invalid: {verifier.errors[0]}")
        sys.exit(1)


if __name__ == "__main__":
    main()
