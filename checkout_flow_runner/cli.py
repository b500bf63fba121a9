"""CLI entry point for the checkout flow runner."""

import argparse
import asyncio
import logging
import os
import sys
import time
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from checkout_flow_runner.aggregator import (
    exit_code,
    log_results_summary,
    write_results,
)
from checkout_flow_runner.case_loader import load_test_cases
from checkout_flow_runner.config import RunnerConfig
from checkout_flow_runner.executor import TestExecutor
from checkout_flow_runner.scheduler import WorkerPool

DEFAULT_CASES_DIR = Path("./test-cases")


def positive_int(value: str) -> int:
    """Argparse type accepting integers >= 1."""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


async def run(
    environ: Mapping[str, str],
    directory: Path = DEFAULT_CASES_DIR,
    file: Path | None = None,
    parallel: int | None = None,
) -> int:
    """Run all test cases and return the process exit code."""
    log = logging.getLogger("checkout_flow_runner")

    try:
        config = RunnerConfig.from_env(environ)
    except ValidationError as exc:
        log.error("Invalid configuration: %s", exc)
        return 1
    if parallel is not None:
        config = config.model_copy(update={"parallel_count": parallel})

    try:
        cases = load_test_cases(directory=directory, file=file)
    except (FileNotFoundError, ValueError) as exc:
        log.error("%s", exc)
        return 1

    if not cases:
        log.info("No test cases found")
        return 0

    pool = WorkerPool(
        executor=TestExecutor.from_config(config, environ),
        config=config,
    )

    started_at = datetime.now()
    started = time.monotonic()
    results = await pool.run(cases)
    duration = time.monotonic() - started

    results_file = write_results(results, config.results_dir, started_at)
    log.info("Results saved to: %s", results_file)
    log_results_summary(log, results, duration)

    return exit_code(results)


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Run JSON checkout flows in parallel browser sessions"
    )
    parser.add_argument(
        "--dir",
        dest="directory",
        type=Path,
        default=DEFAULT_CASES_DIR,
        help="Directory of test case JSON files (names starting with _ skipped)",
    )
    parser.add_argument(
        "--file",
        type=Path,
        default=None,
        help="Run a single test case file instead of a directory",
    )
    parser.add_argument(
        "--parallel",
        type=positive_int,
        default=None,
        help="Number of parallel workers (overrides PARALLEL_COUNT)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_status = asyncio.run(
        run(
            environ=dict(os.environ),
            directory=args.directory,
            file=args.file,
            parallel=args.parallel,
        )
    )
    sys.exit(exit_status)


if __name__ == "__main__":  # pragma: no cover
    main()
