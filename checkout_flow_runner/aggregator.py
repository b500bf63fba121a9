"""Sorting, persistence and summary of final results."""

import json
import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from checkout_flow_runner.models.result import TestResult

STATUS_SYMBOLS = {
    True: "✅",
    False: "❌",
}

ERROR_PREVIEW_LENGTH = 80


def sort_results(results: Sequence[TestResult]) -> Sequence[TestResult]:
    """Order results by test id for deterministic reports."""
    return sorted(results, key=lambda result: result.test_id)


def write_results(
    results: Sequence[TestResult], results_dir: Path, started_at: datetime
) -> Path:
    """Write the sorted results to ``results_<timestamp>.json``.

    Returns:
        Path of the written file

    """
    results_dir.mkdir(parents=True, exist_ok=True)
    path = results_dir / f"results_{started_at.strftime('%Y%m%d_%H%M%S')}.json"
    records = [result.to_record() for result in sort_results(results)]
    path.write_text(
        json.dumps(records, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
    )
    return path


def log_results_summary(
    log: logging.Logger, results: Sequence[TestResult], duration: float
) -> None:
    """Log pass/fail lines, the price matrix and the failed tests."""
    ordered = sort_results(results)
    passed = sum(1 for result in ordered if result.success)

    log.info("=" * 80)
    log.info("Summary: %d/%d passed in %.1fs", passed, len(ordered), duration)
    log.info("=" * 80)

    for result in ordered:
        log.info(
            "%s %s (%.1fs, %d attempt(s))",
            STATUS_SYMBOLS[result.success],
            result.test_id,
            result.duration,
            result.attempts,
        )

    log.info("Price Matrix:")
    log.info("-" * 80)
    log.info(
        "| %-14s | %-12s | %-14s | %-10s |", "Option", "Shipping", "Payment", "Price"
    )
    log.info("-" * 80)
    for result in ordered:
        if result.success:
            info = result.test_info
            log.info(
                "| %-14s | %-12s | %-14s | %-10s |",
                info.option,
                info.shipping,
                info.payment,
                result.price or "N/A",
            )
    log.info("-" * 80)

    failed = [result for result in ordered if not result.success]
    if failed:
        log.info("Failed Tests:")
        for result in failed:
            log.info(
                "  %s: %s",
                result.test_id,
                (result.error or "")[:ERROR_PREVIEW_LENGTH],
            )


def exit_code(results: Sequence[TestResult]) -> int:
    """Return 0 when every result passed, 1 otherwise."""
    return 0 if all(result.success for result in results) else 1
