"""Worker pool running test cases concurrently with whole-test retries."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Protocol

from checkout_flow_runner.config import RunnerConfig
from checkout_flow_runner.models.case import TestCase
from checkout_flow_runner.models.result import TestResult
from checkout_flow_runner.retry import AttemptTracker, linear_backoff

log = logging.getLogger(__name__)


class CaseRunner(Protocol):
    """Anything that runs one attempt of a test case."""

    async def run(
        self, case: TestCase, *, worker_id: int, attempt: int = 1
    ) -> TestResult: ...


@dataclass(kw_only=True)
class ResultLog:
    """Append-only collection of final results, one per test case."""

    _results: list[TestResult] = field(default_factory=list)

    def append(self, result: TestResult) -> int:
        """Add a final result and return how many results are recorded."""
        self._results.append(result)
        return len(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def snapshot(self) -> Sequence[TestResult]:
        """Return the results recorded so far, in completion order."""
        return tuple(self._results)


@dataclass(frozen=True, kw_only=True)
class WorkerPool:
    """Runs test cases on a fixed number of workers pulling from one queue."""

    executor: CaseRunner
    config: RunnerConfig

    async def run(self, cases: Sequence[TestCase]) -> Sequence[TestResult]:
        """Run every case to completion and return one result per case.

        Args:
            cases: Test cases in queue order

        Returns:
            Final results in completion order

        """
        if not cases:
            log.info("No test cases to run")
            return []

        queue: asyncio.Queue[TestCase] = asyncio.Queue()
        for case in cases:
            queue.put_nowait(case)
        results = ResultLog()

        log.info(
            "Running %d test(s) with %d parallel worker(s)",
            len(cases),
            self.config.parallel_count,
        )

        workers: list[asyncio.Task[None]] = []
        for worker_id in range(1, self.config.parallel_count + 1):
            if queue.empty():
                break
            if workers:
                await asyncio.sleep(self.config.worker_start_delay_ms / 1000)
                if queue.empty():
                    break
            workers.append(
                asyncio.create_task(
                    self._worker(worker_id, queue, results, len(cases)),
                    name=f"worker-{worker_id}",
                )
            )

        outcomes = await asyncio.gather(*workers, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                log.error("Worker crashed: %s", outcome, exc_info=outcome)

        return results.snapshot()

    async def _worker(
        self,
        worker_id: int,
        queue: asyncio.Queue[TestCase],
        results: ResultLog,
        total: int,
    ) -> None:
        """Pull cases until the queue is drained."""
        while True:
            try:
                case = queue.get_nowait()
            except asyncio.QueueEmpty:
                return

            info = case.test_info
            log.info(
                "[W%d] Start: %s (%s / %s / %s)",
                worker_id,
                case.test_id,
                info.option,
                info.shipping,
                info.payment,
            )

            result = await self._run_with_retries(case, worker_id)
            completed = results.append(result)

            log.info(
                "%s [W%d] Done: %s (%.1fs, attempt %d)%s [%d/%d]",
                "✅" if result.success else "❌",
                worker_id,
                case.test_id,
                result.duration,
                result.attempts,
                f" - {result.price}" if result.price else "",
                completed,
                total,
            )

            if not queue.empty():
                await asyncio.sleep(self.config.case_interval_ms / 1000)

    async def _run_with_retries(self, case: TestCase, worker_id: int) -> TestResult:
        """Run a case until it passes or the attempt budget is used up."""
        tracker = AttemptTracker(max_attempts=self.config.max_retries)

        while True:
            attempt = tracker.start()
            result = await self._run_attempt(case, worker_id, attempt)

            if result.success:
                tracker.succeed()
                break

            if not tracker.fail(result.error):
                log.warning(
                    "[W%d] %s failed after %d attempt(s): %s",
                    worker_id,
                    case.test_id,
                    attempt,
                    tracker.last_error,
                )
                break

            delay = linear_backoff(attempt, self.config.retry_delay_ms)
            log.info(
                "[W%d] Retrying %s in %.1fs (attempt %d/%d)",
                worker_id,
                case.test_id,
                delay,
                attempt + 1,
                self.config.max_retries,
            )
            await asyncio.sleep(delay)

        return replace(result, attempts=attempt, worker_id=worker_id)

    async def _run_attempt(
        self, case: TestCase, worker_id: int, attempt: int
    ) -> TestResult:
        """Run one attempt, turning an escaped exception into a failed result."""
        try:
            return await self.executor.run(case, worker_id=worker_id, attempt=attempt)
        except Exception as exc:
            log.error(
                "[W%d] %s raised unexpectedly: %s",
                worker_id,
                case.test_id,
                exc,
                exc_info=exc,
            )
            return TestResult(
                test_id=case.test_id,
                test_info=case.test_info,
                success=False,
                error=str(exc) or type(exc).__name__,
                timestamp=datetime.now(timezone.utc).isoformat(),
                worker_id=worker_id,
                attempts=attempt,
            )
