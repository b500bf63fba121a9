"""Models for test execution results."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from checkout_flow_runner.models.case import TestInfo


@dataclass(frozen=True, kw_only=True)
class TestResult:
    """Outcome of the final attempt of one test case.

    Earlier failed attempts are only reflected in ``attempts``.
    """

    __test__ = False

    test_id: str
    test_info: TestInfo
    success: bool
    price: str | None = None
    error: str | None = None
    screenshots: Sequence[str] = field(default_factory=tuple)
    duration: float = 0.0
    timestamp: str = ""
    worker_id: int | None = None
    attempts: int = 1

    def to_record(self) -> dict[str, Any]:
        """Serialize to the camelCase record written to the results file."""
        return {
            "testId": self.test_id,
            "testInfo": self.test_info.model_dump(by_alias=True),
            "success": self.success,
            "price": self.price,
            "error": self.error,
            "screenshots": list(self.screenshots),
            "duration": round(self.duration, 3),
            "timestamp": self.timestamp,
            "workerId": self.worker_id,
            "attempts": self.attempts,
        }
