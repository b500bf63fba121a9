"""Attempt bookkeeping shared by click recovery and whole-test retries.

State transitions::

    PENDING --start--> IN_FLIGHT(1)
    IN_FLIGHT(n) --succeed--> RECOVERED
    IN_FLIGHT(n) --fail, n < max--> IN_FLIGHT(n) (awaiting start of n + 1)
    IN_FLIGHT(n) --fail, n == max--> EXHAUSTED
"""

from dataclasses import dataclass
from enum import StrEnum


class AttemptState(StrEnum):
    """Lifecycle state of a retried operation."""

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    RECOVERED = "recovered"
    EXHAUSTED = "exhausted"


def split_timeout(total_ms: float, attempts: int) -> float:
    """Divide an overall timeout evenly across attempts."""
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")
    return total_ms / attempts


def linear_backoff(attempt: int, base_delay_ms: float) -> float:
    """Return the delay in seconds to wait after failed attempt ``attempt``."""
    return attempt * base_delay_ms / 1000


@dataclass(kw_only=True)
class AttemptTracker:
    """Mutable attempt counter enforcing the transitions above."""

    max_attempts: int
    state: AttemptState = AttemptState.PENDING
    attempt: int = 0
    last_error: BaseException | str | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(
                f"max_attempts must be at least 1, got {self.max_attempts}"
            )

    @property
    def finished(self) -> bool:
        """Whether a terminal state has been reached."""
        return self.state in (AttemptState.RECOVERED, AttemptState.EXHAUSTED)

    def start(self) -> int:
        """Begin the next attempt and return its 1-based number."""
        if self.finished:
            raise RuntimeError(f"Cannot start an attempt in state {self.state}")
        if self.attempt >= self.max_attempts:
            raise RuntimeError("Attempt budget already used")
        self.attempt += 1
        self.state = AttemptState.IN_FLIGHT
        return self.attempt

    def succeed(self) -> None:
        """Mark the in-flight attempt as successful."""
        self._require_in_flight()
        self.state = AttemptState.RECOVERED

    def fail(self, error: BaseException | str | None = None) -> bool:
        """Record a failed attempt.

        Returns:
            True if another attempt may be started, False once exhausted

        """
        self._require_in_flight()
        self.last_error = error
        if self.attempt >= self.max_attempts:
            self.state = AttemptState.EXHAUSTED
            return False
        return True

    def _require_in_flight(self) -> None:
        if self.state is not AttemptState.IN_FLIGHT:
            raise RuntimeError(f"No attempt in flight (state {self.state})")
