"""Error taxonomy for flow execution."""

from pathlib import Path


class FlowError(Exception):
    """Base for failures that abort the current attempt of a test case."""


class MissingTargetError(FlowError):
    """Raised when a targeted action carries neither a selector nor a role."""

    def __init__(self, action_type: str) -> None:
        super().__init__(
            f"Action '{action_type}' requires a 'selector' or a 'role' target"
        )
        self.action_type = action_type


class ActionTimeoutError(FlowError):
    """Raised when a single browser operation exceeds its timeout."""


class NavigationError(FlowError):
    """Raised when the browser fails to load a page."""


class InteractionError(FlowError):
    """Raised when the browser rejects an interaction for a reason other than time."""


class TransientUIError(FlowError):
    """Raised when a click keeps failing after every recovery attempt."""

    def __init__(self, description: str, attempts: int, last_error: BaseException):
        super().__init__(
            f"Click on {description} failed after {attempts} attempt(s): {last_error}"
        )
        self.attempts = attempts
        self.last_error = last_error


class UnknownActionWarning(UserWarning):
    """Emitted (logged, never raised) for an action type the dispatcher skips."""

    def __init__(self, action_type: str) -> None:
        super().__init__(f"Unknown action type: {action_type}")
        self.action_type = action_type


class IncompleteCredentialsError(Exception):
    """Raised in strict mode when a worker override has only half of its pair."""


class CaseLoadError(ValueError):
    """Raised when a test case file cannot be read or does not validate."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Invalid test case file {path}: {reason}")
        self.path = path
