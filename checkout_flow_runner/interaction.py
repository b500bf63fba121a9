"""Click with recovery for animation- and overlay-heavy pages."""

import logging
from dataclasses import dataclass, field

from checkout_flow_runner.browser.base import BrowserSession
from checkout_flow_runner.errors import (
    ActionTimeoutError,
    FlowError,
    InteractionError,
    TransientUIError,
)
from checkout_flow_runner.models.actions import Target
from checkout_flow_runner.retry import AttemptTracker, split_timeout

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class ClickRecoveryPolicy:
    """Knobs of the click recovery loop. Durations in milliseconds."""

    max_attempts: int = 3
    cooldown_ms: float = 2000
    error_dialog: Target = field(
        default_factory=lambda: Target(selector="text=再度お試しください")
    )
    dismiss_button: Target = field(default_factory=lambda: Target(selector="text=OK"))
    dismiss_timeout_ms: float = 3000
    dismiss_pause_ms: float = 1000


async def click_with_recovery(
    session: BrowserSession,
    target: Target,
    *,
    timeout: float,
    policy: ClickRecoveryPolicy,
) -> None:
    """Click ``target``, recovering from transient failures.

    The timeout is split evenly over the attempts. From the second attempt the
    click is forced through intercepting overlays. Between attempts a known
    error dialog is dismissed if shown, then the page is given time to settle.

    Raises:
        TransientUIError: When every attempt failed; chained to the last error

    """
    tracker = AttemptTracker(max_attempts=policy.max_attempts)
    attempt_timeout = split_timeout(timeout, policy.max_attempts)

    while True:
        attempt = tracker.start()
        try:
            await session.wait_for_loading_to_disappear()
            await session.click(target, timeout=attempt_timeout, force=attempt > 1)
        except (ActionTimeoutError, InteractionError) as exc:
            log.info(
                "Click attempt %d/%d failed for %s: %s",
                attempt,
                policy.max_attempts,
                target.describe(),
                exc,
            )
            if not tracker.fail(exc):
                raise TransientUIError(target.describe(), attempt, exc) from exc
            await _recover(session, policy)
        else:
            tracker.succeed()
            if attempt > 1:
                log.info(
                    "Click on %s recovered on attempt %d", target.describe(), attempt
                )
            return


async def _recover(session: BrowserSession, policy: ClickRecoveryPolicy) -> None:
    """Dismiss the transient error dialog if present and let the page settle."""
    try:
        if await session.is_visible(policy.error_dialog):
            log.info("Dismissing error dialog %s", policy.error_dialog.describe())
            await session.click(
                policy.dismiss_button, timeout=policy.dismiss_timeout_ms
            )
            await session.wait(policy.dismiss_pause_ms)
    except FlowError as exc:
        log.debug("Error dialog dismissal failed: %s", exc)

    await session.wait(policy.cooldown_ms)
    await session.wait_for_page_ready()
