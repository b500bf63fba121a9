"""Execution of one test case in its own browser session."""

import logging
import time
from collections.abc import Callable, Mapping
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Self, TypeAlias

from checkout_flow_runner.browser.base import BrowserSession
from checkout_flow_runner.browser.playwright_session import PlaywrightSession
from checkout_flow_runner.config import RunnerConfig
from checkout_flow_runner.credentials import CredentialResolver, Credentials
from checkout_flow_runner.dispatcher import ActionDispatcher, DispatchContext
from checkout_flow_runner.interaction import ClickRecoveryPolicy
from checkout_flow_runner.models.actions import TargetedAction, TestAction
from checkout_flow_runner.models.case import TestCase
from checkout_flow_runner.models.result import TestResult
from checkout_flow_runner.price import extract_price

log = logging.getLogger(__name__)

SessionFactory: TypeAlias = Callable[
    [TestCase, Credentials], AbstractAsyncContextManager[BrowserSession]
]


def describe_action(action: TestAction) -> str:
    """Return the target or payload of an action for progress lines."""
    if isinstance(action, TargetedAction) and (target := action.target) is not None:
        return target.describe()
    for attribute in ("value", "url_pattern"):
        if value := getattr(action, attribute, None):
            return str(value)
    return ""


def error_screenshot_name(test_id: str, attempt: int) -> str:
    """File name of the screenshot taken when an attempt fails."""
    if attempt <= 1:
        return f"{test_id}_error.png"
    return f"{test_id}_error_attempt{attempt}.png"


@dataclass(kw_only=True)
class _Progress:
    """What an attempt has captured so far; survives a failing action."""

    screenshots: list[str] = field(default_factory=list)
    price: str | None = None


@dataclass(frozen=True, kw_only=True)
class TestExecutor:
    """Runs the actions of a test case strictly in order."""

    __test__ = False

    config: RunnerConfig
    credentials: CredentialResolver
    session_factory: SessionFactory = PlaywrightSession.open
    dispatcher: ActionDispatcher = field(default_factory=ActionDispatcher)

    @classmethod
    def from_config(cls, config: RunnerConfig, environ: Mapping[str, str]) -> Self:
        """Create an executor wired from the runner configuration."""
        return cls(
            config=config,
            credentials=CredentialResolver(
                environ=dict(environ), policy=config.credential_policy
            ),
            dispatcher=ActionDispatcher(
                click_policy=ClickRecoveryPolicy(
                    max_attempts=config.click_attempts,
                    cooldown_ms=config.click_cooldown_ms,
                )
            ),
        )

    async def run(
        self, case: TestCase, *, worker_id: int, attempt: int = 1
    ) -> TestResult:
        """Run one attempt of a test case.

        Never raises: any failure becomes an unsuccessful result that still
        carries the screenshots and price captured before the failure.
        """
        started = time.monotonic()
        prefix = f"[W{worker_id}][{case.test_id}]"
        progress = _Progress()

        try:
            credentials = self.credentials.resolve(case.credential_profile, worker_id)
            log.debug("%s Logging in as %s", prefix, credentials.masked_user)

            async with self.session_factory(case, credentials) as session:
                try:
                    await self._execute(session, case, credentials, progress, prefix)
                except Exception as exc:
                    log.warning("%s Attempt %d failed: %s", prefix, attempt, exc)
                    await self._salvage(session, case, attempt, progress, prefix)
                    return self._result(
                        case, progress, started, worker_id, attempt, error=exc
                    )
        except Exception as exc:
            log.error("%s Browser session failed: %s", prefix, exc)
            return self._result(case, progress, started, worker_id, attempt, error=exc)

        return self._result(case, progress, started, worker_id, attempt)

    async def _execute(
        self,
        session: BrowserSession,
        case: TestCase,
        credentials: Credentials,
        progress: _Progress,
        prefix: str,
    ) -> None:
        """Open the start page and dispatch every action in order."""
        await session.goto(case.url, timeout=self.config.navigation_timeout_ms)
        await session.wait_for_page_ready()

        context = DispatchContext(
            test_id=case.test_id,
            credentials=credentials,
            screenshot_dir=self.config.screenshot_dir,
        )
        total = len(case.actions)

        for index, action in enumerate(case.actions, start=1):
            log.info(
                "%s [%d/%d] %s %s",
                prefix,
                index,
                total,
                action.type,
                describe_action(action),
            )
            outcome = await self.dispatcher.dispatch(session, action, context)

            if outcome.value is not None:
                log.debug("%s %s returned %r", prefix, action.type, outcome.value)

            if outcome.screenshot is not None:
                progress.screenshots.append(str(outcome.screenshot))
                if self.config.confirmation_marker in await session.current_url():
                    if price := await extract_price(session):
                        progress.price = price
                        log.info("%s Price: %s", prefix, price)

    async def _salvage(
        self,
        session: BrowserSession,
        case: TestCase,
        attempt: int,
        progress: _Progress,
        prefix: str,
    ) -> None:
        """Capture a failure screenshot and any price already on screen."""
        path = self.config.screenshot_dir / error_screenshot_name(case.test_id, attempt)
        try:
            self.config.screenshot_dir.mkdir(parents=True, exist_ok=True)
            await session.screenshot(path, full_page=True)
            progress.screenshots.append(str(path))
        except Exception as exc:
            log.warning("%s Failure screenshot not captured: %s", prefix, exc)

        if price := await extract_price(session):
            progress.price = price
            log.info("%s Price salvaged after failure: %s", prefix, price)

    def _result(
        self,
        case: TestCase,
        progress: _Progress,
        started: float,
        worker_id: int,
        attempt: int,
        error: BaseException | None = None,
    ) -> TestResult:
        return TestResult(
            test_id=case.test_id,
            test_info=case.test_info,
            success=error is None,
            price=progress.price,
            error=None if error is None else (str(error) or type(error).__name__),
            screenshots=tuple(progress.screenshots),
            duration=time.monotonic() - started,
            timestamp=datetime.now(timezone.utc).isoformat(),
            worker_id=worker_id,
            attempts=attempt,
        )
