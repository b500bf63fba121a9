"""Playwright implementation of the browser session."""

import logging
from collections.abc import (
    AsyncGenerator,
    Awaitable,
    Callable,
    Iterator,
    Mapping,
    Sequence,
)
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from checkout_flow_runner.browser.base import (
    DEFAULT_SETTLE_TIMEOUT_MS,
    BrowserSession,
    ResponseInfo,
)
from checkout_flow_runner.credentials import Credentials
from checkout_flow_runner.errors import (
    ActionTimeoutError,
    FlowError,
    InteractionError,
    NavigationError,
)
from checkout_flow_runner.models.actions import Target
from checkout_flow_runner.models.case import TestCase

log = logging.getLogger(__name__)

VIEWPORTS: Mapping[str, Mapping[str, int]] = {
    "pc": {"width": 1280, "height": 720},
    "mobile": {"width": 375, "height": 667},
}

LOADING_SELECTORS = (
    ".loading",
    ".loader",
    ".spinner",
    '[class*="loading"]',
    '[class*="spinner"]',
    ".overlay",
    "#loading",
    ".modal-backdrop",
)

NETWORK_IDLE_TIMEOUT_MS = 10_000


@contextmanager
def translate_errors(
    description: str, error_cls: type[FlowError] = InteractionError
) -> Iterator[None]:
    """Re-raise Playwright errors as flow errors."""
    try:
        yield
    except PlaywrightTimeoutError as exc:
        raise ActionTimeoutError(f"{description}: {exc.message}") from exc
    except PlaywrightError as exc:
        raise error_cls(f"{description}: {exc.message}") from exc


@dataclass(frozen=True, kw_only=True)
class PlaywrightSession(BrowserSession):
    """Browser session backed by one Playwright page."""

    page: Page = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def open(
        cls, case: TestCase, credentials: Credentials
    ) -> AsyncGenerator["PlaywrightSession", None]:
        """Launch an isolated browser for a test case.

        Teardown closes the context before the browser on every exit path.
        """
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=case.headless)
            try:
                context_options: dict[str, Any] = {"viewport": VIEWPORTS[case.device]}
                if (http_credentials := credentials.http_credentials) is not None:
                    context_options["http_credentials"] = http_credentials
                context = await browser.new_context(**context_options)
                try:
                    page = await context.new_page()
                    yield cls(page=page)
                finally:
                    await context.close()
            finally:
                await browser.close()

    def locate(self, target: Target) -> Locator:
        """Resolve a target to a locator.

        Selector strings match the first element, role lookups stay strict.
        """
        if target.selector is not None:
            return self.page.locator(target.selector).first
        if target.role is None:
            raise ValueError("Target has neither selector nor role")
        return self.page.get_by_role(
            target.role,  # type: ignore[arg-type]
            name=target.name,
            exact=target.exact,
        )

    async def goto(self, url: str, *, timeout: float) -> None:
        with translate_errors(f"goto {url}", NavigationError):
            await self.page.goto(url, timeout=timeout, wait_until="networkidle")

    async def click(
        self, target: Target, *, timeout: float, force: bool = False
    ) -> None:
        with translate_errors(f"click {target.describe()}"):
            await self.locate(target).click(timeout=timeout, force=force)

    async def fill(self, target: Target, value: str, *, timeout: float) -> None:
        with translate_errors(f"fill {target.describe()}"):
            await self.locate(target).fill(value, timeout=timeout)

    async def select_option(
        self, target: Target, value: str, *, timeout: float
    ) -> None:
        with translate_errors(f"select {target.describe()}"):
            await self.locate(target).select_option(value, timeout=timeout)

    async def set_checked(
        self, target: Target, checked: bool, *, timeout: float
    ) -> None:
        with translate_errors(f"set checked={checked} on {target.describe()}"):
            if checked:
                await self.locate(target).check(timeout=timeout)
            else:
                await self.locate(target).uncheck(timeout=timeout)

    async def hover(self, target: Target, *, timeout: float) -> None:
        with translate_errors(f"hover {target.describe()}"):
            await self.locate(target).hover(timeout=timeout)

    async def scroll_into_view(self, target: Target, *, timeout: float) -> None:
        with translate_errors(f"scroll to {target.describe()}"):
            await self.locate(target).scroll_into_view_if_needed(timeout=timeout)

    async def drag_and_drop(
        self, source: Target, destination: Target, *, timeout: float
    ) -> None:
        with translate_errors(
            f"drag {source.describe()} to {destination.describe()}"
        ):
            await self.locate(source).drag_to(
                self.locate(destination), timeout=timeout
            )

    async def press(self, key: str) -> None:
        with translate_errors(f"press {key}"):
            await self.page.keyboard.press(key)

    async def text_content(self, target: Target, *, timeout: float) -> str | None:
        with translate_errors(f"read text of {target.describe()}"):
            return await self.locate(target).text_content(timeout=timeout)

    async def get_attribute(
        self, target: Target, name: str, *, timeout: float
    ) -> str | None:
        with translate_errors(f"read attribute {name} of {target.describe()}"):
            return await self.locate(target).get_attribute(name, timeout=timeout)

    async def input_value(self, target: Target, *, timeout: float) -> str:
        with translate_errors(f"read value of {target.describe()}"):
            return await self.locate(target).input_value(timeout=timeout)

    async def current_url(self) -> str:
        return self.page.url

    async def title(self) -> str:
        with translate_errors("read title"):
            return await self.page.title()

    async def evaluate(self, expression: str) -> Any:
        with translate_errors("evaluate script"):
            return await self.page.evaluate(expression)

    async def wait_for_visible(self, target: Target, *, timeout: float) -> None:
        with translate_errors(f"wait for {target.describe()}"):
            await self.locate(target).first.wait_for(state="visible", timeout=timeout)

    async def is_visible(self, target: Target) -> bool:
        with translate_errors(f"check visibility of {target.describe()}"):
            return await self.locate(target).first.is_visible()

    async def wait(self, duration: float) -> None:
        await self.page.wait_for_timeout(duration)

    async def wait_for_response(
        self,
        url_pattern: str,
        *,
        timeout: float,
        trigger: Callable[[], Awaitable[None]] | None = None,
        read_json: bool = False,
    ) -> ResponseInfo:
        description = f"wait for response matching '{url_pattern}'"
        with translate_errors(description):
            async with self.page.expect_response(
                lambda response: url_pattern in response.url, timeout=timeout
            ) as response_info:
                if trigger is not None:
                    await trigger()
            response = await response_info.value

            body = None
            if read_json:
                try:
                    body = await response.json()
                except ValueError as exc:
                    raise InteractionError(
                        f"{description}: response from {response.url} is not JSON"
                    ) from exc

        return ResponseInfo(url=response.url, status=response.status, body=body)

    async def screenshot(self, path: Path, *, full_page: bool = False) -> None:
        with translate_errors(f"screenshot {path.name}"):
            await self.page.screenshot(path=path, full_page=full_page)

    async def set_input_files(
        self, target: Target, paths: Sequence[Path], *, timeout: float
    ) -> None:
        with translate_errors(f"upload to {target.describe()}"):
            await self.locate(target).set_input_files(list(paths), timeout=timeout)

    async def query_text(self, selector: str) -> str | None:
        with translate_errors(f"query {selector}"):
            handle = await self.page.query_selector(selector)
            if handle is None:
                return None
            return await handle.text_content()

    async def body_text(self) -> str:
        with translate_errors("read page text"):
            return await self.page.inner_text("body")

    async def wait_for_loading_to_disappear(
        self, timeout: float = DEFAULT_SETTLE_TIMEOUT_MS
    ) -> None:
        for selector in LOADING_SELECTORS:
            try:
                if await self.page.query_selector(selector) is not None:
                    await self.page.wait_for_selector(
                        selector, state="hidden", timeout=timeout
                    )
            except PlaywrightError as exc:
                log.debug(
                    "Loading indicator %s did not hide: %s", selector, exc.message
                )

    async def wait_for_page_ready(self) -> None:
        try:
            await self.page.wait_for_load_state(
                "networkidle", timeout=NETWORK_IDLE_TIMEOUT_MS
            )
        except PlaywrightError as exc:
            log.debug("Network did not go idle: %s", exc.message)
        await super().wait_for_page_ready()
