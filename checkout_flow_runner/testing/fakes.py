"""In-memory browser session for exercising the engine without a browser."""

from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from checkout_flow_runner.browser.base import BrowserSession, ResponseInfo
from checkout_flow_runner.credentials import Credentials
from checkout_flow_runner.models.actions import Target
from checkout_flow_runner.models.case import TestCase
from checkout_flow_runner.price import LEAF_AMOUNTS_SCRIPT


@dataclass(frozen=True, kw_only=True)
class Call:
    """One recorded session call."""

    operation: str
    subject: str = ""
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(kw_only=True)
class FakeBrowserSession(BrowserSession):
    """Scriptable session recording every call.

    Failures are keyed ``"<operation>:<subject>"`` where the subject is the
    target description (``Target.describe()``), URL, key or URL pattern.
    ``failures`` raise queued errors once each, ``broken`` raise every time.
    """

    url: str = "about:blank"
    page_title: str = ""
    page_text: str = ""
    total_row_text: str | None = None
    leaf_amounts: list[list[str]] = field(default_factory=list)
    element_text: dict[str, str] = field(default_factory=dict)
    visible: set[str] = field(default_factory=set)
    evaluate_results: dict[str, Any] = field(default_factory=dict)
    responses: dict[str, ResponseInfo] = field(default_factory=dict)
    navigations: dict[str, str] = field(default_factory=dict)
    failures: dict[str, list[BaseException]] = field(default_factory=dict)
    broken: dict[str, BaseException] = field(default_factory=dict)
    calls: list[Call] = field(default_factory=list)

    def operations(self, operation: str) -> Sequence[Call]:
        """Return the recorded calls of one operation."""
        return [call for call in self.calls if call.operation == operation]

    def _record(self, operation: str, subject: str = "", **details: Any) -> None:
        self.calls.append(Call(operation=operation, subject=subject, details=details))
        key = f"{operation}:{subject}"
        if key in self.broken:
            raise self.broken[key]
        if queued := self.failures.get(key):
            raise queued.pop(0)

    async def goto(self, url: str, *, timeout: float) -> None:
        self._record("goto", url, timeout=timeout)
        self.url = url

    async def click(
        self, target: Target, *, timeout: float, force: bool = False
    ) -> None:
        self._record("click", target.describe(), timeout=timeout, force=force)
        self.url = self.navigations.get(target.describe(), self.url)

    async def fill(self, target: Target, value: str, *, timeout: float) -> None:
        self._record("fill", target.describe(), value=value, timeout=timeout)

    async def select_option(
        self, target: Target, value: str, *, timeout: float
    ) -> None:
        self._record("select_option", target.describe(), value=value)

    async def set_checked(
        self, target: Target, checked: bool, *, timeout: float
    ) -> None:
        self._record("set_checked", target.describe(), checked=checked)

    async def hover(self, target: Target, *, timeout: float) -> None:
        self._record("hover", target.describe())

    async def scroll_into_view(self, target: Target, *, timeout: float) -> None:
        self._record("scroll_into_view", target.describe())

    async def drag_and_drop(
        self, source: Target, destination: Target, *, timeout: float
    ) -> None:
        self._record(
            "drag_and_drop", source.describe(), destination=destination.describe()
        )

    async def press(self, key: str) -> None:
        self._record("press", key)

    async def text_content(self, target: Target, *, timeout: float) -> str | None:
        self._record("text_content", target.describe())
        return self.element_text.get(target.describe())

    async def get_attribute(
        self, target: Target, name: str, *, timeout: float
    ) -> str | None:
        self._record("get_attribute", target.describe(), name=name)
        return self.element_text.get(f"{target.describe()}@{name}")

    async def input_value(self, target: Target, *, timeout: float) -> str:
        self._record("input_value", target.describe())
        return self.element_text.get(target.describe(), "")

    async def current_url(self) -> str:
        return self.url

    async def title(self) -> str:
        self._record("title")
        return self.page_title

    async def evaluate(self, expression: str) -> Any:
        if expression == LEAF_AMOUNTS_SCRIPT:
            self._record("evaluate", "leaf_amounts")
            return self.leaf_amounts
        self._record("evaluate", expression)
        return self.evaluate_results.get(expression)

    async def wait_for_visible(self, target: Target, *, timeout: float) -> None:
        self._record("wait_for_visible", target.describe(), timeout=timeout)

    async def is_visible(self, target: Target) -> bool:
        self._record("is_visible", target.describe())
        return target.describe() in self.visible

    async def wait(self, duration: float) -> None:
        self._record("wait", duration=duration)

    async def wait_for_response(
        self,
        url_pattern: str,
        *,
        timeout: float,
        trigger: Callable[[], Awaitable[None]] | None = None,
        read_json: bool = False,
    ) -> ResponseInfo:
        self._record("wait_for_response", url_pattern, read_json=read_json)
        if trigger is not None:
            await trigger()
        default = ResponseInfo(url=url_pattern, status=200)
        return self.responses.get(url_pattern, default)

    async def screenshot(self, path: Path, *, full_page: bool = False) -> None:
        self._record("screenshot", path.name, full_page=full_page)

    async def set_input_files(
        self, target: Target, paths: Sequence[Path], *, timeout: float
    ) -> None:
        self._record("set_input_files", target.describe(), paths=list(paths))

    async def query_text(self, selector: str) -> str | None:
        self._record("query_text", selector)
        return self.total_row_text if selector == "tr.total" else None

    async def body_text(self) -> str:
        self._record("body_text")
        return self.page_text

    async def wait_for_loading_to_disappear(self, timeout: float = 10_000) -> None:
        self._record("wait_for_loading_to_disappear", timeout=timeout)


@dataclass(kw_only=True)
class FakeSessionFactory:
    """Session factory handing out fake sessions, one per opened attempt.

    The last session is reused once the list runs out.
    """

    sessions: list[FakeBrowserSession] = field(
        default_factory=lambda: [FakeBrowserSession()]
    )
    opened: list[tuple[str, Credentials]] = field(default_factory=list)
    closed: int = 0

    def __call__(
        self, case: TestCase, credentials: Credentials
    ) -> AbstractAsyncContextManager[BrowserSession]:
        return self._open(case, credentials)

    @asynccontextmanager
    async def _open(
        self, case: TestCase, credentials: Credentials
    ) -> AsyncGenerator[BrowserSession, None]:
        session = self.sessions[min(len(self.opened), len(self.sessions) - 1)]
        self.opened.append((case.test_id, credentials))
        try:
            yield session
        finally:
            self.closed += 1
