"""Abstract browser session consumed by the action engine."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from checkout_flow_runner.models.actions import Target

DEFAULT_SETTLE_TIMEOUT_MS = 10_000


@dataclass(frozen=True, kw_only=True)
class ResponseInfo:
    """Network response observed while waiting on a URL pattern."""

    url: str
    status: int
    body: Any = None


class BrowserSession(ABC):
    """Capability interface over one isolated browser page.

    Timeouts are in milliseconds. Implementations raise
    ``ActionTimeoutError`` when a timeout elapses, ``NavigationError`` when a
    page cannot be loaded and ``InteractionError`` for any other refusal.
    """

    @abstractmethod
    async def goto(self, url: str, *, timeout: float) -> None:
        """Navigate and wait for the network to go idle."""

    @abstractmethod
    async def click(
        self, target: Target, *, timeout: float, force: bool = False
    ) -> None:
        """Click an element; ``force`` skips the actionability checks."""

    @abstractmethod
    async def fill(self, target: Target, value: str, *, timeout: float) -> None:
        """Replace the value of an input element."""

    @abstractmethod
    async def select_option(
        self, target: Target, value: str, *, timeout: float
    ) -> None:
        """Select an option of a ``<select>`` element."""

    @abstractmethod
    async def set_checked(
        self, target: Target, checked: bool, *, timeout: float
    ) -> None:
        """Check or uncheck a checkbox or radio button."""

    @abstractmethod
    async def hover(self, target: Target, *, timeout: float) -> None:
        """Move the pointer over an element."""

    @abstractmethod
    async def scroll_into_view(self, target: Target, *, timeout: float) -> None:
        """Scroll an element into the viewport if needed."""

    @abstractmethod
    async def drag_and_drop(
        self, source: Target, destination: Target, *, timeout: float
    ) -> None:
        """Drag one element onto another."""

    @abstractmethod
    async def press(self, key: str) -> None:
        """Press a key on the keyboard."""

    @abstractmethod
    async def text_content(self, target: Target, *, timeout: float) -> str | None:
        """Return the text content of an element."""

    @abstractmethod
    async def get_attribute(
        self, target: Target, name: str, *, timeout: float
    ) -> str | None:
        """Return an attribute value of an element."""

    @abstractmethod
    async def input_value(self, target: Target, *, timeout: float) -> str:
        """Return the current value of an input element."""

    @abstractmethod
    async def current_url(self) -> str:
        """Return the URL of the page."""

    @abstractmethod
    async def title(self) -> str:
        """Return the document title."""

    @abstractmethod
    async def evaluate(self, expression: str) -> Any:
        """Evaluate JavaScript in the page and return its JSON-able result."""

    @abstractmethod
    async def wait_for_visible(self, target: Target, *, timeout: float) -> None:
        """Wait until an element is visible."""

    @abstractmethod
    async def is_visible(self, target: Target) -> bool:
        """Return whether an element is visible right now, without waiting."""

    @abstractmethod
    async def wait(self, duration: float) -> None:
        """Wait a fixed duration."""

    @abstractmethod
    async def wait_for_response(
        self,
        url_pattern: str,
        *,
        timeout: float,
        trigger: Callable[[], Awaitable[None]] | None = None,
        read_json: bool = False,
    ) -> ResponseInfo:
        """Wait for a response whose URL contains ``url_pattern``.

        The wait is armed before ``trigger`` runs, so a response caused by
        the trigger cannot be missed.
        """

    @abstractmethod
    async def screenshot(self, path: Path, *, full_page: bool = False) -> None:
        """Write a PNG screenshot to ``path``."""

    @abstractmethod
    async def set_input_files(
        self, target: Target, paths: Sequence[Path], *, timeout: float
    ) -> None:
        """Attach files to a file input element."""

    @abstractmethod
    async def query_text(self, selector: str) -> str | None:
        """Return the text of the first match of ``selector``, None if absent."""

    @abstractmethod
    async def body_text(self) -> str:
        """Return the rendered text of the whole page."""

    @abstractmethod
    async def wait_for_loading_to_disappear(
        self, timeout: float = DEFAULT_SETTLE_TIMEOUT_MS
    ) -> None:
        """Wait for spinners and overlays to hide. Never raises on timeout."""

    async def wait_for_page_ready(self) -> None:
        """Wait for loading indicators to hide plus a short settling pause."""
        await self.wait_for_loading_to_disappear()
        await self.wait(500)
