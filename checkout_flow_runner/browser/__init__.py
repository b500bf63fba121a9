"""Browser session interface and its Playwright implementation."""

from checkout_flow_runner.browser.base import BrowserSession, ResponseInfo
from checkout_flow_runner.browser.playwright_session import PlaywrightSession

__all__ = ["BrowserSession", "PlaywrightSession", "ResponseInfo"]
