"""Interpretation of declarative actions against a browser session."""

import functools
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, TypeAlias

from checkout_flow_runner.browser.base import BrowserSession
from checkout_flow_runner.credentials import Credentials
from checkout_flow_runner.errors import (
    InteractionError,
    MissingTargetError,
    UnknownActionWarning,
)
from checkout_flow_runner.interaction import ClickRecoveryPolicy, click_with_recovery
from checkout_flow_runner.models.actions import (
    DragAndDropAction,
    EvaluateAction,
    FillAction,
    GetAttributeAction,
    GotoAction,
    PressAction,
    SelectAction,
    Target,
    TargetedAction,
    TestAction,
    UnknownAction,
    UploadFileAction,
    UploadFilesAction,
    UploadFileWithApiWaitAction,
    WaitAction,
    WaitForResponseAction,
)

log = logging.getLogger(__name__)

POST_WAIT_SETTLE_TIMEOUT_MS = 5000


@dataclass(kw_only=True)
class DispatchContext:
    """Per-attempt state shared by the actions of one test run."""

    test_id: str
    credentials: Credentials
    screenshot_dir: Path
    screenshot_index: int = 1

    def next_screenshot_path(self) -> Path:
        """Reserve the next ``<testId>_<NNN>.png`` path."""
        path = self.screenshot_dir / f"{self.test_id}_{self.screenshot_index:03d}.png"
        self.screenshot_index += 1
        return path


@dataclass(frozen=True, kw_only=True)
class ActionOutcome:
    """What an action produced besides its side effect."""

    value: str | None = None
    screenshot: Path | None = None


def stringify(value: Any) -> str | None:
    """Render a script or response value as text."""
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def extract_field(body: Any, path: str) -> Any:
    """Follow a dotted path (``data.items.0.id``) into a decoded JSON body."""
    current = body
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            raise InteractionError(f"Response has no field '{path}'")
    return current


Handler: TypeAlias = Callable[
    ["ActionDispatcher", BrowserSession, Any, Target | None, DispatchContext],
    Awaitable[ActionOutcome],
]


@dataclass(frozen=True, kw_only=True)
class ActionDispatcher:
    """Performs one action at a time on a browser session."""

    click_policy: ClickRecoveryPolicy = field(default_factory=ClickRecoveryPolicy)

    async def dispatch(
        self,
        session: BrowserSession,
        action: TestAction,
        context: DispatchContext,
    ) -> ActionOutcome:
        """Perform ``action`` and return its value or screenshot, if any.

        Raises:
            MissingTargetError: If a targeted action has no selector or role
            FlowError: Whatever the browser session raises for the action

        """
        if isinstance(action, UnknownAction):
            log.warning("%s (skipped)", UnknownActionWarning(action.type))
            return ActionOutcome()

        target: Target | None = None
        if isinstance(action, TargetedAction):
            target = action.target
            if target is None:
                raise MissingTargetError(action.type)

        handler = self._handlers[action.type]
        return await handler(self, session, action, target, context)

    async def _goto(
        self,
        session: BrowserSession,
        action: GotoAction,
        target: None,
        context: DispatchContext,
    ) -> ActionOutcome:
        await session.goto(action.value, timeout=action.timeout)
        return ActionOutcome()

    async def _click(
        self,
        session: BrowserSession,
        action: TargetedAction,
        target: Target,
        context: DispatchContext,
    ) -> ActionOutcome:
        await click_with_recovery(
            session, target, timeout=action.timeout, policy=self.click_policy
        )
        return ActionOutcome()

    async def _fill(
        self,
        session: BrowserSession,
        action: FillAction,
        target: Target,
        context: DispatchContext,
    ) -> ActionOutcome:
        value = context.credentials.substitute(action.value)
        await session.wait_for_loading_to_disappear()
        await session.fill(target, value, timeout=action.timeout)
        return ActionOutcome()

    async def _select(
        self,
        session: BrowserSession,
        action: SelectAction,
        target: Target,
        context: DispatchContext,
    ) -> ActionOutcome:
        await session.wait_for_loading_to_disappear()
        await session.select_option(target, action.value, timeout=action.timeout)
        return ActionOutcome()

    async def _check(
        self,
        session: BrowserSession,
        action: TargetedAction,
        target: Target,
        context: DispatchContext,
    ) -> ActionOutcome:
        await session.set_checked(target, True, timeout=action.timeout)
        return ActionOutcome()

    async def _uncheck(
        self,
        session: BrowserSession,
        action: TargetedAction,
        target: Target,
        context: DispatchContext,
    ) -> ActionOutcome:
        await session.set_checked(target, False, timeout=action.timeout)
        return ActionOutcome()

    async def _hover(
        self,
        session: BrowserSession,
        action: TargetedAction,
        target: Target,
        context: DispatchContext,
    ) -> ActionOutcome:
        await session.hover(target, timeout=action.timeout)
        return ActionOutcome()

    async def _scroll_into_view(
        self,
        session: BrowserSession,
        action: TargetedAction,
        target: Target,
        context: DispatchContext,
    ) -> ActionOutcome:
        await session.scroll_into_view(target, timeout=action.timeout)
        return ActionOutcome()

    async def _drag_and_drop(
        self,
        session: BrowserSession,
        action: DragAndDropAction,
        target: Target,
        context: DispatchContext,
    ) -> ActionOutcome:
        destination = Target(selector=action.target_selector)
        await session.drag_and_drop(target, destination, timeout=action.timeout)
        return ActionOutcome()

    async def _press(
        self,
        session: BrowserSession,
        action: PressAction,
        target: None,
        context: DispatchContext,
    ) -> ActionOutcome:
        await session.press(action.value)
        return ActionOutcome()

    async def _get_text(
        self,
        session: BrowserSession,
        action: TargetedAction,
        target: Target,
        context: DispatchContext,
    ) -> ActionOutcome:
        text = await session.text_content(target, timeout=action.timeout)
        return ActionOutcome(value=text or "")

    async def _get_attribute(
        self,
        session: BrowserSession,
        action: GetAttributeAction,
        target: Target,
        context: DispatchContext,
    ) -> ActionOutcome:
        value = await session.get_attribute(
            target, action.value, timeout=action.timeout
        )
        return ActionOutcome(value=value or "")

    async def _get_input_value(
        self,
        session: BrowserSession,
        action: TargetedAction,
        target: Target,
        context: DispatchContext,
    ) -> ActionOutcome:
        return ActionOutcome(
            value=await session.input_value(target, timeout=action.timeout)
        )

    async def _get_current_url(
        self,
        session: BrowserSession,
        action: TestAction,
        target: None,
        context: DispatchContext,
    ) -> ActionOutcome:
        return ActionOutcome(value=await session.current_url())

    async def _get_title(
        self,
        session: BrowserSession,
        action: TestAction,
        target: None,
        context: DispatchContext,
    ) -> ActionOutcome:
        return ActionOutcome(value=await session.title())

    async def _evaluate(
        self,
        session: BrowserSession,
        action: EvaluateAction,
        target: None,
        context: DispatchContext,
    ) -> ActionOutcome:
        script = context.credentials.substitute(action.value)
        return ActionOutcome(value=stringify(await session.evaluate(script)))

    async def _wait_for_selector(
        self,
        session: BrowserSession,
        action: TargetedAction,
        target: Target,
        context: DispatchContext,
    ) -> ActionOutcome:
        await session.wait_for_visible(target, timeout=action.timeout)
        return ActionOutcome()

    async def _wait(
        self,
        session: BrowserSession,
        action: WaitAction,
        target: None,
        context: DispatchContext,
    ) -> ActionOutcome:
        await session.wait(action.x)
        await session.wait_for_loading_to_disappear(POST_WAIT_SETTLE_TIMEOUT_MS)
        return ActionOutcome()

    async def _wait_for_response(
        self,
        session: BrowserSession,
        action: WaitForResponseAction,
        target: None,
        context: DispatchContext,
    ) -> ActionOutcome:
        response = await session.wait_for_response(
            action.url_pattern,
            timeout=action.timeout,
            read_json=action.response_field is not None,
        )
        log.debug("Matched response %s (%d)", response.url, response.status)
        if action.response_field is None:
            return ActionOutcome()
        return ActionOutcome(
            value=stringify(extract_field(response.body, action.response_field))
        )

    async def _screenshot(
        self,
        session: BrowserSession,
        action: TestAction,
        target: None,
        context: DispatchContext,
    ) -> ActionOutcome:
        context.screenshot_dir.mkdir(parents=True, exist_ok=True)
        path = context.next_screenshot_path()
        await session.screenshot(path, full_page=action.type == "screenshotFullPage")
        return ActionOutcome(screenshot=path)

    async def _upload_file(
        self,
        session: BrowserSession,
        action: UploadFileAction,
        target: Target,
        context: DispatchContext,
    ) -> ActionOutcome:
        path = Path(action.file_path).resolve()
        await session.set_input_files(target, [path], timeout=action.timeout)
        return ActionOutcome()

    async def _upload_files(
        self,
        session: BrowserSession,
        action: UploadFilesAction,
        target: Target,
        context: DispatchContext,
    ) -> ActionOutcome:
        paths = [Path(file_path).resolve() for file_path in action.file_paths]
        await session.set_input_files(target, paths, timeout=action.timeout)
        return ActionOutcome()

    async def _upload_file_with_api_wait(
        self,
        session: BrowserSession,
        action: UploadFileWithApiWaitAction,
        target: Target,
        context: DispatchContext,
    ) -> ActionOutcome:
        upload = functools.partial(
            session.set_input_files,
            target,
            [Path(action.file_path).resolve()],
            timeout=action.timeout,
        )
        response = await session.wait_for_response(
            action.url_pattern,
            timeout=action.timeout,
            trigger=upload,
            read_json=action.response_field is not None,
        )
        if action.response_field is None:
            return ActionOutcome()
        return ActionOutcome(
            value=stringify(extract_field(response.body, action.response_field))
        )

    _handlers: ClassVar[Mapping[str, Handler]] = {
        "goto": _goto,
        "click": _click,
        "fill": _fill,
        "select": _select,
        "check": _check,
        "uncheck": _uncheck,
        "hover": _hover,
        "scrollIntoView": _scroll_into_view,
        "dragAndDrop": _drag_and_drop,
        "press": _press,
        "getText": _get_text,
        "getAttribute": _get_attribute,
        "getInputValue": _get_input_value,
        "getCurrentUrl": _get_current_url,
        "getTitle": _get_title,
        "evaluate": _evaluate,
        "waitForSelector": _wait_for_selector,
        "wait": _wait,
        "waitForResponse": _wait_for_response,
        "screenshot": _screenshot,
        "screenshotFullPage": _screenshot,
        "uploadFile": _upload_file,
        "uploadFiles": _upload_files,
        "uploadFileWithApiWait": _upload_file_with_api_wait,
    }
