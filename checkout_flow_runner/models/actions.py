"""Models for the declarative actions of a test case.

Every action kind is its own model carrying only the fields it uses. The
``type`` key selects the model; types this version does not know are kept
as ``UnknownAction`` so newer test data still loads.
"""

from collections.abc import Sequence
from typing import Annotated, Any, Literal, Union, get_args

from pydantic import ConfigDict, Discriminator, Field, Tag, TypeAdapter

from checkout_flow_runner.models.base import Model

DEFAULT_ACTION_TIMEOUT_MS = 30_000


class Target(Model):
    """Element address: a selector string, or an accessible role and name."""

    selector: str | None = None
    role: str | None = None
    name: str | None = None
    exact: bool | None = None

    def describe(self) -> str:
        """Return a short human-readable form for log lines and errors."""
        if self.selector is not None:
            return self.selector
        description = f"role={self.role}"
        if self.name is not None:
            description += f' name="{self.name}"'
        if self.exact is not None:
            description += f" exact={str(self.exact).lower()}"
        return description


class BaseAction(Model):
    """Fields shared by every known action kind."""

    timeout: int = Field(
        default=DEFAULT_ACTION_TIMEOUT_MS, gt=0, description="Timeout in ms"
    )
    comment: str | None = Field(default=None, description="Documentation only")


class TargetedAction(BaseAction):
    """Action that operates on one element of the page."""

    selector: str | None = None
    role: str | None = None
    name: str | None = None
    exact: bool | None = None

    @property
    def target(self) -> Target | None:
        """Resolve the addressing mode, selector first."""
        if self.selector:
            return Target(selector=self.selector)
        if self.role:
            return Target(role=self.role, name=self.name, exact=self.exact)
        return None


class GotoAction(BaseAction):
    type: Literal["goto"]
    value: str = Field(..., description="URL to open")


class ClickAction(TargetedAction):
    type: Literal["click"]


class FillAction(TargetedAction):
    type: Literal["fill"]
    value: str = ""


class SelectAction(TargetedAction):
    type: Literal["select"]
    value: str = Field(..., description="Option value to select")


class CheckAction(TargetedAction):
    type: Literal["check"]


class UncheckAction(TargetedAction):
    type: Literal["uncheck"]


class HoverAction(TargetedAction):
    type: Literal["hover"]


class ScrollIntoViewAction(TargetedAction):
    type: Literal["scrollIntoView"]


class DragAndDropAction(TargetedAction):
    type: Literal["dragAndDrop"]
    target_selector: str = Field(..., description="Selector of the drop target")


class PressAction(BaseAction):
    type: Literal["press"]
    value: str = Field(..., description="Key name, e.g. 'Enter'")


class GetTextAction(TargetedAction):
    type: Literal["getText"]


class GetAttributeAction(TargetedAction):
    type: Literal["getAttribute"]
    value: str = Field(..., description="Attribute name")


class GetInputValueAction(TargetedAction):
    type: Literal["getInputValue"]


class GetCurrentUrlAction(BaseAction):
    type: Literal["getCurrentUrl"]


class GetTitleAction(BaseAction):
    type: Literal["getTitle"]


class EvaluateAction(BaseAction):
    type: Literal["evaluate"]
    value: str = Field(..., description="JavaScript expression or function")


class WaitForSelectorAction(TargetedAction):
    type: Literal["waitForSelector"]


class WaitAction(BaseAction):
    type: Literal["wait"]
    x: int = Field(default=1000, ge=0, description="Duration in ms")


class WaitForResponseAction(BaseAction):
    type: Literal["waitForResponse"]
    url_pattern: str = Field(..., description="Substring of the response URL")
    response_field: str | None = Field(
        default=None, description="Dotted path into the JSON body to return"
    )


class ScreenshotAction(BaseAction):
    type: Literal["screenshot"]


class ScreenshotFullPageAction(BaseAction):
    type: Literal["screenshotFullPage"]


class UploadFileAction(TargetedAction):
    type: Literal["uploadFile"]
    file_path: str


class UploadFilesAction(TargetedAction):
    type: Literal["uploadFiles"]
    file_paths: Sequence[str] = Field(..., min_length=1)


class UploadFileWithApiWaitAction(TargetedAction):
    type: Literal["uploadFileWithApiWait"]
    file_path: str
    url_pattern: str = Field(..., description="Substring of the upload API URL")
    response_field: str | None = None


class UnknownAction(Model):
    """Action of a type this runner does not implement; skipped at dispatch."""

    model_config = ConfigDict(extra="allow")

    type: str
    comment: str | None = None


KNOWN_ACTIONS: Sequence[type[BaseAction]] = (
    GotoAction,
    ClickAction,
    FillAction,
    SelectAction,
    CheckAction,
    UncheckAction,
    HoverAction,
    ScrollIntoViewAction,
    DragAndDropAction,
    PressAction,
    GetTextAction,
    GetAttributeAction,
    GetInputValueAction,
    GetCurrentUrlAction,
    GetTitleAction,
    EvaluateAction,
    WaitForSelectorAction,
    WaitAction,
    WaitForResponseAction,
    ScreenshotAction,
    ScreenshotFullPageAction,
    UploadFileAction,
    UploadFilesAction,
    UploadFileWithApiWaitAction,
)

ACTION_TYPES = frozenset(
    get_args(action_cls.model_fields["type"].annotation)[0]
    for action_cls in KNOWN_ACTIONS
)


def _action_tag(value: Any) -> str:
    """Pick the union member for raw or already-built action data."""
    if isinstance(value, dict):
        kind = value.get("type")
    else:
        kind = getattr(value, "type", None)
    return kind if isinstance(kind, str) and kind in ACTION_TYPES else "unknown"


TestAction = Annotated[
    Union[
        Annotated[GotoAction, Tag("goto")],
        Annotated[ClickAction, Tag("click")],
        Annotated[FillAction, Tag("fill")],
        Annotated[SelectAction, Tag("select")],
        Annotated[CheckAction, Tag("check")],
        Annotated[UncheckAction, Tag("uncheck")],
        Annotated[HoverAction, Tag("hover")],
        Annotated[ScrollIntoViewAction, Tag("scrollIntoView")],
        Annotated[DragAndDropAction, Tag("dragAndDrop")],
        Annotated[PressAction, Tag("press")],
        Annotated[GetTextAction, Tag("getText")],
        Annotated[GetAttributeAction, Tag("getAttribute")],
        Annotated[GetInputValueAction, Tag("getInputValue")],
        Annotated[GetCurrentUrlAction, Tag("getCurrentUrl")],
        Annotated[GetTitleAction, Tag("getTitle")],
        Annotated[EvaluateAction, Tag("evaluate")],
        Annotated[WaitForSelectorAction, Tag("waitForSelector")],
        Annotated[WaitAction, Tag("wait")],
        Annotated[WaitForResponseAction, Tag("waitForResponse")],
        Annotated[ScreenshotAction, Tag("screenshot")],
        Annotated[ScreenshotFullPageAction, Tag("screenshotFullPage")],
        Annotated[UploadFileAction, Tag("uploadFile")],
        Annotated[UploadFilesAction, Tag("uploadFiles")],
        Annotated[UploadFileWithApiWaitAction, Tag("uploadFileWithApiWait")],
        Annotated[UnknownAction, Tag("unknown")],
    ],
    Discriminator(_action_tag),
]

_action_adapter: TypeAdapter[TestAction] = TypeAdapter(TestAction)


def parse_action(data: Any) -> TestAction:
    """Validate one raw action mapping into its model."""
    return _action_adapter.validate_python(data)
