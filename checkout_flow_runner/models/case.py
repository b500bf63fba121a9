"""Models for test cases loaded from JSON files."""

from collections.abc import Sequence
from typing import Literal

from pydantic import Field

from checkout_flow_runner.models.actions import TestAction
from checkout_flow_runner.models.base import Model

DEFAULT_CREDENTIAL_PROFILE = "dev"


class TestInfo(Model):
    """Identifier and variant descriptors of a test case."""

    __test__ = False

    id: str = Field(..., min_length=1, description="Unique test identifier")
    option: str = Field(default="", description="Product option variant")
    shipping: str = Field(default="", description="Shipping method")
    payment: str = Field(default="", description="Payment method")


class TestCase(Model):
    """One declarative checkout flow."""

    __test__ = False

    test_info: TestInfo
    url: str = Field(..., description="Start URL")
    credential_key: str | None = Field(
        default=None, description="Credential profile name (defaults to 'dev')"
    )
    device: Literal["pc", "mobile"] = "pc"
    headless: bool = True
    actions: Sequence[TestAction] = Field(default_factory=list)

    @property
    def test_id(self) -> str:
        """Shortcut for the test identifier."""
        return self.test_info.id

    @property
    def credential_profile(self) -> str:
        """Profile used to resolve credentials."""
        return self.credential_key or DEFAULT_CREDENTIAL_PROFILE
