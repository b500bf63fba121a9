"""Tests for click recovery."""

import pytest

from checkout_flow_runner.errors import (
    ActionTimeoutError,
    InteractionError,
    TransientUIError,
)
from checkout_flow_runner.interaction import ClickRecoveryPolicy, click_with_recovery
from checkout_flow_runner.models.actions import Target
from checkout_flow_runner.testing.fakes import FakeBrowserSession

BUY = Target(selector="#buy")
POLICY = ClickRecoveryPolicy(cooldown_ms=10)


async def test_clicks_once_when_successful() -> None:
    """Clicks without force and skips recovery on success."""
    session = FakeBrowserSession()

    await click_with_recovery(session, BUY, timeout=30000, policy=POLICY)

    clicks = session.operations("click")
    assert len(clicks) == 1
    assert clicks[0].details == {"timeout": 10000, "force": False}
    assert session.operations("is_visible") == []


async def test_recovers_after_two_failures() -> None:
    """Forces later attempts and succeeds on the third."""
    session = FakeBrowserSession(
        failures={
            "click:#buy": [ActionTimeoutError("timeout"), InteractionError("covered")]
        }
    )

    await click_with_recovery(session, BUY, timeout=30000, policy=POLICY)

    clicks = session.operations("click")
    assert [call.details["force"] for call in clicks] == [False, True, True]
    assert all(call.details["timeout"] == 10000 for call in clicks)
    waits = [call.details["duration"] for call in session.operations("wait")]
    assert waits.count(10) == 2


async def test_waits_for_loading_before_each_click() -> None:
    """Waits for loading indicators ahead of every attempt."""
    session = FakeBrowserSession(failures={"click:#buy": [InteractionError("x")]})

    await click_with_recovery(session, BUY, timeout=30000, policy=POLICY)

    operations = [call.operation for call in session.calls]
    first_click = operations.index("click")
    assert operations[first_click - 1] == "wait_for_loading_to_disappear"
    assert operations[-2:] == ["wait_for_loading_to_disappear", "click"]


async def test_raises_transient_error_when_exhausted() -> None:
    """Reports the failure chained to the last browser error."""
    last_error = ActionTimeoutError("still covered")
    session = FakeBrowserSession(broken={"click:#buy": last_error})

    with pytest.raises(TransientUIError) as exc_info:
        await click_with_recovery(session, BUY, timeout=30000, policy=POLICY)

    assert exc_info.value.attempts == 3
    assert exc_info.value.__cause__ is last_error
    assert len(session.operations("click")) == 3


async def test_dismisses_error_dialog() -> None:
    """Clicks the dialog's OK button before retrying."""
    session = FakeBrowserSession(
        failures={"click:#buy": [InteractionError("dialog open")]},
        visible={"text=再度お試しください"},
    )

    await click_with_recovery(session, BUY, timeout=30000, policy=POLICY)

    subjects = [call.subject for call in session.operations("click")]
    assert subjects == ["#buy", "text=OK", "#buy"]


async def test_failed_dismissal_does_not_abort_recovery() -> None:
    """Carries on retrying when the dialog cannot be dismissed."""
    session = FakeBrowserSession(
        failures={"click:#buy": [InteractionError("dialog open")]},
        broken={"click:text=OK": InteractionError("no button")},
        visible={"text=再度お試しください"},
    )

    await click_with_recovery(session, BUY, timeout=30000, policy=POLICY)

    assert [call.subject for call in session.operations("click")][-1] == "#buy"


async def test_unexpected_errors_propagate() -> None:
    """Does not retry errors outside the browser error taxonomy."""
    session = FakeBrowserSession(failures={"click:#buy": [RuntimeError("bug")]})

    with pytest.raises(RuntimeError, match="bug"):
        await click_with_recovery(session, BUY, timeout=30000, policy=POLICY)

    assert len(session.operations("click")) == 1


async def test_single_attempt_policy() -> None:
    """Gives the whole timeout to a single attempt."""
    session = FakeBrowserSession(broken={"click:#buy": InteractionError("nope")})
    policy = ClickRecoveryPolicy(max_attempts=1)

    with pytest.raises(TransientUIError):
        await click_with_recovery(session, BUY, timeout=30000, policy=policy)

    clicks = session.operations("click")
    assert len(clicks) == 1
    assert clicks[0].details["timeout"] == 30000
