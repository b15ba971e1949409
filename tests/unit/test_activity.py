"""
Unit tests for @activity decorator and activity invocation.
"""

import asyncio
from datetime import timedelta

import pytest

from approvalflow.core.activity import activity, execute_activity
from approvalflow.core.context import WorkflowContext
from approvalflow.core.exceptions import ActivityTimeoutError, ApplicationFailure
from approvalflow.core.options import ActivityOptions, RetryPolicy
from approvalflow.core.registry import get_activity
from approvalflow.engine.events import EventType


@pytest.fixture
def ctx(storage):
    return WorkflowContext(instance_id="wf-1", workflow_name="TestWorkflow", storage=storage)


def retrying(attempts: int, **policy) -> ActivityOptions:
    return ActivityOptions(
        retry_policy=RetryPolicy(maximum_attempts=attempts, initial_interval=0, **policy)
    )


class TestActivityDecorator:
    """Test the @activity decorator."""

    def test_activity_decorator_basic(self):
        """Test basic activity decoration."""

        @activity()
        async def simple_activity():
            return "success"

        assert simple_activity.__activity__ is True
        assert simple_activity.__activity_name__ == "simple_activity"
        assert simple_activity.__activity_options__ is None
        assert get_activity("simple_activity") is not None

    def test_bare_decorator(self):
        @activity
        async def bare_activity():
            return "success"

        assert bare_activity.__activity_name__ == "bare_activity"

    def test_activity_decorator_with_name_and_options(self):
        options = ActivityOptions(start_to_close_timeout="10s")

        @activity(name="charge", options=options, metadata={"service": "payment"})
        def charge_card(order_id: str) -> str:
            return order_id

        assert charge_card.__activity_name__ == "charge"
        assert charge_card.__activity_options__ is options
        assert charge_card.__activity_metadata__ == {"service": "payment"}
        assert get_activity("charge").original_func.__name__ == "charge_card"

    def test_conflicting_names(self):
        @activity(name="dup")
        async def first():
            pass

        with pytest.raises(ValueError, match="already registered"):

            @activity(name="dup")
            async def second():
                pass

    @pytest.mark.asyncio
    async def test_direct_call_outside_workflow(self):
        @activity()
        def double(x: int) -> int:
            return x * 2

        assert await double(5) == 10


class TestExecuteActivity:
    """Test execute_activity() inside a workflow context."""

    @pytest.mark.asyncio
    async def test_outside_workflow(self):
        @activity()
        async def noop():
            return None

        with pytest.raises(RuntimeError):
            await execute_activity(noop)

    @pytest.mark.asyncio
    async def test_records_events(self, ctx, storage):
        @activity()
        async def greet(name: str) -> str:
            return f"Hello {name}!"

        with ctx:
            result = await execute_activity(greet, "John")

        assert result == "Hello John!"

        events = await storage.get_events("wf-1")
        assert [e.type for e in events] == [
            EventType.ACTIVITY_SCHEDULED,
            EventType.ACTIVITY_COMPLETED,
        ]
        assert events[0].data["args"] == '["John"]'
        assert events[1].data["result"] == '"Hello John!"'

    @pytest.mark.asyncio
    async def test_sync_activity(self, ctx):
        @activity()
        def add(a: int, b: int) -> int:
            return a + b

        with ctx:
            assert await execute_activity(add, 2, 3) == 5

    @pytest.mark.asyncio
    async def test_by_name(self, ctx):
        @activity(name="shout")
        async def shout(text: str) -> str:
            return text.upper()

        with ctx:
            assert await execute_activity("shout", "hi") == "HI"

    @pytest.mark.asyncio
    async def test_host_implementation_takes_precedence(self, ctx):
        @activity()
        async def lookup() -> str:
            return "real"

        async def fake() -> str:
            return "fake"

        ctx.activities["lookup"] = fake

        with ctx:
            assert await execute_activity(lookup) == "fake"

    @pytest.mark.asyncio
    async def test_unregistered_function(self, ctx):
        async def plain():
            return None

        with ctx:
            with pytest.raises(ValueError, match="@activity"):
                await execute_activity(plain)

    @pytest.mark.asyncio
    async def test_failure_propagates_unchanged(self, ctx, storage):
        error = KeyError("missing")

        @activity()
        async def broken():
            raise error

        with ctx:
            with pytest.raises(KeyError) as exc_info:
                await execute_activity(broken)

        assert exc_info.value is error

        failed = await storage.get_latest_event("wf-1")
        assert failed.type == EventType.ACTIVITY_FAILED
        assert failed.data["error_type"] == "KeyError"
        assert failed.data["will_retry"] is False

    @pytest.mark.asyncio
    async def test_start_to_close_timeout(self, ctx):
        @activity()
        async def slow():
            await asyncio.sleep(5)

        with ctx:
            with pytest.raises(ActivityTimeoutError) as exc_info:
                await execute_activity(slow, options=ActivityOptions(start_to_close_timeout=0.01))

        assert exc_info.value.error_type == "StartToCloseTimeout"
        assert exc_info.value.activity_name == "slow"

    @pytest.mark.asyncio
    async def test_sub_second_timeout_is_not_truncated(self, ctx, storage):
        @activity()
        async def quick_io():
            await asyncio.sleep(0.01)
            return "done"

        options = ActivityOptions(start_to_close_timeout=timedelta(milliseconds=500))
        with ctx:
            assert await execute_activity(quick_io, options=options) == "done"

        scheduled = await storage.get_events("wf-1", event_types=["activity.scheduled"])
        assert scheduled[0].data["start_to_close_timeout"] == 0.5

    @pytest.mark.asyncio
    async def test_own_timeout_error_is_not_converted(self, ctx):
        @activity()
        async def upstream_timeout():
            raise TimeoutError("upstream")

        with ctx:
            with pytest.raises(TimeoutError) as exc_info:
                await execute_activity(upstream_timeout)

        assert not isinstance(exc_info.value, ActivityTimeoutError)

    @pytest.mark.asyncio
    async def test_retries_until_success(self, ctx, storage):
        attempts = []

        @activity()
        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("try again")
            return "ok"

        with ctx:
            assert await execute_activity(flaky, options=retrying(3)) == "ok"

        types = [e.type for e in await storage.get_events("wf-1")]
        assert types.count(EventType.ACTIVITY_RETRYING) == 2
        assert types[-1] == EventType.ACTIVITY_COMPLETED

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, ctx):
        attempts = []

        @activity()
        async def always_fails():
            attempts.append(1)
            raise ConnectionError("down")

        with ctx:
            with pytest.raises(ConnectionError):
                await execute_activity(always_fails, options=retrying(2))

        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_non_retryable_failure(self, ctx):
        attempts = []

        @activity()
        async def declined():
            attempts.append(1)
            raise ApplicationFailure("Card declined", error_type="Declined", non_retryable=True)

        with ctx:
            with pytest.raises(ApplicationFailure):
                await execute_activity(declined, options=retrying(5))

        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_non_retryable_error_types(self, ctx):
        attempts = []

        @activity()
        async def bad_value():
            attempts.append(1)
            raise ValueError("bad")

        with ctx:
            with pytest.raises(ValueError):
                await execute_activity(
                    bad_value,
                    options=retrying(5, non_retryable_error_types=("ValueError",)),
                )

        assert len(attempts) == 1
