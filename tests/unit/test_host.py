"""
Unit tests for WorkflowHost and WorkflowHandle.
"""

import pytest

from approvalflow.config import HostSettings
from approvalflow.core.exceptions import (
    ApprovalTimeout,
    InvalidInput,
    UnknownQueryError,
    UnknownSignalError,
    WorkflowAlreadyStartedError,
    WorkflowFailedError,
    WorkflowNotFoundError,
)
from approvalflow.core.workflow import entrypoint, query, signal, workflow
from approvalflow.engine.events import EventType
from approvalflow.engine.host import WorkflowHost
from approvalflow.greeting import HelloWorldWorkflow
from approvalflow.primitives.condition import wait_condition
from approvalflow.storage.file import FileStorageBackend
from approvalflow.storage.memory import InMemoryStorageBackend
from approvalflow.storage.schemas import RunStatus
from approvalflow.testing import ManualClock


class TestStart:
    """Test starting instances."""

    @pytest.mark.asyncio
    async def test_start_records_instance(self, env):
        handle = await env.start(HelloWorldWorkflow, "John", instance_id="wf-1")

        assert handle.id == "wf-1"

        record = await handle.describe()
        assert record.workflow_name == "HelloWorldWorkflow"
        assert record.status == RunStatus.RUNNING
        assert record.input_args == '["John"]'

        events = await handle.events()
        assert events[0].type == EventType.WORKFLOW_STARTED
        assert events[0].data["task_queue"] == "HELLO_WORLD_TASK_QUEUE"

    @pytest.mark.asyncio
    async def test_custom_task_queue(self, env):
        handle = await env.start(
            HelloWorldWorkflow, "John", instance_id="wf-1", task_queue="approvals"
        )

        record = await handle.describe()
        assert record.task_queue == "approvals"

    @pytest.mark.asyncio
    async def test_duplicate_instance_id(self, env):
        await env.start(HelloWorldWorkflow, "John", instance_id="wf-1")

        with pytest.raises(WorkflowAlreadyStartedError):
            await env.start(HelloWorldWorkflow, "Jane", instance_id="wf-1")

    @pytest.mark.asyncio
    async def test_duplicate_instance_id_after_close(self, env):
        handle = await env.start(
            HelloWorldWorkflow, "John", instance_id="wf-1", workflow_kwargs={"approval_window": 0}
        )
        with pytest.raises(ApprovalTimeout):
            await handle.result()

        with pytest.raises(WorkflowAlreadyStartedError):
            await env.start(HelloWorldWorkflow, "John", instance_id="wf-1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("instance_id", ["", "   ", None])
    async def test_invalid_instance_id(self, env, instance_id):
        with pytest.raises(InvalidInput) as exc_info:
            await env.start(HelloWorldWorkflow, "John", instance_id=instance_id)

        assert exc_info.value.field == "instance_id"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("instance_id", ["team/approval-1", "../escape", "..", "a\\b"])
    async def test_instance_id_must_be_one_path_segment(self, env, instance_id):
        with pytest.raises(InvalidInput) as exc_info:
            await env.start(HelloWorldWorkflow, "John", instance_id=instance_id)

        assert exc_info.value.field == "instance_id"
        assert await env.storage.get_run(instance_id) is None

    @pytest.mark.asyncio
    async def test_path_like_id_with_file_storage(self, tmp_path):
        storage = FileStorageBackend(str(tmp_path / "data"))
        host = WorkflowHost(storage=storage, clock=ManualClock())

        for _ in range(2):
            with pytest.raises(InvalidInput):
                await host.start(HelloWorldWorkflow, "John", instance_id="team/approval-1")

        with pytest.raises(InvalidInput):
            await host.result("team/approval-1")
        assert list(storage.runs_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_unregistered_workflow_name(self, env):
        with pytest.raises(InvalidInput, match="not registered") as exc_info:
            await env.start("NoSuchWorkflow", instance_id="wf-1")

        assert exc_info.value.field == "workflow"

    @pytest.mark.asyncio
    async def test_undecorated_class(self, env):
        class Plain:
            pass

        with pytest.raises(InvalidInput, match="@workflow") as exc_info:
            await env.start(Plain, instance_id="wf-1")

        assert exc_info.value.field == "workflow"

    @pytest.mark.asyncio
    async def test_unknown_constructor_argument(self, env):
        with pytest.raises(InvalidInput) as exc_info:
            await env.start(
                HelloWorldWorkflow,
                "John",
                instance_id="wf-1",
                workflow_kwargs={"approval_windw": 5},
            )

        assert exc_info.value.field == "workflow_kwargs"
        assert await env.storage.get_run("wf-1") is None


class FlakyStorage(InMemoryStorageBackend):
    """In-memory storage whose first writes fail like a full disk."""

    def __init__(self, fail_creates: int = 0, fail_events: int = 0):
        super().__init__()
        self.fail_creates = fail_creates
        self.fail_events = fail_events

    async def create_run(self, record):
        if self.fail_creates:
            self.fail_creates -= 1
            raise OSError("No space left on device")
        await super().create_run(record)

    async def record_event(self, event):
        if self.fail_events:
            self.fail_events -= 1
            raise OSError("No space left on device")
        await super().record_event(event)


class TestFailedStart:
    """Test that a start whose persistence fails leaves nothing behind."""

    @pytest.mark.asyncio
    async def test_failed_create_releases_id(self):
        clock = ManualClock()
        host = WorkflowHost(storage=FlakyStorage(fail_creates=1), clock=clock)

        with pytest.raises(OSError):
            await host.start(HelloWorldWorkflow, "John", instance_id="wf-1")

        with pytest.raises(WorkflowNotFoundError):
            await host.result("wf-1")
        with pytest.raises(WorkflowNotFoundError):
            host.query("wf-1", "currentState")

        handle = await host.start(HelloWorldWorkflow, "John", instance_id="wf-1")
        await clock.settle()
        await handle.signal("approve")

        assert await handle.result() == "Hello John!"

    @pytest.mark.asyncio
    async def test_failed_started_event_is_not_hosted(self):
        host = WorkflowHost(storage=FlakyStorage(fail_events=1), clock=ManualClock())

        with pytest.raises(OSError):
            await host.start(HelloWorldWorkflow, "John", instance_id="wf-1")

        with pytest.raises(WorkflowNotFoundError):
            host.query("wf-1", "currentState")

        # The stored record keeps the id taken
        with pytest.raises(WorkflowAlreadyStartedError):
            await host.start(HelloWorldWorkflow, "John", instance_id="wf-1")


class TestSignalsAndQueries:
    """Test signal delivery and query dispatch."""

    @pytest.mark.asyncio
    async def test_unknown_signal(self, env):
        handle = await env.start(HelloWorldWorkflow, "John", instance_id="wf-1")

        with pytest.raises(UnknownSignalError) as exc_info:
            await handle.signal("reject")

        assert exc_info.value.signal_name == "reject"

    @pytest.mark.asyncio
    async def test_unknown_query(self, env):
        handle = await env.start(HelloWorldWorkflow, "John", instance_id="wf-1")

        with pytest.raises(UnknownQueryError):
            handle.query("status")

    @pytest.mark.asyncio
    async def test_unknown_instance(self, env):
        with pytest.raises(WorkflowNotFoundError):
            await env.host.signal("missing", "approve")

        with pytest.raises(WorkflowNotFoundError):
            env.host.query("missing", "currentState")

        with pytest.raises(WorkflowNotFoundError):
            await env.host.result("missing")

        with pytest.raises(WorkflowNotFoundError):
            await env.host.describe("missing")

    @pytest.mark.asyncio
    async def test_signal_with_arguments(self, env):
        @workflow(name="CounterWorkflow")
        class CounterWorkflow:
            def __init__(self):
                self.total = 0

            @entrypoint()
            async def run(self, target: int) -> int:
                await wait_condition(lambda: self.total >= target)
                return self.total

            @signal()
            async def add(self, amount: int) -> None:
                self.total += amount

            @query()
            def current(self) -> int:
                return self.total

        handle = await env.start(CounterWorkflow, 5, instance_id="counter")
        await env.settle()

        await handle.signal("add", 2)
        await env.settle()
        assert handle.query("current") == 2

        await handle.signal("add", 3)
        assert await handle.result() == 5

        received = [e for e in await handle.events() if e.type == EventType.SIGNAL_RECEIVED]
        assert [e.data["args"] for e in received] == ["[2]", "[3]"]


class TestStoredOutcomes:
    """Test handles on instances that only exist in storage."""

    @pytest.mark.asyncio
    async def test_completed_instance_from_file_storage(self, tmp_path):
        async with WorkflowHost(storage=FileStorageBackend(str(tmp_path))) as host:
            handle = await host.start(HelloWorldWorkflow, "John", instance_id="wf-1")
            await handle.signal("approve")
            assert await handle.result() == "Hello John!"

        other = WorkflowHost(storage=FileStorageBackend(str(tmp_path)))
        handle = other.get_handle("wf-1")

        assert await handle.result() == "Hello John!"
        record = await handle.describe()
        assert record.status == RunStatus.COMPLETED
        assert record.completed_at is not None

    @pytest.mark.asyncio
    async def test_failed_instance_from_file_storage(self, tmp_path):
        async with WorkflowHost(storage=FileStorageBackend(str(tmp_path))) as host:
            handle = await host.start(
                HelloWorldWorkflow,
                "John",
                instance_id="wf-1",
                workflow_kwargs={"approval_window": 0},
            )
            with pytest.raises(ApprovalTimeout):
                await handle.result()

        other = WorkflowHost(storage=FileStorageBackend(str(tmp_path)))

        with pytest.raises(WorkflowFailedError) as exc_info:
            await other.result("wf-1")

        assert exc_info.value.error_type == "ApprovalTimeout"
        assert "0 seconds" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_signal_to_stored_instance_is_ignored(self, tmp_path):
        async with WorkflowHost(storage=FileStorageBackend(str(tmp_path))) as host:
            handle = await host.start(HelloWorldWorkflow, "John", instance_id="wf-1")
            await handle.signal("approve")
            await handle.result()

        other = WorkflowHost(storage=FileStorageBackend(str(tmp_path)))
        await other.signal("wf-1", "approve")

        latest = await other.storage.get_latest_event("wf-1")
        assert latest.type == EventType.SIGNAL_IGNORED

    @pytest.mark.asyncio
    async def test_duplicate_id_across_hosts(self, tmp_path):
        async with WorkflowHost(storage=FileStorageBackend(str(tmp_path))) as host:
            handle = await host.start(HelloWorldWorkflow, "John", instance_id="wf-1")
            await handle.signal("approve")
            await handle.result()

        async with WorkflowHost(storage=FileStorageBackend(str(tmp_path))) as other:
            with pytest.raises(WorkflowAlreadyStartedError):
                await other.start(HelloWorldWorkflow, "John", instance_id="wf-1")


class TestLifecycle:
    """Test host configuration and shutdown."""

    def test_settings_select_storage(self, tmp_path):
        host = WorkflowHost(settings=HostSettings(storage_path=str(tmp_path)))

        assert isinstance(host.storage, FileStorageBackend)

    @pytest.mark.asyncio
    async def test_activities_accept_decorated_functions(self):
        from approvalflow.core.activity import activity

        @activity(name="compose_greeting_stub")
        async def stub(name: str) -> str:
            return "stub"

        host = WorkflowHost(activities=[stub])

        assert host.activities == {"compose_greeting_stub": stub}

    @pytest.mark.asyncio
    async def test_shutdown_cancels_running_instances(self):
        clock = ManualClock()
        host = WorkflowHost(clock=clock)
        handle = await host.start(HelloWorldWorkflow, "John", instance_id="wf-1")
        await clock.settle()

        await host.shutdown()

        record = await handle.describe()
        assert record.status == RunStatus.CANCELLED
