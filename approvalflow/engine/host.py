"""
In-process orchestration host.

The host is responsible for:
- Starting workflow instances under caller-chosen unique ids
- Running each instance as one asyncio task on the current event loop
- Delivering signals and answering queries, serialized per instance
- Persisting the instance record and event history through a StorageBackend
- Reporting outcomes, live or read back from storage

It does not replay history, dispatch across processes or poll task queues:
the task queue is recorded on each instance as an opaque routing key.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from loguru import logger

from approvalflow.config import HostSettings
from approvalflow.core.context import WorkflowContext
from approvalflow.core.exceptions import (
    InvalidInput,
    UnknownQueryError,
    UnknownSignalError,
    WorkflowAlreadyStartedError,
    WorkflowError,
    WorkflowFailedError,
    WorkflowNotFoundError,
)
from approvalflow.core.registry import WorkflowDefinition, get_workflow
from approvalflow.core.workflow import execute_workflow_with_context, get_definition
from approvalflow.engine.clock import Clock, SystemClock
from approvalflow.engine.events import (
    Event,
    create_signal_ignored_event,
    create_signal_received_event,
    create_workflow_started_event,
)
from approvalflow.serialization.decoder import deserialize
from approvalflow.serialization.encoder import serialize, serialize_args, serialize_kwargs
from approvalflow.storage.base import StorageBackend, validate_instance_id
from approvalflow.storage.schemas import RunStatus, WorkflowInstanceRecord

ActivityImplementations = Union[Mapping[str, Callable[..., Any]], Iterable[Callable[..., Any]]]


@dataclass
class _Execution:
    """Live state the host keeps for every instance it started."""

    definition: WorkflowDefinition
    instance: Any
    context: WorkflowContext
    task: Optional[asyncio.Task] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


def _index_activities(activities: Optional[ActivityImplementations]) -> Dict[str, Callable]:
    if not activities:
        return {}
    if isinstance(activities, Mapping):
        return dict(activities)
    return {getattr(fn, "__activity_name__", None) or fn.__name__: fn for fn in activities}


def _consume_outcome(task: asyncio.Task) -> None:
    # Outcomes are logged and persisted by the host; callers may never await them
    if not task.cancelled():
        task.exception()


class WorkflowHost:
    """
    Runs workflow instances in the current process.

    Args:
        storage: Storage backend (defaults to the one HostSettings selects)
        clock: Timer source (defaults to wall-clock time)
        activities: Activity implementations by name, or decorated activity
            functions; these take precedence over the registered ones
        settings: Host settings (task queue, storage, logging)

    Example:
        async with WorkflowHost() as host:
            handle = await host.start(
                HelloWorldWorkflow, "World", instance_id="HelloWorldWorkflowID"
            )
            await handle.signal("approve")
            greeting = await handle.result()
    """

    def __init__(
        self,
        storage: Optional[StorageBackend] = None,
        clock: Optional[Clock] = None,
        activities: Optional[ActivityImplementations] = None,
        settings: Optional[HostSettings] = None,
    ) -> None:
        self.settings = settings or HostSettings()
        self.storage = storage or self.settings.create_storage()
        self.clock = clock or SystemClock()
        self.activities = _index_activities(activities)
        self._executions: Dict[str, _Execution] = {}

    async def __aenter__(self) -> "WorkflowHost":
        await self.storage.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.shutdown()
        await self.storage.disconnect()

    # Start

    async def start(
        self,
        workflow: Union[type, str],
        *args: Any,
        instance_id: str,
        task_queue: Optional[str] = None,
        workflow_kwargs: Optional[Dict[str, Any]] = None,
    ) -> "WorkflowHandle":
        """
        Start a new instance and return without waiting for it to finish.

        Args:
            workflow: A @workflow class, or its registered name
            *args: Entry point arguments
            instance_id: Caller-chosen unique id for the instance
            task_queue: Routing key recorded on the instance (defaults to settings)
            workflow_kwargs: Constructor arguments for the workflow object,
                e.g. {"approval_window": 30}

        Returns:
            Handle for signalling, querying and awaiting the instance

        Raises:
            InvalidInput: If the workflow is unknown, or the id, arguments or
                constructor arguments are rejected
            WorkflowAlreadyStartedError: If the id is already in use

        If persisting the start fails, the id is released again and the
        storage error propagates.
        """
        definition = self._resolve_workflow(workflow)
        validate_instance_id(instance_id)
        if definition.validator is not None:
            definition.validator(*args)

        # Rejected constructor arguments surface before anything is persisted
        try:
            instance = definition.cls(**(workflow_kwargs or {}))
        except TypeError as e:
            raise InvalidInput(
                f"Invalid constructor arguments for {definition.name}: {e}",
                field="workflow_kwargs",
            ) from e

        if instance_id in self._executions:
            raise WorkflowAlreadyStartedError(instance_id)

        queue = task_queue or self.settings.task_queue
        args_json = serialize_args(*args)
        record = WorkflowInstanceRecord(
            instance_id=instance_id,
            workflow_name=definition.name,
            status=RunStatus.RUNNING,
            task_queue=queue,
            input_args=args_json,
            input_kwargs=serialize_kwargs(**(workflow_kwargs or {})),
            metadata=definition.metadata,
        )

        ctx = WorkflowContext(
            instance_id=instance_id,
            workflow_name=definition.name,
            storage=self.storage,
            task_queue=queue,
            clock=self.clock,
            activities=self.activities,
        )
        execution = _Execution(definition=definition, instance=instance, context=ctx)
        # Reserve the id so a concurrent start for it fails fast
        self._executions[instance_id] = execution

        try:
            try:
                await self.storage.create_run(record)
            except ValueError as e:
                raise WorkflowAlreadyStartedError(instance_id) from e
            await self.storage.record_event(
                create_workflow_started_event(instance_id, definition.name, args_json, queue)
            )
        except BaseException:
            del self._executions[instance_id]
            raise

        logger.info(
            f"Starting workflow: {definition.name}",
            instance_id=instance_id,
            task_queue=queue,
        )

        execution.task = asyncio.create_task(
            self._run(execution, args), name=f"workflow:{instance_id}"
        )
        execution.task.add_done_callback(_consume_outcome)
        return WorkflowHandle(self, instance_id)

    def _resolve_workflow(self, workflow: Union[type, str]) -> WorkflowDefinition:
        if isinstance(workflow, str):
            definition = get_workflow(workflow)
            if definition is None:
                raise InvalidInput(f"Workflow '{workflow}' not registered", field="workflow")
            return definition
        try:
            return get_definition(workflow)
        except ValueError as e:
            raise InvalidInput(str(e), field="workflow") from e

    async def _run(self, execution: _Execution, args: tuple) -> Any:
        ctx = execution.context
        try:
            result = await execute_workflow_with_context(
                instance=execution.instance,
                definition=execution.definition,
                ctx=ctx,
                args=args,
                kwargs={},
            )
        except asyncio.CancelledError:
            await self.storage.update_run_status(ctx.instance_id, RunStatus.CANCELLED)
            raise
        except Exception as e:
            await self.storage.update_run_status(
                ctx.instance_id,
                RunStatus.FAILED,
                error=str(e),
                error_type=getattr(e, "error_type", None) or type(e).__name__,
            )
            raise

        await self.storage.update_run_status(
            ctx.instance_id, RunStatus.COMPLETED, result=serialize(result)
        )
        return result

    # Signals and queries

    async def signal(self, instance_id: str, signal_name: str, *args: Any) -> None:
        """
        Deliver a signal to an instance.

        Delivery to a closed instance is a no-op recorded as signal.ignored.

        Raises:
            WorkflowNotFoundError: If the host and its storage do not know the id
            UnknownSignalError: If the workflow declares no such signal
        """
        execution = self._executions.get(instance_id)
        if execution is None:
            if await self.storage.get_run(instance_id) is None:
                raise WorkflowNotFoundError(instance_id)
            await self._ignore_signal(instance_id, signal_name, "instance not hosted here")
            return

        definition = execution.definition
        method_name = definition.signals.get(signal_name)
        if method_name is None:
            raise UnknownSignalError(definition.name, signal_name)

        async with execution.lock:
            if execution.context.closed:
                await self._ignore_signal(instance_id, signal_name, "instance closed")
                return

            with execution.context:
                outcome = getattr(execution.instance, method_name)(*args)
                if inspect.isawaitable(outcome):
                    await outcome
            execution.context.notify_state_changed()

            await self.storage.record_event(
                create_signal_received_event(instance_id, signal_name, serialize_args(*args))
            )
            logger.debug("Signal delivered", instance_id=instance_id, signal_name=signal_name)

    async def _ignore_signal(self, instance_id: str, signal_name: str, reason: str) -> None:
        logger.debug(
            "Signal ignored", instance_id=instance_id, signal_name=signal_name, reason=reason
        )
        await self.storage.record_event(
            create_signal_ignored_event(instance_id, signal_name, reason)
        )

    def query(self, instance_id: str, query_name: str, *args: Any) -> Any:
        """
        Answer a query synchronously from the live workflow object.

        Raises:
            WorkflowNotFoundError: If the instance is not hosted by this host
            UnknownQueryError: If the workflow declares no such query
        """
        execution = self._executions.get(instance_id)
        if execution is None:
            raise WorkflowNotFoundError(instance_id)

        method_name = execution.definition.queries.get(query_name)
        if method_name is None:
            raise UnknownQueryError(execution.definition.name, query_name)

        with execution.context:
            return getattr(execution.instance, method_name)(*args)

    # Outcomes

    async def result(self, instance_id: str) -> Any:
        """
        Wait for an instance to finish and return its result.

        Live instances re-raise the original exception. Instances known only
        from storage return the decoded result or raise WorkflowFailedError.
        """
        execution = self._executions.get(instance_id)
        if execution is not None and execution.task is not None:
            return await asyncio.shield(execution.task)

        record = await self.storage.get_run(instance_id)
        if record is None:
            raise WorkflowNotFoundError(instance_id)
        if record.status == RunStatus.COMPLETED:
            return deserialize(record.result) if record.result is not None else None
        if record.status == RunStatus.RUNNING:
            raise WorkflowError(f"Workflow {instance_id} is running in another host")
        raise WorkflowFailedError(
            instance_id,
            record.error_type or record.status.value,
            record.error or record.status.value,
        )

    async def describe(self, instance_id: str) -> WorkflowInstanceRecord:
        record = await self.storage.get_run(instance_id)
        if record is None:
            raise WorkflowNotFoundError(instance_id)
        return record

    async def events(self, instance_id: str) -> List[Event]:
        return await self.storage.get_events(instance_id)

    def get_handle(self, instance_id: str) -> "WorkflowHandle":
        return WorkflowHandle(self, instance_id)

    async def shutdown(self) -> None:
        """Cancel instances that are still running."""
        running = [
            e.task for e in self._executions.values() if e.task is not None and not e.task.done()
        ]
        for task in running:
            task.cancel()
        if running:
            logger.warning(f"Cancelled {len(running)} running workflow instance(s) on shutdown")
            await asyncio.gather(*running, return_exceptions=True)


class WorkflowHandle:
    """Caller-side handle on one instance."""

    def __init__(self, host: WorkflowHost, instance_id: str) -> None:
        self._host = host
        self.id = instance_id

    async def signal(self, signal_name: str, *args: Any) -> None:
        await self._host.signal(self.id, signal_name, *args)

    def query(self, query_name: str, *args: Any) -> Any:
        return self._host.query(self.id, query_name, *args)

    async def result(self) -> Any:
        return await self._host.result(self.id)

    async def describe(self) -> WorkflowInstanceRecord:
        return await self._host.describe(self.id)

    async def events(self) -> List[Event]:
        return await self._host.events(self.id)

    def __repr__(self) -> str:
        return f"WorkflowHandle(id={self.id!r})"
