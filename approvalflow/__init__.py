"""
approvalflow - Signal-driven approval workflows for Python

Workflows are classes whose instances hold the state of one execution. An
in-process host runs each instance as an asyncio task, delivers signals,
answers queries and enforces durable timers, keeping an event log per
instance in a pluggable storage backend.

Quick Start:
    >>> from approvalflow import WorkflowHost
    >>> from approvalflow.greeting import HelloWorldWorkflow
    >>>
    >>> async with WorkflowHost() as host:
    >>>     handle = await host.start(
    >>>         HelloWorldWorkflow, "World", instance_id="HelloWorldWorkflowID"
    >>>     )
    >>>     handle.query("currentState")   # "Starting" until the greeting is composed
    >>>     await handle.signal("approve")
    >>>     await handle.result()          # "Hello World!"
"""

__version__ = "0.1.0"

# Core decorators and primitives
from approvalflow.core.activity import activity, execute_activity
from approvalflow.core.options import ActivityOptions, RetryPolicy
from approvalflow.core.workflow import entrypoint, query, signal, workflow
from approvalflow.primitives.condition import wait_condition

# Execution host
from approvalflow.config import DEFAULT_TASK_QUEUE, HostSettings
from approvalflow.engine.clock import Clock, SystemClock
from approvalflow.engine.host import WorkflowHandle, WorkflowHost

# Exceptions
from approvalflow.core.exceptions import (
    ActivityFailure,
    ActivityTimeoutError,
    ApplicationFailure,
    ApprovalTimeout,
    InvalidInput,
    UnknownQueryError,
    UnknownSignalError,
    WorkflowAlreadyStartedError,
    WorkflowError,
    WorkflowFailedError,
    WorkflowNotFoundError,
)

# Context access
from approvalflow.core.context import (
    get_current_context,
    has_current_context,
    workflow_logger,
)

# Storage backends
from approvalflow.storage.base import StorageBackend
from approvalflow.storage.file import FileStorageBackend
from approvalflow.storage.memory import InMemoryStorageBackend
from approvalflow.storage.schemas import RunStatus, WorkflowInstanceRecord

# Logging and observability
from approvalflow.observability.logging import (
    bind_activity_context,
    bind_workflow_context,
    configure_logging,
)

__all__ = [
    # Version
    "__version__",
    # Core decorators
    "workflow",
    "entrypoint",
    "signal",
    "query",
    "activity",
    # Primitives
    "execute_activity",
    "wait_condition",
    "ActivityOptions",
    "RetryPolicy",
    # Execution
    "WorkflowHost",
    "WorkflowHandle",
    "HostSettings",
    "DEFAULT_TASK_QUEUE",
    "Clock",
    "SystemClock",
    # Exceptions
    "WorkflowError",
    "ApplicationFailure",
    "ActivityFailure",
    "ActivityTimeoutError",
    "ApprovalTimeout",
    "InvalidInput",
    "WorkflowAlreadyStartedError",
    "WorkflowNotFoundError",
    "WorkflowFailedError",
    "UnknownSignalError",
    "UnknownQueryError",
    # Context
    "get_current_context",
    "has_current_context",
    "workflow_logger",
    # Storage
    "StorageBackend",
    "FileStorageBackend",
    "InMemoryStorageBackend",
    "RunStatus",
    "WorkflowInstanceRecord",
    # Logging
    "configure_logging",
    "bind_workflow_context",
    "bind_activity_context",
]
