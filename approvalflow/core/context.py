"""
Workflow execution context management.

The context stores the execution state of one workflow instance and provides
access to:
- Instance identification (instance id, workflow name, task queue)
- The storage backend used for the event log
- The host's clock and activity implementations
- The state-change notification used by wait_condition()
"""

import asyncio
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from approvalflow.core.exceptions import ContextError
from approvalflow.engine.clock import Clock, SystemClock
from approvalflow.observability.logging import bind_workflow_context


# Each instance task sets its own value; asyncio tasks copy the context on creation
_current_context: ContextVar[Optional["WorkflowContext"]] = ContextVar(
    "workflow_context", default=None
)


@dataclass
class WorkflowContext:
    """
    Execution context for a workflow instance.

    The context is created by the host when the instance starts and lives
    until the entry point returns or raises.
    """

    # Instance identification
    instance_id: str
    workflow_name: str

    # Storage backend for event logging
    storage: Any  # StorageBackend (avoid circular import)

    task_queue: str = ""
    clock: Clock = field(default_factory=SystemClock)

    # Activity implementations registered with the host, by name
    activities: Dict[str, Callable[..., Any]] = field(default_factory=dict)

    # Set whenever a signal handler ran; wait_condition() re-checks on it
    state_changed: asyncio.Event = field(default_factory=asyncio.Event)

    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    timer_counter: int = 0

    # True once the entry point returned or raised; the instance is history
    closed: bool = False

    _tokens: List[Token] = field(default_factory=list, repr=False)

    def notify_state_changed(self) -> None:
        """Wake any pending wait_condition() so it re-evaluates its predicate."""
        self.state_changed.set()

    def next_timer_id(self) -> str:
        self.timer_counter += 1
        return f"timer_{self.timer_counter}"

    @property
    def logger(self):
        return bind_workflow_context(self.instance_id, self.workflow_name)

    def __enter__(self) -> "WorkflowContext":
        """Install as current context (used by the host around signal and query handlers)."""
        self._tokens.append(_current_context.set(self))
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        _current_context.reset(self._tokens.pop())


def get_current_context() -> WorkflowContext:
    """
    Get the current workflow execution context.

    Raises:
        ContextError: If called outside a workflow instance

    Example:
        @entrypoint()
        async def run(self):
            ctx = get_current_context()
            print(f"Running instance: {ctx.instance_id}")
    """
    ctx = _current_context.get()
    if ctx is None:
        raise ContextError(
            "No workflow context available. This function must be called "
            "within a workflow entry point."
        )
    return ctx


def set_current_context(context: Optional[WorkflowContext]) -> None:
    """Set (or clear, with None) the current workflow context."""
    _current_context.set(context)


def has_current_context() -> bool:
    return _current_context.get() is not None


def workflow_logger():
    """
    Logger bound to the current instance.

    Outside a workflow this returns the plain loguru logger so helper code
    can log from either side.
    """
    ctx = _current_context.get()
    if ctx is None:
        return logger
    return ctx.logger
