"""
The HelloWorld approval workflow.

State machine:

    Starting -> Awaiting Approval -> Approved -> Complete!
                                  +-> timed out (ApprovalTimeout)

The entry point composes the greeting first, then waits for the approve
signal. The greeting is only returned once the instance is approved.
"""

from datetime import timedelta
from enum import Enum
from typing import Any, Optional, Union

from approvalflow.core.activity import execute_activity
from approvalflow.core.context import workflow_logger
from approvalflow.core.exceptions import ApprovalTimeout, InvalidInput
from approvalflow.core.options import ActivityOptions
from approvalflow.core.workflow import entrypoint, query, signal, workflow
from approvalflow.greeting.activities import compose_greeting
from approvalflow.primitives.condition import wait_condition
from approvalflow.utils.duration import format_duration, parse_duration

DEFAULT_APPROVAL_WINDOW = 30

ACTIVITY_OPTIONS = ActivityOptions(start_to_close_timeout=60)


class WorkflowStatus(Enum):
    """Lifecycle states, valued by the label the currentState query reports."""

    STARTING = "Starting"
    AWAITING_APPROVAL = "Awaiting Approval"
    APPROVED = "The workflow has been approved!"
    COMPLETED = "Complete!"
    TIMED_OUT = "The workflow timed out while waiting to be approved"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowStatus.COMPLETED, WorkflowStatus.TIMED_OUT)


def _require_name(*args: Any) -> None:
    if len(args) != 1:
        raise InvalidInput(f"get_greeting takes exactly one name, got {len(args)} arguments")
    name = args[0]
    if not isinstance(name, str) or not name:
        raise InvalidInput("name must be a non-empty string", field="name")


def _parse_window(approval_window: Union[int, str, timedelta]) -> int:
    try:
        return parse_duration(approval_window)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"Invalid approval window: {e}", field="approval_window") from e


@workflow(name="HelloWorldWorkflow")
class HelloWorldWorkflow:
    """
    Greets a name once a human approves it.

    Args:
        approval_window: How long to wait for the approve signal. Seconds,
            a duration string ("30s") or a timedelta. Zero or less times out
            immediately unless the instance was approved before the wait.
    """

    def __init__(self, approval_window: Union[int, str, timedelta] = DEFAULT_APPROVAL_WINDOW):
        self.approval_window = _parse_window(approval_window)
        self.status = WorkflowStatus.STARTING
        self.approved = False
        self.name: Optional[str] = None
        self.result: Optional[str] = None

    @entrypoint(validator=_require_name)
    async def get_greeting(self, name: str) -> str:
        log = workflow_logger()
        log.info("GetGreeting called with {}", name)
        self.name = name

        greeting = await execute_activity(compose_greeting, name, options=ACTIVITY_OPTIONS)

        self.status = WorkflowStatus.AWAITING_APPROVAL
        log.info("Waiting up to {} for approval", format_duration(self.approval_window))

        if not await wait_condition(lambda: self.approved, timeout=self.approval_window):
            self.status = WorkflowStatus.TIMED_OUT
            log.warning(self.status.value)
            raise ApprovalTimeout(self.approval_window)

        self.status = WorkflowStatus.APPROVED
        log.info(self.status.value)

        self.result = greeting
        self.status = WorkflowStatus.COMPLETED
        return greeting

    @signal()
    def approve(self) -> None:
        if self.status.is_terminal:
            return
        if not self.approved:
            workflow_logger().info("Approval signal received")
        self.approved = True

    @query(name="currentState")
    def current_state(self) -> str:
        return self.status.value
