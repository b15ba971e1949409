"""
Exception classes for workflow error handling.

Business failures raised by workflows and activities derive from
ApplicationFailure and carry an error type that survives persistence. Host
errors (unknown instance, duplicate id, bad signal name) derive directly from
WorkflowError.
"""

from typing import Any, Optional


class WorkflowError(Exception):
    """Base exception for all workflow-related errors."""

    pass


class ApplicationFailure(WorkflowError):
    """
    Typed business failure raised from workflow or activity code.

    The error type is a free-form string that lets callers distinguish
    failure kinds after the exception object itself is gone (e.g. when the
    outcome is read back from storage).

    Example:
        raise ApplicationFailure("Card declined", error_type="PaymentDeclined")
    """

    def __init__(
        self,
        message: str,
        error_type: Optional[str] = None,
        non_retryable: bool = False,
        **details: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type or type(self).__name__
        self.non_retryable = non_retryable
        self.details = details


class ActivityFailure(ApplicationFailure):
    """Raised by the invocation layer when an activity could not complete."""

    def __init__(self, activity_name: str, message: str, **details: Any) -> None:
        super().__init__(message, **details)
        self.activity_name = activity_name


class ActivityTimeoutError(ActivityFailure):
    """Raised when an activity exceeds its start-to-close timeout."""

    def __init__(self, activity_name: str, timeout: float) -> None:
        super().__init__(
            activity_name,
            f"Activity {activity_name} did not complete within {timeout:g} seconds",
            error_type="StartToCloseTimeout",
        )
        self.timeout = timeout


class ApprovalTimeout(ApplicationFailure):
    """
    Terminal failure: the approval window elapsed without an approve signal.

    Not retryable. Running the workflow again requires a new instance.
    """

    def __init__(self, window_seconds: int) -> None:
        super().__init__(
            f"Approval not received within {window_seconds} seconds",
            error_type="ApprovalTimeout",
            non_retryable=True,
        )
        self.window_seconds = window_seconds


class InvalidInput(WorkflowError):
    """Raised when a start request is malformed, before any state transition."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class WorkflowNotFoundError(WorkflowError):
    """Raised when a workflow instance cannot be found."""

    def __init__(self, instance_id: str) -> None:
        super().__init__(f"Workflow instance not found: {instance_id}")
        self.instance_id = instance_id


class WorkflowAlreadyStartedError(WorkflowError):
    """Raised when starting an instance whose id is already in use."""

    def __init__(self, instance_id: str) -> None:
        super().__init__(f"Workflow instance already started: {instance_id}")
        self.instance_id = instance_id


class WorkflowFailedError(WorkflowError):
    """
    Outcome of a failed instance read back from storage.

    Raised by WorkflowHandle.result() when the original exception object is
    not available in this process.
    """

    def __init__(self, instance_id: str, error_type: Optional[str], message: str) -> None:
        super().__init__(f"Workflow {instance_id} failed ({error_type}): {message}")
        self.instance_id = instance_id
        self.error_type = error_type
        self.message = message


class UnknownSignalError(WorkflowError):
    """Raised when a signal name is not declared by the workflow."""

    def __init__(self, workflow_name: str, signal_name: str) -> None:
        super().__init__(f"Workflow {workflow_name} has no signal named '{signal_name}'")
        self.workflow_name = workflow_name
        self.signal_name = signal_name


class UnknownQueryError(WorkflowError):
    """Raised when a query name is not declared by the workflow."""

    def __init__(self, workflow_name: str, query_name: str) -> None:
        super().__init__(f"Workflow {workflow_name} has no query named '{query_name}'")
        self.workflow_name = workflow_name
        self.query_name = query_name


class SerializationError(WorkflowError):
    """Raised when data cannot be serialized or deserialized."""

    def __init__(self, message: str, data_type: Optional[type] = None) -> None:
        super().__init__(message)
        self.data_type = data_type


class ContextError(WorkflowError):
    """Raised when workflow context is not available or invalid."""

    pass
