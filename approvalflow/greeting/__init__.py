"""
HelloWorld approval workflow.

Composes a greeting through an activity, then holds it until the approve
signal arrives or the approval window elapses.
"""

from approvalflow.greeting.activities import compose_greeting
from approvalflow.greeting.workflow import (
    DEFAULT_APPROVAL_WINDOW,
    HelloWorldWorkflow,
    WorkflowStatus,
)

__all__ = [
    "HelloWorldWorkflow",
    "WorkflowStatus",
    "DEFAULT_APPROVAL_WINDOW",
    "compose_greeting",
]
