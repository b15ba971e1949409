"""
Observability for approvalflow.

Provides structured loguru logging for workflow instances and activities.
"""

from approvalflow.observability.logging import (
    bind_activity_context,
    bind_workflow_context,
    configure_logging,
)

__all__ = [
    "configure_logging",
    "bind_workflow_context",
    "bind_activity_context",
]
