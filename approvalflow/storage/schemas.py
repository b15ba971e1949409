"""
Data models for persisted workflow instances.

These schemas define the structure of data stored in the storage backends.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, Optional


class RunStatus(Enum):
    """Host-level execution status of an instance."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.RUNNING


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass
class WorkflowInstanceRecord:
    """
    Persisted view of a workflow instance.

    The live workflow object holds the business state; this record holds
    what the host needs to report the outcome after the object is gone.
    """

    instance_id: str
    workflow_name: str
    status: RunStatus
    task_queue: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: Optional[datetime] = None

    # Input/output
    input_args: str = "[]"  # JSON serialized list
    input_kwargs: str = "{}"  # JSON serialized dict (constructor arguments)
    result: Optional[str] = None  # JSON serialized result
    error: Optional[str] = None
    error_type: Optional[str] = None

    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "instance_id": self.instance_id,
            "workflow_name": self.workflow_name,
            "status": self.status.value,
            "task_queue": self.task_queue,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "input_args": self.input_args,
            "input_kwargs": self.input_kwargs,
            "result": self.result,
            "error": self.error,
            "error_type": self.error_type,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowInstanceRecord":
        """Create from dictionary."""
        return cls(
            instance_id=data["instance_id"],
            workflow_name=data["workflow_name"],
            status=RunStatus(data["status"]),
            task_queue=data.get("task_queue", ""),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            completed_at=_parse_dt(data.get("completed_at")),
            input_args=data.get("input_args", "[]"),
            input_kwargs=data.get("input_kwargs", "{}"),
            result=data.get("result"),
            error=data.get("error"),
            error_type=data.get("error_type"),
            metadata=data.get("metadata", {}),
        )
