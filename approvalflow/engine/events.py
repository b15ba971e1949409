"""
Event types and schemas for the per-instance history.

Every state change of an instance (start, activity outcome, signal delivery,
timer, terminal outcome) is appended to an event log. The log is a record
for inspection; instances are never rebuilt from it.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, Optional
import uuid


class EventType(Enum):
    """All possible event types in the workflow history."""

    # Workflow lifecycle events
    WORKFLOW_STARTED = "workflow.started"
    WORKFLOW_COMPLETED = "workflow.completed"
    WORKFLOW_FAILED = "workflow.failed"

    # Activity events
    ACTIVITY_SCHEDULED = "activity.scheduled"
    ACTIVITY_COMPLETED = "activity.completed"
    ACTIVITY_FAILED = "activity.failed"
    ACTIVITY_RETRYING = "activity.retrying"

    # Signal events
    SIGNAL_RECEIVED = "signal.received"
    SIGNAL_IGNORED = "signal.ignored"

    # Timer/condition events
    TIMER_STARTED = "timer.started"
    TIMER_FIRED = "timer.fired"
    CONDITION_SATISFIED = "condition.satisfied"


@dataclass
class Event:
    """
    A single entry in an instance's history.

    The sequence number is assigned by the storage layer to ensure ordering.
    """

    event_id: str = field(default_factory=lambda: f"evt_{uuid.uuid4().hex[:16]}")
    instance_id: str = ""
    type: EventType = EventType.WORKFLOW_STARTED
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    data: Dict[str, Any] = field(default_factory=dict)
    sequence: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.instance_id:
            raise ValueError("Event must have an instance_id")
        if not isinstance(self.type, EventType):
            raise TypeError(f"Event type must be EventType enum, got {type(self.type)}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "instance_id": self.instance_id,
            "type": self.type.value,
            "sequence": self.sequence,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        return cls(
            event_id=data["event_id"],
            instance_id=data["instance_id"],
            type=EventType(data["type"]),
            sequence=data.get("sequence"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            data=data.get("data", {}),
        )


# Event creation helpers

def create_workflow_started_event(
    instance_id: str,
    workflow_name: str,
    args: str,
    task_queue: str,
) -> Event:
    """Create a workflow started event."""
    return Event(
        instance_id=instance_id,
        type=EventType.WORKFLOW_STARTED,
        data={
            "workflow_name": workflow_name,
            "args": args,
            "task_queue": task_queue,
        },
    )


def create_workflow_completed_event(instance_id: str, result: str) -> Event:
    """Create a workflow completed event."""
    return Event(
        instance_id=instance_id,
        type=EventType.WORKFLOW_COMPLETED,
        data={"result": result},
    )


def create_workflow_failed_event(
    instance_id: str, error: str, error_type: str, traceback: Optional[str] = None
) -> Event:
    """Create a workflow failed event."""
    return Event(
        instance_id=instance_id,
        type=EventType.WORKFLOW_FAILED,
        data={
            "error": error,
            "error_type": error_type,
            "traceback": traceback,
        },
    )


def create_activity_scheduled_event(
    instance_id: str,
    activity_name: str,
    args: str,
    attempt: int,
    timeout: Optional[float],
) -> Event:
    return Event(
        instance_id=instance_id,
        type=EventType.ACTIVITY_SCHEDULED,
        data={
            "activity_name": activity_name,
            "args": args,
            "attempt": attempt,
            "start_to_close_timeout": timeout,
        },
    )


def create_activity_completed_event(
    instance_id: str, activity_name: str, result: str, attempt: int
) -> Event:
    return Event(
        instance_id=instance_id,
        type=EventType.ACTIVITY_COMPLETED,
        data={
            "activity_name": activity_name,
            "result": result,
            "attempt": attempt,
        },
    )


def create_activity_failed_event(
    instance_id: str,
    activity_name: str,
    error: str,
    error_type: str,
    attempt: int,
    will_retry: bool,
) -> Event:
    return Event(
        instance_id=instance_id,
        type=EventType.ACTIVITY_FAILED,
        data={
            "activity_name": activity_name,
            "error": error,
            "error_type": error_type,
            "attempt": attempt,
            "will_retry": will_retry,
        },
    )


def create_activity_retrying_event(
    instance_id: str, activity_name: str, attempt: int, delay_seconds: float
) -> Event:
    return Event(
        instance_id=instance_id,
        type=EventType.ACTIVITY_RETRYING,
        data={
            "activity_name": activity_name,
            "attempt": attempt,
            "delay_seconds": delay_seconds,
        },
    )


def create_signal_received_event(instance_id: str, signal_name: str, args: str) -> Event:
    return Event(
        instance_id=instance_id,
        type=EventType.SIGNAL_RECEIVED,
        data={"signal_name": signal_name, "args": args},
    )


def create_signal_ignored_event(instance_id: str, signal_name: str, reason: str) -> Event:
    return Event(
        instance_id=instance_id,
        type=EventType.SIGNAL_IGNORED,
        data={"signal_name": signal_name, "reason": reason},
    )


def create_timer_started_event(instance_id: str, timer_id: str, duration_seconds: float) -> Event:
    return Event(
        instance_id=instance_id,
        type=EventType.TIMER_STARTED,
        data={"timer_id": timer_id, "duration_seconds": duration_seconds},
    )


def create_timer_fired_event(instance_id: str, timer_id: str) -> Event:
    return Event(
        instance_id=instance_id,
        type=EventType.TIMER_FIRED,
        data={"timer_id": timer_id},
    )


def create_condition_satisfied_event(instance_id: str, timer_id: Optional[str]) -> Event:
    return Event(
        instance_id=instance_id,
        type=EventType.CONDITION_SATISFIED,
        data={"timer_id": timer_id},
    )
