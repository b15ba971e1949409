"""
Abstract base class for storage backends.

All storage implementations must implement this interface so the host can
persist instance records and event history regardless of where they live.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from approvalflow.core.exceptions import InvalidInput
from approvalflow.engine.events import Event
from approvalflow.storage.schemas import RunStatus, WorkflowInstanceRecord

# Ids name files in the file backend, so they must stay a single path segment
_FORBIDDEN_ID_CHARACTERS = ("/", "\\", "\x00")


def validate_instance_id(instance_id: Any) -> str:
    """
    Check that an instance id is usable by every backend.

    Raises:
        InvalidInput: If the id is blank, not a string, or not a single
            path segment
    """
    if not isinstance(instance_id, str) or not instance_id.strip():
        raise InvalidInput("instance_id must be a non-empty string", field="instance_id")
    if instance_id in (".", "..") or any(c in instance_id for c in _FORBIDDEN_ID_CHARACTERS):
        raise InvalidInput(
            f"instance_id must not contain path separators: {instance_id!r}",
            field="instance_id",
        )
    return instance_id


class StorageBackend(ABC):
    """
    Abstract base class for workflow storage backends.

    Storage backends are responsible for:
    - Persisting one record per workflow instance
    - Managing the per-instance event log (append-only)

    All methods are async so file, network and in-memory backends share one
    interface.
    """

    # Instance Operations

    @abstractmethod
    async def create_run(self, record: WorkflowInstanceRecord) -> None:
        """
        Create a new instance record.

        Raises:
            ValueError: If the instance id already exists
        """
        pass

    @abstractmethod
    async def get_run(self, instance_id: str) -> Optional[WorkflowInstanceRecord]:
        """Retrieve an instance record by id, or None."""
        pass

    @abstractmethod
    async def update_run_status(
        self,
        instance_id: str,
        status: RunStatus,
        result: Optional[str] = None,
        error: Optional[str] = None,
        error_type: Optional[str] = None,
    ) -> None:
        """
        Update instance status and optionally result/error.

        Args:
            instance_id: Workflow instance identifier
            status: New status
            result: Serialized result (if completed)
            error: Error message (if failed)
            error_type: Failure kind (if failed)
        """
        pass

    # Event Log Operations

    @abstractmethod
    async def record_event(self, event: Event) -> None:
        """
        Append an event to the instance's log.

        The backend assigns the event's sequence number.
        """
        pass

    @abstractmethod
    async def get_events(
        self,
        instance_id: str,
        event_types: Optional[List[str]] = None,
    ) -> List[Event]:
        """Retrieve events for an instance ordered by sequence."""
        pass

    async def get_latest_event(
        self,
        instance_id: str,
        event_type: Optional[str] = None,
    ) -> Optional[Event]:
        """Get the latest event for an instance, optionally filtered by type."""
        events = await self.get_events(
            instance_id, event_types=[event_type] if event_type else None
        )
        return events[-1] if events else None

    # Lifecycle

    async def connect(self) -> None:
        """Override if your backend requires explicit connection setup."""
        pass

    async def disconnect(self) -> None:
        """Override if your backend requires explicit cleanup."""
        pass
