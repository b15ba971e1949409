"""
In-memory storage backend.

Keeps records and event logs in dictionaries owned by the backend object.
This is the host's default: nothing outlives the process, which suits tests
and single-shot samples.
"""

from copy import deepcopy
from datetime import UTC, datetime
from typing import Dict, List, Optional

from approvalflow.engine.events import Event
from approvalflow.storage.base import StorageBackend
from approvalflow.storage.schemas import RunStatus, WorkflowInstanceRecord


class InMemoryStorageBackend(StorageBackend):
    """Dictionary-backed storage. Not shared between processes."""

    def __init__(self) -> None:
        self._runs: Dict[str, WorkflowInstanceRecord] = {}
        self._events: Dict[str, List[Event]] = {}

    async def create_run(self, record: WorkflowInstanceRecord) -> None:
        if record.instance_id in self._runs:
            raise ValueError(f"Workflow instance {record.instance_id} already exists")
        self._runs[record.instance_id] = deepcopy(record)

    async def get_run(self, instance_id: str) -> Optional[WorkflowInstanceRecord]:
        record = self._runs.get(instance_id)
        return deepcopy(record) if record else None

    async def update_run_status(
        self,
        instance_id: str,
        status: RunStatus,
        result: Optional[str] = None,
        error: Optional[str] = None,
        error_type: Optional[str] = None,
    ) -> None:
        record = self._runs.get(instance_id)
        if record is None:
            raise ValueError(f"Workflow instance {instance_id} not found")

        now = datetime.now(UTC)
        record.status = status
        record.updated_at = now
        if result is not None:
            record.result = result
        if error is not None:
            record.error = error
        if error_type is not None:
            record.error_type = error_type
        if status.is_terminal:
            record.completed_at = now

    async def record_event(self, event: Event) -> None:
        log = self._events.setdefault(event.instance_id, [])
        event.sequence = len(log) + 1
        log.append(event)

    async def get_events(
        self,
        instance_id: str,
        event_types: Optional[List[str]] = None,
    ) -> List[Event]:
        events = self._events.get(instance_id, [])
        if event_types:
            events = [e for e in events if e.type.value in event_types]
        return list(events)
