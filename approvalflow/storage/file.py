"""
File-based storage backend using JSON files.

This backend stores instance data in local JSON files, suitable for:
- Development and demos
- Single-machine deployments
- Inspecting outcomes after the host process exits

Data is stored in a directory structure:
    base_path/
        runs/
            {instance_id}.json
        events/
            {instance_id}.jsonl  (append-only)
"""

import asyncio
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import List, Optional

from filelock import FileLock

from approvalflow.engine.events import Event
from approvalflow.storage.base import StorageBackend, validate_instance_id
from approvalflow.storage.schemas import RunStatus, WorkflowInstanceRecord


class FileStorageBackend(StorageBackend):
    """
    File-based storage backend using JSON files.

    Safe for concurrent access from several processes through file locks.
    """

    def __init__(self, base_path: str = "./approvalflow_data"):
        """
        Initialize file storage backend.

        Args:
            base_path: Base directory for storing instance data
        """
        self.base_path = Path(base_path)
        self.runs_dir = self.base_path / "runs"
        self.events_dir = self.base_path / "events"
        self.locks_dir = self.base_path / ".locks"

        for dir_path in [self.runs_dir, self.events_dir, self.locks_dir]:
            dir_path.mkdir(parents=True, exist_ok=True)

    def _lock(self, name: str) -> FileLock:
        return FileLock(str(self.locks_dir / f"{name}.lock"))

    def _run_file(self, instance_id: str) -> Path:
        return self.runs_dir / f"{validate_instance_id(instance_id)}.json"

    def _events_file(self, instance_id: str) -> Path:
        return self.events_dir / f"{validate_instance_id(instance_id)}.jsonl"

    # Instance Operations

    async def create_run(self, record: WorkflowInstanceRecord) -> None:
        """Create a new instance record."""
        run_file = self._run_file(record.instance_id)
        data = record.to_dict()
        lock = self._lock(record.instance_id)

        def _write() -> None:
            with lock:
                if run_file.exists():
                    raise ValueError(f"Workflow instance {record.instance_id} already exists")
                run_file.write_text(json.dumps(data, indent=2))

        await asyncio.to_thread(_write)

    async def get_run(self, instance_id: str) -> Optional[WorkflowInstanceRecord]:
        """Retrieve an instance record by id."""
        run_file = self._run_file(instance_id)

        if not run_file.exists():
            return None

        def _read() -> dict:
            return json.loads(run_file.read_text())

        data = await asyncio.to_thread(_read)
        return WorkflowInstanceRecord.from_dict(data)

    async def update_run_status(
        self,
        instance_id: str,
        status: RunStatus,
        result: Optional[str] = None,
        error: Optional[str] = None,
        error_type: Optional[str] = None,
    ) -> None:
        """Update instance status."""
        run_file = self._run_file(instance_id)

        if not run_file.exists():
            raise ValueError(f"Workflow instance {instance_id} not found")

        lock = self._lock(instance_id)

        def _update() -> None:
            with lock:
                data = json.loads(run_file.read_text())
                now = datetime.now(UTC).isoformat()
                data["status"] = status.value
                data["updated_at"] = now

                if result is not None:
                    data["result"] = result
                if error is not None:
                    data["error"] = error
                if error_type is not None:
                    data["error_type"] = error_type
                if status.is_terminal:
                    data["completed_at"] = now

                run_file.write_text(json.dumps(data, indent=2))

        await asyncio.to_thread(_update)

    # Event Log Operations

    async def record_event(self, event: Event) -> None:
        """Append an event to the instance's log."""
        events_file = self._events_file(event.instance_id)
        lock = self._lock(f"events_{event.instance_id}")

        def _append() -> None:
            with lock:
                sequence = 1
                if events_file.exists():
                    with events_file.open("r") as f:
                        sequence += sum(1 for line in f if line.strip())

                event.sequence = sequence
                with events_file.open("a") as f:
                    f.write(json.dumps(event.to_dict()) + "\n")

        await asyncio.to_thread(_append)

    async def get_events(
        self,
        instance_id: str,
        event_types: Optional[List[str]] = None,
    ) -> List[Event]:
        """Retrieve all events for an instance."""
        events_file = self._events_file(instance_id)

        if not events_file.exists():
            return []

        def _read() -> List[Event]:
            events = []
            with events_file.open("r") as f:
                for line in f:
                    if not line.strip():
                        continue

                    data = json.loads(line)
                    if event_types and data["type"] not in event_types:
                        continue

                    events.append(Event.from_dict(data))

            return sorted(events, key=lambda e: e.sequence)

        return await asyncio.to_thread(_read)
