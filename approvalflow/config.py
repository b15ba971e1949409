"""
Host configuration.

Settings are plain values injected into WorkflowHost; nothing in the
workflow code reads them globally. HostSettings.from_env() builds them from
environment variables:

    APPROVALFLOW_TASK_QUEUE     task queue name (default: HELLO_WORLD_TASK_QUEUE)
    APPROVALFLOW_STORAGE_PATH   directory for FileStorageBackend (default: in-memory)
    APPROVALFLOW_LOG_LEVEL      loguru level (default: INFO)
    APPROVALFLOW_JSON_LOGS      "1"/"true" for JSON log records
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from approvalflow.observability.logging import configure_logging
from approvalflow.storage.base import StorageBackend
from approvalflow.storage.file import FileStorageBackend
from approvalflow.storage.memory import InMemoryStorageBackend

DEFAULT_TASK_QUEUE = "HELLO_WORLD_TASK_QUEUE"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class HostSettings:
    """
    Settings for an in-process workflow host.

    Attributes:
        task_queue: Routing key recorded on every instance the host starts
        storage_path: Directory for file storage; None keeps state in memory
        log_level: Log level for configure_logging()
        json_logs: Emit JSON log records
    """

    task_queue: str = DEFAULT_TASK_QUEUE
    storage_path: Optional[str] = None
    log_level: str = "INFO"
    json_logs: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HostSettings":
        """
        Build settings from environment variables.

        Examples:
            settings = HostSettings.from_env()
            settings = HostSettings.from_env({"APPROVALFLOW_TASK_QUEUE": "approvals"})
        """
        env = os.environ if environ is None else environ
        return cls(
            task_queue=env.get("APPROVALFLOW_TASK_QUEUE", DEFAULT_TASK_QUEUE),
            storage_path=env.get("APPROVALFLOW_STORAGE_PATH") or None,
            log_level=env.get("APPROVALFLOW_LOG_LEVEL", "INFO").upper(),
            json_logs=env.get("APPROVALFLOW_JSON_LOGS", "").strip().lower() in _TRUTHY,
        )

    def create_storage(self) -> StorageBackend:
        if self.storage_path:
            return FileStorageBackend(base_path=self.storage_path)
        return InMemoryStorageBackend()

    def configure_logging(self) -> None:
        configure_logging(level=self.log_level, json_logs=self.json_logs)
