"""
Global registry for workflows and activities.

The registry tracks every @workflow class and @activity function so that
instances can be started by name (untyped start) and activities resolved by
name when the host has no explicit implementation for them.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from approvalflow.core.options import ActivityOptions


@dataclass
class WorkflowDefinition:
    """Metadata for a registered workflow class."""

    name: str
    cls: type
    entrypoint: str  # method name
    signals: Dict[str, str] = field(default_factory=dict)  # signal name -> method name
    queries: Dict[str, str] = field(default_factory=dict)  # query name -> method name
    validator: Optional[Callable[..., None]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ActivityDefinition:
    """Metadata for a registered activity."""

    name: str
    func: Callable[..., Any]
    original_func: Callable[..., Any]
    options: Optional[ActivityOptions] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class WorkflowRegistry:
    """Registry of workflow classes and activity functions."""

    def __init__(self) -> None:
        self._workflows: Dict[str, WorkflowDefinition] = {}
        self._activities: Dict[str, ActivityDefinition] = {}

    # Workflow registration

    def register_workflow(self, definition: WorkflowDefinition) -> None:
        """
        Register a workflow definition.

        Re-registering the same class under the same name is allowed
        (e.g. module reload); a different class under a taken name is not.
        """
        existing = self._workflows.get(definition.name)
        if existing is not None:
            if existing.cls.__qualname__ != definition.cls.__qualname__ or (
                existing.cls.__module__ != definition.cls.__module__
            ):
                raise ValueError(
                    f"Workflow name '{definition.name}' already registered with a different class"
                )
        self._workflows[definition.name] = definition

    def get_workflow(self, name: str) -> Optional[WorkflowDefinition]:
        return self._workflows.get(name)

    # Activity registration

    def register_activity(self, definition: ActivityDefinition) -> None:
        existing = self._activities.get(definition.name)
        if existing is not None and existing.original_func.__qualname__ != (
            definition.original_func.__qualname__
        ):
            raise ValueError(
                f"Activity name '{definition.name}' already registered with different function"
            )
        self._activities[definition.name] = definition

    def get_activity(self, name: str) -> Optional[ActivityDefinition]:
        return self._activities.get(name)


# Global singleton registry
_registry = WorkflowRegistry()


def register_workflow(definition: WorkflowDefinition) -> None:
    _registry.register_workflow(definition)


def get_workflow(name: str) -> Optional[WorkflowDefinition]:
    return _registry.get_workflow(name)


def register_activity(definition: ActivityDefinition) -> None:
    _registry.register_activity(definition)


def get_activity(name: str) -> Optional[ActivityDefinition]:
    return _registry.get_activity(name)
