"""
Unit tests for workflow and activity registry.
"""

import pytest

from approvalflow.core.options import ActivityOptions
from approvalflow.core.registry import (
    ActivityDefinition,
    WorkflowDefinition,
    WorkflowRegistry,
)


class Greeter:
    pass


class OtherGreeter:
    pass


class TestWorkflowRegistry:
    """Test the workflow registry functionality."""

    def test_register_and_get_workflow(self):
        """Test registering and retrieving a workflow."""
        registry = WorkflowRegistry()
        definition = WorkflowDefinition(
            name="greeter",
            cls=Greeter,
            entrypoint="run",
            signals={"approve": "approve"},
            metadata={"key": "value"},
        )

        registry.register_workflow(definition)

        found = registry.get_workflow("greeter")
        assert found is definition
        assert found.signals == {"approve": "approve"}
        assert registry.get_workflow("missing") is None

    def test_reregister_same_class(self):
        registry = WorkflowRegistry()
        registry.register_workflow(WorkflowDefinition(name="greeter", cls=Greeter, entrypoint="run"))
        registry.register_workflow(WorkflowDefinition(name="greeter", cls=Greeter, entrypoint="go"))

        assert registry.get_workflow("greeter").entrypoint == "go"

    def test_conflicting_workflow_name(self):
        registry = WorkflowRegistry()
        registry.register_workflow(WorkflowDefinition(name="greeter", cls=Greeter, entrypoint="run"))

        with pytest.raises(ValueError, match="already registered"):
            registry.register_workflow(
                WorkflowDefinition(name="greeter", cls=OtherGreeter, entrypoint="run")
            )

    def test_names_are_independent(self):
        registry = WorkflowRegistry()
        registry.register_workflow(WorkflowDefinition(name="greeter", cls=Greeter, entrypoint="run"))
        registry.register_workflow(
            WorkflowDefinition(name="other", cls=OtherGreeter, entrypoint="run")
        )

        assert registry.get_workflow("greeter").cls is Greeter
        assert registry.get_workflow("other").cls is OtherGreeter


class TestActivityRegistry:
    """Test activity registration."""

    def test_register_and_get_activity(self):
        registry = WorkflowRegistry()

        async def compose(name):
            return name

        options = ActivityOptions(start_to_close_timeout=5)
        registry.register_activity(
            ActivityDefinition(name="compose", func=compose, original_func=compose, options=options)
        )

        found = registry.get_activity("compose")
        assert found.options is options
        assert registry.get_activity("missing") is None

    def test_conflicting_activity_name(self):
        registry = WorkflowRegistry()

        async def compose(name):
            return name

        async def compose_other(name):
            return name

        registry.register_activity(
            ActivityDefinition(name="compose", func=compose, original_func=compose)
        )

        with pytest.raises(ValueError, match="already registered"):
            registry.register_activity(
                ActivityDefinition(name="compose", func=compose_other, original_func=compose_other)
            )
