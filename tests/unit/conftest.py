"""
Test configuration and fixtures for unit tests.
"""

import pytest
import pytest_asyncio

from approvalflow.storage.memory import InMemoryStorageBackend
from approvalflow.testing import WorkflowEnvironment


@pytest.fixture(autouse=True)
def reset_global_registry():
    """Drop registrations made by a test; keep those made at import time."""
    from approvalflow.core.registry import _registry

    original_workflows = _registry._workflows.copy()
    original_activities = _registry._activities.copy()

    yield

    _registry._workflows.clear()
    _registry._activities.clear()
    _registry._workflows.update(original_workflows)
    _registry._activities.update(original_activities)


@pytest.fixture(autouse=True)
def reset_workflow_context():
    """Ensure no workflow context leaks between tests."""
    from approvalflow.core.context import set_current_context

    set_current_context(None)

    yield

    set_current_context(None)


@pytest.fixture
def storage():
    return InMemoryStorageBackend()


@pytest_asyncio.fixture
async def env():
    async with WorkflowEnvironment() as environment:
        yield environment
