"""
Activities used by the greeting workflow.
"""

from approvalflow.core.activity import activity


@activity()
async def compose_greeting(name: str) -> str:
    """Compose the greeting returned once the workflow is approved."""
    return f"Hello {name}!"
