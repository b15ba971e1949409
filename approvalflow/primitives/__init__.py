"""
Workflow primitives for suspension points.
"""

from approvalflow.primitives.condition import wait_condition

__all__ = ["wait_condition"]
