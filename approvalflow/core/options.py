"""
Invocation options for activities.

Timeouts and retries are a property of how an activity is invoked, not of
the workflow logic that calls it. Workflows pass ActivityOptions to
execute_activity() the same way they would configure an activity stub.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional, Tuple, Union

from approvalflow.utils.duration import duration_seconds

DurationLike = Union[str, int, float, timedelta]


def _to_seconds(value: Optional[DurationLike]) -> Optional[float]:
    if value is None:
        return None
    return duration_seconds(value)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry policy applied by the activity invocation layer.

    The default is a single attempt: failures surface to the workflow as-is.

    Args:
        maximum_attempts: Total attempts including the first one
        initial_interval: Delay before the first retry (seconds or "5s")
        backoff_coefficient: Multiplier applied to the delay after each retry
        maximum_interval: Upper bound on the delay between attempts
        non_retryable_error_types: Error type names that are never retried
    """

    maximum_attempts: int = 1
    initial_interval: DurationLike = 1
    backoff_coefficient: float = 2.0
    maximum_interval: Optional[DurationLike] = None
    non_retryable_error_types: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.maximum_attempts < 1:
            raise ValueError("maximum_attempts must be at least 1")
        if self.backoff_coefficient < 1:
            raise ValueError("backoff_coefficient must be >= 1")

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds before the attempt following ``attempt``."""
        delay = _to_seconds(self.initial_interval) * (self.backoff_coefficient ** (attempt - 1))
        ceiling = _to_seconds(self.maximum_interval)
        if ceiling is not None:
            delay = min(delay, ceiling)
        return delay


@dataclass(frozen=True)
class ActivityOptions:
    """
    Options for a single activity invocation.

    Example:
        options = ActivityOptions(start_to_close_timeout="60s")
        greeting = await execute_activity(compose_greeting, name, options=options)
    """

    start_to_close_timeout: Optional[DurationLike] = 60
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self) -> None:
        timeout = self.timeout_seconds
        if timeout is not None and timeout <= 0:
            raise ValueError(f"start_to_close_timeout must be positive, got {timeout}s")

    @property
    def timeout_seconds(self) -> Optional[float]:
        return _to_seconds(self.start_to_close_timeout)
