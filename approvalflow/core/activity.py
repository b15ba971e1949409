"""
@activity decorator and the execute_activity() primitive.

Activities are units of work that run outside the workflow's state machine:
network calls, database writes, anything with side effects. A workflow never
calls an activity directly. It calls execute_activity(), which:
- Resolves the implementation registered with the host (or the decorated one)
- Applies the start-to-close timeout and retry policy from ActivityOptions
- Records scheduled/completed/failed events in the instance history
- Propagates the activity's own exception unchanged once retries are exhausted
"""

import asyncio
import functools
import inspect
from typing import Any, Callable, Dict, Optional, Union

from approvalflow.core.context import get_current_context, has_current_context
from approvalflow.core.exceptions import ActivityTimeoutError, ApplicationFailure
from approvalflow.core.options import ActivityOptions
from approvalflow.core.registry import ActivityDefinition, get_activity, register_activity
from approvalflow.engine.events import (
    create_activity_completed_event,
    create_activity_failed_event,
    create_activity_retrying_event,
    create_activity_scheduled_event,
)
from approvalflow.observability.logging import bind_activity_context
from approvalflow.serialization.encoder import serialize, serialize_args


def activity(
    name: Optional[str] = None,
    options: Optional[ActivityOptions] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Callable:
    """
    Decorator to mark functions as activities.

    Activities may be sync or async. Decorated functions remain directly
    callable; inside a workflow, invoke them through execute_activity().

    Args:
        name: Optional activity name (defaults to function name)
        options: Default invocation options, overridden per call
        metadata: Optional metadata dictionary

    Examples:
        @activity()
        async def compose_greeting(name: str) -> str:
            return f"Hello {name}!"

        @activity(name="charge", options=ActivityOptions(start_to_close_timeout="10s"))
        def charge_card(order_id: str) -> str:
            ...
    """
    # Support bare @activity
    if callable(name):
        return activity()(name)

    def decorator(func: Callable) -> Callable:
        activity_name = name or func.__name__

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await _call(func, args, kwargs)

        register_activity(
            ActivityDefinition(
                name=activity_name,
                func=wrapper,
                original_func=func,
                options=options,
                metadata=metadata or {},
            )
        )

        wrapper.__activity__ = True
        wrapper.__activity_name__ = activity_name
        wrapper.__activity_options__ = options
        wrapper.__activity_metadata__ = metadata or {}

        return wrapper

    return decorator


async def _call(func: Callable, args: tuple, kwargs: dict) -> Any:
    """Call an activity implementation, running sync ones in a worker thread."""
    if inspect.iscoroutinefunction(func):
        return await func(*args, **kwargs)
    result = await asyncio.to_thread(func, *args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


async def _call_with_timeout(
    activity_name: str, func: Callable, args: tuple, timeout: Optional[float]
) -> Any:
    """
    Run one attempt under the start-to-close timeout.

    A TimeoutError raised by the activity itself is its own failure and is
    not converted into ActivityTimeoutError.
    """
    task = asyncio.ensure_future(_call(func, args, {}))
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout)
    except asyncio.CancelledError:
        task.cancel()
        raise
    if not done:
        task.cancel()
        raise ActivityTimeoutError(activity_name, timeout)
    return task.result()


def _resolve(activity_ref: Union[str, Callable]) -> tuple:
    """Return (name, implementation, default options) for an activity reference."""
    if isinstance(activity_ref, str):
        activity_name = activity_ref
    else:
        activity_name = getattr(activity_ref, "__activity_name__", None)
        if activity_name is None:
            raise ValueError(
                f"Function {getattr(activity_ref, '__name__', activity_ref)} is not "
                f"registered as an activity. Did you forget the @activity decorator?"
            )

    definition = get_activity(activity_name)
    default_options = definition.options if definition else None

    ctx = get_current_context()
    implementation = ctx.activities.get(activity_name)
    if implementation is None and definition is not None:
        implementation = definition.original_func
    if implementation is None:
        raise ValueError(f"No implementation registered for activity '{activity_name}'")

    return activity_name, implementation, default_options


def _is_retryable(error: Exception, options: ActivityOptions) -> bool:
    if isinstance(error, ApplicationFailure):
        if error.non_retryable:
            return False
        error_type = error.error_type
    else:
        error_type = type(error).__name__
    return error_type not in options.retry_policy.non_retryable_error_types


async def execute_activity(
    activity_ref: Union[str, Callable],
    *args: Any,
    options: Optional[ActivityOptions] = None,
) -> Any:
    """
    Invoke an activity from inside a workflow and wait for its result.

    This is a suspension point: the instance yields while the activity runs.

    Args:
        activity_ref: Decorated activity function or its registered name
        *args: Arguments passed to the activity
        options: Invocation options (falls back to the decorator's, then defaults)

    Returns:
        The activity's result

    Raises:
        ActivityTimeoutError: If an attempt exceeds the start-to-close timeout
        Exception: The activity's own exception, unchanged, once attempts run out

    Example:
        greeting = await execute_activity(
            compose_greeting,
            name,
            options=ActivityOptions(start_to_close_timeout="60s"),
        )
    """
    if not has_current_context():
        raise RuntimeError("execute_activity() must be called from a workflow entry point")

    ctx = get_current_context()
    activity_name, implementation, default_options = _resolve(activity_ref)
    options = options or default_options or ActivityOptions()
    policy = options.retry_policy
    timeout = options.timeout_seconds
    args_json = serialize_args(*args)

    attempt = 1
    while True:
        log = bind_activity_context(ctx.instance_id, activity_name, attempt)
        await ctx.storage.record_event(
            create_activity_scheduled_event(
                ctx.instance_id, activity_name, args_json, attempt, timeout
            )
        )
        log.debug(f"Executing activity: {activity_name}")

        try:
            result = await _call_with_timeout(activity_name, implementation, args, timeout)
        except Exception as e:
            error_type = getattr(e, "error_type", None) or type(e).__name__
            will_retry = attempt < policy.maximum_attempts and _is_retryable(e, options)
            await ctx.storage.record_event(
                create_activity_failed_event(
                    ctx.instance_id,
                    activity_name,
                    error=str(e),
                    error_type=error_type,
                    attempt=attempt,
                    will_retry=will_retry,
                )
            )
            if not will_retry:
                log.error(
                    f"Activity failed: {activity_name}",
                    error=str(e),
                    error_type=error_type,
                )
                raise

            delay = policy.delay_for(attempt)
            log.warning(
                f"Activity failed, retrying: {activity_name}",
                error=str(e),
                retry_in=delay,
            )
            await ctx.storage.record_event(
                create_activity_retrying_event(ctx.instance_id, activity_name, attempt + 1, delay)
            )
            await ctx.clock.sleep(delay)
            attempt += 1
            continue

        await ctx.storage.record_event(
            create_activity_completed_event(
                ctx.instance_id, activity_name, serialize(result), attempt
            )
        )
        log.debug(f"Activity completed: {activity_name}")
        return result
