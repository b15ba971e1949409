"""
Condition wait primitive.

Suspends a workflow until a predicate over its own state becomes true or a
timeout elapses, whichever comes first. The predicate is re-evaluated each
time the host delivers a signal to the instance and once more when the timer
fires; it is never polled.
"""

import asyncio
from datetime import timedelta
from typing import Callable, Optional, Union

from approvalflow.core.context import get_current_context
from approvalflow.engine.events import (
    create_condition_satisfied_event,
    create_timer_fired_event,
    create_timer_started_event,
)
from approvalflow.utils.duration import duration_seconds


async def wait_condition(
    predicate: Callable[[], bool],
    timeout: Optional[Union[str, int, float, timedelta]] = None,
) -> bool:
    """
    Wait until ``predicate()`` is true or ``timeout`` elapses.

    The predicate is checked before the deadline at every evaluation, so a
    condition that is already true when the timer fires still wins. A
    timeout of zero or less resolves immediately to the predicate's current
    value.

    Args:
        predicate: Side-effect-free check over workflow state
        timeout: Seconds, duration string ("30s"), timedelta, or None to wait
            indefinitely

    Returns:
        True if the predicate became true, False if the timeout elapsed first

    Examples:
        # Wait up to 30 seconds for approval
        approved = await wait_condition(lambda: self.approved, timeout=30)

        # Wait indefinitely
        await wait_condition(lambda: self.items_ready)
    """
    ctx = get_current_context()
    log = ctx.logger

    if predicate():
        await ctx.storage.record_event(create_condition_satisfied_event(ctx.instance_id, None))
        return True

    seconds = None
    if timeout is not None:
        seconds = duration_seconds(timeout)
        if seconds <= 0:
            return predicate()

    timer_id = None
    timer = None
    if seconds is not None:
        timer_id = ctx.next_timer_id()
        await ctx.storage.record_event(
            create_timer_started_event(ctx.instance_id, timer_id, seconds)
        )
        timer = asyncio.ensure_future(ctx.clock.sleep(seconds))

    log.debug("Waiting on condition", timer_id=timer_id, timeout=seconds)

    try:
        while True:
            ctx.state_changed.clear()
            if predicate():
                break

            changed = asyncio.ensure_future(ctx.state_changed.wait())
            waiting = {changed} if timer is None else {changed, timer}
            try:
                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)
            finally:
                changed.cancel()

            if predicate():
                break

            if timer is not None and timer in done:
                await ctx.storage.record_event(create_timer_fired_event(ctx.instance_id, timer_id))
                log.debug("Condition timed out", timer_id=timer_id)
                return False

    finally:
        if timer is not None and not timer.done():
            timer.cancel()

    await ctx.storage.record_event(create_condition_satisfied_event(ctx.instance_id, timer_id))
    return True
