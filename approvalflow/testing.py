"""
Testing utilities for approvalflow.

This module provides a virtual clock and a ready-made host for unit testing
workflows without waiting on wall-clock time.

These helpers should ONLY be used in tests, not in production code.
"""

import asyncio
import heapq
import itertools
from typing import Any, List, Optional, Tuple, Union

from loguru import logger

from approvalflow.config import DEFAULT_TASK_QUEUE, HostSettings
from approvalflow.engine.clock import Clock
from approvalflow.engine.host import ActivityImplementations, WorkflowHandle, WorkflowHost
from approvalflow.storage.base import StorageBackend
from approvalflow.storage.memory import InMemoryStorageBackend

# Loop iterations given to instance tasks before and after each timer fires
SETTLE_ROUNDS = 50


class ManualClock(Clock):
    """
    Virtual time for tests.

    Time only moves when advance() is called. Timers created with sleep()
    fire in deadline order (creation order for equal deadlines), and the loop
    is given a chance to run the woken tasks after each one.

    Example:
        clock = ManualClock()
        host = WorkflowHost(clock=clock)
        handle = await host.start(HelloWorldWorkflow, "John", instance_id="wf-1")
        await clock.advance(3)
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._timers: List[Tuple[float, int, asyncio.Future]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    async def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        future = asyncio.get_running_loop().create_future()
        heapq.heappush(self._timers, (self._now + seconds, next(self._sequence), future))
        await future

    @property
    def pending_timers(self) -> int:
        return sum(1 for _, _, future in self._timers if not future.done())

    async def advance(self, seconds: float, settle: bool = True) -> None:
        """
        Move time forward by ``seconds``, firing every timer that comes due.

        Args:
            seconds: Amount of virtual time to skip
            settle: Let woken tasks run before and after each timer fires.
                With settle=False the timers resolve in the same loop step as
                whatever the caller did last, which is how ties are produced.
        """
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards")

        target = self._now + seconds
        if settle:
            await self.settle()

        while self._timers and self._timers[0][0] <= target:
            deadline, _, future = heapq.heappop(self._timers)
            self._now = max(self._now, deadline)
            if future.done():
                continue
            future.set_result(None)
            if settle:
                await self.settle()

        self._now = target

    async def settle(self, rounds: int = SETTLE_ROUNDS) -> None:
        """Yield to the event loop until runnable instance tasks reach their next wait."""
        for _ in range(rounds):
            await asyncio.sleep(0)


class WorkflowEnvironment:
    """
    A host wired to a ManualClock and in-memory storage.

    Example:
        async with WorkflowEnvironment() as env:
            handle = await env.start(HelloWorldWorkflow, "John", instance_id="wf-1")
            await env.sleep(3)
            await handle.signal("approve")
            assert await handle.result() == "Hello John!"
    """

    def __init__(
        self,
        activities: Optional[ActivityImplementations] = None,
        storage: Optional[StorageBackend] = None,
        task_queue: str = DEFAULT_TASK_QUEUE,
    ) -> None:
        self.clock = ManualClock()
        self.storage = storage or InMemoryStorageBackend()
        self.host = WorkflowHost(
            storage=self.storage,
            clock=self.clock,
            activities=activities,
            settings=HostSettings(task_queue=task_queue),
        )

    async def __aenter__(self) -> "WorkflowEnvironment":
        await self.host.__aenter__()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.host.__aexit__(exc_type, exc_val, exc_tb)

    async def start(
        self, workflow: Union[type, str], *args: Any, **options: Any
    ) -> WorkflowHandle:
        return await self.host.start(workflow, *args, **options)

    async def sleep(self, seconds: float) -> None:
        """Skip ``seconds`` of virtual time, firing due timers."""
        logger.debug(f"Skipping {seconds}s of virtual time")
        await self.clock.advance(seconds)

    async def settle(self) -> None:
        await self.clock.settle()
