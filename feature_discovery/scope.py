"""
Cancellation scope for one click.

A scope owns the asyncio tasks spawned for a click. Cancelling the scope
cancels every child that is still pending; results of children that settle
afterwards are never looked at. Leaving the ``async with`` block cancels
and reaps whatever is left, so no request outlives its click.

    async with CancellationScope("click-7") as scope:
        tasks = [scope.spawn(fetch(layer)) for layer in layers]
        winner = await scope.first_accepted(tasks, accept=is_hit)
"""

import asyncio
import logging
from typing import Callable, Coroutine, List, Optional, Sequence

logger = logging.getLogger(__name__)


class ScopeCancelled(Exception):
    """Raised inside a scope's owner once the scope has been cancelled."""


class CancellationScope:
    """Structured-concurrency owner of a set of child tasks."""

    def __init__(self, name: str = "scope"):
        self.name = name
        self._tasks: List[asyncio.Task] = []
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def pending(self) -> List[asyncio.Task]:
        return [t for t in self._tasks if not t.done()]

    def spawn(self, coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
        """
        Start a child task owned by this scope.

        Raises:
            ScopeCancelled: If the scope was already cancelled
        """
        if self._cancelled:
            coro.close()
            raise ScopeCancelled(f"{self.name} is cancelled")
        task = asyncio.ensure_future(coro)
        if name and hasattr(task, "set_name"):
            task.set_name(f"{self.name}:{name}")
        self._tasks.append(task)
        return task

    def cancel(self) -> None:
        """Cancel the scope and every pending child."""
        if not self._cancelled:
            logger.debug(f"Cancelling {self.name} ({len(self.pending)} pending)")
        self._cancelled = True
        self.cancel_children()

    def cancel_children(self, tasks: Optional[Sequence[asyncio.Task]] = None) -> int:
        """Cancel pending children (all, or the given subset); the scope stays open."""
        count = 0
        for task in (tasks if tasks is not None else self._tasks):
            if not task.done():
                task.cancel()
                count += 1
        return count

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ScopeCancelled(f"{self.name} is cancelled")

    async def first_accepted(
        self,
        tasks: Sequence[asyncio.Task],
        accept: Callable[[asyncio.Task], bool]
    ) -> Optional[asyncio.Task]:
        """
        Wait for the first task whose result passes `accept`, then cancel the rest.

        Settled tasks are inspected in submission order, so when several
        finish in the same tick the earliest-submitted acceptable one wins.
        Cancelled children are skipped.

        Returns:
            The winning task, or None when every task settled unaccepted

        Raises:
            ScopeCancelled: If the scope is cancelled while waiting
        """
        remaining = list(tasks)
        while remaining:
            self.raise_if_cancelled()
            await asyncio.wait(remaining, return_when=asyncio.FIRST_COMPLETED)
            self.raise_if_cancelled()

            settled = [t for t in remaining if t.done()]
            for task in settled:
                remaining.remove(task)
                if task.cancelled():
                    continue
                if accept(task):
                    self.cancel_children(remaining)
                    return task
        return None

    async def aclose(self) -> None:
        """Cancel and reap all children still running."""
        leftover = self.pending
        self.cancel_children(leftover)
        if leftover:
            await asyncio.gather(*leftover, return_exceptions=True)

    async def __aenter__(self) -> "CancellationScope":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.aclose()
        return False
