"""
Cancellation and Background Side Effects
========================================

CancellationToken lets a caller (for example the CLI's Ctrl+C handler or a
"stop" button) abort a running agent loop. The loop checks the token
before every iteration and races every model call against it, so a
cancelled request stops without waiting for a slow model to answer.

fire_and_forget() schedules non-critical work (step notifications for a
UI, tagging side effects) without making the loop wait for it.
"""

import asyncio
from typing import Any, Awaitable, Coroutine, TypeVar

from mailmind.errors import AgentCancelled
from mailmind.utils.logger import Logger

logger = Logger("Cancellation")

T = TypeVar("T")

# Strong references so pending background tasks are not garbage collected
_background_tasks: set[asyncio.Task] = set()


class CancellationToken:
    """
    A one-shot cancellation signal.

    Example:
        token = CancellationToken()
        task = asyncio.create_task(loop.run(history, cancel=token))
        ...
        token.cancel()   # the loop raises AgentCancelled
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise AgentCancelled("Agent run was cancelled")

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await `awaitable` unless the token fires first.

        If the token fires, the pending work is cancelled and
        AgentCancelled is raised.
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise AgentCancelled("Agent run was cancelled")

        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {work, waiter},
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()

        if work in done:
            return work.result()

        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        raise AgentCancelled("Agent run was cancelled")


def fire_and_forget(coro: Coroutine[Any, Any, Any], name: str = "side-effect") -> asyncio.Task:
    """
    Schedule a coroutine without awaiting it.

    Failures are logged, never raised into the caller.
    """
    task = asyncio.create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_on_background_done)
    return task


def _on_background_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"Background task {task.get_name()} failed", error)
