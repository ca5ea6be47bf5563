"""
Fire-and-forget task scheduling.

Work scheduled here runs detached from the request that started it:
its result is never awaited by the caller, its failures are logged and
dropped, and a strong reference is kept until it finishes so the event
loop cannot collect it mid-flight. Shutdown drains whatever is left.
"""

import asyncio
import logging
from typing import Any, Coroutine, Set

logger = logging.getLogger(__name__)

# Strong references to in-flight tasks
_active_background_tasks: Set[asyncio.Task] = set()


async def safe_background_task(coro: Coroutine, task_name: str) -> Any:
    """
    Await ``coro`` and absorb any failure.

    Cancellation still propagates so shutdown can stop the task.

    Returns:
        The coroutine's result, or None if it raised
    """
    try:
        return await coro
    except asyncio.CancelledError:
        logger.info(f"Background task {task_name} cancelled")
        raise
    except Exception as e:
        logger.error(f"Background task {task_name} failed: {e}", exc_info=True)
        return None
    finally:
        logger.debug(f"Background task {task_name} finished")


def create_safe_task(coro: Coroutine, task_name: str) -> asyncio.Task:
    """
    Schedule ``coro`` on the running loop without awaiting it.

    Raises:
        RuntimeError: no event loop is running; ``coro`` is closed unawaited
    """
    wrapped = safe_background_task(coro, task_name)
    try:
        task = asyncio.create_task(wrapped, name=task_name)
    except RuntimeError:
        wrapped.close()
        raise

    _active_background_tasks.add(task)
    task.add_done_callback(_active_background_tasks.discard)
    return task


def active_task_count() -> int:
    return len(_active_background_tasks)


async def drain_background_tasks(timeout: float = 5.0) -> None:
    """Give in-flight tasks ``timeout`` seconds, then cancel the rest."""
    if not _active_background_tasks:
        return

    _, overrun = await asyncio.wait(list(_active_background_tasks), timeout=timeout)
    if overrun:
        for task in overrun:
            task.cancel()
        logger.warning(f"Cancelled {len(overrun)} background tasks on shutdown")
