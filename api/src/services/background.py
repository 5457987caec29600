"""
Background work detached from the request that started it.

Provides:
- RequestSnapshot: read-only copy of request context safe to use after the
  request has completed
- BackgroundTaskRunner: owns spawned asyncio tasks, logs their failures and
  bounds how long shutdown waits for them
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Optional, Set, Tuple

import structlog
from fastapi import Request

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RequestSnapshot:
    """Immutable copy of the parts of a request a background task may read."""

    method: str
    path: str
    query_string: str
    client_ip: Optional[str]
    headers: Tuple[Tuple[str, str], ...]
    correlation_id: Optional[str] = None

    @classmethod
    def from_request(cls, request: Request) -> "RequestSnapshot":
        """
        Copy request context.

        The request object itself must not be used once the handler has
        returned; the snapshot holds plain values only.
        """
        return cls(
            method=request.method,
            path=request.url.path,
            query_string=request.url.query,
            client_ip=request.client.host if request.client else None,
            headers=tuple(request.headers.items()),
            correlation_id=getattr(request.state, "correlation_id", None),
        )


class BackgroundTaskRunner:
    """
    Spawn fire-and-forget coroutines and keep them alive until done.

    The event loop only holds weak references to tasks, so the runner keeps
    strong ones until each task finishes. Results are not reported back to
    the caller; failures are logged.
    """

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of tasks that have not finished yet."""
        return len(self._tasks)

    def spawn(self, coro: Awaitable, name: Optional[str] = None) -> asyncio.Task:
        """
        Schedule a coroutine on the running loop.

        Args:
            coro: Coroutine to run
            name: Task name used in logs

        Returns:
            The created task
        """
        task = asyncio.ensure_future(coro)
        if name:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug("background_task_spawned", task=task.get_name(), pending=len(self._tasks))
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)

        if task.cancelled():
            logger.info("background_task_cancelled", task=task.get_name())
            return

        exc = task.exception()
        if exc is not None:
            logger.error(
                "background_task_failed",
                task=task.get_name(),
                error=str(exc),
                exc_info=exc
            )

    async def shutdown(self, timeout: float) -> int:
        """
        Wait up to ``timeout`` seconds for pending tasks, then cancel the rest.

        Args:
            timeout: Upper bound on the wait (seconds)

        Returns:
            Number of tasks that had to be cancelled
        """
        if not self._tasks:
            return 0

        logger.info("background_tasks_draining", pending=len(self._tasks), timeout=timeout)
        _, still_running = await asyncio.wait(set(self._tasks), timeout=timeout)

        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning("background_tasks_cancelled", cancelled=len(still_running))

        return len(still_running)


async def finish_long_task(snapshot: RequestSnapshot, delay: float) -> str:
    """Simulate slow work for a request that has already been answered."""
    await asyncio.sleep(delay)
    message = f"Done! in path {snapshot.path}"
    logger.info(
        "long_async_done",
        message=message,
        path=snapshot.path,
        correlation_id=snapshot.correlation_id
    )
    return message
