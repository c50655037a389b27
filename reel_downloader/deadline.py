"""Race a network call against a timer."""

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .errors import UpstreamTimeout

logger = logging.getLogger("uvicorn")

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], seconds: float, message: str) -> T:
    """
    Await ``awaitable`` for at most ``seconds``.

    The slower side loses: if the timer fires first the awaitable is cancelled
    and ``UpstreamTimeout(message)`` is raised. Work already running in a
    worker thread cannot be interrupted, so its eventual result is discarded.

    Args:
        awaitable: Coroutine or future to wait for
        seconds: Deadline in seconds
        message: Error message reported to the caller on timeout

    Returns:
        Whatever the awaitable returned
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning(f"Deadline of {seconds}s exceeded")
        raise UpstreamTimeout(message) from None


def _discard_late_result(future: asyncio.Future, cleanup: Optional[Callable[[Any], Any]]) -> None:
    if future.cancelled():
        return
    if future.exception() is not None:
        logger.debug(f"Abandoned call failed after its deadline: {future.exception()}")
        return
    if cleanup is not None:
        cleanup(future.result())


async def run_with_timeout(
    func: Callable[..., T],
    seconds: float,
    message: str,
    *args: Any,
    on_late_result: Optional[Callable[[T], Any]] = None,
    **kwargs: Any,
) -> T:
    """
    Run a blocking ``func`` in a worker thread under ``with_timeout``.

    A thread cannot be interrupted, so after a timeout the call keeps running.
    Whatever it eventually returns is handed to ``on_late_result``, which
    should release it, and is otherwise dropped.
    """
    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(None, functools.partial(func, *args, **kwargs))
    try:
        return await with_timeout(asyncio.shield(future), seconds, message)
    except UpstreamTimeout:
        future.add_done_callback(functools.partial(_discard_late_result, cleanup=on_late_result))
        raise
