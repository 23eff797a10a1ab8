"""Run blocking collaborator calls off the event loop and join them."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    return await asyncio.to_thread(func, *args, **kwargs)


async def _optional(name: str, awaitable: Awaitable[Any], default: Any) -> Any:
    try:
        return await awaitable
    except Exception:
        logger.debug("Optional fetch %r failed, using default", name, exc_info=True)
        return default


async def gather_fetches(
    required: dict[str, Awaitable[Any]],
    optional: dict[str, tuple[Awaitable[Any], Any]] | None = None,
) -> dict[str, Any]:
    """Run every fetch concurrently and return ``{name: result}``.

    *required* maps names to awaitables; the first one to fail cancels the
    others and its exception propagates. *optional* maps names to
    ``(awaitable, default)``; a failure there yields the default.
    """
    optional = optional or {}
    tasks: dict[str, asyncio.Task] = {}
    for name, aw in required.items():
        tasks[name] = asyncio.ensure_future(aw)
    for name, (aw, default) in optional.items():
        tasks[name] = asyncio.ensure_future(_optional(name, aw, default))

    try:
        await asyncio.gather(*tasks.values())
    except BaseException:
        for task in tasks.values():
            task.cancel()
        await asyncio.gather(*tasks.values(), return_exceptions=True)
        raise
    return {name: task.result() for name, task in tasks.items()}
