"""Post-commit jobs.

Work queued after an order is recorded (profile save, notification) runs
detached from the response. Each job goes through run_best_effort so a
failure ends up in this module's log and nowhere else.
"""

import logging
from typing import Any, Awaitable, Callable, Protocol

logger = logging.getLogger("cartdrop.tasks")


class Scheduler(Protocol):
    """Anything with BackgroundTasks.add_task's signature."""

    def __call__(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None: ...


async def run_best_effort(
    label: str,
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    **kwargs: Any,
) -> Any:
    """Await func once; log and swallow any failure."""
    try:
        return await func(*args, **kwargs)
    except Exception:
        logger.exception("Post-commit job %r failed", label)
        return None
