"""Thread pool for blocking calls made from worker coroutines."""
import asyncio
import functools
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, TypeVar

from vault_worker.core.config import settings

T = TypeVar("T")

# Must not be the loop default executor, which asyncio.run() joins on exit.
_executor = ThreadPoolExecutor(
    max_workers=settings.BLOCKING_CALL_WORKERS,
    thread_name_prefix="vault-blocking",
)


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run ``func`` in the worker thread pool and await its result.

    Pair with ``with_timeout`` to bound the wait; the thread itself keeps
    running after the caller gives up.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_executor, functools.partial(func, *args, **kwargs))
