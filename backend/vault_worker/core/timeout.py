"""Deadline guard for external calls (storage, AI classification, embeddings)."""
import asyncio
import logging
from typing import Awaitable, TypeVar

from vault_worker.core.errors import OperationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _discard_result(task: "asyncio.Future") -> None:
    """Consume the outcome of an abandoned operation so it is never reported as unretrieved."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug(f"Abandoned operation finished with error after timeout: {error}")


async def with_timeout(operation: Awaitable[T], timeout: float, message: str) -> T:
    """Race an operation against a timer.

    The operation is not cancelled when the timer wins: calls such as an
    HTTP upload may still land, and their late result is discarded.
    Errors raised by the operation before the deadline propagate unchanged.

    Args:
        operation: Coroutine or future to await
        timeout: Budget in seconds
        message: Message carried by the timeout error

    Returns:
        The operation's result

    Raises:
        OperationTimeoutError: If the budget is exceeded
    """
    task = asyncio.ensure_future(operation)
    done, _ = await asyncio.wait({task}, timeout=timeout)

    if task not in done:
        task.add_done_callback(_discard_result)
        logger.warning(f"{message} (budget {timeout}s)")
        raise OperationTimeoutError(message, timeout=timeout)

    return task.result()
