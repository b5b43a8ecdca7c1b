"""
RPC timeout and retry helpers.

Every chain read goes through rpc_call_with_retry so that a slow or flaky
node surfaces as a bounded failure instead of a hung request.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loguru import logger
from web3.exceptions import ContractLogicError

from app.config.constants import BLOCKCHAIN_READ_RETRIES, BLOCKCHAIN_TIMEOUT

T = TypeVar("T")

# Deterministic failures: retrying returns the same answer
NON_RETRYABLE = (ContractLogicError, ValueError, TypeError)


class RpcTimeoutError(Exception):
    """Raised when an RPC call does not answer within its timeout."""


async def with_timeout(
    coro: Awaitable[T],
    timeout: float = BLOCKCHAIN_TIMEOUT,
    operation_name: str = "RPC call",
) -> T:
    """
    Execute coroutine with timeout.

    Args:
        coro: Coroutine to execute
        timeout: Timeout in seconds
        operation_name: Operation name for logging

    Returns:
        Result of the coroutine

    Raises:
        RpcTimeoutError: If operation times out
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except TimeoutError as e:
        error_msg = f"{operation_name} timed out after {timeout}s"
        logger.warning(error_msg)
        raise RpcTimeoutError(error_msg) from e


async def rpc_call_with_retry(
    coro_factory: Callable[[], Awaitable[T]],
    max_retries: int = BLOCKCHAIN_READ_RETRIES,
    timeout: float = BLOCKCHAIN_TIMEOUT,
    operation_name: str = "RPC call",
    base_delay: float = 0.5,
) -> T:
    """
    Execute an idempotent RPC call with timeout and retries.

    Only reads should go through here; a write retried after a lost
    response could be broadcast twice.

    Args:
        coro_factory: Factory returning a fresh coroutine per attempt
        max_retries: Maximum number of attempts
        timeout: Timeout per attempt in seconds
        operation_name: Operation name for logging
        base_delay: First backoff delay, doubled per attempt

    Returns:
        Result of the RPC call

    Raises:
        The last error once all attempts failed, or immediately for
        deterministic failures (reverts, decode errors)
    """
    last_error: Exception | None = None
    attempts = max(1, max_retries)

    for attempt in range(attempts):
        try:
            result = await with_timeout(
                coro_factory(),
                timeout=timeout,
                operation_name=f"{operation_name} (attempt {attempt + 1}/{attempts})",
            )
            if attempt > 0:
                logger.info(f"{operation_name} succeeded on attempt {attempt + 1}")
            return result

        except NON_RETRYABLE:
            raise

        except Exception as e:
            last_error = e
            if attempt < attempts - 1:
                delay = base_delay * (2 ** attempt)
                logger.warning(
                    f"{operation_name} failed on attempt {attempt + 1}/{attempts}: {e}. "
                    f"Retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
            else:
                logger.error(f"{operation_name} failed after {attempts} attempts: {e}")

    assert last_error is not None
    raise last_error


async def call_with_timeout(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    timeout: float = BLOCKCHAIN_TIMEOUT,
    operation_name: str | None = None,
    **kwargs: Any,
) -> Any:
    """Single-attempt call with timeout (used for writes)."""
    return await with_timeout(
        func(*args, **kwargs),
        timeout=timeout,
        operation_name=operation_name or getattr(func, "__name__", "RPC call"),
    )
