"""Exponential backoff for LLM transport calls."""

import time
from typing import Callable, Tuple, Type, TypeVar
from schemair.config.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

TRANSIENT_STATUS_CODES = (408, 429, 500, 502, 503, 504)


def is_transient_error(error: Exception) -> bool:
    """True for timeouts, rate limits and gateway errors worth retrying."""
    status = getattr(error, "status_code", None)
    if status in TRANSIENT_STATUS_CODES:
        return True
    text = str(error).lower()
    return "timeout" in text or "timed out" in text or "temporarily" in text


def retry_with_backoff(
    func: Callable[[], T],
    max_retries: int,
    base_delay: float,
    timeout_errors: Tuple[Type[BaseException], ...] = (),
    operation_name: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``func`` until it succeeds, backing off on transient failures.

    Args:
        func: Zero-argument callable
        max_retries: Total attempts
        base_delay: Delay before the second attempt; doubles each time
        timeout_errors: Exception types always treated as transient
        operation_name: Label for log messages
        sleep: Sleep function (injectable for tests)

    Returns:
        Result of ``func``

    Raises:
        The last exception once attempts are exhausted or a non-transient error occurs
    """
    attempts = max(1, max_retries)
    for attempt in range(attempts):
        try:
            return func()
        except Exception as e:
            transient = isinstance(e, timeout_errors) or is_transient_error(e)
            if not transient or attempt == attempts - 1:
                logger.error(f"{operation_name} failed after {attempt + 1} attempt(s): {e}")
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                f"{operation_name}: transient error on attempt {attempt + 1}/{attempts}: {e}. "
                f"Retrying in {delay:.1f} seconds..."
            )
            sleep(delay)
    raise RuntimeError(f"{operation_name} failed after {attempts} attempts")
