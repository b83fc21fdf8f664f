import logging
import time
from typing import Callable, Optional, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


def retrying(retry_times: int, sleep_seconds: float, func: Callable[[], T]) -> T:
    """Call ``func`` until it succeeds or ``retry_times`` attempts have failed.

    Args:
        retry_times: Maximum number of calls, must be greater than 0.
        sleep_seconds: Pause between two failed attempts.
        func: Zero-argument callable, typically an HTTP request or a task step.

    Returns:
        Whatever ``func`` returns on its first successful call.

    Raises:
        ValueError: If ``retry_times`` is not positive.
        Exception: The exception of the last attempt when every attempt failed.
    """
    if retry_times < 1:
        raise ValueError("invalid param, 'retry_times' should be greater than 0")

    last_error: Optional[Exception] = None
    for attempt in range(1, retry_times + 1):
        try:
            return func()
        except Exception as e:
            last_error = e
            if attempt == retry_times:
                break
            logger.warning(
                f"call func failed since error: {e}, will retry total times ({attempt}/{retry_times}) "
                f"times after {sleep_seconds}s"
            )
            time.sleep(sleep_seconds)

    logger.error(f"call func failed after {retry_times} attempts: {last_error}")
    raise last_error
