"""Backoff retry for unauthenticated probes of the backend.

Only transport failures are retried: a connection that could not be made or
a request that timed out. An HTTP error status is an answer from the server
and is raised on the first attempt. The authenticated request path in
``prism.session`` never uses this; its only recovery is the single
refresh-and-retry for a 401.
"""
from __future__ import annotations

import functools
import random
import time
from typing import Any, Callable, Iterator, Tuple, Type

import requests

from prism.log import get_logger

log = get_logger(__name__)

# ConnectTimeout is both; ReadTimeout is a Timeout. HTTPError is neither.
TRANSPORT_ERRORS: Tuple[Type[BaseException], ...] = (requests.ConnectionError, requests.Timeout)


def backoff_delays(
    attempts: int,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    factor: float = 2.0,
    jitter: bool = True,
) -> Iterator[float]:
    """Yield the pause before each retry: ``attempts - 1`` values."""
    delay = base_delay
    for _ in range(attempts - 1):
        pause = min(delay, max_delay)
        yield pause * (0.5 + random.random()) if jitter else pause
        delay *= factor


def retry_transport(
    *,
    attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    jitter: bool = True,
    retry_on: Tuple[Type[BaseException], ...] = TRANSPORT_ERRORS,
) -> Callable:
    """Decorator: re-run the wrapped probe on transport errors, then re-raise."""
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            pauses = backoff_delays(attempts, base_delay, max_delay, jitter=jitter)
            attempt = 1
            while True:
                try:
                    return fn(*args, **kwargs)
                except retry_on as exc:
                    pause = next(pauses, None)
                    if pause is None:
                        log.error("%s gave up after %d attempts: %s", fn.__qualname__, attempt, exc)
                        raise
                    log.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        fn.__qualname__, attempt, attempts, exc, pause,
                    )
                    time.sleep(pause)
                    attempt += 1

        return wrapper

    return decorator
