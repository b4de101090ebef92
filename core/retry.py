"""Bounded retry for optimistic-concurrency writes."""

import logging
import time
from typing import Callable, TypeVar

from core.exceptions import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StaleVersion(Exception):
    """
    A conditional UPDATE matched no row because another writer got there first.

    Internal signal only: the operation re-reads and re-validates; callers
    outside the service see either success, a domain error, or ConflictError.
    """


def retry_on_stale(
    operation: Callable[[], T],
    attempts: int,
    backoff_seconds: float,
    description: str,
) -> T:
    """
    Run ``operation`` until it stops raising StaleVersion.

    Sleeps ``backoff_seconds * 2**n`` between attempts. Domain errors raised
    by the operation (InvalidTransition, NotEditable, ...) propagate at once.

    Raises:
        ConflictError: Every attempt lost the race.
    """
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except StaleVersion:
            if attempt == attempts:
                break
            delay = backoff_seconds * (2 ** (attempt - 1))
            logger.warning(
                "Concurrent update on %s (attempt %d/%d), retrying in %.3fs",
                description, attempt, attempts, delay,
            )
            time.sleep(delay)

    raise ConflictError(f"Concurrent updates to {description}; please retry")
