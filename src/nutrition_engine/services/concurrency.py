"""Optimistic-lock retry helper for calculation writes."""

import logging
from collections.abc import Callable
from typing import TypeVar

from nutrition_engine.domain.errors import ConcurrentModificationError

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_on_conflict(func: Callable[[], T], *, attempts: int, action: str) -> T:
    """Run a read-compute-write callable, repeating it on version conflicts.

    ``func`` must re-read its inputs on every call. After ``attempts`` extra
    tries the last ConcurrentModificationError propagates to the caller.
    """
    attempt = 0
    while True:
        try:
            return func()
        except ConcurrentModificationError as exc:
            attempt += 1
            _logger.warning(
                "%s conflicted (attempt %s/%s): %s",
                action,
                attempt,
                attempts + 1,
                exc,
            )
            if attempt > attempts:
                raise
