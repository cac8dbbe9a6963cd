"""
Transaction Utilities
=====================

Retry helpers for short write transactions that can lose a lock race.

Usage Examples:
    @retry_on_deadlock(max_retries=3)
    def bump_counter(gig_id):
        with transaction.atomic():
            ...
"""

import logging
import time
from functools import wraps

from django.db import OperationalError

logger = logging.getLogger(__name__)

# Fragments the supported backends put in lock-conflict errors
DEADLOCK_MARKERS = (
    "Deadlock found",  # MySQL 1213
    "1213",
    "deadlock detected",  # PostgreSQL
    "could not serialize access",  # PostgreSQL serialization failure
    "database is locked",  # SQLite busy
)


class TransactionError(Exception):
    """Custom exception for transaction-related errors"""

    pass


class DeadlockError(TransactionError):
    """Exception raised when a deadlock is detected"""

    pass


def is_deadlock(error: Exception) -> bool:
    message = str(error)
    return any(marker in message for marker in DEADLOCK_MARKERS)


def retry_on_deadlock(max_retries=3, delay=0.1, backoff=2.0):
    """
    Decorator to retry operations on deadlock with exponential backoff.

    The wrapped callable must own its transaction (open ``transaction.atomic``
    inside), otherwise a retry would run inside an already broken transaction.

    Args:
        max_retries (int): Maximum number of retry attempts
        delay (float): Initial delay between retries in seconds
        backoff (float): Backoff multiplier for delay
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            current_delay = delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except OperationalError as e:
                    if not is_deadlock(e):
                        raise TransactionError(f"Database operation failed: {e}") from e
                    if attempt >= max_retries:
                        raise DeadlockError(f"Deadlock detected: {e}") from e
                    logger.warning(
                        f"Deadlock detected in {func.__name__}, retrying in {current_delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(current_delay)
                    current_delay *= backoff

        return wrapper

    return decorator
