"""Retry helper for removing installer files that are still held open."""

import logging

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

logger = logging.getLogger(__name__)


def _warn_locked(retry_state):
    error = retry_state.outcome.exception()
    logger.warning(
        f"{retry_state.fn.__name__} hit a locked file ({error}); "
        f"attempt {retry_state.attempt_number}, "
        f"next try in {retry_state.next_action.sleep:.1f}s"
    )


def locked_file_retry(attempts: int = 3, max_wait: float = 5):
    """
    Build a decorator that repeats a filesystem call while it raises OSError.

    Antivirus scanners and installer child processes keep freshly written
    packages open for a moment after use. The last error is re-raised once
    `attempts` calls have failed.
    """
    return retry(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=1, max=max_wait),
        retry=retry_if_exception_type(OSError),
        before_sleep=_warn_locked,
        reraise=True,
    )


retry_on_locked_file = locked_file_retry()
