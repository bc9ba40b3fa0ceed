# summary_desk/utils/retry.py
"""Shared retry policy for idempotent blob store calls.

Destructive calls (delete, put) must never be wrapped with this: the caller
has to know when they fail.
"""
import logging
import time

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
    wait_random,
)

from summary_desk.exceptions import TransientStoreError
from summary_desk.utils.logging import logger


def retry_policy(attempts: int, delay: float, jitter: float = 0.0, sleep=time.sleep):
    """Build a decorator that retries TransientStoreError with fixed backoff.

    Args:
        attempts: Total number of calls, including the first one
        delay: Seconds to wait between attempts
        jitter: Extra random wait in [0, jitter] seconds added to each delay
        sleep: Sleep function (tests pass a no-op)
    """
    wait = wait_fixed(delay)
    if jitter > 0:
        wait = wait + wait_random(0, jitter)

    return retry(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait,
        retry=retry_if_exception_type(TransientStoreError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        sleep=sleep,
        reraise=True,
    )
