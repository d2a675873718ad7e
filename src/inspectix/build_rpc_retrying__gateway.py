"""Shared tenacity retry policy for gateway calls."""

from __future__ import annotations

import logging

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from inspectix.config import Settings

MAX_BACKOFF_S = 10


def build_rpc_retrying(
    settings: Settings,
    transient: tuple[type[BaseException], ...],
    log: logging.Logger,
) -> AsyncRetrying:
    """Return an async retry controller for one gateway call.

    Args:
        settings: Settings carrying ``rpc_max_retries`` and ``rpc_retry_backoff_ms``.
        transient: Exception types worth another attempt.
        log: Logger used to report each retry.

    Returns:
        A fresh ``AsyncRetrying`` that re-raises the last error once exhausted.
    """

    base_backoff = max(settings.rpc_retry_backoff_ms, 0) / 1000.0
    return AsyncRetrying(
        retry=retry_if_exception_type(transient),
        stop=stop_after_attempt(max(settings.rpc_max_retries, 0) + 1),
        wait=wait_exponential(multiplier=base_backoff, max=MAX_BACKOFF_S),
        reraise=True,
        before_sleep=before_sleep_log(log, logging.WARNING),
    )
