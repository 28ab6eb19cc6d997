"""Bounded "wait until done" polling.

Every state wait in the package goes through :func:`poll_until`. A check
returns ``(done, observation)``; raising from the check is the fatal
"not ready and broken" signal and stops the loop at once.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, TypeVar

import structlog
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_result,
    stop_after_delay,
    wait_fixed,
)

from kube_testapps.integrations.kubernetes.config import POLL_INTERVAL, POLL_TIMEOUT
from kube_testapps.integrations.kubernetes.exceptions import KubernetesTimeoutError

logger = structlog.get_logger()

T = TypeVar("T")

Check = Callable[[], tuple[bool, T]]


def _not_done(done: bool) -> bool:
    return not done


def poll_until(
    check: Check[T],
    *,
    interval: float = POLL_INTERVAL,
    timeout: float = POLL_TIMEOUT,
    description: str = "condition",
    sleep: Callable[[float], Any] = time.sleep,
) -> T:
    """Invoke ``check`` until it reports done.

    The first call is immediate and later calls are ``interval`` seconds
    apart. The check always runs at least once, even when ``timeout`` is
    zero.

    Args:
        check: Performs one observation and returns ``(done, observation)``.
        interval: Seconds between observations.
        timeout: Seconds after which the wait is abandoned.
        description: What is being waited for, used in logs and errors.
        sleep: Sleep function, replaceable in tests.

    Returns:
        The observation from the call that reported done.

    Raises:
        KubernetesTimeoutError: If the deadline passes first. The error
            carries the last observation.
        Exception: Whatever ``check`` raised, unchanged.
    """
    last_observed: T | None = None

    def attempt() -> bool:
        nonlocal last_observed
        done, last_observed = check()
        return done

    def log_retry(retry_state: RetryCallState) -> None:
        logger.debug(
            "polling_not_done",
            description=description,
            attempt=retry_state.attempt_number,
            elapsed=round(retry_state.seconds_since_start or 0.0, 3),
        )

    retrying = Retrying(
        retry=retry_if_result(_not_done),
        stop=stop_after_delay(max(timeout, 0)),
        wait=wait_fixed(interval),
        sleep=sleep,
        before_sleep=log_retry,
    )

    try:
        retrying(attempt)
    except RetryError as e:
        logger.debug("polling_timed_out", description=description, timeout=timeout)
        raise KubernetesTimeoutError(
            message=f"timed out waiting for {description}",
            timeout_seconds=timeout,
            last_observed=last_observed,
        ) from e

    return last_observed  # type: ignore[return-value]
