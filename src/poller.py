"""
Deadline-bounded polling for long-running service transitions.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from errors import UpgradeCancelledError, UpgradeTimeoutError

logger = logging.getLogger(__name__)

PENDING = "pending"
DONE = "done"
FAILED = "failed"


@dataclass(frozen=True)
class PollOutcome:
    """Result of one poll check: pending, done with a value, or failed."""

    status: str
    value: Any = None
    error: Optional[BaseException] = None

    @classmethod
    def pending(cls) -> "PollOutcome":
        return cls(PENDING)

    @classmethod
    def done(cls, value: Any = None) -> "PollOutcome":
        return cls(DONE, value=value)

    @classmethod
    def failed(cls, error: BaseException) -> "PollOutcome":
        return cls(FAILED, error=error)


def poll_until(
    check: Callable[[], PollOutcome],
    interval_s: float,
    timeout_s: float,
    *,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "operation",
    cancel_event: Optional[threading.Event] = None,
) -> Any:
    """
    Invoke ``check`` every ``interval_s`` seconds until it is done.

    The deadline is taken from ``clock`` when this function is entered and
    is checked before every invocation, so a check is never started once
    the deadline has passed. Exceptions raised by ``check`` propagate
    unchanged.

    Args:
        check: Callable returning a PollOutcome
        interval_s: Sleep between pending results (seconds)
        timeout_s: Budget for the whole wait (seconds)
        clock: Wall-clock source
        sleep: Sleep function
        description: Name of what is being waited for, used in errors/logs
        cancel_event: Optional event; once set, the wait is abandoned

    Returns:
        The value carried by the done outcome

    Raises:
        UpgradeTimeoutError: If the deadline passes first
        UpgradeCancelledError: If cancel_event is set
    """
    start = clock()
    deadline = start + timeout_s
    attempt = 0

    while True:
        if cancel_event is not None and cancel_event.is_set():
            raise UpgradeCancelledError(f"Cancelled while waiting for {description}")
        now = clock()
        if now > deadline:
            logger.error(
                f"Timeout waiting for {description} after {now - start:.0f}s "
                f"({attempt} check(s))"
            )
            raise UpgradeTimeoutError(description, timeout_s)

        attempt += 1
        outcome = check()

        if outcome.status == DONE:
            return outcome.value
        if outcome.status == FAILED:
            raise outcome.error
        if outcome.status != PENDING:
            raise ValueError(f"Unknown poll status: {outcome.status}")

        logger.debug(
            f"{description}: not ready after check {attempt}, waiting {interval_s:.1f}s"
        )
        sleep(interval_s)
