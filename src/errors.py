"""
Error types for the Rancher in-service upgrader.
"""

from typing import Optional


class UpgradeError(Exception):
    """Base class for every terminal upgrade failure."""


class ValidationError(UpgradeError):
    """Upgrade request is missing a required field."""


class ConfigurationError(UpgradeError):
    """Upgrader configuration is incomplete."""


class NotFoundError(UpgradeError):
    """No service with the requested name exists."""


class PreconditionError(UpgradeError):
    """Service cannot be upgraded in its current state."""


class UnexpectedStateError(UpgradeError):
    """Service reported a state outside the expected upgrade lifecycle."""

    def __init__(self, state: str, message: Optional[str] = None):
        self.state = state
        super().__init__(
            message
            or f"unexpected status ({state}) when waiting for upgrade to complete"
        )


class UpgradeTimeoutError(UpgradeError, TimeoutError):
    """A wait phase ran past its deadline."""

    def __init__(self, phase: str, timeout_s: float):
        self.phase = phase
        self.timeout_s = timeout_s
        super().__init__(f"Timeout waiting for {phase} after {timeout_s:.0f}s")


class UpgradeCancelledError(UpgradeError):
    """A wait phase was cancelled from outside."""


class TransportError(UpgradeError):
    """The API call could not be completed."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
    ):
        self.status_code = status_code
        self.url = url
        super().__init__(message)
