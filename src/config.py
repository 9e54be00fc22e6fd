"""
Configuration management for the Rancher in-service upgrader.
"""

from dataclasses import dataclass

from errors import ConfigurationError


@dataclass
class UpgraderConfig:
    """Configuration for upgrader operations. Durations are in milliseconds."""

    endpoint: str
    apikey: str
    apisecret: str
    status_check_frequency_ms: int = 20 * 1000
    service_active_timeout_ms: int = 3 * 60 * 1000
    service_upgraded_timeout_ms: int = 3 * 60 * 1000
    request_timeout_s: int = 60
    verbose: bool = False

    def __post_init__(self):
        if not self.endpoint:
            raise ConfigurationError("you must specify a rancher endpoint")
        if not self.apikey:
            raise ConfigurationError("you must specify a rancher api key")
        if not self.apisecret:
            raise ConfigurationError("you must specify a rancher api secret")
        if self.status_check_frequency_ms <= 0:
            raise ConfigurationError(
                f"status check frequency must be positive, got {self.status_check_frequency_ms}ms"
            )
        for name in ("service_active_timeout_ms", "service_upgraded_timeout_ms"):
            if getattr(self, name) < 0:
                raise ConfigurationError(
                    f"{name} must not be negative, got {getattr(self, name)}ms"
                )
        self.endpoint = self.endpoint.rstrip("/")

    @property
    def status_check_frequency_s(self) -> float:
        return self.status_check_frequency_ms / 1000.0

    @property
    def service_active_timeout_s(self) -> float:
        return self.service_active_timeout_ms / 1000.0

    @property
    def service_upgraded_timeout_s(self) -> float:
        return self.service_upgraded_timeout_ms / 1000.0

    @classmethod
    def from_args(cls, args) -> "UpgraderConfig":
        """
        Create configuration from command-line arguments.

        Args:
            args: Parsed argparse arguments

        Returns:
            UpgraderConfig instance

        Raises:
            ConfigurationError: If endpoint or credentials are missing
        """
        return cls(
            endpoint=args.endpoint,
            apikey=args.apikey,
            apisecret=args.apisecret,
            status_check_frequency_ms=args.status_check_frequency,
            service_active_timeout_ms=args.service_active_timeout,
            service_upgraded_timeout_ms=args.service_upgraded_timeout,
            verbose=args.verbose,
        )
