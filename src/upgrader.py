"""
In-service upgrade orchestration for a single Rancher service.

Chain: fetch -> validate -> submit upgrade -> wait for "upgraded" ->
finishupgrade -> wait for "active".
"""

import copy
import logging
import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from config import UpgraderConfig
from directory import ServiceDirectory
from errors import PreconditionError, UnexpectedStateError, UpgradeError
from models import ServiceDescriptor, UpgradeRequest, UpgradeResult, UpgradeSession
from poller import PollOutcome, poll_until

STATE_ACTIVE = "active"
STATE_UPGRADING = "upgrading"
STATE_UPGRADED = "upgraded"

ACTION_UPGRADE = "upgrade"
ACTION_FINISH_UPGRADE = "finishupgrade"


def build_image_uuid(image_repo: str, image_tag: Optional[str] = None) -> str:
    """Return the Rancher image reference, e.g. ``docker:org/app:v2``."""
    uuid = f"docker:{image_repo}"
    if image_tag:
        uuid += f":{image_tag}"
    return uuid


def build_launch_config(
    svc: ServiceDescriptor, request: UpgradeRequest
) -> Dict[str, Any]:
    """Copy the service launch config with the new image and merged environment."""
    launch_config = copy.deepcopy(svc.launch_config)
    launch_config["imageUuid"] = build_image_uuid(request.image_repo, request.image_tag)

    environment = dict(launch_config.get("environment") or {})
    environment.update(request.environment or {})
    launch_config["environment"] = environment
    return launch_config


def build_upgrade_payload(
    svc: ServiceDescriptor, request: UpgradeRequest
) -> Dict[str, Any]:
    """Build the body of the ``upgrade`` action."""
    return {
        "inServiceStrategy": {
            "batchSize": request.batch_size,
            "intervalMillis": request.interval_millis,
            "startFirst": request.start_first,
            "launchConfig": build_launch_config(svc, request),
            "secondaryLaunchConfigs": svc.secondary_launch_configs,
        }
    }


class ServiceUpgrader:
    """Runs in-service upgrades of Rancher services."""

    def __init__(
        self,
        client,
        config: UpgraderConfig,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the upgrader.

        Args:
            client: API client exposing get(path, params) and post(path, params)
            config: Upgrader configuration (poll frequency and timeouts)
            logger: Logger for progress messages
            clock: Wall-clock source used for phase deadlines
            sleep: Sleep function used between status checks
            cancel_event: Optional event that aborts a running wait phase
        """
        self.client = client
        self.config = config
        self.log = logger or logging.getLogger(__name__)
        self.clock = clock
        self.sleep = sleep
        self.cancel_event = cancel_event

        self.directory = ServiceDirectory(client)

    def perform_upgrade(self, request: UpgradeRequest) -> ServiceDescriptor:
        """
        Upgrade a service in place and wait until it is active again.

        Args:
            request: What to upgrade and how to pace the rollout

        Returns:
            The final, active ServiceDescriptor

        Raises:
            ValidationError: Request is missing required fields
            NotFoundError: Service does not exist
            PreconditionError: Service state does not allow an upgrade
            UnexpectedStateError: Service left the upgrade lifecycle
            UpgradeTimeoutError: A wait phase ran out of time
            TransportError: An API call failed
        """
        request.validate()
        return self._perform(request, UpgradeSession(service_name=request.service_name))

    def _perform(
        self, request: UpgradeRequest, session: UpgradeSession
    ) -> ServiceDescriptor:
        self.log.info(f"Starting deploy for {request.service_name}")

        session.enter("fetch", self.clock())
        svc = self.directory.lookup(request.service_name)
        self.log.info(f"Got service {svc.name} (state={svc.state})")

        self._check_upgradeable(svc)

        session.enter("submit", self.clock())
        self._submit_upgrade(svc, request)

        session.enter("wait_for_upgrade", self.clock())
        upgraded = self.wait_for_upgrade(request.service_name)

        session.enter("finish_upgrade", self.clock())
        self._finish_upgrade(upgraded)

        session.enter("wait_for_active", self.clock())
        active = self.wait_for_active(request.service_name)

        session.enter("done", self.clock())
        return active

    def _check_upgradeable(self, svc: ServiceDescriptor) -> None:
        if svc.state == STATE_ACTIVE:
            return
        if not svc.has_action(ACTION_UPGRADE):
            raise PreconditionError(
                f"Service is not in active status ({svc.state}). Cannot proceed."
            )
        self.log.warning(
            f"Service is not in active status ({svc.state}). "
            "It seems we can proceed anyway..."
        )

    def _submit_upgrade(self, svc: ServiceDescriptor, request: UpgradeRequest) -> None:
        url = svc.action_url(ACTION_UPGRADE)
        if not url:
            raise PreconditionError(
                f"Service {svc.name} does not offer the upgrade action ({svc.state})"
            )

        payload = build_upgrade_payload(svc, request)
        launch_config = payload["inServiceStrategy"]["launchConfig"]
        self.log.info(f"Changed service image uuid to {launch_config['imageUuid']}")
        self.log.info("Updated service environment variables.")
        self.log.debug(
            f"Strategy: batchSize={request.batch_size}, "
            f"intervalMillis={request.interval_millis}, "
            f"startFirst={request.start_first}"
        )

        result = self.client.post(url, payload)
        state = result.get("state", "unknown") if isinstance(result, dict) else "unknown"
        self.log.info(f"Upgrading service... ({state})")

    def _finish_upgrade(self, svc: ServiceDescriptor) -> None:
        url = svc.action_url(ACTION_FINISH_UPGRADE)
        if not url:
            raise PreconditionError(
                f"Service {svc.name} is upgraded but offers no finishupgrade action"
            )
        self.client.post(url, {})
        self.log.info("Finish upgrade sent.")

    def wait_for_upgrade(self, service_name: str) -> ServiceDescriptor:
        """
        Wait until the service reports ``upgraded``.

        ``upgrading`` keeps waiting; any other state aborts immediately.

        Raises:
            UnexpectedStateError: Service reported a state outside the lifecycle
            UpgradeTimeoutError: service_upgraded_timeout elapsed
        """

        def check() -> PollOutcome:
            svc = self.directory.lookup(service_name)
            if svc.state == STATE_UPGRADING:
                self.log.info("Service is upgrading, waiting...")
                return PollOutcome.pending()
            if svc.state == STATE_UPGRADED:
                self.log.info("Service is upgraded. Finishing...")
                return PollOutcome.done(svc)
            self.log.error(f"Unexpected status {svc.state}. Aborting.")
            return PollOutcome.failed(UnexpectedStateError(svc.state))

        return poll_until(
            check,
            interval_s=self.config.status_check_frequency_s,
            timeout_s=self.config.service_upgraded_timeout_s,
            clock=self.clock,
            sleep=self.sleep,
            description=f"service {service_name} to upgrade",
            cancel_event=self.cancel_event,
        )

    def wait_for_active(self, service_name: str) -> ServiceDescriptor:
        """
        Wait until the service reports ``active``.

        Raises:
            UpgradeTimeoutError: service_active_timeout elapsed
        """

        def check() -> PollOutcome:
            svc = self.directory.lookup(service_name)
            if svc.state != STATE_ACTIVE:
                self.log.info(f"Waiting for active status. Current ({svc.state})")
                return PollOutcome.pending()
            self.log.info("Upgrade succeeded!")
            return PollOutcome.done(svc)

        return poll_until(
            check,
            interval_s=self.config.status_check_frequency_s,
            timeout_s=self.config.service_active_timeout_s,
            clock=self.clock,
            sleep=self.sleep,
            description=f"service {service_name} to activate",
            cancel_event=self.cancel_event,
        )

    def run(self, request: UpgradeRequest) -> UpgradeResult:
        """
        Perform an upgrade and report the outcome instead of raising.

        Args:
            request: Upgrade request

        Returns:
            UpgradeResult with status "success" or "failed"
        """
        session = UpgradeSession(service_name=request.service_name)
        result = UpgradeResult(
            service_name=request.service_name,
            image_uuid=(
                build_image_uuid(request.image_repo, request.image_tag)
                if request.image_repo
                else ""
            ),
            status="failed",
            start_time=self.clock(),
        )

        try:
            request.validate()
            svc = self._perform(request, session)
            result.status = "success"
            result.final_state = svc.state
        except UpgradeError as e:
            self.log.error(f"Upgrade of {request.service_name} failed: {e}")
            result.failed_phase = session.phase
            if session.phase_started_at is not None:
                result.failed_phase_seconds = self.clock() - session.phase_started_at
            result.error_type = type(e).__name__
            result.error_message = str(e)

        result.end_time = self.clock()
        result.duration_seconds = result.end_time - result.start_time
        self._print_report(result)
        return result

    def _format_duration(self, seconds: float) -> str:
        """Format duration in human-readable format."""
        if seconds < 60:
            return f"{seconds:.1f}s"
        mins = int(seconds // 60)
        secs = seconds % 60
        return f"{mins}m {secs:.0f}s"

    def _print_report(self, result: UpgradeResult) -> None:
        self.log.info("=" * 70)
        self.log.info("UPGRADE REPORT")
        self.log.info("=" * 70)
        self.log.info(f"Service:         {result.service_name}")
        self.log.info(f"Image:           {result.image_uuid}")
        self.log.info(
            f"Start time:      {datetime.fromtimestamp(result.start_time).strftime('%Y-%m-%d %H:%M:%S')}"
        )
        self.log.info(
            f"Total duration:  {self._format_duration(result.duration_seconds)}"
        )
        self.log.info(f"Status:          {result.status}")
        if result.succeeded:
            self.log.info(f"Final state:     {result.final_state}")
        else:
            phase = result.failed_phase
            if result.failed_phase_seconds is not None:
                phase += f" (after {self._format_duration(result.failed_phase_seconds)})"
            self.log.info(f"Failed during:   {phase}")
            self.log.info(f"Error:           {result.error_type}: {result.error_message}")
        self.log.info("=" * 70)
