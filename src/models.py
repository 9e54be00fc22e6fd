"""
Data models for the Rancher in-service upgrader.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from errors import ValidationError


@dataclass(frozen=True)
class ServiceDescriptor:
    """Snapshot of a service as reported by the control plane."""

    id: Optional[str]
    name: str
    state: str  # "active", "upgrading", "upgraded", or anything else
    launch_config: Dict[str, Any] = field(default_factory=dict)
    secondary_launch_configs: List[Dict[str, Any]] = field(default_factory=list)
    actions: Dict[str, str] = field(default_factory=dict)  # action name -> URL
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ServiceDescriptor":
        """Build a descriptor from a parsed ``services`` API entry."""
        return cls(
            id=data.get("id"),
            name=data.get("name", ""),
            state=str(data.get("state", "")),
            launch_config=copy.deepcopy(data.get("launchConfig") or {}),
            secondary_launch_configs=copy.deepcopy(
                data.get("secondaryLaunchConfigs") or []
            ),
            actions=dict(data.get("actions") or {}),
            raw=data,
        )

    def has_action(self, action: str) -> bool:
        return bool(self.actions.get(action))

    def action_url(self, action: str) -> Optional[str]:
        return self.actions.get(action) or None


@dataclass(frozen=True)
class UpgradeRequest:
    """Caller-supplied parameters for one in-service upgrade."""

    service_name: str
    image_repo: str
    image_tag: Optional[str] = None
    environment: Dict[str, str] = field(default_factory=dict)
    batch_size: int = 1
    interval_millis: int = 30 * 1000
    start_first: bool = True

    def validate(self) -> None:
        """
        Check required fields.

        Raises:
            ValidationError: If service_name or image_repo is missing
        """
        if not self.service_name:
            raise ValidationError("Must specify service_name")
        if not self.image_repo:
            raise ValidationError("Must specify image_repo")


@dataclass
class UpgradeSession:
    """Per-invocation state of one upgrade. Never shared between calls."""

    service_name: str
    phase: str = "start"
    phase_started_at: Optional[float] = None

    def enter(self, phase: str, now: float) -> None:
        self.phase = phase
        self.phase_started_at = now


@dataclass
class UpgradeResult:
    """Result of an upgrade run."""

    service_name: str
    image_uuid: str
    status: str  # "success" or "failed"
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    duration_seconds: Optional[float] = None
    final_state: Optional[str] = None
    failed_phase: Optional[str] = None
    failed_phase_seconds: Optional[float] = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service_name": self.service_name,
            "image_uuid": self.image_uuid,
            "status": self.status,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_seconds": self.duration_seconds,
            "final_state": self.final_state,
            "failed_phase": self.failed_phase,
            "failed_phase_seconds": self.failed_phase_seconds,
            "error_type": self.error_type,
            "error_message": self.error_message,
        }
