"""Data model of an OpenTelemetry Collector resource and small helpers around it."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class UpgradeStrategy(str, Enum):
    """How the operator treats a collector instance when it is upgraded."""

    AUTOMATIC = "automatic"
    NONE = "none"


class DNSPolicy(str, Enum):
    """DNS policy for the collector pod."""

    CLUSTER_FIRST = "ClusterFirst"
    CLUSTER_FIRST_WITH_HOST_NET = "ClusterFirstWithHostNet"


@dataclass
class Volume:
    """A pod volume, optionally backed by a config map."""

    name: str
    config_map: str | None = None
    items: tuple[tuple[str, str], ...] = ()


@dataclass
class PersistentVolumeClaim:
    """A persistent volume claim template."""

    name: str
    access_modes: list[str] = field(default_factory=list)
    requests: dict[str, str] = field(default_factory=dict)


@dataclass
class CollectorSpec:
    """Desired state of a collector instance."""

    mode: str = ""
    config: str = ""
    args: dict[str, str] = field(default_factory=dict)
    host_network: bool = False
    volumes: list[Volume] = field(default_factory=list)
    volume_claim_templates: list[PersistentVolumeClaim] = field(default_factory=list)
    upgrade_strategy: UpgradeStrategy = UpgradeStrategy.AUTOMATIC


@dataclass
class CollectorStatus:
    """Observed state of a collector instance."""

    version: str = ""


@dataclass
class OpenTelemetryCollector:
    """A collector resource: metadata, spec and status."""

    name: str = ""
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    spec: CollectorSpec = field(default_factory=CollectorSpec)
    status: CollectorStatus = field(default_factory=CollectorStatus)

    def copy(self) -> OpenTelemetryCollector:
        """Return a deep copy of this resource."""
        return deepcopy(self)


@dataclass(frozen=True)
class Event:
    """A recorded event about an object."""

    obj: Any
    event_type: str
    reason: str
    message: str


class EventRecorder:
    """Collects events in the order they are reported."""

    def __init__(self) -> None:
        self.events: list[Event] = []

    def event(self, obj: Any, event_type: str, reason: str, message: str) -> None:
        """Record one event."""
        self.events.append(Event(obj, event_type, reason, message))


class UpgradeError(Exception):
    """Raised when a collector instance cannot be upgraded."""


def dns_policy(otelcol: OpenTelemetryCollector) -> DNSPolicy:
    """Pick the DNS policy that suits the instance's networking mode."""
    if otelcol.spec.host_network:
        return DNSPolicy.CLUSTER_FIRST_WITH_HOST_NET
    return DNSPolicy.CLUSTER_FIRST