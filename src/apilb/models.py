"""Core models for apilb."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .exceptions import ValidationError

CONTROL_PLANE_PORT = 6443
"""Well-known port of the clustered control-plane API."""

MAX_PORT = 65535


class ListenerProtocol(str, Enum):
    """Protocols accepted by classic load balancer listeners and health checks."""

    TCP = "TCP"
    SSL = "SSL"
    HTTP = "HTTP"
    HTTPS = "HTTPS"

    @classmethod
    def parse(cls, value: "str | ListenerProtocol") -> "ListenerProtocol":
        """Parse a protocol name case-insensitively."""
        if isinstance(value, ListenerProtocol):
            return value
        try:
            return cls(value.upper())
        except ValueError:
            allowed = ", ".join(p.value for p in cls)
            raise ValidationError("protocol", value, f"Must be one of: {allowed}") from None


class LoadBalancerState(str, Enum):
    """Exposure state derived from the presence of the control-plane listener."""

    PUBLIC = "public"
    PRIVATE = "private"


def _validate_port(field_name: str, port: int) -> None:
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValidationError(field_name, port, "Port must be an integer")
    if not 1 <= port <= MAX_PORT:
        raise ValidationError(field_name, port, f"Port must be between 1 and {MAX_PORT}")


@dataclass(frozen=True)
class ListenerSpec:
    """
    One traffic-forwarding rule of a load balancer.

    A load balancer holds at most one listener per frontend port. Two
    listeners on the same frontend port are identical when backend port
    and both protocols also match; otherwise they conflict.

    Attributes:
        frontend_port: Port the load balancer accepts connections on
        backend_port: Port traffic is forwarded to on the instances
        protocol: Client-facing protocol
        instance_protocol: Protocol towards the instances (default: same as protocol)
    """

    frontend_port: int
    backend_port: int
    protocol: ListenerProtocol = ListenerProtocol.TCP
    instance_protocol: ListenerProtocol | None = None

    def __post_init__(self) -> None:
        _validate_port("frontend_port", self.frontend_port)
        _validate_port("backend_port", self.backend_port)
        protocol = ListenerProtocol.parse(self.protocol)
        object.__setattr__(self, "protocol", protocol)
        object.__setattr__(
            self, "instance_protocol", ListenerProtocol.parse(self.instance_protocol or protocol)
        )

    @classmethod
    def tcp(cls, port: int) -> "ListenerSpec":
        """Create a TCP listener forwarding ``port`` to the same backend port."""
        return cls(frontend_port=port, backend_port=port, protocol=ListenerProtocol.TCP)

    @property
    def backend_protocol(self) -> ListenerProtocol:
        """Resolved instance-side protocol."""
        return self.instance_protocol or self.protocol

    def conflicts_with(self, other: "ListenerSpec") -> bool:
        """True if both bind the same frontend port to different targets."""
        return self.frontend_port == other.frontend_port and self != other

    def to_api(self) -> dict[str, Any]:
        """Convert to the provider's Listener shape."""
        return {
            "Protocol": self.protocol.value,
            "LoadBalancerPort": self.frontend_port,
            "InstanceProtocol": self.backend_protocol.value,
            "InstancePort": self.backend_port,
        }

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ListenerSpec":
        """Create from the provider's Listener shape."""
        return cls(
            frontend_port=int(data["LoadBalancerPort"]),
            backend_port=int(data["InstancePort"]),
            protocol=ListenerProtocol.parse(data["Protocol"]),
            instance_protocol=(
                ListenerProtocol.parse(data["InstanceProtocol"])
                if data.get("InstanceProtocol")
                else None
            ),
        )


@dataclass(frozen=True)
class HealthCheckSpec:
    """
    Health check configuration attached to a load balancer.

    The defaults probe the control-plane API over HTTP. Only one health
    check is active per load balancer; configuring a new one replaces it.

    Attributes:
        protocol: Probe protocol
        path: Probe path (HTTP/HTTPS only)
        port: Instance port to probe
        interval: Seconds between probes
        timeout: Seconds before a probe counts as failed
        healthy_threshold: Consecutive successes before an instance is healthy
        unhealthy_threshold: Consecutive failures before an instance is unhealthy
    """

    protocol: ListenerProtocol = ListenerProtocol.HTTP
    path: str = "/"
    port: int = CONTROL_PLANE_PORT
    interval: int = 30
    timeout: int = 3
    healthy_threshold: int = 2
    unhealthy_threshold: int = 2

    def __post_init__(self) -> None:
        protocol = ListenerProtocol.parse(self.protocol)
        object.__setattr__(self, "protocol", protocol)
        _validate_port("health_check.port", self.port)

        if protocol in (ListenerProtocol.HTTP, ListenerProtocol.HTTPS):
            if not self.path.startswith("/"):
                raise ValidationError("health_check.path", self.path, "Path must start with '/'")
        elif self.path:
            # TCP/SSL targets carry no path
            object.__setattr__(self, "path", "")

        if not 5 <= self.interval <= 300:
            raise ValidationError("health_check.interval", self.interval, "Must be 5-300 seconds")
        if not 2 <= self.timeout <= 60:
            raise ValidationError("health_check.timeout", self.timeout, "Must be 2-60 seconds")
        if self.timeout >= self.interval:
            raise ValidationError(
                "health_check.timeout", self.timeout, "Must be less than the interval"
            )
        for name in ("healthy_threshold", "unhealthy_threshold"):
            value = getattr(self, name)
            if not 2 <= value <= 10:
                raise ValidationError(f"health_check.{name}", value, "Must be 2-10")

    @property
    def target(self) -> str:
        """Provider target string, e.g. ``HTTP:6443/``."""
        return f"{self.protocol.value}:{self.port}{self.path}"

    def to_api(self) -> dict[str, Any]:
        """Convert to the provider's HealthCheck shape."""
        return {
            "Target": self.target,
            "Interval": self.interval,
            "Timeout": self.timeout,
            "UnhealthyThreshold": self.unhealthy_threshold,
            "HealthyThreshold": self.healthy_threshold,
        }

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "HealthCheckSpec":
        """Create from the provider's HealthCheck shape."""
        protocol, _, rest = data["Target"].partition(":")
        digits = ""
        for ch in rest:
            if not ch.isdigit():
                break
            digits += ch
        if not digits:
            raise ValidationError("health_check.target", data["Target"], "Missing port")
        return cls(
            protocol=ListenerProtocol.parse(protocol),
            path=rest[len(digits) :],
            port=int(digits),
            interval=int(data["Interval"]),
            timeout=int(data["Timeout"]),
            healthy_threshold=int(data["HealthyThreshold"]),
            unhealthy_threshold=int(data["UnhealthyThreshold"]),
        )


DEFAULT_HEALTH_CHECK = HealthCheckSpec()
"""Health check attached by ``provision()``: HTTP:6443/, 2/2, every 30s, 3s timeout."""


@dataclass(frozen=True)
class LoadBalancerDescription:
    """
    Snapshot of a load balancer as reported by the provider.

    Attributes:
        name: Load balancer name
        dns_name: Provider-assigned fully-qualified DNS name
        listeners: Listeners keyed by frontend port
        instances: Registered instance IDs
        health_check: Active health check (None if never configured)
        subnets: Attached subnet IDs
        availability_zones: Availability zones served
        scheme: "internet-facing" or "internal"
        created_time: Creation timestamp
    """

    name: str
    dns_name: str
    listeners: dict[int, ListenerSpec] = field(default_factory=dict)
    instances: frozenset[str] = frozenset()
    health_check: HealthCheckSpec | None = None
    subnets: tuple[str, ...] = ()
    availability_zones: tuple[str, ...] = ()
    scheme: str | None = None
    created_time: datetime | None = None

    def has_listener(self, frontend_port: int) -> bool:
        """Check whether a listener is bound to ``frontend_port``."""
        return frontend_port in self.listeners

    def state(self, control_plane_port: int = CONTROL_PLANE_PORT) -> LoadBalancerState:
        """Exposure state: PUBLIC when the control-plane listener is present."""
        if self.has_listener(control_plane_port):
            return LoadBalancerState.PUBLIC
        return LoadBalancerState.PRIVATE

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "LoadBalancerDescription":
        """Create from one entry of DescribeLoadBalancers' response."""
        listeners: dict[int, ListenerSpec] = {}
        for item in data.get("ListenerDescriptions", []):
            listener = ListenerSpec.from_api(item["Listener"])
            listeners[listener.frontend_port] = listener

        health_check = None
        if data.get("HealthCheck", {}).get("Target"):
            health_check = HealthCheckSpec.from_api(data["HealthCheck"])

        return cls(
            name=data["LoadBalancerName"],
            dns_name=data.get("DNSName", ""),
            listeners=dict(sorted(listeners.items())),
            instances=frozenset(i["InstanceId"] for i in data.get("Instances", [])),
            health_check=health_check,
            subnets=tuple(data.get("Subnets", [])),
            availability_zones=tuple(data.get("AvailabilityZones", [])),
            scheme=data.get("Scheme"),
            created_time=data.get("CreatedTime"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "name": self.name,
            "dns_name": self.dns_name,
            "state": self.state().value,
            "listeners": [
                {
                    "frontend_port": listener.frontend_port,
                    "backend_port": listener.backend_port,
                    "protocol": listener.protocol.value,
                    "instance_protocol": listener.backend_protocol.value,
                }
                for listener in self.listeners.values()
            ],
            "instances": sorted(self.instances),
            "health_check": self.health_check.target if self.health_check else None,
            "subnets": list(self.subnets),
            "availability_zones": list(self.availability_zones),
            "scheme": self.scheme,
            "created_time": self.created_time.isoformat() if self.created_time else None,
        }
