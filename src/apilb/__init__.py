"""
apilb: Classic load balancer lifecycle management for control-plane APIs.

This library manages one classic load balancer in front of a clustered
API server:
- Provisioning with a TCP listener and a default health check
- Toggling public/private exposure via the control-plane listener
- Idempotent backend instance registration and deregistration
- Existence checks that tell "not found" apart from remote failures

Example:
    from apilb import LoadBalancerManager

    async with LoadBalancerManager(region="us-east-1") as manager:
        found, dns_name = await manager.exists("api-lb")
        if not found:
            dns_name = await manager.provision("api-lb", ["subnet-a", "subnet-b"], 6443)
        await manager.add_instances("api-lb", ["i-0abc", "i-0def"])
        await manager.set_private("api-lb")
"""

# ---------------------------------------------------------------------------
# Lazy imports
# ---------------------------------------------------------------------------
# LoadBalancerManager and SyncLoadBalancerManager depend on aioboto3. They are
# imported lazily via __getattr__ below so that models and exceptions can be
# used where only boto3 is installed.
# ---------------------------------------------------------------------------
from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING

from .exceptions import (
    APILBError,
    HealthCheckError,
    ListenerConflictError,
    ListenerError,
    LoadBalancerNotFoundError,
    ProvisionError,
    ProvisioningError,
    RemoteServiceError,
    ValidationError,
)
from .models import (
    CONTROL_PLANE_PORT,
    DEFAULT_HEALTH_CHECK,
    HealthCheckSpec,
    ListenerProtocol,
    ListenerSpec,
    LoadBalancerDescription,
    LoadBalancerState,
)

if TYPE_CHECKING:
    from .manager import LoadBalancerManager as LoadBalancerManager
    from .manager import SyncLoadBalancerManager as SyncLoadBalancerManager

try:
    __version__ = version("apilb")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

__all__ = [
    # Version
    "__version__",
    # Main classes
    "LoadBalancerManager",
    "SyncLoadBalancerManager",
    # Models
    "CONTROL_PLANE_PORT",
    "DEFAULT_HEALTH_CHECK",
    "HealthCheckSpec",
    "ListenerProtocol",
    "ListenerSpec",
    "LoadBalancerDescription",
    "LoadBalancerState",
    # Exceptions - Base
    "APILBError",
    # Exceptions - Categories
    "ProvisioningError",
    "ListenerError",
    # Exceptions - Concrete
    "ProvisionError",
    "HealthCheckError",
    "ListenerConflictError",
    "LoadBalancerNotFoundError",
    "RemoteServiceError",
    "ValidationError",
]


def __getattr__(name: str) -> type:
    """Lazy import for classes that require aioboto3.

    See Also:
        PEP 562 -- Module __getattr__ and __dir__
    """
    if name == "LoadBalancerManager":
        from .manager import LoadBalancerManager

        return LoadBalancerManager
    if name == "SyncLoadBalancerManager":
        from .manager import SyncLoadBalancerManager

        return SyncLoadBalancerManager
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
