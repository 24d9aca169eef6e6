"""Classic load balancer lifecycle management for control-plane APIs."""

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

import aioboto3
from botocore import xform_name
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import (
    HealthCheckError,
    ListenerConflictError,
    LoadBalancerNotFoundError,
    ProvisionError,
    ValidationError,
)
from .faults import CallResult, Fault
from .models import (
    CONTROL_PLANE_PORT,
    DEFAULT_HEALTH_CHECK,
    HealthCheckSpec,
    ListenerSpec,
    LoadBalancerDescription,
)
from .naming import validate_name

logger = logging.getLogger(__name__)

SERVICE_NAME = "elb"


class LoadBalancerManager:
    """
    Manages a classic load balancer fronting a clustered control-plane API.

    Every operation is a single request against the load balancer API; the
    provider is the only source of truth and nothing is cached locally.
    Retries, backoff and timeouts are left to botocore.

    Supports both AWS and LocalStack environments. When endpoint_url is
    provided, operations are performed against that endpoint.

    Example:
        async with LoadBalancerManager(region="us-east-1") as manager:
            found, dns_name = await manager.exists("api-lb")
            if not found:
                dns_name = await manager.provision("api-lb", ["subnet-a", "subnet-b"])
            await manager.add_instances("api-lb", ["i-0abc", "i-0def"])
    """

    def __init__(
        self,
        region: str | None = None,
        endpoint_url: str | None = None,
        *,
        control_plane_port: int = CONTROL_PLANE_PORT,
        health_check: HealthCheckSpec | None = None,
    ) -> None:
        """
        Initialize the manager.

        Args:
            region: AWS region (default: use boto3 defaults)
            endpoint_url: Optional endpoint URL (for LocalStack or other
                AWS-compatible services)
            control_plane_port: Frontend port toggled by set_public/set_private
            health_check: Health check attached by provision
                (default: HTTP:6443/ every 30s)
        """
        # Validates the port
        ListenerSpec.tcp(control_plane_port)
        self.region = region
        self.endpoint_url = endpoint_url
        self.control_plane_port = control_plane_port
        self.health_check = health_check or DEFAULT_HEALTH_CHECK
        self._session: aioboto3.Session | None = None
        self._client: Any = None

    async def _get_client(self) -> Any:
        """Get or create the load balancer API client."""
        if self._client is not None:
            return self._client

        if self._session is None:
            self._session = aioboto3.Session()

        kwargs: dict[str, Any] = {}
        if self.region:
            kwargs["region_name"] = self.region
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url

        session = self._session
        self._client = await session.client(SERVICE_NAME, **kwargs).__aenter__()
        return self._client

    async def _call(self, operation: str, **kwargs: Any) -> CallResult:
        """
        Issue one remote call, capturing provider faults in the result.

        Args:
            operation: Provider operation name (e.g., "CreateLoadBalancer")
            **kwargs: Request parameters

        Returns:
            CallResult holding either the response or the botocore error
        """
        try:
            client = await self._get_client()
            response = await getattr(client, xform_name(operation))(**kwargs)
        except (ClientError, BotoCoreError) as e:
            logger.debug("%s failed: %s", operation, e)
            return CallResult(operation, error=e)
        return CallResult(operation, response=response)

    # -------------------------------------------------------------------------
    # Provisioning
    # -------------------------------------------------------------------------

    async def provision(
        self,
        name: str,
        subnets: Iterable[str],
        port: int = CONTROL_PLANE_PORT,
    ) -> str:
        """
        Create a load balancer and attach the default health check.

        The single TCP listener forwards ``port`` to the same instance port.

        Args:
            name: Load balancer name, unique within the account
            subnets: Subnet IDs spanning the desired availability zones
            port: Frontend and backend port of the listener

        Returns:
            Provider-assigned DNS name

        Raises:
            ValidationError: If name, subnets or port are invalid
            ProvisionError: If the create request is rejected
            HealthCheckError: If the health check could not be attached. The
                load balancer exists at this point and is not rolled back.
        """
        validate_name(name)
        subnet_ids = list(subnets)
        if not subnet_ids:
            raise ValidationError("subnets", subnet_ids, "At least one subnet is required")
        listener = ListenerSpec.tcp(port)

        logger.info(
            "Creating load balancer %s (subnets=%s, listener=%d/%s)",
            name,
            ",".join(subnet_ids),
            port,
            listener.protocol.value,
        )
        result = await self._call(
            "CreateLoadBalancer",
            LoadBalancerName=name,
            Subnets=subnet_ids,
            Listeners=[listener.to_api()],
        )
        if result.fault is Fault.DUPLICATE_NAME:
            raise ProvisionError(
                name, f"Name already in use ({result.message})", code=result.code
            ) from result.remote_error(name)
        if not result.ok:
            raise ProvisionError(
                name, f"{result.code}: {result.message}", code=result.code
            ) from result.remote_error(name)

        assert result.response is not None
        dns_name: str = result.response["DNSName"]

        logger.info("Attaching health check %s to %s", self.health_check.target, name)
        hc_result = await self._configure_health_check(name, self.health_check)
        if not hc_result.ok:
            logger.warning(
                "Load balancer %s created at %s but health check failed: %s",
                name,
                dns_name,
                hc_result.message,
            )
            raise HealthCheckError(
                name,
                f"{hc_result.code}: {hc_result.message}",
                code=hc_result.code,
                dns_name=dns_name,
            ) from hc_result.remote_error(name)

        logger.info("Load balancer %s provisioned at %s", name, dns_name)
        return dns_name

    async def _configure_health_check(self, name: str, health_check: HealthCheckSpec) -> CallResult:
        return await self._call(
            "ConfigureHealthCheck",
            LoadBalancerName=name,
            HealthCheck=health_check.to_api(),
        )

    async def configure_health_check(
        self,
        name: str,
        health_check: HealthCheckSpec | None = None,
    ) -> None:
        """
        Attach or replace the health check of a load balancer.

        This is the second step of ``provision()`` and can be retried on its
        own after a HealthCheckError.

        Args:
            name: Load balancer name
            health_check: Configuration (default: the manager's health check)

        Raises:
            LoadBalancerNotFoundError: If the load balancer doesn't exist
            HealthCheckError: If the provider rejects the configuration
        """
        validate_name(name)
        health_check = health_check or self.health_check
        result = await self._configure_health_check(name, health_check)
        if result.fault is Fault.LOAD_BALANCER_NOT_FOUND:
            raise LoadBalancerNotFoundError(name)
        if not result.ok:
            raise HealthCheckError(
                name, f"{result.code}: {result.message}", code=result.code
            ) from result.remote_error(name)
        logger.info("Health check %s configured on %s", health_check.target, name)

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    async def set_private(self, name: str) -> None:
        """
        Remove the control-plane listener so no new traffic reaches instances.

        Succeeds when the listener is already absent. Established
        connections are not affected.

        Raises:
            LoadBalancerNotFoundError: If the load balancer doesn't exist
            RemoteServiceError: For any other provider fault
        """
        await self.remove_listener(name, self.control_plane_port)

    async def set_public(self, name: str, port: int | None = None) -> None:
        """
        Add the TCP listener forwarding ``port`` to the same instance port.

        Instances still registered begin to receive traffic again. Succeeds
        when the identical listener already exists.

        Args:
            name: Load balancer name
            port: Listener port (default: the control-plane port)

        Raises:
            ListenerConflictError: If the frontend port maps elsewhere
            LoadBalancerNotFoundError: If the load balancer doesn't exist
            RemoteServiceError: For any other provider fault
        """
        port = self.control_plane_port if port is None else port
        await self.add_listener(name, ListenerSpec.tcp(port))

    async def add_listener(self, name: str, listener: ListenerSpec) -> None:
        """
        Add a listener, treating an identical existing listener as success.

        Raises:
            ListenerConflictError: If the frontend port maps elsewhere
            LoadBalancerNotFoundError: If the load balancer doesn't exist
            RemoteServiceError: For any other provider fault
        """
        validate_name(name)
        result = await self._call(
            "CreateLoadBalancerListeners",
            LoadBalancerName=name,
            Listeners=[listener.to_api()],
        )
        fault = result.fault
        if fault is None:
            logger.info(
                "Listener %d -> %d/%s present on %s",
                listener.frontend_port,
                listener.backend_port,
                listener.protocol.value,
                name,
            )
            return
        if fault is Fault.LOAD_BALANCER_NOT_FOUND:
            raise LoadBalancerNotFoundError(name)
        if fault is Fault.DUPLICATE_LISTENER:
            # Some providers reject identical duplicates; compare before failing
            existing = (await self.describe(name)).listeners.get(listener.frontend_port)
            if existing is not None and not listener.conflicts_with(existing):
                logger.debug(
                    "Listener on port %d already present on %s", listener.frontend_port, name
                )
                return
            raise ListenerConflictError(name, listener, reason=result.message) from result.error
        raise result.remote_error(name) from result.error

    async def remove_listener(self, name: str, frontend_port: int) -> None:
        """
        Remove the listener bound to ``frontend_port``; absent is success.

        Raises:
            LoadBalancerNotFoundError: If the load balancer doesn't exist
            RemoteServiceError: For any other provider fault
        """
        validate_name(name)
        result = await self._call(
            "DeleteLoadBalancerListeners",
            LoadBalancerName=name,
            LoadBalancerPorts=[frontend_port],
        )
        fault = result.fault
        if fault is None:
            logger.info("Listener on port %d removed from %s", frontend_port, name)
            return
        if fault is Fault.LISTENER_NOT_FOUND:
            logger.debug("No listener on port %d of %s", frontend_port, name)
            return
        if fault is Fault.LOAD_BALANCER_NOT_FOUND:
            raise LoadBalancerNotFoundError(name)
        raise result.remote_error(name) from result.error

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    async def add_instances(self, name: str, instance_ids: Iterable[str]) -> None:
        """
        Register instances with the load balancer.

        Membership is a set: registering a member again changes nothing.
        Returning means the request was accepted, not that the instances
        already pass health checks. When replacing a node, deregister it
        before stopping it and register the replacement once it serves.

        Args:
            name: Load balancer name
            instance_ids: Instance IDs to register (empty is a no-op)

        Raises:
            LoadBalancerNotFoundError: If the load balancer doesn't exist
            RemoteServiceError: For any other provider fault
        """
        await self._change_membership("RegisterInstancesWithLoadBalancer", name, instance_ids)

    async def remove_instances(self, name: str, instance_ids: Iterable[str]) -> None:
        """
        Deregister instances from the load balancer.

        Deregistering an instance that is not a member changes nothing.

        Args:
            name: Load balancer name
            instance_ids: Instance IDs to deregister (empty is a no-op)

        Raises:
            LoadBalancerNotFoundError: If the load balancer doesn't exist
            RemoteServiceError: For any other provider fault
        """
        await self._change_membership("DeregisterInstancesFromLoadBalancer", name, instance_ids)

    async def _change_membership(
        self, operation: str, name: str, instance_ids: Iterable[str]
    ) -> None:
        validate_name(name)
        refs = _normalize_instance_ids(instance_ids)
        if not refs:
            logger.debug("%s on %s skipped: no instances", operation, name)
            return

        result = await self._call(
            operation,
            LoadBalancerName=name,
            Instances=[{"InstanceId": ref} for ref in refs],
        )
        if result.fault is Fault.LOAD_BALANCER_NOT_FOUND:
            raise LoadBalancerNotFoundError(name)
        if not result.ok:
            raise result.remote_error(name) from result.error
        logger.info("%s on %s: %s", operation, name, ",".join(refs))

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def lookup(self, name: str) -> LoadBalancerDescription | None:
        """
        Describe a load balancer, reporting absence as None.

        Returns:
            Description, or None if the provider reports the name not found

        Raises:
            RemoteServiceError: For any other provider fault
        """
        validate_name(name)
        result = await self._call("DescribeLoadBalancers", LoadBalancerNames=[name])
        if result.fault is Fault.LOAD_BALANCER_NOT_FOUND:
            return None
        if not result.ok:
            raise result.remote_error(name) from result.error

        assert result.response is not None
        descriptions = result.response.get("LoadBalancerDescriptions", [])
        if not descriptions:
            return None
        return LoadBalancerDescription.from_api(descriptions[0])

    async def describe(self, name: str) -> LoadBalancerDescription:
        """
        Describe a load balancer that must exist.

        Raises:
            LoadBalancerNotFoundError: If the load balancer doesn't exist
            RemoteServiceError: For any other provider fault
        """
        description = await self.lookup(name)
        if description is None:
            raise LoadBalancerNotFoundError(name)
        return description

    async def exists(self, name: str) -> tuple[bool, str]:
        """
        Check whether a load balancer exists.

        A provider "not found" answer is a result, not an error. Any other
        fault propagates so that a transient failure is never mistaken for
        absence.

        Returns:
            (True, dns_name) if found, (False, "") if not

        Raises:
            RemoteServiceError: For any provider fault other than not-found
        """
        description = await self.lookup(name)
        if description is None:
            return False, ""
        return True, description.dns_name

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying session and client."""
        if self._client is not None:
            try:
                await self._client.__aexit__(None, None, None)
            finally:
                self._client = None
        self._session = None

    async def __aenter__(self) -> "LoadBalancerManager":
        """Enter async context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit async context manager."""
        await self.close()


def _normalize_instance_ids(instance_ids: Iterable[str]) -> list[str]:
    """De-duplicate and sort instance IDs, rejecting blanks."""
    if isinstance(instance_ids, str):
        raise ValidationError("instance_ids", instance_ids, "Expected a collection of IDs")
    refs = set()
    for ref in instance_ids:
        if not isinstance(ref, str) or not ref.strip():
            raise ValidationError("instance_id", ref, "Instance ID must be a non-empty string")
        refs.add(ref.strip())
    return sorted(refs)


class SyncLoadBalancerManager:
    """
    Synchronous load balancer manager.

    Wraps LoadBalancerManager, running async operations in a private
    event loop.
    """

    def __init__(
        self,
        region: str | None = None,
        endpoint_url: str | None = None,
        *,
        control_plane_port: int = CONTROL_PLANE_PORT,
        health_check: HealthCheckSpec | None = None,
    ) -> None:
        self._manager = LoadBalancerManager(
            region=region,
            endpoint_url=endpoint_url,
            control_plane_port=control_plane_port,
            health_check=health_check,
        )
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def control_plane_port(self) -> int:
        return self._manager.control_plane_port

    @property
    def health_check(self) -> HealthCheckSpec:
        return self._manager.health_check

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        """Get or create the event loop."""
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.new_event_loop()
        return self._loop

    def _run(self, coro: Any) -> Any:
        """Run a coroutine in the event loop."""
        return self._get_loop().run_until_complete(coro)

    def close(self) -> None:
        """Close the underlying connections and the event loop."""
        if self._loop is None or self._loop.is_closed():
            return
        try:
            self._run(self._manager.close())
        finally:
            self._loop.close()
            self._loop = None

    def __enter__(self) -> "SyncLoadBalancerManager":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def provision(self, name: str, subnets: Iterable[str], port: int = CONTROL_PLANE_PORT) -> str:
        """Create a load balancer and attach the default health check."""
        return self._run(self._manager.provision(name, subnets, port))

    def configure_health_check(self, name: str, health_check: HealthCheckSpec | None = None) -> None:
        """Attach or replace the health check of a load balancer."""
        self._run(self._manager.configure_health_check(name, health_check))

    def set_private(self, name: str) -> None:
        """Remove the control-plane listener."""
        self._run(self._manager.set_private(name))

    def set_public(self, name: str, port: int | None = None) -> None:
        """Add the control-plane listener."""
        self._run(self._manager.set_public(name, port))

    def add_listener(self, name: str, listener: ListenerSpec) -> None:
        """Add a listener, treating an identical existing listener as success."""
        self._run(self._manager.add_listener(name, listener))

    def remove_listener(self, name: str, frontend_port: int) -> None:
        """Remove the listener bound to a frontend port."""
        self._run(self._manager.remove_listener(name, frontend_port))

    def add_instances(self, name: str, instance_ids: Iterable[str]) -> None:
        """Register instances with the load balancer."""
        self._run(self._manager.add_instances(name, instance_ids))

    def remove_instances(self, name: str, instance_ids: Iterable[str]) -> None:
        """Deregister instances from the load balancer."""
        self._run(self._manager.remove_instances(name, instance_ids))

    def lookup(self, name: str) -> LoadBalancerDescription | None:
        """Describe a load balancer, reporting absence as None."""
        return self._run(self._manager.lookup(name))

    def describe(self, name: str) -> LoadBalancerDescription:
        """Describe a load balancer that must exist."""
        return self._run(self._manager.describe(name))

    def exists(self, name: str) -> tuple[bool, str]:
        """Check whether a load balancer exists."""
        return self._run(self._manager.exists(name))
