"""Exceptions for apilb."""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from botocore.exceptions import ClientError

    from .models import ListenerSpec


# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------


class APILBError(Exception):
    """
    Base exception for all apilb errors.

    All exceptions raised by this library inherit from this class,
    allowing callers to catch all library-specific errors with a single
    except clause.
    """

    pass


# ---------------------------------------------------------------------------
# Category Exceptions
# ---------------------------------------------------------------------------


class ProvisioningError(APILBError):
    """
    Base exception for errors raised while provisioning a load balancer.

    Provisioning is two remote steps (create, then attach health check),
    so subclasses tell callers which step failed.
    """

    pass


class ListenerError(APILBError):
    """Base exception for listener mutation errors."""

    pass


# ---------------------------------------------------------------------------
# Remote Service Exceptions
# ---------------------------------------------------------------------------


class RemoteServiceError(APILBError):
    """
    Raised for any provider-reported fault without a more specific meaning.

    Preserves the provider's error code and message for diagnosis. These
    faults are usually transient and safe to retry.

    Attributes:
        operation: Remote operation that failed (e.g., "DescribeLoadBalancers")
        code: Provider error code (e.g., "Throttling")
        message: Provider error message
        load_balancer_name: Load balancer the call targeted (if applicable)
        cause: The underlying botocore error
    """

    def __init__(
        self,
        operation: str,
        code: str,
        message: str,
        *,
        load_balancer_name: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.operation = operation
        self.code = code
        self.message = message
        self.load_balancer_name = load_balancer_name
        self.cause = cause
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"{self.operation} failed ({self.code}): {self.message}"
        if self.load_balancer_name:
            msg += f" [load_balancer={self.load_balancer_name}]"
        return msg

    @classmethod
    def from_client_error(
        cls,
        operation: str,
        error: "ClientError",
        load_balancer_name: str | None = None,
    ) -> "RemoteServiceError":
        """Build from a botocore ClientError, keeping its code and message."""
        details = error.response.get("Error", {})
        return cls(
            operation,
            details.get("Code", "Unknown"),
            details.get("Message", str(error)),
            load_balancer_name=load_balancer_name,
            cause=error,
        )

    def as_dict(self) -> dict[str, Any]:
        """Serialize for structured logs or JSON output."""
        return {
            "error": "remote_service_error",
            "operation": self.operation,
            "code": self.code,
            "message": self.message,
            "load_balancer_name": self.load_balancer_name,
        }


class LoadBalancerNotFoundError(APILBError):
    """
    Raised when an operation requires a load balancer that does not exist.

    ``exists()`` and ``lookup()`` never raise this; they report absence
    as a result instead.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Load balancer not found: {name}")


# ---------------------------------------------------------------------------
# Provisioning Exceptions
# ---------------------------------------------------------------------------


class ProvisionError(ProvisioningError):
    """Raised when the create request for a load balancer is rejected."""

    def __init__(self, name: str, reason: str, code: str | None = None) -> None:
        self.name = name
        self.reason = reason
        self.code = code
        super().__init__(f"Load balancer {name} creation failed: {reason}")


class HealthCheckError(ProvisioningError):
    """
    Raised when the health check could not be attached.

    When raised from ``provision()`` the load balancer already exists but
    is unmonitored. It is not rolled back; retry with
    ``configure_health_check()``.

    Attributes:
        name: Load balancer name
        reason: Provider error description
        dns_name: DNS name of the created load balancer (None when the
            error did not come from provisioning)
    """

    def __init__(
        self,
        name: str,
        reason: str,
        code: str | None = None,
        dns_name: str | None = None,
    ) -> None:
        self.name = name
        self.reason = reason
        self.code = code
        self.dns_name = dns_name
        msg = f"Health check configuration for {name} failed: {reason}"
        if dns_name:
            msg += f" (load balancer exists at {dns_name})"
        super().__init__(msg)

    @property
    def partially_provisioned(self) -> bool:
        """True when the load balancer was created before this failure."""
        return self.dns_name is not None


# ---------------------------------------------------------------------------
# Listener Exceptions
# ---------------------------------------------------------------------------


class ListenerConflictError(ListenerError):
    """
    Raised when a frontend port is already bound to a different listener.

    Not safe to retry without changing the requested listener.
    """

    def __init__(self, name: str, listener: "ListenerSpec", reason: str | None = None) -> None:
        self.name = name
        self.listener = listener
        self.reason = reason
        msg = (
            f"Listener conflict on {name}: frontend port {listener.frontend_port} "
            f"is already bound to a different listener"
        )
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


# ---------------------------------------------------------------------------
# Validation Exceptions
# ---------------------------------------------------------------------------


class ValidationError(APILBError, ValueError):
    """Raised when a user-supplied value fails validation."""

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")
