"""Classification of provider faults returned by the load balancer API.

Remote calls are wrapped so a failure comes back as a ``CallResult``
holding the botocore error rather than an exception. Transport and
credential errors (``BotoCoreError``) carry no provider code; they are
reported under their class name and classified as ``Fault.OTHER``. Callers then branch
on ``CallResult.fault``, which keeps recognized conditions (a missing load
balancer, a duplicate listener) separate from real failures.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import RemoteServiceError


class Fault(Enum):
    """Provider fault kinds this library reacts to."""

    LOAD_BALANCER_NOT_FOUND = "load_balancer_not_found"
    LISTENER_NOT_FOUND = "listener_not_found"
    DUPLICATE_LISTENER = "duplicate_listener"
    DUPLICATE_NAME = "duplicate_name"
    OTHER = "other"


# The wire code and the modeled exception name differ for classic ELB,
# so both spellings are accepted.
_FAULT_CODES: dict[str, Fault] = {
    "LoadBalancerNotFound": Fault.LOAD_BALANCER_NOT_FOUND,
    "AccessPointNotFoundException": Fault.LOAD_BALANCER_NOT_FOUND,
    "ListenerNotFound": Fault.LISTENER_NOT_FOUND,
    "ListenerNotFoundException": Fault.LISTENER_NOT_FOUND,
    "DuplicateListener": Fault.DUPLICATE_LISTENER,
    "DuplicateListenerException": Fault.DUPLICATE_LISTENER,
    "DuplicateLoadBalancerName": Fault.DUPLICATE_NAME,
    "DuplicateAccessPointNameException": Fault.DUPLICATE_NAME,
}


def error_code(error: ClientError | BotoCoreError) -> str:
    """Extract the provider error code, or the class name for transport errors."""
    if not isinstance(error, ClientError):
        return type(error).__name__
    return str(error.response.get("Error", {}).get("Code", ""))


def error_message(error: ClientError | BotoCoreError) -> str:
    """Extract the provider error message."""
    if not isinstance(error, ClientError):
        return str(error)
    return str(error.response.get("Error", {}).get("Message", str(error)))


def classify_fault(error: ClientError | BotoCoreError) -> Fault:
    """Map a provider error to a ``Fault`` kind."""
    if not isinstance(error, ClientError):
        return Fault.OTHER
    return _FAULT_CODES.get(error_code(error), Fault.OTHER)


@dataclass(frozen=True)
class CallResult:
    """
    Outcome of one remote call.

    Exactly one of ``response`` or ``error`` is set.

    Attributes:
        operation: Provider operation name (e.g., "CreateLoadBalancer")
        response: Parsed response on success
        error: Captured botocore error on failure
    """

    operation: str
    response: dict[str, Any] | None = None
    error: ClientError | BotoCoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def fault(self) -> Fault | None:
        """Classified fault, or None on success."""
        if self.error is None:
            return None
        return classify_fault(self.error)

    @property
    def code(self) -> str | None:
        return error_code(self.error) if self.error is not None else None

    @property
    def message(self) -> str | None:
        return error_message(self.error) if self.error is not None else None

    def remote_error(self, load_balancer_name: str | None = None) -> RemoteServiceError:
        """Build the passthrough error for an unrecognized fault."""
        if self.error is None:
            raise ValueError(f"{self.operation} succeeded; there is no error to convert")
        if isinstance(self.error, ClientError):
            return RemoteServiceError.from_client_error(
                self.operation, self.error, load_balancer_name=load_balancer_name
            )
        return RemoteServiceError(
            self.operation,
            error_code(self.error),
            error_message(self.error),
            load_balancer_name=load_balancer_name,
            cause=self.error,
        )
