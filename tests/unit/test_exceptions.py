"""Tests for exception classes."""

import pytest
from botocore.exceptions import ClientError

from apilb.exceptions import (
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
from apilb.models import ListenerSpec


class TestHierarchy:
    """All library errors share one base class."""

    @pytest.mark.parametrize(
        "error",
        [
            ProvisionError("api-lb", "rejected"),
            HealthCheckError("api-lb", "rejected"),
            ListenerConflictError("api-lb", ListenerSpec.tcp(6443)),
            LoadBalancerNotFoundError("api-lb"),
            RemoteServiceError("DescribeLoadBalancers", "Throttling", "slow down"),
            ValidationError("name", "", "empty"),
        ],
    )
    def test_base_class(self, error: Exception) -> None:
        assert isinstance(error, APILBError)

    def test_categories(self) -> None:
        assert issubclass(ProvisionError, ProvisioningError)
        assert issubclass(HealthCheckError, ProvisioningError)
        assert issubclass(ListenerConflictError, ListenerError)

    def test_validation_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            raise ValidationError("port", 0, "out of range")


class TestRemoteServiceError:
    """Tests for RemoteServiceError."""

    def test_from_client_error(self) -> None:
        cause = ClientError(
            {"Error": {"Code": "Throttling", "Message": "Rate exceeded"}},
            "DescribeLoadBalancers",
        )
        error = RemoteServiceError.from_client_error(
            "DescribeLoadBalancers", cause, load_balancer_name="api-lb"
        )

        assert error.code == "Throttling"
        assert error.message == "Rate exceeded"
        assert error.cause is cause
        assert str(error) == (
            "DescribeLoadBalancers failed (Throttling): Rate exceeded [load_balancer=api-lb]"
        )

    def test_as_dict(self) -> None:
        error = RemoteServiceError("RegisterInstancesWithLoadBalancer", "InvalidInstance", "bad")
        assert error.as_dict() == {
            "error": "remote_service_error",
            "operation": "RegisterInstancesWithLoadBalancer",
            "code": "InvalidInstance",
            "message": "bad",
            "load_balancer_name": None,
        }


class TestHealthCheckError:
    """Tests for HealthCheckError."""

    def test_partial_provision(self) -> None:
        error = HealthCheckError("api-lb", "Throttling: slow", dns_name="api-lb.elb.example")
        assert error.partially_provisioned
        assert "api-lb.elb.example" in str(error)

    def test_standalone(self) -> None:
        error = HealthCheckError("api-lb", "rejected")
        assert not error.partially_provisioned


class TestListenerConflictError:
    """Tests for ListenerConflictError."""

    def test_message(self) -> None:
        listener = ListenerSpec(frontend_port=6443, backend_port=8080)
        error = ListenerConflictError("api-lb", listener, reason="duplicate")
        assert error.listener is listener
        assert "frontend port 6443" in str(error)
        assert "(duplicate)" in str(error)
