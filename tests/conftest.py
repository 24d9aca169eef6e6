"""Pytest fixtures for apilb tests."""

import asyncio
import os
from collections.abc import Awaitable
from unittest.mock import patch

import boto3
import pytest
from moto import mock_aws

from apilb.manager import LoadBalancerManager, SyncLoadBalancerManager

REGION = "us-east-1"


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    # Unset AWS_ENDPOINT_URL to ensure moto intercepts requests
    # (LocalStack tests use localstack_endpoint fixture which reads from env)
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)


def _patch_aiobotocore_response():
    """
    Patch aiobotocore to work with moto's sync responses.

    Moto returns botocore.awsrequest.AWSResponse which has sync content,
    but aiobotocore expects async content. This patch wraps the response
    handling to convert sync content to async.

    See: https://github.com/aio-libs/aiobotocore/discussions/1300
    """
    from aiobotocore import endpoint

    original_convert = endpoint.convert_to_response_dict

    async def patched_convert(http_response, operation_model):
        # If content is not awaitable (moto's sync response), wrap it
        if hasattr(http_response, "_content") and not isinstance(http_response._content, Awaitable):
            fut: asyncio.Future[bytes] = asyncio.Future()
            fut.set_result(http_response.content)
            http_response._content = fut
        return await original_convert(http_response, operation_model)

    return patch.object(endpoint, "convert_to_response_dict", patched_convert)


@pytest.fixture
def mock_elb(aws_credentials):
    """Mock ELB and EC2 for tests."""
    with mock_aws(), _patch_aiobotocore_response():
        yield


@pytest.fixture
def subnets(mock_elb) -> list[str]:
    """Two subnets in different availability zones of one VPC."""
    ec2 = boto3.client("ec2", region_name=REGION)
    vpc_id = ec2.create_vpc(CidrBlock="10.0.0.0/16")["Vpc"]["VpcId"]
    subnet_ids = []
    for index, zone in enumerate(("us-east-1a", "us-east-1b")):
        subnet = ec2.create_subnet(
            VpcId=vpc_id,
            CidrBlock=f"10.0.{index + 1}.0/24",
            AvailabilityZone=zone,
        )
        subnet_ids.append(subnet["Subnet"]["SubnetId"])
    return subnet_ids


@pytest.fixture
async def manager(mock_elb):
    """Create a LoadBalancerManager against mocked AWS."""
    async with LoadBalancerManager(region=REGION) as manager:
        yield manager


@pytest.fixture
def sync_manager(mock_elb):
    """Create a SyncLoadBalancerManager against mocked AWS."""
    with SyncLoadBalancerManager(region=REGION) as manager:
        yield manager


# LocalStack fixtures for integration testing


@pytest.fixture
def localstack_endpoint():
    """LocalStack endpoint URL from environment."""
    endpoint = os.getenv("AWS_ENDPOINT_URL")
    if not endpoint:
        pytest.skip("AWS_ENDPOINT_URL not set - LocalStack not available")
    return endpoint
