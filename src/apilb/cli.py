"""Command-line interface for apilb load balancer management."""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import click

from .exceptions import APILBError, HealthCheckError
from .manager import LoadBalancerManager
from .models import CONTROL_PLANE_PORT, HealthCheckSpec, ListenerProtocol
from .naming import resolve_name

T = TypeVar("T")

# Exit code for "exists" when the load balancer is absent
EXIT_NOT_FOUND = 2


def _common_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every command."""
    func = click.option(
        "--endpoint-url",
        envvar="APILB_ENDPOINT_URL",
        help=(
            "AWS endpoint URL "
            "(e.g., http://localhost:4566 for LocalStack, or other AWS-compatible services)"
        ),
    )(func)
    func = click.option(
        "--region",
        envvar="APILB_REGION",
        help="AWS region (default: use boto3 defaults)",
    )(func)
    func = click.option(
        "--name",
        help="Load balancer name (default: $APILB_NAME)",
    )(func)
    return func


def _run(
    region: str | None,
    endpoint_url: str | None,
    action: Callable[[LoadBalancerManager], Awaitable[T]],
    **manager_kwargs: Any,
) -> T:
    """Run ``action`` against a manager, exiting 1 on any error."""

    async def _main() -> T:
        async with LoadBalancerManager(region, endpoint_url, **manager_kwargs) as manager:
            return await action(manager)

    try:
        return asyncio.run(_main())
    except HealthCheckError as e:
        click.echo(f"✗ {e}", err=True)
        if e.partially_provisioned:
            click.echo(
                "  The load balancer was created but is unmonitored. "
                "Retry with 'apilb health-check'.",
                err=True,
            )
        sys.exit(1)
    except APILBError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"✗ Unexpected error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(package_name="apilb")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """apilb control-plane load balancer management CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@_common_options
@click.option(
    "--subnet",
    "subnets",
    multiple=True,
    required=True,
    help="Subnet ID (repeat for each availability zone)",
)
@click.option(
    "--port",
    type=click.IntRange(1, 65535),
    default=CONTROL_PLANE_PORT,
    show_default=True,
    help="Listener port (used for both load balancer and instance side)",
)
def provision(
    name: str | None,
    region: str | None,
    endpoint_url: str | None,
    subnets: tuple[str, ...],
    port: int,
) -> None:
    """Create the load balancer and attach the default health check."""
    lb_name = _resolve(name)
    click.echo(f"Provisioning load balancer: {lb_name}")
    click.echo(f"  Region: {region or 'default'}")
    click.echo(f"  Subnets: {', '.join(subnets)}")
    click.echo(f"  Listener: {port}/TCP -> {port}/TCP")
    click.echo()

    dns_name = _run(region, endpoint_url, lambda m: m.provision(lb_name, subnets, port))
    click.echo("✓ Load balancer provisioned")
    click.echo(f"  DNS name: {dns_name}")


@cli.command("set-public")
@_common_options
@click.option(
    "--port",
    type=click.IntRange(1, 65535),
    default=CONTROL_PLANE_PORT,
    show_default=True,
    help="Listener port to expose",
)
def set_public(name: str | None, region: str | None, endpoint_url: str | None, port: int) -> None:
    """Expose the control-plane API by adding its listener."""
    lb_name = _resolve(name)
    _run(
        region,
        endpoint_url,
        lambda m: m.set_public(lb_name, port),
        control_plane_port=port,
    )
    click.echo(f"✓ {lb_name} is public on port {port}")


@cli.command("set-private")
@_common_options
@click.option(
    "--port",
    type=click.IntRange(1, 65535),
    default=CONTROL_PLANE_PORT,
    show_default=True,
    help="Control-plane listener port to remove",
)
def set_private(name: str | None, region: str | None, endpoint_url: str | None, port: int) -> None:
    """Hide the control-plane API by removing its listener."""
    lb_name = _resolve(name)
    _run(
        region,
        endpoint_url,
        lambda m: m.set_private(lb_name),
        control_plane_port=port,
    )
    click.echo(f"✓ {lb_name} is private (listener on port {port} removed)")


@cli.command("add-instances")
@_common_options
@click.argument("instance_ids", nargs=-1)
def add_instances(
    name: str | None,
    region: str | None,
    endpoint_url: str | None,
    instance_ids: tuple[str, ...],
) -> None:
    """Register instances with the load balancer."""
    lb_name = _resolve(name)
    _run(region, endpoint_url, lambda m: m.add_instances(lb_name, instance_ids))
    click.echo(f"✓ Registered {len(set(instance_ids))} instance(s) with {lb_name}")


@cli.command("remove-instances")
@_common_options
@click.argument("instance_ids", nargs=-1)
def remove_instances(
    name: str | None,
    region: str | None,
    endpoint_url: str | None,
    instance_ids: tuple[str, ...],
) -> None:
    """Deregister instances from the load balancer."""
    lb_name = _resolve(name)
    _run(region, endpoint_url, lambda m: m.remove_instances(lb_name, instance_ids))
    click.echo(f"✓ Deregistered {len(set(instance_ids))} instance(s) from {lb_name}")


@cli.command()
@_common_options
def exists(name: str | None, region: str | None, endpoint_url: str | None) -> None:
    """Check whether the load balancer exists (exit code 2 if not)."""
    lb_name = _resolve(name)
    found, dns_name = _run(region, endpoint_url, lambda m: m.exists(lb_name))
    if not found:
        click.echo(f"{lb_name}: not found")
        sys.exit(EXIT_NOT_FOUND)
    click.echo(f"{lb_name}: {dns_name}")


@cli.command()
@_common_options
@click.option(
    "--output",
    "-o",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
def describe(name: str | None, region: str | None, endpoint_url: str | None, output: str) -> None:
    """Show listeners, instances and health check of the load balancer."""
    lb_name = _resolve(name)
    description = _run(region, endpoint_url, lambda m: m.describe(lb_name))
    data = description.to_dict()

    if output == "json":
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(f"Load balancer: {data['name']}")
    click.echo(f"  DNS name: {data['dns_name']}")
    click.echo(f"  State: {data['state']}")
    click.echo(f"  Scheme: {data['scheme'] or 'unknown'}")
    click.echo(f"  Subnets: {', '.join(data['subnets']) or '-'}")
    click.echo(f"  Health check: {data['health_check'] or 'none'}")
    click.echo("  Listeners:")
    if not data["listeners"]:
        click.echo("    (none)")
    for listener in data["listeners"]:
        click.echo(
            f"    {listener['frontend_port']}/{listener['protocol']} -> "
            f"{listener['backend_port']}/{listener['instance_protocol']}"
        )
    click.echo(f"  Instances ({len(data['instances'])}):")
    for instance_id in data["instances"]:
        click.echo(f"    {instance_id}")


@cli.command("health-check")
@_common_options
@click.option(
    "--protocol",
    type=click.Choice([p.value for p in ListenerProtocol], case_sensitive=False),
    default="HTTP",
    show_default=True,
    help="Probe protocol",
)
@click.option("--path", default="/", show_default=True, help="Probe path (HTTP/HTTPS only)")
@click.option(
    "--port",
    type=click.IntRange(1, 65535),
    default=CONTROL_PLANE_PORT,
    show_default=True,
    help="Instance port to probe",
)
@click.option(
    "--interval", type=click.IntRange(5, 300), default=30, show_default=True, help="Seconds"
)
@click.option("--timeout", type=click.IntRange(2, 60), default=3, show_default=True, help="Seconds")
@click.option("--healthy-threshold", type=click.IntRange(2, 10), default=2, show_default=True)
@click.option("--unhealthy-threshold", type=click.IntRange(2, 10), default=2, show_default=True)
def health_check(
    name: str | None,
    region: str | None,
    endpoint_url: str | None,
    protocol: str,
    path: str,
    port: int,
    interval: int,
    timeout: int,
    healthy_threshold: int,
    unhealthy_threshold: int,
) -> None:
    """Attach or replace the health check of the load balancer."""
    lb_name = _resolve(name)
    try:
        spec = HealthCheckSpec(
            protocol=ListenerProtocol.parse(protocol),
            path=path,
            port=port,
            interval=interval,
            timeout=timeout,
            healthy_threshold=healthy_threshold,
            unhealthy_threshold=unhealthy_threshold,
        )
    except APILBError as e:
        raise click.BadParameter(str(e)) from e

    _run(region, endpoint_url, lambda m: m.configure_health_check(lb_name, spec))
    click.echo(f"✓ Health check {spec.target} configured on {lb_name}")


def _resolve(name: str | None) -> str:
    try:
        return resolve_name(name)
    except APILBError as e:
        raise click.UsageError(str(e)) from e


if __name__ == "__main__":
    cli()
