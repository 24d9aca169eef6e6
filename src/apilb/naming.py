"""Load balancer naming utilities.

Classic load balancer names must satisfy the provider's rules:
- Alphanumeric characters and hyphens only
- Must not start or end with a hyphen
- Maximum 32 characters
"""

import os
import re

from .exceptions import ValidationError

NAME_ENV_VAR = "APILB_NAME"
"""Environment variable supplying the load balancer name when none is given."""

MAX_NAME_LENGTH = 32

NAME_PATTERN = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?$")


def validate_name(name: str) -> None:
    """
    Validate a load balancer name.

    Args:
        name: The user-provided name

    Raises:
        ValidationError: If the name violates the naming rules
    """
    if not name:
        raise ValidationError("name", name, "Name cannot be empty")

    if "_" in name:
        raise ValidationError(
            "name",
            name,
            "Contains underscore. Use hyphens instead (e.g., 'api-lb' not 'api_lb')",
        )
    if "." in name or " " in name:
        raise ValidationError(
            "name",
            name,
            "Only alphanumeric characters and hyphens are allowed.",
        )
    if name.startswith("-") or name.endswith("-"):
        raise ValidationError("name", name, "Must not start or end with a hyphen.")

    if not NAME_PATTERN.match(name):
        raise ValidationError(
            "name",
            name,
            "Only alphanumeric characters and hyphens are allowed.",
        )

    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(
            "name",
            name,
            f"Too long. Name exceeds {MAX_NAME_LENGTH} character limit.",
        )


def resolve_name(name: str | None) -> str:
    """Resolve a load balancer name from explicit arg or env var.

    Resolution order: ``name`` arg → ``APILB_NAME`` env var.

    Raises:
        ValidationError: If no name is available or the name is invalid.
    """
    resolved = name or os.environ.get(NAME_ENV_VAR) or ""
    validate_name(resolved)
    return resolved
