"""Configuration module for the idempotency filter.

This module provides the IdempotencyConfig class for configuring which requests
are protected, where the idempotency key is read from, and how long cached
responses live.

Example:
    Basic usage with defaults:

        >>> config = IdempotencyConfig()
        >>> config.header_name
        'IdempotencyKey'
        >>> config.enabled_methods
        ['POST', 'PATCH']

    Custom configuration:

        >>> config = IdempotencyConfig(
        ...     header_name="Idempotency-Key",
        ...     expire_hours=1,
        ... )

    Loading from environment:

        >>> import os
        >>> os.environ['IDEMPOTENCY_HEADER_NAME'] = 'Idempotency-Key'
        >>> os.environ['IDEMPOTENCY_EXPIRE_HOURS'] = '6'
        >>> config = IdempotencyConfig.from_env()
"""

import os
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, Field, field_validator

# Valid HTTP methods for idempotency
VALID_HTTP_METHODS = {
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "DELETE",
    "CONNECT",
    "OPTIONS",
    "TRACE",
    "PATCH",
}

DEFAULT_HEADER_NAME = "IdempotencyKey"


class IdempotencyConfig(BaseModel):
    """Configuration for the idempotency filter.

    Attributes:
        header_name: Request header that carries the idempotency key.
            Looked up case-insensitively. Default is "IdempotencyKey".
        enabled_methods: HTTP methods that are protected. Requests with any
            other method bypass the filter entirely. Default is POST and PATCH.
        expire_hours: Absolute lifetime of a cache entry in hours, counted
            from the moment it is written. Must be between 1 and 8760 (one
            year). Default is 24.
        lock_same_key: Serialize concurrent requests that carry the same key
            inside one process. Default is True.
        replay_header: Add "Idempotent-Replay: true" to replayed responses.
            Default is True.
        cleanup_interval_seconds: Interval of the background purge task for
            stores that support it. Default is 300.

    Note:
        This class is immutable (frozen=True). Create a new instance if you
        need different settings.
    """

    header_name: str = Field(
        default=DEFAULT_HEADER_NAME,
        description="Request header carrying the idempotency key",
        min_length=1,
    )
    enabled_methods: list[str] | str = Field(
        default=["POST", "PATCH"],
        description="HTTP methods that require an idempotency key",
    )
    expire_hours: int = Field(
        default=24,
        description="Lifetime of a cache entry in hours (1-8760)",
    )
    lock_same_key: bool = Field(
        default=True,
        description="Serialize concurrent same-key requests in-process",
    )
    replay_header: bool = Field(
        default=True,
        description="Mark replayed responses with Idempotent-Replay: true",
    )
    cleanup_interval_seconds: int = Field(
        default=300,
        description="Interval of the expired entry purge task in seconds",
        ge=1,
    )

    model_config = {"frozen": True}

    @field_validator("header_name")
    @classmethod
    def validate_header_name(cls, v: str) -> str:
        """Reject header names that are blank or contain whitespace.

        Example:
            >>> IdempotencyConfig(header_name="X-Idempotency-Key").header_name
            'X-Idempotency-Key'
        """
        v = v.strip()
        if not v or any(c.isspace() for c in v):
            raise ValueError(f"header_name must be a single non-empty token, got {v!r}")
        return v

    @field_validator("enabled_methods", mode="before")
    @classmethod
    def validate_enabled_methods(cls, v: Any) -> list[str]:
        """Validate and normalize enabled HTTP methods.

        Converts methods to uppercase and validates against known HTTP methods.

        Args:
            v: List of HTTP method strings or comma-separated string.

        Returns:
            List of uppercase, validated HTTP methods.

        Raises:
            ValueError: If any method is not a valid HTTP method.

        Example:
            >>> config = IdempotencyConfig(enabled_methods=["post", "patch"])
            >>> config.enabled_methods
            ['POST', 'PATCH']
        """
        if isinstance(v, str):
            # Handle comma-separated string (from environment variables)
            v = [method.strip() for method in v.split(",") if method.strip()]

        if not isinstance(v, list):
            raise ValueError("enabled_methods must be a list or comma-separated string")

        methods = [method.upper() for method in v]

        invalid_methods = set(methods) - VALID_HTTP_METHODS
        if invalid_methods:
            raise ValueError(
                f"Invalid HTTP methods: {', '.join(sorted(invalid_methods))}. "
                f"Valid methods are: {', '.join(sorted(VALID_HTTP_METHODS))}"
            )

        return methods

    @field_validator("expire_hours")
    @classmethod
    def validate_expire_hours(cls, v: int) -> int:
        """Validate the TTL is within acceptable range.

        Raises:
            ValueError: If TTL is not between 1 and 8760 hours.
        """
        if not (1 <= v <= 8760):
            raise ValueError(f"expire_hours must be between 1 and 8760, got {v}")
        return v

    @property
    def ttl(self) -> timedelta:
        """Absolute expiry applied to every cache entry.

        Example:
            >>> IdempotencyConfig(expire_hours=2).ttl
            datetime.timedelta(seconds=7200)
        """
        return timedelta(hours=self.expire_hours)

    def applies_to(self, method: str) -> bool:
        """Return True if requests with this method are protected."""
        return method.upper() in self.enabled_methods

    @classmethod
    def from_env(cls, prefix: str = "IDEMPOTENCY_") -> "IdempotencyConfig":
        """Create configuration from environment variables.

        Variable names are uppercase field names with the prefix, e.g.
        ``IDEMPOTENCY_EXPIRE_HOURS``. Missing variables use the defaults.

        Args:
            prefix: Prefix for environment variable names.

        Returns:
            IdempotencyConfig instance populated from environment variables.

        Example:
            >>> import os
            >>> os.environ['IDEMPOTENCY_ENABLED_METHODS'] = 'POST,PUT'
            >>> IdempotencyConfig.from_env().enabled_methods
            ['POST', 'PUT']
        """
        config_dict: dict[str, Any] = {}

        field_types = {
            "header_name": str,
            "enabled_methods": list,
            "expire_hours": int,
            "lock_same_key": bool,
            "replay_header": bool,
            "cleanup_interval_seconds": int,
        }

        for field_name, field_type in field_types.items():
            env_value = os.environ.get(f"{prefix}{field_name.upper()}")
            if env_value is None:
                continue

            if field_type is int:
                config_dict[field_name] = int(env_value)
            elif field_type is bool:
                config_dict[field_name] = env_value.strip().lower() in ("1", "true", "yes", "on")
            else:
                # Lists stay comma-separated; the validator splits them
                config_dict[field_name] = env_value

        return cls(**config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "IdempotencyConfig":
        """Create configuration from a dictionary.

        Raises:
            ValidationError: If the dictionary contains invalid values.
        """
        return cls(**config_dict)
