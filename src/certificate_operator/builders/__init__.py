"""Builders for driver instances."""

from .provider import (
    PROVIDER_FACTORIES,
    create_aws_provider,
    create_cloudflare_provider,
    is_provider_configured,
    is_provider_enabled,
)

__all__ = [
    "PROVIDER_FACTORIES",
    "create_aws_provider",
    "create_cloudflare_provider",
    "is_provider_configured",
    "is_provider_enabled",
]
