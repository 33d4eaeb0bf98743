"""Builders for cloud provider drivers."""

from __future__ import annotations

from typing import Callable

from kubernetes import client

from ..constants import (
    PROVIDER_AWS,
    PROVIDER_CLOUDFLARE,
    SECRET_KEY_AWS_ACCESS_KEY_ID,
    SECRET_KEY_AWS_REGION,
    SECRET_KEY_AWS_SECRET_ACCESS_KEY,
    SECRET_KEY_CLOUDFLARE_TOKEN,
)
from ..drivers.aws import ACMProvider
from ..drivers.base import CloudProvider
from ..drivers.cloudflare import CloudflareProvider
from ..exceptions import CredentialsIncomplete, LookupFailed
from ..models import CertificateResource, CertificateSpec
from ..utils.secrets import is_not_found, read_secret_strings

ProviderFactory = Callable[[CertificateResource, client.CoreV1Api], CloudProvider]


def _secret_ref(spec: CertificateSpec, provider: str) -> str:
    if provider == PROVIDER_AWS:
        return spec.aws_secret_ref
    if provider == PROVIDER_CLOUDFLARE:
        return spec.cloudflare_secret_ref
    raise ValueError(f"Unsupported provider: {provider}")


def _enabled_flag(spec: CertificateSpec, provider: str) -> bool | None:
    if provider == PROVIDER_AWS:
        return spec.aws_enabled
    if provider == PROVIDER_CLOUDFLARE:
        return spec.cloudflare_enabled
    raise ValueError(f"Unsupported provider: {provider}")


def is_provider_enabled(spec: CertificateSpec, provider: str) -> bool:
    """An absent enable flag means enabled."""
    return _enabled_flag(spec, provider) is not False


def is_provider_configured(spec: CertificateSpec, provider: str) -> bool:
    """A provider is configured when it has a secret ref or is explicitly enabled."""
    return bool(_secret_ref(spec, provider)) or _enabled_flag(spec, provider) is True


def resolve_credentials(
    core_api: client.CoreV1Api,
    namespace: str,
    provider: str,
    secret_ref: str,
    required_keys: tuple[str, ...],
    allows_ambient: bool,
) -> dict[str, str] | None:
    """Read and validate a provider's credentials secret.

    Returns:
        The decoded secret, or None when the ambient credential chain should be used

    Raises:
        CredentialsIncomplete: If the secret is absent, missing required keys,
            or not configured for a provider that forbids ambient credentials
        LookupFailed: If the secret exists but cannot be read
    """
    if not secret_ref:
        if allows_ambient:
            return None
        raise CredentialsIncomplete(provider, "no credentials secret configured")

    try:
        data = read_secret_strings(core_api, namespace, secret_ref)
    except LookupFailed as e:
        if is_not_found(e):
            raise CredentialsIncomplete(provider, f"secret '{secret_ref}' not found") from e
        raise

    missing = [key for key in required_keys if not data.get(key)]
    if missing:
        raise CredentialsIncomplete(
            provider,
            f"secret '{secret_ref}' is missing {', '.join(missing)}",
        )
    return data


def create_aws_provider(resource: CertificateResource, core_api: client.CoreV1Api) -> ACMProvider:
    """Create an ACM driver from a Certificate's AWS settings.

    Raises:
        CredentialsIncomplete: If the referenced secret lacks access-key-id or secret-access-key
    """
    credentials = resolve_credentials(
        core_api,
        resource.namespace,
        PROVIDER_AWS,
        resource.spec.aws_secret_ref,
        (SECRET_KEY_AWS_ACCESS_KEY_ID, SECRET_KEY_AWS_SECRET_ACCESS_KEY),
        allows_ambient=ACMProvider.allows_ambient_credentials,
    )
    if credentials is None:
        return ACMProvider()

    return ACMProvider(
        access_key_id=credentials[SECRET_KEY_AWS_ACCESS_KEY_ID],
        secret_access_key=credentials[SECRET_KEY_AWS_SECRET_ACCESS_KEY],
        region=credentials.get(SECRET_KEY_AWS_REGION),
    )


def create_cloudflare_provider(
    resource: CertificateResource,
    core_api: client.CoreV1Api,
) -> CloudflareProvider:
    """Create a Cloudflare driver from a Certificate's Cloudflare settings.

    Raises:
        CredentialsIncomplete: If the token secret or the zone ID is missing
    """
    credentials = resolve_credentials(
        core_api,
        resource.namespace,
        PROVIDER_CLOUDFLARE,
        resource.spec.cloudflare_secret_ref,
        (SECRET_KEY_CLOUDFLARE_TOKEN,),
        allows_ambient=CloudflareProvider.allows_ambient_credentials,
    )
    if not resource.spec.cloudflare_zone_id:
        raise CredentialsIncomplete(PROVIDER_CLOUDFLARE, "cloudflareZoneID is required")

    return CloudflareProvider(
        api_token=credentials[SECRET_KEY_CLOUDFLARE_TOKEN],
        zone_id=resource.spec.cloudflare_zone_id,
    )


# Registry of distribution targets, in the order they are attempted
PROVIDER_FACTORIES: dict[str, ProviderFactory] = {
    PROVIDER_CLOUDFLARE: create_cloudflare_provider,
    PROVIDER_AWS: create_aws_provider,
}
