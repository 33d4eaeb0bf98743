"""Issuance and distribution drivers."""

from .aws import ACMProvider
from .base import CertIssuer, CloudProvider
from .cloudflare import CloudflareProvider
from .issuance import CertManagerDriver

__all__ = [
    "ACMProvider",
    "CertIssuer",
    "CertManagerDriver",
    "CloudProvider",
    "CloudflareProvider",
]
