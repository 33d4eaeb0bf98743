"""Certificate Operator: cert-manager issuance with distribution to AWS ACM and Cloudflare."""

__version__ = "0.1.0"
