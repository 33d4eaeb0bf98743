"""Exceptions raised while reconciling Certificate resources."""

from __future__ import annotations


class CertificateOperatorError(Exception):
    """Base class for operator errors."""


class LookupFailed(CertificateOperatorError):
    """Raised when an object cannot be read from the cluster."""

    def __init__(self, kind: str, name: str, namespace: str, cause: Exception | None = None):
        self.kind = kind
        self.name = name
        self.namespace = namespace
        self.cause = cause
        message = f"Failed to read {kind} '{name}' in namespace '{namespace}'"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class UpdateFailed(CertificateOperatorError):
    """Raised when an object cannot be created or updated in the cluster."""

    def __init__(self, kind: str, name: str, namespace: str, cause: Exception | None = None):
        self.kind = kind
        self.name = name
        self.namespace = namespace
        self.cause = cause
        message = f"Failed to write {kind} '{name}' in namespace '{namespace}'"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class CredentialsIncomplete(CertificateOperatorError):
    """Raised when a cloud provider's credentials are missing or partial."""

    def __init__(self, provider: str, reason: str):
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider} credentials incomplete: {reason}")


class UploadFailed(CertificateOperatorError):
    """Raised when a cloud provider rejects a certificate upload."""

    def __init__(self, provider: str, cause: Exception | str):
        self.provider = provider
        self.cause = cause
        super().__init__(f"Failed to upload certificate to {provider}: {cause}")


class DeleteFailed(CertificateOperatorError):
    """Raised when a cloud provider fails to delete a certificate."""

    def __init__(self, provider: str, identifier: str, cause: Exception | str):
        self.provider = provider
        self.identifier = identifier
        self.cause = cause
        super().__init__(f"Failed to delete certificate {identifier} from {provider}: {cause}")


class ReconcileCancelled(CertificateOperatorError):
    """Raised when a reconciliation pass is stopped before it completes."""
