"""Orchestrates issuance and distribution for a single Certificate pass."""

from __future__ import annotations

import hashlib
from contextlib import closing
from datetime import datetime, timezone

from kubernetes import client

from . import metrics
from .builders.provider import (
    PROVIDER_FACTORIES,
    ProviderFactory,
    is_provider_configured,
    is_provider_enabled,
)
from .constants import (
    DEFAULT_INGRESS_CLASS,
    DEFAULT_ISSUER_NAME,
    KIND_CERTIFICATE,
    READINESS_POLL_SECONDS,
)
from .drivers.base import CertIssuer
from .exceptions import CertificateOperatorError
from .models import (
    CertificateMaterial,
    CertificateRequestSpec,
    CertificateResource,
    CertificateStatus,
    IssuerSpec,
    KeyMaterialBundle,
    ProcessResult,
    TeardownResult,
)
from .tracing import add_span_attribute, trace_span
from .utils.conditions import (
    set_distributed_condition,
    set_issued_condition,
    set_ready_condition,
)
from .utils.context import ReconcileContext
from .utils.errors import sanitize_exception


def calculate_cert_hash(certificate: bytes) -> str:
    """SHA-256 hex digest of the certificate bytes, used to detect renewals."""
    return hashlib.sha256(certificate).hexdigest()


class CertificateManager:
    """Drives one Certificate through issuance and cloud distribution.

    The manager never persists anything. It returns the status the
    controller should write, plus a requeue directive while cert-manager is
    still working. Passes are idempotent: with unchanged inputs the returned
    status equals the one passed in.
    """

    def __init__(
        self,
        issuer: CertIssuer,
        core_api: client.CoreV1Api,
        provider_factories: dict[str, ProviderFactory] | None = None,
    ) -> None:
        self.issuer = issuer
        self.core_api = core_api
        self.provider_factories = dict(PROVIDER_FACTORIES if provider_factories is None else provider_factories)

    def process(self, ctx: ReconcileContext, resource: CertificateResource) -> ProcessResult:
        """Run one forward reconciliation pass.

        Raises:
            LookupFailed: If an issuance object or the TLS secret cannot be read
            UpdateFailed: If an issuance object cannot be written
            ReconcileCancelled: If the pass was stopped midway
        """
        original = resource.status
        status = original.copy()
        spec = resource.spec
        generation = resource.generation
        status.observed_generation = generation

        issuer_name = spec.issuer_name or DEFAULT_ISSUER_NAME
        ingress_class = spec.ingress_class_name or DEFAULT_INGRESS_CLASS
        owner_references = [resource.owner_reference()]

        with trace_span("ensure_issuance", kind=KIND_CERTIFICATE, attributes={"certificate.domain": spec.domain}):
            # The Issuer may be shared by every Certificate in the namespace
            issuer = self.issuer.ensure_issuer(
                ctx,
                IssuerSpec(
                    name=issuer_name,
                    namespace=resource.namespace,
                    email=spec.email,
                    ingress_class_name=ingress_class,
                    owner_references=[resource.owner_reference(controller=False)],
                ),
            )
            ctx.check_cancelled()
            certificate_request = self.issuer.ensure_certificate(
                ctx,
                CertificateRequestSpec(
                    name=resource.certificate_request_name,
                    namespace=resource.namespace,
                    domain=spec.domain,
                    issuer_name=issuer.name,
                    secret_name=resource.tls_secret_name,
                    owner_references=owner_references,
                ),
            )

        status.issuer_ref = issuer.name
        status.certificate_ref = certificate_request.name

        for ref in (issuer, certificate_request):
            ctx.check_cancelled()
            readiness = self.issuer.check_readiness(ctx, ref)
            if not readiness.ready:
                return self._waiting(original, status, readiness.requeue_after, readiness.message, generation)

        ctx.check_cancelled()
        bundle = self.issuer.get_key_material(ctx, resource.tls_secret_name, resource.namespace)
        if bundle is None:
            message = f"Waiting for secret {resource.tls_secret_name} to be populated"
            return self._waiting(original, status, self._poll_interval(), message, generation)

        status.conditions = set_issued_condition(
            status.conditions, True, f"Certificate issued into {resource.tls_secret_name}", generation
        )

        enabled = self._targets(ctx, resource)
        targets = enabled
        cert_hash = calculate_cert_hash(bundle.certificate)
        if cert_hash == status.last_uploaded_cert_hash:
            # Targets that failed or were enabled after the last upload still need this certificate
            targets = [provider for provider in enabled if not status.is_uploaded(provider)]
            if targets:
                ctx.info(
                    "Certificate unchanged, uploading to providers that do not hold it yet",
                    reason="RetryUpload",
                    providers=targets,
                )
                metrics.certificate_uploads_total.labels(reason="retry").inc()
            else:
                ctx.debug("Certificate unchanged, skipping distribution", reason="Unchanged", hash=cert_hash)
        elif status.last_uploaded_cert_hash:
            ctx.info(
                "Certificate hash changed, re-uploading to cloud providers",
                reason="Renewal",
                old_hash=status.last_uploaded_cert_hash,
                new_hash=cert_hash,
            )
            metrics.certificate_uploads_total.labels(reason="renewal").inc()
        else:
            ctx.info("Certificate ready for initial upload", reason="InitialUpload", hash=cert_hash)
            metrics.certificate_uploads_total.labels(reason="initial").inc()

        uploaded, failures = self._distribute(ctx, resource, status, bundle, targets)

        if uploaded:
            status.last_uploaded_cert_hash = cert_hash
            status.last_uploaded_time = datetime.now(timezone.utc).isoformat()

        if failures:
            message = "Upload failed for: " + ", ".join(
                f"{provider} ({reason})" for provider, reason in sorted(failures.items())
            )
            status.conditions = set_distributed_condition(status.conditions, False, message, generation)
            status.conditions = set_ready_condition(status.conditions, False, message, generation)
        else:
            message = (
                "Certificate distributed to " + ", ".join(sorted(enabled))
                if enabled
                else "No distribution targets configured"
            )
            status.conditions = set_distributed_condition(status.conditions, True, message, generation)
            status.conditions = set_ready_condition(status.conditions, True, "Certificate is ready", generation)

        return self._finish(original, status, uploaded=uploaded, failures=failures, message=message)

    def _targets(self, ctx: ReconcileContext, resource: CertificateResource) -> list[str]:
        """Providers that are configured on the resource and not disabled."""
        targets = []
        for provider_name in self.provider_factories:
            if not is_provider_configured(resource.spec, provider_name):
                continue
            if not is_provider_enabled(resource.spec, provider_name):
                ctx.debug(f"Provider {provider_name} disabled, skipping", reason="ProviderDisabled")
                continue
            targets.append(provider_name)
        return targets

    def _distribute(
        self,
        ctx: ReconcileContext,
        resource: CertificateResource,
        status: CertificateStatus,
        bundle: KeyMaterialBundle,
        targets: list[str],
    ) -> tuple[dict[str, str], dict[str, str]]:
        """Upload the certificate to each target provider.

        A failing provider is logged and skipped. It keeps its identifier but
        is flagged as not uploaded, so the next pass tries it again.
        """
        uploaded: dict[str, str] = {}
        failures: dict[str, str] = {}

        for provider_name in targets:
            ctx.check_cancelled()
            factory = self.provider_factories[provider_name]
            material = CertificateMaterial(
                domain=resource.spec.domain,
                certificate=bundle.certificate,
                private_key=bundle.private_key,
                existing_id=status.identifier(provider_name) or None,
            )

            with trace_span(f"upload_{provider_name}", kind=KIND_CERTIFICATE, attributes={"provider": provider_name}):
                try:
                    with closing(factory(resource, self.core_api)) as driver:
                        outcome = driver.upload(ctx, material)
                except CertificateOperatorError as e:
                    failures[provider_name] = sanitize_exception(e)
                    status.mark_stale(provider_name)
                    ctx.error(
                        f"Failed to upload to {provider_name}",
                        error=e,
                        reason="UploadFailed",
                        provider=provider_name,
                    )
                    continue
                add_span_attribute("certificate.identifier", outcome.identifier)

            status.record_upload(provider_name, outcome.identifier)
            uploaded[provider_name] = outcome.identifier
            ctx.info(
                f"Successfully uploaded certificate to {provider_name}",
                reason="Uploaded",
                provider=provider_name,
                identifier=outcome.identifier,
            )

        return uploaded, failures

    def teardown(self, ctx: ReconcileContext, resource: CertificateResource) -> TeardownResult:
        """Delete every recorded cloud-side certificate, best effort.

        Each recorded identifier gets exactly one delete attempt. cert-manager
        objects are left to garbage collection through their owner references.
        """
        result = TeardownResult()

        for provider_name, identifier in resource.status.recorded_identifiers().items():
            factory = self.provider_factories.get(provider_name)
            if factory is None:
                result.failures[provider_name] = "no driver registered"
                ctx.warning(f"No driver registered for {provider_name}", reason="DeleteFailed", identifier=identifier)
                continue

            with trace_span(f"delete_{provider_name}", kind=KIND_CERTIFICATE, attributes={"provider": provider_name}):
                try:
                    with closing(factory(resource, self.core_api)) as driver:
                        driver.delete(ctx, identifier)
                except CertificateOperatorError as e:
                    result.failures[provider_name] = sanitize_exception(e)
                    ctx.error(
                        f"Failed to delete certificate from {provider_name}",
                        error=e,
                        reason="DeleteFailed",
                        provider=provider_name,
                        identifier=identifier,
                    )
                    continue

            result.deleted[provider_name] = identifier
            ctx.info(
                f"Successfully deleted certificate from {provider_name}",
                reason="Deleted",
                provider=provider_name,
                identifier=identifier,
            )

        return result

    def _poll_interval(self) -> float:
        return getattr(self.issuer, "poll_interval", None) or READINESS_POLL_SECONDS

    def _waiting(
        self,
        original: CertificateStatus,
        status: CertificateStatus,
        requeue_after: float | None,
        message: str,
        generation: int,
    ) -> ProcessResult:
        status.conditions = set_issued_condition(status.conditions, False, message, generation)
        status.conditions = set_ready_condition(status.conditions, False, message, generation)
        result = self._finish(original, status, message=message)
        result.requeue_after = requeue_after or self._poll_interval()
        return result

    @staticmethod
    def _finish(
        original: CertificateStatus,
        status: CertificateStatus,
        uploaded: dict[str, str] | None = None,
        failures: dict[str, str] | None = None,
        message: str = "",
    ) -> ProcessResult:
        return ProcessResult(
            status=status,
            changed=status.to_dict() != original.to_dict(),
            message=message,
            uploaded=uploaded or {},
            failures=failures or {},
        )
