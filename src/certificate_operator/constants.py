"""Constants for the Certificate Operator."""

import os

# API Group
API_GROUP = "certificate.println.kr"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"
PLURAL_CERTIFICATES = "certificates"

# Resource Kinds
KIND_CERTIFICATE = "Certificate"

# cert-manager coordinates
CERT_MANAGER_GROUP = "cert-manager.io"
CERT_MANAGER_VERSION = "v1"
CERT_MANAGER_API_VERSION = f"{CERT_MANAGER_GROUP}/{CERT_MANAGER_VERSION}"
KIND_ISSUER = "Issuer"
KIND_CM_CERTIFICATE = "Certificate"
PLURAL_ISSUERS = "issuers"
PLURAL_CM_CERTIFICATES = "certificates"
ANNOTATION_CM_CERTIFICATE_NAME = f"{CERT_MANAGER_GROUP}/certificate-name"

# Labels
LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"

# Annotations
ANNOTATION_TLS_SECRET_VERSION = f"{API_GROUP}/tls-secret-version"

# Finalizers
FINALIZER = f"{API_GROUP}/finalizer"

# Field Manager
FIELD_MANAGER = "certificate-operator"

# Naming conventions for owned objects
CM_CERTIFICATE_SUFFIX = "-cert"
TLS_SECRET_SUFFIX = "-tls"
ACCOUNT_KEY_SUFFIX = "-account-key"
TLS_CERT_KEY = "tls.crt"
TLS_PRIVATE_KEY = "tls.key"

# Issuance defaults
DEFAULT_ISSUER_NAME = os.getenv("DEFAULT_ISSUER_NAME", "letsencrypt-prod")
DEFAULT_INGRESS_CLASS = os.getenv("DEFAULT_INGRESS_CLASS", "nginx")
ACME_SERVER = os.getenv("ACME_SERVER", "https://acme-v02.api.letsencrypt.org/directory")

# Requeue cadence while waiting on cert-manager, and the periodic resync
READINESS_POLL_SECONDS = 60.0
RECONCILE_INTERVAL_SECONDS = float(os.getenv("RECONCILE_INTERVAL_SECONDS", "60"))

# Cloud providers
PROVIDER_AWS = "aws"
PROVIDER_CLOUDFLARE = "cloudflare"
CLOUDFLARE_API_URL = os.getenv("CLOUDFLARE_API_URL", "https://api.cloudflare.com/client/v4")
CLOUDFLARE_REQUEST_TIMEOUT = float(os.getenv("CLOUDFLARE_REQUEST_TIMEOUT_SECONDS", "30"))

# Credential secret keys
SECRET_KEY_CLOUDFLARE_TOKEN = "api-token"
SECRET_KEY_AWS_ACCESS_KEY_ID = "access-key-id"
SECRET_KEY_AWS_SECRET_ACCESS_KEY = "secret-access-key"
SECRET_KEY_AWS_REGION = "region"

# Condition Types
COND_READY = "Ready"
COND_ISSUED = "Issued"
COND_DISTRIBUTED = "Distributed"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_WAITING_FOR_ISSUANCE = "WaitingForIssuance"
EVENT_REASON_CERTIFICATE_UPLOADED = "CertificateUploaded"
EVENT_REASON_UPLOAD_FAILED = "UploadFailed"
EVENT_REASON_CERTIFICATE_DELETED = "CertificateDeleted"
EVENT_REASON_DELETE_FAILED = "DeleteFailed"
EVENT_REASON_FINALIZED = "Finalized"
