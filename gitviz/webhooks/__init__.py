"""Webhook intake primitives: signatures, event types, configuration."""

from __future__ import annotations

from .config import WebhookConfig
from .errors import (
    InvalidPayloadError,
    PayloadTooLargeError,
    SignatureVerificationError,
    UnsupportedEventError,
    WebhookConfigError,
    WebhookError,
)
from .events import GithubEventType
from .observability import WebhookEventLogger
from .signature import (
    SIGNATURE_256_HEADER,
    SIGNATURE_HEADER,
    SignatureAlgorithm,
    compute_signature,
    require_valid_signature,
    verify_signature,
)

__all__ = [
    "SIGNATURE_256_HEADER",
    "SIGNATURE_HEADER",
    "GithubEventType",
    "InvalidPayloadError",
    "PayloadTooLargeError",
    "SignatureAlgorithm",
    "SignatureVerificationError",
    "UnsupportedEventError",
    "WebhookConfig",
    "WebhookConfigError",
    "WebhookError",
    "WebhookEventLogger",
    "compute_signature",
    "require_valid_signature",
    "verify_signature",
]
