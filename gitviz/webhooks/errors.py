"""Error types raised while accepting a webhook delivery."""

from __future__ import annotations

import enum


class WebhookError(Exception):
    """Base class for delivery rejections that map to an HTTP status."""


class SignatureFailure(enum.StrEnum):
    """Machine-readable reasons for signature rejection."""

    MISSING = "missing"
    MALFORMED = "malformed"
    MISMATCH = "mismatch"


class SignatureVerificationError(WebhookError):
    """Raised when a delivery is not signed with the shared secret."""

    def __init__(self, header: str, failure: SignatureFailure) -> None:
        """Record which header failed and why."""
        self.header = header
        self.failure = failure
        super().__init__(f"{header} is {failure.value}")

    @classmethod
    def missing(cls, header: str) -> SignatureVerificationError:
        """Return an error for an absent or empty signature header."""
        return cls(header, SignatureFailure.MISSING)

    @classmethod
    def malformed(cls, header: str) -> SignatureVerificationError:
        """Return an error for a header lacking the ``algo=`` prefix."""
        return cls(header, SignatureFailure.MALFORMED)

    @classmethod
    def mismatch(cls, header: str) -> SignatureVerificationError:
        """Return an error for a digest that does not match the body."""
        return cls(header, SignatureFailure.MISMATCH)


class UnsupportedEventError(WebhookError):
    """Raised when no handler exists for the delivered event type."""

    def __init__(self, event_name: str | None) -> None:
        """Keep the raw header value for diagnostics."""
        self.event_name = event_name
        super().__init__(f"event type {event_name!r} is not implemented")


class InvalidPayloadError(WebhookError):
    """Raised when a delivery body cannot be decoded for its event type."""

    @classmethod
    def not_json(cls, detail: str) -> InvalidPayloadError:
        """Return an error for bodies that are not valid JSON."""
        return cls(f"body is not valid JSON: {detail}")

    @classmethod
    def not_object(cls, type_name: str) -> InvalidPayloadError:
        """Return an error for JSON bodies that are not objects."""
        return cls(f"body must be a JSON object, got {type_name}")

    @classmethod
    def schema(cls, event_type: str, detail: str) -> InvalidPayloadError:
        """Return an error for payloads that do not fit the event schema."""
        return cls(f"{event_type} payload is invalid: {detail}")


class PayloadTooLargeError(WebhookError):
    """Raised when a delivery body exceeds the configured maximum."""

    def __init__(self, size: int, limit: int) -> None:
        """Store the offending size alongside the limit."""
        self.size = size
        self.limit = limit
        super().__init__(f"body of {size} bytes exceeds limit of {limit} bytes")


class WebhookConfigError(ValueError):
    """Raised when webhook configuration is missing or invalid."""

    @classmethod
    def missing_secret(cls, env_var: str) -> WebhookConfigError:
        """Return an error when no shared secret is configured."""
        return cls(f"{env_var} is required to verify webhook signatures")

    @classmethod
    def invalid_integer(cls, env_var: str, raw: str) -> WebhookConfigError:
        """Return an error for non-integer numeric settings."""
        return cls(f"{env_var} must be an integer, got: {raw!r}")

    @classmethod
    def not_positive(cls, env_var: str, value: int) -> WebhookConfigError:
        """Return an error for numeric settings below one."""
        return cls(f"{env_var} must be positive, got: {value}")
