"""Configuration for webhook verification and intake limits.

Usage
-----
Build a configuration explicitly:

>>> config = WebhookConfig(secret="s3cret")
>>> config.max_payload_bytes
26214400

Or load it from the environment:

>>> import os
>>> os.environ["X_HUB_SECRET"] = "s3cret"
>>> WebhookConfig.from_env().secret
's3cret'

"""

from __future__ import annotations

import dataclasses as dc
import os

from gitviz.webhooks.errors import WebhookConfigError

SECRET_ENV_VAR = "X_HUB_SECRET"
MAX_PAYLOAD_ENV_VAR = "GITVIZ_MAX_PAYLOAD_BYTES"

# GitHub caps webhook payloads at 25 MB.
DEFAULT_MAX_PAYLOAD_BYTES = 25 * 1024 * 1024


@dc.dataclass(frozen=True, slots=True)
class WebhookConfig:
    """Settings used by the ``POST /event`` resource.

    Attributes
    ----------
    secret
        Shared secret configured on the GitHub webhook. Signatures are
        HMAC digests of the raw request body keyed by this value.
    max_payload_bytes
        Largest request body accepted before signature checks run.

    """

    secret: str = dc.field(repr=False)
    max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES

    def __post_init__(self) -> None:
        """Reject empty secrets and non-positive limits."""
        if not self.secret:
            raise WebhookConfigError.missing_secret(SECRET_ENV_VAR)
        if self.max_payload_bytes < 1:
            raise WebhookConfigError.not_positive(
                MAX_PAYLOAD_ENV_VAR, self.max_payload_bytes
            )

    @staticmethod
    def _parse_positive_int(env_var: str, default: int) -> int:
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            raise WebhookConfigError.invalid_integer(env_var, raw) from exc
        if value < 1:
            raise WebhookConfigError.not_positive(env_var, value)
        return value

    @classmethod
    def from_env(cls) -> WebhookConfig:
        """Create configuration from environment variables.

        Reads ``X_HUB_SECRET`` (required) and ``GITVIZ_MAX_PAYLOAD_BYTES``
        (optional positive integer).

        Raises
        ------
        WebhookConfigError
            If the secret is unset or the payload limit is invalid.

        """
        secret = os.environ.get(SECRET_ENV_VAR, "")
        if not secret:
            raise WebhookConfigError.missing_secret(SECRET_ENV_VAR)
        return cls(
            secret=secret,
            max_payload_bytes=cls._parse_positive_int(
                MAX_PAYLOAD_ENV_VAR, DEFAULT_MAX_PAYLOAD_BYTES
            ),
        )
