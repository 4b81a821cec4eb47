"""HMAC signatures for GitHub webhook deliveries.

GitHub signs the raw request body with the webhook secret and sends the hex
digest as ``X-Hub-Signature: sha1=<hex>``, and additionally as
``X-Hub-Signature-256: sha256=<hex>``. Verification recomputes the digest
over the exact bytes received and compares in constant time.

Usage
-----
>>> header = compute_signature("s3cret", b'{"zen": "Keep it logically awesome."}')
>>> verify_signature("s3cret", b'{"zen": "Keep it logically awesome."}', header)
True

"""

from __future__ import annotations

import enum
import hashlib
import hmac

from gitviz.webhooks.errors import SignatureVerificationError

SIGNATURE_HEADER = "X-Hub-Signature"
SIGNATURE_256_HEADER = "X-Hub-Signature-256"


class SignatureAlgorithm(enum.StrEnum):
    """Digest algorithms GitHub uses in signature headers."""

    SHA1 = "sha1"
    SHA256 = "sha256"


def _as_bytes(secret: str | bytes) -> bytes:
    return secret.encode("utf-8") if isinstance(secret, str) else secret


def compute_signature(
    secret: str | bytes,
    body: bytes,
    algorithm: SignatureAlgorithm = SignatureAlgorithm.SHA1,
) -> str:
    """Return the header value GitHub would send for ``body``."""
    digest = hmac.new(_as_bytes(secret), body, algorithm.value).hexdigest()
    return f"{algorithm.value}={digest}"


def verify_signature(
    secret: str | bytes,
    body: bytes,
    header_value: str | None,
    algorithm: SignatureAlgorithm = SignatureAlgorithm.SHA1,
) -> bool:
    """Return whether ``header_value`` is a valid signature of ``body``."""
    if not header_value:
        return False
    expected = compute_signature(secret, body, algorithm)
    return hmac.compare_digest(
        expected.encode("ascii"), header_value.strip().encode("utf-8")
    )


def _check(
    secret: str | bytes,
    body: bytes,
    header: str,
    header_value: str | None,
    algorithm: SignatureAlgorithm,
) -> None:
    if not header_value or not header_value.strip():
        raise SignatureVerificationError.missing(header)
    if not header_value.strip().startswith(f"{algorithm.value}="):
        raise SignatureVerificationError.malformed(header)
    if not verify_signature(secret, body, header_value, algorithm):
        raise SignatureVerificationError.mismatch(header)


def require_valid_signature(
    secret: str | bytes,
    body: bytes,
    signature: str | None,
    signature_256: str | None = None,
) -> None:
    """Raise unless the delivery carries valid signatures.

    ``X-Hub-Signature`` is mandatory. ``X-Hub-Signature-256`` is checked as
    well whenever the sender includes it.

    Raises
    ------
    SignatureVerificationError
        If a required header is missing, malformed or does not match.

    """
    _check(secret, body, SIGNATURE_HEADER, signature, SignatureAlgorithm.SHA1)
    if signature_256 is not None:
        _check(
            secret,
            body,
            SIGNATURE_256_HEADER,
            signature_256,
            SignatureAlgorithm.SHA256,
        )
