"""GitHub event names understood by Gitviz."""

from __future__ import annotations

import enum


class GithubEventType(enum.StrEnum):
    """Event names carried in the ``X-GitHub-Event`` header.

    Every member other than ``UNSUPPORTED`` has a registered handler. Names
    GitHub sends that Gitviz does not implement (``gollum``, ``fork``...)
    and arbitrary strings all parse to ``UNSUPPORTED``.
    """

    PING = "ping"
    REPOSITORY = "repository"
    CREATE = "create"
    DELETE = "delete"
    PUSH = "push"
    PULL_REQUEST = "pull_request"
    PULL_REQUEST_REVIEW_COMMENT = "pull_request_review_comment"
    ISSUE_COMMENT = "issue_comment"
    STATUS = "status"
    UNSUPPORTED = "unsupported"

    @classmethod
    def parse(cls, name: str | None) -> GithubEventType:
        """Map a header value onto a member, defaulting to ``UNSUPPORTED``."""
        if name is None:
            return cls.UNSUPPORTED
        try:
            return cls(name.strip())
        except ValueError:
            return cls.UNSUPPORTED

    @property
    def is_supported(self) -> bool:
        """Return whether deliveries of this type are processed."""
        return self is not GithubEventType.UNSUPPORTED
