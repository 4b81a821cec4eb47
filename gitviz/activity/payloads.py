"""Typed views over the GitHub webhook payload fields Gitviz consumes.

Structs ignore unknown fields, so only the attributes the activity handlers
read are declared. Timestamps stay as strings and are parsed by the
handlers, because GitHub mixes ISO strings and epoch integers across event
types for some fields.
"""

from __future__ import annotations

import typing as typ

import msgspec

from gitviz.webhooks.errors import InvalidPayloadError


class Account(msgspec.Struct, frozen=True):
    """User or organisation reference."""

    login: str | None = None
    name: str | None = None


class RepositoryPayload(msgspec.Struct, frozen=True):
    """Repository object embedded in most events."""

    id: int
    name: str
    full_name: str
    owner: Account | None = None
    private: bool = False
    archived: bool = False
    html_url: str | None = None
    default_branch: str | None = None


class PingPayload(msgspec.Struct, frozen=True):
    """Payload sent when a webhook is first configured."""

    zen: str | None = None
    hook_id: int | None = None
    repository: RepositoryPayload | None = None


class RepositoryEventPayload(msgspec.Struct, frozen=True):
    """Repository lifecycle event."""

    action: str
    repository: RepositoryPayload


class RefEventPayload(msgspec.Struct, frozen=True):
    """Branch or tag creation and deletion events."""

    ref_type: str
    repository: RepositoryPayload
    ref: str | None = None
    master_branch: str | None = None


class CommitAuthor(msgspec.Struct, frozen=True):
    """Git identity recorded on a pushed commit."""

    name: str | None = None
    email: str | None = None
    username: str | None = None


class PushCommit(msgspec.Struct, frozen=True):
    """Commit summary included in push events."""

    id: str
    message: str | None = None
    timestamp: str | None = None
    url: str | None = None
    distinct: bool = True
    author: CommitAuthor | None = None
    added: list[str] = msgspec.field(default_factory=list)
    removed: list[str] = msgspec.field(default_factory=list)
    modified: list[str] = msgspec.field(default_factory=list)


class PushPayload(msgspec.Struct, frozen=True):
    """Push to a branch or tag."""

    ref: str
    after: str
    repository: RepositoryPayload
    before: str | None = None
    created: bool = False
    deleted: bool = False
    forced: bool = False
    commits: list[PushCommit] = msgspec.field(default_factory=list)


class Label(msgspec.Struct, frozen=True):
    """Issue or pull request label."""

    name: str


class BranchTip(msgspec.Struct, frozen=True):
    """``head`` or ``base`` side of a pull request."""

    ref: str
    sha: str | None = None


class PullRequestObject(msgspec.Struct, frozen=True):
    """Pull request snapshot embedded in pull request events."""

    id: int
    number: int
    state: str
    title: str
    user: Account | None = None
    head: BranchTip | None = None
    base: BranchTip | None = None
    draft: bool = False
    merged: bool = False
    assignees: list[Account] = msgspec.field(default_factory=list)
    labels: list[Label] = msgspec.field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None
    closed_at: str | None = None
    merged_at: str | None = None


class PullRequestEventPayload(msgspec.Struct, frozen=True):
    """Pull request opened, closed, assigned, labeled, synchronized..."""

    action: str
    pull_request: PullRequestObject
    repository: RepositoryPayload
    number: int | None = None


class Comment(msgspec.Struct, frozen=True):
    """Conversation or review comment."""

    id: int
    body: str | None = None
    user: Account | None = None
    path: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class IssueObject(msgspec.Struct, frozen=True):
    """Issue side of an ``issue_comment`` event.

    ``pull_request`` is present only when the issue is a pull request.
    """

    number: int
    pull_request: dict[str, typ.Any] | None = None


class IssueCommentEventPayload(msgspec.Struct, frozen=True):
    """Comment on an issue or on a pull request conversation."""

    action: str
    issue: IssueObject
    comment: Comment
    repository: RepositoryPayload


class ReviewCommentEventPayload(msgspec.Struct, frozen=True):
    """Comment on a pull request diff."""

    action: str
    comment: Comment
    pull_request: PullRequestObject
    repository: RepositoryPayload


class StatusEventPayload(msgspec.Struct, frozen=True):
    """Commit status change."""

    id: int
    sha: str
    state: str
    repository: RepositoryPayload
    context: str = "default"
    description: str | None = None
    target_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


PayloadT = typ.TypeVar("PayloadT", bound=msgspec.Struct)


def decode_payload(
    payload: dict[str, typ.Any], model: type[PayloadT], event_type: str
) -> PayloadT:
    """Convert a decoded JSON object into ``model``.

    Raises
    ------
    InvalidPayloadError
        If required fields are missing or have the wrong type.

    """
    try:
        return msgspec.convert(payload, type=model)
    except msgspec.ValidationError as exc:
        raise InvalidPayloadError.schema(event_type, str(exc)) from exc
