"""Per-event-type handlers that fold webhook payloads into activity rows.

Each handler receives the session of the delivery transaction and the
stored ``WebhookEvent``. Handlers only ever upsert, keyed by GitHub
identifiers, so replaying a payload converges on the same rows.
"""

from __future__ import annotations

import typing as typ

from sqlalchemy import select

from gitviz.activity.payloads import (
    Comment,
    IssueCommentEventPayload,
    PingPayload,
    PullRequestEventPayload,
    PullRequestObject,
    PushCommit,
    PushPayload,
    RefEventPayload,
    RepositoryEventPayload,
    RepositoryPayload,
    ReviewCommentEventPayload,
    StatusEventPayload,
    decode_payload,
)
from gitviz.activity.storage import (
    Commit,
    CommentKind,
    CommitStatus,
    FileChange,
    FileChangeType,
    GitRef,
    PullRequest,
    PullRequestComment,
    RefType,
    Repository,
)
from gitviz.common.time import parse_github_timestamp
from gitviz.webhooks.errors import InvalidPayloadError
from gitviz.webhooks.events import GithubEventType

if typ.TYPE_CHECKING:
    import datetime as dt

    from sqlalchemy.ext.asyncio import AsyncSession

    from gitviz.events.storage import WebhookEvent

EventHandler = typ.Callable[["AsyncSession", "WebhookEvent"], typ.Awaitable[None]]
_registry: dict[GithubEventType, EventHandler] = {}

_BRANCH_PREFIX = "refs/heads/"
_TAG_PREFIX = "refs/tags/"


def register(
    event_type: GithubEventType,
) -> typ.Callable[[EventHandler], EventHandler]:
    """Register a handler for ``event_type``."""

    def _inner(func: EventHandler) -> EventHandler:
        _registry[event_type] = func
        return func

    return _inner


def get_event_handler(event_type: GithubEventType) -> EventHandler | None:
    """Return the handler registered for ``event_type`` if present."""
    return _registry.get(event_type)


def supported_event_types() -> frozenset[GithubEventType]:
    """Return every event type with a registered handler."""
    return frozenset(_registry)


def _timestamp(value: str | None, event_type: str, field: str) -> dt.datetime | None:
    try:
        return parse_github_timestamp(value)
    except ValueError as exc:
        raise InvalidPayloadError.schema(event_type, f"{field}: {exc}") from exc


def _ref_type(value: str) -> RefType | None:
    """Return the ref type for ``create``/``delete`` payloads, if tracked."""
    try:
        return RefType(value)
    except ValueError:
        return None


def split_ref(ref: str) -> tuple[RefType, str] | None:
    """Split a fully qualified ref into its type and short name.

    >>> split_ref("refs/heads/feature/x")
    (<RefType.BRANCH: 'branch'>, 'feature/x')

    Refs outside ``refs/heads`` and ``refs/tags`` return ``None``.
    """
    if ref.startswith(_BRANCH_PREFIX):
        return (RefType.BRANCH, ref.removeprefix(_BRANCH_PREFIX))
    if ref.startswith(_TAG_PREFIX):
        return (RefType.TAG, ref.removeprefix(_TAG_PREFIX))
    return None


async def _upsert_repository(
    session: AsyncSession, payload: RepositoryPayload
) -> Repository:
    """Insert or refresh a repository row from its embedded payload."""
    repo = await session.get(Repository, payload.id)
    owner_login = (
        (payload.owner.login or payload.owner.name) if payload.owner else None
    )
    if repo is None:
        repo = Repository(
            id=payload.id,
            full_name=payload.full_name,
            owner_login=owner_login,
            name=payload.name,
            default_branch=payload.default_branch,
            html_url=payload.html_url,
            is_private=payload.private,
            is_archived=payload.archived,
        )
        session.add(repo)
        await session.flush()
        return repo

    repo.full_name = payload.full_name
    repo.name = payload.name
    repo.owner_login = owner_login or repo.owner_login
    repo.default_branch = payload.default_branch or repo.default_branch
    repo.html_url = payload.html_url or repo.html_url
    repo.is_private = payload.private
    repo.is_archived = payload.archived
    return repo


async def _upsert_ref(
    session: AsyncSession,
    repo: Repository,
    ref_type: RefType,
    name: str,
    *,
    head_sha: str | None = None,
    deleted: bool = False,
) -> GitRef:
    """Insert or update a branch/tag row keyed by repository, type and name."""
    existing = await session.scalar(
        select(GitRef).where(
            GitRef.repo_id == repo.id,
            GitRef.ref_type == ref_type.value,
            GitRef.name == name,
        )
    )
    if existing is None:
        git_ref = GitRef(
            repo_id=repo.id,
            ref_type=ref_type.value,
            name=name,
            head_sha=head_sha,
            is_deleted=deleted,
        )
        session.add(git_ref)
        await session.flush()
        return git_ref

    existing.is_deleted = deleted
    if head_sha is not None:
        existing.head_sha = head_sha
    return existing


async def _upsert_commit(
    session: AsyncSession, repo: Repository, payload: PushCommit
) -> Commit:
    """Insert or update a commit and the file changes it carries."""
    author = payload.author
    committed_at = _timestamp(payload.timestamp, GithubEventType.PUSH, "timestamp")
    commit = await session.scalar(
        select(Commit).where(Commit.repo_id == repo.id, Commit.sha == payload.id)
    )
    if commit is None:
        commit = Commit(repo_id=repo.id, sha=payload.id)
        session.add(commit)

    commit.message = payload.message
    commit.author_name = author.name if author else None
    commit.author_email = author.email if author else None
    commit.author_username = author.username if author else None
    commit.committed_at = committed_at
    commit.url = payload.url
    commit.is_distinct = payload.distinct
    await session.flush()

    changes = (
        *((path, FileChangeType.ADDED) for path in payload.added),
        *((path, FileChangeType.MODIFIED) for path in payload.modified),
        *((path, FileChangeType.REMOVED) for path in payload.removed),
    )
    for path, change_type in changes:
        await _upsert_file_change(session, commit, path, change_type)
    return commit


async def _upsert_file_change(
    session: AsyncSession, commit: Commit, path: str, change_type: FileChangeType
) -> FileChange:
    existing = await session.scalar(
        select(FileChange).where(
            FileChange.commit_id == commit.id, FileChange.path == path
        )
    )
    if existing is None:
        existing = FileChange(commit_id=commit.id, path=path)
        session.add(existing)
    existing.change_type = change_type.value
    return existing


async def _upsert_pull_request(
    session: AsyncSession,
    repo: Repository,
    payload: PullRequestObject,
    *,
    event_type: GithubEventType,
    action: str | None = None,
) -> PullRequest:
    """Insert or update a pull request snapshot."""
    pr = await session.get(PullRequest, payload.id)
    if pr is None:
        pr = PullRequest(id=payload.id, repo_id=repo.id)
        session.add(pr)

    pr.number = payload.number
    pr.title = payload.title
    pr.state = payload.state
    pr.author_login = payload.user.login if payload.user else None
    pr.is_merged = payload.merged or payload.merged_at is not None
    pr.is_draft = payload.draft
    pr.base_ref = payload.base.ref if payload.base else None
    pr.head_ref = payload.head.ref if payload.head else None
    pr.head_sha = payload.head.sha if payload.head else None
    pr.assignees = [a.login for a in payload.assignees if a.login]
    pr.labels = [label.name for label in payload.labels]
    pr.created_at = _timestamp(payload.created_at, event_type, "created_at")
    pr.updated_at = _timestamp(payload.updated_at, event_type, "updated_at")
    pr.closed_at = _timestamp(payload.closed_at, event_type, "closed_at")
    pr.merged_at = _timestamp(payload.merged_at, event_type, "merged_at")
    if action is not None:
        pr.last_action = action
    await session.flush()
    return pr


async def _upsert_comment(  # noqa: PLR0913
    session: AsyncSession,
    repo: Repository,
    payload: Comment,
    *,
    pull_request_number: int,
    kind: CommentKind,
    event_type: GithubEventType,
    deleted: bool,
) -> PullRequestComment:
    """Insert or update a pull request comment keyed by GitHub comment id."""
    comment = await session.get(PullRequestComment, payload.id)
    if comment is None:
        comment = PullRequestComment(id=payload.id, repo_id=repo.id)
        session.add(comment)

    comment.pull_request_number = pull_request_number
    comment.kind = kind.value
    comment.author_login = payload.user.login if payload.user else None
    comment.body = payload.body
    comment.path = payload.path
    comment.is_deleted = deleted
    comment.created_at = _timestamp(payload.created_at, event_type, "created_at")
    comment.updated_at = _timestamp(payload.updated_at, event_type, "updated_at")
    return comment


@register(GithubEventType.PING)
async def handle_ping(session: AsyncSession, event: WebhookEvent) -> None:
    """Record the repository a new webhook was attached to, if any."""
    payload = decode_payload(event.payload, PingPayload, event.event_type)
    if payload.repository is not None:
        await _upsert_repository(session, payload.repository)


@register(GithubEventType.REPOSITORY)
async def handle_repository(session: AsyncSession, event: WebhookEvent) -> None:
    """Track repository lifecycle changes."""
    payload = decode_payload(event.payload, RepositoryEventPayload, event.event_type)
    repo = await _upsert_repository(session, payload.repository)
    match payload.action:
        case "deleted":
            repo.is_deleted = True
        case "archived":
            repo.is_archived = True
        case "unarchived":
            repo.is_archived = False
        case "privatized":
            repo.is_private = True
        case "publicized":
            repo.is_private = False
        case _:
            repo.is_deleted = False


@register(GithubEventType.CREATE)
async def handle_create(session: AsyncSession, event: WebhookEvent) -> None:
    """Record a new branch or tag."""
    payload = decode_payload(event.payload, RefEventPayload, event.event_type)
    repo = await _upsert_repository(session, payload.repository)
    ref_type = _ref_type(payload.ref_type)
    if payload.ref is None or ref_type is None:
        return
    await _upsert_ref(session, repo, ref_type, payload.ref)


@register(GithubEventType.DELETE)
async def handle_delete(session: AsyncSession, event: WebhookEvent) -> None:
    """Mark a branch or tag as deleted."""
    payload = decode_payload(event.payload, RefEventPayload, event.event_type)
    repo = await _upsert_repository(session, payload.repository)
    ref_type = _ref_type(payload.ref_type)
    if payload.ref is None or ref_type is None:
        return
    await _upsert_ref(session, repo, ref_type, payload.ref, deleted=True)


@register(GithubEventType.PUSH)
async def handle_push(session: AsyncSession, event: WebhookEvent) -> None:
    """Move the pushed ref and record the commits and files it carried."""
    payload = decode_payload(event.payload, PushPayload, event.event_type)
    repo = await _upsert_repository(session, payload.repository)

    parsed = split_ref(payload.ref)
    if parsed is not None:
        ref_type, name = parsed
        if payload.deleted:
            await _upsert_ref(session, repo, ref_type, name, deleted=True)
        else:
            await _upsert_ref(session, repo, ref_type, name, head_sha=payload.after)

    for commit in payload.commits:
        await _upsert_commit(session, repo, commit)


@register(GithubEventType.PULL_REQUEST)
async def handle_pull_request(session: AsyncSession, event: WebhookEvent) -> None:
    """Refresh the pull request snapshot carried by the event."""
    payload = decode_payload(event.payload, PullRequestEventPayload, event.event_type)
    repo = await _upsert_repository(session, payload.repository)
    await _upsert_pull_request(
        session,
        repo,
        payload.pull_request,
        event_type=GithubEventType.PULL_REQUEST,
        action=payload.action,
    )


@register(GithubEventType.ISSUE_COMMENT)
async def handle_issue_comment(session: AsyncSession, event: WebhookEvent) -> None:
    """Record conversation comments left on pull requests."""
    payload = decode_payload(event.payload, IssueCommentEventPayload, event.event_type)
    if payload.issue.pull_request is None:
        return
    repo = await _upsert_repository(session, payload.repository)
    await _upsert_comment(
        session,
        repo,
        payload.comment,
        pull_request_number=payload.issue.number,
        kind=CommentKind.ISSUE,
        event_type=GithubEventType.ISSUE_COMMENT,
        deleted=payload.action == "deleted",
    )


@register(GithubEventType.PULL_REQUEST_REVIEW_COMMENT)
async def handle_review_comment(session: AsyncSession, event: WebhookEvent) -> None:
    """Record diff comments and refresh the pull request they belong to."""
    payload = decode_payload(
        event.payload, ReviewCommentEventPayload, event.event_type
    )
    event_type = GithubEventType.PULL_REQUEST_REVIEW_COMMENT
    repo = await _upsert_repository(session, payload.repository)
    await _upsert_pull_request(
        session, repo, payload.pull_request, event_type=event_type
    )
    await _upsert_comment(
        session,
        repo,
        payload.comment,
        pull_request_number=payload.pull_request.number,
        kind=CommentKind.REVIEW,
        event_type=event_type,
        deleted=payload.action == "deleted",
    )


@register(GithubEventType.STATUS)
async def handle_status(session: AsyncSession, event: WebhookEvent) -> None:
    """Record a commit status."""
    payload = decode_payload(event.payload, StatusEventPayload, event.event_type)
    repo = await _upsert_repository(session, payload.repository)
    status = await session.get(CommitStatus, payload.id)
    if status is None:
        status = CommitStatus(id=payload.id, repo_id=repo.id)
        session.add(status)
    status.sha = payload.sha
    status.context = payload.context
    status.state = payload.state
    status.description = payload.description
    status.target_url = payload.target_url
    status.created_at = _timestamp(
        payload.created_at, GithubEventType.STATUS, "created_at"
    )
    status.updated_at = _timestamp(
        payload.updated_at, GithubEventType.STATUS, "updated_at"
    )
