"""Repository activity tables derived from webhook payloads."""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import enum

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gitviz.common.storage import Base, UTCDateTime
from gitviz.common.time import utcnow


class RefType(enum.StrEnum):
    """Kinds of git references tracked per repository."""

    BRANCH = "branch"
    TAG = "tag"


class FileChangeType(enum.StrEnum):
    """How a commit touched a path."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


class CommentKind(enum.StrEnum):
    """Where a pull request comment was left."""

    ISSUE = "issue"
    REVIEW = "review"


class Repository(Base):
    """GitHub repository keyed by its numeric GitHub id."""

    __tablename__ = "repositories"
    __table_args__ = (Index("ix_repositories_full_name", "full_name"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    full_name: Mapped[str] = mapped_column(String(255))
    owner_login: Mapped[str | None] = mapped_column(String(255), default=None)
    name: Mapped[str] = mapped_column(String(255))
    default_branch: Mapped[str | None] = mapped_column(String(255), default=None)
    html_url: Mapped[str | None] = mapped_column(String(512), default=None)
    is_private: Mapped[bool] = mapped_column(Boolean, default=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    first_seen_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )

    refs: Mapped[list[GitRef]] = relationship(back_populates="repository")
    commits: Mapped[list[Commit]] = relationship(back_populates="repository")
    pull_requests: Mapped[list[PullRequest]] = relationship(
        back_populates="repository"
    )


class GitRef(Base):
    """Branch or tag head as last reported by GitHub."""

    __tablename__ = "git_refs"
    __table_args__ = (
        UniqueConstraint("repo_id", "ref_type", "name", name="uq_git_refs_repo_ref"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    repo_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False
    )
    ref_type: Mapped[str] = mapped_column(String(16))
    name: Mapped[str] = mapped_column(String(255))
    head_sha: Mapped[str | None] = mapped_column(String(64), default=None)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )

    repository: Mapped[Repository] = relationship(back_populates="refs")


class Commit(Base):
    """Commit introduced by a push."""

    __tablename__ = "commits"
    __table_args__ = (
        UniqueConstraint("repo_id", "sha", name="uq_commits_repo_sha"),
        Index("ix_commits_repo_time", "repo_id", "committed_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    repo_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False
    )
    sha: Mapped[str] = mapped_column(String(64))
    message: Mapped[str | None] = mapped_column(Text(), default=None)
    author_name: Mapped[str | None] = mapped_column(String(255), default=None)
    author_email: Mapped[str | None] = mapped_column(String(320), default=None)
    author_username: Mapped[str | None] = mapped_column(String(255), default=None)
    committed_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime())
    url: Mapped[str | None] = mapped_column(String(512), default=None)
    is_distinct: Mapped[bool] = mapped_column(Boolean, default=True)

    repository: Mapped[Repository] = relationship(back_populates="commits")
    file_changes: Mapped[list[FileChange]] = relationship(back_populates="commit")


class FileChange(Base):
    """Path added, modified or removed by a commit."""

    __tablename__ = "file_changes"
    __table_args__ = (
        UniqueConstraint("commit_id", "path", name="uq_file_changes_commit_path"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    commit_id: Mapped[int] = mapped_column(
        ForeignKey("commits.id", ondelete="CASCADE"), nullable=False
    )
    path: Mapped[str] = mapped_column(String(1024))
    change_type: Mapped[str] = mapped_column(String(16))

    commit: Mapped[Commit] = relationship(back_populates="file_changes")


class PullRequest(Base):
    """Latest known snapshot of a pull request."""

    __tablename__ = "pull_requests"
    __table_args__ = (
        UniqueConstraint("repo_id", "number", name="uq_pull_requests_repo_number"),
        Index("ix_pull_requests_repo_state", "repo_id", "state"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    repo_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False
    )
    number: Mapped[int]
    title: Mapped[str] = mapped_column(String(1024))
    state: Mapped[str] = mapped_column(String(16))
    author_login: Mapped[str | None] = mapped_column(String(255), default=None)
    is_merged: Mapped[bool] = mapped_column(Boolean, default=False)
    is_draft: Mapped[bool] = mapped_column(Boolean, default=False)
    base_ref: Mapped[str | None] = mapped_column(String(255), default=None)
    head_ref: Mapped[str | None] = mapped_column(String(255), default=None)
    head_sha: Mapped[str | None] = mapped_column(String(64), default=None)
    assignees: Mapped[list[str]] = mapped_column(JSON, default=list)
    labels: Mapped[list[str]] = mapped_column(JSON, default=list)
    last_action: Mapped[str | None] = mapped_column(String(64), default=None)
    created_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime())
    updated_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime())
    closed_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime())
    merged_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime())

    repository: Mapped[Repository] = relationship(back_populates="pull_requests")


class PullRequestComment(Base):
    """Conversation or review comment on a pull request.

    Comments reference their pull request by number because ``issue_comment``
    payloads describe the issue side of a pull request and never carry the
    pull request id.
    """

    __tablename__ = "pull_request_comments"
    __table_args__ = (
        Index("ix_pull_request_comments_pr", "repo_id", "pull_request_number"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    repo_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False
    )
    pull_request_number: Mapped[int]
    kind: Mapped[str] = mapped_column(String(16))
    author_login: Mapped[str | None] = mapped_column(String(255), default=None)
    body: Mapped[str | None] = mapped_column(Text(), default=None)
    path: Mapped[str | None] = mapped_column(String(1024), default=None)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime())
    updated_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime())


class CommitStatus(Base):
    """CI or other status reported against a commit."""

    __tablename__ = "commit_statuses"
    __table_args__ = (
        Index("ix_commit_statuses_repo_sha", "repo_id", "sha"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    repo_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False
    )
    sha: Mapped[str] = mapped_column(String(64))
    context: Mapped[str] = mapped_column(String(255))
    state: Mapped[str] = mapped_column(String(16))
    description: Mapped[str | None] = mapped_column(Text(), default=None)
    target_url: Mapped[str | None] = mapped_column(String(1024), default=None)
    created_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime())
    updated_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime())
