"""Repository activity state derived from webhook events."""

from __future__ import annotations

from .handlers import get_event_handler, register, split_ref, supported_event_types
from .storage import (
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

__all__ = [
    "CommentKind",
    "Commit",
    "CommitStatus",
    "FileChange",
    "FileChangeType",
    "GitRef",
    "PullRequest",
    "PullRequestComment",
    "RefType",
    "Repository",
    "get_event_handler",
    "register",
    "split_ref",
    "supported_event_types",
]
