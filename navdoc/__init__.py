"""navdoc: git-versioned documents and navigation trees behind a small JSON API."""

from navdoc.errors import (
    BackupFailed,
    DeleteFailed,
    DiffFailed,
    InvalidPathError,
    MalformedInput,
    NavDocError,
    NotFoundError,
    ParentNotFound,
    PathSegmentNotFound,
    TargetNotFound,
    VersionControlUnavailable,
    VersionNotFound,
    WriteFailed,
)
from navdoc.navtree import add_item, find_item, remove_item, update_item

__all__ = [
    "BackupFailed",
    "DeleteFailed",
    "DiffFailed",
    "InvalidPathError",
    "MalformedInput",
    "NavDocError",
    "NotFoundError",
    "ParentNotFound",
    "PathSegmentNotFound",
    "TargetNotFound",
    "VersionControlUnavailable",
    "VersionNotFound",
    "WriteFailed",
    "add_item",
    "find_item",
    "remove_item",
    "update_item",
]
