"""Exceptions raised by navdoc.

Every class carries the HTTP status it maps to and a stable ``code`` that the
API puts next to the human-readable message.
"""

from __future__ import annotations


class NavDocError(Exception):
    """Base exception for navdoc operations."""

    status = 500
    code = "error"


class InvalidPathError(NavDocError):
    """Path is outside the allowed directories or has a disallowed extension."""

    status = 400
    code = "invalid_path"


class MalformedInput(NavDocError):
    """Payload is not valid JSON or misses a required field."""

    status = 400
    code = "malformed_input"


class NotFoundError(NavDocError):
    """Target file or item does not exist."""

    status = 404
    code = "not_found"


class ParentNotFound(NotFoundError):
    code = "parent_not_found"


class TargetNotFound(NotFoundError):
    code = "target_not_found"


class PathSegmentNotFound(NotFoundError):
    code = "path_segment_not_found"


class VersionNotFound(NotFoundError):
    code = "version_not_found"


class UnknownEndpoint(NotFoundError):
    code = "unknown_endpoint"


class DiffFailed(NavDocError):
    status = 400
    code = "diff_failed"


class BackupFailed(NavDocError):
    code = "backup_failed"


class WriteFailed(NavDocError):
    code = "write_failed"


class DeleteFailed(NavDocError):
    code = "delete_failed"


class VersionControlUnavailable(NavDocError):
    """Git was required by configuration but cannot be used."""

    status = 503
    code = "vcs_unavailable"


class CommitFailed(NavDocError):
    """A git commit step failed. Logged by the gateway, never surfaced."""

    code = "commit_failed"
