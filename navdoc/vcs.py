"""Version-control gateway.

All git access goes through ``GitGateway._run`` which builds argument lists
(no shell), applies a timeout and runs inside the content root. Revisions and
paths arriving from the API are validated here and nowhere else.
"""

from __future__ import annotations

import difflib
import hashlib
import logging
import re
import shutil
import subprocess
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from navdoc.errors import CommitFailed, DiffFailed, VersionControlUnavailable, VersionNotFound

logger = logging.getLogger(__name__)

_REVISION_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_./~^-]{0,127}$")
_FIELD_SEP = "\x1f"


@dataclass
class Author:
    name: str
    email: str | None = None


@dataclass
class VersionRecord:
    hash: str
    author: str
    timestamp: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "author": self.author,
            "timestamp": self.timestamp,
            "date": datetime.fromtimestamp(self.timestamp).strftime("%Y-%m-%d %H:%M:%S"),
            "message": self.message,
        }


@dataclass
class CommitInfo:
    hash: str | None
    message: str
    author: str
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "message": self.message,
            "author": self.author,
            "timestamp": self.timestamp,
        }


def _valid_revision(revision: str) -> bool:
    return isinstance(revision, str) and bool(_REVISION_RE.match(revision)) and ".." not in revision


def _valid_path(path: str) -> bool:
    return (
        isinstance(path, str)
        and bool(path)
        and not path.startswith(("/", "-"))
        and ".." not in path.split("/")
    )


def _attributed(message: str, author_name: str) -> str:
    return f"{message} [via API by {author_name}]"


class VersionControlGateway:
    """Interface shared by the git, disabled and in-memory backends."""

    enabled = False
    backend = "none"

    def record_change(
        self,
        path: str,
        message: str,
        is_delete: bool = False,
        author_name: str = "system",
        author_email: str | None = None,
    ) -> CommitInfo | None:
        raise NotImplementedError

    def history(self, path: str, limit: int = 10) -> list[VersionRecord]:
        raise NotImplementedError

    def blob_at(self, path: str, revision: str) -> str | None:
        raise NotImplementedError

    def diff(self, path: str, from_revision: str, to_revision: str) -> str | None:
        raise NotImplementedError

    def status(self) -> dict[str, Any]:
        return {"backend": self.backend, "enabled": self.enabled}


class DisabledGateway(VersionControlGateway):
    """Degraded mode: nothing is recorded and every query comes back empty."""

    def __init__(self, reason: str = "") -> None:
        self.reason = reason

    def record_change(self, path, message, is_delete=False, author_name="system", author_email=None):
        return None

    def history(self, path, limit=10):
        return []

    def blob_at(self, path, revision):
        return None

    def diff(self, path, from_revision, to_revision):
        return None

    def status(self) -> dict[str, Any]:
        return {**super().status(), "reason": self.reason}


class GitGateway(VersionControlGateway):
    enabled = True
    backend = "git"

    def __init__(self, root: Path, *, timeout: float = 10.0, git: str | None = None) -> None:
        self.root = root
        self.timeout = timeout
        self.git = git or shutil.which("git") or "git"

    def _run(self, *args: str) -> subprocess.CompletedProcess[str]:
        cmd = [self.git, *args]
        logger.debug("Running git %s", " ".join(args))
        try:
            return subprocess.run(
                cmd,
                cwd=str(self.root),
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except (subprocess.TimeoutExpired, OSError) as exc:
            logger.warning("git %s failed to run: %s", args[0] if args else "", exc)
            return subprocess.CompletedProcess(cmd, returncode=-1, stdout="", stderr=str(exc))

    def _commit(self, path: str, message: str, is_delete: bool, author: str) -> str | None:
        if is_delete:
            staged = self._run("rm", "--quiet", "--ignore-unmatch", "--", path)
        else:
            staged = self._run("add", "--", path)
        if staged.returncode != 0:
            raise CommitFailed(staged.stderr.strip() or staged.stdout.strip())
        committed = self._run("commit", "--quiet", f"--author={author}", "-m", message, "--", path)
        if committed.returncode != 0:
            raise CommitFailed(committed.stderr.strip() or committed.stdout.strip())
        head = self._run("rev-parse", "HEAD")
        if head.returncode != 0:
            return None
        return head.stdout.strip() or None

    def record_change(self, path, message, is_delete=False, author_name="system", author_email=None):
        if not _valid_path(path):
            logger.warning("Refusing to commit suspicious path %r", path)
            return None
        author = f"{author_name} <{author_email or ''}>"
        try:
            commit_hash = self._commit(path, _attributed(message, author_name), is_delete, author)
        except CommitFailed as exc:
            logger.warning("Git commit failed for %s: %s", path, exc)
            return None
        return CommitInfo(hash=commit_hash, message=message, author=author_name, timestamp=int(time.time()))

    def history(self, path, limit=10):
        if not _valid_path(path):
            return []
        fmt = _FIELD_SEP.join(["%H", "%an", "%at", "%s"])
        result = self._run("log", f"--pretty=format:{fmt}", "-n", str(max(int(limit), 0)), "--", path)
        if result.returncode != 0:
            logger.warning("Git log failed for %s: %s", path, result.stderr.strip())
            return []
        records: list[VersionRecord] = []
        for line in result.stdout.splitlines():
            parts = line.split(_FIELD_SEP, 3)
            if len(parts) != 4:
                logger.debug("Malformed git log line: %r", line)
                continue
            records.append(VersionRecord(hash=parts[0], author=parts[1], timestamp=int(parts[2]), message=parts[3]))
        return records

    def blob_at(self, path, revision):
        if not _valid_path(path) or not _valid_revision(revision):
            raise VersionNotFound(f"Failed to retrieve version {revision} of {path}")
        result = self._run("show", f"{revision}:{path}")
        if result.returncode != 0:
            raise VersionNotFound(f"Failed to retrieve version {revision} of {path}")
        return result.stdout

    def diff(self, path, from_revision, to_revision):
        if not _valid_path(path) or not (_valid_revision(from_revision) and _valid_revision(to_revision)):
            raise DiffFailed(f"Failed to compare versions of {path}")
        result = self._run("diff", from_revision, to_revision, "--", path)
        if result.returncode != 0:
            raise DiffFailed(f"Failed to compare versions of {path}")
        return result.stdout

    def status(self) -> dict[str, Any]:
        version = self._run("--version")
        return {
            **super().status(),
            "git_installed": shutil.which(self.git) is not None,
            "git_path": shutil.which(self.git),
            "git_dir_exists": (self.root / ".git").exists(),
            "git_command_works": version.returncode == 0,
            "git_version": version.stdout.strip() or None,
            "repo_path": str(self.root),
        }


class MemoryGateway(VersionControlGateway):
    """In-process stand-in for git that snapshots files at each commit."""

    enabled = True
    backend = "memory"

    def __init__(self, root: Path) -> None:
        self.root = root
        self.commits: list[dict[str, Any]] = []

    def record_change(self, path, message, is_delete=False, author_name="system", author_email=None):
        file_path = self.root / path
        content = None if is_delete or not file_path.exists() else file_path.read_text(encoding="utf-8")
        timestamp = int(time.time())
        seed = f"{len(self.commits)}:{path}:{message}:{timestamp}"
        commit_hash = hashlib.sha1(seed.encode("utf-8")).hexdigest()
        self.commits.append({
            "hash": commit_hash,
            "author": author_name,
            "email": author_email,
            "timestamp": timestamp,
            "message": _attributed(message, author_name),
            "path": path,
            "content": content,
        })
        return CommitInfo(hash=commit_hash, message=message, author=author_name, timestamp=timestamp)

    def _index(self, revision: str) -> int:
        if revision == "HEAD" and self.commits:
            return len(self.commits) - 1
        for idx, commit in enumerate(self.commits):
            if revision and commit["hash"].startswith(revision):
                return idx
        raise VersionNotFound(f"Unknown revision {revision}")

    def _content_at(self, path: str, index: int) -> str | None:
        for commit in reversed(self.commits[: index + 1]):
            if commit["path"] == path:
                return commit["content"]
        return None

    def history(self, path, limit=10):
        touching = [c for c in reversed(self.commits) if c["path"] == path]
        return [
            VersionRecord(hash=c["hash"], author=c["author"], timestamp=c["timestamp"], message=c["message"])
            for c in touching[: max(int(limit), 0)]
        ]

    def blob_at(self, path, revision):
        content = self._content_at(path, self._index(revision))
        if content is None:
            raise VersionNotFound(f"Failed to retrieve version {revision} of {path}")
        return content

    def diff(self, path, from_revision, to_revision):
        try:
            before = self._content_at(path, self._index(from_revision)) or ""
            after = self._content_at(path, self._index(to_revision)) or ""
        except VersionNotFound as exc:
            raise DiffFailed(f"Failed to compare versions of {path}") from exc
        lines = difflib.unified_diff(
            before.splitlines(keepends=True),
            after.splitlines(keepends=True),
            fromfile=f"a/{path}",
            tofile=f"b/{path}",
        )
        return "".join(lines)

    def status(self) -> dict[str, Any]:
        return {**super().status(), "commits": len(self.commits)}


def detect_gateway(root: Path, backend: str = "auto", timeout: float = 10.0) -> VersionControlGateway:
    """Pick a gateway for ``root`` according to the configured backend."""
    if backend == "none":
        return DisabledGateway("disabled by configuration")
    if backend == "memory":
        return MemoryGateway(root)

    reason = ""
    git = shutil.which("git")
    if not (root / ".git").exists():
        reason = f"Git repository (.git directory) not found in {root}"
    elif git is None:
        reason = "Git repository exists but git command is not available"
    else:
        gateway = GitGateway(root, timeout=timeout, git=git)
        if gateway._run("--version").returncode == 0:
            return gateway
        reason = "git --version failed"

    if backend == "git":
        raise VersionControlUnavailable(reason)
    logger.warning("Version control disabled: %s", reason)
    return DisabledGateway(reason)
