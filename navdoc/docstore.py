from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from navdoc.backup import BackupingStore, is_backup
from navdoc.config import Settings
from navdoc.errors import MalformedInput, NotFoundError
from navdoc.paths import PathResolver
from navdoc.vcs import Author, VersionControlGateway

logger = logging.getLogger(__name__)


class DocStore:
    """Flat text documents under the allowed content directories."""

    def __init__(
        self,
        settings: Settings,
        gateway: VersionControlGateway,
        backups: BackupingStore | None = None,
        resolver: PathResolver | None = None,
    ) -> None:
        self.settings = settings
        self.gateway = gateway
        self.backups = backups or BackupingStore()
        self.resolver = resolver or PathResolver(settings.root, settings.doc_dirs, settings.doc_extensions)

    def _author(self, author: Author | None) -> Author:
        return author or Author(self.settings.default_author)

    def _rel_backup(self, backup: Path | None) -> str | None:
        return backup.relative_to(self.resolver.root.resolve()).as_posix() if backup else None

    def get(self, path: str) -> dict[str, Any]:
        rel = self.resolver.resolve(path)
        abs_path = self.resolver.absolute(rel)
        if not abs_path.is_file():
            raise NotFoundError(f"Document not found: {rel}")
        return {
            "path": rel,
            "content": abs_path.read_text(encoding="utf-8"),
            "modified": int(abs_path.stat().st_mtime),
            "history": self.history(rel),
        }

    def save(
        self,
        path: str,
        content: Any,
        commit_message: str | None = None,
        author: Author | None = None,
        action: str = "save",
    ) -> dict[str, Any]:
        rel = self.resolver.resolve(path)
        if content is None:
            raise MalformedInput("Document content is required")
        if not isinstance(content, str):
            raise MalformedInput("Document content must be a string")
        abs_path = self.resolver.absolute(rel)
        server_content = None
        if action == "sync" and abs_path.is_file():
            server_content = abs_path.read_text(encoding="utf-8")

        backup = self.backups.write_with_backup(abs_path, content)
        who = self._author(author)
        commit = self.gateway.record_change(rel, commit_message or f"Updated {rel}", False, who.name, who.email)
        logger.info("Saved document %s (commit %s)", rel, commit.hash if commit else None)

        result: dict[str, Any] = {
            "path": rel,
            "backup": self._rel_backup(backup),
            "commit": commit.to_dict() if commit else None,
            "action": action,
        }
        if server_content is not None:
            result["server_content"] = server_content
        return result

    def delete(self, path: str, commit_message: str | None = None, author: Author | None = None) -> dict[str, Any]:
        rel = self.resolver.resolve(path)
        abs_path = self.resolver.absolute(rel)
        if not abs_path.is_file():
            raise NotFoundError(f"Document not found: {rel}")
        backup = self.backups.delete_with_backup(abs_path)
        who = self._author(author)
        commit = self.gateway.record_change(rel, commit_message or f"Deleted {rel}", True, who.name, who.email)
        logger.info("Deleted document %s", rel)
        return {
            "path": rel,
            "backup": self._rel_backup(backup),
            "commit": commit.to_dict() if commit else None,
        }

    def list(self, directory: str | None = None) -> list[dict[str, Any]]:
        if directory:
            rel_dir = self.resolver.resolve_dir(directory)
            start = self.resolver.absolute(rel_dir)
            if not start.is_dir():
                raise NotFoundError(f"Directory not found: {rel_dir}")
            starts = [start]
        else:
            starts = [self.resolver.root / prefix for prefix in self.resolver.allowed_dirs]

        root = self.resolver.root.resolve()
        docs: list[dict[str, Any]] = []
        for start in starts:
            if not start.is_dir():
                continue
            for file in start.rglob("*"):
                if not file.is_file() or is_backup(file.name):
                    continue
                extension = file.suffix.lower()
                if extension not in self.resolver.allowed_extensions:
                    continue
                resolved = file.resolve()
                if root not in resolved.parents:
                    continue
                docs.append({
                    "path": resolved.relative_to(root).as_posix(),
                    "name": file.stem,
                    "extension": extension,
                    "modified": int(file.stat().st_mtime),
                })
        return sorted(docs, key=lambda d: d["path"])

    def history(self, path: str, limit: int | None = None) -> list[dict[str, Any]]:
        rel = self.resolver.resolve(path)
        records = self.gateway.history(rel, limit or self.settings.history_limit)
        return [record.to_dict() for record in records]

    def version(self, path: str, revision: str = "HEAD") -> dict[str, Any]:
        rel = self.resolver.resolve(path)
        content = self.gateway.blob_at(rel, revision or "HEAD")
        return {"path": rel, "commit": revision or "HEAD", "content": content}

    def compare(self, path: str, from_revision: str, to_revision: str) -> dict[str, Any]:
        rel = self.resolver.resolve(path)
        if not from_revision or not to_revision:
            raise MalformedInput("Document path and two commit hashes are required")
        return {
            "path": rel,
            "from_commit": from_revision,
            "to_commit": to_revision,
            "diff": self.gateway.diff(rel, from_revision, to_revision),
        }
