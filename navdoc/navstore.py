from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from navdoc import navtree
from navdoc.backup import BackupingStore
from navdoc.config import Settings
from navdoc.errors import MalformedInput, NotFoundError
from navdoc.vcs import Author, VersionControlGateway

logger = logging.getLogger(__name__)


def sanitize_nav_name(name: Any) -> str:
    """Reduce a user-supplied navigation name to ``[A-Za-z0-9_-]``."""
    base = str(name or "").replace("\\", "/").rsplit("/", 1)[-1]
    stem = base.rsplit(".", 1)[0] if "." in base.lstrip(".") else base
    cleaned = re.sub(r"[^A-Za-z0-9_-]", "", stem)
    if not cleaned:
        raise MalformedInput("Navigation name is required")
    return cleaned


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def _decode(raw: str, what: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedInput(f"Invalid JSON in {what}: {exc.msg}") from exc


class NavStore:
    """Named navigation trees stored as JSON files under the nav directory."""

    def __init__(
        self,
        settings: Settings,
        gateway: VersionControlGateway,
        backups: BackupingStore | None = None,
    ) -> None:
        self.settings = settings
        self.gateway = gateway
        self.backups = backups or BackupingStore()

    def _rel_path(self, name: str) -> str:
        return f"{self.settings.nav_dir}{name}.json"

    def _abs_path(self, name: str) -> Path:
        return self.settings.root / self._rel_path(name)

    def _author(self, author: Author | None) -> Author:
        return author or Author(self.settings.default_author)

    def _load(self, name: str, *, missing_ok: bool = False) -> list[navtree.NavItem]:
        path = self._abs_path(name)
        if not path.exists():
            if missing_ok:
                return []
            raise NotFoundError(f"Navigation file not found: {self._rel_path(name)}")
        data = _decode(path.read_text(encoding="utf-8"), "navigation file")
        items, _ = navtree.normalize_document(data)
        return items

    def _persist(
        self,
        name: str,
        items: list[navtree.NavItem],
        message: str,
        author: Author | None,
    ) -> dict[str, Any]:
        wrapped = name == self.settings.main_nav
        path = self._abs_path(name)
        rel_path = self._rel_path(name)
        backup = self.backups.write_with_backup(path, _dump(navtree.wrap_document(items, wrapped)))
        who = self._author(author)
        commit = self.gateway.record_change(rel_path, message, False, who.name, who.email)
        logger.info("Saved navigation %s (commit %s)", name, commit.hash if commit else None)
        return {
            "name": name,
            "path": rel_path,
            "backup": backup.relative_to(self.settings.root).as_posix() if backup else None,
            "commit": commit.to_dict() if commit else None,
        }

    def get(self, name: str) -> dict[str, Any]:
        nav_name = sanitize_nav_name(name)
        items = self._load(nav_name)
        return {
            "name": nav_name,
            "path": self._rel_path(nav_name),
            "content": items,
            "history": self.history(nav_name),
        }

    def save(
        self,
        name: str,
        content: Any,
        commit_message: str | None = None,
        author: Author | None = None,
    ) -> dict[str, Any]:
        nav_name = sanitize_nav_name(name)
        if content is None:
            raise MalformedInput("Navigation content is required")
        if isinstance(content, (str, bytes)):
            content = _decode(content, "navigation content")
        items, _ = navtree.normalize_document(content)
        navtree.validate_tree(items)
        message = commit_message or f"Updated navigation {nav_name}"
        return self._persist(nav_name, items, message, author)

    def delete(self, name: str, commit_message: str | None = None, author: Author | None = None) -> dict[str, Any]:
        nav_name = sanitize_nav_name(name)
        path = self._abs_path(nav_name)
        if not path.exists():
            raise NotFoundError(f"Navigation file not found: {self._rel_path(nav_name)}")
        backup = self.backups.delete_with_backup(path)
        who = self._author(author)
        message = commit_message or f"Deleted navigation {nav_name}"
        commit = self.gateway.record_change(self._rel_path(nav_name), message, True, who.name, who.email)
        logger.info("Deleted navigation %s", nav_name)
        return {
            "name": nav_name,
            "path": self._rel_path(nav_name),
            "backup": backup.relative_to(self.settings.root).as_posix(),
            "commit": commit.to_dict() if commit else None,
        }

    def list(self) -> list[dict[str, Any]]:
        nav_root = self.settings.nav_root
        if not nav_root.is_dir():
            return []
        entries: list[dict[str, Any]] = []
        for child in sorted(nav_root.iterdir(), key=lambda p: p.name.lower()):
            if not child.is_file() or child.suffix != ".json":
                continue
            entries.append({
                "name": child.stem,
                "path": f"{self.settings.nav_dir}{child.name}",
                "modified": int(child.stat().st_mtime),
            })
        return entries

    def history(self, name: str, limit: int | None = None) -> list[dict[str, Any]]:
        nav_name = sanitize_nav_name(name)
        records = self.gateway.history(self._rel_path(nav_name), limit or self.settings.history_limit)
        return [record.to_dict() for record in records]

    def version(self, name: str, revision: str) -> dict[str, Any]:
        nav_name = sanitize_nav_name(name)
        if not revision:
            raise MalformedInput("Navigation name and commit hash are required")
        raw = self.gateway.blob_at(self._rel_path(nav_name), revision)
        content = None
        if raw is not None:
            content, _ = navtree.normalize_document(_decode(raw, "navigation version"))
        return {"name": nav_name, "path": self._rel_path(nav_name), "commit": revision, "content": content}

    def compare(self, name: str, from_revision: str, to_revision: str) -> dict[str, Any]:
        nav_name = sanitize_nav_name(name)
        if not from_revision or not to_revision:
            raise MalformedInput("Navigation name and two commit hashes are required")
        diff = self.gateway.diff(self._rel_path(nav_name), from_revision, to_revision)
        return {
            "name": nav_name,
            "path": self._rel_path(nav_name),
            "from_commit": from_revision,
            "to_commit": to_revision,
            "diff": diff,
        }

    def find_item(self, name: str, item_path: str) -> dict[str, Any]:
        nav_name = sanitize_nav_name(name)
        item = navtree.find_item(self._load(nav_name), item_path)
        return {"name": nav_name, "item_path": item_path, "item": item}

    def _mutated(self, name: str, items: list[navtree.NavItem], message: str, author: Author | None) -> dict[str, Any]:
        result = self._persist(name, items, message, author)
        result["content"] = items
        return result

    def add_item(
        self,
        name: str,
        item: Any,
        parent_path: str | None = None,
        position: int | None = None,
        commit_message: str | None = None,
        author: Author | None = None,
    ) -> dict[str, Any]:
        nav_name = sanitize_nav_name(name)
        if item is None:
            raise MalformedInput("Navigation item data is required")
        if isinstance(item, str):
            item = _decode(item, "navigation item")
        if isinstance(item, dict) and "tags" in item:
            item = {**item, "tags": navtree.normalize_tags(item["tags"])}
        items = navtree.add_item(self._load(nav_name, missing_ok=True), item, parent_path, position)
        message = commit_message or f"Added item to navigation {nav_name}"
        return self._mutated(nav_name, items, message, author)

    def update_item(
        self,
        name: str,
        item_path: str,
        updates: Any,
        commit_message: str | None = None,
        author: Author | None = None,
    ) -> dict[str, Any]:
        nav_name = sanitize_nav_name(name)
        if not item_path:
            raise MalformedInput("Item path is required")
        if updates is None:
            raise MalformedInput("Item updates are required")
        if isinstance(updates, str):
            updates = _decode(updates, "item updates")
        if isinstance(updates, dict) and "tags" in updates:
            updates = {**updates, "tags": navtree.normalize_tags(updates["tags"])}
        items = navtree.update_item(self._load(nav_name), item_path, updates)
        message = commit_message or f"Updated item in navigation {nav_name}"
        return self._mutated(nav_name, items, message, author)

    def remove_item(
        self,
        name: str,
        item_path: str,
        commit_message: str | None = None,
        author: Author | None = None,
    ) -> dict[str, Any]:
        nav_name = sanitize_nav_name(name)
        if not item_path:
            raise MalformedInput("Item path is required")
        items = navtree.remove_item(self._load(nav_name), item_path)
        message = commit_message or f"Removed item from navigation {nav_name}"
        return self._mutated(nav_name, items, message, author)
