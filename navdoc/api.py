"""Resource/action router behind the HTTP API.

Requests look like ``<resource>/<action>/<arg1>/<arg2>/...``. The resource
name is capitalized and the action lowercased before lookup, so ``nav/addItem``
and ``Nav/additem`` reach the same handler.
"""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any, Callable, Mapping

from navdoc.docstore import DocStore
from navdoc.errors import MalformedInput, UnknownEndpoint
from navdoc.navstore import NavStore, sanitize_nav_name
from navdoc.vcs import Author, VersionControlGateway

Handler = Callable[[list[str], dict[str, Any], "Author | None"], Any]


def parse_endpoint(endpoint: str) -> tuple[str, str, list[str]]:
    parts = (endpoint or "").strip("/").split("/")
    if not parts or parts == [""]:
        raise UnknownEndpoint("No API endpoint specified")
    if len(parts) < 2 or not parts[1]:
        raise MalformedInput("Invalid API request format. Use: /api/resource/action/args")
    return parts[0].lower().capitalize(), parts[1].lower(), [part for part in parts[2:] if part]


def merge_request_data(*sources: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge query, form and JSON data; later sources win on key collisions."""
    merged: dict[str, Any] = {}
    for source in sources:
        if source:
            merged.update(source)
    return merged


def _int_field(data: dict[str, Any], key: str) -> int | None:
    value = data.get(key)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise MalformedInput(f"`{key}` must be an integer.") from exc


def _message(data: dict[str, Any]) -> str | None:
    value = data.get("commit_message")
    return str(value) if value not in (None, "") else None


class ApiRouter:
    def __init__(self, docs: DocStore, navs: NavStore, gateway: VersionControlGateway) -> None:
        self.docs = docs
        self.navs = navs
        self.gateway = gateway
        self._handlers: dict[str, dict[str, Handler]] = {
            "Doc": {
                "get": self._doc_get,
                "save": self._doc_save,
                "delete": self._doc_delete,
                "list": self._doc_list,
                "history": self._doc_history,
                "version": self._doc_version,
                "compare": self._doc_compare,
            },
            "Nav": {
                "get": self._nav_get,
                "save": self._nav_save,
                "delete": self._nav_delete,
                "list": self._nav_list,
                "item": self._nav_item,
                "additem": self._nav_add_item,
                "updateitem": self._nav_update_item,
                "removeitem": self._nav_remove_item,
                "history": self._nav_history,
                "version": self._nav_version,
                "compare": self._nav_compare,
            },
            "Diagnostic": {
                "git": self._diagnostic_git,
            },
        }

    def resolve(self, resource: str, action: str) -> Handler:
        actions = self._handlers.get(resource)
        if actions is None:
            valid = ", ".join(r for r in self._handlers if r != "Diagnostic")
            raise UnknownEndpoint(f"Invalid resource: {resource}. Valid resources are: {valid}")
        handler = actions.get(action)
        if handler is None:
            raise UnknownEndpoint(f"Action '{action}' not found in resource '{resource}'")
        return handler

    def dispatch(self, endpoint: str, data: dict[str, Any] | None = None, author: Author | None = None) -> Any:
        resource, action, args = parse_endpoint(endpoint)
        return self.resolve(resource, action)(args, data or {}, author)

    # Doc

    def _split_doc_args(self, args: list[str]) -> tuple[str, list[str]]:
        """Split ``docs/a/b.md/<rev>/<rev>`` into the document path and trailing revisions."""
        extensions = self.docs.resolver.allowed_extensions
        for idx, part in enumerate(args):
            if PurePosixPath(part).suffix.lower() in extensions:
                return "/".join(args[: idx + 1]), args[idx + 1:]
        return "/".join(args), []

    def _doc_path(self, args: list[str]) -> str:
        if not args:
            raise MalformedInput("Document path is required")
        return "/".join(args)

    def _doc_get(self, args, data, author):
        return self.docs.get(self._doc_path(args))

    def _doc_save(self, args, data, author):
        return self.docs.save(
            self._doc_path(args),
            data.get("content"),
            commit_message=_message(data),
            author=author,
            action=str(data.get("action") or "save"),
        )

    def _doc_delete(self, args, data, author):
        return self.docs.delete(self._doc_path(args), commit_message=_message(data), author=author)

    def _doc_list(self, args, data, author):
        directory = "/".join(args) or data.get("dir") or None
        return self.docs.list(directory)

    def _doc_history(self, args, data, author):
        path = self.docs.resolver.resolve(self._doc_path(args))
        return {"path": path, "history": self.docs.history(path, _int_field(data, "limit"))}

    def _doc_version(self, args, data, author):
        path, rest = self._split_doc_args(args)
        if not path:
            raise MalformedInput("Document path and commit hash are required")
        revision = rest[0] if rest else str(data.get("revision") or "HEAD")
        return self.docs.version(path, revision)

    def _doc_compare(self, args, data, author):
        path, rest = self._split_doc_args(args)
        if len(rest) < 2:
            rest = [str(data.get("from") or ""), str(data.get("to") or "")]
        return self.docs.compare(path, rest[0], rest[1])

    # Nav

    def _nav_name(self, args: list[str]) -> str:
        if not args:
            raise MalformedInput("Navigation name is required")
        return args[0]

    def _item_path(self, args: list[str], data: dict[str, Any]) -> str:
        item_path = "/".join(args[1:]) or str(data.get("item_path") or "")
        if not item_path:
            raise MalformedInput("Navigation name and item path are required")
        return item_path

    def _nav_get(self, args, data, author):
        return self.navs.get(self._nav_name(args))

    def _nav_save(self, args, data, author):
        return self.navs.save(
            self._nav_name(args),
            data.get("content"),
            commit_message=_message(data),
            author=author,
        )

    def _nav_delete(self, args, data, author):
        return self.navs.delete(self._nav_name(args), commit_message=_message(data), author=author)

    def _nav_list(self, args, data, author):
        return self.navs.list()

    def _nav_item(self, args, data, author):
        return self.navs.find_item(self._nav_name(args), self._item_path(args, data))

    def _nav_add_item(self, args, data, author):
        return self.navs.add_item(
            self._nav_name(args),
            data.get("item"),
            parent_path=data.get("parent_path") or None,
            position=_int_field(data, "position"),
            commit_message=_message(data),
            author=author,
        )

    def _nav_update_item(self, args, data, author):
        return self.navs.update_item(
            self._nav_name(args),
            self._item_path(args, data),
            data.get("updates"),
            commit_message=_message(data),
            author=author,
        )

    def _nav_remove_item(self, args, data, author):
        return self.navs.remove_item(
            self._nav_name(args),
            self._item_path(args, data),
            commit_message=_message(data),
            author=author,
        )

    def _nav_history(self, args, data, author):
        name = sanitize_nav_name(self._nav_name(args))
        return {"name": name, "history": self.navs.history(name, _int_field(data, "limit"))}

    def _nav_version(self, args, data, author):
        revision = args[1] if len(args) > 1 else str(data.get("revision") or "")
        return self.navs.version(self._nav_name(args), revision)

    def _nav_compare(self, args, data, author):
        rest = args[1:3] if len(args) >= 3 else [str(data.get("from") or ""), str(data.get("to") or "")]
        return self.navs.compare(self._nav_name(args), rest[0], rest[1])

    # Diagnostic

    def _diagnostic_git(self, args, data, author):
        return self.gateway.status()
