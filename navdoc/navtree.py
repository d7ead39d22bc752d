"""Navigation tree model and mutation algorithms.

A tree is an ordered list of item dicts. Items are addressed by a target spec
``seg1/seg2/...``: a single segment is looked up anywhere in the tree
(pre-order, first match wins), several segments walk down one nesting level
per segment. Every mutation works on a deep copy and returns it, so a failed
operation never leaves a half-modified tree behind.

An item's identifier is its ``id`` when present, otherwise its ``title``.
Child lists live under ``children``; the older ``_children`` key is read as an
alias. ``_include`` is an opaque pointer for clients and is never resolved
here.
"""

from __future__ import annotations

import copy
from typing import Any

from navdoc.errors import MalformedInput, ParentNotFound, PathSegmentNotFound, TargetNotFound

NavItem = dict[str, Any]
CHILDREN_KEY = "children"
LEGACY_CHILDREN_KEY = "_children"
INCLUDE_KEY = "_include"
WRAPPER_KEY = "sidemenu"
ICON_KINDS = ("class", "text", "url")


def item_key(item: Any) -> str | None:
    if not isinstance(item, dict):
        return None
    for field in ("id", "title"):
        value = item.get(field)
        if value not in (None, ""):
            return str(value)
    return None


def _children_field(item: NavItem) -> str | None:
    for field in (CHILDREN_KEY, LEGACY_CHILDREN_KEY):
        if isinstance(item.get(field), list):
            return field
    return None


def child_list(item: NavItem) -> list[NavItem] | None:
    """Return the item's child list, or None when it has none."""
    field = _children_field(item)
    return item[field] if field else None


def _ensure_children(item: NavItem) -> list[NavItem]:
    existing = child_list(item)
    if existing is not None:
        return existing
    if item.get(INCLUDE_KEY):
        raise MalformedInput(f"Item {item_key(item)!r} includes {item[INCLUDE_KEY]!r} and cannot hold children.")
    item[CHILDREN_KEY] = []
    return item[CHILDREN_KEY]


def split_spec(spec: str) -> list[str]:
    if not isinstance(spec, str):
        raise MalformedInput("Item path must be a string.")
    parts = spec.strip().strip("/").split("/")
    if parts == [""] or any(part == "" for part in parts):
        raise MalformedInput(f"Invalid item path: {spec!r}")
    return parts


def validate_tree(nodes: Any, *, depth: int = 0) -> list[NavItem]:
    if not isinstance(nodes, list):
        raise MalformedInput("Navigation must be a JSON array.")
    for idx, node in enumerate(nodes):
        if not isinstance(node, dict):
            raise MalformedInput(f"Item {idx + 1} at depth {depth} must be an object.")
        children = child_list(node)
        if children is not None and node.get(INCLUDE_KEY):
            raise MalformedInput(f"Item {idx + 1} at depth {depth} cannot have both children and an include.")
        if "icon" in node and parse_icon(node["icon"]) is None:
            raise MalformedInput(f"Item {idx + 1} at depth {depth} has an invalid icon.")
        if children:
            validate_tree(children, depth=depth + 1)
    return nodes


def _find_recursive(items: list[NavItem], key: str) -> tuple[list[NavItem], int] | None:
    for index, item in enumerate(items):
        if item_key(item) == key:
            return items, index
        children = child_list(item) if isinstance(item, dict) else None
        if children:
            found = _find_recursive(children, key)
            if found:
                return found
    return None


def _find_sibling(items: list[NavItem], key: str) -> int | None:
    for index, item in enumerate(items):
        if item_key(item) == key:
            return index
    return None


def _walk_to_parent_list(tree: list[NavItem], segments: list[str]) -> list[NavItem]:
    """Follow all but the last segment and return the last segment's sibling list."""
    current = tree
    for segment in segments[:-1]:
        index = _find_sibling(current, segment)
        if index is None:
            raise PathSegmentNotFound(f"Path segment not found: {segment}")
        children = child_list(current[index])
        if children is None:
            raise PathSegmentNotFound(f"Path segment has no children: {segment}")
        current = children
    return current


def _locate(tree: list[NavItem], spec: str) -> tuple[list[NavItem], int]:
    segments = split_spec(spec)
    if len(segments) == 1:
        found = _find_recursive(tree, segments[0])
        if found is None:
            raise TargetNotFound(f"Item ID not found: {segments[0]}")
        return found
    siblings = _walk_to_parent_list(tree, segments)
    index = _find_sibling(siblings, segments[-1])
    if index is None:
        raise TargetNotFound(f"Target item not found: {segments[-1]}")
    return siblings, index


def find_item(tree: list[NavItem], spec: str) -> NavItem:
    siblings, index = _locate(tree, spec)
    return siblings[index]


def _resolve_parent(tree: list[NavItem], parent_spec: str) -> NavItem:
    segments = split_spec(parent_spec)
    if len(segments) == 1:
        found = _find_recursive(tree, segments[0])
        if found is None:
            raise ParentNotFound(f"Parent ID not found: {parent_spec}")
        siblings, index = found
        return siblings[index]
    current = tree
    parent: NavItem | None = None
    for segment in segments:
        index = _find_sibling(current, segment)
        if index is None:
            raise ParentNotFound(f"Parent path not found: {parent_spec}")
        parent = current[index]
        current = child_list(parent) or []
    assert parent is not None
    return parent


def _insert(items: list[NavItem], item: NavItem, position: int | None) -> None:
    if position is not None and 0 <= position < len(items):
        items.insert(position, item)
    else:
        items.append(item)


def _check_item(item: Any) -> NavItem:
    if not isinstance(item, dict):
        raise MalformedInput("Navigation item must be a JSON object.")
    validate_tree([item])
    return item


def add_item(
    tree: list[NavItem],
    item: NavItem,
    parent_spec: str | None = None,
    position: int | None = None,
) -> list[NavItem]:
    new_item = copy.deepcopy(_check_item(item))
    result = copy.deepcopy(tree)
    if not parent_spec:
        _insert(result, new_item, position)
        return result
    parent = _resolve_parent(result, parent_spec)
    _insert(_ensure_children(parent), new_item, position)
    return result


def update_item(tree: list[NavItem], spec: str, updates: dict[str, Any]) -> list[NavItem]:
    if not isinstance(updates, dict):
        raise MalformedInput("Item updates must be a JSON object.")
    result = copy.deepcopy(tree)
    siblings, index = _locate(result, spec)
    target = siblings[index]
    target.update(copy.deepcopy(updates))
    validate_tree([target])
    return result


def _owner_of(items: list[NavItem], siblings: list[NavItem]) -> NavItem | None:
    for item in items:
        children = child_list(item) if isinstance(item, dict) else None
        if children is None:
            continue
        if children is siblings:
            return item
        owner = _owner_of(children, siblings)
        if owner is not None:
            return owner
    return None


def remove_item(tree: list[NavItem], spec: str) -> list[NavItem]:
    """Remove the addressed item; a child list emptied by the removal is dropped."""
    result = copy.deepcopy(tree)
    segments = split_spec(spec)
    if len(segments) == 1:
        # Root level wins over a same-named nested item found earlier in pre-order.
        index = _find_sibling(result, segments[0])
        if index is not None:
            del result[index]
            return result
    siblings, index = _locate(result, spec)
    del siblings[index]
    if not siblings:
        owner = _owner_of(result, siblings)
        if owner is not None:
            del owner[_children_field(owner)]
    return result


def parse_icon(icon: Any) -> tuple[str, str] | None:
    """Split a tagged icon string (``class:fa fa-home``) into ``(kind, value)``.

    Untagged strings are treated as image URLs, the way the sidebar renders them.
    """
    if not isinstance(icon, str) or not icon.strip():
        return None
    kind, sep, value = icon.partition(":")
    kind = kind.strip().lower()
    if sep and kind in ICON_KINDS and value.strip():
        return kind, value.strip()
    return "url", icon.strip()


def normalize_tags(tags: Any) -> list[str]:
    if tags is None:
        return []
    if isinstance(tags, str):
        return [tag.strip() for tag in tags.split(",") if tag.strip()]
    if isinstance(tags, list):
        return [str(tag).strip() for tag in tags if str(tag).strip()]
    raise MalformedInput("Tags must be a list of strings.")


def normalize_document(data: Any) -> tuple[list[NavItem], bool]:
    """Return ``(items, wrapped)`` for a bare array or a ``{"sidemenu": [...]}`` object."""
    if isinstance(data, list):
        return data, False
    if isinstance(data, dict) and isinstance(data.get(WRAPPER_KEY), list):
        return data[WRAPPER_KEY], True
    raise MalformedInput("Navigation must be a JSON array or an object with a 'sidemenu' array.")


def wrap_document(items: list[NavItem], wrapped: bool) -> list[NavItem] | dict[str, Any]:
    return {WRAPPER_KEY: items} if wrapped else items
