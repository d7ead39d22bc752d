from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

yaml = YAML()
yaml.preserve_quotes = True

CONFIG_FILENAME = "navdoc.yml"
VCS_BACKENDS = {"auto", "git", "none", "memory"}
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Settings:
    root: Path = field(default_factory=Path.cwd)
    doc_dirs: tuple[str, ...] = ("docs/", "examples/")
    doc_extensions: tuple[str, ...] = (".md", ".html", ".txt")
    nav_dir: str = "nav/"
    main_nav: str = "main"
    vcs: str = "auto"
    git_timeout: float = 10.0
    default_author: str = "system"
    history_limit: int = 10
    log_level: str = "INFO"

    @property
    def nav_root(self) -> Path:
        return self.root / self.nav_dir


def _resolve_config_path() -> Path:
    """Resolve the navdoc.yml path, honoring an optional environment override."""
    env_path = os.environ.get("NAVDOC_CONFIG")
    if env_path:
        candidate = Path(env_path)
        return candidate if candidate.is_absolute() else Path.cwd() / candidate
    return Path.cwd() / CONFIG_FILENAME


def _load_config_file(path: Path) -> CommentedMap:
    if not path.exists():
        return CommentedMap()
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.load(handle) or CommentedMap()
    except Exception as exc:
        raise ValueError(f"Failed to read {path.name}: {exc}") from exc
    if not isinstance(data, CommentedMap):
        raise TypeError(f"{path.name} must contain a mapping at the top level.")
    return data


def _dir_prefix(value: Any) -> str:
    cleaned = str(value).strip().replace("\\", "/").strip("/")
    return f"{cleaned}/"


def _extension(value: Any) -> str:
    cleaned = str(value).strip().lower()
    return cleaned if cleaned.startswith(".") else f".{cleaned}"


def _string_list(data: CommentedMap, key: str) -> list[Any] | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise TypeError(f"`{key}` must be a list.")
    return list(value)


def load_settings(path: Path | None = None) -> Settings:
    """Build settings from navdoc.yml (if any) and NAVDOC_* environment variables."""
    config_path = path or _resolve_config_path()
    data = _load_config_file(config_path)
    settings = Settings()

    root = os.environ.get("NAVDOC_ROOT") or data.get("root")
    if root:
        candidate = Path(str(root)).expanduser()
        base = Path.cwd() if os.environ.get("NAVDOC_ROOT") else config_path.parent
        settings.root = candidate if candidate.is_absolute() else base / candidate
    settings.root = settings.root.resolve()

    dirs = _string_list(data, "doc_dirs")
    if dirs:
        settings.doc_dirs = tuple(_dir_prefix(d) for d in dirs if str(d).strip())
    exts = _string_list(data, "doc_extensions")
    if exts:
        settings.doc_extensions = tuple(_extension(e) for e in exts if str(e).strip())
    if data.get("nav_dir"):
        settings.nav_dir = _dir_prefix(data["nav_dir"])
    if data.get("main_nav"):
        settings.main_nav = str(data["main_nav"]).strip()

    vcs = str(os.environ.get("NAVDOC_VCS") or data.get("vcs") or settings.vcs).strip().lower()
    if vcs not in VCS_BACKENDS:
        raise ValueError(f"Unknown vcs backend {vcs!r}; expected one of {sorted(VCS_BACKENDS)}.")
    settings.vcs = vcs

    timeout = os.environ.get("NAVDOC_GIT_TIMEOUT") or data.get("git_timeout")
    if timeout is not None:
        settings.git_timeout = float(timeout)
    author = os.environ.get("NAVDOC_AUTHOR") or data.get("default_author")
    if author:
        settings.default_author = str(author).strip()
    if data.get("history_limit") is not None:
        settings.history_limit = int(data["history_limit"])
    level = os.environ.get("NAVDOC_LOG_LEVEL") or data.get("log_level")
    if level:
        settings.log_level = str(level).strip().upper()
    return settings


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
