"""Shared fixtures for navdoc tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from navdoc.app import create_app
from navdoc.config import Settings
from navdoc.docstore import DocStore
from navdoc.navstore import NavStore
from navdoc.vcs import DisabledGateway, MemoryGateway


@pytest.fixture
def content_root(tmp_path: Path) -> Path:
    """A content root with the default document and navigation directories."""
    for name in ("docs", "examples", "nav"):
        (tmp_path / name).mkdir()
    return tmp_path


@pytest.fixture
def settings(content_root: Path) -> Settings:
    return Settings(root=content_root, vcs="memory")


@pytest.fixture
def memory_gateway(content_root: Path) -> MemoryGateway:
    return MemoryGateway(content_root)


@pytest.fixture
def disabled_gateway() -> DisabledGateway:
    return DisabledGateway("git not installed")


@pytest.fixture
def doc_store(settings: Settings, memory_gateway: MemoryGateway) -> DocStore:
    return DocStore(settings, memory_gateway)


@pytest.fixture
def nav_store(settings: Settings, memory_gateway: MemoryGateway) -> NavStore:
    return NavStore(settings, memory_gateway)


@pytest.fixture
def client(settings: Settings, memory_gateway: MemoryGateway):
    app = create_app(settings, memory_gateway)
    app.config["TESTING"] = True
    return app.test_client()
