"""
Pytest configuration and shared fixtures for bookmark tree tests.

This module provides common fixtures and test utilities that are shared
across multiple test modules.
"""

import os
from pathlib import Path

import pytest

from bookmark_tree.config.pydantic_config import BookmarkTreeConfig
from bookmark_tree.core.bookmark_service import BookmarkService
from bookmark_tree.core.bookmark_store import BookmarkStore
from bookmark_tree.core.data_models import Tree
from tests.fixtures.test_data import SAMPLE_NETSCAPE_HTML, create_sample_tree

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line("markers", "network: test reaches the internet")
    config.addinivalue_line("markers", "slow: slow test")


def pytest_runtest_setup(item):
    """Set up before each test."""
    if "slow" in item.keywords and not item.config.getoption("--runslow"):
        pytest.skip("need --runslow option to run")

    if "network" in item.keywords and not item.config.getoption("--runnetwork"):
        pytest.skip("network tests skipped in offline mode")


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--runslow", action="store_true", default=False, help="run slow tests"
    )
    parser.addoption(
        "--runnetwork",
        action="store_true",
        default=False,
        help="run network tests (disable offline mode)",
    )


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep tests away from user config files and environment overrides."""
    for name in list(os.environ):
        if name.startswith("BOOKMARK_TREE_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


# ============================================================================
# Storage Fixtures
# ============================================================================


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    return tmp_path / "data" / "bookmarks.json"


@pytest.fixture
def store(data_file: Path) -> BookmarkStore:
    """Store over an empty document."""
    return BookmarkStore(data_file)


@pytest.fixture
def sample_tree() -> Tree:
    return create_sample_tree()


@pytest.fixture
def populated_store(store: BookmarkStore, sample_tree: Tree) -> BookmarkStore:
    """Store already holding the sample tree."""
    store.save(sample_tree)
    return store


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def config() -> BookmarkTreeConfig:
    return BookmarkTreeConfig()


@pytest.fixture
def service(populated_store: BookmarkStore, config: BookmarkTreeConfig) -> BookmarkService:
    return BookmarkService(populated_store, config)


@pytest.fixture
def sample_html() -> str:
    return SAMPLE_NETSCAPE_HTML


@pytest.fixture
def sample_html_file(tmp_path: Path) -> Path:
    path = tmp_path / "export.html"
    path.write_text(SAMPLE_NETSCAPE_HTML, encoding="utf-8")
    return path
