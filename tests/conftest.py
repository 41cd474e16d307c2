"""
Pytest configuration and shared fixtures for Stencil tests.

This module provides common test fixtures, configuration, and utilities
used across the test suite.
"""

import pytest
from pathlib import Path

from stencil.context import StencilContext
from stencil.layout import ProjectLayout
from stencil.runtime.cache import TemplateCache
from stencil.runtime.render_context import RenderContext
from stencil.utils.config import StencilConfig


class TemplateProject:
    """A throwaway project tree with a content root and a generated root."""

    def __init__(self, root: Path):
        self.root = root
        self.content_root = root / "app"
        self.generated_root = root / "gen"
        self.content_root.mkdir(parents=True, exist_ok=True)
        self.layout = ProjectLayout(self.content_root, self.generated_root)

    def write(self, type_id: str, name: str, text: str, extension: str = ".thtml") -> Path:
        """Write a template source and return its path."""
        path = self.layout.type_dir(self.content_root, type_id) / f"{name}{extension}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    def artifact(self, type_id: str, name: str) -> Path:
        return self.layout.artifact_path(type_id, name)


@pytest.fixture
def project(tmp_path):
    """Empty template project in a temporary directory."""
    return TemplateProject(tmp_path)


@pytest.fixture
def config(tmp_path, monkeypatch):
    """Default configuration isolated from the environment."""
    monkeypatch.chdir(tmp_path)
    for var in ("STENCIL_GENERATED_ROOT", "STENCIL_AUTO_RELOAD", "STENCIL_LOCK_TIMEOUT"):
        monkeypatch.delenv(var, raising=False)
    cfg = StencilConfig()
    cfg.cache.lock_timeout_seconds = 10.0
    return cfg


@pytest.fixture
def stencil_ctx(config):
    """Fresh, initialized context with its own registries."""
    context = StencilContext(config=config)
    with context:
        yield context


@pytest.fixture
def engine(project, stencil_ctx, config):
    """TemplateCache over the temporary project."""
    return TemplateCache(layout=project.layout, context=stencil_ctx, config=config)


@pytest.fixture
def render_ctx():
    """Rendering context preferring English."""
    return RenderContext(["en"])


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on test path."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for complete workflows"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take a long time to run"
    )
