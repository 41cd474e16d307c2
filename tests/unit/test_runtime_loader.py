"""
Unit tests for artifact loading and the loaded template registry.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from stencil.runtime.loader import RenderProcedure, read_compiler_version
from stencil.runtime.registry import LoadedTemplate, LoadedTemplateRegistry
from stencil.types import TemplateDescriptor
from stencil.utils.exceptions import CompileError, StencilError, TemplateIOError

ARTIFACT = '''OWNER = 'Page'
NAME = 'index'
COMPILER_VERSION = '1'


def render(self, _rt, *args, **kwargs):
    def _view(_, ctx):
        _('hello ' + str(args[0]))
    return _view
'''


class TestRenderProcedure:
    """Test loading render procedures."""

    def test_load_from_file(self, tmp_path):
        """Test loading and calling a procedure."""
        path = tmp_path / "index.tpl.py"
        path.write_text(ARTIFACT)
        procedure = RenderProcedure.load_from_file(path)

        chunks = []
        procedure(None, None, "world")(chunks.append, None)
        assert chunks == ["hello world"]
        assert procedure.get_metadata() == {"owner": "Page", "name": "index", "compiler_version": "1"}
        assert procedure.path == str(path)

    def test_compiler_version(self):
        """Test the compiler version recorded by the artifact."""
        assert RenderProcedure.load_from_source(ARTIFACT).compiler_version == "1"
        assert RenderProcedure.load_from_source("def render(self, _rt):\n    pass\n").compiler_version is None

    def test_read_compiler_version(self, tmp_path):
        """Test reading the version from the header without executing the artifact."""
        path = tmp_path / "index.tpl.py"
        path.write_text("# Compiled from app/page/index.thtml. Do not edit.\n" + ARTIFACT)
        assert read_compiler_version(path) == "1"

        path.write_text("raise SystemExit\nCOMPILER_VERSION = \"0\"\n")
        assert read_compiler_version(path) == "0"

        path.write_text("OWNER = 'Page'\n")
        assert read_compiler_version(path) is None

        with pytest.raises(TemplateIOError):
            read_compiler_version(tmp_path / "missing.tpl.py")

    def test_load_missing_file(self, tmp_path):
        """Test that a missing artifact is an I/O error."""
        with pytest.raises(TemplateIOError) as exc_info:
            RenderProcedure.load_from_file(tmp_path / "missing.tpl.py")
        assert exc_info.value.path.endswith("missing.tpl.py")

    def test_load_invalid_source(self):
        """Test that broken artifact text is rejected."""
        with pytest.raises(CompileError):
            RenderProcedure.load_from_source("def render(:\n")

    def test_load_without_entry_point(self):
        """Test that an artifact must define render()."""
        with pytest.raises(CompileError):
            RenderProcedure.load_from_source("OWNER = 'Page'\n")


class TestLoadedTemplateRegistry:
    """Test the process-wide loaded template registry."""

    def setup_method(self):
        """Set up test fixtures."""
        self.registry = LoadedTemplateRegistry()
        self.descriptor = TemplateDescriptor("Page", "index")
        self.procedure = RenderProcedure.load_from_source(ARTIFACT)

    def test_get_or_load_loads_once(self):
        """Test that a matching entry is reused."""
        loader_calls = []

        def loader():
            loader_calls.append(1)
            return self.procedure

        entry, loaded = self.registry.get_or_load(self.descriptor, 100, loader)
        assert loaded is True
        assert entry.procedure is self.procedure
        entry2, loaded2 = self.registry.get_or_load(self.descriptor, 100, loader)
        assert loaded2 is False
        assert entry2 is entry
        assert len(loader_calls) == 1
        assert self.descriptor in self.registry
        assert len(self.registry) == 1

    def test_reload_on_new_artifact(self):
        """Test that a newer artifact replaces the entry."""
        self.registry.get_or_load(self.descriptor, 100, lambda: self.procedure)
        other = RenderProcedure.load_from_source(ARTIFACT)
        entry, loaded = self.registry.get_or_load(self.descriptor, 200, lambda: other)
        assert loaded is True
        assert self.registry.get(self.descriptor).procedure is other
        assert entry.artifact_mtime_ns == 200

    def test_concurrent_loads_serialized(self):
        """Test that concurrent callers load a descriptor once."""
        calls = []
        lock = threading.Lock()

        def slow_loader():
            with lock:
                calls.append(1)
            time.sleep(0.05)
            return self.procedure

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(
                lambda _: self.registry.get_or_load(self.descriptor, 1, slow_loader)[0], range(8)
            ))

        assert len(calls) == 1
        assert all(entry is results[0] for entry in results)

    def test_loader_failure_leaves_no_entry(self):
        """Test that a failing loader publishes nothing."""
        def broken():
            raise TemplateIOError("boom")

        with pytest.raises(TemplateIOError):
            self.registry.get_or_load(self.descriptor, 1, broken)
        assert self.registry.get(self.descriptor) is None

    def test_clear_requires_reload(self):
        """Test that clearing is reserved for auto reload."""
        self.registry.publish(LoadedTemplate(self.descriptor, self.procedure, 1))
        with pytest.raises(StencilError):
            self.registry.clear()
        assert len(self.registry) == 1

        reloadable = LoadedTemplateRegistry(allow_reload=True)
        reloadable.publish(LoadedTemplate(self.descriptor, self.procedure, 1))
        reloadable.clear()
        assert reloadable.descriptors() == []
