"""
Unit tests for the exception hierarchy.
"""

import pytest

from stencil.utils.exceptions import (
    StencilError,
    TemplateNotFound,
    CompileError,
    TemplateIOError,
    VisitorNotRegistered,
    LockTimeoutError,
    HierarchyError,
)


class TestStencilExceptions:
    """Test cases for custom exception classes."""

    def test_stencil_error_basic(self):
        """Test basic StencilError functionality."""
        error = StencilError("Test error message")
        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.details == {}

    def test_stencil_error_with_details(self):
        """Test StencilError with details."""
        error = StencilError("Test error", {"key1": "value1", "key2": 42})
        assert str(error) == "Test error (key1=value1, key2=42)"

    def test_all_derive_from_stencil_error(self):
        """Test that every error can be caught as StencilError."""
        errors = [
            TemplateNotFound("Page", "index"),
            CompileError("bad"),
            TemplateIOError("io"),
            VisitorNotRegistered("upper"),
            LockTimeoutError("/tmp/x", 1.0),
            HierarchyError("Page", "cycle"),
        ]
        for error in errors:
            assert isinstance(error, StencilError)

    def test_template_not_found(self):
        """Test TemplateNotFound details."""
        error = TemplateNotFound("Blog_Post", "index", ["Blog_Post", "Page"])
        assert error.type_id == "Blog_Post"
        assert error.name == "index"
        assert error.searched == ["Blog_Post", "Page"]
        assert "Undefined template 'index' for Blog_Post" in str(error)
        assert "searched=Blog_Post,Page" in str(error)

    def test_compile_error(self):
        """Test CompileError location details."""
        error = CompileError("Unclosed block", offset=10, line=2)
        assert error.template is None
        assert str(error) == "Unclosed block (line=2, offset=10)"

        attributed = CompileError("Unclosed block", "Page#index", offset=10, line=2)
        assert attributed.template == "Page#index"
        assert "template=Page#index" in str(attributed)

    def test_template_io_error(self):
        """Test TemplateIOError path detail."""
        error = TemplateIOError("Failed to publish", "/gen/page/index.tpl.py")
        assert error.path == "/gen/page/index.tpl.py"
        assert "path=/gen/page/index.tpl.py" in str(error)

    def test_visitor_not_registered(self):
        """Test VisitorNotRegistered details."""
        error = VisitorNotRegistered("upper", "Page#index")
        assert error.name == "upper"
        assert "Visitor 'upper' is not registered" in str(error)
        assert "template=Page#index" in str(error)

    def test_lock_timeout_is_not_compile_error(self):
        """Test that lock timeouts are distinguishable from compile errors."""
        error = LockTimeoutError("/app/page/index.thtml", 0.5)
        assert not isinstance(error, CompileError)
        assert error.timeout == 0.5
        assert "timeout=0.5" in str(error)

    def test_raise_and_catch(self):
        """Test catching by base class."""
        with pytest.raises(StencilError):
            raise CompileError("bad", template="Page#index")
