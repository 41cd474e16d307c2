"""
Centralized Context Management for Stencil.

This module provides a context manager that owns the process-wide
registries: visitors, the type hierarchy and the loaded templates.
"""

from __future__ import annotations

import threading
from typing import Optional, Any
from contextlib import contextmanager
from dataclasses import dataclass, field

from .utils.logging import get_logger
from .utils.config import StencilConfig, get_config

logger = get_logger(__name__)

_NOT_INITIALIZED = "Context not initialized. Use 'with StencilContext()' or call __enter__()."


@dataclass
class StencilContext:
    """
    Owner of all Stencil global state.

    Manages lifecycle of the registries with proper initialization and
    cleanup.
    """

    config: Optional[StencilConfig] = None

    # Registry instances
    visitor_registry: Optional[Any] = None
    type_registry: Optional[Any] = None
    loaded_templates: Optional[Any] = None

    # Context state
    _initialized: bool = field(default=False, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def __enter__(self) -> 'StencilContext':
        """Enter context and initialize all global state."""
        with self._lock:
            if not self._initialized:
                self._initialize_all_components()
                self._initialized = True
            return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context and cleanup resources."""
        with self._lock:
            if self._initialized:
                self._cleanup_all_components()
                self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _initialize_all_components(self) -> None:
        """Initialize all components in proper order."""
        logger.debug("Initializing Stencil context...")

        if self.config is None:
            self.config = get_config()

        from .codegen.visitors import VisitorRegistry
        from .types import TypeRegistry
        from .runtime.registry import LoadedTemplateRegistry

        self.visitor_registry = VisitorRegistry()
        self.type_registry = TypeRegistry()
        self.loaded_templates = LoadedTemplateRegistry(allow_reload=self.config.is_auto_reload())

        logger.debug("Stencil context initialization complete")

    def _cleanup_all_components(self) -> None:
        """Cleanup all components."""
        logger.debug("Cleaning up Stencil context...")
        self.visitor_registry = None
        self.type_registry = None
        self.loaded_templates = None

    def get_visitor_registry(self):
        """Get the visitor registry instance."""
        if not self._initialized:
            raise RuntimeError(_NOT_INITIALIZED)
        return self.visitor_registry

    def get_type_registry(self):
        """Get the type registry instance."""
        if not self._initialized:
            raise RuntimeError(_NOT_INITIALIZED)
        return self.type_registry

    def get_loaded_templates(self):
        """Get the loaded template registry instance."""
        if not self._initialized:
            raise RuntimeError(_NOT_INITIALIZED)
        return self.loaded_templates


# Global context instance
_global_context: Optional[StencilContext] = None
_context_lock = threading.Lock()


def get_global_context() -> StencilContext:
    """Get or create the global context instance."""
    global _global_context
    with _context_lock:
        if _global_context is None:
            _global_context = StencilContext()
        return _global_context


@contextmanager
def stencil_context():
    """Context manager for Stencil operations."""
    context = get_global_context()
    with context:
        yield context


def ensure_context_initialized() -> StencilContext:
    """Ensure the global context is initialized and return it."""
    context = get_global_context()
    if not context._initialized:
        context.__enter__()
    return context
