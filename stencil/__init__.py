"""
Stencil: compiled templates for server-side views

Stencil compiles a small templating language (literal text mixed with
Python code, localization blocks and output visitors) into Python
render procedures, and caches the compiled artifacts on disk safely
across threads and processes.

Key Features:
- Templates inherited along a type hierarchy
- Artifacts rebuilt only when the source or the compiler changes
- One compilation per change, even with many concurrent renderers
- Atomic publishing: readers never see a partial artifact

Usage:
    from stencil import TemplateCache, RenderContext

    cache = TemplateCache()
    cache.types.register("Blog_Post", ["Page"])
    html = cache.render_to_string("Blog_Post", "index", context=RenderContext(["en"]))
"""

__version__ = "0.1.0"
__author__ = "Stencil Team"
__email__ = "stencil@example.com"

# Public API exports
from .utils.config import get_config, StencilConfig
from .utils.exceptions import (
    StencilError,
    TemplateNotFound,
    CompileError,
    TemplateIOError,
    VisitorNotRegistered,
    LockTimeoutError,
    HierarchyError,
)
from .context import StencilContext, get_global_context, stencil_context
from .types import TypeRegistry, TemplateDescriptor
from .layout import ProjectLayout
from .codegen.visitors import VisitorRegistry, visitor
from .runtime.render_context import RenderContext
from .runtime.cache import TemplateCache

__all__ = [
    "get_config",
    "StencilConfig",
    "StencilError",
    "TemplateNotFound",
    "CompileError",
    "TemplateIOError",
    "VisitorNotRegistered",
    "LockTimeoutError",
    "HierarchyError",
    "StencilContext",
    "get_global_context",
    "stencil_context",
    "TypeRegistry",
    "TemplateDescriptor",
    "ProjectLayout",
    "VisitorRegistry",
    "visitor",
    "RenderContext",
    "TemplateCache",
]
