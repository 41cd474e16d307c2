"""
Runtime package: compile cache, artifact loading and rendering helpers.
"""

from .render_context import RenderContext
from .loader import CompiledArtifact, RenderProcedure
from .registry import LoadedTemplate, LoadedTemplateRegistry
from .locking import compile_lock
from .template_runtime import TemplateRuntime
from .cache import TemplateCache

__all__ = [
    "RenderContext",
    "CompiledArtifact",
    "RenderProcedure",
    "LoadedTemplate",
    "LoadedTemplateRegistry",
    "compile_lock",
    "TemplateRuntime",
    "TemplateCache",
]
