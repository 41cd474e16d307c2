"""
Artifact loading.

This module provides the record of a compiled artifact on disk and
the wrapper around a render procedure loaded from one.
"""

import ast
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..utils.constants import ENTRY_POINT, HEADER_LINES
from ..utils.exceptions import CompileError, TemplateIOError

_VERSION_LINE = re.compile(r"^COMPILER_VERSION = ('[^']*'|\"[^\"]*\")\s*$")


@dataclass
class CompiledArtifact:
    """
    A compiled template artifact on disk.

    The artifact is derived data: it can be deleted at any time and is
    rebuilt from the source on the next render.
    """
    path: Path                          # Published artifact
    source_path: Path                   # Template source it was compiled from
    owner: str                          # Type owning the template
    name: str                           # Template name
    mtime_ns: int                       # Artifact modification time
    compiled: bool = False              # Whether this call produced it


def read_compiler_version(artifact_path: os.PathLike) -> Optional[str]:
    """
    Read the COMPILER_VERSION recorded in an artifact header without executing it.

    Returns None if the header has no version line.

    Raises:
        TemplateIOError: If the artifact cannot be read
    """
    path = str(artifact_path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            for _, line in zip(range(HEADER_LINES), f):
                match = _VERSION_LINE.match(line)
                if match:
                    return ast.literal_eval(match.group(1))
    except OSError as e:
        raise TemplateIOError(f"Failed to read compiled template: {e}", path) from e
    return None


class RenderProcedure:
    """
    A loaded render procedure.

    Calling it with the owning instance, the template runtime and the
    template arguments returns a view: a callable taking a sink and a
    rendering context.
    """

    def __init__(self, render_function: Callable[..., Any], path: Optional[str] = None,
                 metadata: Optional[Dict[str, Any]] = None):
        self._render = render_function
        self.path = path
        self.metadata = metadata or {}

    @classmethod
    def load_from_file(cls, artifact_path: os.PathLike) -> 'RenderProcedure':
        """
        Load a render procedure from a compiled artifact.

        Args:
            artifact_path: Path to the artifact module

        Returns:
            RenderProcedure ready for execution

        Raises:
            TemplateIOError: If the artifact cannot be read
            CompileError: If the artifact does not define a render procedure
        """
        path = str(artifact_path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise TemplateIOError(f"Failed to read compiled template: {e}", path) from e
        return cls.load_from_source(text, path)

    @classmethod
    def load_from_source(cls, text: str, filename: str = "<stencil>") -> 'RenderProcedure':
        """Execute artifact text in a fresh namespace and wrap its entry point."""
        namespace: Dict[str, Any] = {"__name__": "stencil.generated", "__file__": filename}
        try:
            code = compile(text, filename, "exec", dont_inherit=True)
        except SyntaxError as e:
            raise CompileError(f"Compiled template is not valid Python: {e.msg}", line=e.lineno) from None
        exec(code, namespace)

        entry = namespace.get(ENTRY_POINT)
        if not callable(entry):
            raise CompileError(f"Compiled template {filename} does not define {ENTRY_POINT}()")

        metadata = {key.lower(): namespace.get(key) for key in ("OWNER", "NAME", "COMPILER_VERSION")}
        return cls(entry, filename, metadata)

    def __call__(self, instance: Any, runtime: Any, *args: Any, **kwargs: Any) -> Callable[..., None]:
        return self._render(instance, runtime, *args, **kwargs)

    @property
    def compiler_version(self) -> Optional[str]:
        return self.metadata.get("compiler_version")

    def get_metadata(self) -> Dict[str, Any]:
        return dict(self.metadata)

    def __repr__(self) -> str:
        return f"RenderProcedure({self.metadata.get('owner')}#{self.metadata.get('name')})"
