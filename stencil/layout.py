"""
Project layout: where template sources and compiled artifacts live.

A type id maps to a directory by splitting it on ``_`` and ``.`` and
converting each part to snake_case, so the ``index`` template of
``Blog_PostPage`` is looked up as ``<content root>/blog/post_page/index.thtml``
(or ``.ttxt``) and compiled to ``<generated root>/blog/post_page/index.tpl.py``.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from .utils.config import StencilConfig, get_config
from .utils.constants import ARTIFACT_EXTENSION, SOURCE_EXTENSIONS
from .utils.naming import type_path_segments

PathLike = Union[str, Path]

_TEMPLATE_NAME = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_-]*$")


def validate_template_name(name: str) -> str:
    """
    Check that ``name`` is usable as a single path component.

    Raises:
        ValueError: If the name is empty or contains path syntax
    """
    if not _TEMPLATE_NAME.match(name or ""):
        raise ValueError(f"Invalid template name: {name!r}")
    return name


class ProjectLayout:
    """Path rules for template sources and artifacts."""

    def __init__(
        self,
        content_roots: Union[PathLike, Iterable[PathLike]],
        generated_root: PathLike,
        source_extensions: Sequence[str] = SOURCE_EXTENSIONS,
        artifact_extension: str = ARTIFACT_EXTENSION,
    ):
        if isinstance(content_roots, (str, Path)):
            content_roots = [content_roots]
        self.content_roots: List[Path] = [Path(root) for root in content_roots]
        if not self.content_roots:
            raise ValueError("At least one content root is required")
        self.generated_root = Path(generated_root)
        self.source_extensions = tuple(source_extensions)
        self.artifact_extension = artifact_extension

    @classmethod
    def from_config(cls, config: Optional[StencilConfig] = None) -> 'ProjectLayout':
        """Build a layout from the ``paths`` section of the configuration."""
        paths = (config or get_config()).paths
        return cls(
            paths.content_roots,
            paths.generated_root,
            paths.source_extensions,
            paths.artifact_extension,
        )

    def type_dir(self, root: PathLike, type_id: str) -> Path:
        """Directory holding the templates of ``type_id`` under ``root``."""
        return Path(root).joinpath(*type_path_segments(type_id))

    def source_candidates(self, type_id: str, name: str) -> List[Path]:
        """All source paths that may hold the template, in lookup order."""
        validate_template_name(name)
        return [
            self.type_dir(root, type_id) / f"{name}{extension}"
            for root in self.content_roots
            for extension in self.source_extensions
        ]

    def find_source(self, type_id: str, name: str) -> Optional[Path]:
        """First existing source file for the template, or None."""
        for candidate in self.source_candidates(type_id, name):
            if candidate.is_file():
                return candidate
        return None

    def artifact_path(self, type_id: str, name: str) -> Path:
        """Path of the compiled artifact for the template owned by ``type_id``."""
        validate_template_name(name)
        return self.type_dir(self.generated_root, type_id) / f"{name}{self.artifact_extension}"

    def __repr__(self) -> str:
        roots = ", ".join(str(root) for root in self.content_roots)
        return f"ProjectLayout(content_roots=[{roots}], generated_root={self.generated_root})"
