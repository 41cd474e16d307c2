"""
Owner resolution.

Finds the type that actually defines a requested template by walking
the ancestors of the requested type and probing the project layout for
a source file.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict, NamedTuple, Optional, Tuple

from .layout import ProjectLayout
from .types import TypeRegistry
from .utils.logging import get_logger

logger = get_logger(__name__)


class Resolution(NamedTuple):
    """Owner of a template and the source file defining it."""

    owner: str
    source_path: Path


class OwnerResolver:
    """
    Resolves (type_id, name) to the owning ancestor and its source file.

    Positive results are cached. A cached entry is dropped when the type
    hierarchy changes or when its source file no longer exists. With
    ``cache_results`` off every call probes the file system, which lets
    newly added source files shadow inherited ones during development.
    """

    def __init__(self, types: TypeRegistry, layout: ProjectLayout, cache_results: bool = True):
        self.types = types
        self.layout = layout
        self.cache_results = cache_results
        self._cache: Dict[Tuple[str, str], Resolution] = {}
        self._cache_version = types.version
        self._lock = threading.Lock()

    def resolve(self, type_id: str, name: str) -> Optional[Resolution]:
        """
        Find the owner of template ``name`` for ``type_id``.

        Returns:
            Resolution, or None if no ancestor has a source file
        """
        key = (type_id, name)
        if self.cache_results:
            cached = self._cached(key)
            if cached is not None:
                return cached

        for ancestor in self.types.ancestors(type_id):
            source = self.layout.find_source(ancestor, name)
            if source is not None:
                resolution = Resolution(ancestor, source)
                logger.debug(f"Template {type_id}#{name} is owned by {ancestor} ({source})")
                if self.cache_results:
                    with self._lock:
                        self._cache[key] = resolution
                return resolution
        return None

    def invalidate(self, type_id: Optional[str] = None, name: Optional[str] = None) -> None:
        """Drop cached resolutions matching the given type and/or name."""
        with self._lock:
            if type_id is None and name is None:
                self._cache.clear()
                return
            for key in list(self._cache):
                if (type_id is None or key[0] == type_id) and (name is None or key[1] == name):
                    del self._cache[key]

    def _cached(self, key: Tuple[str, str]) -> Optional[Resolution]:
        with self._lock:
            if self._cache_version != self.types.version:
                self._cache.clear()
                self._cache_version = self.types.version
                return None
            resolution = self._cache.get(key)
            if resolution is not None and not resolution.source_path.is_file():
                del self._cache[key]
                return None
            return resolution
