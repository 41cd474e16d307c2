"""
Loaded template registry.

Process-wide map from template descriptor to the render procedure
loaded into this process and the artifact modification time it was
loaded from. Entries are only ever added or replaced; clearing is
reserved for development hot reload.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from ..types import TemplateDescriptor
from ..utils.exceptions import StencilError
from ..utils.logging import get_logger
from .loader import RenderProcedure

logger = get_logger(__name__)


@dataclass(frozen=True)
class LoadedTemplate:
    """A render procedure together with the artifact version it came from."""

    descriptor: TemplateDescriptor
    procedure: RenderProcedure
    artifact_mtime_ns: int


class LoadedTemplateRegistry:
    """
    Thread-safe registry of loaded render procedures.

    Lookups are lock-free. Loading is serialized per descriptor, so
    concurrent callers needing the same procedure load it once while
    unrelated templates load in parallel.
    """

    def __init__(self, allow_reload: bool = False):
        self.allow_reload = allow_reload
        self._entries: Dict[TemplateDescriptor, LoadedTemplate] = {}
        self._load_locks: Dict[TemplateDescriptor, threading.Lock] = {}
        self._lock = threading.Lock()

    def get(self, descriptor: TemplateDescriptor) -> Optional[LoadedTemplate]:
        return self._entries.get(descriptor)

    def get_or_load(
        self,
        descriptor: TemplateDescriptor,
        artifact_mtime_ns: int,
        loader: Callable[[], RenderProcedure],
    ) -> Tuple[LoadedTemplate, bool]:
        """
        Return the entry for ``descriptor``, loading it if missing or outdated.

        Args:
            descriptor: Template to look up
            artifact_mtime_ns: Modification time of the current artifact
            loader: Called to load the procedure when needed

        Returns:
            (entry, loaded) where ``loaded`` tells whether this call loaded it
        """
        entry = self._entries.get(descriptor)
        if entry is not None and entry.artifact_mtime_ns == artifact_mtime_ns:
            return entry, False

        with self._load_lock(descriptor):
            entry = self._entries.get(descriptor)
            if entry is not None and entry.artifact_mtime_ns == artifact_mtime_ns:
                return entry, False
            entry = LoadedTemplate(descriptor, loader(), artifact_mtime_ns)
            self.publish(entry)
            return entry, True

    def publish(self, entry: LoadedTemplate) -> None:
        """Add or replace an entry."""
        with self._lock:
            self._entries[entry.descriptor] = entry

    def clear(self) -> None:
        """
        Forget every loaded procedure.

        Raises:
            StencilError: Unless the registry was created with allow_reload
        """
        if not self.allow_reload:
            raise StencilError("Loaded templates can only be cleared with auto reload enabled")
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"Cleared {count} loaded templates")

    def descriptors(self) -> List[TemplateDescriptor]:
        return list(self._entries)

    def __contains__(self, descriptor: TemplateDescriptor) -> bool:
        return descriptor in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _load_lock(self, descriptor: TemplateDescriptor) -> threading.Lock:
        with self._lock:
            lock = self._load_locks.get(descriptor)
            if lock is None:
                lock = self._load_locks[descriptor] = threading.Lock()
            return lock
