"""
Type hierarchy for template ownership.

Templates belong to types. A type inherits the templates of its
ancestors, so resolving a template means walking the ancestors of the
requested type, most specific first. The hierarchy is an explicit
graph: ``register(type_id, bases)`` records the direct bases of a type
and ``ancestors`` returns its C3 linearization, the same order Python
uses for method resolution.
"""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from .utils.exceptions import HierarchyError
from .utils.logging import get_logger

logger = get_logger(__name__)


class TemplateDescriptor(NamedTuple):
    """Identifies a template: the type it is requested for and its name."""

    type_id: str
    name: str

    def __str__(self) -> str:
        return f"{self.type_id}#{self.name}"


class TypeRegistry:
    """
    Explicit type graph with cached C3 linearization.

    Unregistered types are treated as roots without bases. Every change
    bumps ``version`` so dependent caches can detect it.
    """

    def __init__(self):
        self._bases: Dict[str, Tuple[str, ...]] = {}
        self._linearizations: Dict[str, Tuple[str, ...]] = {}
        self._lock = threading.RLock()
        self.version = 0

    def register(self, type_id: str, bases: Iterable[str] = ()) -> None:
        """
        Record the direct bases of ``type_id``, in declaration order.

        Raises:
            HierarchyError: If the new edges make the hierarchy invalid
        """
        bases = tuple(bases)
        if type_id in bases:
            raise HierarchyError(type_id, "a type cannot be its own base")

        with self._lock:
            previous = self._bases.get(type_id)
            self._bases[type_id] = bases
            self._linearizations.clear()
            try:
                self.ancestors(type_id)
            except HierarchyError:
                if previous is None:
                    del self._bases[type_id]
                else:
                    self._bases[type_id] = previous
                self._linearizations.clear()
                raise
            self.version += 1
        logger.debug(f"Registered type {type_id} with bases {list(bases)}")

    def register_class(self, cls: type) -> str:
        """
        Record a Python class and its base classes by name.

        ``object`` is left out. Returns the type id of ``cls``.
        """
        bases = [base for base in cls.__bases__ if base is not object]
        for base in bases:
            if base.__name__ not in self._bases:
                self.register_class(base)
        self.register(cls.__name__, [base.__name__ for base in bases])
        return cls.__name__

    def bases(self, type_id: str) -> Tuple[str, ...]:
        return self._bases.get(type_id, ())

    def __contains__(self, type_id: str) -> bool:
        return type_id in self._bases

    def types(self) -> List[str]:
        return sorted(self._bases)

    def ancestors(self, type_id: str) -> Tuple[str, ...]:
        """
        Return ``type_id`` followed by its ancestors in C3 order.

        Raises:
            HierarchyError: On cycles or inconsistent base orders
        """
        cached = self._linearizations.get(type_id)
        if cached is not None:
            return cached
        with self._lock:
            return self._linearize(type_id, ())

    def _linearize(self, type_id: str, visiting: Tuple[str, ...]) -> Tuple[str, ...]:
        cached = self._linearizations.get(type_id)
        if cached is not None:
            return cached
        if type_id in visiting:
            raise HierarchyError(type_id, "inheritance cycle through " + " -> ".join(visiting + (type_id,)))

        bases = self._bases.get(type_id, ())
        sequences: List[List[str]] = [
            list(self._linearize(base, visiting + (type_id,))) for base in bases
        ]
        sequences.append(list(bases))

        result = [type_id]
        while True:
            sequences = [seq for seq in sequences if seq]
            if not sequences:
                break
            head: Optional[str] = None
            for seq in sequences:
                candidate = seq[0]
                if not any(candidate in other[1:] for other in sequences):
                    head = candidate
                    break
            if head is None:
                raise HierarchyError(type_id, "cannot create a consistent ancestor order")
            result.append(head)
            for seq in sequences:
                if seq[0] == head:
                    del seq[0]

        linearization = tuple(result)
        self._linearizations[type_id] = linearization
        return linearization
