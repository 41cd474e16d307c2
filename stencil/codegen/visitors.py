"""
Visitor Registry for template output transforms.

A visitor is a named function applied to a value before it is written
to the sink: ``<%_escape user.name %>`` or
``<%_printf('<b>%s</b>') title %>``. The registry is consulted by the
code generator (to reject unknown names early) and by the runtime.
"""

from __future__ import annotations

import html
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..utils.exceptions import VisitorNotRegistered
from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class VisitorInfo:
    """A registered visitor."""

    name: str
    function: Callable[..., Any]
    description: str = ""


def escape_visitor(value: Any) -> str:
    """HTML-escape ``value``."""
    return html.escape("" if value is None else str(value))


def printf_visitor(value: Any, format_string: str = "%s") -> str:
    """Interpolate ``value`` into a printf-style format string."""
    return format_string % (value,)


BUILTIN_VISITORS = (
    VisitorInfo("escape", escape_visitor, "HTML-escape the value"),
    VisitorInfo("printf", printf_visitor, "Format the value with a printf-style pattern"),
)


class VisitorRegistry:
    """
    Registry of named output transforms.

    Registration is expected at configuration time but is guarded by a
    lock; lookups are plain dictionary reads.
    """

    def __init__(self, include_builtins: bool = True):
        self._visitors: Dict[str, VisitorInfo] = {}
        self._lock = threading.Lock()
        if include_builtins:
            for info in BUILTIN_VISITORS:
                self._visitors[info.name] = info

    def register(self, name: str, function: Optional[Callable[..., Any]] = None, description: str = ""):
        """
        Register a visitor.

        Can be used directly or as a decorator::

            @registry.register("upper")
            def upper(value):
                return str(value).upper()

        Args:
            name: Name used in visitor calls; must be a Python identifier
            function: Transform taking the value plus optional call arguments
            description: Optional human-readable description

        Raises:
            ValueError: If the name is not a valid identifier
        """
        if not name.isidentifier():
            raise ValueError(f"Invalid visitor name: {name!r}")

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            with self._lock:
                if name in self._visitors:
                    logger.debug(f"Replacing visitor '{name}'")
                self._visitors[name] = VisitorInfo(name, func, description or (func.__doc__ or "").strip())
            return func

        if function is not None:
            return decorator(function)
        return decorator

    def unregister(self, name: str) -> bool:
        """Remove a visitor; returns whether it was registered."""
        with self._lock:
            return self._visitors.pop(name, None) is not None

    def get(self, name: str) -> Optional[VisitorInfo]:
        return self._visitors.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._visitors

    def list_visitors(self) -> List[str]:
        return sorted(self._visitors)

    def apply(self, name: str, value: Any, *args: Any, **kwargs: Any) -> Any:
        """
        Apply visitor ``name`` to ``value``.

        Raises:
            VisitorNotRegistered: If no visitor of that name exists
        """
        info = self._visitors.get(name)
        if info is None:
            raise VisitorNotRegistered(name)
        return info.function(value, *args, **kwargs)


def get_visitor_registry() -> VisitorRegistry:
    """Get the visitor registry from the global context."""
    from ..context import ensure_context_initialized
    return ensure_context_initialized().get_visitor_registry()


def visitor(name: str, description: str = ""):
    """Decorator registering a function on the global visitor registry."""
    return get_visitor_registry().register(name, description=description)
