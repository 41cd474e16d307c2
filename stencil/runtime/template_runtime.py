"""
Helpers bound into every render procedure.

A compiled template reaches the outside world only through the
``TemplateRuntime`` passed to ``render``: ``view`` to call other
templates of the same type, ``text`` to stringify printed values,
``visit`` to apply visitors and ``language`` to pick a localization.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence

from ..codegen.visitors import VisitorRegistry
from ..utils.logging import get_logger

if TYPE_CHECKING:
    from .cache import TemplateCache

logger = get_logger(__name__)

Sink = Callable[[str], Any]
View = Callable[[Sink, Any], None]


class TemplateRuntime:
    """Per-render helpers for one type and owning instance."""

    def __init__(self, cache: 'TemplateCache', type_id: str, instance: Any, visitors: VisitorRegistry):
        self.cache = cache
        self.type_id = type_id
        self.instance = instance
        self.visitors = visitors

    def view(self, name: str, *args: Any, **kwargs: Any) -> View:
        """Deferred view of another template of the same type and instance."""
        return self.cache.view(self.type_id, name, *args, instance=self.instance, **kwargs)

    @staticmethod
    def text(value: Any) -> str:
        """String form of a printed value; None prints nothing."""
        if value is None:
            return ""
        return str(value)

    def visit(self, sink: Sink, ctx: Any, name: str, value: Any, *args: Any, **kwargs: Any) -> None:
        """Apply visitor ``name`` to ``value`` and write the result."""
        if callable(value):
            chunks: List[str] = []
            value(chunks.append, ctx)
            value = "".join(chunks)
        sink(self.text(self.visitors.apply(name, value, *args, **kwargs)))

    @staticmethod
    def language(ctx: Any, available: Sequence[str]) -> str:
        """
        Pick one of the declared languages for ``ctx``.

        The context's ``best_language`` decides; anything it returns that
        is not declared falls back to the first declared language.
        """
        best: Optional[str] = None
        chooser = getattr(ctx, "best_language", None)
        if chooser is not None:
            best = chooser(available)
        if best in available:
            return best
        logger.debug(f"No preferred language among {list(available)}, using {available[0]}")
        return available[0]
