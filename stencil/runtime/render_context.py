"""
Rendering context passed to every view.

Carries request-scoped values as attributes and answers which of a
template's declared languages should be rendered.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence


class RenderContext:
    """
    Request-scoped context for rendering.

    Args:
        languages: Preferred languages, most preferred first
        **values: Arbitrary values exposed as attributes (``ctx.user``)
    """

    def __init__(self, languages: Iterable[str] = (), **values: Any):
        self.languages = tuple(languages)
        for key, value in values.items():
            setattr(self, key, value)

    def best_language(self, available: Sequence[str]) -> Optional[str]:
        """First preferred language that is available, or None."""
        for language in self.languages:
            if language in available:
                return language
        return None

    def child(self, **values: Any) -> 'RenderContext':
        """Copy of this context with some values replaced or added."""
        merged = {k: v for k, v in vars(self).items() if k != "languages"}
        merged.update(values)
        return RenderContext(self.languages, **merged)

    def __repr__(self) -> str:
        return f"RenderContext(languages={list(self.languages)})"
