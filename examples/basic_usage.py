#!/usr/bin/env python3
"""
Basic usage example for Stencil.

Renders a blog post through a layout inherited from Page, in English
and French. Compiled templates are written under ./generated next to
this script.
"""

from pathlib import Path

from stencil import ProjectLayout, RenderContext, TemplateCache
from stencil.utils.logging import setup_logging

HERE = Path(__file__).parent


class Page:
    pass


class Blog_Post(Page):
    def __init__(self, title, tags, price=None):
        self.title = title
        self.tags = tags
        self.price = price


def main():
    """Demonstrate basic Stencil usage."""
    setup_logging(level="DEBUG")
    print("Stencil - Basic Usage Example")
    print("=" * 40)

    layout = ProjectLayout([HERE / "app"], HERE / "generated")
    cache = TemplateCache(layout=layout)
    cache.types.register_class(Blog_Post)

    post = Blog_Post("Templates & you", ["python", "web"], price=4.5)
    for language in ("en", "fr"):
        print(f"\n--- {language} ---")
        print(cache.render_to_string("Blog_Post", "index", context=RenderContext([language]), instance=post))

    print(f"\nStats: {cache.get_stats()}")


if __name__ == "__main__":
    main()
