"""
Naming Utilities for Stencil.

This module turns type identifiers into path segments and template
descriptors into readable identities, following the project-layout
convention: compound names are split on ``_`` and ``.`` and every
segment is converted from CamelCase to snake_case.
"""

from __future__ import annotations

import re
from typing import List

from .constants import (
    CAMEL_CASE_PATTERN,
    SNAKE_CASE_REPLACEMENT,
    TYPE_SEGMENT_SEPARATORS,
)

_SEGMENT_SPLIT = re.compile("|".join(re.escape(s) for s in TYPE_SEGMENT_SEPARATORS))


def camel_to_snake_case(name: str) -> str:
    """Convert CamelCase to snake_case."""
    return re.sub(CAMEL_CASE_PATTERN, SNAKE_CASE_REPLACEMENT, name).lower()


def type_path_segments(type_id: str) -> List[str]:
    """
    Split a type identifier into directory segments.

    ``Blog_PostPage`` becomes ``['blog', 'post_page']`` and
    ``shop.CartItem`` becomes ``['shop', 'cart_item']``.

    Args:
        type_id: Type identifier

    Returns:
        Non-empty list of lowercase path segments

    Raises:
        ValueError: If the identifier has no usable segment
    """
    segments = [camel_to_snake_case(part) for part in _SEGMENT_SPLIT.split(type_id) if part]
    if not segments:
        raise ValueError(f"Cannot derive a path from type id {type_id!r}")
    return segments


def template_identity(type_id: str, name: str) -> str:
    """Readable identity of a template, used in logs and errors."""
    return f"{type_id}#{name}"
