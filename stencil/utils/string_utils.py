"""
String Manipulation Utilities for Stencil.

Helpers used by the compiler for splitting code regions and for
mapping source offsets back to line numbers.
"""

from __future__ import annotations

from typing import List


def strip_code_lines(code: str) -> List[str]:
    """
    Split a code region into stripped, non-empty lines.

    Leading indentation inside a template code region carries no meaning;
    block structure is derived from the statements themselves.
    """
    return [line.strip() for line in code.strip().splitlines() if line.strip()]


def line_of_offset(text: str, offset: int) -> int:
    """Return the 1-based line number of ``offset`` within ``text``."""
    return text.count('\n', 0, max(offset, 0)) + 1
