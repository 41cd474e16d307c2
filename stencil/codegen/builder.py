"""
Python source builder for generated render procedures.

Template code regions are opaque Python with their indentation
stripped, so the builder owns indentation: statements are emitted at
the current depth, block headers open a new level, and block ends
close one. Blocks opened by template code are tracked separately from
the structural blocks the generator opens itself, so that an
unbalanced ``end`` in a template can never close generated scaffolding.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..utils.constants import DEFAULT_INDENT_SIZE
from ..utils.exceptions import CompileError

# Indentation inside code regions is not significant
_CLOSE_HINT = "close it with '% end' or '<% end %>'"


@dataclass
class Block:
    """An open block in the generated code."""

    header: str
    offset: Optional[int] = None
    user: bool = True
    has_body: bool = False


class CodeBuilder:
    """
    Builds Python source line by line with managed indentation.

    ``source_offset`` is the template offset of the construct currently
    being emitted; every generated line remembers it so errors found in
    the generated code can be mapped back to the template.
    """

    def __init__(self, indent_size: int = DEFAULT_INDENT_SIZE):
        self.indent_str = " " * indent_size
        self.reset()

    def reset(self) -> None:
        """Reset the builder for a new generation."""
        self._lines: List[str] = []
        self._line_offsets: List[Optional[int]] = []
        self._blocks: List[Block] = []
        self._counters: Dict[str, int] = {}
        self.source_offset: Optional[int] = None

    @property
    def depth(self) -> int:
        """Current nesting depth."""
        return len(self._blocks)

    def new_variable(self, prefix: str) -> str:
        """Return a generated variable name unique within this build."""
        count = self._counters.get(prefix, 0)
        self._counters[prefix] = count + 1
        return prefix if count == 0 else f"{prefix}{count}"

    def add_line(self, line: str) -> 'CodeBuilder':
        """Add a single statement at the current depth."""
        self._emit(self.indent_str * self.depth + line)
        if self._blocks:
            self._blocks[-1].has_body = True
        return self

    def add_statement(self, statement: str) -> 'CodeBuilder':
        """Add a statement that may span several lines."""
        lines = statement.split("\n")
        self.add_line(lines[0])
        for line in lines[1:]:
            self._emit(self.indent_str * self.depth + line)
        return self

    def add_comment(self, comment: str) -> 'CodeBuilder':
        self._emit(self.indent_str * self.depth + f"# {comment}")
        return self

    def add_empty_line(self) -> 'CodeBuilder':
        self._emit("")
        return self

    def begin_block(self, header: str, offset: Optional[int] = None, user: bool = True) -> 'CodeBuilder':
        """Emit a block header (ending with ``:``) and indent."""
        self.add_line(header)
        self._blocks.append(Block(header, offset, user))
        return self

    def continue_block(self, header: str, offset: Optional[int] = None, user: bool = True) -> 'CodeBuilder':
        """Emit a continuation header such as ``else:`` for the innermost block."""
        if not self._blocks or self._blocks[-1].user != user:
            raise CompileError(f"'{header}' without an open block", offset=offset)
        self._close_innermost()
        return self.begin_block(header, offset, user)

    def end_block(self, offset: Optional[int] = None, user: bool = True) -> 'CodeBuilder':
        """Close the innermost block."""
        if not self._blocks or self._blocks[-1].user != user:
            raise CompileError("'end' without an open block", offset=offset)
        self._close_innermost()
        return self

    def checkpoint(self) -> int:
        """Remember the current depth for a later ensure_closed()."""
        return self.depth

    def ensure_closed(self, checkpoint: int) -> None:
        """Raise if template code left blocks open since ``checkpoint``."""
        if self.depth > checkpoint:
            block = self._blocks[checkpoint]
            raise CompileError(f"Unclosed block '{block.header}': {_CLOSE_HINT}", offset=block.offset)

    def offset_of_line(self, lineno: Optional[int]) -> Optional[int]:
        """Template offset that produced generated line ``lineno`` (1-based)."""
        if lineno is None or not 1 <= lineno <= len(self._line_offsets):
            return None
        return self._line_offsets[lineno - 1]

    def build(self) -> str:
        """Build the final source text."""
        if self._blocks:
            block = self._blocks[-1]
            raise CompileError(f"Unclosed block '{block.header}': {_CLOSE_HINT}", offset=block.offset)
        return "\n".join(self._lines) + "\n"

    def _emit(self, line: str) -> None:
        self._lines.append(line)
        self._line_offsets.append(self.source_offset)

    def _close_innermost(self) -> None:
        block = self._blocks[-1]
        if not block.has_body:
            self._emit(self.indent_str * self.depth + "pass")
        self._blocks.pop()
