"""
Template code generator.

Turns scanned tokens into the text of a Python module defining a
render procedure::

    def render(self, _rt, *args, **kwargs):
        view = _rt.view
        ...
        def _view(_, ctx):
            <statements in document order>
        return _view

``render`` binds the owning instance and call arguments; the returned
``_view`` writes to a sink (``_``) under a rendering context (``ctx``).
Generation is deterministic: the same source and compiler produce the
same artifact text.

Code regions are stripped line by line, so indentation never closes a
block. A line ending in ``:`` opens one and ``end`` (or ``endfor``,
``endif`` and so on) closes it, both in ``%`` lines and inside
``<% ... %>`` spans::

    <%
    def double(v):
        return v * 2
    end
    %>
"""

from __future__ import annotations

import io
import os
import re
import tokenize
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from ..utils.constants import (
    BLOCK_END_PATTERN,
    COMPILER_VERSION,
    CONTEXT_NAME,
    CONTINUATION_KEYWORDS,
    DEFAULT_INDENT_SIZE,
    ENTRY_POINT,
    LANGUAGE_HELPER,
    RUNTIME_NAME,
    SINK_NAME,
    TEXT_HELPER,
    VIEW_FUNCTION,
    VISIT_HELPER,
)
from ..utils.exceptions import CompileError, VisitorNotRegistered
from ..utils.logging import get_logger
from ..utils.naming import template_identity
from ..utils.string_utils import line_of_offset, strip_code_lines
from .builder import CodeBuilder
from .localization import LocalizationCompiler
from .scanner import Scanner, ScannerState, Token
from .visitors import VisitorRegistry

logger = get_logger(__name__)

# Files, relative to the package root, whose modification time invalidates
# every compiled artifact
COMPILER_MODULES = (
    "codegen/scanner.py",
    "codegen/builder.py",
    "codegen/generator.py",
    "codegen/localization.py",
    "utils/constants.py",
)

_BLOCK_END = re.compile(BLOCK_END_PATTERN)
_CONTINUATION = re.compile(r"^(%s)\b" % "|".join(CONTINUATION_KEYWORDS))
_VISITOR_NAME = re.compile(r"[A-Za-z_]\w*")

_IGNORED_TOKENS = (
    tokenize.COMMENT,
    tokenize.NL,
    tokenize.NEWLINE,
    tokenize.INDENT,
    tokenize.DEDENT,
    tokenize.ENDMARKER,
)


def compiler_module_paths() -> List[Path]:
    """Paths of the files making up the compiler."""
    package_root = Path(__file__).resolve().parent.parent
    return [package_root / module for module in COMPILER_MODULES]


def compiler_mtime_ns() -> int:
    """Latest modification time of the compiler files, in nanoseconds."""
    latest = 0
    for path in compiler_module_paths():
        try:
            latest = max(latest, os.stat(path).st_mtime_ns)
        except FileNotFoundError:
            continue
    return latest


def opens_block(line: str) -> bool:
    """Whether a stripped code line ends with a block-opening colon."""
    try:
        tokens = [
            tok for tok in tokenize.generate_tokens(io.StringIO(line + "\n").readline)
            if tok.type not in _IGNORED_TOKENS
        ]
    except (tokenize.TokenError, SyntaxError):
        # unfinished bracket or string; fall back to the raw text
        return line.rstrip().endswith(":")
    return bool(tokens) and tokens[-1].string == ":"


def _closing_paren(text: str) -> int:
    """Index of the parenthesis closing ``text[0]``, or -1."""
    depth = 0
    quote = None
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 1
            elif ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def split_visitor_call(content: str) -> Tuple[str, str, str]:
    """
    Split a visitor call into name, argument list and expression.

    ``printf('<b>%s</b>') title`` gives
    ``('printf', "'<b>%s</b>'", 'title')``.

    Raises:
        CompileError: If the name or expression is missing
    """
    text = content.strip()
    match = _VISITOR_NAME.match(text)
    if match is None:
        raise CompileError("Visitor call must start with a visitor name")
    name = match.group(0)
    rest = text[match.end():]

    args = ""
    if rest.startswith("("):
        end = _closing_paren(rest)
        if end < 0:
            raise CompileError(f"Unclosed argument list in visitor call '{name}'")
        args = rest[1:end].strip()
        rest = rest[end + 1:]

    expression = rest.strip()
    if not expression:
        raise CompileError(f"Visitor call '{name}' has no expression")
    return name, args, expression


class CodeGenerator:
    """
    Generates render procedure source from template text.

    The generator keeps no per-compilation state, so one instance may
    compile several templates concurrently.
    """

    def __init__(
        self,
        visitor_registry: Optional[VisitorRegistry] = None,
        check_visitors: bool = True,
        indent_size: int = DEFAULT_INDENT_SIZE,
    ):
        self.scanner = Scanner()
        self.localization = LocalizationCompiler(self)
        self.visitor_registry = visitor_registry
        self.check_visitors = check_visitors
        self.indent_size = indent_size
        self._handlers: Dict[ScannerState, Callable[[str, CodeBuilder, int], None]] = {
            ScannerState.OUTER: self._emit_text,
            ScannerState.CODE_LINE: self._emit_code,
            ScannerState.CODE_SPAN: self._emit_code,
            ScannerState.CODE_PRINT: self._emit_print,
            ScannerState.CODE_TEMPLATE_CALL: self._emit_template_call,
            ScannerState.CODE_VISITOR_CALL: self._emit_visitor_call,
            ScannerState.CODE_COMMENT: self._emit_nothing,
            ScannerState.LOCALIZATION: self.localization.compile,
        }

    def compile_template(
        self,
        source: str,
        owner: str,
        name: str,
        source_path: Optional[str] = None,
    ) -> str:
        """
        Compile template text into the text of an artifact module.

        Args:
            source: Template source text
            owner: Type that owns the template
            name: Template name
            source_path: Path of the source, recorded in the artifact header

        Returns:
            Python module source defining ``render``

        Raises:
            CompileError: If the template is malformed
            VisitorNotRegistered: If visitor checking is on and a call
                names an unknown visitor
        """
        identity = template_identity(owner, name)
        builder = CodeBuilder(self.indent_size)

        try:
            self._emit_module_start(builder, owner, name, source_path)
            mark = builder.checkpoint()
            self.compile_text(source, builder)
            builder.ensure_closed(mark)
            builder.source_offset = None
            self._emit_module_end(builder)
            code = builder.build()
            self._validate(code, builder, source_path or identity)
        except CompileError as e:
            line = line_of_offset(source, e.offset) if e.offset is not None else e.line
            raise CompileError(e.message, identity, e.offset, line) from None
        except VisitorNotRegistered as e:
            raise VisitorNotRegistered(e.name, identity) from None

        logger.debug(f"Generated {len(code)} chars for template {identity}")
        return code

    def compile_text(self, text: str, builder: CodeBuilder, base_offset: int = 0) -> None:
        """Scan ``text`` and emit its statements; offsets are relative to ``base_offset``."""
        try:
            tokens = self.scanner.scan(text)
        except CompileError as e:
            raise CompileError(e.message, offset=base_offset + (e.offset or 0)) from None
        self.generate_body(tokens, builder, base_offset)

    def generate_body(self, tokens: List[Token], builder: CodeBuilder, base_offset: int = 0) -> None:
        """Emit statements for ``tokens`` in document order."""
        for token in tokens:
            offset = base_offset + token.offset
            builder.source_offset = offset
            try:
                self._handlers[token.state](token.content, builder, offset)
            except CompileError as e:
                if e.offset is None:
                    raise CompileError(e.message, offset=offset) from None
                raise

    def _emit_module_start(self, builder: CodeBuilder, owner: str, name: str, source_path: Optional[str]) -> None:
        if source_path:
            builder.add_comment(f"Compiled from {source_path}. Do not edit.")
        builder.add_line(f"OWNER = {owner!r}")
        builder.add_line(f"NAME = {name!r}")
        builder.add_line(f"COMPILER_VERSION = {COMPILER_VERSION!r}")
        builder.add_empty_line()
        builder.add_empty_line()
        builder.begin_block(f"def {ENTRY_POINT}(self, {RUNTIME_NAME}, *args, **kwargs):", user=False)
        builder.add_line(f"view = {RUNTIME_NAME}.view")
        builder.add_line(f"{TEXT_HELPER} = {RUNTIME_NAME}.text")
        builder.add_line(f"{VISIT_HELPER} = {RUNTIME_NAME}.visit")
        builder.add_line(f"{LANGUAGE_HELPER} = {RUNTIME_NAME}.language")
        builder.add_empty_line()
        builder.begin_block(f"def {VIEW_FUNCTION}({SINK_NAME}, {CONTEXT_NAME}):", user=False)

    def _emit_module_end(self, builder: CodeBuilder) -> None:
        builder.end_block(user=False)
        builder.add_empty_line()
        builder.add_line(f"return {VIEW_FUNCTION}")
        builder.end_block(user=False)

    def _emit_text(self, text: str, builder: CodeBuilder, offset: int) -> None:
        builder.add_line(f"{SINK_NAME}({text!r})")

    def _emit_code(self, code: str, builder: CodeBuilder, offset: int) -> None:
        for line in strip_code_lines(code):
            if _BLOCK_END.match(line):
                builder.end_block(offset)
            elif _CONTINUATION.match(line):
                builder.continue_block(line, offset)
            elif opens_block(line):
                builder.begin_block(line, offset)
            else:
                builder.add_line(line)

    def _emit_print(self, expression: str, builder: CodeBuilder, offset: int) -> None:
        expression = expression.strip()
        if not expression:
            raise CompileError("Empty print expression", offset=offset)
        builder.add_statement(f"{SINK_NAME}({TEXT_HELPER}(({expression})))")

    def _emit_template_call(self, expression: str, builder: CodeBuilder, offset: int) -> None:
        expression = expression.strip()
        if not expression:
            raise CompileError("Empty template call", offset=offset)
        builder.add_statement(f"({expression})({SINK_NAME}, {CONTEXT_NAME})")

    def _emit_visitor_call(self, content: str, builder: CodeBuilder, offset: int) -> None:
        name, args, expression = split_visitor_call(content)
        if self.check_visitors and self.visitor_registry is not None and name not in self.visitor_registry:
            raise VisitorNotRegistered(name)

        call = f"{VISIT_HELPER}({SINK_NAME}, {CONTEXT_NAME}, {name!r}, ({expression})"
        if args:
            call += f", {args}"
        builder.add_statement(call + ")")

    def _emit_nothing(self, content: str, builder: CodeBuilder, offset: int) -> None:
        pass

    @staticmethod
    def _validate(code: str, builder: CodeBuilder, filename: str) -> None:
        """Reject templates whose code regions are not valid Python."""
        try:
            compile(code, filename, "exec", dont_inherit=True)
        except SyntaxError as e:
            raise CompileError(
                f"Invalid Python in template code: {e.msg}",
                offset=builder.offset_of_line(e.lineno),
            ) from None
