"""
Template scanner.

A finite-state lexer that splits raw template text into regions:
literal text, code lines (``% ...``), code blocks (``<% ... %>`` and
the ``=``, ``!``, ``_``, ``#`` variants) and localization regions
(``<l10n> ... </l10n>``).

The state machine is an explicit transition table keyed by
(state, trigger). Regular expressions are only used to locate the next
trigger that the current state is waiting for, so the table itself can
be tested on its own.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Pattern, Tuple

from ..utils.exceptions import CompileError
from ..utils.string_utils import line_of_offset
from ..utils.logging import get_logger

logger = get_logger(__name__)


class ScannerState(Enum):
    """Scanner states."""

    OUTER = "outer"
    CODE_LINE = "code_line"
    CODE_SPAN = "code_span"
    CODE_PRINT = "code_print"
    CODE_TEMPLATE_CALL = "code_template_call"
    CODE_VISITOR_CALL = "code_visitor_call"
    CODE_COMMENT = "code_comment"
    LOCALIZATION = "localization"
    # Transient: a literal escape was matched, the previous state resumes.
    CODE_SKIP = "code_skip"


# States closed by ``%>`` / ``-%>``
BLOCK_STATES = frozenset({
    ScannerState.CODE_SPAN,
    ScannerState.CODE_PRINT,
    ScannerState.CODE_TEMPLATE_CALL,
    ScannerState.CODE_VISITOR_CALL,
    ScannerState.CODE_COMMENT,
})

TRIM_CLOSER = "-%>"
END_OF_INPUT = ""

_BLOCK_CLOSERS = re.compile(r"[-%]?%>")

EXPECT_PATTERNS: Dict[ScannerState, Pattern] = {
    ScannerState.OUTER: re.compile(r"^[ \t]*%%?|<%[=!_#%]?|<l10n>", re.MULTILINE),
    ScannerState.CODE_LINE: re.compile(r"\n|\Z"),
    ScannerState.LOCALIZATION: re.compile(r"</l10n>"),
}
for _state in BLOCK_STATES:
    EXPECT_PATTERNS[_state] = _BLOCK_CLOSERS

TRANSITIONS: Dict[Tuple[ScannerState, str], ScannerState] = {
    (ScannerState.OUTER, "%"): ScannerState.CODE_LINE,
    (ScannerState.OUTER, "%%"): ScannerState.CODE_SKIP,
    (ScannerState.OUTER, "<%"): ScannerState.CODE_SPAN,
    (ScannerState.OUTER, "<%="): ScannerState.CODE_PRINT,
    (ScannerState.OUTER, "<%!"): ScannerState.CODE_TEMPLATE_CALL,
    (ScannerState.OUTER, "<%_"): ScannerState.CODE_VISITOR_CALL,
    (ScannerState.OUTER, "<%#"): ScannerState.CODE_COMMENT,
    (ScannerState.OUTER, "<%%"): ScannerState.CODE_SKIP,
    (ScannerState.OUTER, "<l10n>"): ScannerState.LOCALIZATION,
    (ScannerState.CODE_LINE, "\n"): ScannerState.OUTER,
    (ScannerState.CODE_LINE, END_OF_INPUT): ScannerState.OUTER,
    (ScannerState.LOCALIZATION, "</l10n>"): ScannerState.OUTER,
}
for _state in BLOCK_STATES:
    TRANSITIONS[(_state, "%>")] = ScannerState.OUTER
    TRANSITIONS[(_state, TRIM_CLOSER)] = ScannerState.OUTER
    TRANSITIONS[(_state, "%%>")] = ScannerState.CODE_SKIP


_OPENERS = {
    ScannerState.CODE_SPAN: "<%",
    ScannerState.CODE_PRINT: "<%=",
    ScannerState.CODE_TEMPLATE_CALL: "<%!",
    ScannerState.CODE_VISITOR_CALL: "<%_",
    ScannerState.CODE_COMMENT: "<%#",
    ScannerState.LOCALIZATION: "<l10n>",
}


def normalize_trigger(state: ScannerState, match: str) -> str:
    """Reduce a matched delimiter to its transition-table key."""
    if state is ScannerState.OUTER and match.lstrip(" \t").startswith("%"):
        # line-start code markers may be preceded by indentation
        return match.lstrip(" \t")
    return match


def next_state(state: ScannerState, trigger: str) -> ScannerState:
    """
    Look up the state following ``state`` on ``trigger``.

    Raises:
        KeyError: If the transition is not part of the grammar
    """
    return TRANSITIONS[(state, normalize_trigger(state, trigger))]


def escaped_literal(trigger: str) -> str:
    """Literal text produced by an escape trigger (``%%``, ``<%%``, ``%%>``)."""
    if trigger.endswith("%>"):
        return "%>"
    return trigger[:-1]


@dataclass(frozen=True)
class Token:
    """
    One scanned region.

    ``state`` is OUTER for literal text; otherwise the code state whose
    closer produced the token. ``offset`` is the position of the region
    content in the scanned text.
    """

    state: ScannerState
    content: str
    offset: int


class Scanner:
    """Splits template text into tokens according to TRANSITIONS."""

    def scan(self, text: str) -> List[Token]:
        """
        Scan ``text`` into a list of tokens in document order.

        Raises:
            CompileError: If a block or localization region is not closed
        """
        tokens: List[Token] = []
        state = ScannerState.OUTER
        index = 0
        trim_newline = False

        literal: List[str] = []
        literal_offset = 0
        code: List[str] = []
        code_offset = 0

        while True:
            match = EXPECT_PATTERNS[state].search(text, index)

            if match is None:
                if state is not ScannerState.OUTER:
                    opener = _OPENERS.get(state, state.value)
                    start = max(code_offset - len(opener), 0)
                    raise CompileError(
                        f"Unterminated {opener} block",
                        offset=start,
                        line=line_of_offset(text, start),
                    )
                chunk, trim_newline = self._trim(text[index:], trim_newline)
                if chunk:
                    if not literal:
                        literal_offset = len(text) - len(chunk)
                    literal.append(chunk)
                self._flush_literal(tokens, literal, literal_offset)
                break

            trigger = match.group(0)
            new_state = next_state(state, trigger)
            chunk = text[index:match.start()]

            if state is ScannerState.OUTER:
                chunk, trim_newline = self._trim(chunk, trim_newline)
                if chunk:
                    if not literal:
                        literal_offset = match.start() - len(chunk)
                    literal.append(chunk)
                if new_state is ScannerState.CODE_SKIP:
                    if not literal:
                        literal_offset = match.start()
                    literal.append(escaped_literal(trigger))
                    index = match.end()
                    continue
                self._flush_literal(tokens, literal, literal_offset)
                state = new_state
                code = []
                code_offset = match.end()
                index = match.end()
                continue

            if new_state is ScannerState.CODE_SKIP:
                code.append(chunk + escaped_literal(trigger))
                index = match.end()
                continue

            code.append(chunk)
            tokens.append(Token(state, "".join(code), code_offset))
            if trigger == TRIM_CLOSER:
                trim_newline = True
            state = new_state
            index = match.end()

            if index >= len(text) and trigger == END_OF_INPUT:
                break

        logger.debug(f"Scanned {len(text)} chars into {len(tokens)} tokens")
        return tokens

    @staticmethod
    def _trim(chunk: str, trim_newline: bool) -> Tuple[str, bool]:
        """Apply a pending ``-%>`` trim to the next non-empty literal chunk."""
        if trim_newline and chunk:
            if chunk[0] == "\n":
                chunk = chunk[1:]
            trim_newline = False
        return chunk, trim_newline

    @staticmethod
    def _flush_literal(tokens: List[Token], literal: List[str], offset: int) -> None:
        if literal:
            tokens.append(Token(ScannerState.OUTER, "".join(literal), offset))
            literal.clear()
