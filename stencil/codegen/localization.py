"""
Localization sub-compiler.

A ``<l10n>`` region holds one child block per language::

    <l10n><en>Hello</en><fr>Bonjour</fr></l10n>

Each child body is ordinary template text and is compiled recursively.
The region compiles to a language selection followed by an
``if``/``elif`` chain over the declared languages.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, List

from ..utils.constants import CONTEXT_NAME, LANGUAGE_HELPER, LANGUAGE_VAR_PREFIX
from ..utils.exceptions import CompileError
from ..utils.logging import get_logger
from .builder import CodeBuilder

if TYPE_CHECKING:
    from .generator import CodeGenerator

logger = get_logger(__name__)

_LANGUAGE_OPEN = re.compile(r"<([a-z]{2})>")


@dataclass(frozen=True)
class LanguageBlock:
    """One language child of a localization region."""

    language: str
    body: str
    offset: int  # offset of ``body`` within the region


def find_language_blocks(region: str) -> List[LanguageBlock]:
    """
    Split a localization region into its language blocks.

    Text between blocks is ignored. Blocks are returned in the order they
    appear.

    Raises:
        CompileError: On a missing closing tag or a repeated language
    """
    blocks: List[LanguageBlock] = []
    seen = set()
    index = 0
    while True:
        match = _LANGUAGE_OPEN.search(region, index)
        if match is None:
            break
        language = match.group(1)
        closer = f"</{language}>"
        end = region.find(closer, match.end())
        if end < 0:
            raise CompileError(f"Missing {closer} in localization block", offset=match.start())
        if language in seen:
            raise CompileError(f"Language '{language}' declared twice in localization block", offset=match.start())
        seen.add(language)
        blocks.append(LanguageBlock(language, region[match.end():end], match.end()))
        index = end + len(closer)
    return blocks


class LocalizationCompiler:
    """Compiles ``<l10n>`` regions through the owning CodeGenerator."""

    def __init__(self, generator: 'CodeGenerator'):
        self.generator = generator

    def compile(self, region: str, builder: CodeBuilder, base_offset: int = 0) -> None:
        """
        Emit code selecting and rendering one language block.

        Args:
            region: Text between ``<l10n>`` and ``</l10n>``
            builder: Builder receiving the generated statements
            base_offset: Offset of ``region`` in the template source
        """
        try:
            blocks = find_language_blocks(region)
        except CompileError as e:
            raise CompileError(e.message, offset=base_offset + (e.offset or 0)) from None

        if not blocks:
            logger.warning(f"Localization block at offset {base_offset} declares no languages")
            return

        languages = tuple(block.language for block in blocks)
        variable = builder.new_variable(LANGUAGE_VAR_PREFIX)
        builder.add_line(f"{variable} = {LANGUAGE_HELPER}({CONTEXT_NAME}, {languages!r})")

        for i, block in enumerate(blocks):
            header = f"{'if' if i == 0 else 'elif'} {variable} == {block.language!r}:"
            if i == 0:
                builder.begin_block(header, base_offset + block.offset, user=False)
            else:
                builder.continue_block(header, base_offset + block.offset, user=False)
            mark = builder.checkpoint()
            self.generator.compile_text(block.body, builder, base_offset + block.offset)
            builder.ensure_closed(mark)
        builder.end_block(user=False)
