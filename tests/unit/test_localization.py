"""
Unit tests for the localization sub-compiler.

Tests language block discovery, the generated selection chain,
language choice with fallback and malformed localization regions.
"""

import logging

import pytest

from stencil.codegen.generator import CodeGenerator
from stencil.codegen.localization import LanguageBlock, find_language_blocks
from stencil.codegen.visitors import VisitorRegistry
from stencil.runtime.loader import RenderProcedure
from stencil.runtime.render_context import RenderContext
from stencil.runtime.template_runtime import TemplateRuntime
from stencil.utils.exceptions import CompileError


def render(code, ctx, *args):
    procedure = RenderProcedure.load_from_source(code)
    runtime = TemplateRuntime(cache=None, type_id="Page", instance=None, visitors=VisitorRegistry())
    chunks = []
    procedure(None, runtime, *args)(chunks.append, ctx)
    return "".join(chunks)


class TestFindLanguageBlocks:
    """Test splitting a localization region into language blocks."""

    def test_blocks_in_order(self):
        """Test that blocks are returned in document order with offsets."""
        blocks = find_language_blocks("<fr>Salut</fr> <en>Hi</en>")
        assert blocks == [LanguageBlock("fr", "Salut", 4), LanguageBlock("en", "Hi", 19)]

    def test_no_blocks(self):
        """Test a region without language blocks."""
        assert find_language_blocks("just text") == []

    def test_missing_closing_tag(self):
        """Test that a missing closing tag is an error."""
        with pytest.raises(CompileError) as exc_info:
            find_language_blocks("<en>Hi</en><fr>Salut")
        assert "</fr>" in exc_info.value.message
        assert exc_info.value.offset == 11

    def test_duplicate_language(self):
        """Test that a language may only be declared once."""
        with pytest.raises(CompileError):
            find_language_blocks("<en>a</en><en>b</en>")


class TestLocalizationCompiler:
    """Test compiling localization regions into templates."""

    def setup_method(self):
        """Set up test fixtures."""
        self.generator = CodeGenerator(VisitorRegistry())
        self.code = self.generator.compile_template(
            "[<l10n><en>Hello</en><fr>Bonjour</fr></l10n>]", "Page", "greeting"
        )

    def test_generated_selection(self):
        """Test the emitted language selection and branches."""
        assert "_lang = _language(ctx, ('en', 'fr'))" in self.code
        assert "if _lang == 'en':" in self.code
        assert "elif _lang == 'fr':" in self.code

    def test_preferred_language(self):
        """Test that the context's preferred language is rendered."""
        assert render(self.code, RenderContext(["fr"])) == "[Bonjour]"
        assert render(self.code, RenderContext(["en"])) == "[Hello]"

    def test_preference_order(self):
        """Test that earlier preferences win."""
        assert render(self.code, RenderContext(["de", "fr", "en"])) == "[Bonjour]"

    def test_fallback_to_first_declared(self):
        """Test fallback when no preferred language is declared."""
        assert render(self.code, RenderContext(["de"])) == "[Hello]"
        assert render(self.code, None) == "[Hello]"

    def test_nested_directives(self):
        """Test that language bodies are compiled as templates."""
        code = self.generator.compile_template(
            "<l10n><en>Hi <%= args[0] %></en><fr>% for c in 'ab':\n<%= c %>\n% end\n</fr></l10n>",
            "Page",
            "nested",
        )
        assert render(code, RenderContext(["en"]), "Ann") == "Hi Ann"
        assert render(code, RenderContext(["fr"]), "Ann") == "a\nb\n"

    def test_two_regions(self):
        """Test that each region gets its own selection variable."""
        code = self.generator.compile_template(
            "<l10n><en>a</en></l10n><l10n><en>b</en></l10n>", "Page", "twice"
        )
        assert "_lang1 = _language(ctx, ('en',))" in code
        assert render(code, RenderContext(["en"])) == "ab"

    def test_empty_language_body(self):
        """Test that an empty language body renders nothing."""
        code = self.generator.compile_template("<l10n><en></en><fr>x</fr></l10n>", "Page", "empty")
        assert render(code, RenderContext(["en"])) == ""

    def test_empty_region_warns(self, caplog):
        """Test that a region without languages emits nothing."""
        logger = logging.getLogger("stencil")
        logger.propagate = True
        try:
            with caplog.at_level(logging.WARNING, logger="stencil"):
                code = self.generator.compile_template("a<l10n> </l10n>b", "Page", "none")
        finally:
            logger.propagate = False
        assert "_language" not in code.split("def _view", 1)[1]
        assert render(code, RenderContext(["en"])) == "ab"
        assert "declares no languages" in caplog.text

    def test_missing_closing_tag_line(self):
        """Test that errors point into the template source."""
        with pytest.raises(CompileError) as exc_info:
            self.generator.compile_template("x\n<l10n>\n<en>Hi\n</l10n>", "Page", "broken")
        assert exc_info.value.line == 3
        assert exc_info.value.template == "Page#broken"

    def test_unbalanced_code_in_language_body(self):
        """Test that blocks must close inside their language body."""
        with pytest.raises(CompileError):
            self.generator.compile_template(
                "<l10n><en>% if True:\nx</en></l10n>\n% end\n", "Page", "leak"
            )
