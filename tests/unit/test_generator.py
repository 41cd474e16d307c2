"""
Unit tests for the code generator and code builder.

Tests the generated artifact shape, statement emission for every token
kind, block handling and compile-time error reporting. Generated code is
executed through RenderProcedure with a minimal runtime.
"""

import os
from pathlib import Path

import pytest

from stencil.codegen import generator
from stencil.codegen.builder import CodeBuilder
from stencil.codegen.generator import (
    CodeGenerator,
    compiler_module_paths,
    compiler_mtime_ns,
    opens_block,
    split_visitor_call,
)
from stencil.codegen.visitors import VisitorRegistry
from stencil.runtime.loader import RenderProcedure
from stencil.runtime.render_context import RenderContext
from stencil.runtime.template_runtime import TemplateRuntime
from stencil.utils import constants
from stencil.utils.exceptions import CompileError, VisitorNotRegistered


def run(code, *args, ctx=None, visitors=None, **kwargs):
    """Execute generated code and return the rendered text."""
    procedure = RenderProcedure.load_from_source(code)
    runtime = TemplateRuntime(cache=None, type_id="Page", instance=None, visitors=visitors or VisitorRegistry())
    chunks = []
    procedure(None, runtime, *args, **kwargs)(chunks.append, ctx or RenderContext(["en"]))
    return "".join(chunks)


class TestCodeBuilder:
    """Test the indentation-managing builder."""

    def setup_method(self):
        """Set up test fixtures."""
        self.builder = CodeBuilder()

    def test_blocks_indent(self):
        """Test that block bodies are indented."""
        self.builder.begin_block("if x:")
        self.builder.add_line("y = 1")
        self.builder.end_block()
        assert self.builder.build() == "if x:\n    y = 1\n"

    def test_empty_block_gets_pass(self):
        """Test that an empty block is filled with pass."""
        self.builder.begin_block("for x in xs:")
        self.builder.end_block()
        assert self.builder.build() == "for x in xs:\n    pass\n"

    def test_continue_block(self):
        """Test else-style continuation."""
        self.builder.begin_block("if x:")
        self.builder.continue_block("else:")
        self.builder.add_line("z = 2")
        self.builder.end_block()
        assert self.builder.build() == "if x:\n    pass\nelse:\n    z = 2\n"

    def test_unbalanced_end(self):
        """Test that end without a block is an error."""
        with pytest.raises(CompileError):
            self.builder.end_block(offset=5)

    def test_user_end_cannot_close_structural_block(self):
        """Test that template code cannot close generated blocks."""
        self.builder.begin_block("def f():", user=False)
        with pytest.raises(CompileError):
            self.builder.end_block()

    def test_unclosed_block(self):
        """Test that build() rejects open blocks."""
        self.builder.begin_block("while True:", offset=3)
        with pytest.raises(CompileError) as exc_info:
            self.builder.build()
        assert exc_info.value.offset == 3

    def test_new_variable(self):
        """Test unique variable naming."""
        assert self.builder.new_variable("_lang") == "_lang"
        assert self.builder.new_variable("_lang") == "_lang1"

    def test_offset_of_line(self):
        """Test mapping generated lines back to template offsets."""
        self.builder.source_offset = 7
        self.builder.add_line("x = 1")
        assert self.builder.offset_of_line(1) == 7
        assert self.builder.offset_of_line(5) is None


class TestHelpers:
    """Test generator helper functions."""

    def test_opens_block(self):
        """Test block-opener detection."""
        assert opens_block("for x in xs:")
        assert opens_block("if x:  # trailing comment")
        assert opens_block("else:")
        assert not opens_block("x = {'a': 1}")
        assert not opens_block("f = lambda y: y")
        assert not opens_block("x = [")

    def test_split_visitor_call(self):
        """Test splitting visitor call syntax."""
        assert split_visitor_call(" escape name ") == ("escape", "", "name")
        assert split_visitor_call("printf('<b>%s</b>') title") == ("printf", "'<b>%s</b>'", "title")
        assert split_visitor_call("printf('(%s)') x") == ("printf", "'(%s)'", "x")

    def test_split_visitor_call_errors(self):
        """Test malformed visitor calls."""
        with pytest.raises(CompileError):
            split_visitor_call("  ")
        with pytest.raises(CompileError):
            split_visitor_call("escape")
        with pytest.raises(CompileError):
            split_visitor_call("printf('%s' x")

    def test_compiler_mtime(self):
        """Test that every compiler file, constants included, counts towards the compiler mtime."""
        paths = compiler_module_paths()
        assert Path(constants.__file__).resolve() in paths
        assert Path(generator.__file__).resolve() in paths
        assert all(path.exists() for path in paths)
        assert compiler_mtime_ns() == max(os.stat(path).st_mtime_ns for path in paths)


class TestCodeGenerator:
    """Test template compilation."""

    def setup_method(self):
        """Set up test fixtures."""
        self.visitors = VisitorRegistry()
        self.generator = CodeGenerator(self.visitors)

    def compile(self, source):
        return self.generator.compile_template(source, "Page", "index", "app/page/index.thtml")

    def test_artifact_shape(self):
        """Test the module header and procedure structure."""
        code = self.compile("Hi")
        assert code.startswith("# Compiled from app/page/index.thtml. Do not edit.\n")
        assert "OWNER = 'Page'" in code
        assert "NAME = 'index'" in code
        assert "def render(self, _rt, *args, **kwargs):" in code
        assert "    def _view(_, ctx):" in code
        assert "        _('Hi')" in code
        assert code.rstrip().endswith("return _view")

    def test_deterministic(self):
        """Test that the same source compiles to the same text."""
        source = "% for x in args:\n<%= x %>\n% end\n"
        assert self.compile(source) == self.compile(source)

    def test_metadata(self):
        """Test artifact metadata exposed by the loader."""
        procedure = RenderProcedure.load_from_source(self.compile(""))
        metadata = procedure.get_metadata()
        assert metadata["owner"] == "Page"
        assert metadata["name"] == "index"

    def test_literal_identity(self):
        """Test that text without directives renders unchanged."""
        text = "<p>'quotes' \"double\" \\ back\ttab</p>\n"
        assert run(self.compile(text)) == text

    def test_empty_template(self):
        """Test that an empty template renders nothing."""
        assert run(self.compile("")) == ""

    def test_print(self):
        """Test print blocks and None rendering."""
        code = self.compile("a=<%= args[0] %>, b=<%= kwargs.get('b') %>.")
        assert run(code, 1) == "a=1, b=."
        assert run(code, 1, b=2) == "a=1, b=2."

    def test_loop_with_code_lines(self):
        """Test a loop written with code lines."""
        code = self.compile("<ul>\n% for item in args:\n<li><%= item %></li>\n% end\n</ul>")
        assert run(code, "a", "b") == "<ul>\n<li>a</li>\n<li>b</li>\n</ul>"

    def test_if_else_with_spans(self):
        """Test conditionals written with code blocks."""
        code = self.compile("<% if args[0]: %>yes<% else: %>no<% end %>")
        assert run(code, True) == "yes"
        assert run(code, False) == "no"

    def test_end_variants(self):
        """Test that end followed by a word closes a block."""
        code = self.compile("% for i in range(2):\n<%= i %>\n% endfor\n")
        assert run(code) == "0\n1\n"

    def test_empty_block(self):
        """Test that an empty template block is valid."""
        code = self.compile("% for i in range(3):\n% end\ndone")
        assert run(code) == "done"

    def test_multiline_code_span(self):
        """Test a code block spanning several lines."""
        code = self.compile("<%\n  total = 0\n  for i in range(4):\n    total += i\n  end\n%><%= total %>")
        assert run(code) == "6"

    def test_comment_discarded(self):
        """Test that comments produce no output."""
        assert run(self.compile("a<%# ignored %>b")) == "ab"

    def test_template_call(self):
        """Test calling a view with the current sink and context."""
        code = self.compile("[<%! args[0] %>]")

        def inner(sink, ctx):
            sink("inner:" + ctx.languages[0])

        assert run(code, inner) == "[inner:en]"

    def test_visitor_call(self):
        """Test applying a registered visitor."""
        self.visitors.register("upper", lambda value: str(value).upper())
        code = self.compile("<%_upper 'abc' %>")
        assert "_visit(_, ctx, 'upper', ('abc'))" in code
        assert run(code, visitors=self.visitors) == "ABC"

    def test_visitor_with_arguments(self):
        """Test a visitor call with an argument list."""
        code = self.compile("<%_printf('<b>%s</b>') args[0] %>")
        assert run(code, "x", visitors=self.visitors) == "<b>x</b>"

    def test_visitor_with_keyword_arguments(self):
        """Test a visitor call passing keyword arguments."""
        self.visitors.register("wrap", lambda value, tag="b": f"<{tag}>{value}</{tag}>")
        code = self.compile("<%_wrap(tag='i') 'x' %><%_wrap 'y' %>")
        assert run(code, visitors=self.visitors) == "<i>x</i><b>y</b>"

    def test_visitor_on_view(self):
        """Test that a callable value is rendered before visiting."""
        code = self.compile("<%_escape args[0] %>")

        def inner(sink, ctx):
            sink("<i>")

        assert run(code, inner, visitors=self.visitors) == "&lt;i&gt;"

    def test_unknown_visitor_at_compile_time(self):
        """Test that unknown visitors are rejected when checking is on."""
        with pytest.raises(VisitorNotRegistered) as exc_info:
            self.compile("<%_nope x %>")
        assert exc_info.value.name == "nope"
        assert exc_info.value.template == "Page#index"

    def test_unknown_visitor_at_run_time(self):
        """Test that unknown visitors fail at execution without checking."""
        generator = CodeGenerator(self.visitors, check_visitors=False)
        code = generator.compile_template("<%_nope 1 %>", "Page", "index")
        with pytest.raises(VisitorNotRegistered):
            run(code, visitors=self.visitors)

    def test_unbalanced_end_error(self):
        """Test that an extra end reports its line."""
        with pytest.raises(CompileError) as exc_info:
            self.compile("a\nb\n% end\n")
        error = exc_info.value
        assert error.template == "Page#index"
        assert error.line == 3

    def test_unclosed_block_error(self):
        """Test that an unclosed block is reported."""
        with pytest.raises(CompileError) as exc_info:
            self.compile("x\n% if True:\ny\n")
        assert "Unclosed block" in exc_info.value.message
        assert exc_info.value.line == 2

    def test_indented_code_span_needs_end(self):
        """Test that indentation alone does not close a block in a code span."""
        with pytest.raises(CompileError) as exc_info:
            self.compile("<%\ndef double(v):\n    return v * 2\n%>")
        assert "close it with '% end'" in exc_info.value.message

        code = self.compile("<%\ndef double(v):\n    return v * 2\nend\n%><%= double(args[0]) %>")
        assert run(code, 21) == "42"

    def test_invalid_python_error(self):
        """Test that invalid code is rejected at compile time."""
        with pytest.raises(CompileError) as exc_info:
            self.compile("one\ntwo <%= 1 + %>")
        assert "Invalid Python" in exc_info.value.message
        assert exc_info.value.line == 2

    def test_unterminated_block_error(self):
        """Test that scanner errors carry the template identity."""
        with pytest.raises(CompileError) as exc_info:
            self.compile("a\n<% x = 1")
        assert exc_info.value.template == "Page#index"
        assert exc_info.value.line == 2

    def test_empty_print_error(self):
        """Test that an empty print block is rejected."""
        with pytest.raises(CompileError):
            self.compile("<%= %>")
