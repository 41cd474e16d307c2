"""
Codegen package: template scanning and Python code generation.

This package turns template source text into the text of a Python
module defining a render procedure.
"""

from .scanner import Scanner, ScannerState, Token, TRANSITIONS
from .builder import CodeBuilder
from .generator import CodeGenerator, compiler_mtime_ns, compiler_module_paths, COMPILER_MODULES
from .localization import LocalizationCompiler, LanguageBlock, find_language_blocks
from .visitors import VisitorRegistry, VisitorInfo, get_visitor_registry, visitor

__all__ = [
    # Scanning
    "Scanner",
    "ScannerState",
    "Token",
    "TRANSITIONS",
    # Generation
    "CodeBuilder",
    "CodeGenerator",
    "compiler_mtime_ns",
    "compiler_module_paths",
    "COMPILER_MODULES",
    "LocalizationCompiler",
    "LanguageBlock",
    "find_language_blocks",
    # Visitors
    "VisitorRegistry",
    "VisitorInfo",
    "get_visitor_registry",
    "visitor",
]
