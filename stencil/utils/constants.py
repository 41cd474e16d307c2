"""
Constants and Enumerations for Stencil.

This module consolidates the constant definitions used across the
project: file extensions, generated-code names, configuration defaults
and other shared values.
"""

from __future__ import annotations

from enum import Enum


# =============================================================================
# Project Layout Constants
# =============================================================================

# Recognized template source extensions, tried in order
SOURCE_EXTENSIONS = (".thtml", ".ttxt")

# Extension of compiled artifacts under the generated-code root
ARTIFACT_EXTENSION = ".tpl.py"

# Suffix of in-flight artifact files before they are published
TEMP_ARTIFACT_SUFFIX = ".tmp"

DEFAULT_CONTENT_ROOT = "app"
DEFAULT_GENERATED_ROOT = "gen"


# =============================================================================
# Code Generation Constants
# =============================================================================

# Names bound inside generated render procedures
SINK_NAME = "_"
CONTEXT_NAME = "ctx"
RUNTIME_NAME = "_rt"
TEXT_HELPER = "_text"
VISIT_HELPER = "_visit"
LANGUAGE_HELPER = "_language"
LANGUAGE_VAR_PREFIX = "_lang"
ENTRY_POINT = "render"
VIEW_FUNCTION = "_view"

# Bumped whenever the shape of generated artifacts changes
COMPILER_VERSION = "1"

# Leading artifact lines searched for header fields such as COMPILER_VERSION
HEADER_LINES = 10

# Block keywords understood by the code generator
BLOCK_END_PATTERN = r"^end\w*$"
CONTINUATION_KEYWORDS = ("else", "elif", "except", "finally")

DEFAULT_INDENT_SIZE = 4


# =============================================================================
# Cache and Locking Constants
# =============================================================================

DEFAULT_LOCK_TIMEOUT_SECONDS = 30.0
LOCK_POLL_INTERVAL_SECONDS = 0.01


# =============================================================================
# Logging Constants
# =============================================================================

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FILE = "stencil.log"
LOGGER_NAMESPACE = "stencil"


# =============================================================================
# Utility Constants
# =============================================================================

CAMEL_CASE_PATTERN = r'(?<!^)([A-Z])'
SNAKE_CASE_REPLACEMENT = r'_\1'

# Separators splitting compound type ids into path segments
TYPE_SEGMENT_SEPARATORS = ("_", ".")

CONFIG_FILE_NAMES = ["stencil.yaml", "stencil.yml", "stencil.json"]


class CompilationStatus(Enum):
    """Outcome of a locked recompilation attempt."""

    COMPILED = "compiled"
    RACED = "raced"  # another caller published while we waited on the lock
