"""
Utils package for Stencil.

This module provides utility functions and classes for configuration,
logging, error handling, naming and other common functionality.
"""

# Core utilities
from .exceptions import (
    StencilError,
    TemplateNotFound,
    CompileError,
    TemplateIOError,
    VisitorNotRegistered,
    LockTimeoutError,
    HierarchyError,
)
from .constants import *
from .naming import *
from .string_utils import *

# Configuration and system utilities
from .config import (
    StencilConfig,
    PathsConfig,
    CacheConfig,
    CompilationConfig,
    LoggingConfig,
    get_config,
    set_config,
    load_config,
)

from .logging import setup_logging, get_logger, StencilLogger

__all__ = [
    # Exceptions
    "StencilError",
    "TemplateNotFound",
    "CompileError",
    "TemplateIOError",
    "VisitorNotRegistered",
    "LockTimeoutError",
    "HierarchyError",
    # Configuration
    "StencilConfig",
    "PathsConfig",
    "CacheConfig",
    "CompilationConfig",
    "LoggingConfig",
    "get_config",
    "set_config",
    "load_config",
    # Logging
    "setup_logging",
    "get_logger",
    "StencilLogger",
]
