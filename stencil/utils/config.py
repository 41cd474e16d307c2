"""
Configuration System for Stencil.

This module provides a unified configuration interface for the template
engine: where sources and generated artifacts live, how the compile cache
behaves, code generation switches and logging.
"""

import json
import os
from typing import Dict, Any, Optional, List
from pathlib import Path
from dataclasses import dataclass, field

import yaml

from .constants import (
    SOURCE_EXTENSIONS,
    ARTIFACT_EXTENSION,
    DEFAULT_CONTENT_ROOT,
    DEFAULT_GENERATED_ROOT,
    DEFAULT_LOCK_TIMEOUT_SECONDS,
    DEFAULT_INDENT_SIZE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_FILE,
    CONFIG_FILE_NAMES,
)
from .logging import get_logger

logger = get_logger(__name__)

_TRUE_VALUES = ("1", "true", "yes")


@dataclass
class PathsConfig:
    """Locations of template sources and compiled artifacts."""

    content_roots: List[str] = field(default_factory=lambda: [DEFAULT_CONTENT_ROOT])
    generated_root: str = DEFAULT_GENERATED_ROOT
    source_extensions: List[str] = field(default_factory=lambda: list(SOURCE_EXTENSIONS))
    artifact_extension: str = ARTIFACT_EXTENSION


@dataclass
class CacheConfig:
    """Compile cache configuration."""

    # Development mode: allows clearing loaded templates and skips
    # caching of owner resolution so new source files are picked up.
    auto_reload: bool = False
    lock_timeout_seconds: Optional[float] = DEFAULT_LOCK_TIMEOUT_SECONDS


@dataclass
class CompilationConfig:
    """Code generation configuration."""

    indent_size: int = DEFAULT_INDENT_SIZE
    check_visitors: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = DEFAULT_LOG_LEVEL
    enable_file_logging: bool = False
    log_file: str = DEFAULT_LOG_FILE


class StencilConfig:
    """
    Unified configuration manager for Stencil.

    Options are read from a single YAML or JSON file; a handful of
    environment variables override the file for deployment convenience.
    """

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to configuration file. If None, the first of
                CONFIG_FILE_NAMES found in the working directory is used.
        """
        self.config_file = self._get_config_file_path(config_file)
        self._config_data = self._load_config()

        self.paths = self._create_paths_config()
        self.cache = self._create_cache_config()
        self.compilation = self._create_compilation_config()
        self.logging = self._create_logging_config()

    def _get_config_file_path(self, config_file: Optional[str]) -> Optional[Path]:
        """Get the configuration file path."""
        if config_file:
            return Path(config_file)

        for name in CONFIG_FILE_NAMES:
            candidate = Path.cwd() / name
            if candidate.exists():
                return candidate
        return None

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file (JSON or YAML)."""
        if self.config_file is None:
            return {}
        if not self.config_file.exists():
            logger.warning(f"Configuration file {self.config_file} not found, using defaults")
            return {}
        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                if self.config_file.suffix.lower() in (".yaml", ".yml"):
                    config_data = yaml.safe_load(f)
                else:
                    config_data = json.load(f)
            logger.info(f"Loaded configuration from {self.config_file}")
            return config_data or {}
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Failed to load configuration: {e}")
            return {}

    def _create_paths_config(self) -> PathsConfig:
        """Create paths configuration from loaded data."""
        paths_data = self._config_data.get("paths", {})

        content_roots = paths_data.get("content_roots", [DEFAULT_CONTENT_ROOT])
        if isinstance(content_roots, str):
            content_roots = [content_roots]

        generated_root = os.getenv("STENCIL_GENERATED_ROOT") or paths_data.get(
            "generated_root", DEFAULT_GENERATED_ROOT
        )

        return PathsConfig(
            content_roots=list(content_roots),
            generated_root=generated_root,
            source_extensions=list(paths_data.get("source_extensions", SOURCE_EXTENSIONS)),
            artifact_extension=paths_data.get("artifact_extension", ARTIFACT_EXTENSION),
        )

    def _create_cache_config(self) -> CacheConfig:
        """Create cache configuration from loaded data."""
        cache_data = self._config_data.get("cache", {})

        env_reload = os.getenv("STENCIL_AUTO_RELOAD", "").lower() in _TRUE_VALUES
        auto_reload = env_reload or cache_data.get("auto_reload", False)

        timeout = cache_data.get("lock_timeout_seconds", DEFAULT_LOCK_TIMEOUT_SECONDS)
        env_timeout = os.getenv("STENCIL_LOCK_TIMEOUT")
        if env_timeout:
            try:
                timeout = float(env_timeout)
            except ValueError:
                logger.warning(f"Ignoring invalid STENCIL_LOCK_TIMEOUT value: {env_timeout!r}")

        return CacheConfig(auto_reload=auto_reload, lock_timeout_seconds=timeout)

    def _create_compilation_config(self) -> CompilationConfig:
        """Create compilation configuration from loaded data."""
        comp_data = self._config_data.get("compilation", {})

        return CompilationConfig(
            indent_size=comp_data.get("indent_size", DEFAULT_INDENT_SIZE),
            check_visitors=comp_data.get("check_visitors", True),
        )

    def _create_logging_config(self) -> LoggingConfig:
        """Create logging configuration from loaded data."""
        log_data = self._config_data.get("logging", {})

        return LoggingConfig(
            level=log_data.get("level", DEFAULT_LOG_LEVEL),
            enable_file_logging=log_data.get("enable_file_logging", False),
            log_file=log_data.get("log_file", DEFAULT_LOG_FILE),
        )

    def is_auto_reload(self) -> bool:
        """Check if development hot reload is enabled."""
        return self.cache.auto_reload

    def to_dict(self) -> Dict[str, Any]:
        """Return the effective configuration as plain data."""
        return {
            "version": "1.0",
            "description": "Stencil Configuration",
            "paths": {
                "content_roots": list(self.paths.content_roots),
                "generated_root": self.paths.generated_root,
                "source_extensions": list(self.paths.source_extensions),
                "artifact_extension": self.paths.artifact_extension,
            },
            "cache": {
                "auto_reload": self.cache.auto_reload,
                "lock_timeout_seconds": self.cache.lock_timeout_seconds,
            },
            "compilation": {
                "indent_size": self.compilation.indent_size,
                "check_visitors": self.compilation.check_visitors,
            },
            "logging": {
                "level": self.logging.level,
                "enable_file_logging": self.logging.enable_file_logging,
                "log_file": self.logging.log_file,
            },
        }

    def save_config(self, config_file: Optional[str] = None) -> None:
        """Save current configuration to file."""
        target = Path(config_file) if config_file else self.config_file
        if target is None:
            target = Path.cwd() / CONFIG_FILE_NAMES[0]

        try:
            with open(target, "w", encoding="utf-8") as f:
                if target.suffix.lower() in (".yaml", ".yml"):
                    yaml.safe_dump(self.to_dict(), f, sort_keys=False)
                else:
                    json.dump(self.to_dict(), f, indent=2)
            self.config_file = target
            logger.info(f"Configuration saved to {target}")
        except OSError as e:
            logger.error(f"Failed to save configuration: {e}")


# Global configuration instance
_global_config: Optional[StencilConfig] = None


def get_config() -> StencilConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = StencilConfig()
    return _global_config


def set_config(config: StencilConfig) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config


def load_config(config_file: str) -> StencilConfig:
    """Load configuration from a specific file."""
    return StencilConfig(config_file)
