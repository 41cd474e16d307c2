"""
Package information utility.

This module provides a command-line utility for displaying
information about the Stencil installation, its configuration and
the registered visitors.
"""

import sys
import platform
from typing import Dict, Any
import stencil


def get_system_info() -> Dict[str, Any]:
    """
    Get system information relevant to Stencil.

    Returns:
        Dictionary containing system information
    """
    info = {
        'python_version': sys.version,
        'platform': platform.platform(),
        'architecture': platform.architecture(),
        'processor': platform.processor(),
    }

    try:
        import fcntl  # noqa: F401
        info['file_locking'] = 'fcntl'
    except ImportError:
        info['file_locking'] = 'unavailable (compilation serialized per process only)'

    return info


def get_stencil_info() -> Dict[str, Any]:
    """
    Get Stencil-specific information.

    Returns:
        Dictionary containing Stencil information
    """
    from .config import get_config
    from ..context import ensure_context_initialized

    config = get_config()
    info = {
        'version': stencil.__version__,
        'author': stencil.__author__,
        'config_file': str(config.config_file) if config.config_file else None,
        'config': config.to_dict(),
    }

    try:
        info['visitors'] = ensure_context_initialized().get_visitor_registry().list_visitors()
    except RuntimeError as e:
        info['context_error'] = str(e)

    return info


def print_info() -> None:
    """Print formatted information about Stencil and the system."""
    print("Stencil Template Compiler")
    print("=" * 40)

    stencil_info = get_stencil_info()
    print(f"\nStencil Version: {stencil_info['version']}")
    print(f"Author: {stencil_info['author']}")
    print(f"Config File: {stencil_info['config_file'] or 'defaults'}")

    paths = stencil_info['config']['paths']
    cache = stencil_info['config']['cache']
    print(f"Content Roots: {', '.join(paths['content_roots'])}")
    print(f"Generated Root: {paths['generated_root']}")
    print(f"Auto Reload: {cache['auto_reload']}")
    print(f"Lock Timeout: {cache['lock_timeout_seconds']}")

    if 'visitors' in stencil_info:
        print(f"Visitors: {', '.join(stencil_info['visitors'])}")

    if 'context_error' in stencil_info:
        print(f"Context Error: {stencil_info['context_error']}")

    system_info = get_system_info()
    print(f"\nPython Version: {system_info['python_version'].split()[0]}")
    print(f"Platform: {system_info['platform']}")
    print(f"Architecture: {system_info['architecture'][0]}")
    print(f"File Locking: {system_info['file_locking']}")


def main() -> None:
    """Main entry point for the stencil-info command."""
    try:
        print_info()
    except Exception as e:
        print(f"Error getting system information: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
