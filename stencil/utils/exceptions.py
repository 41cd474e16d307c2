"""
Custom exception definitions.

This module defines the exception hierarchy for Stencil-specific
errors. Every error raised while resolving, compiling, loading or
rendering a template derives from StencilError and propagates to the
caller of ``render``.
"""

from typing import Optional


class StencilError(Exception):
    """
    Base exception for all Stencil-related errors.

    This is the root exception class for all Stencil-specific
    errors, providing common functionality and error handling.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize Stencil error.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return formatted error message."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class TemplateNotFound(StencilError):
    """
    Raised when no ancestor of a type owns the requested template.

    This is fatal to the render call and is never retried.
    """

    def __init__(self, type_id: str, name: str, searched: Optional[list] = None):
        """
        Initialize template-not-found error.

        Args:
            type_id: Type the template was requested for
            name: Requested template name
            searched: Ancestors that were searched, most specific first
        """
        details = {'type_id': type_id, 'name': name}
        if searched:
            details['searched'] = ",".join(searched)
        super().__init__(f"Undefined template '{name}' for {type_id}", details)
        self.type_id = type_id
        self.name = name
        self.searched = list(searched or [])


class CompileError(StencilError):
    """
    Raised when a template body is malformed.

    Covers unterminated blocks, unbalanced code blocks and malformed
    localization tags. Carries the template identity and the source
    offset and line of the offending construct where known.
    """

    def __init__(
        self,
        message: str,
        template: Optional[str] = None,
        offset: Optional[int] = None,
        line: Optional[int] = None,
    ):
        """
        Initialize compilation error.

        Args:
            message: Error description
            template: Template identity ("Owner#name"), if known
            offset: Character offset into the template source
            line: 1-based line number of the offset
        """
        details = {}
        if template is not None:
            details['template'] = template
        if line is not None:
            details['line'] = line
        if offset is not None:
            details['offset'] = offset

        super().__init__(message, details)
        self.template = template
        self.offset = offset
        self.line = line


class TemplateIOError(StencilError):
    """
    Raised when reading, writing or publishing an artifact fails.

    A compilation aborted by this error never publishes a partial
    artifact, so the next render call may simply retry.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        """
        Initialize I/O error.

        Args:
            message: Error description
            path: File the failing operation was working on
        """
        details = {}
        if path is not None:
            details['path'] = path
        super().__init__(message, details)
        self.path = path


class VisitorNotRegistered(StencilError):
    """
    Raised when a visitor call names an unregistered transform.

    Detected at compile time when visitor checking is enabled and
    always at execution time of the generated procedure.
    """

    def __init__(self, name: str, template: Optional[str] = None):
        details = {'visitor': name}
        if template is not None:
            details['template'] = template
        super().__init__(f"Visitor '{name}' is not registered", details)
        self.name = name
        self.template = template


class LockTimeoutError(StencilError):
    """
    Raised when the compile lock for a template cannot be acquired in time.

    Distinct from CompileError: the template itself may be fine, another
    caller simply held the lock for longer than the configured bound.
    """

    def __init__(self, path: str, timeout: float):
        super().__init__(
            "Timed out waiting for compile lock",
            {'path': path, 'timeout': timeout},
        )
        self.path = path
        self.timeout = timeout


class HierarchyError(StencilError):
    """
    Raised when a type hierarchy cannot be linearized.

    Covers inheritance cycles and base orders that admit no consistent
    method resolution order.
    """

    def __init__(self, type_id: str, reason: str):
        super().__init__(f"Invalid type hierarchy for {type_id}: {reason}", {'type_id': type_id})
        self.type_id = type_id
        self.reason = reason
