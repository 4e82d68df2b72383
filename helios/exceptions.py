"""
Helios — Exception Hierarchy
==============================

What:  Exceptions for programmer and lifecycle failures.
How:   Each exception carries a message and optional context dict.
Who:   Raised by the request wrapper and the application handle.

Request-level problems that should become an HTTP response (bad content
type, malformed JSON, form validation) are NOT exceptions; see helios.errors.

Exception Hierarchy:
    HeliosError (base)
    ├── InvalidURLParamError          (also a ValueError)
    └── DatabaseInitializationError   → fatal, aborts startup
"""

from typing import Any, Dict, Optional


class HeliosError(Exception):
    """
    Base exception for all Helios errors.

    Attributes:
        message:  Human-readable error description
        context:  Additional debug info (logged, never sent to clients)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class InvalidURLParamError(HeliosError, ValueError):
    """
    Raised when a URL parameter cannot be read as an unsigned 32-bit integer.

    When:    The parameter is absent, not purely numeric, or exceeds 2**32 - 1.
    """

    def __init__(
        self,
        key: str,
        value: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["key"] = key
        ctx["value"] = value
        super().__init__(message=f"Failed to parse param '{key}' as uint", context=ctx)
        self.key = key
        self.value = value


class DatabaseInitializationError(HeliosError):
    """
    Raised when the production store cannot be opened.

    When:    Helios.initialize() fails to validate settings or connect.
    Recovery: None. Startup must abort.
    """

    def __init__(
        self,
        message: str = "Failed to open the database",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
