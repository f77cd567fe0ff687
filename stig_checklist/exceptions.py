"""Custom exception classes for STIG Checklist.

Every error raised by the package derives from STIGError so callers can
catch one base type and still see where the failure came from.
"""

from __future__ import annotations
from typing import Optional, Dict, Any


class STIGError(Exception):
    """Base exception with context.

    Attributes:
        msg: The error message
        ctx: Optional dictionary of contextual information (e.g., file names, rule ids)
    """

    def __init__(self, msg: str, ctx: Optional[Dict[str, Any]] = None):
        super().__init__(msg)
        self.msg = msg
        self.ctx = ctx or {}

    def __str__(self) -> str:
        if self.ctx:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.ctx.items())
            return f"{self.msg} [{ctx_str}]"
        return self.msg


class ValidationError(STIGError):
    """Raised when an identifier, path or field value is rejected."""


class FileError(STIGError):
    """Raised when file or archive operations fail."""


class ParseError(STIGError):
    """Raised when an XML document cannot be parsed at all."""


class RepositoryError(STIGError):
    """Raised when the repository is asked for something it does not hold."""
