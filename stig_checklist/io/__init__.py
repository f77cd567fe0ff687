"""
File I/O modules.

Atomic writes, encoding-tolerant reads and in-memory archive extraction.
"""

from __future__ import annotations

from stig_checklist.io.file_ops import FO, retry

__all__ = [
    "FO",
    "retry",
]
