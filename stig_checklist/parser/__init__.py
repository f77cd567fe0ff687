"""
Document readers.

XCCDF benchmarks and the DISA CCI list. Readers build model records and
never touch the repository themselves.
"""

from __future__ import annotations

from stig_checklist.parser.xccdf import XccdfParser, ParserState, ParseResult
from stig_checklist.parser.cci_list import parse_cci_list, control_from_index

__all__ = [
    "XccdfParser",
    "ParserState",
    "ParseResult",
    "parse_cci_list",
    "control_from_index",
]
