"""
XML processing modules.

Schema constants, input sanitization, the vulnerability discussion reader
and shared ElementTree helpers for XCCDF, CKL and CMRS documents.
"""

from __future__ import annotations

from stig_checklist.xml.schema import Sch
from stig_checklist.xml.sanitizer import San
from stig_checklist.xml.utils import XmlUtils
from stig_checklist.xml.discussion import DISCUSSION_TAGS, parse_discussion

__all__ = [
    "Sch",
    "San",
    "XmlUtils",
    "DISCUSSION_TAGS",
    "parse_discussion",
]
