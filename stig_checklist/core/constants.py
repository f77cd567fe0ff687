"""STIG Checklist constants module.

This module defines application constants and the enumerations shared by the
parser, the repository and both exporters. The textual forms written by the
exporters are fixed by downstream tooling and must not change.
"""

from __future__ import annotations

import platform
from enum import Enum


# ──────────────────────────────────────────────────────────────────────────────
# VERSION INFORMATION
# ──────────────────────────────────────────────────────────────────────────────

VERSION = "1.0.0"
BUILD_DATE = "2026-10-19"
APP_NAME = "STIG Checklist"


# ──────────────────────────────────────────────────────────────────────────────
# PLATFORM DETECTION
# ──────────────────────────────────────────────────────────────────────────────

IS_WINDOWS = platform.system() == "Windows"


# ──────────────────────────────────────────────────────────────────────────────
# FILE OPERATION CONSTANTS
# ──────────────────────────────────────────────────────────────────────────────

LARGE_FILE_THRESHOLD = 50 * 1024 * 1024  # 50MB
MAX_RETRIES = 3
RETRY_DELAY = 0.5
MAX_XML_SIZE = 500 * 1024 * 1024
MAX_ARCHIVE_MEMBER = 200 * 1024 * 1024


# ──────────────────────────────────────────────────────────────────────────────
# CHARACTER ENCODINGS
# ──────────────────────────────────────────────────────────────────────────────

ENCODINGS = [
    "utf-8",
    "utf-8-sig",
    "utf-16",
    "latin-1",
    "cp1252",
]


# ──────────────────────────────────────────────────────────────────────────────
# XCCDF INGESTION
# ──────────────────────────────────────────────────────────────────────────────

# Archive members parsed as benchmarks (case-insensitive suffix match)
XCCDF_SUFFIXES = ("-xccdf.xml", "manual_stig.xml")

# CCI-000366 (CM-6 b) is the fallback for checks without any usable CCI
DEFAULT_REMAP_CCI = 366
REMAP_CONTROL_FAMILY = "CM-6"


# ──────────────────────────────────────────────────────────────────────────────
# ENUMERATIONS
# ──────────────────────────────────────────────────────────────────────────────


class Status(str, Enum):
    """Checklist finding status (CKL token values).

    Values are case-sensitive and match what STIG Viewer reads.
    """

    NOT_REVIEWED = "Not_Reviewed"
    OPEN = "Open"
    NOT_A_FINDING = "NotAFinding"
    NOT_APPLICABLE = "Not_Applicable"

    @classmethod
    def parse(cls, value: str) -> "Status":
        """Leniently map free text to a status.

        Accepts the CKL tokens as well as human forms such as
        "Not a Finding" or the CMRS abbreviations.
        """
        text = (value or "").strip().lower()
        if text.startswith("o"):
            return cls.OPEN
        if text.startswith(("not_applicable", "not applicable", "na")):
            return cls.NOT_APPLICABLE
        if text.startswith(("notafinding", "not a finding", "nf")):
            return cls.NOT_A_FINDING
        return cls.NOT_REVIEWED

    @property
    def cmrs(self) -> str:
        """Status in the CMRS vocabulary."""
        return _CMRS_STATUS[self]


_CMRS_STATUS = {
    Status.OPEN: "O",
    Status.NOT_APPLICABLE: "NA",
    Status.NOT_A_FINDING: "NF",
    Status.NOT_REVIEWED: "NR",
}


class Severity(str, Enum):
    """STIG severity levels.

    Severity levels correspond to DISA CAT classifications:
    - HIGH = CAT I
    - MEDIUM = CAT II
    - LOW = CAT III
    - NONE = no severity assigned (also "no override" on a checklist)
    """

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"

    @classmethod
    def parse(cls, value: str) -> "Severity":
        """Map a raw severity attribute to a level.

        Anything other than low/medium/high is NONE.
        """
        text = (value or "").strip().lower()
        if text in (cls.HIGH.value, cls.MEDIUM.value, cls.LOW.value):
            return cls(text)
        return cls.NONE

    @property
    def ckl(self) -> str:
        """Token written to CKL files; none is written as empty text."""
        return "" if self is Severity.NONE else self.value
