"""STIG Checklist - STIG benchmark ingestion, checklist upgrade and export.

Reads DISA XCCDF benchmarks (loose or inside the quarterly zip bundles),
keeps per-asset checklist answers in a repository, carries answers forward
when a newer release of a STIG arrives, and writes CKL and CMRS files for
downstream compliance tooling.

Package Structure:
    core/           - Configuration, logging, dependency detection, enums
    xml/            - CKL/CMRS schema names, sanitizer, XML helpers
    io/             - Atomic writes, encoding detection, archive extraction
    models/         - Stig, StigCheck, Cci, Asset, CklCheck, Supplement
    parser/         - XCCDF benchmark and CCI list readers
    repository/     - Repository interface and the in-memory implementation
    processor/      - Import, resolve, upgrade and export workers
    ui/             - Command-line interface
"""

from __future__ import annotations

from stig_checklist.core.constants import VERSION, BUILD_DATE, APP_NAME
from stig_checklist.exceptions import (
    STIGError,
    ValidationError,
    FileError,
    ParseError,
    RepositoryError,
)

__version__ = VERSION
__build_date__ = BUILD_DATE
__app_name__ = APP_NAME

__all__ = [
    "VERSION",
    "BUILD_DATE",
    "APP_NAME",
    "STIGError",
    "ValidationError",
    "FileError",
    "ParseError",
    "RepositoryError",
]
