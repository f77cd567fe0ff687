"""Core infrastructure modules.

Provides configuration, logging, dependency detection and the shared
constants and enumerations used by every other package.
"""

from __future__ import annotations

from stig_checklist.core.constants import (
    VERSION,
    BUILD_DATE,
    APP_NAME,
    Status,
    Severity,
    ENCODINGS,
    MAX_XML_SIZE,
    MAX_ARCHIVE_MEMBER,
    XCCDF_SUFFIXES,
    DEFAULT_REMAP_CCI,
)
from stig_checklist.core.deps import Deps
from stig_checklist.core.config import Cfg
from stig_checklist.core.logging import Log, LOG

Deps.check()

__all__ = [
    "VERSION",
    "BUILD_DATE",
    "APP_NAME",
    "Status",
    "Severity",
    "ENCODINGS",
    "MAX_XML_SIZE",
    "MAX_ARCHIVE_MEMBER",
    "XCCDF_SUFFIXES",
    "DEFAULT_REMAP_CCI",
    "Deps",
    "Cfg",
    "Log",
    "LOG",
]
