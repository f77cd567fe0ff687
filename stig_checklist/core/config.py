"""
STIG Checklist Configuration.

Application directories, processing limits and runtime switches. Everything
lives on the ``Cfg`` class; ``Cfg.init()`` runs once at import time.
"""

from __future__ import annotations

import os
import sys
import tempfile
import threading
from contextlib import suppress
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from stig_checklist.core.constants import MAX_ARCHIVE_MEMBER, MAX_XML_SIZE

HOME_ENV = "STIG_CHECKLIST_HOME"
APP_DIR_NAME = ".stig_checklist"


def _writable(directory: Path) -> bool:
    """Create ``directory`` if needed and prove a file can be written there."""
    try:
        directory.mkdir(parents=True, exist_ok=True)
        probe = directory / f".write_test_{os.getpid()}"
        probe.write_text("ok", encoding="utf-8")
        probe.unlink()
        return True
    except OSError:
        return False


class Cfg:
    """
    Where the repository snapshot, logs and backups go, and the size limits
    applied to benchmark archives.

    ``STIG_CHECKLIST_HOME`` overrides the home lookup, which keeps CI runs
    and shared workstations away from the real profile directory.
    """

    PY_VER = sys.version_info
    MIN_PY = (3, 9)

    HOME: Optional[Path] = None
    APP_DIR: Optional[Path] = None
    LOG_DIR: Optional[Path] = None
    BACKUP_DIR: Optional[Path] = None
    EXPORT_DIR: Optional[Path] = None
    DB_FILE: Optional[Path] = None

    MAX_FILE = MAX_XML_SIZE
    MAX_ARCHIVE_MEMBER = MAX_ARCHIVE_MEMBER
    KEEP_BACKUPS = 30
    KEEP_LOGS = 15

    # Keep non-benchmark archive members (PDFs, overviews) as supplements
    ENABLE_SUPPLEMENTS = True

    _lock = threading.RLock()
    _done = False

    @staticmethod
    def _home_candidates() -> Iterator[Path]:
        override = os.environ.get(HOME_ENV)
        if override:
            yield Path(override).expanduser()
        with suppress(RuntimeError, KeyError):
            yield Path.home()
        for env_var in ("USERPROFILE", "HOME"):
            val = os.environ.get(env_var)
            if val and os.path.isdir(val):
                yield Path(val)
        yield Path(tempfile.gettempdir()) / "stig_user"

    @classmethod
    def init(cls) -> None:
        with cls._lock:
            if cls._done:
                return

            tried: List[str] = []
            for candidate in cls._home_candidates():
                tried.append(str(candidate))
                if _writable(candidate):
                    cls.HOME = candidate
                    break
            else:
                raise RuntimeError(
                    f"Cannot find writable home directory. Tried: {', '.join(tried)}. "
                    f"Set ${HOME_ENV} to a writable directory."
                )

            cls.APP_DIR = cls.HOME / APP_DIR_NAME
            cls.LOG_DIR = cls.APP_DIR / "logs"
            cls.BACKUP_DIR = cls.APP_DIR / "backups"
            cls.EXPORT_DIR = cls.APP_DIR / "exports"
            cls.DB_FILE = cls.APP_DIR / "repository.json"

            for directory in (cls.APP_DIR, cls.LOG_DIR, cls.BACKUP_DIR, cls.EXPORT_DIR):
                if not _writable(directory):
                    raise RuntimeError(f"Cannot write to {directory}")

            cls._done = True

    @classmethod
    def check(cls) -> Tuple[bool, List[str]]:
        """Report missing prerequisites as (ok, [messages])."""
        from stig_checklist.core.deps import Deps

        errs: List[str] = []
        if cls.PY_VER < cls.MIN_PY:
            errs.append(f"Python {cls.MIN_PY[0]}.{cls.MIN_PY[1]}+ required")

        ET, _ = Deps.get_xml()
        try:
            ET.fromstring("<Benchmark/>")
        except Exception as exc:
            errs.append(f"XML parser failed: {exc}")

        for directory in (cls.APP_DIR, cls.BACKUP_DIR):
            if directory and not os.access(directory, os.W_OK):
                errs.append(f"No write permission: {directory}")

        return not errs, errs

    @classmethod
    def cleanup_old(cls) -> Tuple[int, int]:
        """Prune snapshot backups and rotated logs down to the retention counts."""

        def prune(directory: Optional[Path], keep: int, pattern: str) -> int:
            if not directory or not directory.exists():
                return 0
            newest_first = sorted(directory.glob(pattern), key=lambda p: p.stat().st_mtime, reverse=True)
            removed = 0
            for stale in newest_first[keep:]:
                with suppress(OSError):
                    stale.unlink()
                    removed += 1
            return removed

        return (
            prune(cls.BACKUP_DIR, cls.KEEP_BACKUPS, "*.bak"),
            prune(cls.LOG_DIR, cls.KEEP_LOGS, "*.log.*"),
        )


Cfg.init()
